"""
Admin API - Store settings, database console and wallet credits

Every endpoint here requires the admin role.
"""
import logging
from typing import Optional, List, Any

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel, Field

from snackzo.core.auth import TokenUser, require_admin
from snackzo.core.errors import to_http_exception
from snackzo.domain.store import StoreConfigUpdate
from snackzo.domain.wallet import AdminCredit
from snackzo.services.query_assistant_service import get_query_assistant
from snackzo.services.store_status_service import StoreStatusService
from snackzo.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter()


class QueryPrompt(BaseModel):
    text: str = Field(..., min_length=1, max_length=500)


class QueryRun(BaseModel):
    query: str = Field(..., min_length=1, max_length=5000)
    params: List[Any] = Field(default_factory=list)
    max_rows: Optional[int] = Field(None, ge=1)


# ============================================================================
# Store settings
# ============================================================================

@router.get("/store")
async def get_store_settings(user: TokenUser = Depends(require_admin)):
    """Stored settings plus the status they currently produce"""
    try:
        service = StoreStatusService()
        return {
            "status": "success",
            "data": {
                "config": service.get_config().to_dict(),
                "status": service.get_status().to_dict(),
            }
        }

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error fetching store settings: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching store settings: {str(e)}")


@router.put("/store")
async def update_store_settings(update: StoreConfigUpdate, user: TokenUser = Depends(require_admin)):
    """
    Update master switch, operating hours, delivery fee or announcement

    Hours are "HH:MM" in store time; a close time before the open time
    means the store stays open past midnight.
    """
    try:
        service = StoreStatusService()
        config = service.update_settings(update)
        logger.info(f"Store settings updated by {user.email or user.id}")

        return {
            "status": "success",
            "message": "Store settings saved",
            "data": {
                "config": config.to_dict(),
                "status": service.get_status().to_dict(),
            }
        }

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating store settings: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating store settings: {str(e)}")


# ============================================================================
# Database console (query assistant)
# ============================================================================

@router.get("/query/templates")
async def get_query_templates(user: TokenUser = Depends(require_admin)):
    return {
        "status": "success",
        "data": get_query_assistant().templates()
    }


@router.post("/query/generate")
async def generate_query(prompt: QueryPrompt, user: TokenUser = Depends(require_admin)):
    """Suggest SQL for a plain-English request"""
    suggestion = get_query_assistant().generate(prompt.text)
    return {
        "status": "success",
        "data": suggestion.model_dump()
    }


@router.post("/query/run")
async def run_query(request: QueryRun, user: TokenUser = Depends(require_admin)):
    """
    Run a read-only query

    Single SELECT/WITH statement only, executed in a READ ONLY transaction
    with a statement timeout and a row cap.
    """
    try:
        result = get_query_assistant().run_query(request.query, request.params, request.max_rows)
        logger.info(f"Console query by {user.email or user.id}: {result['row_count']} rows")
        return {
            "status": "success",
            "data": result
        }

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Console query failed: {e}", exc_info=True)
        raise HTTPException(status_code=400, detail=f"Query failed: {str(e)}")


# ============================================================================
# Wallet credits
# ============================================================================

@router.post("/wallet/credit")
async def credit_wallet(request: AdminCredit, user: TokenUser = Depends(require_admin)):
    """Add money to a customer's wallet (promotions, goodwill refunds)"""
    try:
        summary = WalletService().admin_credit(request.user_id, request.amount, request.description)
        logger.info(f"Wallet credit of {request.amount} to {request.user_id} by {user.email or user.id}")
        return {
            "status": "success",
            "message": f"₹{request.amount} credited",
            "data": summary.to_dict()
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error crediting wallet: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error crediting wallet: {str(e)}")
