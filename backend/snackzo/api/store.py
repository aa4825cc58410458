"""
Store API Endpoints
Open/closed status shown on the storefront
"""
import logging

from fastapi import APIRouter, HTTPException

from snackzo.core.errors import to_http_exception
from snackzo.services.store_status_service import StoreStatusService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status")
async def get_store_status():
    """
    Current store status

    Returns whether the store is open, the banner text ("Closes in 2h 15m")
    and when that changes next.
    """
    try:
        service = StoreStatusService()
        status = service.get_status()
        config = service.get_config()

        return {
            "status": "success",
            "data": {
                **status.to_dict(),
                "announcement": config.announcement,
                "delivery_fee": float(config.delivery_fee),
            }
        }

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error evaluating store status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching store status: {str(e)}")
