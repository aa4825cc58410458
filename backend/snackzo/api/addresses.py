"""
Addresses API Endpoints
Delivery address of the profile plus geocoding for the address picker
"""
import logging

from fastapi import APIRouter, HTTPException, Query, Depends
from pydantic import BaseModel, Field

from snackzo.connectors.nominatim_connector import NominatimConnector
from snackzo.core.auth import TokenUser, get_current_user
from snackzo.repositories.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)

router = APIRouter()


class AddressUpdate(BaseModel):
    hostel_block: str = Field(..., min_length=1, max_length=100)
    room_number: str = Field(..., min_length=1, max_length=20)


@router.get("/me")
async def get_my_address(user: TokenUser = Depends(get_current_user)):
    try:
        profile = ProfileRepository().find_by_id(user.id)
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")

        return {
            "status": "success",
            "data": {
                "hostel_block": profile.get("hostel_block"),
                "room_number": profile.get("room_number"),
            }
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching address for {user.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching address: {str(e)}")


@router.put("/me")
async def update_my_address(request: AddressUpdate, user: TokenUser = Depends(get_current_user)):
    """Set hostel block and room number used for room delivery"""
    try:
        profile = ProfileRepository().update_address(
            user.id, request.hostel_block.strip(), request.room_number.strip()
        )
        if not profile:
            raise HTTPException(status_code=404, detail="Profile not found")

        return {
            "status": "success",
            "message": "Address updated",
            "data": {
                "hostel_block": profile["hostel_block"],
                "room_number": profile["room_number"],
            }
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating address for {user.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating address: {str(e)}")


@router.get("/search")
async def search_places(
    q: str = Query(..., min_length=3, description="Address or landmark"),
    limit: int = Query(5, ge=1, le=10),
    user: TokenUser = Depends(get_current_user)
):
    """Forward geocoding (OpenStreetMap Nominatim, India only)"""
    places = await NominatimConnector().search(q, limit=limit)
    return {
        "status": "success",
        "count": len(places),
        "data": places
    }


@router.get("/reverse")
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    user: TokenUser = Depends(get_current_user)
):
    """Address for a map pin"""
    place = await NominatimConnector().reverse(lat, lon)
    if not place:
        raise HTTPException(status_code=404, detail="No address found for this location")

    return {
        "status": "success",
        "data": place
    }
