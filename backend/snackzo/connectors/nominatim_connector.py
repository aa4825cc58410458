"""
Nominatim (OpenStreetMap) Geocoding Connector
Address search and reverse geocoding for the delivery address picker
"""
from typing import Dict, List, Optional, Any
import httpx
import logging

from snackzo.core.config import settings

logger = logging.getLogger(__name__)


def _to_place(item: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "display_name": item.get("display_name"),
        "lat": float(item["lat"]) if item.get("lat") is not None else None,
        "lon": float(item["lon"]) if item.get("lon") is not None else None,
        "address": item.get("address") or {},
    }


class NominatimConnector:
    """
    Connector for the Nominatim public API

    Nominatim's usage policy requires an identifying User-Agent and at most
    one request per second; callers are rate limited by the API middleware.
    """

    def __init__(self, base_url: str = None, user_agent: str = None, timeout: float = 10.0):
        self.base_url = (base_url or settings.NOMINATIM_BASE_URL).rstrip("/")
        self.user_agent = user_agent or settings.NOMINATIM_USER_AGENT
        self.timeout = timeout

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"User-Agent": self.user_agent, "Accept-Language": "en"}

        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(url, headers=headers, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                logger.error(f"Nominatim request failed: {e.response.status_code} - {e.response.text}")
                return None
            except httpx.HTTPError as e:
                logger.error(f"Nominatim request error: {e}")
                return None
            except ValueError as e:
                # Throttled or proxied responses come back as HTML
                logger.error(f"Nominatim returned a non-JSON body: {e}")
                return None

    async def search(self, query: str, limit: int = 5, countrycodes: str = "in") -> List[Dict[str, Any]]:
        """
        Forward geocoding

        Returns:
            Up to limit places (empty on error or no match)
        """
        if not query or not query.strip():
            return []

        data = await self._get("/search", {
            "q": query.strip(),
            "format": "json",
            "addressdetails": 1,
            "limit": limit,
            "countrycodes": countrycodes,
        })
        if not isinstance(data, list):
            return []
        return [_to_place(item) for item in data]

    async def reverse(self, lat: float, lon: float) -> Optional[Dict[str, Any]]:
        """Reverse geocoding, None when nothing is found"""
        data = await self._get("/reverse", {
            "lat": lat,
            "lon": lon,
            "format": "json",
            "addressdetails": 1,
        })
        if not isinstance(data, dict) or data.get("error"):
            return None
        return _to_place(data)
