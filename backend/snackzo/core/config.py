"""
Centralized application configuration
"""
import json
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment / .env"""

    # API Settings
    API_TITLE: str = "Snackzo API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Backend for the Snackzo hostel food-delivery storefront"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = ""
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    # HS256 secret used by Supabase Auth to sign access tokens
    SUPABASE_JWT_SECRET: str = ""

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:5173,https://snackzo.app" or '["http://localhost:5173"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:5173,http://localhost:8080"

    # Public URL of the storefront, used to build payment confirm/return links
    PUBLIC_APP_URL: str = "http://localhost:5173"

    # Store
    STORE_TIMEZONE: str = "Asia/Kolkata"

    # SnackzoPay
    PAYMENT_SESSION_TTL_SECONDS: int = 600
    MAX_WALLET_TOPUP: int = 5000

    # Admin query console
    QUERY_MAX_ROWS: int = 200
    QUERY_TIMEOUT_MS: int = 5000

    # Geocoding
    NOMINATIM_BASE_URL: str = "https://nominatim.openstreetmap.org"
    NOMINATIM_USER_AGENT: str = "snackzo-backend/1.0"

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:5173"]

        # Try JSON parse first (for array format)
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
