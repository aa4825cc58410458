"""
Authentication for the Snackzo backend
Validates Supabase Auth access tokens and resolves the caller's roles
"""
import logging
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel

from snackzo.core.config import settings
from snackzo.core.database import get_db_connection_dict_with_retry

logger = logging.getLogger(__name__)

# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)

# Role hierarchy: admin > runner > customer
ROLE_HIERARCHY = {
    "admin": 3,
    "runner": 2,
    "customer": 1,
}


class TokenUser(BaseModel):
    """User data extracted from a Supabase access token"""
    id: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: str = "customer"


class AuthConfig:
    """Authentication configuration"""

    @staticmethod
    def get_jwt_secret() -> str:
        """Get the Supabase JWT secret from settings"""
        secret = settings.SUPABASE_JWT_SECRET
        if not secret:
            raise ValueError("SUPABASE_JWT_SECRET is not set")
        return secret

    @staticmethod
    def get_jwt_algorithm() -> str:
        """Supabase Auth signs access tokens with HS256"""
        return "HS256"

    @staticmethod
    def get_audience() -> str:
        return "authenticated"


def decode_supabase_token(token: str) -> dict:
    """
    Decode and validate a Supabase access token.

    Supabase JWT structure:
    {
        "aud": "authenticated",
        "sub": "<user uuid>",
        "email": "student@campus.edu",
        "phone": "",
        "role": "authenticated",
        "exp": 1234567890
    }
    """
    try:
        secret = AuthConfig.get_jwt_secret()
    except ValueError as e:
        logger.error(f"Cannot verify access tokens: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication is not configured"
        )

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[AuthConfig.get_jwt_algorithm()],
            audience=AuthConfig.get_audience(),
        )
    except JWTError as e:
        error_msg = str(e).lower()
        if "expired" in error_msg:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"}
        )


def fetch_user_roles(user_id: str) -> List[str]:
    """Read the roles granted to a user from user_roles"""
    conn = get_db_connection_dict_with_retry()
    cursor = conn.cursor()
    try:
        cursor.execute("SELECT role FROM user_roles WHERE user_id = %s", (user_id,))
        return [row["role"] for row in cursor.fetchall()]
    finally:
        cursor.close()
        conn.close()


def highest_role(roles: List[str]) -> str:
    """Pick the most privileged role; users with no rows are customers"""
    if not roles:
        return "customer"
    return max(roles, key=lambda r: ROLE_HIERARCHY.get(r, 0))


def _user_from_payload(payload: dict) -> Optional[TokenUser]:
    user_id = payload.get("sub")
    if not user_id:
        return None
    return TokenUser(
        id=user_id,
        email=payload.get("email") or None,
        phone=payload.get("phone") or None,
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """
    Dependency that extracts and validates the current user from JWT.

    Usage:
        @router.get("/protected")
        async def protected_route(user: TokenUser = Depends(get_current_user)):
            return {"message": f"Hello {user.email}"}
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = decode_supabase_token(credentials.credentials)
    user = _user_from_payload(payload)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing subject",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenUser]:
    """
    Optional authentication - returns None if no valid token provided.

    The payment gateway page is reachable by guests, so its endpoints use
    this instead of get_current_user.
    """
    if not credentials:
        return None

    try:
        payload = decode_supabase_token(credentials.credentials)
    except HTTPException:
        return None

    return _user_from_payload(payload)


def require_role(required_role: str):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.patch("/orders/{order_id}/status")
        async def update_status(
            order_id: str,
            user: TokenUser = Depends(require_role("admin"))
        ):
            pass
    """
    async def role_checker(
        user: TokenUser = Depends(get_current_user)
    ) -> TokenUser:
        user.role = highest_role(fetch_user_roles(user.id))

        user_level = ROLE_HIERARCHY.get(user.role, 0)
        required_level = ROLE_HIERARCHY.get(required_role, 0)

        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {required_role}, your role: {user.role}"
            )

        return user

    return role_checker


# Convenience dependencies for common role requirements
require_admin = require_role("admin")
require_runner = require_role("runner")
