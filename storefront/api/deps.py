# storefront/api/deps.py
from typing import Optional, Dict, Any

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError

from storefront.config import settings
from storefront.database import db
from storefront.models.user import User
from storefront.services.payment import MercadoPagoGateway

OAUTH2_TOKEN_URL = "/api/auth/token"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=OAUTH2_TOKEN_URL, auto_error=False)


def get_db():
    """
    Dependency that returns the file-backed DB object.
    Usage:
        db = Depends(get_db)
    """
    return db


def get_gateway() -> MercadoPagoGateway:
    """Payment gateway dependency; tests override it with a fake."""
    return MercadoPagoGateway()


def _decode_token(token: str) -> Optional[str]:
    """
    Decode a signed JWT and return its 'sub' claim, or None if the token is invalid/expired.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None


def _resolve_user(request: Request, token: Optional[str]) -> Optional[Dict[str, Any]]:
    identifier = None
    if token:
        t = token
        if t.lower().startswith("bearer "):
            t = t.split(" ", 1)[1]
        identifier = _decode_token(t)
    # fallback to cookie (browser-login flows)
    if identifier is None:
        cookie_token = request.cookies.get("access_token")
        if cookie_token:
            identifier = _decode_token(cookie_token)
    if not identifier:
        return None

    row = db.get_record("users", "id", identifier)
    if not row:
        row = db.get_record("users", "username", identifier) or db.get_record("users", "email", identifier)
    if not row:
        return None
    return User.from_dict(row).mask_secret()


async def get_current_user(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Dict[str, Any]:
    """
    Resolve current user from the Authorization header (Bearer) or the 'access_token' cookie.
    Returns the user as a dict without the password hash. Raises 401 if not authenticated.
    """
    user = _resolve_user(request, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_optional_user(request: Request, token: Optional[str] = Depends(oauth2_scheme)) -> Optional[Dict[str, Any]]:
    """Like get_current_user but returns None for anonymous visitors."""
    return _resolve_user(request, token)


async def get_current_active_user(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if not current_user.get("is_active", True):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")
    return current_user


def require_admin(current_user: Dict[str, Any] = Depends(get_current_active_user)):
    """
    Dependency to require admin privileges. Raises 403 if user is not admin.
    """
    if not current_user.get("is_admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return current_user
