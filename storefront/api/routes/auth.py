# storefront/api/routes/auth.py
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, status, Request, Response, Form

from fastapi.security import OAuth2PasswordRequestForm
from storefront.api.deps import get_db, get_current_active_user
from storefront.api.schemas.user import TokenResponse, UserCreate, UserOut, UserUpdate
from storefront.config import settings
from storefront.core.security import create_access_token, hash_password, verify_password
from storefront.database import FileBackedDB
from storefront.models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _create_refresh_token_record(db: FileBackedDB, user_id: str) -> str:
    """
    Create a server-side refresh token record. Returns the raw token string.
    Stored fields: token, user_id, created_at (ISO), expires_at (ISO)
    """
    token = secrets.token_urlsafe(32)
    now = datetime.utcnow()
    expires_at = now + timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES)
    db.create_record(
        "refresh_tokens",
        {
            "token": token,
            "user_id": str(user_id),
            "created_at": now.isoformat(sep=" "),
            "expires_at": expires_at.isoformat(sep=" "),
        },
        id_field="id",
    )
    return token


def _is_refresh_expired(row: Dict[str, Any]) -> bool:
    expires_at = row.get("expires_at")
    if not expires_at:
        return True
    try:
        exp_dt = datetime.fromisoformat(str(expires_at))
    except ValueError:
        return True
    return datetime.utcnow() > exp_dt


def _authenticate(db: FileBackedDB, login: str, password: str) -> Dict[str, Any]:
    """Look the account up by username or email and check the password. Raises 401."""
    row = db.get_record("users", "username", login) or db.get_record("users", "email", login)
    if not row:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    user = User.from_dict(row)
    if not user.password_hash or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")
    db.update_record("users", "id", user.id, {"last_login": datetime.utcnow().isoformat(sep=" ")})
    return row


@router.post("/token", response_model=TokenResponse)
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: FileBackedDB = Depends(get_db)):
    """
    Token endpoint used by OAuth2PasswordRequestForm clients.
    Returns a signed JWT and a refresh token (server-side stored).
    """
    user = _authenticate(db, form_data.username, form_data.password)
    subject = str(user.get("id"))
    access_token = create_access_token(subject)
    refresh_token = _create_refresh_token_record(db, subject)
    return {"access_token": access_token, "token_type": "bearer", "refresh_token": refresh_token}


@router.post("/login")
def login_form(response: Response, username: str = Form(...), password: str = Form(...), db: FileBackedDB = Depends(get_db)):
    """
    Browser login: sets 'access_token' and 'refresh_token' cookies and returns the user.
    """
    user = _authenticate(db, username, password)
    subject = str(user.get("id"))
    access_token = create_access_token(subject)
    refresh_token = _create_refresh_token_record(db, subject)
    response.set_cookie(key="access_token", value=access_token, httponly=True, samesite="lax")
    response.set_cookie(key="refresh_token", value=refresh_token, httponly=True, samesite="lax")
    return User.from_dict(user).mask_secret()


@router.post("/logout")
def logout(response: Response, request: Request, db: FileBackedDB = Depends(get_db)):
    refresh_token = request.cookies.get("refresh_token")
    if refresh_token:
        db.delete_record("refresh_tokens", "token", refresh_token)
    response.delete_cookie("access_token")
    response.delete_cookie("refresh_token")
    return {"ok": True}


@router.post("/register", response_model=UserOut, status_code=200)
def register(payload: UserCreate, db: FileBackedDB = Depends(get_db)):
    """
    Create a customer account. Usernames and emails are unique.
    """
    if db.get_record("users", "username", payload.username):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already registered")
    if db.get_record("users", "email", payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role="customer",
        full_name=payload.full_name,
        phone=payload.phone,
        document=payload.document,
        created_at=datetime.utcnow(),
    )
    data = user.to_dict()
    data.pop("id", None)
    row = db.create_record("users", data, id_field="id")
    logger.info("Registered user %s", payload.username)
    return User.from_dict(row).mask_secret()


@router.get("/me", response_model=UserOut)
def me(current_user: Dict[str, Any] = Depends(get_current_active_user)):
    return current_user


@router.put("/me", response_model=UserOut)
def update_me(payload: UserUpdate, current_user: Dict[str, Any] = Depends(get_current_active_user),
              db: FileBackedDB = Depends(get_db)):
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    password = updates.pop("password", None)
    if password:
        updates["password_hash"] = hash_password(password)
    if "email" in updates:
        other = db.get_record("users", "email", updates["email"])
        if other and str(other.get("id")) != str(current_user.get("id")):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    if not updates:
        return current_user
    row = db.update_record("users", "id", current_user.get("id"), updates)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return User.from_dict(row).mask_secret()


@router.post("/refresh", response_model=TokenResponse)
async def refresh(response: Response, request: Request, db: FileBackedDB = Depends(get_db)):
    """
    Rotate / refresh tokens.

    Accepts:
      - JSON body { "refresh_token": "<token>" }
      - form-encoded body (refresh_token field)
      - cookie 'refresh_token'

    A valid, non-expired refresh record is deleted (rotation) and a new
    access token and refresh token are returned.
    """
    token: Optional[str] = None
    content_type = (request.headers.get("content-type") or "").lower()
    if content_type.startswith("application/json"):
        body = await request.body()
        if body:
            try:
                data = await request.json()
            except ValueError:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed JSON body")
            if isinstance(data, dict):
                token = data.get("refresh_token")
    elif content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        token = form.get("refresh_token")

    if not token:
        token = request.cookies.get("refresh_token")

    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token required")

    row = db.get_record("refresh_tokens", "token", token)
    if not row:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")

    if _is_refresh_expired(row):
        db.delete_record("refresh_tokens", "token", token)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token expired")

    user_id = row.get("user_id")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token owner")

    db.delete_record("refresh_tokens", "token", token)

    access_token = create_access_token(str(user_id))
    new_refresh = _create_refresh_token_record(db, str(user_id))
    response.set_cookie(key="refresh_token", value=new_refresh, httponly=True, samesite="lax")
    response.set_cookie(key="access_token", value=access_token, httponly=True, samesite="lax")

    return {"access_token": access_token, "token_type": "bearer", "refresh_token": new_refresh}
