# storefront/models/user.py
from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Dict, Any

ROLES = ("customer", "admin")


def _truthy(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return bool(raw)
    if isinstance(raw, str):
        return raw.strip().lower() in ("1", "true", "yes", "y", "t")
    return False


@dataclass
class User:
    """
    Domain model for a user.
    The FileBackedDB stores values as strings; these helpers normalize/convert types.
    An account is an admin when role == 'admin' (legacy rows may carry is_admin instead).
    """
    username: str
    email: str
    password_hash: str = ""
    role: str = "customer"
    full_name: Optional[str] = None
    phone: Optional[str] = None
    document: Optional[str] = None  # CPF
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_login: Optional[str] = None
    id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "User":
        if d is None:
            raise ValueError("Cannot construct User from None")
        role = str(d.get("role") or "").strip().lower()
        if role not in ROLES:
            role = "admin" if _truthy(d.get("is_admin", False)) else "customer"

        is_active_raw = d.get("is_active")
        is_active = True if is_active_raw in (None, "") else _truthy(is_active_raw)

        created_at_raw = d.get("created_at")
        created_at = None
        if isinstance(created_at_raw, datetime):
            created_at = created_at_raw
        elif created_at_raw:
            try:
                created_at = datetime.fromisoformat(str(created_at_raw))
            except ValueError:
                created_at = None

        return cls(
            username=str(d.get("username") or ""),
            email=str(d.get("email") or ""),
            password_hash=str(d.get("password_hash") or d.get("hashed_password") or ""),
            role=role,
            full_name=d.get("full_name") or d.get("name") or None,
            phone=d.get("phone") or None,
            document=d.get("document") or None,
            is_active=is_active,
            created_at=created_at,
            last_login=d.get("last_login") or None,
            id=d.get("id") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to plain dict suitable for writing back to CSV/Excel.
        Note: password_hash is included (necessary for persistence); strip it in APIs.
        """
        out = asdict(self)
        if self.created_at and isinstance(self.created_at, datetime):
            out["created_at"] = self.created_at.isoformat(sep=" ")
        else:
            out["created_at"] = ""
        out["is_admin"] = self.is_admin
        out["is_active"] = bool(self.is_active)
        return out

    def mask_secret(self) -> Dict[str, Any]:
        """
        Return a representation safe to expose on API responses (no password_hash).
        """
        d = self.to_dict()
        d.pop("password_hash", None)
        return d
