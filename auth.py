import logging
from dataclasses import dataclass
from typing import Any, Optional

from db import get_supabase_client

LOGGER = logging.getLogger("drinkmix")

NOT_ADMIN_MESSAGE = "Not authorized (not an admin)."


@dataclass
class AdminSession:
    user_id: Optional[str] = None
    email: Optional[str] = None
    is_admin: bool = False
    error: str = ""

    @property
    def authorized(self) -> bool:
        return bool(self.user_id) and self.is_admin


def _user_from_response(res: Any) -> Any:
    user = getattr(res, "user", None)
    if user is None and isinstance(res, dict):
        user = res.get("user")
    return user


def _attr(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def check_admin(sb, user: Any) -> AdminSession:
    """Look up profiles.is_admin for an authenticated user; non-admins are signed out."""
    user_id = _attr(user, "id")
    email = _attr(user, "email")
    if not user_id:
        return AdminSession()
    try:
        res = sb.table("profiles").select("is_admin, email").eq("id", str(user_id)).single().execute()
        profile = getattr(res, "data", None) or {}
    except Exception as e:
        LOGGER.error("Admin profile lookup failed", extra={"ctx": {"component": "auth", "error": type(e).__name__}})
        return AdminSession(error=f"{type(e).__name__}: {e}")

    if bool(profile.get("is_admin")):
        LOGGER.info("Admin signed in", extra={"ctx": {"component": "auth", "user": email}})
        return AdminSession(user_id=str(user_id), email=email or profile.get("email"), is_admin=True)

    LOGGER.warning("Non-admin login rejected", extra={"ctx": {"component": "auth", "user": email}})
    try:
        sb.auth.sign_out()
    except Exception as e:
        LOGGER.error("Sign-out after rejected login failed", extra={"ctx": {"component": "auth", "error": type(e).__name__}})
    return AdminSession(error=NOT_ADMIN_MESSAGE)


def sign_in(email: str, password: str) -> AdminSession:
    email = (email or "").strip()
    if not email or not password:
        return AdminSession(error="Enter email and password.")
    sb = get_supabase_client()
    if sb is None:
        return AdminSession(error="Supabase not configured.")
    try:
        res = sb.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        LOGGER.warning("Admin login failed", extra={"ctx": {"component": "auth", "error": type(e).__name__}})
        return AdminSession(error=str(e) or "Login failed.")
    user = _user_from_response(res)
    if user is None:
        return AdminSession(error="Login failed.")
    return check_admin(sb, user)


def sign_out(session: AdminSession) -> AdminSession:
    sb = get_supabase_client()
    if sb is not None:
        try:
            sb.auth.sign_out()
        except Exception as e:
            LOGGER.error("Sign-out failed", extra={"ctx": {"component": "auth", "error": type(e).__name__}})
    LOGGER.info("Admin signed out", extra={"ctx": {"component": "auth", "user": session.email}})
    return AdminSession()
