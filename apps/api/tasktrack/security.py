from __future__ import annotations

from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext

from tasktrack.config import settings

# pbkdf2 keeps passlib independent of the bcrypt wheel's version
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SESSION_COOKIE_NAME = "tt_session"


def hash_password(password: str) -> str:
  return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
  return pwd_context.verify(password, password_hash)


def new_session_expires_at() -> datetime:
  return datetime.now(timezone.utc) + timedelta(days=max(1, int(settings.session_ttl_days)))
