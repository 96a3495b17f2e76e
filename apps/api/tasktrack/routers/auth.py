from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.audit import write_audit
from tasktrack.config import settings
from tasktrack.deps import get_current_user, get_db
from tasktrack.models import Session as DbSession, User
from tasktrack.rate_limit import limiter
from tasktrack.schemas import LoginIn, UserOut
from tasktrack.security import SESSION_COOKIE_NAME, new_session_expires_at, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def user_out(u: User) -> UserOut:
  return UserOut(
    id=u.id,
    orgId=u.org_id,
    email=u.email,
    firstName=u.first_name,
    lastName=u.last_name,
    photoUrl=u.photo_url,
    role=u.role,
  )


def _rate_limit_or_429(*, key: str, limit: int, window_seconds: int) -> None:
  allowed, retry_after = limiter.hit(key, limit=limit, window_seconds=window_seconds)
  if allowed:
    return
  raise HTTPException(
    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    detail="Too many attempts, retry later",
    headers={"Retry-After": str(retry_after)},
  )


@router.post("/login", response_model=UserOut)
async def login(payload: LoginIn, request: Request, response: Response, db: AsyncSession = Depends(get_db)) -> UserOut:
  ip = request.client.host if request.client else "unknown"
  email = (payload.email or "").strip().lower()
  _rate_limit_or_429(key=f"auth:login:ip:{ip}", limit=int(settings.rate_limit_login_ip_per_minute), window_seconds=60)
  if email:
    _rate_limit_or_429(key=f"auth:login:email:{email}", limit=int(settings.rate_limit_login_email_per_minute), window_seconds=60)

  res = await db.execute(select(User).where(User.email == email))
  u = res.scalar_one_or_none()
  if not u or not verify_password(payload.password, u.password_hash):
    await write_audit(db, event_type="auth.login.failed", entity_type="Auth", entity_id=None, payload={"email": email, "ip": ip})
    await db.commit()
    logger.info("failed login for %s from %s", email, ip)
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
  if not u.active:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User disabled")

  s = DbSession(user_id=u.id, created_ip=ip, expires_at=new_session_expires_at())
  db.add(s)
  await db.flush()
  await write_audit(db, event_type="auth.login", entity_type="User", entity_id=u.id, actor_id=u.id, payload={"ip": ip})
  await db.commit()

  response.set_cookie(
    key=SESSION_COOKIE_NAME,
    value=s.id,
    httponly=True,
    samesite="lax",
    secure=settings.cookie_secure,
    domain=settings.cookie_domain,
    max_age=int(settings.session_ttl_days) * 24 * 3600,
    path="/",
  )
  return user_out(u)


@router.post("/logout")
async def logout(
  response: Response,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  await db.execute(delete(DbSession).where(DbSession.user_id == user.id))
  response.delete_cookie(key=SESSION_COOKIE_NAME, path="/")
  await db.commit()
  return {"ok": True}


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)) -> UserOut:
  return user_out(user)
