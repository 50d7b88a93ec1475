"""
Viewer / session provider.

Resolves the request's session token (``Authorization: Bearer <token>`` or
the session cookie) to a user id. Missing, unknown and expired tokens all
resolve to the anonymous viewer.
"""

from __future__ import annotations

import datetime as dt
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import config_env
from backend.database import get_session
from backend.models import Session

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = dt.timedelta(days=7)


@dataclass(frozen=True)
class Viewer:
    user_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)


ANONYMOUS = Viewer()


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def extract_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        if token:
            return token
    return request.cookies.get(config_env.SESSION_COOKIE_NAME) or None


async def resolve_viewer(session: AsyncSession, token: Optional[str]) -> Viewer:
    if not token:
        return ANONYMOUS
    try:
        row = (
            await session.execute(select(Session).where(Session.token == token))
        ).scalar_one_or_none()
    except Exception as e:
        logger.warning("Session lookup failed: %s", e)
        return ANONYMOUS

    if row is None:
        return ANONYMOUS
    if row.expires_at < _utcnow():
        logger.debug("Session for user %s expired at %s", row.user_id, row.expires_at)
        return ANONYMOUS
    return Viewer(user_id=row.user_id)


async def get_viewer(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> Viewer:
    return await resolve_viewer(session, extract_token(request))


async def create_session(
    session: AsyncSession,
    user_id: str,
    ttl: dt.timedelta = DEFAULT_SESSION_TTL,
) -> Session:
    """Issue a new session token for ``user_id`` (used by seeding and tests)."""
    row = Session(
        token=secrets.token_urlsafe(32),
        user_id=user_id,
        expires_at=_utcnow() + ttl,
    )
    session.add(row)
    await session.flush()
    return row
