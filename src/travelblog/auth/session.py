# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer
from sqlalchemy import delete

from travelblog.infra.db import Database, SessionRow, utcnow

logger = structlog.get_logger()

DEFAULT_MAX_AGE_SECONDS = 28800  # 8 hours


@dataclass(frozen=True)
class Session:
    session_id: str
    identity_id: int
    created_at: datetime
    expires_at: datetime


def _to_session(row: SessionRow) -> Session:
    return Session(
        session_id=row.sid,
        identity_id=row.user_id,
        created_at=row.created_at,
        expires_at=row.expires_at,
    )


class SessionManager:
    """Server-side sessions keyed by an opaque random token."""

    def __init__(
        self,
        db: Database,
        *,
        max_age: int = DEFAULT_MAX_AGE_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.ttl = timedelta(seconds=max_age)
        self.clock = clock

    def create(self, identity_id: int) -> Session:
        now = self.clock()
        row = SessionRow(
            sid=secrets.token_urlsafe(32),
            user_id=identity_id,
            created_at=now,
            expires_at=now + self.ttl,
        )
        with self.db.session() as s:
            s.add(row)
        logger.info("Session created", identity_id=identity_id)
        return _to_session(row)

    def lookup(self, token: str) -> Optional[Session]:
        if not token:
            return None
        with self.db.session() as s:
            row = s.get(SessionRow, token)
            if row is None:
                return None
            if row.expires_at <= self.clock():
                s.delete(row)
                return None
            return _to_session(row)

    def refresh(self, token: str) -> Optional[Session]:
        """Push expiry forward for a live session."""
        if not token:
            return None
        with self.db.session() as s:
            row = s.get(SessionRow, token)
            if row is None:
                return None
            now = self.clock()
            if row.expires_at <= now:
                s.delete(row)
                return None
            row.expires_at = now + self.ttl
            return _to_session(row)

    def destroy(self, token: str) -> None:
        if not token:
            return
        with self.db.session() as s:
            s.execute(delete(SessionRow).where(SessionRow.sid == token))

    def purge_expired(self) -> int:
        with self.db.session() as s:
            res = s.execute(delete(SessionRow).where(SessionRow.expires_at <= self.clock()))
            count = int(res.rowcount or 0)
        if count:
            logger.info("Purged expired sessions", count=count)
        return count


class SignedCookie:
    """Carries one opaque value (session id, OAuth state) in a signed cookie.

    With ``max_age=None`` the signature never expires and the server-side
    record alone decides validity (sliding sessions).
    """

    def __init__(
        self,
        secret_key: str,
        *,
        name: str = "travelblog_session",
        salt: str = "travelblog.session.v1",
        max_age: Optional[int] = DEFAULT_MAX_AGE_SECONDS,
    ):
        if not secret_key:
            raise RuntimeError("Missing SECRET_KEY for session cookies")
        self.name = name
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    def dumps(self, value: str) -> str:
        return self._serializer.dumps({"s": value})

    def loads(self, value: str) -> Optional[str]:
        if not value:
            return None
        try:
            data = self._serializer.loads(value, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        value = str(data.get("s") or "").strip() if isinstance(data, dict) else ""
        return value or None
