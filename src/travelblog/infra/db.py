# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""SQLAlchemy engine, tables and the unit-of-work helper.

Every store call goes through ``Database.session()``, which commits on
success and translates driver failures into ``StoreUnavailable``.
``IntegrityError`` is left for the caller, which knows which constraint
it was racing on.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import structlog
from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from travelblog.errors import StoreUnavailable

logger = structlog.get_logger()

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo, so we never store it)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    credential = Column("password", Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class SessionRow(Base):
    __tablename__ = "sessions"

    sid = Column(String(64), primary_key=True)
    # Back-reference only: deleting a user must not fail because of sessions.
    user_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)


class Database:
    def __init__(self, url: str, *, timeout: float = 30.0):
        self.url = url
        u = make_url(url)
        kwargs: dict = {"pool_pre_ping": True}
        if u.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}
            if u.database and u.database != ":memory:":
                Path(u.database).parent.mkdir(parents=True, exist_ok=True)
        else:
            kwargs["pool_timeout"] = timeout
            if u.get_backend_name() == "postgresql":
                kwargs["connect_args"] = {"connect_timeout": int(timeout)}
        self.engine = create_engine(url, **kwargs)
        self._factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_all(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except (DBAPIError, PoolTimeoutError) as e:
            raise StoreUnavailable(f"Cannot initialise store: {e.__class__.__name__}") from e

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        s = self._factory()
        try:
            yield s
            s.commit()
        except IntegrityError:
            s.rollback()
            raise
        except (DBAPIError, PoolTimeoutError) as e:
            s.rollback()
            logger.error("Store operation failed", url=self.engine.url.render_as_string(), error_type=type(e).__name__)
            raise StoreUnavailable(f"Store unavailable: {e.__class__.__name__}") from e
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()
