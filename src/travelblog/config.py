# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Anchor data paths to the project root, not the current working directory.
BASE_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = Path(os.getenv("TRAVELBLOG_DATA_DIR", str(BASE_DIR / "data"))).resolve()

_TRUTHY = {"1", "true", "yes", "y"}


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    secret_key: str
    database_url: str = f"sqlite:///{DATA_DIR / 'travelblog.db'}"
    session_database_url: str = ""
    db_timeout: float = 30.0

    session_max_age: int = 28800  # 8 hours
    session_sliding: bool = False
    session_salt: str = "travelblog.session.v1"
    cookie_name: str = "travelblog_session"
    cookie_secure: bool = False

    # argon2id work factor
    hash_time_cost: int = 3
    hash_memory_cost: int = 65536  # KiB
    hash_parallelism: int = 4

    posts_path: Path = DATA_DIR / "posts.yml"

    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_redirect_uri: str = "http://localhost:3000/auth/google/myblog"

    log_level: str = "INFO"
    log_json: bool = False

    @property
    def sessions_url(self) -> str:
        return self.session_database_url or self.database_url

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("SECRET_KEY") or os.getenv("TRAVELBLOG_SECRET_KEY")
        if not secret:
            raise RuntimeError("Missing SECRET_KEY (or TRAVELBLOG_SECRET_KEY) in environment")
        defaults = cls(secret_key=secret)
        return cls(
            secret_key=secret,
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            session_database_url=os.getenv("TRAVELBLOG_SESSION_DB_URL", ""),
            db_timeout=float(os.getenv("TRAVELBLOG_DB_TIMEOUT", str(defaults.db_timeout))),
            session_max_age=int(os.getenv("TRAVELBLOG_SESSION_MAX_AGE", str(defaults.session_max_age))),
            session_sliding=_flag("TRAVELBLOG_SESSION_SLIDING"),
            session_salt=os.getenv("TRAVELBLOG_SESSION_SALT", defaults.session_salt),
            cookie_name=os.getenv("TRAVELBLOG_COOKIE_NAME", defaults.cookie_name),
            cookie_secure=_flag("TRAVELBLOG_COOKIE_SECURE"),
            hash_time_cost=int(os.getenv("TRAVELBLOG_HASH_TIME_COST", str(defaults.hash_time_cost))),
            hash_memory_cost=int(os.getenv("TRAVELBLOG_HASH_MEMORY_COST", str(defaults.hash_memory_cost))),
            hash_parallelism=int(os.getenv("TRAVELBLOG_HASH_PARALLELISM", str(defaults.hash_parallelism))),
            posts_path=Path(os.getenv("TRAVELBLOG_POSTS_PATH", str(defaults.posts_path))).resolve(),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID") or None,
            google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET") or None,
            google_redirect_uri=os.getenv("GOOGLE_REDIRECT_URI", defaults.google_redirect_uri),
            log_level=os.getenv("TRAVELBLOG_LOG_LEVEL", defaults.log_level).upper(),
            log_json=_flag("TRAVELBLOG_LOG_JSON"),
        )
