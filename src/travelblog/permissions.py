# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from fastapi import HTTPException, Request

from travelblog.auth.gate import Allowed, GateResult
from travelblog.auth.users import UserRecord
from travelblog.config import Settings

SIGNIN_PATH = "/signin"


def current_auth(request: Request) -> GateResult:
    """Gate decision for this request, computed once and kept on request.state."""
    auth = getattr(request.state, "auth", None)
    if auth is None:
        auth = request.app.state.gate.authorize(request)
        request.state.auth = auth
    return auth


def current_user_optional(request: Request) -> Optional[UserRecord]:
    auth = current_auth(request)
    return auth.identity if isinstance(auth, Allowed) else None


def require_user(request: Request) -> UserRecord:
    u = current_user_optional(request)
    if u:
        return u
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    loc = f"{SIGNIN_PATH}?next={quote(next_url, safe='/')}"
    raise HTTPException(status_code=303, headers={"Location": loc})


def safe_next(next_url: str, default: str = "/contact") -> str:
    """Only same-site relative paths are accepted as redirect targets."""
    n = (next_url or "").strip()
    if not n.startswith("/") or n.startswith("//") or "\\" in n:
        return default
    return n


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure}
