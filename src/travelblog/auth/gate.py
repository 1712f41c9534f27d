# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Union

from travelblog.auth.session import Session, SignedCookie, SessionManager
from travelblog.auth.users import CredentialStore, UserRecord


class HasCookies(Protocol):
    cookies: Mapping[str, str]


@dataclass(frozen=True)
class Allowed:
    identity: UserRecord
    session: Session


@dataclass(frozen=True)
class Denied:
    reason: str


GateResult = Union[Allowed, Denied]


class AuthGate:
    """Allow/deny decision for a request. Never builds HTTP responses."""

    def __init__(
        self,
        sessions: SessionManager,
        users: CredentialStore,
        cookie: SignedCookie,
        *,
        sliding: bool = False,
    ):
        self.sessions = sessions
        self.users = users
        self.cookie = cookie
        self.sliding = sliding

    def session_id(self, request: HasCookies) -> Optional[str]:
        return self.cookie.loads(request.cookies.get(self.cookie.name, ""))

    def authorize(self, request: HasCookies) -> GateResult:
        return self.authorize_token(self.session_id(request))

    def authorize_token(self, session_id: Optional[str]) -> GateResult:
        if not session_id:
            return Denied("no_session")
        if self.sliding:
            sess = self.sessions.refresh(session_id)
        else:
            sess = self.sessions.lookup(session_id)
        if sess is None:
            return Denied("session_absent")
        identity = self.users.find_by_id(sess.identity_id)
        if identity is None:
            return Denied("identity_missing")
        return Allowed(identity=identity, session=sess)
