# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Identity resolution for local and Google sign-in.

Email is the only identity key. A Google login for an email that already
has a local password lands on that same record, and a local login for a
Google-only record is always rejected (the sentinel never verifies).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

import structlog

from travelblog.auth.passwords import FEDERATED_SENTINEL, PasswordVerifier
from travelblog.auth.users import CredentialStore, UserRecord
from travelblog.errors import DuplicateEmail

logger = structlog.get_logger()


class RejectReason(str, enum.Enum):
    NO_SUCH_USER = "no_such_user"
    BAD_CREDENTIAL = "bad_credential"


@dataclass(frozen=True)
class Accepted:
    record: UserRecord


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason


LoginResult = Union[Accepted, Rejected]


class IdentityResolver:
    def __init__(self, users: CredentialStore, verifier: PasswordVerifier):
        self.users = users
        self.verifier = verifier

    def resolve_local(self, email: str, plain: str) -> LoginResult:
        record = self.users.find_by_email(email)
        if record is None:
            # Same CPU cost as a real mismatch.
            self.verifier.burn(plain)
            logger.info("Local login rejected", reason=RejectReason.NO_SUCH_USER.value)
            return Rejected(RejectReason.NO_SUCH_USER)

        if not self.verifier.verify(record.credential, plain):
            logger.info("Local login rejected", reason=RejectReason.BAD_CREDENTIAL.value, identity_id=record.id)
            return Rejected(RejectReason.BAD_CREDENTIAL)

        logger.info("Local login accepted", identity_id=record.id)
        return Accepted(record)

    def resolve_federated(self, verified_email: str) -> Accepted:
        """Find or create the record for an email the provider has verified."""
        if not verified_email:
            raise ValueError("Federated login requires an email")

        record = self.users.find_by_email(verified_email)
        if record is not None:
            logger.info("Federated login matched existing identity", identity_id=record.id)
            return Accepted(record)

        try:
            record = self.users.insert(verified_email, FEDERATED_SENTINEL)
            logger.info("Federated identity created", identity_id=record.id)
        except DuplicateEmail:
            # Lost the insert race to a concurrent login or registration.
            record = self.users.find_by_email(verified_email)
            if record is None:
                raise
        return Accepted(record)

    def register_local(self, email: str, plain: str) -> UserRecord:
        email = (email or "").strip()
        if not email:
            raise ValueError("Email is required")
        if not plain:
            raise ValueError("Password is required")

        if self.users.find_by_email(email) is not None:
            raise DuplicateEmail(email)

        record = self.users.insert(email, self.verifier.hash(plain))
        logger.info("Local identity registered", identity_id=record.id)
        return record
