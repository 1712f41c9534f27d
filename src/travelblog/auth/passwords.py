# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from travelblog.errors import HashingFailure

# Stored in place of a hash for accounts created through Google sign-in.
FEDERATED_SENTINEL = "google"


class PasswordVerifier:
    """argon2id hashing with a configurable work factor.

    The defaults (time cost 3, 64 MiB) are well above the cost of
    bcrypt at 10 rounds.
    """

    def __init__(self, *, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = PasswordHasher(time_cost=time_cost, memory_cost=memory_cost, parallelism=parallelism)
        self._dummy = None

    def hash(self, plain: str) -> str:
        try:
            return self._ph.hash(plain)
        except HashingError as e:
            raise HashingFailure(str(e)) from e

    def verify(self, credential: str, plain: str) -> bool:
        if not credential or credential == FEDERATED_SENTINEL or plain is None:
            return False
        try:
            return self._ph.verify(credential, plain)
        except (VerificationError, InvalidHashError):
            return False

    def burn(self, plain: str) -> None:
        """Spend one verify worth of CPU without a real credential."""
        if self._dummy is None:
            self._dummy = self.hash("travelblog-dummy-password")
        self.verify(self._dummy, plain or "")
