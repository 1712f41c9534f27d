# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from travelblog.auth.passwords import FEDERATED_SENTINEL
from travelblog.errors import DuplicateEmail
from travelblog.infra.db import Database, UserRow


@dataclass(frozen=True)
class UserRecord:
    id: int
    email: str
    credential: str
    created_at: datetime

    @property
    def federated_only(self) -> bool:
        return self.credential == FEDERATED_SENTINEL


def _to_record(row: UserRow) -> UserRecord:
    return UserRecord(id=row.id, email=row.email, credential=row.credential, created_at=row.created_at)


class CredentialStore:
    """Users table access. Email is matched exactly as stored."""

    def __init__(self, db: Database):
        self.db = db

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        if not email:
            return None
        with self.db.session() as s:
            row = s.execute(select(UserRow).where(UserRow.email == email)).scalar_one_or_none()
            return _to_record(row) if row else None

    def find_by_id(self, user_id: int) -> Optional[UserRecord]:
        with self.db.session() as s:
            row = s.get(UserRow, user_id)
            return _to_record(row) if row else None

    def insert(self, email: str, credential: str) -> UserRecord:
        try:
            with self.db.session() as s:
                row = UserRow(email=email, credential=credential)
                s.add(row)
                s.flush()
                return _to_record(row)
        except IntegrityError as e:
            raise DuplicateEmail(email) from e

    def delete(self, user_id: int) -> bool:
        with self.db.session() as s:
            res = s.execute(delete(UserRow).where(UserRow.id == user_id))
            return bool(res.rowcount)
