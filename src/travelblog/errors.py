# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error kinds raised by the auth and storage layers.

Rejected logins are not errors: they are returned as values
(see ``travelblog.auth.identity``). Everything here means something
went wrong that is not the user's password.
"""

from __future__ import annotations


class TravelBlogError(Exception):
    """Base class for all travelblog errors."""


class HashingFailure(TravelBlogError):
    """The password hash transform itself failed."""


class StoreUnavailable(TravelBlogError):
    """The backing store could not be reached or timed out."""


class DuplicateEmail(TravelBlogError):
    def __init__(self, email: str):
        super().__init__(f"Email already registered: {email}")
        self.email = email
