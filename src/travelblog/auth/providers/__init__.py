# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Federated sign-in providers feeding the identity resolver."""

from travelblog.auth.providers.base import BaseProvider, OAuthError
from travelblog.auth.providers.google import GoogleConfig, GoogleProvider

__all__ = ["BaseProvider", "OAuthError", "GoogleProvider", "GoogleConfig"]
