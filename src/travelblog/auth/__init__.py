# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication and session identity.

This package provides:
- Password hashing/verification (argon2)
- Credential store on SQLAlchemy (users table)
- Identity resolution for local and Google logins
- Server-side sessions carried by a signed cookie (itsdangerous)
- The auth gate used by protected routes
"""
