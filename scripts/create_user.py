#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from dotenv import load_dotenv

from travelblog.auth.identity import IdentityResolver
from travelblog.auth.passwords import PasswordVerifier
from travelblog.auth.users import CredentialStore
from travelblog.config import Settings
from travelblog.errors import DuplicateEmail
from travelblog.infra.db import Database


def main() -> None:
    load_dotenv()
    settings = Settings.from_env()
    db = Database(settings.database_url, timeout=settings.db_timeout)
    db.create_all()
    resolver = IdentityResolver(
        CredentialStore(db),
        PasswordVerifier(
            time_cost=settings.hash_time_cost,
            memory_cost=settings.hash_memory_cost,
            parallelism=settings.hash_parallelism,
        ),
    )

    email = input("Email: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        record = resolver.register_local(email, pw1)
    except DuplicateEmail:
        raise SystemExit(f"{email} is already registered")
    except ValueError as e:
        raise SystemExit(str(e))
    print(f"OK -> user #{record.id} ({record.email}) in {db.engine.url.render_as_string()}")


if __name__ == "__main__":
    main()
