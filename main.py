#!/usr/bin/env python3
"""
tokenward admin CLI -- account bootstrap and session revocation.

Usage:
  python main.py create-user admin@example.com --name "Ada" --role admin
  python main.py revoke admin@example.com

create-user prompts for the password (never pass it on the command line).
revoke clears the user's live refresh token; their access token stays valid
until it expires, which is bounded by ACCESS_TOKEN_TTL_SECONDS.

Environment variables: the same as the API (DATABASE_URL, BCRYPT_ROUNDS,
ACCESS_TOKEN_SECRET, REFRESH_TOKEN_SECRET, DEBUG). See core/config.py.
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.credentials import validate_email, validate_password
from auth.errors import AuthError, DuplicateKey
from auth.models import Role, User
from auth.services import AuthServices, build_auth_services
from auth.store import UserStore
from core.config import get_settings


def _create_user(services: AuthServices, email: str, name: str, role: str, password: Optional[str]) -> int:
    email = validate_email(email)
    if password is None:
        password = getpass.getpass("Password: ")
        if password != getpass.getpass("Repeat password: "):
            print("  [!] Passwords do not match.")
            return 1
    validate_password(password)
    try:
        user = services.store.create(
            User(email=email, name=name, role=role, hashed_password=services.hasher.hash(password))
        )
    except DuplicateKey:
        print(f"  [!] A user with email {email} already exists.")
        return 1
    print(f"  Created {role} {user.email} (id {user.id})")
    return 0


def _revoke(services: AuthServices, email: str) -> int:
    email = validate_email(email)
    user = services.store.find_by_email(email)
    if user is None:
        print(f"  [!] No user with email {email}.")
        return 1
    services.store.set_refresh_token(user.id, None)
    print(f"  Revoked the live session of {email}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tokenward", description="tokenward account administration")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-user", help="create a password account")
    create.add_argument("email")
    create.add_argument("--name", default="")
    create.add_argument("--role", choices=[r.value for r in Role], default=Role.user.value)
    # Hidden: lets scripts and tests skip the interactive prompt.
    create.add_argument("--password", default=None, help=argparse.SUPPRESS)

    revoke = sub.add_parser("revoke", help="invalidate a user's refresh token")
    revoke.add_argument("email")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    store = UserStore(settings.database_url)
    services = build_auth_services(settings, store)
    try:
        if args.command == "create-user":
            return _create_user(services, args.email, args.name, args.role, args.password)
        return _revoke(services, args.email)
    except AuthError as exc:
        print(f"  [!] {exc.public_message}")
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
