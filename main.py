#!/usr/bin/env python3
"""
AccessGate -- role-based JWT authorization with email verification.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py create-user admin@example.com --role admin --verified
  python main.py create-user someone@example.com --password 's3cret-pass'

Environment variables (see core/config.py for the full list):
  JWT_SECRET    Signing secret, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL  SQLAlchemy URL of the credential store. Default sqlite:///accessgate.db
  SMTP_HOST     Mail relay for verification codes. Empty disables mail.
"""

import argparse
import getpass
import sys

import uvicorn
from sqlalchemy.exc import IntegrityError

from auth.accounts import register_account
from auth.models import Credential, Role
from auth.store import CredentialStore
from auth.tokens import MAX_PASSWORD_BYTES, hash_password, password_fits
from core.config import get_settings
from core.errors import ConfigurationError
from notify.mailer import SmtpNotifier


def _read_password(given: str | None) -> str:
    if given:
        return given
    first = getpass.getpass("Password: ")
    if first != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        sys.exit(1)
    return first


def create_user(args: argparse.Namespace) -> int:
    """Insert an account directly. --verified skips the code mail (bootstrap admins)."""
    settings = get_settings()
    password = _read_password(args.password)
    if len(password) < 8:
        print("  [!] Password must be at least 8 characters.")
        return 1
    if not password_fits(password):
        print(f"  [!] Password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded.")
        return 1

    store = CredentialStore(settings.database_url)
    try:
        if args.verified:
            user_id = store.insert(
                Credential(
                    email=args.email,
                    hashed_password=hash_password(password),
                    role=Role(args.role),
                    first_name=args.first_name,
                    last_name=args.last_name,
                    is_verified=True,
                )
            )
        else:
            user_id = register_account(
                store,
                SmtpNotifier.from_settings(settings),
                email=args.email,
                password=password,
                role=Role(args.role),
                first_name=args.first_name,
                last_name=args.last_name,
            ).id
    except IntegrityError:
        print(f"  [!] An account for '{args.email}' already exists.")
        return 1
    finally:
        store.close()

    print(f"  Created {args.role} '{args.email}' (id={user_id}, verified={args.verified})")
    return 0


def serve(args: argparse.Namespace) -> int:
    # Fail here rather than inside the ASGI lifespan so the message is readable.
    get_settings()
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="accessgate",
        description="Role-based JWT authorization with email verification.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (dev only)")
    p_serve.set_defaults(func=serve)

    p_user = sub.add_parser("create-user", help="Create an account in the credential store")
    p_user.add_argument("email")
    p_user.add_argument("--role", choices=[r.value for r in Role], default=Role.USER.value)
    p_user.add_argument("--password", help="Read interactively when omitted")
    p_user.add_argument("--first-name", default="")
    p_user.add_argument("--last-name", default="")
    p_user.add_argument("--verified", action="store_true", help="Mark verified; no code is issued or mailed")
    p_user.set_defaults(func=create_user)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ConfigurationError as exc:
        print(f"  [!] Configuration error: {exc}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
