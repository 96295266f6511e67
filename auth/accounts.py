"""
auth/accounts.py -- Account registration and secret updates.

register_account() is the single entry point for creating a credential
record. It inserts the record unverified, issues a verification code, and
mails the code. The mail is fire-and-forget (see verification.dispatch):
registration succeeds whatever the notifier reports.

Layer rule: may import from core/ and notify/. No imports from api/.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from auth.models import Credential, Role
from auth.tokens import hash_password
from auth.verification import dispatch, issue_code
from core.errors import NotFound
from notify.mailer import Notifier
from notify.templates import WELCOME_SUBJECT, welcome_email

if TYPE_CHECKING:
    from auth.store import CredentialStore

logger = logging.getLogger("accessgate.auth")


def register_account(
    store: CredentialStore,
    notifier: Notifier,
    email: str,
    password: str,
    role: Role = Role.USER,
    first_name: str = "",
    last_name: str = "",
    phone_number: str = "",
) -> Credential:
    """Create an unverified account and send its verification code.

    Raises sqlalchemy.exc.IntegrityError if the email is already registered.
    Returns the stored record (including the outstanding code -- callers must
    not echo it back to the client).
    """
    record = Credential(
        email=email,
        hashed_password=hash_password(password),
        role=Role(role),
        first_name=first_name,
        last_name=last_name,
        phone_number=phone_number,
    )
    user_id = store.insert(record)
    code = issue_code(store, email)
    logger.info("Registered user_id=%s role=%s", user_id, record.role.value)

    dispatch(notifier, email, WELCOME_SUBJECT, welcome_email(first_name, code))
    return store.get_by_id(user_id)


def change_password(store: CredentialStore, identifier: str, new_password: str) -> None:
    """Replace the stored secret. Raises NotFound if the identifier is unknown."""
    if not store.update_secret(identifier, hash_password(new_password)):
        raise NotFound()
    logger.info("Password updated for %s", identifier)
