"""
auth/verification.py -- Email verification lifecycle.

States of a record: unverified with an outstanding code -> verified with no
code. issue_code() (re)enters the first state for an unverified record;
confirm_code() performs the single false->true transition. issue_code()
refuses verified records, so there is no path back to unverified.

Codes are six-digit strings drawn uniformly from 100000..999999 with the
`secrets` CSPRNG. Comparison is exact string equality -- "048213" is not
"48213", and a cleared (None) code matches nothing.

Notifications are fire-and-forget: dispatch() runs after the state change is
committed and never raises. A rejected, unresponsive, or crashing notifier is
logged and the verification stands.

Known limitation: confirm_code() reads, compares, then writes. Two concurrent
confirmations of the same code can both pass the comparison; both then write
the same verified state and both send a notification.

Layer rule: may import from core/ and notify/. No imports from api/.
"""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING

from auth.models import Credential
from core.errors import AlreadyVerified, InvalidCode, NotFound
from notify.mailer import Notifier, NotifyOutcome
from notify.templates import VERIFIED_SUBJECT, verified_email

if TYPE_CHECKING:
    from auth.store import CredentialStore

logger = logging.getLogger("accessgate.verification")

CODE_MIN = 100000
CODE_MAX = 999999


def generate_code() -> str:
    """Return a uniformly random six-digit code in CODE_MIN..CODE_MAX inclusive."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def dispatch(notifier: Notifier, identifier: str, subject: str, body_html: str) -> NotifyOutcome | None:
    """Send a notification without letting any failure reach the caller.

    Returns the outcome, or None when the notifier itself raised.
    """
    try:
        outcome = notifier.notify(identifier, subject, body_html)
    except Exception:
        logger.exception("Notifier raised while sending %r to %s", subject, identifier)
        return None
    if outcome is not NotifyOutcome.ACCEPTED:
        logger.warning("Notification %r to %s not delivered: %s", subject, identifier, outcome.value)
    return outcome


def issue_code(store: CredentialStore, identifier: str) -> str:
    """Generate a fresh code for `identifier` and mark the record unverified.

    Raises:
        NotFound:        no record for identifier.
        AlreadyVerified: the record is verified; issuing a code would undo that.
    """
    record = store.find_by_identifier(identifier)
    if record is None:
        raise NotFound()
    if record.is_verified:
        raise AlreadyVerified()
    code = generate_code()
    store.update_verification(identifier, code, False)
    logger.info("Issued verification code for %s", identifier)
    return code


def confirm_code(
    store: CredentialStore,
    notifier: Notifier,
    identifier: str,
    submitted_code: str,
) -> Credential:
    """Verify `identifier` if `submitted_code` equals the outstanding code.

    Raises:
        NotFound:    no record for identifier.
        InvalidCode: no outstanding code, or the code does not match.

    Returns the updated record (is_verified=True, verification_code=None).
    """
    record = store.find_by_identifier(identifier)
    if record is None:
        raise NotFound()
    if record.verification_code is None or submitted_code != record.verification_code:
        logger.info("Verification code mismatch for %s", identifier)
        raise InvalidCode()

    store.update_verification(identifier, None, True)
    record.verification_code = None
    record.is_verified = True
    logger.info("Verified %s", identifier)

    dispatch(notifier, identifier, VERIFIED_SUBJECT, verified_email(record.first_name))
    return record
