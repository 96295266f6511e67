"""
core/errors.py -- Typed failures for the auth core.

Token issuance and the verification lifecycle raise these to their caller;
the API layer maps them to the shared error envelope in api/main.py. The
access guard never raises them to the client directly -- it resolves every
request to either "proceed" or an explicit denial.

Each class carries a stable machine-readable `code` and the HTTP status the
API layer should use. The status lives here (not in the route layer) so the
mapping is defined once, next to the taxonomy.

ConfigurationError does NOT subclass ValueError: pydantic wraps
ValueError raised inside validators into a ValidationError, which would hide
the type from callers that want to catch a fatal misconfiguration at startup.

Layer rule: core/ is the kernel. No imports from api/, auth/, or notify/.
"""

from __future__ import annotations


class AccessGateError(Exception):
    """Base class for every expected failure in the auth core."""

    code: str = "error"
    status_code: int = 400
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(AccessGateError):
    """The identifier does not match any credential record."""

    code = "not_found"
    status_code = 404
    default_message = "User not found."


class InvalidCredentials(AccessGateError):
    """The presented secret does not match the stored hash."""

    code = "invalid_credentials"
    status_code = 401
    default_message = "Invalid credentials."


class Unauthenticated(AccessGateError):
    """Missing, malformed, expired, or badly signed token."""

    code = "unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(AccessGateError):
    """Valid token, insufficient role.

    The reference behaviour reports this with the same 401 as Unauthenticated;
    see Settings.strict_forbidden for the 403 variant.
    """

    code = "forbidden"
    status_code = 403
    default_message = "Insufficient role for this resource."


class InvalidCode(AccessGateError):
    """The submitted verification code does not match the outstanding one."""

    code = "invalid_code"
    status_code = 400
    default_message = "Invalid verification code."


class ConfigurationError(AccessGateError):
    """Fatal startup misconfiguration (e.g. missing signing secret)."""

    code = "configuration_error"
    status_code = 500
    default_message = "Server is misconfigured."


class AlreadyVerified(AccessGateError):
    """A code was requested for an account that is already verified."""

    code = "already_verified"
    status_code = 409
    default_message = "Account is already verified."
