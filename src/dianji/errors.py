"""Error taxonomy shared by the service layer, the guards and the limiter.

Every expected failure is a DianjiError subclass that knows its HTTP
status, a stable machine code and a short message fit for direct display.
api/errors.py turns them into JSON responses; anything else is a 500.
"""

from typing import Optional


class DianjiError(Exception):
    """Base class for errors that map to a structured 4xx/5xx response."""

    status_code = 400
    code = "error"
    message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(DianjiError):
    code = "validation_error"
    message = "Invalid input"


class DuplicateHandleError(DianjiError):
    code = "duplicate_handle"
    message = "This email or phone number is already registered"


class AccountNotFoundError(DianjiError):
    status_code = 401
    code = "account_not_found"
    message = "Account not found"


class BadCredentialError(DianjiError):
    status_code = 401
    code = "bad_credential"
    message = "Incorrect password"


class InvalidInviteCodeError(DianjiError):
    code = "invalid_invite_code"
    message = "Invalid invite code"


class InviteExpiredError(DianjiError):
    code = "invite_expired"
    message = "This invite code has expired, ask your family for a new invite link"


class FamilyFullError(DianjiError):
    code = "family_full"
    message = "This family already has the maximum number of members"


class FamilyNotFoundError(DianjiError):
    status_code = 404
    code = "family_not_found"
    message = "Family not found"


class ForbiddenError(DianjiError):
    status_code = 403
    code = "forbidden"
    message = "You are not allowed to do this"


class InvalidTokenError(DianjiError):
    """Missing, malformed, expired or forged token. Callers never learn which."""

    status_code = 401
    code = "invalid_token"
    message = "Token is invalid or expired"


class AuthenticationRequiredError(InvalidTokenError):
    code = "unauthenticated"
    message = "Not logged in"


class RateLimitedError(DianjiError):
    status_code = 429
    code = "rate_limited"
    message = "Too many requests, please try again later"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message)


class StoreUnavailableError(DianjiError):
    """The credential store failed; rendered as a generic server error."""

    status_code = 500
    code = "server_error"
    message = "Internal server error"
