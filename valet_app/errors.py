# valet_app/errors.py
"""
Error taxonomy shared by every service.
Each kind carries the HTTP status the API layer maps it to.
Nothing here is retried internally; callers re-read state and try again.
"""


class ValetError(Exception):
    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.kind.replace("_", " ").capitalize()


class InvalidArgument(ValetError):
    """Malformed identifier, missing field or invalid enum value."""
    status_code = 400
    kind = "invalid_argument"


class NotFound(ValetError):
    status_code = 404
    kind = "not_found"


class Conflict(ValetError):
    """State precondition failed: status already advanced, or a live duplicate exists."""
    status_code = 409
    kind = "conflict"


class InvalidCredential(ValetError):
    status_code = 401
    kind = "invalid_credential"


class CredentialExpired(ValetError):
    status_code = 401
    kind = "credential_expired"


class NoChallengeIssued(ValetError):
    status_code = 400
    kind = "no_challenge_issued"


class Forbidden(ValetError):
    status_code = 403
    kind = "forbidden"


class Unavailable(ValetError):
    status_code = 503
    kind = "unavailable"


# OTP challenge store results, surfaced by the auth flow as credential errors
class ChallengeNotFound(NotFound):
    kind = "challenge_not_found"


class ChallengeExpired(CredentialExpired):
    kind = "challenge_expired"
