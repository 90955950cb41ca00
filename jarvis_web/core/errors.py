"""API error classes.

One class per failure of the password + OTP flow, each carrying its HTTP
status and a fixed, non-identifying message. Handlers in main.py render
them into the standard error envelope.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_CODE").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
        headers: Optional response headers (e.g., Retry-After).
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.headers = headers
        super().__init__(message)


class UnauthorizedError(APIError):
    """Authentication required (401).

    Raised by the session guard for every kind of bad or missing bearer
    credential. Never says why.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


# =============================================================================
# Password gate
# =============================================================================


class InvalidCredentialError(APIError):
    """Submitted password does not match the configured credential (401)."""

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_CREDENTIAL",
            message="Invalid password",
            status_code=401,
        )


class RateLimitedError(APIError):
    """Client address is locked out after repeated failures (429).

    Args:
        retry_after: Seconds until the lockout lifts.
    """

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            code="RATE_LIMITED",
            message="Too many attempts. Please try again later.",
            status_code=429,
            headers={"Retry-After": str(max(1, retry_after))},
        )


# =============================================================================
# OTP issuance and verification
# =============================================================================


class DeliveryFailedError(APIError):
    """The code could not be sent over the out-of-band channel (502).

    No challenge is outstanding afterwards; the user restarts from the
    password step.
    """

    def __init__(self) -> None:
        super().__init__(
            code="DELIVERY_FAILED",
            message="Could not send the verification code. Please sign in again.",
            status_code=502,
        )


class SessionInvalidError(APIError):
    """Password re-check failed during OTP verification (401).

    Distinct from InvalidCredentialError: this signals a broken or forged
    flow, not a fresh login attempt, and does not count towards lockout.
    """

    def __init__(self) -> None:
        super().__init__(
            code="SESSION_INVALID",
            message="Invalid session. Please sign in again.",
            status_code=401,
        )


class InvalidFormatError(APIError):
    """Submitted code is not exactly six digits (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_FORMAT",
            message="The code must be exactly 6 digits.",
            status_code=400,
        )


class NoPendingChallengeError(APIError):
    """No usable challenge to verify against (401)."""

    def __init__(self) -> None:
        super().__init__(
            code="NO_PENDING_CHALLENGE",
            message="No code pending. Please sign in again.",
            status_code=401,
        )


class TooManyAttemptsError(APIError):
    """Attempt ceiling exceeded for the current challenge (429)."""

    def __init__(self) -> None:
        super().__init__(
            code="TOO_MANY_ATTEMPTS",
            message="Too many attempts. Please request a new code.",
            status_code=429,
        )


class InvalidCodeError(APIError):
    """Submitted code does not match (401). The challenge stays usable."""

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_CODE",
            message="Incorrect code",
            status_code=401,
        )


# =============================================================================
# Token codec
# =============================================================================


class InvalidSignatureError(APIError):
    """Token is malformed, tampered with, or signed for another purpose (401)."""

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(
            code="INVALID_SIGNATURE",
            message=message,
            status_code=401,
        )


class ExpiredError(APIError):
    """Token or code is past its expiry (401)."""

    def __init__(self, message: str = "Token expired") -> None:
        super().__init__(
            code="EXPIRED",
            message=message,
            status_code=401,
        )


# =============================================================================
# Infrastructure
# =============================================================================


class UpstreamError(APIError):
    """Downstream agent API unreachable or returned garbage (502)."""

    def __init__(self, message: str = "Agent service unavailable") -> None:
        super().__init__(
            code="UPSTREAM_ERROR",
            message=message,
            status_code=502,
        )
