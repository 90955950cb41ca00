"""Response envelope models.

Success bodies of the auth endpoints follow the wire names the chat UI
already sends and reads (camelCase). Errors use the {"error": {...}}
envelope everywhere.
"""

from pydantic import BaseModel, ConfigDict, Field


class OtpIssuedResponse(BaseModel):
    """Body of a successful password check.

    The client must echo ``otpToken`` verbatim at verification time.
    """

    model_config = ConfigDict(populate_by_name=True)

    otp_token: str = Field(alias="otpToken")
    message: str = "Verification code sent"


class SessionIssuedResponse(BaseModel):
    """Body of a successful OTP verification."""

    token: str
    message: str = "Authenticated"


class SessionStatusResponse(BaseModel):
    """Body of GET /auth/session."""

    authenticated: bool
    subject: str
    via: str


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_CODE").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope.

    Usage in exception handlers:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=ErrorDetail(code=exc.code, message=exc.message)
            ).model_dump(),
        )
    """

    error: ErrorDetail
