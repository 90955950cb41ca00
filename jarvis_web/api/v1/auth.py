"""Authentication endpoints for the password + OTP flow.

Endpoints:
- POST /auth/login: check the shared password, send a code, return the OTP token
- POST /auth/verify: check the code, return a 7-day session token
- GET /auth/session: report whether the bearer credential is valid

Security considerations:
- login: per-address lockout (5 failures, 15 minutes) plus a route throttle
- verify: re-checks the password, 5 attempts per code, single use
- logout is client-side only; session tokens are never revoked server-side
"""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from jarvis_web.api.deps import CurrentPrincipal, Gate, Issuer, Verifier
from jarvis_web.core.config import settings
from jarvis_web.core.network import get_client_ip
from jarvis_web.core.rate_limiting import limiter
from jarvis_web.core.responses import (
    OtpIssuedResponse,
    SessionIssuedResponse,
    SessionStatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Upper bound on any string field; format checks happen in the services.
_MAX_FIELD_LENGTH = 4096


# ===================================================================
# Request models
# ===================================================================


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    password: str = Field(max_length=_MAX_FIELD_LENGTH)


class VerifyRequest(BaseModel):
    """Request body for POST /auth/verify.

    ``otp`` is only length-bounded here: its format is checked after the
    password re-check, so a bad format never masks a bad session.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    otp: str = Field(max_length=_MAX_FIELD_LENGTH)
    password: str = Field(max_length=_MAX_FIELD_LENGTH)
    otp_token: str | None = Field(
        default=None, alias="otpToken", max_length=_MAX_FIELD_LENGTH
    )


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit(lambda: settings.rate_limit_auth)
async def login(
    request: Request,
    body: LoginRequest,
    gate: Gate,
    issuer: Issuer,
) -> OtpIssuedResponse:
    """Check the shared password and send a one-time code.

    Unauthenticated. A locked-out address gets 429 before the password is
    looked at. On success the code goes out over Telegram and the signed
    OTP token comes back in the body.
    """
    client_ip = get_client_ip(request)
    gate.check(body.password, client_ip)

    otp_token = await issuer.issue()
    logger.info("Password accepted, code sent: ip=%s", client_ip)
    return OtpIssuedResponse(otp_token=otp_token)


# ===================================================================
# POST /auth/verify
# ===================================================================


@router.post("/verify")
@limiter.limit(lambda: settings.rate_limit_auth)
async def verify(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: VerifyRequest,
    verifier: Verifier,
) -> SessionIssuedResponse:
    """Exchange a valid code for a session token.

    The client persists the token and sends it as a bearer credential on
    every later request.
    """
    token = verifier.verify(
        otp=body.otp,
        password=body.password,
        otp_token=body.otp_token,
    )
    return SessionIssuedResponse(token=token)


# ===================================================================
# GET /auth/session
# ===================================================================


@router.get("/session")
async def session_status(principal: CurrentPrincipal) -> SessionStatusResponse:
    """Return 200 for a valid bearer credential, 401 otherwise."""
    return SessionStatusResponse(
        authenticated=True,
        subject=principal.subject,
        via=principal.via,
    )
