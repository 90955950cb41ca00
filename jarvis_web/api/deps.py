"""Shared dependencies for API endpoints.

The session guard runs before any work in a protected handler. Every
failure is a uniform 401: the response never says whether the token was
missing, forged, or expired.
"""

from typing import Annotated

from fastapi import Depends, Header

from jarvis_web.core.auth import Principal, SessionAuthenticator
from jarvis_web.services.factory import (
    get_otp_issuer,
    get_otp_verifier,
    get_password_gate,
    get_session_authenticator,
)
from jarvis_web.services.otp import OTPIssuer, OTPVerifier
from jarvis_web.services.password_gate import PasswordGate


def require_session(
    authenticator: Annotated[SessionAuthenticator, Depends(get_session_authenticator)],
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Authenticate the bearer credential of the current request.

    Raises:
        UnauthorizedError: 401 for any auth failure.
    """
    return authenticator.authenticate(authorization)


# Reusable type aliases for dependency injection
CurrentPrincipal = Annotated[Principal, Depends(require_session)]
Gate = Annotated[PasswordGate, Depends(get_password_gate)]
Issuer = Annotated[OTPIssuer, Depends(get_otp_issuer)]
Verifier = Annotated[OTPVerifier, Depends(get_otp_verifier)]
