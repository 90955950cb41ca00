"""Service factory functions.

Singletons for the auth services. All of them share one store and one
clock, so the password gate, the verifier and the session guard see the
same state within a process.

The getters are sync FastAPI dependencies and run in the threadpool, so
lazy construction happens under a lock. It is reentrant because getters
call each other.
"""

import threading
from datetime import timedelta

from jarvis_web.core.auth import SessionAuthenticator
from jarvis_web.core.config import settings
from jarvis_web.core.store import Clock, InMemoryStore, KeyValueStore, utcnow
from jarvis_web.core.telegram import OTPDeliveryChannel, TelegramDelivery
from jarvis_web.core.tokens import otp_codec, session_codec
from jarvis_web.services.otp import OTPIssuer, OTPVerifier
from jarvis_web.services.password_gate import PasswordGate

_lock = threading.RLock()

_clock: Clock = utcnow
_store: KeyValueStore | None = None
_delivery_channel: OTPDeliveryChannel | None = None
_password_gate: PasswordGate | None = None
_otp_issuer: OTPIssuer | None = None
_otp_verifier: OTPVerifier | None = None
_session_authenticator: SessionAuthenticator | None = None


def get_store() -> KeyValueStore:
    """Get or create the shared store singleton.

    In-memory by default. For a multi-process deployment, assign an
    external-cache implementation here before the first request.
    """
    global _store
    if _store is None:
        with _lock:
            if _store is None:
                _store = InMemoryStore(clock=_clock)
    return _store


def get_delivery_channel() -> OTPDeliveryChannel:
    """Get or create the OTP delivery channel singleton."""
    global _delivery_channel
    if _delivery_channel is None:
        with _lock:
            if _delivery_channel is None:
                _delivery_channel = TelegramDelivery.from_settings()
    return _delivery_channel


def get_password_gate() -> PasswordGate:
    """Get or create the password gate singleton."""
    global _password_gate
    if _password_gate is None:
        with _lock:
            if _password_gate is None:
                _password_gate = PasswordGate(
                    password=settings.auth_password.get_secret_value(),
                    store=get_store(),
                    max_failures=settings.login_max_failures,
                    lockout=timedelta(minutes=settings.login_lockout_minutes),
                    clock=_clock,
                )
    return _password_gate


def get_otp_issuer() -> OTPIssuer:
    """Get or create the OTP issuer singleton."""
    global _otp_issuer
    if _otp_issuer is None:
        with _lock:
            if _otp_issuer is None:
                _otp_issuer = OTPIssuer(
                    codec=otp_codec(settings, clock=_clock),
                    channel=get_delivery_channel(),
                    ttl=timedelta(seconds=settings.otp_ttl_seconds),
                )
    return _otp_issuer


def get_otp_verifier() -> OTPVerifier:
    """Get or create the OTP verifier singleton."""
    global _otp_verifier
    if _otp_verifier is None:
        with _lock:
            if _otp_verifier is None:
                _otp_verifier = OTPVerifier(
                    gate=get_password_gate(),
                    otp_codec=otp_codec(settings, clock=_clock),
                    session_codec=session_codec(settings, clock=_clock),
                    store=get_store(),
                    subject=settings.session_subject,
                    otp_ttl=timedelta(seconds=settings.otp_ttl_seconds),
                    session_ttl=timedelta(days=settings.session_ttl_days),
                    max_attempts=settings.otp_max_attempts,
                )
    return _otp_verifier


def get_session_authenticator() -> SessionAuthenticator:
    """Get or create the session authenticator singleton."""
    global _session_authenticator
    if _session_authenticator is None:
        with _lock:
            if _session_authenticator is None:
                _session_authenticator = SessionAuthenticator(
                    session_codec(settings, clock=_clock),
                    service_api_key=settings.service_api_key.get_secret_value(),
                )
    return _session_authenticator


def reset_services() -> None:
    """Reset service singletons.

    Used in tests to ensure isolation between test cases.
    """
    global _clock, _store, _delivery_channel
    global _password_gate, _otp_issuer, _otp_verifier, _session_authenticator
    with _lock:
        _clock = utcnow
        _store = None
        _delivery_channel = None
        _password_gate = None
        _otp_issuer = None
        _otp_verifier = None
        _session_authenticator = None
