"""Tests for credential helpers and the session authenticator.

Every failure is the same UnauthorizedError, whatever the cause.
"""

from datetime import timedelta

import pytest

from jarvis_web.core.auth import (
    VIA_SERVICE_KEY,
    VIA_SESSION,
    Principal,
    SessionAuthenticator,
    extract_bearer,
    issue_session_token,
    secrets_match,
)
from jarvis_web.core.errors import UnauthorizedError
from jarvis_web.core.tokens import OTP_AUDIENCE, SESSION_AUDIENCE, TokenCodec
from tests.conftest import TEST_AUTH_SECRET, TEST_SERVICE_KEY

_OTHER_SECRET = "another-secret-key-that-is-at-least-32-characters"  # nosec B105


@pytest.fixture
def codec(clock) -> TokenCodec:
    return TokenCodec(
        secret=TEST_AUTH_SECRET, audience=SESSION_AUDIENCE, issuer="jarvis-web", clock=clock
    )


@pytest.fixture
def authenticator(codec) -> SessionAuthenticator:
    return SessionAuthenticator(codec, service_api_key=TEST_SERVICE_KEY)


class TestSecretsMatch:
    def test_equal_values_match(self):
        assert secrets_match("correct", "correct") is True

    def test_different_values_do_not_match(self):
        assert secrets_match("correct", "Correct") is False

    def test_empty_expected_never_matches(self):
        assert secrets_match("", "") is False

    def test_non_ascii_values_compare(self):
        assert secrets_match("pässwörd", "pässwörd") is True


class TestExtractBearer:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("BEARER  abc ", "abc"),
            (None, None),
            ("", None),
            ("Bearer", None),
            ("Bearer ", None),
            ("Basic abc", None),
            ("abc", None),
        ],
    )
    def test_parses_header(self, header, expected):
        assert extract_bearer(header) == expected


class TestSessionAuthenticator:
    def test_valid_session_token(self, authenticator, codec):
        token = issue_session_token(codec, subject="jarvis-web-user", ttl=timedelta(days=7))

        principal = authenticator.authenticate(f"Bearer {token}")

        assert principal == Principal(subject="jarvis-web-user", via=VIA_SESSION)

    def test_service_key(self, authenticator):
        principal = authenticator.authenticate(f"Bearer {TEST_SERVICE_KEY}")
        assert principal == Principal(subject="service", via=VIA_SERVICE_KEY)

    def test_service_key_disabled_when_empty(self, codec):
        authenticator = SessionAuthenticator(codec, service_api_key="")
        with pytest.raises(UnauthorizedError):
            authenticator.authenticate("Bearer ")

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer garbage"])
    def test_bad_header_is_unauthorized(self, authenticator, header):
        with pytest.raises(UnauthorizedError):
            authenticator.authenticate(header)

    def test_expired_token_is_unauthorized(self, authenticator, codec, clock):
        token = issue_session_token(codec, subject="jarvis-web-user", ttl=timedelta(days=7))
        clock.advance(days=7)

        with pytest.raises(UnauthorizedError):
            authenticator.authenticate(f"Bearer {token}")

    def test_token_valid_until_just_before_expiry(self, authenticator, codec, clock):
        token = issue_session_token(codec, subject="jarvis-web-user", ttl=timedelta(days=7))
        clock.advance(days=7, milliseconds=-1)

        assert authenticator.authenticate(f"Bearer {token}").subject == "jarvis-web-user"

    def test_token_from_other_secret_is_unauthorized(self, authenticator, clock):
        foreign = TokenCodec(
            secret=_OTHER_SECRET, audience=SESSION_AUDIENCE, issuer="jarvis-web", clock=clock
        )
        token = issue_session_token(foreign, subject="jarvis-web-user", ttl=timedelta(days=7))

        with pytest.raises(UnauthorizedError):
            authenticator.authenticate(f"Bearer {token}")

    def test_otp_token_is_not_a_session(self, authenticator, clock):
        otp = TokenCodec(
            secret=TEST_AUTH_SECRET, audience=OTP_AUDIENCE, issuer="jarvis-web", clock=clock
        )
        token = otp.sign({"jti": "n", "code": "x"}, timedelta(minutes=5))

        with pytest.raises(UnauthorizedError):
            authenticator.authenticate(f"Bearer {token}")

    def test_token_without_subject_is_unauthorized(self, authenticator, codec):
        token = codec.sign({"role": "admin"}, timedelta(days=7))

        with pytest.raises(UnauthorizedError):
            authenticator.authenticate(f"Bearer {token}")

    def test_failures_share_one_message(self, authenticator, codec, clock):
        expired = issue_session_token(codec, subject="x", ttl=timedelta(seconds=1))
        clock.advance(seconds=2)

        messages = set()
        for header in (None, "Bearer garbage", f"Bearer {expired}"):
            with pytest.raises(UnauthorizedError) as exc_info:
                authenticator.authenticate(header)
            messages.add(exc_info.value.message)

        assert messages == {"Authentication required"}
