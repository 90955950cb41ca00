"""OTP delivery via the Telegram Bot API.

Simple HTTP POST to sendMessage. Best effort: no retry, and every failure
is reported as False so the issuer can refuse to hand out a token.
"""

import logging
from typing import Protocol

import httpx

from jarvis_web.core.config import settings

logger = logging.getLogger(__name__)

_TELEGRAM_API_URL = "https://api.telegram.org"
_TELEGRAM_TIMEOUT = 10.0


class OTPDeliveryChannel(Protocol):
    """Out-of-band channel that carries the code to the user."""

    async def send(self, code: str) -> bool: ...


class TelegramDelivery:
    """Send codes to a single Telegram chat through a bot.

    Args:
        bot_token: Bot API token. Empty means unconfigured.
        chat_id: Target chat.
        ttl_minutes: Code lifetime quoted in the message.
    """

    def __init__(self, *, bot_token: str, chat_id: str, ttl_minutes: int) -> None:
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._ttl_minutes = ttl_minutes

    @classmethod
    def from_settings(cls) -> "TelegramDelivery":
        return cls(
            bot_token=settings.telegram_bot_token.get_secret_value(),
            chat_id=settings.telegram_chat_id,
            ttl_minutes=max(1, settings.otp_ttl_seconds // 60),
        )

    def _message(self, code: str) -> str:
        return (
            "Jarvis web login\n\n"
            f"Code: {code}\n\n"
            f"Expires in {self._ttl_minutes} minutes."
        )

    async def send(self, code: str) -> bool:
        """Post the code to the configured chat.

        Returns:
            True if Telegram accepted the message, False otherwise.
        """
        if not self._bot_token or not self._chat_id:
            logger.warning("Telegram delivery not configured")
            return False

        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    f"{_TELEGRAM_API_URL}/bot{self._bot_token}/sendMessage",
                    json={"chat_id": self._chat_id, "text": self._message(code)},
                    timeout=_TELEGRAM_TIMEOUT,
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            # The bot token is part of the URL; log the type only.
            logger.warning("Failed to send OTP via Telegram: %s", type(exc).__name__)
            return False
        return True
