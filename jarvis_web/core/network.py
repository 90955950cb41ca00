"""Client address resolution.

The address is only a lockout key, not a security boundary: anyone can
send their own X-Forwarded-For when the app is reachable without a proxy.
"""

from starlette.requests import Request

from jarvis_web.core.config import settings

UNKNOWN_CLIENT = "unknown"


def get_client_ip(request: Request, *, trust_forwarded_for: bool | None = None) -> str:
    """Return the client address for a request.

    Uses the first (client-most) X-Forwarded-For entry when forwarded
    headers are trusted, else the socket peer.

    Args:
        request: Incoming request.
        trust_forwarded_for: Override for settings.trust_forwarded_for.

    Returns:
        Address string, or "unknown" when neither source is available.
    """
    if trust_forwarded_for is None:
        trust_forwarded_for = settings.trust_forwarded_for

    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT
