"""Google Calendar access tokens.

Clinicians connect their calendar through Google's browser-redirect OAuth
flow (implicit grant). The resulting short-lived bearer token is handed to
the API and cached per clinician with its expiry. Nothing here refreshes a
token against Google: once it expires, ``get_access_token`` returns None and
calendar sync is skipped until the clinician reconnects.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import cast
from urllib.parse import parse_qs, urlencode

import redis
from structlog import get_logger

from medilink.config import Settings

logger = get_logger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"


def build_authorization_url(
    client_id: str,
    redirect_uri: str,
    scope: str,
    state: str | None = None,
) -> str:
    """Build the consent URL that redirects back with a token in the fragment."""
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "token",
        "scope": scope,
        "prompt": "consent",
    }
    if state:
        params["state"] = state
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


def parse_redirect_fragment(fragment: str) -> tuple[str, int] | None:
    """
    Extract ``(access_token, expires_in)`` from an OAuth redirect fragment.

    Accepts the fragment with or without the leading ``#``. Returns None
    when no access token is present.
    """
    params = parse_qs(fragment.lstrip("#"))
    access_token = params.get("access_token", [None])[0]
    if not access_token:
        return None

    try:
        expires_in = int(params.get("expires_in", ["3600"])[0])
    except ValueError:
        expires_in = 3600
    return access_token, expires_in


class CalendarTokenProvider(ABC):
    """Per-clinician cache of calendar bearer tokens with an expiry check."""

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize provider with a clock returning epoch seconds."""
        self.clock = clock

    @abstractmethod
    def _load(self, user_id: str) -> tuple[str, float] | None:
        """Return the stored ``(token, expires_at)`` pair, if any."""

    @abstractmethod
    def _save(self, user_id: str, access_token: str, expires_at: float, ttl: int) -> None:
        """Persist a token with its absolute expiry."""

    @abstractmethod
    def clear(self, user_id: str) -> None:
        """Forget the clinician's token."""

    def store_token(self, user_id: str, access_token: str, expires_in: int) -> None:
        """Cache a freshly obtained token valid for ``expires_in`` seconds."""
        ttl = max(int(expires_in), 1)
        self._save(user_id, access_token, self.clock() + ttl, ttl)
        logger.info("calendar_token_stored", user_id=user_id, expires_in=ttl)

    def get_access_token(self, user_id: str) -> str | None:
        """Return a still-valid token, discarding it once expired."""
        stored = self._load(user_id)
        if stored is None:
            return None

        access_token, expires_at = stored
        if self.clock() < expires_at:
            return access_token

        self.clear(user_id)
        logger.info("calendar_token_expired", user_id=user_id)
        return self.refresh(user_id)

    def refresh(self, user_id: str) -> str | None:
        """Obtain a new token without user interaction. Not supported by the implicit grant."""
        return None

    def is_connected(self, user_id: str) -> bool:
        return self.get_access_token(user_id) is not None

    def expires_at(self, user_id: str) -> float | None:
        stored = self._load(user_id)
        return stored[1] if stored else None


class InMemoryCalendarTokenProvider(CalendarTokenProvider):
    """Process-local token cache, for single-worker deployments and tests."""

    def __init__(self, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self._tokens: dict[str, tuple[str, float]] = {}

    def _load(self, user_id: str) -> tuple[str, float] | None:
        return self._tokens.get(user_id)

    def _save(self, user_id: str, access_token: str, expires_at: float, ttl: int) -> None:
        self._tokens[user_id] = (access_token, expires_at)

    def clear(self, user_id: str) -> None:
        self._tokens.pop(user_id, None)


class RedisCalendarTokenProvider(CalendarTokenProvider):
    """Token cache stored as a Redis hash per clinician, expiring with the token."""

    KEY_PREFIX = "calendar_token:"

    def __init__(self, redis_client: redis.Redis, clock: Callable[[], float] = time.time):
        """Initialize provider with Redis client."""
        super().__init__(clock)
        self.redis = redis_client

    @classmethod
    def _key(cls, user_id: str) -> str:
        return f"{cls.KEY_PREFIX}{user_id}"

    def _load(self, user_id: str) -> tuple[str, float] | None:
        values = cast(dict, self.redis.hgetall(self._key(user_id)))
        if not values:
            return None

        access_token = values.get("access_token")
        expires_at = values.get("expires_at")
        if isinstance(access_token, bytes):
            access_token = access_token.decode()
        if not access_token or expires_at is None:
            return None
        return access_token, float(expires_at)

    def _save(self, user_id: str, access_token: str, expires_at: float, ttl: int) -> None:
        key = self._key(user_id)
        pipe = self.redis.pipeline()
        pipe.hset(key, mapping={"access_token": access_token, "expires_at": str(expires_at)})
        pipe.expire(key, ttl)
        pipe.execute()

    def clear(self, user_id: str) -> None:
        self.redis.delete(self._key(user_id))


_redis_client: redis.Redis | None = None


def get_redis_client(settings: Settings) -> redis.Redis:
    """Get or create the shared Redis client."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


def close_redis_client() -> None:
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


def check_redis_connection(settings: Settings) -> bool:
    """Check if Redis answers a ping."""
    try:
        return bool(get_redis_client(settings).ping())
    except redis.RedisError:
        return False


def create_token_provider(settings: Settings) -> CalendarTokenProvider:
    """Build the token provider selected by CALENDAR_TOKEN_BACKEND."""
    if settings.calendar_token_backend == "memory":
        return InMemoryCalendarTokenProvider()
    return RedisCalendarTokenProvider(get_redis_client(settings))
