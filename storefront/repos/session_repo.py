# storefront/repos/session_repo.py
import redis

from storefront.utils.retry import redis_retry

EMAIL_KEY = "userEmail"
TIMESTAMP_KEY = "authTimestamp"
ADMIN_KEY = "isAdmin"

_KEYS = (EMAIL_KEY, TIMESTAMP_KEY, ADMIN_KEY)


class RedisSessionRepo:
    """Znaczniki zalogowania: email, czas logowania (ms) i flaga admina z serwera."""

    def __init__(self, client: redis.Redis):
        self.redis = client

    @redis_retry()
    def get_markers(self) -> dict:
        values = self.redis.mget(*_KEYS)
        return {k: v for k, v in zip(_KEYS, values) if v is not None}

    @redis_retry()
    def set_markers(self, email: str, timestamp_ms: int, is_admin: bool) -> None:
        self.redis.mset({
            EMAIL_KEY: email,
            TIMESTAMP_KEY: str(timestamp_ms),
            ADMIN_KEY: "1" if is_admin else "0",
        })

    @redis_retry()
    def clear(self) -> None:
        self.redis.delete(*_KEYS)


class MemorySessionRepo:
    def __init__(self):
        self._values: dict[str, str] = {}

    def get_markers(self) -> dict:
        return dict(self._values)

    def set_markers(self, email: str, timestamp_ms: int, is_admin: bool) -> None:
        self._values = {
            EMAIL_KEY: email,
            TIMESTAMP_KEY: str(timestamp_ms),
            ADMIN_KEY: "1" if is_admin else "0",
        }

    def clear(self) -> None:
        self._values = {}
