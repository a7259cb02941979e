# storefront/repos/cart_repo.py
import threading
import uuid

import redis

from storefront.utils.retry import redis_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj wersje i zapisz, atomicity
#KEYS[1] - koszyk, KEYS[2] - wersja, KEYS[3] - token ostatniego zapisu
#ARGV: oczekiwana wersja, payload, nowa wersja, token zapisu
#ten sam token przy nowej wersji = nasz zapis juz przeszedl (zgubiona odpowiedz), zwracamy sukces
_SAVE_LUA = """
local current = redis.call('GET', KEYS[2]) or '0'
if current == ARGV[3] and redis.call('GET', KEYS[3]) == ARGV[4] then
    return 1
end
if current == ARGV[1] then
    redis.call('SET', KEYS[1], ARGV[2])
    redis.call('SET', KEYS[2], ARGV[3])
    redis.call('SET', KEYS[3], ARGV[4])
    return 1
end
return 0
"""


class RedisCartRepo:
    """
    -trzyma zserializowany koszyk pod stalym kluczem
    -obok licznik wersji (optimistic locking) i token ostatniego zapisu
    -zapis tylko gdy wersja sie zgadza, sprawdzenie + SET atomowo w lua
    -ponowienie zapisu po bledzie polaczenia idzie z tym samym tokenem, wiec jest idempotentne
    """

    def __init__(self, client: redis.Redis, key: str):
        self.redis = client
        self.key = key
        self.version_key = f"{key}:version"
        self.token_key = f"{key}:token"

    @redis_retry()
    def load(self) -> tuple[int, str | None]:
        raw, version = self.redis.mget(self.key, self.version_key)
        return int(version or 0), raw

    def save(self, raw: str, expected_version: int) -> int | None:
        return self._save(raw, expected_version, uuid.uuid4().hex)

    @redis_retry()
    def _save(self, raw: str, expected_version: int, token: str) -> int | None:
        new_version = expected_version + 1
        res = self.redis.eval(
            _SAVE_LUA,
            3,
            self.key,
            self.version_key,
            self.token_key,
            str(expected_version),
            raw,
            str(new_version),
            token,
        )
        if not res:
            logger.info(f"Konflikt wersji koszyka {self.key}, oczekiwano {expected_version}")
            return None
        return new_version


class MemoryCartRepo:
    """Ten sam kontrakt co RedisCartRepo, ale w pamieci jednego procesu."""

    def __init__(self, key: str = "beverages_cart"):
        self.key = key
        self._raw: str | None = None
        self._version = 0
        self._lock = threading.Lock()

    def load(self) -> tuple[int, str | None]:
        with self._lock:
            return self._version, self._raw

    def save(self, raw: str, expected_version: int) -> int | None:
        with self._lock:
            if self._version != expected_version:
                return None
            self._raw = raw
            self._version += 1
            return self._version
