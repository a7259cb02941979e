# storefront/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import redis

from storefront.utils.settings import CART_CONFLICT_ATTEMPTS


class CartConflictError(RuntimeError):
    """Ktos inny zapisal koszyk miedzy naszym odczytem a zapisem."""


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )


def conflict_retry():
    #bez czekania - po konflikcie od razu przeladowujemy koszyk i probujemy jeszcze raz
    return retry(
        reraise=True,
        stop=stop_after_attempt(CART_CONFLICT_ATTEMPTS),
        retry=retry_if_exception_type(CartConflictError),
    )
