# storefront/api/deps.py
from functools import lru_cache

import redis
from fastapi import Depends

from storefront.repos.cart_repo import MemoryCartRepo, RedisCartRepo
from storefront.repos.session_repo import MemorySessionRepo, RedisSessionRepo
from storefront.services.backend_client import BackendClient
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService
from storefront.services.price_history import PriceHistoryService
from storefront.services.session_service import SessionService
from storefront.services.ticker import PriceTicker
from storefront.utils.settings import CART_STORAGE_KEY, REDIS_URL


@lru_cache
def get_redis() -> redis.Redis | None:
    if not REDIS_URL:
        return None
    return redis.Redis.from_url(REDIS_URL, decode_responses=True)


@lru_cache
def get_cart_repo():
    client = get_redis()
    if client is None:
        return MemoryCartRepo(CART_STORAGE_KEY)
    return RedisCartRepo(client, CART_STORAGE_KEY)


@lru_cache
def get_session_repo():
    client = get_redis()
    if client is None:
        return MemorySessionRepo()
    return RedisSessionRepo(client)


@lru_cache
def get_backend_client() -> BackendClient:
    return BackendClient(session_repo=get_session_repo())


@lru_cache
def get_ticker() -> PriceTicker:
    history = PriceHistoryService(get_backend_client())
    return PriceTicker(history.stock_changes)


def get_cart_service(repo=Depends(get_cart_repo)) -> CartService:
    #koszyk czytany ze storage przy kazdym zapytaniu
    return CartService(repo)


def get_order_service(
    client: BackendClient = Depends(get_backend_client),
    cart: CartService = Depends(get_cart_service),
) -> OrderService:
    return OrderService(client, cart)


def get_price_history_service(
    client: BackendClient = Depends(get_backend_client),
) -> PriceHistoryService:
    return PriceHistoryService(client)


def get_session_service(
    client: BackendClient = Depends(get_backend_client),
    repo=Depends(get_session_repo),
) -> SessionService:
    return SessionService(client, repo)
