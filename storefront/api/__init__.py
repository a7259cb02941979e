# storefront/api/__init__.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.api.deps import get_ticker
from storefront.api.routers import auth, cart, health, menu, orders
from storefront.services.backend_client import (
    AuthenticationRequired,
    BackendError,
    BackendUnavailable,
    NotFound,
    ValidationFailed,
)
from storefront.services.order_service import EmptyCartError
from storefront.utils.retry import CartConflictError
from storefront.utils.settings import TICKER_ENABLED
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def status_for(exc: BackendError) -> int:
    if isinstance(exc, AuthenticationRequired):
        return 401
    if isinstance(exc, ValidationFailed):
        return 422
    if isinstance(exc, NotFound):
        return 404
    if isinstance(exc, BackendUnavailable):
        return 503
    if exc.status_code is not None and 400 <= exc.status_code < 500:
        return exc.status_code
    return 502


async def backend_error_handler(request: Request, exc: BackendError):
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": exc.message, "error": exc.code, "errors": exc.errors},
    )


async def empty_cart_handler(request: Request, exc: EmptyCartError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "error": "empty_cart"})


async def cart_conflict_handler(request: Request, exc: CartConflictError):
    logger.error(f"Koszyk nie zapisany po ponownych probach: {exc}")
    return JSONResponse(status_code=409, content={"detail": str(exc), "error": "cart_conflict"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    ticker = get_ticker() if TICKER_ENABLED else None
    if ticker is not None:
        ticker.start()
    yield
    if ticker is not None:
        await ticker.stop()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Beverage Exchange Storefront",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(BackendError, backend_error_handler)
    app.add_exception_handler(EmptyCartError, empty_cart_handler)
    app.add_exception_handler(CartConflictError, cart_conflict_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(menu.router)
    app.include_router(cart.router)
    app.include_router(orders.router)

    return app
