# storefront/api/routers/menu.py
from typing import List

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import get_backend_client, get_price_history_service, get_ticker
from storefront.domain.schemas import MenuItem, PricePoint, TickerOut
from storefront.services.backend_client import BackendClient
from storefront.services.price_history import PriceHistoryService
from storefront.services.ticker import PriceTicker

router = APIRouter(tags=["menu"])


@router.get("/menu", response_model=List[MenuItem])
def list_menu(
    include_inactive: bool = Query(False),
    client: BackendClient = Depends(get_backend_client),
):
    items = client.list_menu()
    if include_inactive:
        return items
    return [i for i in items if i.is_active]


@router.get("/menu/{item_id}/history", response_model=List[PricePoint])
def price_history(
    item_id: str,
    public: bool = Query(True),
    svc: PriceHistoryService = Depends(get_price_history_service),
):
    return svc.price_series(item_id, public=public)


@router.get("/ticker", response_model=TickerOut)
async def stock_ticker(ticker: PriceTicker = Depends(get_ticker)):
    """
    Ostatnie policzone zmiany cen.
    Bez petli w tle liczymy przy kazdym zapytaniu.
    """
    return await ticker.latest()
