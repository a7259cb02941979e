# storefront/services/price_history.py
from decimal import Decimal
from typing import Iterable, List

from storefront.domain.schemas import CoefficientLog, MenuItem, PricePoint, StockChange
from storefront.services.backend_client import BackendClient
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ZERO = Decimal("0")


def sort_history(logs: Iterable[CoefficientLog]) -> List[CoefficientLog]:
    # sorted() jest stabilny - przy rownym timestamp zostaje kolejnosc z backendu
    return sorted(logs, key=lambda log: log.timestamp)


def entry_price(log: CoefficientLog) -> Decimal:
    # cena bazowa ze snapshotu w logu, nie z aktualnej pozycji menu
    return log.menu_item.base_price * log.new_coefficient


def percent_change(current: Decimal, previous: Decimal) -> Decimal:
    if previous <= 0:
        return ZERO
    return (current - previous) / previous * 100


def build_price_series(logs: Iterable[CoefficientLog]) -> List[PricePoint]:
    """Punkty wykresu historii ceny, od najstarszego."""
    points: List[PricePoint] = []
    previous: Decimal | None = None

    for log in sort_history(logs):
        price = entry_price(log)
        points.append(
            PricePoint(
                timestamp=log.timestamp,
                coefficient=log.new_coefficient,
                final_price=price,
                percentage_change=ZERO if previous is None else percent_change(price, previous),
                change_reason=log.change_reason,
            )
        )
        previous = price

    return points


def flat_change(item: MenuItem) -> StockChange:
    """Zerowa zmiana liczona z ostatniej znanej ceny pozycji."""
    price = item.final_price
    return StockChange(
        id=item.id,
        name=item.name,
        current_price=price,
        price_change=ZERO,
        percentage_change=ZERO,
        open_price=price,
        high_price=price,
        low_price=price,
    )


def summarize_item(item: MenuItem, logs: Iterable[CoefficientLog]) -> StockChange:
    """
    Podsumowanie do tickera / tabeli "gieldowej".

    Zmiana ceny tylko z dwoch najnowszych wpisow, open/high/low z calej historii.
    Mniej niz 2 wpisy -> zmiana 0, cena = final_price pozycji.
    """
    ordered = sort_history(logs)
    if len(ordered) < 2:
        return flat_change(item)

    prices = [entry_price(log) for log in ordered]
    current, previous = prices[-1], prices[-2]

    return StockChange(
        id=item.id,
        name=item.name,
        current_price=current,
        price_change=current - previous,
        percentage_change=percent_change(current, previous),
        open_price=prices[0],
        high_price=max(prices),
        low_price=min(prices),
    )


class PriceHistoryService:
    def __init__(self, client: BackendClient):
        self.client = client

    def price_series(self, item_id: str, public: bool = True) -> List[PricePoint]:
        logs = self.client.get_coefficient_history(item_id, public=public)
        return build_price_series(logs)

    def stock_changes(self, active_only: bool = True) -> List[StockChange]:
        items = self.client.list_menu()
        if active_only:
            items = [i for i in items if i.is_active]

        logger.info(f"Licze zmiany cen dla {len(items)} pozycji")
        changes: List[StockChange] = []

        for item in items:
            # blad jednej pozycji nie moze zatrzymac calej paczki
            try:
                logs = self.client.get_coefficient_history(item.id, public=True)
                changes.append(summarize_item(item, logs))
            except Exception as e:
                logger.warning(f"Historia pozycji {item.id} niedostepna, zerowa zmiana: {e}")
                changes.append(flat_change(item))

        changes.sort(key=lambda c: (c.name.casefold(), c.id))
        return changes
