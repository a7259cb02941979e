# storefront/services/cart_service.py
import threading
from decimal import Decimal
from typing import Any, Callable, Dict, List

from pydantic import TypeAdapter, ValidationError

from storefront.domain.schemas import CartEntry, MenuItem, OrderItemCreate
from storefront.utils.retry import CartConflictError, conflict_retry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_entries_adapter = TypeAdapter(List[CartEntry])

Mutation = Callable[[Dict[str, CartEntry]], bool]


class CartService:
    """
    Koszyk klienta, cqrs jak w serwisie koszyka
    commands (add, remove, update_quantity, clear) modyfikuja stan i od razu zapisuja caly koszyk
    query (get_cart, total_items, total_price, to_order_payload) tylko odczyt

    Zapis z wersja (optimistic locking): jesli ktos inny zapisal koszyk w miedzyczasie
    przeladowujemy go i nakladamy ta sama zmiane jeszcze raz.
    """

    def __init__(self, repo):
        self.repo = repo
        self._lock = threading.RLock()
        self._entries: Dict[str, CartEntry] = {}
        self._version = 0
        self._reload()

    def _reload(self) -> None:
        version, raw = self.repo.load()
        self._version = version
        self._entries = self._deserialize(raw)

    @staticmethod
    def _deserialize(raw: str | bytes | None) -> Dict[str, CartEntry]:
        if not raw:
            return {}

        try:
            loaded = _entries_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Zapisany koszyk jest uszkodzony ({e.error_count()} bledow), zaczynam od pustego")
            return {}

        entries: Dict[str, CartEntry] = {}
        for entry in loaded:
            existing = entries.get(entry.menu_item.id)
            if existing:
                existing.quantity += entry.quantity
            else:
                entries[entry.menu_item.id] = entry
        return entries

    @staticmethod
    def _serialize(entries: Dict[str, CartEntry]) -> str:
        return _entries_adapter.dump_json(list(entries.values()), by_alias=True).decode()

    @conflict_retry()
    def _commit(self, mutation: Mutation) -> None:
        with self._lock:
            entries = {k: v.model_copy() for k, v in self._entries.items()}
            if not mutation(entries):
                return

            new_version = self.repo.save(self._serialize(entries), self._version)
            if new_version is None:
                self._reload()
                raise CartConflictError("Koszyk zostal zmieniony przez inna karte/proces")

            self._entries = entries
            self._version = new_version

    #commands
    def add_item(self, item: MenuItem, quantity: int = 1) -> None:
        if quantity <= 0:
            raise ValueError("Ilosc musi byc wieksza niz 0")

        def mutation(entries: Dict[str, CartEntry]) -> bool:
            existing = entries.get(item.id)
            if existing:
                logger.info(
                    f"Pozycja {item.id} juz jest w koszyku, zwiekszam ilosc "
                    f"z {existing.quantity} do {existing.quantity + quantity}"
                )
                existing.quantity += quantity
                existing.menu_item = item  # aktualizacja ceny
            else:
                logger.info(f"Dodaje pozycje {item.id} do koszyka")
                entries[item.id] = CartEntry(menu_item=item, quantity=quantity)
            return True

        self._commit(mutation)

    def remove_item(self, item_id: str) -> None:
        def mutation(entries: Dict[str, CartEntry]) -> bool:
            if entries.pop(item_id, None) is None:
                return False
            logger.info(f"Usunieto pozycje {item_id} z koszyka")
            return True

        self._commit(mutation)

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_item(item_id)
            return

        def mutation(entries: Dict[str, CartEntry]) -> bool:
            entry = entries.get(item_id)
            if entry is None or entry.quantity == quantity:
                return False
            entry.quantity = quantity
            return True

        self._commit(mutation)

    def clear_cart(self) -> None:
        def mutation(entries: Dict[str, CartEntry]) -> bool:
            entries.clear()
            return True

        self._commit(mutation)
        logger.info("Koszyk wyczyszczony")

    def remove_ordered(self, lines: List[OrderItemCreate], ordered_version: int) -> None:
        """
        Zdejmuje z koszyka to, co poszlo w zamowieniu.
        Koszyk bez zmian od zlozenia zamowienia -> jeden zapis pustego koszyka.
        Ktos go zmienil w miedzyczasie -> odejmujemy tylko zamowione ilosci.
        """
        with self._lock:
            if self._version == ordered_version:
                new_version = self.repo.save(self._serialize({}), ordered_version)
                if new_version is not None:
                    self._entries = {}
                    self._version = new_version
                    logger.info("Koszyk wyczyszczony po zamowieniu")
                    return
                self._reload()

        logger.info(f"Koszyk zmieniony w trakcie zamowienia (wersja {ordered_version}), odejmuje zamowione pozycje")

        def mutation(entries: Dict[str, CartEntry]) -> bool:
            changed = False
            for line in lines:
                entry = entries.get(line.menu_item_id)
                if entry is None:
                    continue
                if entry.quantity > line.quantity:
                    entry.quantity -= line.quantity
                else:
                    del entries[line.menu_item_id]
                changed = True
            return changed

        self._commit(mutation)

    #query - odczyt
    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    @property
    def entries(self) -> List[CartEntry]:
        with self._lock:
            return list(self._entries.values())

    @property
    def total_items(self) -> int:
        return sum(e.quantity for e in self.entries)

    @property
    def total_price(self) -> Decimal:
        return sum((e.menu_item.final_price * e.quantity for e in self.entries), Decimal("0.00"))

    def is_empty(self) -> bool:
        return not self.entries

    def to_order_payload(self) -> List[OrderItemCreate]:
        return [
            OrderItemCreate(menu_item_id=e.menu_item.id, quantity=e.quantity)
            for e in self.entries
        ]

    def get_cart(self) -> Dict[str, Any]:
        entries = self.entries
        return {
            "items": [
                {
                    "menu_item": e.menu_item,
                    "quantity": e.quantity,
                    "line_total": e.menu_item.final_price * e.quantity,
                }
                for e in entries
            ],
            "total_items": sum(e.quantity for e in entries),
            "total_price": sum((e.menu_item.final_price * e.quantity for e in entries), Decimal("0.00")),
        }
