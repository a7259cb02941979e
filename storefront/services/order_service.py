# storefront/services/order_service.py
from typing import List

from storefront.domain.schemas import Order, OrderCreate, OrderSimple, OrderStatus
from storefront.services.backend_client import BackendClient, BackendError
from storefront.services.cart_service import CartService
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class EmptyCartError(ValueError):
    pass


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien.
    Separacja od CartService - koszyk nie wie nic o backendzie.
    """

    def __init__(self, client: BackendClient, cart: CartService):
        self.client = client
        self.cart = cart

    def checkout(self) -> OrderSimple:
        """
        Use Case: Zlozenie zamowienia z koszyka.

        1. Sprawdza, czy koszyk nie jest pusty
        2. Buduje payload z pozycji koszyka
        3. Wysyla POST /order
        4. Dopiero po sukcesie zdejmuje z koszyka zamowione pozycje
           (zmiany z innej karty w trakcie zamowienia zostaja)

        Blad backendu leci dalej bez zmian, koszyk zostaje nietkniety.
        """
        if self.cart.is_empty():
            raise EmptyCartError("Nie mozna zlozyc zamowienia z pustego koszyka")

        ordered_version = self.cart.version
        payload = OrderCreate(items=self.cart.to_order_payload())
        logger.info(f"Skladam zamowienie z {len(payload.items)} pozycji")

        try:
            order = self.client.create_order(payload)
        except BackendError as e:
            logger.warning(f"Zamowienie nieudane, koszyk bez zmian: {e}")
            raise

        self.cart.remove_ordered(payload.items, ordered_version)
        logger.info(f"Zamowienie {order.id} utworzone, status {order.status.value}")
        return order

    def get_order(self, order_id: str) -> Order:
        """
        Use Case: Pobranie zamowienia (Query).
        """
        return self.client.get_order(order_id)

    def list_orders(self) -> List[Order]:
        return self.client.list_orders()

    def update_status(self, order_id: str, status: OrderStatus) -> Order:
        order = self.client.update_order_status(order_id, status)
        logger.info(f"Zamowienie {order_id} -> {status.value}")
        return order
