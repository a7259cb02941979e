# storefront/api/routers/cart.py
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import get_backend_client, get_cart_service, get_order_service
from storefront.domain.schemas import CartItemIn, CartOut, OrderSimple, QuantityIn
from storefront.services.backend_client import BackendClient
from storefront.services.cart_service import CartService
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartOut)
def get_cart(svc: CartService = Depends(get_cart_service)):
    return svc.get_cart()


@router.post("/items", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    svc: CartService = Depends(get_cart_service),
    client: BackendClient = Depends(get_backend_client),
):
    #walidacja pozycji po naszej stronie, sam koszyk przyjmie wszystko
    item = client.get_menu_item(payload.menu_item_id)
    if not item.is_active:
        raise HTTPException(status_code=400, detail=f"Pozycja {item.name} jest niedostepna")

    svc.add_item(item, payload.quantity)
    return svc.get_cart()


@router.patch("/items/{item_id}", response_model=CartOut)
def update_quantity(
    item_id: str,
    payload: QuantityIn,
    svc: CartService = Depends(get_cart_service),
):
    svc.update_quantity(item_id, payload.quantity)
    return svc.get_cart()


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(item_id: str, svc: CartService = Depends(get_cart_service)):
    svc.remove_item(item_id)
    return svc.get_cart()


@router.delete("", response_model=CartOut)
def clear_cart(svc: CartService = Depends(get_cart_service)):
    svc.clear_cart()
    return svc.get_cart()


@router.post("/checkout", response_model=OrderSimple, status_code=201)
def checkout(svc: OrderService = Depends(get_order_service)):
    """
    Sklada zamowienie z koszyka.
    Koszyk czyszczony tylko gdy backend utworzyl zamowienie.
    """
    return svc.checkout()
