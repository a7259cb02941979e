# storefront/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends

from storefront.api.deps import get_order_service
from storefront.domain.schemas import Order, OrderStatusUpdate
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=List[Order])
def list_orders(svc: OrderService = Depends(get_order_service)):
    """
    Lista zamowien (admin - uprawnienia sprawdza backend).
    """
    return svc.list_orders()


@router.get("/{order_id}", response_model=Order)
def get_order(order_id: str, svc: OrderService = Depends(get_order_service)):
    return svc.get_order(order_id)


@router.patch("/{order_id}/status", response_model=Order)
def update_status(
    order_id: str,
    payload: OrderStatusUpdate,
    svc: OrderService = Depends(get_order_service),
):
    return svc.update_status(order_id, payload.status)
