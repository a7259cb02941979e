# storefront/domain/schemas.py
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Category(BaseModel):
    id: str
    name: str


class MenuItem(BaseModel):
    """Pozycja menu w takiej postaci, w jakiej zwraca ja backend cenowy.

    Liczby przychodza czasem jako stringi ("12.50") - pydantic zamienia je
    na Decimal tutaj, raz, na granicy API.
    """

    id: str
    name: str
    category: Category
    base_price: Decimal = Field(..., gt=0)
    coefficient: Decimal = Field(..., gt=0)
    final_price: Decimal | None = None
    is_active: bool = True

    @model_validator(mode="after")
    def fill_final_price(self) -> "MenuItem":
        # backend podal final_price -> ufamy mu, inaczej liczymy sami
        if self.final_price is None:
            self.final_price = self.base_price * self.coefficient
        return self


class MenuPage(BaseModel):
    items: List[MenuItem]
    total: int | None = None
    page: int | None = None
    page_size: int | None = None
    pages: int | None = None


class ChangeReason(str, Enum):
    ORDERED = "ordered"
    DECAYED = "decayed"
    MANUAL_UPDATE = "manual_update"
    CREATED = "created"


class CoefficientLog(BaseModel):
    id: str
    item_id: str
    timestamp: datetime
    previous_coefficient: Decimal
    new_coefficient: Decimal
    change_reason: ChangeReason
    menu_item: MenuItem

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # backend czasem oddaje czas bez strefy, traktujemy go jako UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class CartEntry(BaseModel):
    """Jedna pozycja koszyka, zapisywana jako {"menuItem": ..., "quantity": n}."""

    menu_item: MenuItem = Field(..., alias="menuItem")
    quantity: int = Field(..., gt=0)

    model_config = ConfigDict(populate_by_name=True)


class OrderStatus(str, Enum):
    RECEIVED = "received"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELED = "cancelled"


class OrderItemCreate(BaseModel):
    menu_item_id: str
    quantity: int = Field(..., gt=0)


class OrderCreate(BaseModel):
    items: List[OrderItemCreate]


class OrderSimple(BaseModel):
    id: str
    total_price: Decimal
    status: OrderStatus


class OrderItem(BaseModel):
    id: str
    order_id: str
    menu_item_id: str
    price_at_order: Decimal
    quantity: int


class Order(OrderSimple):
    items: List[OrderItem] = []


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class StockChange(BaseModel):
    id: str
    name: str
    current_price: Decimal
    price_change: Decimal
    percentage_change: Decimal
    open_price: Decimal
    high_price: Decimal
    low_price: Decimal


class PricePoint(BaseModel):
    timestamp: datetime
    coefficient: Decimal
    final_price: Decimal
    percentage_change: Decimal
    change_reason: ChangeReason


class TickerOut(BaseModel):
    items: List[StockChange]
    fetched_at: datetime | None = None


# ---- storefront request/response schemas ----


class CartItemIn(BaseModel):
    """Schema dla dodawania pozycji do koszyka."""

    menu_item_id: str = Field(..., min_length=1)
    quantity: int = Field(1, gt=0, description="Ilosc (musi byc > 0)")


class QuantityIn(BaseModel):
    """Ustawienie ilosci; 0 lub mniej usuwa pozycje."""

    quantity: int


class CartItemOut(BaseModel):
    menu_item: MenuItem
    quantity: int
    line_total: Decimal


class CartOut(BaseModel):
    items: List[CartItemOut]
    total_items: int
    total_price: Decimal


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    message: str = ""
    user_id: str
    is_admin: bool = False


class SessionOut(BaseModel):
    authenticated: bool
    email: str | None = None
    is_admin: bool = False
    logged_in_at: datetime | None = None
