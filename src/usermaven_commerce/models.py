"""Storefront state handed over by the host platform.

These mirror the WooCommerce objects a store exposes at its lifecycle
points. The library only reads them; the host owns their persistence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

from usermaven_commerce.events import RequestContext


@dataclass
class Product:
    id: int
    name: str
    price: float = 0.0
    sku: str = ""
    regular_price: Optional[float] = None
    sale_price: Optional[float] = None
    categories: List[str] = field(default_factory=list)
    type: str = "simple"
    parent_id: int = 0

    @property
    def on_sale(self) -> bool:
        return self.sale_price is not None and self.sale_price < (
            self.regular_price if self.regular_price is not None else self.price
        )


@dataclass
class CartItem:
    key: str
    product: Product
    quantity: int = 1
    variation_id: int = 0
    variation: Dict[str, str] = field(default_factory=dict)
    line_total: Optional[float] = None

    @property
    def total(self) -> float:
        if self.line_total is not None:
            return self.line_total
        return self.product.price * self.quantity


@dataclass
class Cart:
    items: List[CartItem] = field(default_factory=list)
    currency: str = "USD"
    coupons: List[str] = field(default_factory=list)
    discount_total: float = 0.0
    shipping_total: float = 0.0
    tax_total: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def contents_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> float:
        return sum(item.total for item in self.items)

    @property
    def total(self) -> float:
        return (
            self.subtotal - self.discount_total + self.shipping_total + self.tax_total
        )

    def get_item(self, key: str) -> Optional[CartItem]:
        for item in self.items:
            if item.key == key:
                return item
        return None


@dataclass
class OrderItem:
    product_id: int
    name: str
    quantity: int = 1
    total: float = 0.0
    variation_id: int = 0
    sku: str = ""


@dataclass
class Refund:
    id: int
    amount: float
    reason: str = ""


@dataclass
class Order:
    id: int
    status: str = "pending"
    currency: str = "USD"
    total: float = 0.0
    subtotal: Optional[float] = None
    tax_total: float = 0.0
    shipping_total: float = 0.0
    discount_total: float = 0.0
    payment_method: str = ""
    payment_method_title: str = ""
    items: List[OrderItem] = field(default_factory=list)
    coupons: List[str] = field(default_factory=list)
    refunds: List[Refund] = field(default_factory=list)
    customer_id: int = 0
    billing_email: str = ""
    billing_first_name: str = ""
    billing_last_name: str = ""
    billing_country: str = ""
    shipping_method: str = ""
    created_at: str = ""

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def items_subtotal(self) -> float:
        if self.subtotal is not None:
            return self.subtotal
        return sum(item.total for item in self.items)


@dataclass
class SiteUser:
    """A registered site user. ``id == 0`` means nobody is logged in."""

    id: int
    email: str = ""
    username: str = ""
    first_name: str = ""
    last_name: str = ""
    registered_at: str = ""
    roles: List[str] = field(default_factory=list)

    @property
    def is_logged_in(self) -> bool:
        return self.id != 0


@dataclass
class Visit:
    """Per-request host state: session store, cookies, user and headers."""

    session: MutableMapping[str, Any] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    user: Optional[SiteUser] = None
    context: RequestContext = field(default_factory=RequestContext)
