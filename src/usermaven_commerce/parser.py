"""Parse WooCommerce REST / webhook JSON into storefront models.

Understands the order, customer and product resources of the WooCommerce
REST API (``wc/v3``), which is also the payload format of its webhooks.
Amounts arrive as decimal strings and are converted to floats.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from usermaven_commerce.events import EventType
from usermaven_commerce.models import Order, OrderItem, Product, Refund, SiteUser


def _float(value: Any, default: float = 0.0) -> float:
    if value in (None, ""):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int = 0) -> int:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


class WooCommerceParser:
    """Turn WooCommerce resources into models and webhook topics into events."""

    # ------------------------------------------------------------------ #
    # Classify webhook topic → event type
    # ------------------------------------------------------------------ #

    _ORDER_STATUS_EVENTS = {
        "completed": EventType.ORDER_COMPLETED,
        "cancelled": EventType.ORDER_CANCELLED,
        "refunded": EventType.ORDER_REFUNDED,
        "failed": EventType.ORDER_FAILED,
    }

    _TOPIC_EVENTS = {
        "order.created": EventType.ORDER_PLACED,
        "customer.created": EventType.USER_REGISTERED,
        "customer.updated": EventType.PROFILE_UPDATED,
    }

    @classmethod
    def classify(cls, topic: str, body: Optional[dict] = None) -> Optional[EventType]:
        """Map a webhook topic (``X-WC-Webhook-Topic``) to an event type.

        Returns None for topics we do not forward (deletions, coupons,
        product edits and the like).
        """
        t = (topic or "").strip().lower()

        if t in cls._TOPIC_EVENTS:
            return cls._TOPIC_EVENTS[t]

        if t == "order.updated":
            status = _dict(body).get("status", "")
            return cls._ORDER_STATUS_EVENTS.get(status, EventType.ORDER_STATUS_CHANGED)

        return None

    # ------------------------------------------------------------------ #
    # Resources
    # ------------------------------------------------------------------ #

    @classmethod
    def parse_order(cls, body: dict) -> Order:
        body = _dict(body)
        billing = _dict(body.get("billing"))

        items = []
        for line in _list(body.get("line_items")):
            if not isinstance(line, dict):
                continue
            items.append(
                OrderItem(
                    product_id=_int(line.get("product_id")),
                    name=str(line.get("name") or ""),
                    quantity=_int(line.get("quantity"), 1),
                    total=_float(line.get("total")),
                    variation_id=_int(line.get("variation_id")),
                    sku=str(line.get("sku") or ""),
                )
            )

        coupons = [
            str(c.get("code"))
            for c in _list(body.get("coupon_lines"))
            if isinstance(c, dict) and c.get("code")
        ]

        refunds = [
            # WooCommerce reports refund totals as negative strings.
            Refund(
                id=_int(r.get("id")),
                amount=abs(_float(r.get("total"))),
                reason=str(r.get("reason") or ""),
            )
            for r in _list(body.get("refunds"))
            if isinstance(r, dict)
        ]

        shipping_lines = [
            s for s in _list(body.get("shipping_lines")) if isinstance(s, dict)
        ]
        shipping_method = ""
        if shipping_lines:
            shipping_method = str(
                shipping_lines[0].get("method_title")
                or shipping_lines[0].get("method_id")
                or ""
            )

        subtotal = None
        if items:
            subtotal = sum(
                _float(line.get("subtotal"), _float(line.get("total")))
                for line in _list(body.get("line_items"))
                if isinstance(line, dict)
            )

        return Order(
            id=_int(body.get("id")),
            status=str(body.get("status") or "pending"),
            currency=str(body.get("currency") or "USD"),
            total=_float(body.get("total")),
            subtotal=subtotal,
            tax_total=_float(body.get("total_tax")),
            shipping_total=_float(body.get("shipping_total")),
            discount_total=_float(body.get("discount_total")),
            payment_method=str(body.get("payment_method") or ""),
            payment_method_title=str(body.get("payment_method_title") or ""),
            items=items,
            coupons=coupons,
            refunds=refunds,
            customer_id=_int(body.get("customer_id")),
            billing_email=str(billing.get("email") or ""),
            billing_first_name=str(billing.get("first_name") or ""),
            billing_last_name=str(billing.get("last_name") or ""),
            billing_country=str(billing.get("country") or ""),
            shipping_method=shipping_method,
            created_at=str(body.get("date_created_gmt") or body.get("date_created") or ""),
        )

    @classmethod
    def parse_customer(cls, body: dict) -> SiteUser:
        body = _dict(body)
        role = body.get("role")
        return SiteUser(
            id=_int(body.get("id")),
            email=str(body.get("email") or ""),
            username=str(body.get("username") or ""),
            first_name=str(body.get("first_name") or ""),
            last_name=str(body.get("last_name") or ""),
            registered_at=str(
                body.get("date_created_gmt") or body.get("date_created") or ""
            ),
            roles=[str(role)] if role else [],
        )

    @classmethod
    def parse_product(cls, body: dict) -> Product:
        body = _dict(body)
        regular = body.get("regular_price")
        sale = body.get("sale_price")
        categories = [
            str(c.get("name"))
            for c in _list(body.get("categories"))
            if isinstance(c, dict) and c.get("name")
        ]
        return Product(
            id=_int(body.get("id")),
            name=str(body.get("name") or ""),
            price=_float(body.get("price")),
            sku=str(body.get("sku") or ""),
            regular_price=_float(regular) if regular not in (None, "") else None,
            sale_price=_float(sale) if sale not in (None, "") else None,
            categories=categories,
            type=str(body.get("type") or "simple"),
            parent_id=_int(body.get("parent_id")),
        )
