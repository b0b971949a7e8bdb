"""Map storefront objects into flat ``event_attributes`` dicts.

Every builder is a pure function of its inputs: the same product, cart or
order always yields the same keys in the same order, with amounts rounded
to two decimals. Line items keep the order the host supplied them in.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from usermaven_commerce.models import Cart, CartItem, Order, OrderItem, Product
from usermaven_commerce.session import cart_fingerprint


def money(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), 2)


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


def product_attributes(product: Product) -> Dict[str, Any]:
    return _drop_none(
        {
            "product_id": product.id,
            "product_name": product.name,
            "sku": product.sku or None,
            "price": money(product.price),
            "regular_price": money(product.regular_price),
            "sale_price": money(product.sale_price),
            "on_sale": product.on_sale,
            "product_type": product.type,
            "parent_id": product.parent_id or None,
            "categories": list(product.categories) if product.categories else None,
        }
    )


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------


def cart_item_attributes(item: CartItem) -> Dict[str, Any]:
    return _drop_none(
        {
            "product_id": item.product.id,
            "product_name": item.product.name,
            "sku": item.product.sku or None,
            "price": money(item.product.price),
            "quantity": item.quantity,
            "variation_id": item.variation_id,
            "variation": dict(item.variation) if item.variation else None,
            "line_total": money(item.total),
        }
    )


def _cart_line(item: CartItem) -> Dict[str, Any]:
    return {
        "product_id": item.product.id,
        "product_name": item.product.name,
        "variation_id": item.variation_id,
        "quantity": item.quantity,
        "price": money(item.product.price),
        "line_total": money(item.total),
    }


def cart_attributes(cart: Cart, *, include_items: bool = True) -> Dict[str, Any]:
    attrs: Dict[str, Any] = {
        "total": money(cart.total),
        "subtotal": money(cart.subtotal),
        "discount_total": money(cart.discount_total),
        "shipping_total": money(cart.shipping_total),
        "tax_total": money(cart.tax_total),
        "currency": cart.currency,
        "items_count": cart.contents_count,
        "unique_items": len(cart.items),
        "coupons": list(cart.coupons),
        "cart_hash": cart_fingerprint(cart),
    }
    if include_items:
        attrs["items"] = [_cart_line(item) for item in cart.items]
    return attrs


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


def _order_line(item: OrderItem) -> Dict[str, Any]:
    return _drop_none(
        {
            "product_id": item.product_id,
            "product_name": item.name,
            "sku": item.sku or None,
            "variation_id": item.variation_id,
            "quantity": item.quantity,
            "line_total": money(item.total),
        }
    )


def order_attributes(order: Order, *, include_items: bool = True) -> Dict[str, Any]:
    attrs: Dict[str, Any] = {
        "order_id": order.id,
        "status": order.status,
        "total": money(order.total),
        "subtotal": money(order.items_subtotal),
        "tax_total": money(order.tax_total),
        "shipping_total": money(order.shipping_total),
        "discount_total": money(order.discount_total),
        "currency": order.currency,
        "payment_method": order.payment_method,
        "payment_method_title": order.payment_method_title,
        "shipping_method": order.shipping_method,
        "items_count": order.item_count,
        "coupons": list(order.coupons),
    }
    if order.billing_country:
        attrs["billing_country"] = order.billing_country
    if include_items:
        attrs["items"] = [_order_line(item) for item in order.items]
    return attrs


def refund_attributes(order: Order) -> Dict[str, Any]:
    refunded = sum(r.amount for r in order.refunds)
    attrs = order_attributes(order, include_items=False)
    attrs["refund_total"] = money(refunded)
    attrs["refunds"] = [
        {"refund_id": r.id, "amount": money(r.amount), "reason": r.reason}
        for r in order.refunds
    ]
    attrs["fully_refunded"] = refunded > 0 and money(refunded) >= money(order.total)
    return attrs

