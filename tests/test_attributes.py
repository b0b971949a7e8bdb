"""Tests for event attribute builders."""

import json

from usermaven_commerce.attributes import (
    cart_attributes,
    cart_item_attributes,
    order_attributes,
    product_attributes,
    refund_attributes,
)
from usermaven_commerce.models import Cart, CartItem, Order, Product, Refund


class TestProductAttributes:
    def test_basic(self, roses):
        assert product_attributes(roses) == {
            "product_id": 11,
            "product_name": "Red Roses",
            "sku": "RR-01",
            "price": 29.99,
            "on_sale": False,
            "product_type": "simple",
            "categories": ["Flowers"],
        }

    def test_sale_and_variation_parent(self):
        product = Product(
            id=21,
            name="Roses - Large",
            price=24.0,
            regular_price=30.0,
            sale_price=24.0,
            type="variation",
            parent_id=11,
        )
        attrs = product_attributes(product)

        assert attrs["on_sale"] is True
        assert attrs["regular_price"] == 30.0
        assert attrs["sale_price"] == 24.0
        assert attrs["parent_id"] == 11
        assert "sku" not in attrs


class TestCartAttributes:
    def test_totals(self, cart):
        attrs = cart_attributes(cart)

        assert attrs["subtotal"] == 79.48
        assert attrs["total"] == 79.48
        assert attrs["currency"] == "EUR"
        assert attrs["items_count"] == 3
        assert attrs["unique_items"] == 2
        assert [i["product_id"] for i in attrs["items"]] == [11, 12]
        assert attrs["items"][0]["line_total"] == 59.98

    def test_total_includes_shipping_tax_and_discount(self, cart):
        cart.discount_total = 10
        cart.shipping_total = 4.9
        cart.tax_total = 1.1

        assert cart_attributes(cart)["total"] == 75.48

    def test_without_items(self, cart):
        assert "items" not in cart_attributes(cart, include_items=False)

    def test_stable_for_same_input(self, cart, roses, tulips):
        same = Cart(
            items=[
                CartItem(key="k_roses", product=roses, quantity=2),
                CartItem(key="k_tulips", product=tulips, quantity=1),
            ],
            currency="EUR",
        )

        first = json.dumps(cart_attributes(cart))
        second = json.dumps(cart_attributes(same))
        assert first == second

    def test_hash_changes_with_contents(self, cart):
        before = cart_attributes(cart)["cart_hash"]
        cart.items[0].quantity = 3
        assert cart_attributes(cart)["cart_hash"] != before

    def test_cart_item(self, cart):
        item = cart.get_item("k_roses")
        item.variation = {"size": "large"}
        attrs = cart_item_attributes(item)

        assert attrs["quantity"] == 2
        assert attrs["variation"] == {"size": "large"}
        assert attrs["line_total"] == 59.98


class TestOrderAttributes:
    def test_basic(self, order):
        attrs = order_attributes(order)

        assert attrs["order_id"] == 1001
        assert attrs["total"] == 84.48
        assert attrs["subtotal"] == 79.48
        assert attrs["currency"] == "EUR"
        assert attrs["payment_method"] == "stripe"
        assert attrs["items_count"] == 3
        assert attrs["billing_country"] == "DE"
        assert [i["product_name"] for i in attrs["items"]] == [
            "Red Roses",
            "Tulip Bouquet",
        ]

    def test_stable_for_same_input(self, order):
        assert json.dumps(order_attributes(order)) == json.dumps(order_attributes(order))

    def test_refunds(self, order):
        order.refunds = [Refund(id=1, amount=19.5, reason="damaged")]
        attrs = refund_attributes(order)

        assert attrs["refund_total"] == 19.5
        assert attrs["fully_refunded"] is False
        assert attrs["refunds"] == [{"refund_id": 1, "amount": 19.5, "reason": "damaged"}]
        assert "items" not in attrs

    def test_full_refund(self, order):
        order.refunds = [Refund(id=1, amount=84.48)]
        assert refund_attributes(order)["fully_refunded"] is True

    def test_zero_total_without_refunds_is_not_fully_refunded(self):
        assert refund_attributes(Order(id=1, total=0.0))["fully_refunded"] is False
