"""Shared storefront fixtures."""

import pytest

from usermaven_commerce.models import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    Product,
    SiteUser,
)


@pytest.fixture
def roses():
    return Product(id=11, name="Red Roses", price=29.99, sku="RR-01", categories=["Flowers"])


@pytest.fixture
def tulips():
    return Product(id=12, name="Tulip Bouquet", price=19.5, sku="TB-01")


@pytest.fixture
def cart(roses, tulips):
    return Cart(
        items=[
            CartItem(key="k_roses", product=roses, quantity=2),
            CartItem(key="k_tulips", product=tulips, quantity=1),
        ],
        currency="EUR",
    )


@pytest.fixture
def order():
    return Order(
        id=1001,
        status="processing",
        currency="EUR",
        total=84.48,
        tax_total=5.0,
        shipping_total=0.0,
        payment_method="stripe",
        payment_method_title="Credit card",
        items=[
            OrderItem(product_id=11, name="Red Roses", quantity=2, total=59.98),
            OrderItem(product_id=12, name="Tulip Bouquet", quantity=1, total=19.5),
        ],
        customer_id=7,
        billing_email="jane@example.com",
        billing_first_name="Jane",
        billing_last_name="Doe",
        billing_country="DE",
    )


@pytest.fixture
def jane():
    return SiteUser(
        id=7,
        email="jane@example.com",
        username="jane",
        first_name="Jane",
        last_name="Doe",
        registered_at="2024-03-01 10:00:00",
        roles=["customer"],
    )
