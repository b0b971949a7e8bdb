"""Usermaven commerce — storefront analytics for the Usermaven collector.

Turns cart, checkout, order, account and page-view activity into events and
sends each one to the collector with a single HTTP POST.

Integration points (pick any or combine):
    1. Direct API          — call tracker.track_*() from the host's hooks
    2. Starlette middleware — records page views
    3. Webhook route        — receives WooCommerce order/customer webhooks
"""

from usermaven_commerce.client import CollectorClient
from usermaven_commerce.errors import ConfigurationError, InvalidCompanyError
from usermaven_commerce.events import (
    CollectorEvent,
    Company,
    EventType,
    RequestContext,
    UserIdentity,
)
from usermaven_commerce.models import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    Product,
    Refund,
    SiteUser,
    Visit,
)
from usermaven_commerce.parser import WooCommerceParser
from usermaven_commerce.settings import CollectorSettings
from usermaven_commerce.snippet import tracking_script
from usermaven_commerce.tracker import CommerceTracker


def __getattr__(name: str):
    if name == "PageViewMiddleware":
        from usermaven_commerce.middleware import PageViewMiddleware

        return PageViewMiddleware
    if name == "webhook_route":
        from usermaven_commerce.webhooks import webhook_route

        return webhook_route
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "CommerceTracker",
    "CollectorClient",
    "CollectorSettings",
    "CollectorEvent",
    "EventType",
    "UserIdentity",
    "Company",
    "RequestContext",
    "Product",
    "CartItem",
    "Cart",
    "Order",
    "OrderItem",
    "Refund",
    "SiteUser",
    "Visit",
    "WooCommerceParser",
    "PageViewMiddleware",
    "webhook_route",
    "tracking_script",
    "ConfigurationError",
    "InvalidCompanyError",
]

__version__ = "0.1.0"
