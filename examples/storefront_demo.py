#!/usr/bin/env python3
"""
Storefront Demo — Page Views, Cart, Checkout and a WooCommerce Webhook
=======================================================================

Exercises:
  1. A Starlette storefront wrapped in PageViewMiddleware
  2. Cart activity and a deduplicated initiate_checkout
  3. A signed order.updated webhook that becomes order_completed

The collector is an in-process httpx.MockTransport that prints every
payload, so the demo runs offline.

Run:
    python examples/storefront_demo.py
"""

from __future__ import annotations

import json
import logging

import httpx
from starlette.applications import Starlette
from starlette.responses import HTMLResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from usermaven_commerce import (
    Cart,
    CartItem,
    CollectorClient,
    CollectorSettings,
    CommerceTracker,
    PageViewMiddleware,
    Product,
    Visit,
    tracking_script,
    webhook_route,
)
from usermaven_commerce.webhooks import sign

WEBHOOK_SECRET = "demo-secret"


def print_collector(request: httpx.Request) -> httpx.Response:
    payload = json.loads(request.content)
    user = payload["user"]
    print(
        f"   -> {payload['event_type']:<20} "
        f"user={user.get('id') or user.get('anonymous_id') or '-':<10} "
        f"attrs={sorted(payload['event_attributes'])}"
    )
    return httpx.Response(200, json={"status": "ok"})


def build_tracker() -> CommerceTracker:
    settings = CollectorSettings(api_key="UMdemo", server_token="demo")
    client = CollectorClient(settings, transport=httpx.MockTransport(print_collector))
    return CommerceTracker(settings, client=client)


def build_app(tracker: CommerceTracker) -> Starlette:
    snippet = tracking_script(tracker.settings)

    async def home(request):
        request.state.page_title = "Shop"
        return HTMLResponse(f"<html><head>{snippet}</head><body>Shop</body></html>")

    app = Starlette(
        routes=[Route("/", home), webhook_route(tracker, secret=WEBHOOK_SECRET)]
    )
    app.add_middleware(PageViewMiddleware, tracker=tracker)
    return app


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    tracker = build_tracker()
    app = build_app(tracker)

    print("1. Page view through middleware")
    with TestClient(app) as http:
        http.get("/", headers={"referer": "https://search.example/"})

    print("2. Cart and checkout")
    visit = Visit(cookies={"usermaven_id_UMdemo": "anon_demo"})
    roses = Product(id=11, name="Red Roses", price=29.99, sku="RR-01")
    cart = Cart(items=[CartItem(key="k1", product=roses, quantity=2)], currency="EUR")
    tracker.track_add_to_cart(visit, roses, 2)
    tracker.track_view_cart(visit, cart)
    tracker.track_initiate_checkout(visit, cart)
    if not tracker.track_initiate_checkout(visit, cart):
        print("   (second initiate_checkout suppressed)")

    print("3. WooCommerce webhook")
    body = json.dumps(
        {
            "id": 1001,
            "status": "completed",
            "currency": "EUR",
            "total": "59.98",
            "customer_id": 0,
            "billing": {"email": "guest@example.com", "first_name": "Guest"},
            "line_items": [
                {"product_id": 11, "name": "Red Roses", "quantity": 2, "total": "59.98"}
            ],
        }
    ).encode()
    with TestClient(app) as http:
        resp = http.post(
            "/woocommerce/webhook",
            content=body,
            headers={
                "X-WC-Webhook-Topic": "order.updated",
                "X-WC-Webhook-Signature": sign(WEBHOOK_SECRET, body),
                "Content-Type": "application/json",
            },
        )
        print(f"   webhook response: {resp.json()}")

    tracker.close()


if __name__ == "__main__":
    main()
