"""Starlette route that turns WooCommerce webhooks into collector events.

Point a WooCommerce webhook (Settings → Advanced → Webhooks) for the
order and customer topics at this route::

    from starlette.applications import Starlette
    from usermaven_commerce import CommerceTracker
    from usermaven_commerce.webhooks import webhook_route

    tracker = CommerceTracker()
    app = Starlette(routes=[webhook_route(tracker, secret="whsec")])
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
from typing import Any, Optional

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from usermaven_commerce.events import EventType
from usermaven_commerce.models import Visit
from usermaven_commerce.parser import WooCommerceParser

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-wc-webhook-signature"
TOPIC_HEADER = "x-wc-webhook-topic"


def sign(secret: str, body: bytes) -> str:
    """Signature WooCommerce sends: base64(HMAC-SHA256(secret, raw body))."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(sign(secret, body), signature)


class WooCommerceWebhookEndpoint:
    """Verify, parse, dispatch to the tracker, acknowledge."""

    def __init__(self, tracker: Any, secret: str) -> None:
        self.tracker = tracker
        self.secret = secret

    async def handle(self, request: Request) -> JSONResponse:
        raw = await request.body()

        if not verify_signature(self.secret, raw, request.headers.get(SIGNATURE_HEADER)):
            logger.warning("Rejected WooCommerce webhook with bad signature")
            return JSONResponse({"status": "error", "error": "bad_signature"}, 401)

        topic = request.headers.get(TOPIC_HEADER, "")

        # Webhook creation sends a form-encoded ping: webhook_id=<n>
        if not topic and raw.startswith(b"webhook_id="):
            return JSONResponse({"status": "ok"})

        try:
            body = json.loads(raw)
        except ValueError:
            return JSONResponse({"status": "error", "error": "invalid_json"}, 400)
        if not isinstance(body, dict):
            return JSONResponse({"status": "error", "error": "invalid_json"}, 400)

        event_type = WooCommerceParser.classify(topic, body)
        if event_type is None:
            logger.debug("Ignoring WooCommerce webhook topic %r", topic)
            return JSONResponse({"status": "ignored"})

        try:
            await run_in_threadpool(self._dispatch, event_type, body)
        except Exception:
            logger.exception("WooCommerce webhook dispatch failed for %s", topic)
        return JSONResponse({"status": "ok"})

    def _dispatch(self, event_type: EventType, body: dict) -> bool:
        # Webhooks carry no visitor: no cookies, no session, no page context.
        visit = Visit()

        if event_type in (EventType.USER_REGISTERED, EventType.PROFILE_UPDATED):
            user = WooCommerceParser.parse_customer(body)
            if event_type == EventType.USER_REGISTERED:
                return self.tracker.track_user_registered(visit, user)
            return self.tracker.track_profile_updated(visit, user)

        order = WooCommerceParser.parse_order(body)
        if event_type == EventType.ORDER_PLACED:
            return self.tracker.track_order_placed(visit, order)
        if event_type == EventType.ORDER_COMPLETED:
            return self.tracker.track_order_completed(visit, order)
        if event_type == EventType.ORDER_CANCELLED:
            return self.tracker.track_order_cancelled(visit, order)
        if event_type == EventType.ORDER_REFUNDED:
            return self.tracker.track_order_refunded(visit, order)
        if event_type == EventType.ORDER_FAILED:
            return self.tracker.track_order_failed(visit, order)
        return self.tracker.track_order_status_changed(visit, order, order.status)


def webhook_route(
    tracker: Any, secret: str, path: str = "/woocommerce/webhook"
) -> Route:
    endpoint = WooCommerceWebhookEndpoint(tracker, secret)
    return Route(path, endpoint.handle, methods=["POST"])
