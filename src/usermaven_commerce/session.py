"""Session markers that suppress duplicate checkout and abandonment events.

The markers live in the host's session store (any mutable mapping), so they
follow the visitor across requests without any storage of our own.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any, Callable, MutableMapping

from usermaven_commerce.models import Cart

logger = logging.getLogger(__name__)

CHECKOUT_TRACKED_KEY = "usermaven_checkout_tracked"
LAST_ACTIVITY_KEY = "usermaven_last_cart_activity"
CART_ABANDONED_KEY = "usermaven_cart_abandoned"

Clock = Callable[[], float]


def cart_fingerprint(cart: Cart) -> str:
    """Stable hash of the cart's contents, independent of item order."""
    lines = sorted(
        (item.product.id, item.variation_id, item.quantity) for item in cart.items
    )
    material = json.dumps(
        {
            "currency": cart.currency,
            "coupons": sorted(cart.coupons),
            "items": lines,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()[:32]


class CheckoutGuard:
    """Allow one ``initiate_checkout`` per cart fingerprint per window."""

    def __init__(self, window_seconds: int = 300, *, clock: Clock = time.time):
        self.window_seconds = window_seconds
        self._clock = clock

    def claim(self, session: MutableMapping[str, Any], cart: Cart) -> bool:
        """Return True and record the claim if this checkout should be tracked."""
        fingerprint = cart_fingerprint(cart)
        now = self._clock()
        marker = session.get(CHECKOUT_TRACKED_KEY)
        if isinstance(marker, dict) and marker.get("hash") == fingerprint:
            tracked_at = marker.get("at", 0)
            if now - tracked_at < self.window_seconds:
                logger.debug("Checkout for cart %s already tracked", fingerprint)
                return False
        session[CHECKOUT_TRACKED_KEY] = {"hash": fingerprint, "at": now}
        return True

    def reset(self, session: MutableMapping[str, Any]) -> None:
        session.pop(CHECKOUT_TRACKED_KEY, None)


class CartActivity:
    """Last-mutation timestamp plus a once-only abandonment flag."""

    def __init__(self, abandon_after_seconds: int = 3600, *, clock: Clock = time.time):
        self.abandon_after_seconds = abandon_after_seconds
        self._clock = clock

    def touch(self, session: MutableMapping[str, Any]) -> None:
        session[LAST_ACTIVITY_KEY] = self._clock()
        session.pop(CART_ABANDONED_KEY, None)

    def is_abandoned(self, session: MutableMapping[str, Any], cart: Cart) -> bool:
        if cart.is_empty or session.get(CART_ABANDONED_KEY):
            return False
        last = session.get(LAST_ACTIVITY_KEY)
        if last is None:
            return False
        return self._clock() - last >= self.abandon_after_seconds

    def idle_seconds(self, session: MutableMapping[str, Any]) -> int:
        last = session.get(LAST_ACTIVITY_KEY)
        if last is None:
            return 0
        return int(self._clock() - last)

    def mark_abandoned(self, session: MutableMapping[str, Any]) -> None:
        session[CART_ABANDONED_KEY] = True

    def reset(self, session: MutableMapping[str, Any]) -> None:
        session.pop(LAST_ACTIVITY_KEY, None)
        session.pop(CART_ABANDONED_KEY, None)
