"""CommerceTracker — the main entry point for recording storefront events.

Call the ``track_*`` methods from the host's lifecycle points, or let the
Starlette middleware and WooCommerce webhook route call them for you.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from usermaven_commerce.attributes import (
    cart_attributes,
    cart_item_attributes,
    order_attributes,
    product_attributes,
    refund_attributes,
)
from usermaven_commerce.client import CollectorClient
from usermaven_commerce.events import (
    COMMERCE_EVENTS,
    CollectorEvent,
    Company,
    EventType,
    UserIdentity,
)
from usermaven_commerce.identity import (
    identity_for_order,
    identity_for_user,
    redact,
    redact_identity,
)
from usermaven_commerce.models import Cart, Order, Product, SiteUser, Visit
from usermaven_commerce.session import CartActivity, CheckoutGuard
from usermaven_commerce.settings import CollectorSettings

logger = logging.getLogger(__name__)

CompanyResolver = Callable[[Visit], Optional[Company]]


class CommerceTracker:
    """Builds storefront events and sends them to the Usermaven collector.

    Usage::

        tracker = CommerceTracker(CollectorSettings.from_env())

        # inside a request handler
        visit = Visit(session=request.session, cookies=request.cookies,
                      user=current_user, context=RequestContext.from_headers(...))
        tracker.track_add_to_cart(visit, product, quantity=2)
        tracker.track_initiate_checkout(visit, cart)

        tracker.close()

    Every ``track_*`` method returns True when the collector accepted the
    event and False when it was skipped, suppressed or failed.
    """

    def __init__(
        self,
        settings: Optional[CollectorSettings] = None,
        *,
        client: Optional[CollectorClient] = None,
        company_resolver: Optional[CompanyResolver] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or CollectorSettings.from_env()
        self.client = client or CollectorClient(self.settings)
        self.company_resolver = company_resolver
        self.checkout_guard = CheckoutGuard(
            self.settings.checkout_window_seconds, clock=clock
        )
        self.cart_activity = CartActivity(
            self.settings.abandon_after_seconds, clock=clock
        )

    # ------------------------------------------------------------------ #
    # Core
    # ------------------------------------------------------------------ #

    def track(
        self,
        visit: Visit,
        event_type: Union[EventType, str],
        attributes: Optional[Mapping[str, Any]] = None,
        *,
        user: Optional[UserIdentity] = None,
    ) -> bool:
        """Record any event, including custom ones not in EventType."""
        name = event_type.value if isinstance(event_type, EventType) else str(event_type)
        if name in COMMERCE_EVENTS and not self.settings.track_woocommerce:
            return False

        identity = user or identity_for_user(
            self.settings.api_key, visit.cookies, visit.user
        )
        attrs: Dict[str, Any] = dict(attributes or {})
        if self.settings.redact_pii:
            identity = redact_identity(identity)
            attrs = redact(attrs)

        company = None
        if self.company_resolver is not None:
            try:
                company = self.company_resolver(visit)
            except Exception:
                logger.exception("Company resolver failed; sending without company")

        event = CollectorEvent(
            event_type=name,
            event_attributes=attrs,
            user=identity,
            company=company or Company(),
            context=visit.context,
        )
        return self.client.send(event)

    def track_server_side_event(
        self,
        user_id: Union[str, int],
        event_type: str,
        company: Mapping[str, Any],
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Plain server-side event; see CollectorClient.send_server_side_event."""
        return self.client.send_server_side_event(
            user_id, event_type, company, attributes
        )

    def close(self):
        self.client.close()
        logger.info("CommerceTracker closed")

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    def track_page_view(self, visit: Visit, page_title: str = "") -> bool:
        attrs: Dict[str, Any] = {"path": visit.context.doc_path}
        if page_title:
            attrs["page_title"] = page_title
            visit.context.page_title = page_title
        return self.track(visit, EventType.PAGE_VIEW, attrs)

    def track_view_product(self, visit: Visit, product: Product) -> bool:
        return self.track(visit, EventType.VIEW_PRODUCT, product_attributes(product))

    def track_view_category(
        self,
        visit: Visit,
        category_name: str,
        category_id: Optional[int] = None,
        product_count: Optional[int] = None,
    ) -> bool:
        attrs: Dict[str, Any] = {"category_name": category_name}
        if category_id is not None:
            attrs["category_id"] = category_id
        if product_count is not None:
            attrs["product_count"] = product_count
        return self.track(visit, EventType.VIEW_CATEGORY, attrs)

    def track_product_search(
        self, visit: Visit, query: str, results_count: Optional[int] = None
    ) -> bool:
        attrs: Dict[str, Any] = {"search_query": query}
        if results_count is not None:
            attrs["results_count"] = results_count
        return self.track(visit, EventType.PRODUCT_SEARCH, attrs)

    # ------------------------------------------------------------------ #
    # Cart
    # ------------------------------------------------------------------ #

    def _cart_mutated(self, visit: Visit) -> None:
        self.checkout_guard.reset(visit.session)
        self.cart_activity.touch(visit.session)

    def track_add_to_cart(
        self,
        visit: Visit,
        product: Product,
        quantity: int = 1,
        *,
        variation_id: int = 0,
        variation: Optional[Mapping[str, str]] = None,
        is_ajax: bool = False,
    ) -> bool:
        self._cart_mutated(visit)
        attrs = product_attributes(product)
        attrs["quantity"] = quantity
        attrs["variation_id"] = variation_id
        if variation:
            attrs["variation"] = dict(variation)
        if is_ajax:
            attrs["is_ajax"] = True
        return self.track(visit, EventType.ADD_TO_CART, attrs)

    def track_remove_from_cart(self, visit: Visit, cart: Cart, cart_item_key: str) -> bool:
        """Call before the item leaves the cart, while it can still be looked up."""
        item = cart.get_item(cart_item_key)
        if item is None:
            logger.warning("Cart item %s not found; remove_from_cart skipped", cart_item_key)
            return False
        self._cart_mutated(visit)
        return self.track(visit, EventType.REMOVE_FROM_CART, cart_item_attributes(item))

    def track_update_cart(
        self,
        visit: Visit,
        cart: Cart,
        cart_item_key: str,
        quantity: int,
        old_quantity: int,
    ) -> bool:
        item = cart.get_item(cart_item_key)
        if item is None:
            logger.warning("Cart item %s not found; update_cart skipped", cart_item_key)
            return False
        self._cart_mutated(visit)
        attrs = cart_item_attributes(item)
        attrs.pop("quantity", None)
        attrs["new_quantity"] = quantity
        attrs["old_quantity"] = old_quantity
        return self.track(visit, EventType.UPDATE_CART, attrs)

    def track_restore_cart_item(self, visit: Visit, cart: Cart, cart_item_key: str) -> bool:
        item = cart.get_item(cart_item_key)
        if item is None:
            logger.warning("Cart item %s not found; restore_cart_item skipped", cart_item_key)
            return False
        self._cart_mutated(visit)
        return self.track(visit, EventType.RESTORE_CART_ITEM, cart_item_attributes(item))

    def track_empty_cart(self, visit: Visit, cart: Cart) -> bool:
        """Call before the cart is cleared so its contents are reported."""
        self.checkout_guard.reset(visit.session)
        self.cart_activity.reset(visit.session)
        return self.track(visit, EventType.EMPTY_CART, cart_attributes(cart))

    def track_view_cart(self, visit: Visit, cart: Cart) -> bool:
        return self.track(visit, EventType.VIEW_CART, cart_attributes(cart))

    def track_apply_coupon(self, visit: Visit, cart: Cart, coupon_code: str) -> bool:
        self._cart_mutated(visit)
        attrs = cart_attributes(cart, include_items=False)
        attrs["coupon_code"] = coupon_code
        return self.track(visit, EventType.APPLY_COUPON, attrs)

    def track_remove_coupon(self, visit: Visit, cart: Cart, coupon_code: str) -> bool:
        self._cart_mutated(visit)
        attrs = cart_attributes(cart, include_items=False)
        attrs["coupon_code"] = coupon_code
        return self.track(visit, EventType.REMOVE_COUPON, attrs)

    def check_cart_abandonment(self, visit: Visit, cart: Cart) -> bool:
        """Emit ``cart_abandoned`` once for a cart left idle past the threshold."""
        if not self.settings.track_woocommerce:
            return False
        if not self.cart_activity.is_abandoned(visit.session, cart):
            return False
        attrs = cart_attributes(cart)
        attrs["idle_seconds"] = self.cart_activity.idle_seconds(visit.session)
        self.cart_activity.mark_abandoned(visit.session)
        return self.track(visit, EventType.CART_ABANDONED, attrs)

    # ------------------------------------------------------------------ #
    # Checkout
    # ------------------------------------------------------------------ #

    def track_initiate_checkout(self, visit: Visit, cart: Cart) -> bool:
        """Tracked at most once per cart contents within the dedup window."""
        if not self.settings.track_woocommerce:
            return False
        if not self.checkout_guard.claim(visit.session, cart):
            return False
        return self.track(visit, EventType.INITIATE_CHECKOUT, cart_attributes(cart))

    def track_add_shipping_info(
        self, visit: Visit, cart: Cart, shipping_method: str, country: str = ""
    ) -> bool:
        attrs = cart_attributes(cart, include_items=False)
        attrs["shipping_method"] = shipping_method
        if country:
            attrs["shipping_country"] = country
        return self.track(visit, EventType.ADD_SHIPPING_INFO, attrs)

    def track_add_payment_info(self, visit: Visit, cart: Cart, payment_method: str) -> bool:
        attrs = cart_attributes(cart, include_items=False)
        attrs["payment_method"] = payment_method
        return self.track(visit, EventType.ADD_PAYMENT_INFO, attrs)

    # ------------------------------------------------------------------ #
    # Orders
    # ------------------------------------------------------------------ #

    def _order_identity(self, visit: Visit, order: Order) -> UserIdentity:
        if visit.user is not None and visit.user.is_logged_in:
            return identity_for_user(self.settings.api_key, visit.cookies, visit.user)
        return identity_for_order(self.settings.api_key, visit.cookies, order)

    def _order_closed(self, visit: Visit) -> None:
        self.checkout_guard.reset(visit.session)
        self.cart_activity.reset(visit.session)

    def track_order_placed(self, visit: Visit, order: Order) -> bool:
        self._order_closed(visit)
        return self.track(
            visit,
            EventType.ORDER_PLACED,
            order_attributes(order),
            user=self._order_identity(visit, order),
        )

    def track_order_completed(self, visit: Visit, order: Order) -> bool:
        self._order_closed(visit)
        return self.track(
            visit,
            EventType.ORDER_COMPLETED,
            order_attributes(order),
            user=self._order_identity(visit, order),
        )

    def track_order_status_changed(
        self, visit: Visit, order: Order, new_status: str, old_status: str = ""
    ) -> bool:
        attrs = order_attributes(order, include_items=False)
        attrs["new_status"] = new_status
        if old_status:
            attrs["old_status"] = old_status
        return self.track(
            visit,
            EventType.ORDER_STATUS_CHANGED,
            attrs,
            user=self._order_identity(visit, order),
        )

    def track_order_cancelled(self, visit: Visit, order: Order) -> bool:
        return self.track(
            visit,
            EventType.ORDER_CANCELLED,
            order_attributes(order, include_items=False),
            user=self._order_identity(visit, order),
        )

    def track_order_refunded(self, visit: Visit, order: Order) -> bool:
        return self.track(
            visit,
            EventType.ORDER_REFUNDED,
            refund_attributes(order),
            user=self._order_identity(visit, order),
        )

    def track_order_failed(self, visit: Visit, order: Order, reason: str = "") -> bool:
        attrs = order_attributes(order, include_items=False)
        if reason:
            attrs["failure_reason"] = reason
        return self.track(
            visit,
            EventType.ORDER_FAILED,
            attrs,
            user=self._order_identity(visit, order),
        )

    # ------------------------------------------------------------------ #
    # Accounts
    # ------------------------------------------------------------------ #

    def _account_identity(self, visit: Visit, user: SiteUser) -> UserIdentity:
        # The hook fires before the host updates its current user.
        return identity_for_user(self.settings.api_key, visit.cookies, user)

    def track_user_registered(self, visit: Visit, user: SiteUser) -> bool:
        attrs = {"user_id": user.id, "username": user.username}
        return self.track(
            visit,
            EventType.USER_REGISTERED,
            attrs,
            user=self._account_identity(visit, user),
        )

    def track_user_logged_in(self, visit: Visit, user: SiteUser) -> bool:
        attrs = {"user_id": user.id, "username": user.username}
        return self.track(
            visit,
            EventType.USER_LOGGED_IN,
            attrs,
            user=self._account_identity(visit, user),
        )

    def track_user_logged_out(self, visit: Visit, user: SiteUser) -> bool:
        return self.track(
            visit,
            EventType.USER_LOGGED_OUT,
            {"user_id": user.id},
            user=self._account_identity(visit, user),
        )

    def track_profile_updated(
        self, visit: Visit, user: SiteUser, changed_fields: Optional[List[str]] = None
    ) -> bool:
        attrs: Dict[str, Any] = {"user_id": user.id}
        if changed_fields:
            attrs["changed_fields"] = sorted(changed_fields)
        return self.track(
            visit,
            EventType.PROFILE_UPDATED,
            attrs,
            user=self._account_identity(visit, user),
        )
