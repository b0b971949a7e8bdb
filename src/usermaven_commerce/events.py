"""Event types and the collector event data model.

Event names follow the storefront lifecycle (catalog → cart → checkout →
order) plus account and page-view events.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventType(str, Enum):
    """Storefront event types sent to the collector."""

    # Catalog browsing
    PAGE_VIEW = "page_view"
    VIEW_PRODUCT = "view_product"
    VIEW_CATEGORY = "view_category"
    PRODUCT_SEARCH = "product_search"

    # Cart lifecycle
    ADD_TO_CART = "add_to_cart"
    REMOVE_FROM_CART = "remove_from_cart"
    UPDATE_CART = "update_cart"
    RESTORE_CART_ITEM = "restore_cart_item"
    EMPTY_CART = "empty_cart"
    VIEW_CART = "view_cart"
    APPLY_COUPON = "apply_coupon"
    REMOVE_COUPON = "remove_coupon"
    CART_ABANDONED = "cart_abandoned"

    # Checkout
    INITIATE_CHECKOUT = "initiate_checkout"
    ADD_SHIPPING_INFO = "add_shipping_info"
    ADD_PAYMENT_INFO = "add_payment_info"

    # Order lifecycle
    ORDER_PLACED = "order_placed"
    ORDER_COMPLETED = "order_completed"
    ORDER_STATUS_CHANGED = "order_status_changed"
    ORDER_CANCELLED = "order_cancelled"
    ORDER_REFUNDED = "order_refunded"
    ORDER_FAILED = "order_failed"

    # Accounts
    USER_REGISTERED = "user_registered"
    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"
    PROFILE_UPDATED = "profile_updated"


# Event names that need WooCommerce tracking switched on.
COMMERCE_EVENTS = frozenset(
    t.value
    for t in EventType
    if t
    not in (
        EventType.PAGE_VIEW,
        EventType.USER_REGISTERED,
        EventType.USER_LOGGED_IN,
        EventType.USER_LOGGED_OUT,
        EventType.PROFILE_UPDATED,
    )
)

EVENT_SOURCE = "ecommerce"
DOC_ENCODING = "UTF-8"


def now_ms() -> int:
    return int(round(time.time() * 1000))


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


@dataclass
class UserIdentity:
    """The ``user`` object of an event.

    ``anonymous_id`` and ``id`` are always serialized (as "" when unknown);
    the profile fields only when set.
    """

    anonymous_id: str = ""
    id: str = ""
    email: Optional[str] = None
    created_at: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    custom: Optional[Dict[str, Any]] = None

    @property
    def is_identified(self) -> bool:
        return bool(self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class Company:
    """The ``company`` object of an event."""

    id: str = ""
    name: str = ""
    created_at: Optional[str] = None
    custom: Optional[Dict[str, Any]] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "Company":
        if not data:
            return cls()
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            created_at=data.get("created_at"),
            custom=data.get("custom"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------


@dataclass
class RequestContext:
    """Page and client details of the request that triggered an event."""

    url: str = ""  # referrer
    page_title: str = ""
    doc_path: str = ""
    doc_host: str = ""
    user_agent: str = ""
    source_ip: str = ""
    user_language: str = ""

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        *,
        path: str = "",
        client_ip: str = "",
        page_title: str = "",
    ) -> "RequestContext":
        """Build a context from (lower- or mixed-case) request headers."""
        lowered = {k.lower(): v for k, v in headers.items()}
        forwarded = lowered.get("x-forwarded-for", "")
        source_ip = forwarded.split(",")[0].strip() if forwarded else client_ip
        return cls(
            url=lowered.get("referer", ""),
            page_title=page_title,
            doc_path=path,
            doc_host=lowered.get("host", ""),
            user_agent=lowered.get("user-agent", ""),
            source_ip=source_ip,
            user_language=lowered.get("accept-language", ""),
        )


# ---------------------------------------------------------------------------
# Event
# ---------------------------------------------------------------------------


@dataclass
class CollectorEvent:
    """A single analytics event destined for the collector."""

    event_type: str = ""
    event_attributes: Dict[str, Any] = field(default_factory=dict)
    user: UserIdentity = field(default_factory=UserIdentity)
    company: Company = field(default_factory=Company)
    context: RequestContext = field(default_factory=RequestContext)
    timestamp: int = field(default_factory=now_ms)
    src: str = EVENT_SOURCE

    def to_payload(self, api_key: str) -> Dict[str, Any]:
        """Serialize to the collector's JSON body."""
        event_type = self.event_type
        if isinstance(event_type, EventType):
            event_type = event_type.value
        return {
            "api_key": api_key,
            "event_type": event_type,
            "_timestamp": str(self.timestamp),
            "event_attributes": dict(self.event_attributes),
            "user": self.user.to_dict(),
            "company": self.company.to_dict(),
            "src": self.src,
            "url": self.context.url,
            "page_title": self.context.page_title,
            "doc_path": self.context.doc_path,
            "doc_host": self.context.doc_host,
            "user_agent": self.context.user_agent,
            "source_ip": self.context.source_ip,
            "user_language": self.context.user_language,
            "doc_encoding": DOC_ENCODING,
        }
