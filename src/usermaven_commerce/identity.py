"""Resolve the ``user`` object of an event.

Anonymous visitors are identified by the tracking pixel's cookie; logged-in
users additionally carry their profile.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from usermaven_commerce.events import UserIdentity
from usermaven_commerce.models import Order, SiteUser

DEFAULT_PII_FIELDS = frozenset(
    {
        "email",
        "billing_email",
        "phone",
        "first_name",
        "last_name",
        "street_address",
        "postal_code",
    }
)

REDACTED = "[REDACTED]"


def cookie_names(api_key: str) -> tuple:
    """Cookie names in order of preference: old pixel, then new pixel."""
    return (f"__eventn_id_{api_key}", f"usermaven_id_{api_key}")


def anonymous_id(api_key: str, cookies: Mapping[str, str]) -> str:
    for name in cookie_names(api_key):
        value = cookies.get(name)
        if value:
            return value
    return ""


def identity_for_user(
    api_key: str,
    cookies: Mapping[str, str],
    user: Optional[SiteUser] = None,
) -> UserIdentity:
    identity = UserIdentity(anonymous_id=anonymous_id(api_key, cookies))
    if user is None or not user.is_logged_in:
        return identity

    identity.id = str(user.id)
    identity.email = user.email
    identity.created_at = user.registered_at
    identity.first_name = user.first_name
    identity.last_name = user.last_name
    identity.custom = {"role": user.roles[0] if user.roles else ""}
    return identity


def identity_for_order(
    api_key: str,
    cookies: Mapping[str, str],
    order: Order,
) -> UserIdentity:
    """Identity for order events fired without a logged-in visitor."""
    identity = UserIdentity(anonymous_id=anonymous_id(api_key, cookies))
    if order.customer_id:
        identity.id = str(order.customer_id)
    if order.billing_email:
        identity.email = order.billing_email
    if order.billing_first_name:
        identity.first_name = order.billing_first_name
    if order.billing_last_name:
        identity.last_name = order.billing_last_name
    return identity


def redact(data: Any, pii_fields: Iterable[str] = DEFAULT_PII_FIELDS) -> Any:
    """Replace PII keys anywhere in a nested dict/list structure."""
    fields = pii_fields if isinstance(pii_fields, (set, frozenset)) else set(pii_fields)
    if isinstance(data, dict):
        return {
            k: REDACTED if k.lower() in fields else redact(v, fields)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [redact(item, fields) for item in data]
    return data


def redact_identity(identity: UserIdentity) -> UserIdentity:
    return UserIdentity(
        anonymous_id=identity.anonymous_id,
        id=identity.id,
        email=REDACTED if identity.email else identity.email,
        created_at=identity.created_at,
        first_name=REDACTED if identity.first_name else identity.first_name,
        last_name=REDACTED if identity.last_name else identity.last_name,
        custom=identity.custom,
    )
