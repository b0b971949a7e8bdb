"""Tests for identity resolution and PII redaction."""

from usermaven_commerce.events import UserIdentity
from usermaven_commerce.identity import (
    REDACTED,
    anonymous_id,
    identity_for_order,
    identity_for_user,
    redact,
    redact_identity,
)
from usermaven_commerce.models import SiteUser

API_KEY = "UMkey"


class TestAnonymousId:
    def test_old_pixel_cookie_preferred(self):
        cookies = {"__eventn_id_UMkey": "old", "usermaven_id_UMkey": "new"}
        assert anonymous_id(API_KEY, cookies) == "old"

    def test_new_pixel_cookie(self):
        assert anonymous_id(API_KEY, {"usermaven_id_UMkey": "new"}) == "new"

    def test_cookie_for_other_key_ignored(self):
        assert anonymous_id(API_KEY, {"usermaven_id_other": "x"}) == ""

    def test_no_cookie(self):
        assert anonymous_id(API_KEY, {}) == ""


class TestIdentityForUser:
    def test_guest(self):
        identity = identity_for_user(API_KEY, {"usermaven_id_UMkey": "anon"}, None)
        assert identity.to_dict() == {"anonymous_id": "anon", "id": ""}

    def test_logged_out_user_object(self):
        identity = identity_for_user(API_KEY, {}, SiteUser(id=0, email="x@y.z"))
        assert identity.to_dict() == {"anonymous_id": "", "id": ""}

    def test_logged_in(self, jane):
        identity = identity_for_user(API_KEY, {"usermaven_id_UMkey": "anon"}, jane)

        assert identity.to_dict() == {
            "anonymous_id": "anon",
            "id": "7",
            "email": "jane@example.com",
            "created_at": "2024-03-01 10:00:00",
            "first_name": "Jane",
            "last_name": "Doe",
            "custom": {"role": "customer"},
        }

    def test_user_without_roles(self):
        identity = identity_for_user(API_KEY, {}, SiteUser(id=3))
        assert identity.custom == {"role": ""}


class TestIdentityForOrder:
    def test_uses_order_customer(self, order):
        identity = identity_for_order(API_KEY, {}, order)

        assert identity.id == "7"
        assert identity.email == "jane@example.com"
        assert identity.first_name == "Jane"

    def test_guest_order(self, order):
        order.customer_id = 0
        identity = identity_for_order(API_KEY, {"usermaven_id_UMkey": "anon"}, order)

        assert identity.id == ""
        assert identity.anonymous_id == "anon"
        assert identity.email == "jane@example.com"


class TestRedaction:
    def test_redact_nested(self):
        data = {
            "billing": {"email": "secret@test.com"},
            "items": [{"first_name": "Jane", "product_id": 1}],
        }
        redacted = redact(data)

        assert redacted["billing"]["email"] == REDACTED
        assert redacted["items"][0]["first_name"] == REDACTED
        assert redacted["items"][0]["product_id"] == 1

    def test_redact_custom_fields(self):
        assert redact({"token": "x", "id": 1}, ["token"]) == {"token": REDACTED, "id": 1}

    def test_redact_identity_keeps_ids(self):
        identity = UserIdentity(anonymous_id="a", id="7", email="e", first_name="F")
        redacted = redact_identity(identity)

        assert redacted.anonymous_id == "a"
        assert redacted.id == "7"
        assert redacted.email == REDACTED
        assert redacted.first_name == REDACTED
        assert redacted.last_name is None
