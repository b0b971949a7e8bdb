"""Tests for CollectorClient."""

import json
from decimal import Decimal

import httpx
import pytest

from usermaven_commerce.client import CollectorClient, is_valid_api_key
from usermaven_commerce.errors import InvalidCompanyError
from usermaven_commerce.events import Company, EventType, RequestContext, UserIdentity
from usermaven_commerce.settings import CollectorSettings


class Recorder:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, response=None, exc=None):
        self.requests = []
        self.response = response or httpx.Response(200, json={"status": "ok"})
        self.exc = exc

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return self.response

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


@pytest.fixture
def settings():
    return CollectorSettings(api_key="UMkey123", server_token="srv_tok")


def make_client(settings, handler):
    return CollectorClient(settings, transport=httpx.MockTransport(handler))


class TestSendEvent:
    def test_posts_to_collector_with_token(self, settings):
        recorder = Recorder()
        client = make_client(settings, recorder)

        assert client.send_event("add_to_cart", UserIdentity(anonymous_id="anon1")) is True

        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.host == "events.usermaven.com"
        assert request.url.path == "/api/v1/s2s/event"
        assert request.url.params["token"] == "UMkey123.srv_tok"

    def test_payload_shape(self, settings):
        recorder = Recorder()
        client = make_client(settings, recorder)
        context = RequestContext(
            url="https://shop.example.com/cart",
            doc_path="/checkout",
            doc_host="shop.example.com",
            user_agent="pytest",
            source_ip="10.0.0.1",
            user_language="en-US",
        )

        client.send_event(
            EventType.ORDER_COMPLETED,
            UserIdentity(anonymous_id="anon1", id="7", email="a@b.c"),
            {"order_id": 1001, "total": 84.48},
            Company(id="c1", name="Acme"),
            context,
        )

        body = recorder.last_body
        assert body["api_key"] == "UMkey123"
        assert body["event_type"] == "order_completed"
        assert body["_timestamp"].isdigit()
        assert body["event_attributes"] == {"order_id": 1001, "total": 84.48}
        assert body["user"] == {"anonymous_id": "anon1", "id": "7", "email": "a@b.c"}
        assert body["company"] == {"id": "c1", "name": "Acme"}
        assert body["src"] == "ecommerce"
        assert body["url"] == "https://shop.example.com/cart"
        assert body["doc_path"] == "/checkout"
        assert body["user_agent"] == "pytest"
        assert body["source_ip"] == "10.0.0.1"
        assert body["user_language"] == "en-US"
        assert body["doc_encoding"] == "UTF-8"

    def test_company_defaults_to_empty_object(self, settings):
        recorder = Recorder()
        client = make_client(settings, recorder)

        client.send_event("page_view")

        assert recorder.last_body["company"] == {"id": "", "name": ""}

    def test_custom_tracking_host(self):
        recorder = Recorder()
        settings = CollectorSettings(
            api_key="k", server_token="t", tracking_host="https://collect.example.com/"
        )
        client = make_client(settings, recorder)

        client.send_event("page_view")

        assert str(recorder.requests[0].url).startswith(
            "https://collect.example.com/api/v1/s2s/event?"
        )


class TestFailures:
    @pytest.mark.parametrize("api_key", ["", "has space", "dot.ted", "semi;colon", "key\n"])
    def test_bad_api_key_returns_false_without_request(self, api_key):
        recorder = Recorder()
        client = make_client(CollectorSettings(api_key=api_key), recorder)

        assert client.send_event("add_to_cart") is False
        assert recorder.requests == []

    def test_transport_error_returns_false(self, settings):
        recorder = Recorder(exc=httpx.ConnectError("boom"))
        client = make_client(settings, recorder)

        assert client.send_event("add_to_cart") is False

    def test_timeout_returns_false(self, settings):
        recorder = Recorder(exc=httpx.ReadTimeout("slow"))
        client = make_client(settings, recorder)

        assert client.send_event("add_to_cart") is False

    def test_non_2xx_returns_false(self, settings):
        recorder = Recorder(httpx.Response(500, json={"status": "ok"}))
        client = make_client(settings, recorder)

        assert client.send_event("add_to_cart") is False

    def test_non_json_reply_returns_false(self, settings):
        recorder = Recorder(httpx.Response(200, text="<html>gateway</html>"))
        client = make_client(settings, recorder)

        assert client.send_event("add_to_cart") is False

    def test_non_ok_status_returns_false(self, settings):
        recorder = Recorder(httpx.Response(200, json={"status": "error"}))
        client = make_client(settings, recorder)

        assert client.send_event("add_to_cart") is False

    def test_json_list_reply_returns_false(self, settings):
        recorder = Recorder(httpx.Response(200, json=["ok"]))
        client = make_client(settings, recorder)

        assert client.send_event("add_to_cart") is False

    def test_unencodable_attribute_returns_false(self, settings):
        recorder = Recorder()
        client = make_client(settings, recorder)

        ok = client.send_event("add_to_cart", None, {"price": Decimal("1.50")})

        assert ok is False
        assert recorder.requests == []

    def test_invalid_tracking_host_returns_false(self):
        recorder = Recorder()
        settings = CollectorSettings(
            api_key="k", server_token="t", tracking_host="https://exa mple.com:abc"
        )
        client = make_client(settings, recorder)

        assert client.send_event("add_to_cart") is False
        assert recorder.requests == []

    def test_invalid_server_side_host_returns_false(self):
        recorder = Recorder()
        settings = CollectorSettings(
            api_key="k", server_token="t", server_side_host="https://exa mple.com:abc"
        )
        client = make_client(settings, recorder)
        company = {"id": "c1", "name": "Acme", "created_at": "2024-01-01"}

        assert client.send_server_side_event(1, "plan_upgraded", company) is False
        assert recorder.requests == []


class TestServerSideEvent:
    def test_payload(self, settings):
        recorder = Recorder()
        client = make_client(settings, recorder)
        company = {"id": "c1", "name": "Acme", "created_at": "2024-01-01"}

        ok = client.send_server_side_event(42, "plan_upgraded", company, {"plan": "pro"})

        assert ok is True
        request = recorder.requests[0]
        assert request.url.host == "eventcollectors.usermaven.com"
        assert request.url.params["token"] == "UMkey123.srv_tok"
        body = recorder.last_body
        assert body["user_id"] == "42"
        assert body["src"] == "usermaven-python"
        assert body["event_id"] == ""
        assert body["ids"] == {}
        assert body["screen_resolution"] == "0"
        assert body["company"] == company
        assert body["event_attributes"] == {"plan": "pro"}

    def test_incomplete_company_raises(self, settings):
        recorder = Recorder()
        client = make_client(settings, recorder)

        with pytest.raises(InvalidCompanyError):
            client.send_server_side_event(42, "plan_upgraded", {"id": "c1", "name": "Acme"})
        assert recorder.requests == []


class TestLifecycle:
    def test_close_is_idempotent(self, settings):
        client = make_client(settings, Recorder())
        client.send_event("page_view")

        client.close()
        client.close()

        assert client._client is None

    def test_context_manager_closes(self, settings):
        with make_client(settings, Recorder()) as client:
            client.send_event("page_view")
        assert client._client is None


class TestApiKeyValidation:
    def test_valid(self):
        assert is_valid_api_key("UMabc_12-3")

    def test_invalid(self):
        assert not is_valid_api_key(None)
        assert not is_valid_api_key("")
        assert not is_valid_api_key("a b")
