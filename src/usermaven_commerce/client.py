"""Synchronous HTTP client for the Usermaven event collector.

One POST per event, no buffering and no retries. Failures are logged and
reported as ``False`` so analytics can never break the host request.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Mapping, Optional, Union

import httpx

from usermaven_commerce.errors import InvalidCompanyError
from usermaven_commerce.events import (
    CollectorEvent,
    Company,
    EventType,
    RequestContext,
    UserIdentity,
)
from usermaven_commerce.settings import CollectorSettings

logger = logging.getLogger(__name__)

_API_KEY_RE = re.compile(r"[A-Za-z0-9_-]+")

SERVER_SIDE_SRC = "usermaven-python"


def is_valid_api_key(api_key: Optional[str]) -> bool:
    return bool(api_key) and bool(_API_KEY_RE.fullmatch(api_key))


class CollectorClient:
    """Posts events to ``{tracking_host}/api/v1/s2s/event``.

    Usage::

        client = CollectorClient(CollectorSettings.from_env())
        ok = client.send_event(
            "add_to_cart",
            UserIdentity(anonymous_id="abc"),
            {"product_id": 12, "quantity": 2},
        )
        client.close()
    """

    def __init__(
        self,
        settings: CollectorSettings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    # -- lazy init --

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.settings.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    # -- public API --

    def send_event(
        self,
        event_type: Union[EventType, str],
        user: Optional[UserIdentity] = None,
        attributes: Optional[Mapping[str, Any]] = None,
        company: Optional[Company] = None,
        context: Optional[RequestContext] = None,
    ) -> bool:
        """Build and send one event. Returns True when the collector said ok."""
        event = CollectorEvent(
            event_type=event_type.value
            if isinstance(event_type, EventType)
            else str(event_type),
            event_attributes=dict(attributes or {}),
            user=user or UserIdentity(),
            company=company or Company(),
            context=context or RequestContext(),
        )
        return self.send(event)

    def send(self, event: CollectorEvent) -> bool:
        api_key = self.settings.api_key
        if not is_valid_api_key(api_key):
            logger.warning(
                "Usermaven API key missing or malformed; dropping %s event",
                event.event_type,
            )
            return False

        return self._post(
            self.settings.event_url,
            event.to_payload(api_key),
            event_type=event.event_type,
        )

    def send_server_side_event(
        self,
        user_id: Union[str, int],
        event_type: str,
        company: Mapping[str, Any],
        attributes: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Send a plain server-side event (no cookie identity or page context).

        ``company`` must carry ``id``, ``name`` and ``created_at``.
        """
        if not company or any(k not in company for k in ("id", "name", "created_at")):
            raise InvalidCompanyError(
                "company must contain id, name and created_at"
            )

        api_key = self.settings.api_key
        if not is_valid_api_key(api_key):
            logger.warning(
                "Usermaven API key missing or malformed; dropping %s event",
                event_type,
            )
            return False

        payload = {
            "api_key": api_key,
            "event_type": event_type,
            "event_id": "",
            "ids": {},
            "user_id": str(user_id),
            "screen_resolution": "0",
            "src": SERVER_SIDE_SRC,
            "event_attributes": dict(attributes or {}),
            "company": dict(company),
        }
        return self._post(
            self.settings.server_side_url, payload, event_type=event_type
        )

    def close(self):
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "CollectorClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- internals --

    def _post(self, url: str, payload: Dict[str, Any], *, event_type: str) -> bool:
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as exc:
            logger.error("Cannot encode %s event: %s", event_type, exc)
            return False

        try:
            response = self._get_client().post(
                url, params={"token": self.settings.token}, content=body
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Usermaven API error sending %s: %s", event_type, exc)
            return False

        if response.is_error:
            logger.warning(
                "Collector rejected %s event: HTTP %d", event_type, response.status_code
            )
            return False

        try:
            result = response.json()
        except ValueError:
            logger.warning("Collector returned non-JSON reply for %s event", event_type)
            return False

        if not isinstance(result, dict) or result.get("status") != "ok":
            logger.warning("Collector reply for %s event not ok: %r", event_type, result)
            return False

        logger.debug("Sent %s event", event_type)
        return True
