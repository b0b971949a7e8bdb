"""Collector settings.

Defaults point to the hosted Usermaven collector. Override via environment::

    USERMAVEN_API_KEY             — workspace API key (required to send)
    USERMAVEN_SERVER_TOKEN        — server token for server-to-server events
    USERMAVEN_TRACKING_HOST       — custom tracking host
    USERMAVEN_SERVER_SIDE_HOST    — host for plain server-side events
    USERMAVEN_TIMEOUT             — HTTP timeout in seconds
    USERMAVEN_AUTOCAPTURE         — front-end autocapture flag
    USERMAVEN_COOKIE_LESS_TRACKING
    USERMAVEN_TRACK_WOOCOMMERCE   — set to 0 to disable commerce events
    USERMAVEN_CHECKOUT_WINDOW     — checkout dedup window in seconds
    USERMAVEN_ABANDON_AFTER       — cart idle seconds before abandonment
    USERMAVEN_REDACT_PII
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from usermaven_commerce.errors import ConfigurationError

DEFAULT_TRACKING_HOST = "https://events.usermaven.com"
DEFAULT_SERVER_SIDE_HOST = "https://eventcollectors.usermaven.com"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class CollectorSettings:
    """Connection and behaviour settings for the collector client."""

    api_key: str = ""
    server_token: str = ""
    tracking_host: str = DEFAULT_TRACKING_HOST
    server_side_host: str = DEFAULT_SERVER_SIDE_HOST
    timeout: float = 10.0

    # front-end snippet
    autocapture: bool = False
    cookie_less_tracking: bool = False

    # commerce tracking
    track_woocommerce: bool = True
    checkout_window_seconds: int = 300
    abandon_after_seconds: int = 3600
    redact_pii: bool = False

    def __post_init__(self):
        self.tracking_host = (self.tracking_host or DEFAULT_TRACKING_HOST).rstrip("/")
        self.server_side_host = (
            self.server_side_host or DEFAULT_SERVER_SIDE_HOST
        ).rstrip("/")

    @property
    def event_url(self) -> str:
        return f"{self.tracking_host}/api/v1/s2s/event"

    @property
    def server_side_url(self) -> str:
        return f"{self.server_side_host}/api/v1/s2s/event/"

    @property
    def token(self) -> str:
        return f"{self.api_key}.{self.server_token}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CollectorSettings":
        env = os.environ if environ is None else environ

        def _str(name: str, default: str = "") -> str:
            return env.get(name, "").strip() or default

        def _bool(name: str, default: bool) -> bool:
            raw = env.get(name, "").strip().lower()
            if not raw:
                return default
            return raw in _TRUTHY

        def _number(name: str, default, kind):
            raw = env.get(name, "").strip()
            if not raw:
                return default
            try:
                return kind(raw)
            except ValueError:
                raise ConfigurationError(f"{name} must be a number, got {raw!r}")

        return cls(
            api_key=_str("USERMAVEN_API_KEY"),
            server_token=_str("USERMAVEN_SERVER_TOKEN"),
            tracking_host=_str("USERMAVEN_TRACKING_HOST", DEFAULT_TRACKING_HOST),
            server_side_host=_str("USERMAVEN_SERVER_SIDE_HOST", DEFAULT_SERVER_SIDE_HOST),
            timeout=_number("USERMAVEN_TIMEOUT", 10.0, float),
            autocapture=_bool("USERMAVEN_AUTOCAPTURE", False),
            cookie_less_tracking=_bool("USERMAVEN_COOKIE_LESS_TRACKING", False),
            track_woocommerce=_bool("USERMAVEN_TRACK_WOOCOMMERCE", True),
            checkout_window_seconds=_number("USERMAVEN_CHECKOUT_WINDOW", 300, int),
            abandon_after_seconds=_number("USERMAVEN_ABANDON_AFTER", 3600, int),
            redact_pii=_bool("USERMAVEN_REDACT_PII", False),
        )
