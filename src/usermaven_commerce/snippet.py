"""Front-end tracking snippet for pages rendered by the host."""

from __future__ import annotations

from html import escape

from usermaven_commerce.settings import DEFAULT_TRACKING_HOST, CollectorSettings

DEFAULT_SCRIPT_URL = "https://t.usermaven.com/lib.js"


def script_url(tracking_host: str) -> str:
    host = tracking_host.rstrip("/")
    if host == DEFAULT_TRACKING_HOST:
        return DEFAULT_SCRIPT_URL
    return f"{host}/lib.js"


def tracking_script(settings: CollectorSettings) -> str:
    """Render the ``<script>`` tag that loads the Usermaven pixel."""
    attrs = [
        ("src", script_url(settings.tracking_host)),
        ("data-key", settings.api_key),
        ("data-tracking-host", settings.tracking_host),
    ]
    if settings.autocapture:
        attrs.append(("data-autocapture", "true"))
    if settings.cookie_less_tracking:
        attrs.append(("data-privacy-policy", "strict"))

    rendered = " ".join(f'{name}="{escape(value, quote=True)}"' for name, value in attrs)
    return f"<script type=\"text/javascript\" {rendered} defer></script>"
