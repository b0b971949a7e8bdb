"""Starlette ASGI middleware that records page views.

Usage::

    from starlette.applications import Starlette
    from starlette.middleware.sessions import SessionMiddleware
    from usermaven_commerce import CommerceTracker, PageViewMiddleware

    tracker = CommerceTracker()
    app = Starlette(routes=[...])
    app.add_middleware(PageViewMiddleware, tracker=tracker)
    app.add_middleware(SessionMiddleware, secret_key="...")
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from starlette.background import BackgroundTask, BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from usermaven_commerce.events import RequestContext
from usermaven_commerce.models import SiteUser, Visit

logger = logging.getLogger(__name__)

UserResolver = Callable[[Request], Optional[SiteUser]]
TitleResolver = Callable[[Request], str]


def state_page_title(request: Request) -> str:
    """Title a handler left on ``request.state.page_title``, or ""."""
    return str(getattr(request.state, "page_title", "") or "")


def visit_from_request(
    request: Request, user_resolver: Optional[UserResolver] = None
) -> Visit:
    """Build a Visit from a Starlette request.

    The session is Starlette's session scope when SessionMiddleware is
    installed, otherwise a throwaway dict.
    """
    session = request.scope.get("session")
    if session is None:
        session = {}

    user = None
    if user_resolver is not None:
        try:
            user = user_resolver(request)
        except Exception:
            logger.exception("User resolver failed; tracking visitor anonymously")

    client_ip = request.client.host if request.client else ""
    context = RequestContext.from_headers(
        request.headers, path=request.url.path, client_ip=client_ip
    )
    return Visit(session=session, cookies=request.cookies, user=user, context=context)


class PageViewMiddleware(BaseHTTPMiddleware):
    """Record ``page_view`` for every successful HTML GET response.

    The collector call runs as a response background task, after the page
    has been sent, so analytics latency never delays rendering. Paths under
    the excluded prefixes (assets, admin, REST API) are passed through.

    The page title comes from ``title_resolver``; by default a handler sets
    it with ``request.state.page_title = "..."``.
    """

    EXCLUDED_PREFIXES = (
        "/static",
        "/assets",
        "/wp-admin",
        "/wp-json",
        "/wp-content",
        "/favicon.ico",
        "/robots.txt",
    )

    def __init__(
        self,
        app: Any,
        tracker: Any,
        user_resolver: Optional[UserResolver] = None,
        excluded_prefixes: Optional[Sequence[str]] = None,
        title_resolver: TitleResolver = state_page_title,
    ) -> None:
        super().__init__(app)
        self.tracker = tracker
        self.user_resolver = user_resolver
        self.title_resolver = title_resolver
        self.excluded_prefixes = tuple(
            excluded_prefixes if excluded_prefixes is not None else self.EXCLUDED_PREFIXES
        )

    def _should_track(self, request: Request, response: Response) -> bool:
        if request.method != "GET":
            return False
        if any(request.url.path.startswith(p) for p in self.excluded_prefixes):
            return False
        if not 200 <= response.status_code < 300:
            return False
        content_type = response.headers.get("content-type", "")
        return content_type.startswith("text/html")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if not self._should_track(request, response):
            return response

        try:
            visit = visit_from_request(request, self.user_resolver)
            page_title = self.title_resolver(request)
        except Exception:
            logger.exception("Page view tracking failed for %s", request.url.path)
            return response

        task = BackgroundTask(self.tracker.track_page_view, visit, page_title)
        existing = getattr(response, "background", None)
        if existing is None:
            response.background = task
        else:
            response.background = BackgroundTasks(tasks=[existing, task])
        return response
