"""Shared test fixtures for yupdates.

Provides an isolated environment, a ready-made client configuration, and
:class:`FakeApi` -- an in-memory stand-in for the feed service served
through :class:`httpx.MockTransport`.  No test touches the network.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, Optional, Union

import httpx
import pytest

from yupdates.models import ClientConfig
from yupdates.output import reset_output


BASE_URL = "https://feeds.test/api/v0/"
TOKEN = "test-token-123"
FEED_ID = "02fb24a4478462a4491067224b66d9a8b2338ddca2737"

Reply = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The manager binds to ``sys.stderr`` when created; a fresh one per test
    keeps capsys captures from leaking.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear YUPDATES_* variables so the developer's shell never leaks in."""
    monkeypatch.delenv("YUPDATES_API_TOKEN", raising=False)
    monkeypatch.delenv("YUPDATES_API_URL", raising=False)


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status_code, json=data)


def item_time(ms: int, suffix: int = 0) -> str:
    return f"{ms:013d}.{suffix:05d}"


def feed_item_data(ms: int, **overrides: Any) -> dict[str, Any]:
    """A feed item as the service serialises it."""
    data = {
        "feed_id": FEED_ID,
        "item_id": f"item-{ms}",
        "input_id": f"input-{ms}",
        "title": f"Item {ms}",
        "canonical_url": f"https://example.com/{ms}",
        "item_time": item_time(ms),
        "item_time_ms": ms,
        "deleted": False,
    }
    data.update(overrides)
    return data


def feed_page(*times_ms: int) -> httpx.Response:
    """A canned ``GET feeds/{id}/`` reply holding items at ``times_ms``, in order."""
    return json_response({"code": 200, "feed_items": [feed_item_data(ms) for ms in times_ms]})


# ---------------------------------------------------------------------------
# Fake service
# ---------------------------------------------------------------------------


class FakeApi:
    """Route table behind an :class:`httpx.MockTransport`.

    Routes are keyed by method and path relative to :data:`BASE_URL`.  Each
    route holds a queue of replies; the last reply repeats once the queue
    is down to one.  A reply may be a response, an exception to raise, or a
    callable taking the request.  Every request is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Reply]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *replies: Reply) -> None:
        self.routes[(method, path)] = list(replies)

    def ping_ok(self) -> None:
        self.add("GET", "ping/", json_response({"code": 200, "message": "pong"}))

    def serve_feed(self, times_ms: list[int], feed_id: str = FEED_ID) -> None:
        """Serve ``GET feeds/{feed_id}/`` over items at ``times_ms``.

        Honours ``max_items`` and the exclusive item-time bounds.  Without a
        lower bound the newest items are returned; with ``item_time_after``
        the oldest items after it are returned.  Both are newest first.
        """
        items = sorted((feed_item_data(ms) for ms in times_ms), key=lambda d: d["item_time"], reverse=True)

        def handler(request: httpx.Request) -> httpx.Response:
            params = request.url.params
            max_items = int(params.get("max_items", "10"))
            selected = items
            before = params.get("item_time_before")
            after = params.get("item_time_after")
            if before is not None:
                selected = [d for d in selected if d["item_time"] < before]
            if after is not None:
                selected = [d for d in selected if d["item_time"] > after][-max_items:]
            else:
                selected = selected[:max_items]
            return json_response({"code": 200, "feed_items": selected})

        self.add("GET", f"feeds/{feed_id}/", handler)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if _relative_path(r) == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, _relative_path(request))
        replies = self.routes.get(key)
        if not replies:
            return json_response({"code": 404, "error": "Not found", "error_detail": key[1]}, 404)
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        # httpx binds a response to its request, so hand out a fresh copy
        return httpx.Response(reply.status_code, headers=reply.headers, content=reply.content)

    def async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def _relative_path(request: httpx.Request) -> str:
    prefix = httpx.URL(BASE_URL).path
    path = request.url.path
    return path[len(prefix):] if path.startswith(prefix) else path


def request_json(request: httpx.Request) -> Optional[Any]:
    return json.loads(request.content) if request.content else None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(token=TOKEN, base_url=BASE_URL, timeout=5.0)
