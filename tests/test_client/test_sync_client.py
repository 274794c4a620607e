"""Tests for the synchronous client facade and its owned event loop."""

from __future__ import annotations

import asyncio
import gc
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from conftest import BASE_URL, FEED_ID, TOKEN, FakeApi, feed_page, item_time, json_response
from yupdates.client.sync_client import SyncYupdatesClient, new_sync_client
from yupdates.exceptions import ConfigurationError, ServiceError, TransportError, ValidationError
from yupdates.models import ClientConfig, InputItem, ReadOptions
from yupdates.pagination import FeedItemIterator


def _client(config: ClientConfig, fake_api: FakeApi) -> SyncYupdatesClient:
    return SyncYupdatesClient(config, http_client=fake_api.async_client())


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestNewSyncClient:
    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("YUPDATES_API_TOKEN", TOKEN)
        monkeypatch.setenv("YUPDATES_API_URL", BASE_URL)
        with new_sync_client() as client:
            assert client.config.auth_token == TOKEN
            assert client.config.base_url == BASE_URL

    def test_missing_token(self) -> None:
        with pytest.raises(ConfigurationError):
            new_sync_client()


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


class TestOperations:
    def test_ping(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.ping_ok()
        with _client(config, fake_api) as client:
            assert client.ping().message == "pong"
            assert client.ping_bool() is True

    def test_ping_message_only_body(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.add("GET", "ping/", json_response({"message": "pong"}))
        with _client(config, fake_api) as client:
            assert client.ping().message == "pong"

    def test_errors_propagate_unchanged(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.add("GET", "ping/", json_response({"code": 403, "error": "Forbidden"}, 403))
        with _client(config, fake_api) as client:
            with pytest.raises(ServiceError) as exc_info:
                client.ping()
        assert exc_info.value.status == 403
        assert exc_info.value.operation == "ping"

    def test_timeout_propagates(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.add("GET", "ping/", httpx.ConnectTimeout("slow"))
        with _client(config, fake_api) as client:
            with pytest.raises(TransportError) as exc_info:
                client.ping()
        assert exc_info.value.is_timeout

    def test_new_items(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.add("POST", "items/", json_response({"code": 200, "feed_id": FEED_ID, "message": "ok"}))
        item = InputItem(title="t", content="c", canonical_url="https://a.test/")
        with _client(config, fake_api) as client:
            assert client.new_items([item]).feed_id == FEED_ID
            assert client.new_items_all([item] * 12, sleep_ms=5) == FEED_ID
        assert len(fake_api.requests) == 3

    def test_read_items_page(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.serve_feed([1, 2])
        with _client(config, fake_api) as client:
            page = client.read_items_page(FEED_ID)
        assert [i.item_time_ms for i in page.items] == [2, 1]


# ---------------------------------------------------------------------------
# Lazy reads
# ---------------------------------------------------------------------------


class TestReadItems:
    def test_fetches_on_demand(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.serve_feed(list(range(1, 13)))
        with _client(config, fake_api) as client:
            iterator = client.read_items(FEED_ID, limit=5, options=ReadOptions(max_items=3))
            assert isinstance(iterator, FeedItemIterator)
            assert fake_api.requests == []

            first = next(iterator)
            assert first.item_time_ms == 12
            assert len(fake_api.requests) == 1

            rest = list(iterator)

        assert [i.item_time_ms for i in rest] == [11, 10, 9, 8]
        assert len(fake_api.requests) == 2

    def test_error_mid_iteration(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.serve_feed(list(range(1, 4)))
        handler = fake_api.routes[("GET", f"feeds/{FEED_ID}/")][0]
        fake_api.add(
            "GET",
            f"feeds/{FEED_ID}/",
            handler,
            json_response({"code": 500, "error": "Internal"}, 500),
        )

        with _client(config, fake_api) as client:
            iterator = client.read_items(FEED_ID, options=ReadOptions(max_items=3))
            assert len([next(iterator) for _ in range(3)]) == 3
            with pytest.raises(ServiceError):
                next(iterator)
            assert list(iterator) == []

        assert len(fake_api.requests) == 2

    def test_validation_is_eager(self, config: ClientConfig, fake_api: FakeApi) -> None:
        with _client(config, fake_api) as client:
            with pytest.raises(ValidationError):
                client.read_items(FEED_ID, options=ReadOptions(max_items=20, include_item_content=True))
        assert fake_api.requests == []


class TestPagedReads:
    """Pages shorter than requested do not end the feed; an empty page does."""

    def test_limit_across_short_pages(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.add("GET", f"feeds/{FEED_ID}/", feed_page(10, 9, 8), feed_page(7, 6), feed_page())

        with _client(config, fake_api) as client:
            items = list(client.read_items(FEED_ID, limit=5))

        assert [i.item_time_ms for i in items] == [10, 9, 8, 7, 6]
        assert len(fake_api.requests) == 2
        assert [r.url.params["max_items"] for r in fake_api.requests] == ["5", "2"]
        assert fake_api.requests[1].url.params["item_time_before"] == item_time(8)

    def test_whole_feed_ends_on_empty_page(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.add("GET", f"feeds/{FEED_ID}/", feed_page(10, 9, 8), feed_page(7, 6), feed_page())

        with _client(config, fake_api) as client:
            items = list(client.read_items(FEED_ID))

        assert len(items) == 5
        assert len(fake_api.requests) == 3

    def test_second_page_failure_at_fourth_advance(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.add(
            "GET",
            f"feeds/{FEED_ID}/",
            feed_page(10, 9, 8),
            json_response({"code": 503, "error": "Unavailable"}, 503),
        )

        with _client(config, fake_api) as client:
            iterator = client.read_items(FEED_ID, limit=5)
            assert [next(iterator).item_time_ms for _ in range(3)] == [10, 9, 8]
            with pytest.raises(ServiceError) as exc_info:
                next(iterator)
            assert list(iterator) == []

        assert exc_info.value.status == 503
        assert len(fake_api.requests) == 2


# ---------------------------------------------------------------------------
# Execution context
# ---------------------------------------------------------------------------


class TestExecutionContext:
    def test_usable_inside_running_loop(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.ping_ok()

        async def main() -> str:
            with _client(config, fake_api) as client:
                return client.ping().message

        assert asyncio.run(main()) == "pong"

    def test_shared_between_threads(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.ping_ok()
        with _client(config, fake_api) as client:

            def work(_: int) -> list[str]:
                return [client.ping().message for _ in range(5)]

            with ThreadPoolExecutor(max_workers=8) as pool:
                results = list(pool.map(work, range(8)))

        assert results == [["pong"] * 5] * 8
        assert len(fake_api.requests) == 40

    def test_one_client_per_thread(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.ping_ok()

        def work(_: int) -> bool:
            with _client(config, fake_api) as client:
                return client.ping_bool()

        with ThreadPoolExecutor(max_workers=4) as pool:
            assert all(pool.map(work, range(4)))

    def test_iterator_consumed_on_another_thread(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.serve_feed(list(range(1, 6)))
        with _client(config, fake_api) as client:
            iterator = client.read_items(FEED_ID, options=ReadOptions(max_items=2))
            with ThreadPoolExecutor(max_workers=1) as pool:
                items = pool.submit(list, iterator).result()
        assert [i.item_time_ms for i in items] == [5, 4, 3, 2, 1]


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_context_manager_closes(self, config: ClientConfig, fake_api: FakeApi) -> None:
        with _client(config, fake_api) as client:
            runner = client.runner
            assert runner.thread.is_alive()
        assert client.closed
        assert runner.is_closed
        assert not runner.thread.is_alive()

    def test_close_is_idempotent(self, config: ClientConfig, fake_api: FakeApi) -> None:
        client = _client(config, fake_api)
        client.close()
        client.close()
        assert client.closed

    def test_calls_after_close(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.ping_ok()
        client = _client(config, fake_api)
        client.close()
        with pytest.raises(ConfigurationError, match="closed"):
            client.ping()
        assert fake_api.requests == []

    def test_iterator_after_close(self, config: ClientConfig, fake_api: FakeApi) -> None:
        fake_api.serve_feed([1, 2])
        client = _client(config, fake_api)
        iterator = client.read_items(FEED_ID)
        client.close()
        with pytest.raises(ConfigurationError):
            next(iterator)

    def test_owned_http_client_closed(self, config: ClientConfig) -> None:
        with SyncYupdatesClient(config) as client:
            transport = client.async_client.transport
        assert transport.is_closed

    def test_garbage_collection_stops_thread(self, config: ClientConfig, fake_api: FakeApi) -> None:
        client = _client(config, fake_api)
        runner = client.runner
        del client
        gc.collect()
        assert runner.is_closed
        assert not runner.thread.is_alive()
