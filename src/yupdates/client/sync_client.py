"""Synchronous API client that hides the event loop.

:class:`SyncYupdatesClient` wraps an
:class:`~yupdates.client.async_client.AsyncYupdatesClient` and a private
:class:`~yupdates.client.runner.LoopRunner`.  Every method submits the
matching async call to the runner's loop and blocks the calling thread
until it resolves, returning the same value or raising the same error.

- **No runtime setup** -- the caller never creates an event loop; the
  client also works when called from code that already runs one.
- **Scoped lifetime** -- the loop thread starts at construction and is
  torn down by :meth:`~SyncYupdatesClient.close`, by leaving a ``with``
  block, or when the client is garbage-collected.
- **Thread safety** -- calls from several threads are all driven on the
  one owned loop, where they interleave like concurrent tasks.  Sharing
  one client between threads is supported; one client per thread works
  too.

See Also:
    :class:`~yupdates.client.async_client.AsyncYupdatesClient` for the
    non-blocking equivalent.
"""

from __future__ import annotations

import weakref
from collections.abc import Sequence
from typing import Optional

import httpx

from yupdates import api
from yupdates.client.async_client import AsyncYupdatesClient
from yupdates.client.runner import LoopRunner
from yupdates.models import (
    ClientConfig,
    FeedItemPage,
    InputItem,
    NewInputItemsResponse,
    PingResponse,
    ReadOptions,
    RetryPolicy,
)
from yupdates.pagination import FeedItemIterator


class SyncYupdatesClient:
    """Blocking client for the API.

    Args:
        config: Base URL, token, timeout and retry policy.
        http_client: Optional :class:`httpx.AsyncClient` to send requests
            with.  It is driven on the client's own loop thread.

    Example::

        with SyncYupdatesClient(ClientConfig.from_env()) as client:
            client.ping()
            for item in client.read_items(feed_id, limit=25):
                print(item.title)
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client = AsyncYupdatesClient(config, http_client=http_client)
        self._runner = LoopRunner()
        self._finalizer = weakref.finalize(self, _shutdown, self._runner, self._client)

    @property
    def config(self) -> ClientConfig:
        return self._client.config

    @property
    def async_client(self) -> AsyncYupdatesClient:
        return self._client

    @property
    def runner(self) -> LoopRunner:
        return self._runner

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> SyncYupdatesClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client and stop the owned loop thread. Idempotent."""
        self._finalizer()

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def ping(self) -> PingResponse:
        """See :func:`yupdates.api.ping`."""
        return self._runner.run(self._client.ping())

    def ping_bool(self) -> bool:
        """See :func:`yupdates.api.ping_bool`."""
        return self._runner.run(self._client.ping_bool())

    def read_items(
        self,
        feed_id: str,
        limit: Optional[int] = None,
        options: Optional[ReadOptions] = None,
    ) -> FeedItemIterator:
        """Lazily read items from a feed, most recent first.

        Arguments are validated immediately; each page is fetched on the
        owned loop when the returned iterator runs out of buffered items.

        Raises:
            ValidationError: For an invalid feed ID, limit or options.
        """
        feed_id, validated = api.validate_read_request(feed_id, limit, options)

        def fetch_page(page_options: ReadOptions) -> FeedItemPage:
            return self._runner.run(self._client.read_items_page(feed_id, page_options))

        return FeedItemIterator(fetch_page, validated, limit)

    def read_items_page(
        self,
        feed_id: str,
        options: Optional[ReadOptions] = None,
    ) -> FeedItemPage:
        """Read a single page of items. See :func:`yupdates.api.read_items_page`."""
        return self._runner.run(self._client.read_items_page(feed_id, options))

    def new_items(self, items: Sequence[InputItem]) -> NewInputItemsResponse:
        """See :func:`yupdates.api.new_items`."""
        return self._runner.run(self._client.new_items(items))

    def new_items_all(self, items: Sequence[InputItem], sleep_ms: int = 128) -> str:
        """See :func:`yupdates.api.new_items_all`."""
        return self._runner.run(self._client.new_items_all(items, sleep_ms))


def _shutdown(runner: LoopRunner, client: AsyncYupdatesClient) -> None:
    # Runs from close() or the finalizer; must not reference the SyncYupdatesClient.
    if not runner.is_closed:
        try:
            runner.run(client.aclose())
        finally:
            runner.close()


def new_sync_client(
    token: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: float = 30.0,
    retry: Optional[RetryPolicy] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> SyncYupdatesClient:
    """Create a :class:`SyncYupdatesClient` from the environment.

    Explicit arguments override ``YUPDATES_API_TOKEN`` and ``YUPDATES_API_URL``.

    Raises:
        ConfigurationError: If no token is available.
    """
    config = ClientConfig.from_env(token=token, base_url=base_url, timeout=timeout, retry=retry)
    return SyncYupdatesClient(config, http_client=http_client)
