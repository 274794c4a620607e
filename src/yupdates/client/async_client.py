"""Asynchronous API client.

This module provides :class:`AsyncYupdatesClient`, which holds a
:class:`~yupdates.models.ClientConfig` and one
:class:`~yupdates.transport.AsyncTransport` and exposes every operation
in :mod:`yupdates.api` as a coroutine method.  Suspension happens only at
the transport's I/O boundary.

The client is safe to share between concurrent tasks: its configuration is
frozen and the transport keeps no per-call state, so independent calls
only contend for the HTTP connection pool.

See Also:
    :class:`~yupdates.client.sync_client.SyncYupdatesClient` for the
    blocking equivalent.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Optional

import httpx

from yupdates import api
from yupdates.models import (
    ClientConfig,
    FeedItemPage,
    InputItem,
    NewInputItemsResponse,
    PingResponse,
    ReadOptions,
    RetryPolicy,
)
from yupdates.pagination import AsyncFeedItemIterator
from yupdates.transport import AsyncTransport


class AsyncYupdatesClient:
    """Non-blocking client for the API.

    Args:
        config: Base URL, token, timeout and retry policy.
        http_client: Optional :class:`httpx.AsyncClient` to send requests
            with.  A client passed in is not closed by :meth:`aclose`.

    Example::

        async with AsyncYupdatesClient(ClientConfig.from_env()) as client:
            await client.ping()
            async for item in client.read_items(feed_id, limit=25):
                print(item.title)
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._transport = AsyncTransport(config, http_client=http_client)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> AsyncTransport:
        return self._transport

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncYupdatesClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the HTTP client if this client created it."""
        await self._transport.aclose()

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def ping(self) -> PingResponse:
        """See :func:`yupdates.api.ping`."""
        return await api.ping(self._transport)

    async def ping_bool(self) -> bool:
        """See :func:`yupdates.api.ping_bool`."""
        return await api.ping_bool(self._transport)

    def read_items(
        self,
        feed_id: str,
        limit: Optional[int] = None,
        options: Optional[ReadOptions] = None,
    ) -> AsyncFeedItemIterator:
        """Lazily read items from a feed, most recent first.

        This is a plain method: arguments are validated immediately and
        pages are fetched as the returned iterator is advanced.

        Args:
            feed_id: The 45 character feed ID.
            limit: Maximum number of items to produce across all pages.
                ``None`` reads until the feed is exhausted.
            options: Page size, content flag and item-time bound.

        Raises:
            ValidationError: For an invalid feed ID, limit or options.
        """
        feed_id, validated = api.validate_read_request(feed_id, limit, options)

        async def fetch_page(page_options: ReadOptions) -> FeedItemPage:
            return await api.read_items_page(self._transport, feed_id, page_options)

        return AsyncFeedItemIterator(fetch_page, validated, limit)

    async def read_items_page(
        self,
        feed_id: str,
        options: Optional[ReadOptions] = None,
    ) -> FeedItemPage:
        """Read a single page of items. See :func:`yupdates.api.read_items_page`."""
        return await api.read_items_page(self._transport, feed_id, options)

    async def new_items(self, items: Sequence[InputItem]) -> NewInputItemsResponse:
        """See :func:`yupdates.api.new_items`."""
        return await api.new_items(self._transport, items)

    async def new_items_all(self, items: Sequence[InputItem], sleep_ms: int = 128) -> str:
        """See :func:`yupdates.api.new_items_all`."""
        return await api.new_items_all(self._transport, items, sleep_ms)


def new_async_client(
    token: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: float = 30.0,
    retry: Optional[RetryPolicy] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AsyncYupdatesClient:
    """Create an :class:`AsyncYupdatesClient` from the environment.

    Explicit arguments override ``YUPDATES_API_TOKEN`` and ``YUPDATES_API_URL``.

    Raises:
        ConfigurationError: If no token is available.
    """
    config = ClientConfig.from_env(token=token, base_url=base_url, timeout=timeout, retry=retry)
    return AsyncYupdatesClient(config, http_client=http_client)
