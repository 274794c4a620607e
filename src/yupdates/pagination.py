"""Lazy, forward-only iteration over paginated feed reads.

A feed read may span several requests.  :class:`FeedPager` holds the only
state carried between them -- the continuation cursor, the number of
items still wanted, and whether the feed is exhausted -- and computes the
:class:`~yupdates.models.ReadOptions` for the next request.  The two
iterators drive the same pager:

- :class:`FeedItemIterator` -- a plain iterator over a blocking
  ``fetch_page(options) -> FeedItemPage`` callable.
- :class:`AsyncFeedItemIterator` -- an async iterator over a coroutine
  function with the same signature.

Each advance returns the next buffered item or, once the buffer is empty,
fetches one more page.  Iteration stops without another request when the
limit is reached, when a page comes back empty, or when the page carries no
cursor.  A failed fetch raises at the advance that triggered it, exactly
once; items already produced stay valid and the iterator is finished.

Example::

    pages = {None: page_one, "c1": page_two}
    items = list(FeedItemIterator(lambda opts: pages[opts.item_time_before], ReadOptions()))
"""

from __future__ import annotations

from collections import deque
from collections.abc import AsyncIterator, Awaitable, Iterator
from typing import Callable, Optional

from yupdates.models import FeedItem, FeedItemPage, ReadOptions

FetchPage = Callable[[ReadOptions], FeedItemPage]
AsyncFetchPage = Callable[[ReadOptions], Awaitable[FeedItemPage]]


class FeedPager:
    """Continuation state threaded between page fetches.

    The page size is ``options.max_items``; each request asks for at most
    the number of items still needed to reach ``limit``.  Without
    ``item_time_after`` the pager walks back in time by moving
    ``item_time_before`` to each page's cursor.  With it, the pager walks
    forward by moving ``item_time_after`` instead.

    Args:
        options: Validated options for the first request.
        limit: Total number of items to produce, or ``None`` for all.
    """

    def __init__(self, options: ReadOptions, limit: Optional[int] = None) -> None:
        self._options = options
        self._remaining = limit
        self._forward = options.item_time_after is not None
        self._cursor: Optional[str] = None
        self._exhausted = False
        self._pages_fetched = 0

    @property
    def cursor(self) -> Optional[str]:
        return self._cursor

    @property
    def exhausted(self) -> bool:
        return self._exhausted or self._remaining == 0

    @property
    def pages_fetched(self) -> int:
        return self._pages_fetched

    def next_options(self) -> Optional[ReadOptions]:
        """Return the options for the next request, or ``None`` when done."""
        if self.exhausted:
            return None

        update: dict[str, object] = {}
        if self._remaining is not None:
            update["max_items"] = min(self._options.max_items, self._remaining)
        if self._cursor is not None:
            key = "item_time_after" if self._forward else "item_time_before"
            update[key] = self._cursor
        return self._options.model_copy(update=update) if update else self._options

    def accept(self, page: FeedItemPage) -> list[FeedItem]:
        """Record a fetched page and return the items to hand out from it."""
        self._pages_fetched += 1
        items = list(page.items)
        if self._remaining is not None:
            items = items[: self._remaining]
            self._remaining -= len(items)

        if not page.items or page.next_cursor is None:
            self._exhausted = True
        else:
            self._cursor = page.next_cursor
        return items

    def finish(self) -> None:
        """Mark the sequence as ended (after a failed fetch)."""
        self._exhausted = True


class FeedItemIterator(Iterator[FeedItem]):
    """Blocking lazy sequence of :class:`~yupdates.models.FeedItem`.

    Not restartable: ``iter()`` returns the iterator itself.
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        options: ReadOptions,
        limit: Optional[int] = None,
    ) -> None:
        self._fetch_page = fetch_page
        self._pager = FeedPager(options, limit)
        self._buffer: deque[FeedItem] = deque()

    @property
    def pager(self) -> FeedPager:
        return self._pager

    def __iter__(self) -> FeedItemIterator:
        return self

    def __next__(self) -> FeedItem:
        while not self._buffer:
            options = self._pager.next_options()
            if options is None:
                raise StopIteration
            try:
                page = self._fetch_page(options)
            except BaseException:
                self._pager.finish()
                raise
            self._buffer.extend(self._pager.accept(page))
        return self._buffer.popleft()


class AsyncFeedItemIterator(AsyncIterator[FeedItem]):
    """Non-blocking lazy sequence of :class:`~yupdates.models.FeedItem`.

    Use with ``async for``.  Not restartable: ``aiter()`` returns the
    iterator itself.
    """

    def __init__(
        self,
        fetch_page: AsyncFetchPage,
        options: ReadOptions,
        limit: Optional[int] = None,
    ) -> None:
        self._fetch_page = fetch_page
        self._pager = FeedPager(options, limit)
        self._buffer: deque[FeedItem] = deque()

    @property
    def pager(self) -> FeedPager:
        return self._pager

    def __aiter__(self) -> AsyncFeedItemIterator:
        return self

    async def __anext__(self) -> FeedItem:
        while not self._buffer:
            options = self._pager.next_options()
            if options is None:
                raise StopAsyncIteration
            try:
                page = await self._fetch_page(options)
            except BaseException:
                self._pager.finish()
                raise
            self._buffer.extend(self._pager.accept(page))
        return self._buffer.popleft()
