"""yupdates -- typed Python client for the Yupdates feed API.

The SDK wraps the service's HTTP+JSON API with typed requests and
responses and offers two calling conventions over one implementation:

* :class:`AsyncYupdatesClient` -- ``await`` each call inside your event loop.
* :class:`SyncYupdatesClient` -- plain blocking calls; the client runs its
  own event loop on a private thread, so scripts need no async setup.

Both read ``YUPDATES_API_TOKEN`` (and optionally ``YUPDATES_API_URL``)
when built with :func:`new_sync_client` / :func:`new_async_client`.

Synchronous example::

    from yupdates import new_sync_client

    with new_sync_client() as yup:
        yup.ping()
        for item in yup.read_items("02fb24a4478462a4491067224b66d9a8b2338ddca2737", limit=20):
            print(item.title)

Asynchronous example::

    from yupdates import new_async_client

    async with new_async_client() as yup:
        async for item in yup.read_items(feed_id):
            print(item.title)

Modules:
    api: One coroutine per API operation, plus request validation.
    client: The async and sync client facades.
    config: Environment variables and value normalisation.
    exceptions: Error taxonomy rooted at :class:`YupdatesError`.
    models: Frozen Pydantic request, response and configuration models.
    output: stderr debug diagnostics (silent by default).
    pagination: Lazy iterators over paginated feed reads.
    transport: The httpx-based transport adapter.
"""

from yupdates.client import (
    AsyncYupdatesClient,
    SyncYupdatesClient,
    new_async_client,
    new_sync_client,
)
from yupdates.config import SDK_VERSION, normalize_item_time, normalize_item_time_ms
from yupdates.exceptions import (
    ConfigurationError,
    DeserializationError,
    ServiceError,
    TransportError,
    ValidationError,
    YupdatesError,
)
from yupdates.models import (
    AssociatedFile,
    ClientConfig,
    FeedItem,
    FeedItemPage,
    InputItem,
    NewInputItemsResponse,
    PingResponse,
    ReadOptions,
    RetryPolicy,
)
from yupdates.pagination import AsyncFeedItemIterator, FeedItemIterator

__version__ = SDK_VERSION

__all__ = [
    # Clients
    "AsyncYupdatesClient",
    "SyncYupdatesClient",
    "new_async_client",
    "new_sync_client",
    # Models
    "AssociatedFile",
    "ClientConfig",
    "FeedItem",
    "FeedItemPage",
    "InputItem",
    "NewInputItemsResponse",
    "PingResponse",
    "ReadOptions",
    "RetryPolicy",
    # Iteration
    "AsyncFeedItemIterator",
    "FeedItemIterator",
    # Errors
    "YupdatesError",
    "ConfigurationError",
    "ValidationError",
    "TransportError",
    "ServiceError",
    "DeserializationError",
    # Helpers
    "normalize_item_time",
    "normalize_item_time_ms",
]
