"""API clients for yupdates.

Provides a non-blocking and a blocking client over the same operation
layer (:mod:`yupdates.api`) and transport (:mod:`yupdates.transport`).

Classes:
    :class:`AsyncYupdatesClient` -- coroutine methods, for use inside an event loop.
    :class:`SyncYupdatesClient` -- blocking methods driven on a private loop thread.

Both accept a :class:`~yupdates.models.ClientConfig` and an optional
:class:`httpx.AsyncClient`, expose the same method names, and are
designed to be used as context managers.

Example::

    from yupdates.client import new_sync_client

    with new_sync_client() as client:
        print(client.ping().message)
"""

from yupdates.client.async_client import AsyncYupdatesClient, new_async_client
from yupdates.client.sync_client import SyncYupdatesClient, new_sync_client

__all__ = [
    "AsyncYupdatesClient",
    "SyncYupdatesClient",
    "new_async_client",
    "new_sync_client",
]
