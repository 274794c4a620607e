"""Private execution context for driving coroutines from blocking code.

:class:`LoopRunner` owns one asyncio event loop running on a dedicated
daemon thread.  Blocking callers hand it a coroutine via :meth:`run` and
wait for the result; the coroutine is scheduled with
:func:`asyncio.run_coroutine_threadsafe`, so:

- the caller does not need an event loop of its own, and may even be
  running inside someone else's loop;
- any number of threads may call :meth:`run` at once -- their coroutines
  interleave on the single loop exactly as concurrent tasks would.

The loop and thread live until :meth:`close`, which stops the loop,
cancels anything still in flight, joins the thread and closes the loop.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import itertools
import threading
from collections.abc import Coroutine
from typing import Any, Optional, TypeVar

from yupdates.exceptions import ConfigurationError

T = TypeVar("T")

_runner_ids = itertools.count(1)


class LoopRunner:
    """An event loop on its own thread, started at construction."""

    def __init__(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._closed = False
        self._lock = threading.Lock()
        self._started = threading.Event()
        self._thread = threading.Thread(
            target=self._serve,
            name=f"yupdates-loop-{next(_runner_ids)}",
            daemon=True,
        )
        self._thread.start()
        self._started.wait()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def thread(self) -> threading.Thread:
        return self._thread

    @property
    def is_closed(self) -> bool:
        return self._closed

    def run(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
        """Run ``coro`` on the owned loop and block until it finishes.

        Exceptions raised by the coroutine propagate unchanged.

        Raises:
            ConfigurationError: If the runner has been closed, including
                when it is closed while ``coro`` is still running.
        """
        with self._lock:
            if self._closed:
                coro.close()
                raise ConfigurationError("client is closed")
            if threading.current_thread() is self._thread:
                coro.close()
                raise RuntimeError("LoopRunner.run() cannot be called from its own loop thread")
            future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout)
        except concurrent.futures.CancelledError:
            if self._closed:
                raise ConfigurationError("client is closed") from None
            raise

    def close(self) -> None:
        """Stop the loop, join the thread and release the loop. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._loop.call_soon_threadsafe(self._loop.stop)
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def _serve(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._started.set)
        try:
            self._loop.run_forever()
        finally:
            try:
                pending = asyncio.all_tasks(self._loop)
                for task in pending:
                    task.cancel()
                if pending:
                    self._loop.run_until_complete(
                        asyncio.gather(*pending, return_exceptions=True)
                    )
                self._loop.run_until_complete(self._loop.shutdown_asyncgens())
            finally:
                self._loop.close()
