"""Typed API operations -- one coroutine per call the service exposes.

Every client method in :mod:`yupdates.client` ends up here.  Calling
``client.read_items_page(...)`` invokes :func:`read_items_page` with the
client's transport, which carries the stored configuration (HTTP client,
token, base URL).

Each operation follows the same contract:

1. Validate the caller's parameters and raise
   :class:`~yupdates.exceptions.ValidationError` before any I/O.
2. Send the request through :class:`~yupdates.transport.AsyncTransport`,
   retrying only when the configured :class:`~yupdates.models.RetryPolicy`
   opts in.
3. On a 2xx status, deserialise the body into a frozen response model or
   raise :class:`~yupdates.exceptions.DeserializationError`.
4. On any other status, raise :class:`~yupdates.exceptions.ServiceError`
   built from the service's error body when it has one.

Errors raised here record the failing ``operation`` name.

Operations:
    ``ping``       -- ``GET  ping/``
    ``read_items`` -- ``GET  feeds/{feed_id}/``
    ``new_items``  -- ``POST items/``
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any, Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from yupdates.config import normalize_item_time
from yupdates.exceptions import (
    DeserializationError,
    ServiceError,
    TransportError,
    ValidationError,
    YupdatesError,
)
from yupdates.models import (
    ApiErrorData,
    FeedItemPage,
    InputItem,
    NewInputItemsResponse,
    PingResponse,
    ReadFeedItemsResponse,
    ReadOptions,
    RetryPolicy,
)
from yupdates.output import get_output
from yupdates.transport import AsyncTransport, RawResponse

FEED_ID_LENGTH = 45
MAX_ITEMS_PER_READ = 50
MAX_ITEMS_PER_READ_WITH_CONTENT = 10
MAX_ITEMS_PER_WRITE = 10
MIN_SLEEP_MS = 5

M = TypeVar("M", bound=BaseModel)


# ------------------------------------------------------------------ #
# ping(): GET $base_url/ping/
# ------------------------------------------------------------------ #


async def ping(
    transport: AsyncTransport,
    retry: Optional[RetryPolicy] = None,
) -> PingResponse:
    """Test configuration and authentication.

    If this succeeds, the call worked and the token is valid for at least
    some operations.  Any non-2xx status raises, it never yields an empty
    success.
    """
    raw = await _call(transport, "ping", "GET", "ping/", retry)
    return _parse(PingResponse, raw, "ping")


async def ping_bool(transport: AsyncTransport) -> bool:
    """Convenience for ``ping()`` succeeding. Use :func:`ping` when the error matters."""
    try:
        await ping(transport)
    except YupdatesError:
        return False
    return True


# ------------------------------------------------------------------ #
# read_items(): GET $base_url/feeds/$feed_id/
# ------------------------------------------------------------------ #


async def read_items_page(
    transport: AsyncTransport,
    feed_id: str,
    options: Optional[ReadOptions] = None,
    retry: Optional[RetryPolicy] = None,
) -> FeedItemPage:
    """Read one page of items from a feed, most recent first.

    The returned page's ``next_cursor`` is ``None`` only when the service
    returned no items.  Otherwise it is the item time to continue from: the
    oldest item's when walking back in time, or the newest item's when the
    read is bounded by ``item_time_after``.  A page shorter than
    ``max_items`` does not end the feed; only an empty page does.

    Raises:
        ValidationError: For a malformed ``feed_id`` or invalid options.
    """
    feed_id = validate_feed_id(feed_id)
    validated = validate_read_options(options or ReadOptions())

    params: dict[str, Any] = {
        "max_items": str(validated.max_items),
        "include_item_content": "true" if validated.include_item_content else "false",
    }
    if validated.item_time_after is not None:
        params["item_time_after"] = validated.item_time_after
    if validated.item_time_before is not None:
        params["item_time_before"] = validated.item_time_before

    raw = await _call(transport, "read_items", "GET", f"feeds/{feed_id}/", retry, params=params)
    response = _parse(ReadFeedItemsResponse, raw, "read_items")
    items = tuple(response.feed_items)

    next_cursor: Optional[str] = None
    if items:
        if validated.item_time_after is not None:
            next_cursor = items[0].item_time
        else:
            next_cursor = items[-1].item_time
    return FeedItemPage(items=items, next_cursor=next_cursor)


# ------------------------------------------------------------------ #
# new_items(): POST $base_url/items/
# ------------------------------------------------------------------ #


async def new_items(
    transport: AsyncTransport,
    items: Sequence[InputItem],
    retry: Optional[RetryPolicy] = None,
) -> NewInputItemsResponse:
    """Add up to 10 items to a feed (using a feed-specific API token).

    Sending zero items is legal: it verifies the token is authorised for
    this call and returns the matching ``feed_id`` without adding anything.
    """
    if len(items) > MAX_ITEMS_PER_WRITE:
        raise ValidationError(
            f"too many items ({len(items)}). Use new_items_all to send "
            f"{MAX_ITEMS_PER_WRITE} at a time.",
            operation="new_items",
        )
    body = {"items": [item.model_dump(mode="json") for item in items]}
    raw = await _call(transport, "new_items", "POST", "items/", retry, json_body=body)
    return _parse(NewInputItemsResponse, raw, "new_items")


async def new_items_all(
    transport: AsyncTransport,
    items: Sequence[InputItem],
    sleep_ms: int,
    retry: Optional[RetryPolicy] = None,
) -> str:
    """Add any number of items to a feed, 10 at a time.

    Pauses ``sleep_ms`` milliseconds between batches to avoid throttling.

    Returns:
        The feed ID reported by the first batch.
    """
    if sleep_ms < MIN_SLEEP_MS:
        raise ValidationError(
            f"sleep_ms ({sleep_ms}) must be {MIN_SLEEP_MS} or more",
            operation="new_items_all",
        )

    chunks = [
        items[i:i + MAX_ITEMS_PER_WRITE] for i in range(0, len(items), MAX_ITEMS_PER_WRITE)
    ] or [[]]

    feed_id: Optional[str] = None
    for index, chunk in enumerate(chunks):
        response = await new_items(transport, chunk, retry)
        if feed_id is None:
            feed_id = response.feed_id
        if index < len(chunks) - 1:
            await asyncio.sleep(sleep_ms / 1000)

    assert feed_id is not None
    return feed_id


# ------------------------------------------------------------------ #
# Validation
# ------------------------------------------------------------------ #


def validate_read_request(
    feed_id: str,
    limit: Optional[int],
    options: Optional[ReadOptions],
) -> tuple[str, ReadOptions]:
    """Validate the arguments of a lazy feed read before the first fetch."""
    if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 1):
        raise ValidationError(
            f"`limit` must be a positive integer, received {limit!r}",
            operation="read_items",
        )
    return validate_feed_id(feed_id), validate_read_options(options or ReadOptions())


def validate_feed_id(feed_id: str) -> str:
    """Return the trimmed feed ID, or raise if it is not 45 characters."""
    if not isinstance(feed_id, str):
        raise ValidationError(
            f"`feed_id` must be a string, received {type(feed_id).__name__}",
            operation="read_items",
        )
    trimmed = feed_id.strip()
    if len(trimmed) != FEED_ID_LENGTH:
        raise ValidationError(
            f"`feed_id` is expected to be {FEED_ID_LENGTH} characters ('{feed_id}')",
            operation="read_items",
        )
    return trimmed


def validate_read_options(given: ReadOptions) -> ReadOptions:
    """Check ``given`` and return a copy with normalised item times."""
    if given.include_item_content and not 1 <= given.max_items <= MAX_ITEMS_PER_READ_WITH_CONTENT:
        raise ValidationError(
            f"`max_items` must be 1 to {MAX_ITEMS_PER_READ_WITH_CONTENT} when "
            f"`include_item_content` is true, received {given.max_items}",
            operation="read_items",
        )
    if not 1 <= given.max_items <= MAX_ITEMS_PER_READ:
        raise ValidationError(
            f"`max_items` must be 1 to {MAX_ITEMS_PER_READ}, received {given.max_items}",
            operation="read_items",
        )
    if given.item_time_after is not None and given.item_time_before is not None:
        raise ValidationError(
            "cannot simultaneously query with `item_time_after` and `item_time_before`",
            operation="read_items",
        )

    try:
        after = None if given.item_time_after is None else normalize_item_time(given.item_time_after)
        before = None if given.item_time_before is None else normalize_item_time(given.item_time_before)
    except ValidationError as exc:
        exc.operation = "read_items"
        raise

    return given.model_copy(update={"item_time_after": after, "item_time_before": before})


# ------------------------------------------------------------------ #
# Internals
# ------------------------------------------------------------------ #


async def _call(
    transport: AsyncTransport,
    operation: str,
    method: str,
    path: str,
    retry: Optional[RetryPolicy],
    params: Optional[dict[str, Any]] = None,
    json_body: Optional[Any] = None,
) -> RawResponse:
    """Send the request, applying the retry policy, and return a 2xx response.

    Retries transport failures and retryable statuses up to
    ``max_retries`` times with exponential backoff.  Everything else is
    raised on the first occurrence.
    """
    policy = retry or transport.config.retry
    output = get_output()
    attempt = 0

    while True:
        try:
            raw = await transport.send(method, path, params=params, json_body=json_body)
        except TransportError as exc:
            exc.operation = operation
            if attempt < policy.max_retries:
                delay = policy.delay(attempt)
                output.debug(
                    f"{operation}: {exc.reason} error, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{policy.max_retries})"
                )
                await asyncio.sleep(delay)
                attempt += 1
                continue
            raise

        if raw.is_success:
            return raw

        if raw.status in policy.retry_statuses and attempt < policy.max_retries:
            delay = policy.delay(attempt)
            output.debug(
                f"{operation}: HTTP {raw.status}, retrying in {delay}s "
                f"(attempt {attempt + 1}/{policy.max_retries})"
            )
            await asyncio.sleep(delay)
            attempt += 1
            continue

        raise service_error(raw, operation)


def _parse(model: type[M], raw: RawResponse, operation: str) -> M:
    """Deserialise a success body into ``model`` or raise DeserializationError."""
    try:
        return model.model_validate_json(raw.content)
    except PydanticValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}"
            for err in exc.errors()
        )
        raise DeserializationError(
            f"Problem deserializing the response: {problems}",
            operation=operation,
        ) from exc


def service_error(raw: RawResponse, operation: Optional[str] = None) -> ServiceError:
    """Build a :class:`ServiceError` for a non-success response.

    Falls back to the status and raw text when the body is not the
    service's JSON error shape.
    """
    try:
        data = ApiErrorData.model_validate_json(raw.content)
    except PydanticValidationError:
        data = None

    if data is None or data.is_empty:
        return ServiceError(raw.status, text=raw.text, operation=operation)

    return ServiceError(
        raw.status,
        message=data.message(),
        code=data.code,
        error=data.error,
        error_detail=data.error_detail,
        text=raw.text,
        operation=operation,
    )
