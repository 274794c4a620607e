"""Canonical Pydantic models shared across all yupdates modules.

Every value crossing the public API is defined here.  The models fall into
three groups:

**Configuration models** -- held immutably by a client for its lifetime:
    :class:`RetryPolicy` and :class:`ClientConfig`.

**Request models** -- typed parameters serialised by the operation layer:
    :class:`ReadOptions`, :class:`InputItem`, :class:`AssociatedFile`.

**Response models** -- deserialised from the API's JSON bodies:
    :class:`PingResponse`, :class:`FeedItem`, :class:`ReadFeedItemsResponse`,
    :class:`FeedItemPage`, :class:`NewInputItemsResponse`, and the
    service's error body :class:`ApiErrorData`.

All models use Pydantic v2 and are frozen, so ownership of a returned value
passes entirely to the caller.  Unknown JSON keys are ignored; a missing
required key fails validation and surfaces as a
:class:`~yupdates.exceptions.DeserializationError`.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from yupdates.config import (
    YUPDATES_API_TOKEN,
    YUPDATES_DEFAULT_API_URL,
    api_token,
    env_or_default_url,
    normalize_base_url,
)
from yupdates.exceptions import ConfigurationError


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# --- Configuration ---


class RetryPolicy(_Frozen):
    """Opt-in retry behaviour applied by the operation layer.

    The default performs no retries.  When ``max_retries`` is positive,
    transport failures and responses whose status is listed in
    ``retry_statuses`` are retried with exponential backoff
    (``backoff_seconds * 2 ** attempt``).
    """

    max_retries: int = Field(default=0, ge=0, description="Retry attempts after the first call")
    backoff_seconds: float = Field(default=1.0, ge=0, description="Base delay between attempts")
    retry_statuses: tuple[int, ...] = Field(
        default=(429, 500, 502, 503, 504),
        description="HTTP statuses considered transient",
    )

    def delay(self, attempt: int) -> float:
        """Return the sleep before retry number ``attempt + 1``."""
        return self.backoff_seconds * (2 ** attempt)


class ClientConfig(_Frozen):
    """Everything a client needs to reach the API.

    The token is stored as a :class:`~pydantic.SecretStr` so it never shows
    up in ``repr`` or log output.  Invalid values raise
    :class:`~yupdates.exceptions.ConfigurationError`.

    Example::

        config = ClientConfig(token="abc123")
        config = ClientConfig.from_env(timeout=10)
    """

    base_url: str = Field(
        default=YUPDATES_DEFAULT_API_URL, validate_default=True, description="API base URL"
    )
    token: SecretStr = Field(default=SecretStr(""), validate_default=True)
    timeout: float = Field(default=30.0, description="Transport timeout in seconds")
    retry: RetryPolicy = Field(default_factory=RetryPolicy)

    @field_validator("base_url", mode="before")
    @classmethod
    def _check_base_url(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ConfigurationError(f"API URL must be a string, received {type(value).__name__}")
        return normalize_base_url(value)

    @field_validator("token", mode="before")
    @classmethod
    def _check_token(cls, value: Any) -> Any:
        raw = value.get_secret_value() if isinstance(value, SecretStr) else value
        if not isinstance(raw, str) or not raw.strip():
            raise ConfigurationError(f"API token is missing, set {YUPDATES_API_TOKEN}")
        return raw.strip()

    @field_validator("timeout")
    @classmethod
    def _check_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ConfigurationError(f"timeout must be positive, received {value}")
        return value

    @classmethod
    def from_env(
        cls,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        retry: Optional[RetryPolicy] = None,
    ) -> ClientConfig:
        """Build a configuration from the environment.

        Explicit arguments take precedence over ``YUPDATES_API_TOKEN`` and
        ``YUPDATES_API_URL``.

        Raises:
            ConfigurationError: If no usable token is available.
        """
        return cls(
            token=token if token is not None else api_token(),
            base_url=base_url if base_url is not None else env_or_default_url(),
            timeout=timeout,
            retry=retry or RetryPolicy(),
        )

    @property
    def auth_token(self) -> str:
        return self.token.get_secret_value()


# --- Requests ---


class ReadOptions(_Frozen):
    """Extra options for reading items.

    Without ``item_time_after`` or ``item_time_before`` the latest items are
    queried.  The two bounds cannot be combined.

    An item time is a unix epoch millisecond with an optional 5 digit
    suffix, e.g. ``1661564013555`` or ``"1661564013555.00003"``.
    """

    max_items: int = Field(
        default=10,
        description="Items per request, 1 to 50 (1 to 10 with include_item_content)",
    )
    include_item_content: bool = Field(
        default=False, description="Populate each FeedItem with its full content"
    )
    item_time_after: Optional[Union[str, int]] = Field(
        default=None, description="Only items after this item time (non-inclusive)"
    )
    item_time_before: Optional[Union[str, int]] = Field(
        default=None, description="Only items before this item time (non-inclusive)"
    )


class AssociatedFile(_Frozen):
    url: str
    length: int
    type_str: str


class InputItem(_Frozen):
    """A new item to add to a feed."""

    title: str
    content: str
    canonical_url: str
    associated_files: Optional[list[AssociatedFile]] = None


# --- Responses ---


class PingResponse(_Frozen):
    code: Optional[int] = None
    message: str


class FeedItem(_Frozen):
    """One item read back from a feed."""

    feed_id: str
    item_id: str
    input_id: str
    title: str
    content: Optional[str] = None
    canonical_url: str
    item_time: str
    item_time_ms: int
    deleted: bool
    associated_files: Optional[list[AssociatedFile]] = None


class ReadFeedItemsResponse(_Frozen):
    code: Optional[int] = None
    feed_items: list[FeedItem]


class FeedItemPage(_Frozen):
    """One fetched page of items plus the cursor for the next fetch.

    ``next_cursor`` is ``None`` when the service has no further items for
    the query.
    """

    items: tuple[FeedItem, ...] = ()
    next_cursor: Optional[str] = None


class NewInputItemsResponse(_Frozen):
    code: Optional[int] = None
    feed_id: str
    message: str


class ApiErrorData(_Frozen):
    """Error body returned by the API alongside a non-success status."""

    code: Optional[int] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.code is None and self.error is None and self.error_detail is None

    def message(self) -> str:
        """Combine ``error`` and ``error_detail`` as ``"error | detail"``."""
        err = self.error or ""
        if self.error_detail is None:
            return err
        if not err:
            return self.error_detail
        return f"{err} | {self.error_detail}"
