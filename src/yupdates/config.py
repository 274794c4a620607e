"""Configuration sources and value normalisation.

This module handles everything a client reads from its environment:

* **Environment variables** -- :data:`YUPDATES_API_TOKEN` (required) and
  :data:`YUPDATES_API_URL` (optional, falls back to
  :data:`YUPDATES_DEFAULT_API_URL`).  See :func:`api_token` and
  :func:`env_or_default_url`.
* **URL normalisation** -- :func:`normalize_base_url` guarantees a trailing
  slash so operation paths can be appended directly.
* **Item times** -- :func:`normalize_item_time` validates and canonicalises
  the cursor values accepted by feed reads.

Values are read once, when a :class:`~yupdates.models.ClientConfig` is
built; nothing here caches or mutates global state.
"""

from __future__ import annotations

import os
from typing import Union

from yupdates.exceptions import ConfigurationError, ValidationError

YUPDATES_API_TOKEN = "YUPDATES_API_TOKEN"
"""Environment variable holding the API token."""

YUPDATES_API_URL = "YUPDATES_API_URL"
"""Environment variable overriding the base API URL (e.g. to target another API version)."""

YUPDATES_DEFAULT_API_URL = "https://feeds.yupdates.com/api/v0/"
"""The base URL used when :data:`YUPDATES_API_URL` is not set."""

SDK_VERSION = "0.1.0"

X_AUTH_TOKEN_HEADER = "X-Auth-Token"
"""The HTTP header carrying the API token on every call."""

_MAX_ITEM_TIME_MS = 9_999_999_999_999
_MAX_ITEM_TIME_SUFFIX = 99_999


# --- Environment ---


def api_token() -> str:
    """Retrieve the API token from the environment.

    Returns:
        The token with surrounding whitespace removed.

    Raises:
        ConfigurationError: If the variable is unset or blank.
    """
    value = os.environ.get(YUPDATES_API_TOKEN, "").strip()
    if not value:
        raise ConfigurationError(f"API token is missing, set {YUPDATES_API_TOKEN}")
    return value


def env_or_default_url() -> str:
    """Retrieve the API URL from the environment or use the default."""
    value = os.environ.get(YUPDATES_API_URL, "").strip()
    if not value:
        return YUPDATES_DEFAULT_API_URL
    return normalize_base_url(value)


def normalize_base_url(url: str) -> str:
    """Validate an API base URL and make sure it ends with ``/``.

    Raises:
        ConfigurationError: If the URL is empty or not http(s).
    """
    url = url.strip()
    if not url:
        raise ConfigurationError("API URL is empty")
    if not url.startswith(("http://", "https://")):
        raise ConfigurationError(f"API URL must start with http:// or https:// ('{url}')")
    if not url.endswith("/"):
        url = f"{url}/"
    return url


# --- Item times ---


def normalize_item_time(item_time: Union[str, int]) -> str:
    """Accept many forms of item time, validate it, and return a normalised version.

    An item time is a unix ms from 0 to 9_999_999_999_999 with an optional
    5 digit suffix.  Valid inputs: ``"1234"``, ``1661564013555``,
    ``"1661564013555.00003"``, ``"123456.789"``.

    Returns:
        The canonical ``"<13 digit ms>.<5 digit suffix>"`` form.

    Raises:
        ValidationError: If the value is malformed or out of range.
    """
    text = str(item_time).strip()
    parts = text.split(".")
    if len(parts) == 1:
        base_str, suffix_str = text, "0"
    elif len(parts) == 2:
        base_str, suffix_str = parts
    else:
        raise ValidationError(f"invalid item time: '{text}'")

    base_ms = _parse_bounded_int(base_str, "base ms", _MAX_ITEM_TIME_MS)
    suffix = _parse_bounded_int(suffix_str, "suffix", _MAX_ITEM_TIME_SUFFIX)
    return f"{base_ms:013d}.{suffix:05d}"


def normalize_item_time_ms(item_time_ms: int) -> str:
    """:func:`normalize_item_time` for integer timestamps."""
    return normalize_item_time(str(item_time_ms))


def _parse_bounded_int(int_str: str, name: str, upper_bound: int) -> int:
    if not (int_str.isascii() and int_str.isdigit()):
        raise ValidationError(f"invalid integer: '{int_str}'")
    parsed = int(int_str)
    if parsed > upper_bound:
        raise ValidationError(
            f"item time {name} may not be larger than {upper_bound}: '{parsed}'"
        )
    return parsed
