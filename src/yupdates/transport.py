"""Transport adapter -- the only module that performs network I/O.

:class:`AsyncTransport` wraps an :class:`httpx.AsyncClient` and exposes a
single coroutine, :meth:`AsyncTransport.send`, returning the raw status
and body of one HTTP exchange.  It layers on:

- **Auth injection** -- the API token is attached as the
  ``X-Auth-Token`` header on every call.
- **JSON bodies** -- request payloads are serialised by :mod:`httpx`.
- **Error mapping** -- :mod:`httpx` network failures become
  :class:`~yupdates.exceptions.TransportError` with a ``reason`` of
  ``timeout``, ``connect``, ``tls`` or ``network``.

The adapter never retries and never interprets status codes; both are
the operation layer's job (see :mod:`yupdates.api`).

See Also:
    :mod:`yupdates.api` for the typed operations built on top of this.
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from yupdates.config import SDK_VERSION, X_AUTH_TOKEN_HEADER
from yupdates.exceptions import TransportError
from yupdates.models import ClientConfig
from yupdates.output import get_output

USER_AGENT = f"yupdates-python/{SDK_VERSION}"


@dataclass(frozen=True)
class RawResponse:
    """Status code and undecoded body of one HTTP exchange."""

    status: int
    content: bytes

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


class AsyncTransport:
    """Non-blocking HTTP transport for API calls.

    Holds no per-call state, so one instance can serve any number of
    concurrent calls.  When no ``http_client`` is supplied the transport
    creates (and later closes) its own; a supplied client is left open for
    its owner to close.

    Args:
        config: The immutable client configuration (base URL, token, timeout).
        http_client: Optional pre-configured :class:`httpx.AsyncClient`.

    Example::

        transport = AsyncTransport(ClientConfig.from_env())
        raw = await transport.send("GET", "ping/")
        await transport.aclose()
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout,
            follow_redirects=True,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[Any] = None,
    ) -> RawResponse:
        """Send one request and return its raw status and body.

        Args:
            method: HTTP method (GET, POST).
            path: Path relative to the configured base URL (e.g. ``"ping/"``).
            params: Query parameters.
            json_body: JSON-serialisable request body.

        Returns:
            The :class:`RawResponse`, whatever its status code.

        Raises:
            TransportError: On timeout, refused connection, TLS failure, or
                any other network-level error.
        """
        url = f"{self._config.base_url}{path}"
        kwargs: dict[str, Any] = {
            "method": method,
            "url": url,
            "headers": self._headers(),
            "params": params,
            "timeout": self._config.timeout,
        }
        if json_body is not None:
            kwargs["json"] = json_body

        output = get_output()
        try:
            response = await self._client.request(**kwargs)
        except httpx.TimeoutException as exc:
            output.debug(f"{method} {url} timed out")
            raise TransportError(f"Request timed out: {exc}", reason="timeout") from exc
        except httpx.ConnectError as exc:
            reason = "tls" if _is_tls_failure(exc) else "connect"
            output.debug(f"{method} {url} failed to connect ({reason})")
            raise TransportError(f"Connection failed: {exc}", reason=reason) from exc
        except httpx.TransportError as exc:
            output.debug(f"{method} {url} failed: {type(exc).__name__}")
            raise TransportError(f"Request failed: {exc}", reason="network") from exc

        output.debug(f"{method} {url} -> {response.status_code}")
        return RawResponse(status=response.status_code, content=response.content)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            X_AUTH_TOKEN_HEADER: self._config.auth_token,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }


def _is_tls_failure(exc: BaseException) -> bool:
    """Walk the exception chain looking for an SSL error."""
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        if isinstance(current, ssl.SSLError):
            return True
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return "SSL" in str(exc) or "CERTIFICATE" in str(exc).upper()
