"""
HTTP adapter for mxm-bondscreen (requests-based).

This module provides a thin adapter that issues a single GET request and
returns the decoded document body. The adapter focuses on performing one
request with sensible defaults (User-Agent, Accept headers, timeout).
There is no retry, backoff or caching: every URL is fetched once per run
and any failure is fatal for the calling source.

Design notes
------------
- Headers are stored and exposed as ``Mapping[str, str]`` (no ``bytes`` values).
- Default headers and timeout are injected at construction time.
- Every ``requests`` exception, including HTTP error statuses, is re-raised
  as :class:`~mxm_bondscreen.common.errors.FetchError` naming the URL.
- Several sources serve legacy ``cp1251`` documents; callers pass the
  encoding explicitly instead of trusting the response headers.

Thread-safety
-------------
This adapter does not guarantee thread safety. Use one instance per worker
(see :func:`mxm_bondscreen.bootstrap.adapter_factory_from_config`).
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import timedelta
from types import MappingProxyType, TracebackType
from typing import Any, Callable, Iterator, Mapping, Optional, Protocol

import requests
from requests import RequestException, Response, Session

from mxm_bondscreen.common.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "mxm-bondscreen/0.1 (contact@moneyexmachina.com)"


class Fetcher(Protocol):
    """Anything that can turn a URL into document text."""

    def fetch_text(
        self,
        url: str,
        *,
        encoding: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> str: ...


FetcherFactory = Callable[[], Fetcher]


@contextmanager
def open_fetcher(factory: FetcherFactory) -> Iterator[Fetcher]:
    """Create a fetcher from ``factory`` and close it (when closable) on exit."""
    fetcher = factory()
    try:
        yield fetcher
    finally:
        close = getattr(fetcher, "close", None)
        if callable(close):
            close()


def _elapsed_ms(resp: Response) -> Optional[int]:
    """Return the elapsed time in milliseconds for a ``requests.Response``.

    If the response has no timing information, returns ``None``.
    """
    elapsed: Optional[timedelta] = getattr(resp, "elapsed", None)
    if elapsed is None:
        return None
    return int(round(elapsed.total_seconds() * 1000.0))


def _headers_dict(headers: Mapping[str, Any]) -> dict[str, str]:
    """Convert a headers mapping to ``dict[str, str]`` with string values only."""
    return {str(k): str(v) for k, v in headers.items()}


class HttpRequestsAdapter:
    """Requests-based HTTP adapter implementing the :class:`Fetcher` protocol.

    Parameters
    ----------
    user_agent:
        String for the ``User-Agent`` header. Will be inserted into default
        headers if not already present.
    default_timeout:
        Timeout in seconds applied when a per-request timeout is not supplied.
    default_headers:
        Mapping of default headers applied to all requests.
    """

    default_headers: Mapping[str, str]

    def __init__(
        self,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        default_timeout: float = 30.0,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._session: Session = requests.Session()

        base: dict[str, str] = {
            "User-Agent": user_agent,
            "Accept": "*/*",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
        }
        if default_headers:
            base.update(default_headers)
        self._session.headers.update(base)

        self._default_timeout = float(default_timeout)
        self.default_headers = MappingProxyType(_headers_dict(self._session.headers))

    def fetch_text(
        self,
        url: str,
        *,
        encoding: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """GET ``url`` and return the body decoded as text.

        Raises
        ------
        ValueError
            If ``url`` is empty.
        FetchError
            On connection problems, timeouts and 4xx/5xx responses.
        """
        if not url:
            raise ValueError("HttpRequestsAdapter.fetch_text: url must be non-empty")

        try:
            resp: Response = self._session.request(
                method="GET",
                url=url,
                headers=dict(headers or {}),
                timeout=float(timeout or self._default_timeout),
                allow_redirects=True,
            )
            resp.raise_for_status()
        except RequestException as exc:
            raise FetchError(url, str(exc)) from exc

        logger.debug(
            "GET %s -> %s (%s ms)", url, resp.status_code, _elapsed_ms(resp)
        )
        if encoding:
            return resp.content.decode(encoding, errors="replace")
        return resp.text

    def describe(self) -> str:
        """Human-readable description of this adapter (for logs and diagnostics)."""
        return f"HTTP adapter via 'requests' (timeout={self._default_timeout:g}s)"

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self._session.close()

    def __enter__(self) -> "HttpRequestsAdapter":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()
