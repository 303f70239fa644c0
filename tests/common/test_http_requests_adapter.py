from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from types import MethodType
from typing import Any, Dict, Mapping, MutableMapping, Optional, cast

import pytest
from requests import ConnectionError as RequestsConnectionError
from requests import HTTPError, Response, Session

from mxm_bondscreen.common.errors import FetchError
from mxm_bondscreen.common.http_adapter import HttpRequestsAdapter, open_fetcher

# ----- test doubles ----------------------------------------------------------


@dataclass
class _Call:
    method: str
    url: str
    headers: Dict[str, str]
    timeout: float | int | None
    allow_redirects: bool


class _DummyResp:
    """Minimal Response-like object with the attributes we use."""

    def __init__(
        self,
        *,
        url: str = "https://example.test/resource",
        status: int = 200,
        content: bytes = b"ok",
        headers: Optional[Mapping[str, str]] = None,
        elapsed_ms: int = 123,
    ) -> None:
        self.url: str = url
        self.status_code: int = status
        self.content: bytes = content
        self.headers: MutableMapping[str, str] = dict(
            headers or {"Content-Type": "text/html; charset=utf-8"}
        )
        self.elapsed = timedelta(milliseconds=elapsed_ms)

    @property
    def text(self) -> str:
        return self.content.decode("utf-8")

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise HTTPError(f"HTTP {self.status_code}")

    def __getattr__(self, name: str) -> Any:  # pragma: no cover - safety net
        raise AttributeError(name)


def _patch_request(
    adapter: HttpRequestsAdapter, dummy_response: _DummyResp, call_sink: list[_Call]
) -> None:
    """Monkeypatch Session.request to capture call args and return dummy response."""

    def _fake_request(  # type: ignore[override]
        self: Session,
        *,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        timeout: float | int | None = None,
        allow_redirects: bool = True,
        **_: Any,
    ) -> Response:
        call_sink.append(
            _Call(
                method=method,
                url=url,
                headers=dict(headers or {}),
                timeout=timeout,
                allow_redirects=allow_redirects,
            )
        )
        return cast(Response, dummy_response)

    session = cast(Session, adapter._session)  # type: ignore[attr-defined]
    session.request = MethodType(_fake_request, session)


def _patch_request_raises(adapter: HttpRequestsAdapter, exc: Exception) -> None:
    def _fake_request(self: Session, **_: Any) -> Response:  # type: ignore[override]
        raise exc

    session = cast(Session, adapter._session)  # type: ignore[attr-defined]
    session.request = MethodType(_fake_request, session)


# ----- tests ----------------------------------------------------------------


def test_fetch_text_success() -> None:
    adapter = HttpRequestsAdapter(default_timeout=7.5)
    calls: list[_Call] = []
    _patch_request(adapter, _DummyResp(content=b"<html>ok</html>"), calls)

    text = adapter.fetch_text("https://example.test/page")

    assert text == "<html>ok</html>"
    assert len(calls) == 1
    c = calls[0]
    assert c.method == "GET"
    assert c.url == "https://example.test/page"
    assert c.allow_redirects is True
    assert c.timeout == 7.5


def test_explicit_encoding_overrides_response_charset() -> None:
    adapter = HttpRequestsAdapter()
    calls: list[_Call] = []
    body = "Облигации".encode("cp1251")
    _patch_request(adapter, _DummyResp(content=body), calls)

    assert adapter.fetch_text("https://example.test/listing.csv", encoding="cp1251") == (
        "Облигации"
    )


def test_per_request_headers_and_timeout() -> None:
    adapter = HttpRequestsAdapter()
    calls: list[_Call] = []
    _patch_request(adapter, _DummyResp(), calls)

    adapter.fetch_text(
        "https://example.test/x", headers={"Accept": "text/html"}, timeout=3
    )

    assert calls[0].headers == {"Accept": "text/html"}
    assert calls[0].timeout == 3.0


def test_default_headers_include_user_agent() -> None:
    adapter = HttpRequestsAdapter(
        user_agent="bondscreen-test/1.0", default_headers={"X-Test": "1"}
    )
    assert adapter.default_headers["User-Agent"] == "bondscreen-test/1.0"
    assert adapter.default_headers["X-Test"] == "1"
    with pytest.raises(TypeError):
        adapter.default_headers["X-Test"] = "2"  # type: ignore[index]


def test_missing_url_raises_value_error() -> None:
    adapter = HttpRequestsAdapter()
    with pytest.raises(ValueError):
        adapter.fetch_text("")


def test_http_error_becomes_fetch_error() -> None:
    adapter = HttpRequestsAdapter()
    calls: list[_Call] = []
    _patch_request(adapter, _DummyResp(status=429), calls)

    with pytest.raises(FetchError) as ei:
        adapter.fetch_text("https://example.test/throttle")
    assert ei.value.url == "https://example.test/throttle"
    assert "429" in str(ei.value)
    assert isinstance(ei.value.__cause__, HTTPError)


def test_connection_error_becomes_fetch_error() -> None:
    adapter = HttpRequestsAdapter()
    _patch_request_raises(adapter, RequestsConnectionError("refused"))

    with pytest.raises(FetchError, match="refused"):
        adapter.fetch_text("https://example.test/down")


def test_describe_and_close() -> None:
    adapter = HttpRequestsAdapter()

    assert isinstance(adapter.describe(), str) and adapter.describe()

    closed = {"flag": False}

    def _fake_close(self: Session) -> None:
        closed["flag"] = True

    session = adapter._session  # type: ignore[attr-defined]
    session.close = MethodType(_fake_close, session)
    adapter.close()
    assert closed["flag"] is True


def test_open_fetcher_closes_on_exit() -> None:
    created: list[HttpRequestsAdapter] = []
    closed: list[bool] = []

    def _factory() -> HttpRequestsAdapter:
        adapter = HttpRequestsAdapter()
        session = adapter._session  # type: ignore[attr-defined]
        session.close = MethodType(lambda self: closed.append(True), session)
        created.append(adapter)
        return adapter

    with open_fetcher(_factory) as fetcher:
        assert fetcher is created[0]
        assert closed == []
    assert closed == [True]
