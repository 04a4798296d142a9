"""HTTP トランスポート"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from .exceptions import TransportError


class ResponseHeaders(Protocol):
    def get(self, name: str) -> str | None: ...


class TransportResponse(Protocol):
    """トランスポートが返すレスポンスのプロトコル。"""

    @property
    def ok(self) -> bool: ...

    @property
    def status(self) -> int: ...

    @property
    def headers(self) -> ResponseHeaders: ...

    async def json(self) -> Any: ...


class Transport(Protocol):
    """fetch 形式の非同期 HTTP 呼び出しプロトコル。"""

    async def __call__(
        self,
        url: str,
        *,
        method: str,
        headers: dict[str, str],
        cache: str = "no-cache",
        body: str | None = None,
    ) -> TransportResponse: ...


class HttpxResponse:
    """httpx.Response を TransportResponse として扱うラッパー。"""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def ok(self) -> bool:
        return self._response.is_success

    @property
    def status(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    async def json(self) -> Any:
        return self._response.json()


class HttpxTransport:
    """httpx を使ったデフォルトのトランスポート。

    リクエスト毎に AsyncClient を生成する。timeout_seconds が None の場合は
    タイムアウトを設けない。
    """

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self._timeout_seconds = timeout_seconds

    def _make_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_seconds))

    async def __call__(
        self,
        url: str,
        *,
        method: str,
        headers: dict[str, str],
        cache: str = "no-cache",
        body: str | None = None,
    ) -> HttpxResponse:
        request_headers = dict(headers)
        if cache:
            request_headers.setdefault("Cache-Control", cache)
        try:
            async with self._make_client() as client:
                resp = await client.request(
                    method,
                    url,
                    headers=request_headers,
                    content=body,
                )
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}", cause=e) from e
        return HttpxResponse(resp)
