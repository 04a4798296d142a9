"""ToggledClient — トグルの同期・キャッシュ・評価を行うクライアント"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from functools import partial
from typing import Any

import httpx

from .config import MetricsConfig, ToggledConfig, validate_config
from .events import EventEmitter, ToggledEvents
from .metrics import Metrics
from .models import Context, HttpErrorEvent, Toggle, ToggleStatus, ToggleValueType
from .storage import SESSION_ID_KEY, TOGGLES_KEY, InMemoryStorageProvider
from .transport import HttpxTransport
from .util import merge_headers, url_with_context_as_query

logger = logging.getLogger(__name__)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _to_toggle(item: Toggle | dict[str, Any]) -> Toggle:
    return item if isinstance(item, Toggle) else Toggle.from_dict(item)


def _evaluate(toggle: Toggle | None) -> bool:
    if toggle is None or toggle.status != ToggleStatus.ON:
        return False
    if toggle.value_type == ToggleValueType.BOOLEAN:
        return bool(toggle.value)
    return True


class ToggledClient(EventEmitter):
    """リモートのトグルを定期取得し、ローカルで同期的に評価するクライアント。

    コンストラクタは設定を検証し、bootstrap があれば即座にそれを評価対象にする。
    ストレージからの初期化は非同期に行われ、start() はその完了を待ってから
    最初の取得を行う。

    発行イベント: initialized / error / ready / update / sent
    """

    def __init__(self, config: ToggledConfig) -> None:
        super().__init__()
        self._url = validate_config(config)
        self._client_key = config.client_key
        self._header_name = config.header_name
        self._custom_headers = dict(config.custom_headers)
        self._impression_data_all = config.impression_data_all
        self._bootstrap = list(config.bootstrap) if config.bootstrap else None
        self._bootstrap_override = config.bootstrap_override
        self._toggles: list[Toggle] = list(self._bootstrap) if self._bootstrap else []
        self._storage = config.storage_provider or InMemoryStorageProvider()
        self._refresh_interval = 0 if config.disable_refresh else config.refresh_interval
        self._context: Context = dict(config.context)
        self._transport = config.transport or HttpxTransport()
        self._session_id: str | None = None
        self._etag = ""
        self._started = False
        self._ready_signaled = False
        self._timer: asyncio.Task[None] | None = None
        self._deferred_fetch: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()
        self._metrics = Metrics(
            MetricsConfig(
                url=self._url,
                client_key=config.client_key,
                metrics_interval=config.metrics_interval,
                disable_metrics=config.disable_metrics,
                header_name=config.header_name,
                custom_headers=self._custom_headers,
                transport=self._transport,
            ),
            on_error=partial(self.emit, ToggledEvents.ERROR),
            on_sent=partial(self.emit, ToggledEvents.SENT),
        )
        self._initialization: asyncio.Task[None] | None = None
        if _running_loop() is not None:
            self._initialization = asyncio.create_task(self._initialize())

    @property
    def url(self) -> httpx.URL:
        return self._url

    # --- 評価 ---

    def is_enabled(self, toggle_name: str) -> bool:
        """トグルが存在し、ON かつ (BOOLEAN なら値が真) の場合に True。"""
        enabled = _evaluate(self._find(toggle_name))
        self._metrics.count(toggle_name, enabled)
        return enabled

    def get_value(self, toggle_name: str) -> bool | str | None:
        """トグルの値を返す。存在しなければ None。"""
        toggle = self._find(toggle_name)
        self._metrics.count(toggle_name, _evaluate(toggle))
        return toggle.value if toggle is not None else None

    def get_all_toggles(self) -> list[Toggle]:
        return list(self._toggles)

    def get_current_session_id(self) -> str | None:
        return self._session_id

    def _find(self, toggle_name: str) -> Toggle | None:
        return next((t for t in self._toggles if t.name == toggle_name), None)

    # --- コンテキスト ---

    def get_context(self) -> Context:
        return dict(self._context)

    async def update_context(self, context: Context) -> None:
        """コンテキストを置き換えてトグルを再取得する。

        start() 済みで ready 前の場合は ready を待ってから一度だけ取得する。
        start() 前なら取得は行わない。
        bootstrap があり bootstrap_override=False でキャッシュが空でない場合は
        ready が発行されないため、ready 前の呼び出しは完了しない。
        """
        self._context = dict(context)
        if self._timer is not None or self._ready_signaled:
            await self._fetch_toggles()
        elif self._started:
            if self._deferred_fetch is None:
                self._deferred_fetch = asyncio.create_task(self._fetch_when_ready())
            await asyncio.shield(self._deferred_fetch)

    def set_context_field(self, field: str, value: str | None) -> None:
        """コンテキストの 1 フィールドを更新する。定期取得中なら即座に再取得する。"""
        self._context = {**self._context, field: value}
        if self._timer is not None:
            self._spawn_fetch()

    # --- ライフサイクル ---

    async def ready(self) -> None:
        """ストレージからの初期化完了を待つ。初期化の失敗では例外にならない。"""
        if self._initialization is None:
            self._initialization = asyncio.create_task(self._initialize())
        await asyncio.shield(self._initialization)

    async def start(self) -> None:
        """初期化を待って最初の取得を行い、refresh_interval 毎の定期取得を開始する。"""
        self._started = True
        if self._timer is not None:
            logger.warning(
                "Toggled client has already started, call stop() before starting again"
            )
            return
        await self.ready()
        self._metrics.start()
        await self._fetch_toggles()
        if self._refresh_interval > 0 and self._timer is None:
            self._timer = asyncio.create_task(self._refresh_loop())

    def stop(self) -> None:
        """定期取得とメトリクス送信を停止する。実行中の取得は中断しない。"""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._metrics.stop()

    async def aclose(self) -> None:
        """stop() した上で、実行中の取得と送信の完了を待つ。"""
        timer = self._timer
        self.stop()
        if timer is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await timer
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
        await self._metrics.aclose()

    async def _initialize(self) -> None:
        try:
            self._session_id = await self._storage.get(SESSION_ID_KEY)
            cached = [_to_toggle(item) for item in await self._storage.get(TOGGLES_KEY) or []]
            if self._bootstrap and (self._bootstrap_override or not cached):
                await self._storage.save(TOGGLES_KEY, [t.to_dict() for t in self._bootstrap])
                self._toggles = list(self._bootstrap)
                self._ready_signaled = True
                self.emit(ToggledEvents.READY)
            else:
                self._toggles = cached
        except Exception as e:
            logger.error("Toggled client initialization failed", extra={"error": str(e)})
            self.emit(ToggledEvents.ERROR, e)
        self.emit(ToggledEvents.INIT)

    # --- 取得 ---

    def _get_headers(self) -> dict[str, str]:
        headers = merge_headers(
            {
                self._header_name: self._client_key,
                "Accept": "application/json",
                "Content-Type": "application/json",
                "If-None-Match": self._etag,
            },
            self._custom_headers,
        )
        if self._session_id:
            headers["session-id"] = self._session_id
        return headers

    async def _store_toggles(self, toggles: list[Toggle]) -> None:
        self._toggles = toggles
        await self._storage.save(TOGGLES_KEY, [t.to_dict() for t in toggles])
        self.emit(ToggledEvents.UPDATE)

    async def _fetch_toggles(self) -> None:
        try:
            url = url_with_context_as_query(self._url, self._context)
            response = await self._transport(
                str(url),
                method="GET",
                headers=self._get_headers(),
                cache="no-cache",
            )
            if response.ok and response.status != 304:
                data = await response.json()
                toggles = [_to_toggle(item) for item in data["items"]]
                self._etag = response.headers.get("ETag") or ""
                await self._store_toggles(toggles)
                self._session_id = data.get("session-id")
                await self._storage.save(SESSION_ID_KEY, self._session_id)
                if not self._bootstrap and not self._ready_signaled:
                    self._ready_signaled = True
                    self.emit(ToggledEvents.READY)
            elif not response.ok and response.status != 304:
                logger.error(
                    "Fetching feature toggles did not have an ok response",
                    extra={"status": response.status},
                )
                self.emit(ToggledEvents.ERROR, HttpErrorEvent(code=response.status))
        except Exception as e:
            logger.error("Unable to fetch feature toggles", extra={"error": str(e)})
            self.emit(ToggledEvents.ERROR, e)

    async def _fetch_when_ready(self) -> None:
        readiness: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def on_ready(*_: Any) -> None:
            if not readiness.done():
                readiness.set_result(None)

        self.once(ToggledEvents.READY, on_ready)
        try:
            await readiness
        finally:
            self.off(ToggledEvents.READY, on_ready)
            self._deferred_fetch = None
        await self._fetch_toggles()

    def _spawn_fetch(self) -> None:
        task = asyncio.create_task(self._fetch_toggles())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _refresh_loop(self) -> None:
        while True:
            await asyncio.sleep(self._refresh_interval)
            self._spawn_fetch()
