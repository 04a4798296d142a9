"""トグル評価回数の集計と /usage への送信"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from .config import MetricsConfig
from .models import MetricsBucket, MetricsPayload, ToggleCount
from .transport import HttpxTransport
from .util import CLIENT_IDENTIFIER, merge_headers

logger = logging.getLogger(__name__)

# 初回送信までの待ち時間 (秒)
METRICS_WARMUP_SECONDS = 2.0

OnError = Callable[[Exception], None]
OnSent = Callable[[MetricsPayload], None]


def _do_nothing(*_: object) -> None:
    return None


class Metrics:
    """トグル評価回数をバケットに集計し、定期的に送信する。

    バケットは送信の度に空のものと入れ替える。入れ替えは await を挟まずに
    行うため、送信中に count されたものは次のバケットに入る。
    """

    def __init__(
        self,
        config: MetricsConfig,
        on_error: OnError,
        on_sent: OnSent | None = None,
    ) -> None:
        self._config = config
        self._on_error = on_error
        self._on_sent = on_sent or _do_nothing
        self._disabled = config.disable_metrics
        self._interval = config.metrics_interval
        self._transport = config.transport or HttpxTransport()
        self._bucket = self.create_empty_bucket()
        self._timer: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def usage_url(self) -> str:
        return f"{str(self._config.url).rstrip('/')}/usage"

    def start(self) -> bool:
        """ウォームアップ後に初回送信し、以降 metrics_interval 毎に送信する。"""
        if self._disabled:
            return False
        if self._timer is None:
            self._timer = asyncio.create_task(self._run())
        return True

    def stop(self) -> None:
        """タイマーを停止する。送信中のリクエストは中断しない。"""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def create_empty_bucket(self) -> MetricsBucket:
        return MetricsBucket()

    def count(self, name: str, enabled: bool) -> bool:
        """評価結果を集計する。無効時は False を返す。"""
        if self._disabled:
            return False
        counter = self._bucket.toggles.get(name)
        if counter is None:
            counter = self._bucket.toggles[name] = ToggleCount()
        if enabled:
            counter.enable_count += 1
        else:
            counter.disable_count += 1
        return True

    async def send_metrics(self) -> None:
        """現在のバケットを切り離して送信する。空なら何もしない。"""
        payload = self._get_payload()
        if payload.bucket.is_empty():
            return
        try:
            await self._transport(
                self.usage_url,
                method="POST",
                headers=self._get_headers(),
                cache="no-cache",
                body=json.dumps(payload.to_dict()),
            )
            self._on_sent(payload)
        except Exception as e:
            logger.error("Unable to send feature metrics", extra={"error": str(e)})
            self._on_error(e)

    def _get_headers(self) -> dict[str, str]:
        return merge_headers(
            {
                self._config.header_name: self._config.client_key,
                "Accept": "application/json",
                "Content-Type": "application/json",
                "Toggled-Client-Version": CLIENT_IDENTIFIER,
            },
            self._config.custom_headers,
        )

    def _get_payload(self) -> MetricsPayload:
        bucket = self._bucket
        self._bucket = self.create_empty_bucket()
        bucket.stop = datetime.now(timezone.utc)
        return MetricsPayload(bucket=bucket)

    def _spawn_send(self) -> None:
        task = asyncio.create_task(self.send_metrics())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run(self) -> None:
        await asyncio.sleep(METRICS_WARMUP_SECONDS)
        self._spawn_send()
        if not isinstance(self._interval, (int, float)) or self._interval <= 0:
            self._timer = None
            return
        while True:
            await asyncio.sleep(self._interval)
            self._spawn_send()

    async def aclose(self) -> None:
        """タイマーを停止し、送信中のリクエストの完了を待つ。"""
        timer = self._timer
        self.stop()
        if timer is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await timer
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)
