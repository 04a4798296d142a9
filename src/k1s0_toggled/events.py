"""クライアントイベントの発行/購読"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

Listener = Callable[..., Any]

logger = logging.getLogger(__name__)


class ToggledEvents:
    """クライアントが発行するイベント名。"""

    INIT: str = "initialized"
    ERROR: str = "error"
    READY: str = "ready"
    UPDATE: str = "update"
    SENT: str = "sent"


class EventEmitter:
    """イベント名単位でリスナーを登録する同期イベントエミッター。

    リスナーは emit 呼び出し時に登録順で同期的に呼ばれる。リスナーの例外は
    ログに記録し、後続のリスナーと発行元には伝播させない。
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}

    def on(self, event: str, listener: Listener) -> None:
        """リスナーを登録する。"""
        self._listeners.setdefault(event, []).append((listener, False))

    def once(self, event: str, listener: Listener) -> None:
        """一度だけ呼ばれるリスナーを登録する。"""
        self._listeners.setdefault(event, []).append((listener, True))

    def off(self, event: str, listener: Listener | None = None) -> None:
        """リスナーを解除する。listener 省略時はイベントの全リスナーを解除する。"""
        if listener is None:
            self._listeners.pop(event, None)
            return
        remaining = [
            entry for entry in self._listeners.get(event, []) if entry[0] is not listener
        ]
        if remaining:
            self._listeners[event] = remaining
        else:
            self._listeners.pop(event, None)

    def emit(self, event: str, *args: Any) -> None:
        """イベントを発行する。"""
        entries = list(self._listeners.get(event, []))
        if not entries:
            return
        for entry in entries:
            listener, once = entry
            if once:
                self._discard(event, entry)
            try:
                listener(*args)
            except Exception as e:
                logger.error(
                    "Event listener failed",
                    extra={"event": event, "error": str(e)},
                )

    def _discard(self, event: str, entry: tuple[Listener, bool]) -> None:
        registered = self._listeners.get(event)
        if registered and entry in registered:
            registered.remove(entry)
            if not registered:
                self._listeners.pop(event, None)
