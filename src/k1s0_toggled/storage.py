"""トグルキャッシュ用ストレージプロバイダ"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .exceptions import StorageError

TOGGLES_KEY = "repo"
SESSION_ID_KEY = "sessionId"


class StorageProvider(ABC):
    """キー単位で値を保存するストレージの抽象基底クラス。"""

    @abstractmethod
    async def get(self, key: str) -> Any:
        """キーに対応する値を取得する。存在しなければ None。"""
        ...

    @abstractmethod
    async def save(self, key: str, value: Any) -> None:
        """キーと値を保存する。"""
        ...


class InMemoryStorageProvider(StorageProvider):
    """プロセス内でのみ保持されるストレージ。"""

    def __init__(self) -> None:
        self._store: dict[str, Any] = {}

    async def get(self, key: str) -> Any:
        return self._store.get(key)

    async def save(self, key: str, value: Any) -> None:
        self._store[key] = value


class FileStorageProvider(StorageProvider):
    """ディレクトリ配下にキー毎の JSON ファイルとして保存する永続ストレージ。"""

    PREFIX = "toggled:repository:"

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self._directory / f"{self.PREFIX}{key}.json"

    def _read(self, key: str) -> Any:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {path}", cause=e) from e

    def _write(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(value), encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {path}", cause=e) from e

    async def get(self, key: str) -> Any:
        return await asyncio.to_thread(self._read, key)

    async def save(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._write, key, value)
