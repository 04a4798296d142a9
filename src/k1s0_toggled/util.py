"""URL とヘッダーの組み立てヘルパー"""

from __future__ import annotations

from collections.abc import Mapping

import httpx

CLIENT_IDENTIFIER = "python-v1"


def not_null_or_none(item: tuple[str, str | None]) -> bool:
    """(名前, 値) の値が None でなければ True。"""
    return item[1] is not None


def url_with_context_as_query(url: httpx.URL, context: Mapping[str, str | None]) -> httpx.URL:
    """コンテキストをクエリパラメータとして付与した URL を返す。None の値は除外する。"""
    result = url
    for key, value in filter(not_null_or_none, context.items()):
        result = result.copy_add_param(key, value)
    return result


def merge_headers(
    preset: Mapping[str, str],
    custom: Mapping[str, str | None] | None,
) -> dict[str, str]:
    """プリセットヘッダーにカスタムヘッダーを上書きする。

    値が None のカスタムヘッダーは送信せず、同名のプリセットも上書きしない。
    """
    headers = dict(preset)
    for name, value in filter(not_null_or_none, (custom or {}).items()):
        headers[name] = value
    return headers
