"""toggled クライアント設定"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from .exceptions import ConfigurationError
from .models import Context, Toggle, ToggledPlatformUrl
from .storage import StorageProvider
from .transport import Transport

DEFAULT_HEADER_NAME = "x-api-key"


@dataclass
class ToggledConfig:
    """ToggledClient の設定。

    disable_metrics と use_post_requests、header_name は現状サポートする値
    (True / False / "x-api-key") 以外を指定すると ConfigurationError になる。
    impression_data_all は受け付けるが何も行わない。
    """

    url: str | httpx.URL | ToggledPlatformUrl
    client_key: str
    disable_refresh: bool = False
    refresh_interval: float = 30
    metrics_interval: float = 30
    disable_metrics: bool = True
    storage_provider: StorageProvider | None = None
    context: Context = field(default_factory=dict)
    transport: Transport | None = None
    bootstrap: list[Toggle] | None = None
    bootstrap_override: bool = True
    header_name: str = DEFAULT_HEADER_NAME
    custom_headers: dict[str, str | None] = field(default_factory=dict)
    impression_data_all: bool = False
    use_post_requests: bool = False


@dataclass
class MetricsConfig:
    """Metrics の設定。"""

    url: httpx.URL
    client_key: str
    metrics_interval: float = 30
    disable_metrics: bool = True
    header_name: str = DEFAULT_HEADER_NAME
    custom_headers: dict[str, str | None] = field(default_factory=dict)
    transport: Transport | None = None


def parse_url(url: str | httpx.URL | ToggledPlatformUrl) -> httpx.URL:
    """URL を検証して httpx.URL に変換する。"""
    if not url:
        raise ConfigurationError("url is required")
    if isinstance(url, httpx.URL):
        parsed = url
    else:
        try:
            parsed = httpx.URL(str(url))
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"url is invalid: {url}") from e
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigurationError(f"url is invalid: {url}")
    return parsed


def validate_config(config: ToggledConfig) -> httpx.URL:
    """設定を検証し、パース済みの URL を返す。"""
    url = parse_url(config.url)
    if not config.client_key:
        raise ConfigurationError("client_key is required")
    if not config.disable_metrics:
        raise ConfigurationError("metrics are not currently supported")
    if config.use_post_requests:
        raise ConfigurationError("POST requests are not currently supported")
    if config.header_name != DEFAULT_HEADER_NAME:
        raise ConfigurationError(
            f"header_name must be {DEFAULT_HEADER_NAME!r}, got {config.header_name!r}"
        )
    return url
