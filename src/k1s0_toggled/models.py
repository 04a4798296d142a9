"""toggled データモデル"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

Context = dict[str, str | None]
"""コンテキスト。値が None のキーは送信されない。"""

CONTEXT_FIELDS: tuple[str, ...] = (
    "userId",
    "sessionId",
    "remoteAddress",
    "appName",
    "environment",
)


class ToggleStatus(StrEnum):
    """トグルステータス。"""

    ON = "on"
    OFF = "off"


class ToggleValueType(StrEnum):
    """トグル値の型。"""

    STRING = "string"
    BOOLEAN = "boolean"


class ToggledPlatformUrl(StrEnum):
    """ホスト型 toggled プラットフォームのエンドポイント。"""

    USE1 = "https://us-east-1-api.saas.toggled.dev/client/features"
    EUC1 = "https://eu-central-1-api.saas.toggled.dev/client/features"
    APS1 = "https://ap-south-1-api.saas.toggled.dev/client/features"
    TEST = "http://localhost/test"


def _enum_or_raw(enum: type[StrEnum], value: Any) -> StrEnum | str:
    """既知の値なら列挙型に、未知の値ならそのままの文字列にする。"""
    try:
        return enum(value)
    except ValueError:
        return str(value)


@dataclass(frozen=True)
class Toggle:
    """フィーチャートグル。"""

    name: str
    status: ToggleStatus | str
    value_type: ToggleValueType | str
    value: bool | str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Toggle:
        """API レスポンスのトグルレコードから Toggle を生成する。"""
        return cls(
            name=data["toggleName"],
            status=_enum_or_raw(ToggleStatus, data.get("toggleStatus", ToggleStatus.OFF)),
            value_type=_enum_or_raw(
                ToggleValueType, data.get("toggleValueType", ToggleValueType.BOOLEAN)
            ),
            value=data.get("toggleValue", False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "toggleName": self.name,
            "toggleValue": self.value,
            "toggleValueType": str(self.value_type),
            "toggleStatus": str(self.status),
        }


@dataclass
class ToggleCount:
    """トグル単位の評価回数。"""

    enable_count: int = 0
    disable_count: int = 0


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MetricsBucket:
    """メトリクス集計バケット。フラッシュ毎に新しいものと入れ替わる。"""

    start: datetime = field(default_factory=_now)
    stop: datetime | None = None
    toggles: dict[str, ToggleCount] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.toggles

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "stop": self.stop.isoformat() if self.stop is not None else None,
            "toggles": {
                name: {
                    "enable_count": count.enable_count,
                    "disable_count": count.disable_count,
                }
                for name, count in self.toggles.items()
            },
        }


@dataclass
class MetricsPayload:
    """/usage に送信するペイロード。"""

    bucket: MetricsBucket

    def to_dict(self) -> dict[str, Any]:
        return {"bucket": self.bucket.to_dict()}


@dataclass(frozen=True)
class HttpErrorEvent:
    """トグル取得で成功以外のレスポンスを受けた際の error イベントペイロード。"""

    code: int
    type: str = "HttpError"
