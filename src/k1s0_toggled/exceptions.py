"""toggled クライアントの例外型定義"""

from __future__ import annotations


class ToggledError(Exception):
    """toggled クライアントのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class ToggledErrorCodes:
    """ToggledError のエラーコード定数。"""

    CONFIG_ERROR: str = "CONFIG_ERROR"
    STORAGE_ERROR: str = "STORAGE_ERROR"
    TRANSPORT_ERROR: str = "TRANSPORT_ERROR"
    HTTP_ERROR: str = "HTTP_ERROR"


class ConfigurationError(ToggledError):
    """クライアント設定が不正な場合のエラー。コンストラクタから同期的に送出される。"""

    def __init__(self, message: str) -> None:
        super().__init__(ToggledErrorCodes.CONFIG_ERROR, message)


class StorageError(ToggledError):
    """ストレージプロバイダの読み書きに失敗した場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(ToggledErrorCodes.STORAGE_ERROR, message, cause)


class TransportError(ToggledError):
    """ネットワーク層でリクエストが失敗した場合のエラー。"""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(ToggledErrorCodes.TRANSPORT_ERROR, message, cause)
