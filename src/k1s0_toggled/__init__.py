"""k1s0 toggled client library."""

from .client import ToggledClient
from .config import MetricsConfig, ToggledConfig
from .events import EventEmitter, ToggledEvents
from .exceptions import (
    ConfigurationError,
    StorageError,
    ToggledError,
    ToggledErrorCodes,
    TransportError,
)
from .metrics import Metrics
from .models import (
    Context,
    HttpErrorEvent,
    MetricsBucket,
    MetricsPayload,
    Toggle,
    ToggleCount,
    ToggledPlatformUrl,
    ToggleStatus,
    ToggleValueType,
)
from .storage import FileStorageProvider, InMemoryStorageProvider, StorageProvider
from .transport import HttpxTransport, Transport, TransportResponse

__all__ = [
    "ToggledClient",
    "ToggledConfig",
    "MetricsConfig",
    "Metrics",
    "EventEmitter",
    "ToggledEvents",
    "Context",
    "Toggle",
    "ToggleStatus",
    "ToggleValueType",
    "ToggleCount",
    "ToggledPlatformUrl",
    "MetricsBucket",
    "MetricsPayload",
    "HttpErrorEvent",
    "StorageProvider",
    "InMemoryStorageProvider",
    "FileStorageProvider",
    "Transport",
    "TransportResponse",
    "HttpxTransport",
    "ToggledError",
    "ToggledErrorCodes",
    "ConfigurationError",
    "StorageError",
    "TransportError",
]
