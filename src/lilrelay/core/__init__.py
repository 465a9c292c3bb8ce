"""Core layer providing the foundation for the relay service.

Sits in the middle of the layering: depends only on ``lilrelay.models`` and
is depended upon by ``lilrelay.services``.

Attributes:
    BaseService: Abstract generic base class with lifecycle management
        ([run()][lilrelay.core.base_service.BaseService.run] /
        [run_forever()][lilrelay.core.base_service.BaseService.run_forever] /
        shutdown), factory methods, and Prometheus metrics integration.
    EventStore: In-memory id-to-event map shared by every connection.
    decode_client_message: Boundary decoder from raw frames to typed
        client messages.
    Logger: Structured key=value logger.
    load_yaml: Safe YAML loading with ``yaml.safe_load()``.

See Also:
    [lilrelay.models][lilrelay.models]: Pure dataclass models consumed by this layer.
    [lilrelay.services][lilrelay.services]: Service implementations that depend on
        this layer.
"""

from .base_service import (
    BaseService,
    BaseServiceConfig,
    ConfigT,
)
from .codec import decode_client_message
from .exceptions import (
    ConfigurationError,
    InvalidEventError,
    LilRelayError,
    ProtocolError,
    TransportClosedError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    metrics_response,
)
from .store import EventStore
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "ConfigurationError",
    "EventStore",
    "InvalidEventError",
    "LilRelayError",
    "Logger",
    "MetricsConfig",
    "ProtocolError",
    "StructuredFormatter",
    "TransportClosedError",
    "decode_client_message",
    "format_kv_pairs",
    "load_yaml",
    "metrics_response",
]
