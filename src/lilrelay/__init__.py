r"""lilrelay -- a small in-memory Nostr relay.

Clients connect over WebSocket, publish signed events, and open
subscriptions that replay matching stored events and then stream new ones
live. Everything is kept in memory for the lifetime of the process.

Imports flow strictly downward:

```text
              services         Relay service: hub, connections, HTTP/WS app
             /        \
          core        nips     Logging, errors, config, metrics, store, codec
             \        /
              models           Pure frozen dataclasses (zero I/O)
```

Note:
    Top-level imports (``from lilrelay import Relay``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("lilrelay")

__all__ = [
    "BaseService",
    "ConfigT",
    "Event",
    "EventStore",
    "Filter",
    "Hub",
    "Logger",
    "Relay",
    "RelayConfig",
    "RelayInformation",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("lilrelay.core", "BaseService"),
    "ConfigT": ("lilrelay.core", "ConfigT"),
    "EventStore": ("lilrelay.core", "EventStore"),
    "Logger": ("lilrelay.core", "Logger"),
    "Event": ("lilrelay.models", "Event"),
    "Filter": ("lilrelay.models", "Filter"),
    "RelayInformation": ("lilrelay.nips", "RelayInformation"),
    "Hub": ("lilrelay.services.relay", "Hub"),
    "Relay": ("lilrelay.services", "Relay"),
    "RelayConfig": ("lilrelay.services", "RelayConfig"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module 'lilrelay' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
