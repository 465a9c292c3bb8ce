"""Service layer.

Services are the top of the layering, depending on
[lilrelay.core][lilrelay.core], [lilrelay.nips][lilrelay.nips], and
[lilrelay.models][lilrelay.models]. Each service extends
[BaseService][lilrelay.core.base_service.BaseService] and implements
``async def run()`` for one cycle of work.

Attributes:
    Relay: WebSocket relay accepting, storing, and fanning out events.

Examples:
    ```python
    from lilrelay.services import Relay

    relay = Relay.from_yaml("config/relay.yaml")
    async with relay:
        await relay.run_forever()
    ```
"""

from .relay import (
    Relay,
    RelayConfig,
)


__all__ = [
    "Relay",
    "RelayConfig",
]
