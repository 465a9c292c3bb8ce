"""NIP document models served by the relay.

Sits beside ``lilrelay.core``: depends only on ``lilrelay.models`` and
third-party libraries, and is consumed by ``lilrelay.services``.

Attributes:
    RelayInformation: NIP-11 relay information document.
        See [RelayInformation][lilrelay.nips.nip11.RelayInformation].
    RelayLimitation: Server limits advertised inside the document.
"""

from .nip11 import NIP11_CONTENT_TYPE, RelayInformation, RelayLimitation


__all__ = [
    "NIP11_CONTENT_TYPE",
    "RelayInformation",
    "RelayLimitation",
]
