"""
Opencast external API integration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from opencast_bridge.integrations.opencast.client import (
        HttpOpencastCatalogClient,
        OpencastEpisode,
        OpencastIdType,
        OpencastSeries,
    )
    from opencast_bridge.integrations.opencast.scope import OpencastClientScope
    from opencast_bridge.integrations.opencast.transport import OpencastTransport, OpencastTransportError

__all__ = [
    "HttpOpencastCatalogClient",
    "OpencastClientScope",
    "OpencastEpisode",
    "OpencastIdType",
    "OpencastSeries",
    "OpencastTransport",
    "OpencastTransportError",
]

_MODULE_FOR_NAME = {
    "HttpOpencastCatalogClient": "client",
    "OpencastEpisode": "client",
    "OpencastIdType": "client",
    "OpencastSeries": "client",
    "OpencastClientScope": "scope",
    "OpencastTransport": "transport",
    "OpencastTransportError": "transport",
}


def __getattr__(name: str):
    if name in _MODULE_FOR_NAME:
        from importlib import import_module

        module = import_module(f"opencast_bridge.integrations.opencast.{_MODULE_FOR_NAME[name]}")
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
