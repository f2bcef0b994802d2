from __future__ import annotations

from collections.abc import Callable

from opencast_bridge.config import OpencastSettings
from opencast_bridge.integrations.opencast.client import HttpOpencastCatalogClient
from opencast_bridge.integrations.opencast.transport import OpencastTransport

ClientFactory = Callable[[int], HttpOpencastCatalogClient]


class OpencastClientScope:
    """
    Per-execution cache of catalog clients, keyed by instance id.

    A scope belongs to one request (or one script run) and is not thread-safe;
    build a new one per execution context and close it when done.
    """

    def __init__(self, settings: OpencastSettings, *, factory: ClientFactory | None = None) -> None:
        self._settings = settings
        self._factory = factory or self._build_client
        self._clients: dict[int, HttpOpencastCatalogClient] = {}
        self._created: list[HttpOpencastCatalogClient] = []

    @property
    def settings(self) -> OpencastSettings:
        return self._settings

    def _build_client(self, instance_id: int) -> HttpOpencastCatalogClient:
        instance = self._settings.get_instance(instance_id)
        return HttpOpencastCatalogClient(OpencastTransport(instance))

    def get_client(self, instance_id: int | None = None, *, force_new: bool = False) -> HttpOpencastCatalogClient:
        resolved = self._settings.get_instance(instance_id).id
        if not force_new and resolved in self._clients:
            return self._clients[resolved]
        client = self._factory(resolved)
        self._created.append(client)
        self._clients[resolved] = client
        return client

    def close(self) -> None:
        created, self._created = self._created, []
        self._clients.clear()
        for client in created:
            client.close()

    def __enter__(self) -> OpencastClientScope:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
