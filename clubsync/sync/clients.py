"""
Registry of provider fetch clients, keyed by sync domain.

Deployment glue registers the concrete calendar/CRM/booking clients before
the worker starts. A domain with no client syncs as "not configured".
"""

from clubsync.infrastructure.observability.logging import get_logger
from clubsync.sync.base import FetchClient

logger = get_logger(__name__)

_CLIENTS: dict[str, FetchClient] = {}


def register_client(domain: str, client: FetchClient) -> None:
    if not isinstance(client, FetchClient):
        raise TypeError(f"client for '{domain}' does not implement fetch()")
    _CLIENTS[domain] = client
    logger.info("Sync client registered", domain=domain, client=type(client).__name__)


def get_client(domain: str) -> FetchClient | None:
    return _CLIENTS.get(domain)


def clear_clients() -> None:
    _CLIENTS.clear()
