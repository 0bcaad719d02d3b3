from typing import List, Optional

from surveybot.core.errors import ContactNotFound
from surveybot.gateway.backend import BackendClient
from surveybot.observability.logging import log
from surveybot.store.database import DatabaseProtocol
from surveybot.store.models import Client, client_from_row


class ContactDirectory:
    """Read-only view of client records: single lookups from the database,
    the pending-campaign list from the back-office API."""

    def __init__(self, db: DatabaseProtocol, backend: BackendClient):
        self.db = db
        self.backend = backend

    async def find(self, contact_id: str) -> Optional[Client]:
        """Raises DirectoryUnavailable when the database cannot be queried."""
        if not contact_id:
            return None
        row = await self.db.find_client(contact_id)
        if not row:
            return None
        client = client_from_row(row)
        # Rows keyed by a stale number format still resolve to the key we looked up
        client.contact_id = contact_id
        return client

    async def list_pending(self) -> List[Client]:
        """Clients that have not responded yet. Raises DirectoryUnavailable."""
        rows = await self.backend.list_pending_clients()
        clients = []
        for row in rows:
            client = client_from_row(row) if isinstance(row, dict) else None
            if client is None or not client.contact_id:
                log("directory_entry_skipped", entry=str(row)[:120])
                continue
            clients.append(client)
        return clients

    async def get(self, contact_id: str) -> Client:
        """Like find(), but raises ContactNotFound instead of returning None."""
        client = await self.find(contact_id)
        if client is None:
            raise ContactNotFound(f"no client record for {contact_id}")
        return client
