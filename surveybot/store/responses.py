from surveybot.settings import settings
from surveybot.store.database import DatabaseProtocol
from surveybot.store.models import AnswerRecord


class ResponseStore:
    """Append-only answers plus the single terminal status write."""

    def __init__(self, db: DatabaseProtocol, responded_status: str = None):
        self.db = db
        self.responded_status = responded_status or settings.RESPONDED_STATUS

    async def append_answer(self, record: AnswerRecord) -> None:
        await self.db.insert_answer(record)

    async def mark_responded(self, contact_id: str) -> None:
        await self.db.update_client_status(contact_id, self.responded_status)
