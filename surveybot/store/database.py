"""PostgreSQL access for client records and survey answers.

Tables are shared with the survey back-office:
- client(numero_whatsapp, prenom, nom, survey_id, survey_link, statut, ...)
- reponse_client(numero_whatsapp, question_id, question_text, reponse, recu_le)
"""

from __future__ import annotations

from typing import Protocol

import psycopg
from psycopg.rows import dict_row

from surveybot.core.errors import DirectoryUnavailable, PersistenceFailure
from surveybot.settings import settings
from surveybot.store.models import AnswerRecord


class DatabaseProtocol(Protocol):
    """What the directory and response store need from the database."""

    async def find_client(self, contact_id: str) -> dict | None:
        ...

    async def insert_answer(self, record: AnswerRecord) -> None:
        ...

    async def update_client_status(self, contact_id: str, status: str) -> None:
        ...


class Database:
    """Async PostgreSQL client; one short-lived connection per call."""

    def __init__(self, connection_string: str | None = None):
        self._conninfo = connection_string or settings.DATABASE_URL

    async def _connect(self) -> psycopg.AsyncConnection:
        return await psycopg.AsyncConnection.connect(self._conninfo, row_factory=dict_row)

    async def find_client(self, contact_id: str) -> dict | None:
        """Client row for an already-normalized contact identifier, or None.

        Raises:
            DirectoryUnavailable: the query could not be run.
        """
        try:
            async with await self._connect() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        "SELECT * FROM client WHERE numero_whatsapp = %s",
                        (contact_id,),
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise DirectoryUnavailable(f"client lookup failed: {e}") from e
        return dict(row) if row else None

    async def insert_answer(self, record: AnswerRecord) -> None:
        """Append one answer row. Raises PersistenceFailure."""
        try:
            async with await self._connect() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        INSERT INTO reponse_client
                            (numero_whatsapp, question_id, question_text, reponse, recu_le)
                        VALUES (%s, %s, %s, %s, %s)
                        """,
                        (
                            record.contact_id,
                            record.question_id,
                            record.question_text,
                            record.answer,
                            record.received_at,
                        ),
                    )
                await conn.commit()
        except psycopg.Error as e:
            raise PersistenceFailure(f"answer insert failed: {e}") from e

    async def update_client_status(self, contact_id: str, status: str) -> None:
        """Raises PersistenceFailure."""
        try:
            async with await self._connect() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        "UPDATE client SET statut = %s WHERE numero_whatsapp = %s",
                        (status, contact_id),
                    )
                await conn.commit()
        except psycopg.Error as e:
            raise PersistenceFailure(f"status update failed: {e}") from e
