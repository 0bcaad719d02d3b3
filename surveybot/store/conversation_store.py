import itertools
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional

from surveybot.core import state_machine as sm
from surveybot.store.models import Client, ConversationState, QuestionProgress
from surveybot.utils.lock import ContactLocks
from surveybot.utils.time import iso_from_ms


class ConversationStore:
    """
    In-memory authority over per-contact conversation state and question progress.

    Writers must hold the contact's lock (see `locked`). The two tables are only
    changed together through `enter`, `enter_questions` and `close`, which keeps
    "progress exists => state is IN_QANDA" true at every await point.
    """

    def __init__(self) -> None:
        self._states: Dict[str, ConversationState] = {}
        self._progress: Dict[str, QuestionProgress] = {}
        self._locks = ContactLocks()
        self._versions = itertools.count(1)

    @asynccontextmanager
    async def locked(self, contact_id: str) -> AsyncIterator[None]:
        async with self._locks.hold(contact_id):
            yield

    def _require_lock(self, contact_id: str) -> None:
        if not self._locks.is_held(contact_id):
            raise RuntimeError(f"contact {contact_id} accessed without holding its lock")

    # --- reads ---

    def get_state(self, contact_id: str) -> Optional[ConversationState]:
        self._require_lock(contact_id)
        return self._states.get(contact_id)

    def get_progress(self, contact_id: str) -> Optional[QuestionProgress]:
        self._require_lock(contact_id)
        return self._progress.get(contact_id)

    # --- coordinated writes ---

    def enter(self, contact_id: str, phase: str, client: Client) -> ConversationState:
        """Move the contact to a non-Q&A phase; any question progress is dropped with it."""
        self._require_lock(contact_id)
        if phase == sm.IN_QANDA:
            raise ValueError("use enter_questions() to start Q&A")
        if phase not in sm.PHASES:
            raise ValueError(f"unknown phase {phase!r}")
        state = ConversationState(phase=phase, client=client, version=next(self._versions))
        self._progress.pop(contact_id, None)
        self._states[contact_id] = state
        return state

    def enter_questions(self, contact_id: str, client: Client, progress: QuestionProgress) -> ConversationState:
        self._require_lock(contact_id)
        state = ConversationState(phase=sm.IN_QANDA, client=client, version=next(self._versions))
        self._states[contact_id] = state
        self._progress[contact_id] = progress
        return state

    def close(self, contact_id: str) -> None:
        self._require_lock(contact_id)
        self._progress.pop(contact_id, None)
        self._states.pop(contact_id, None)

    # --- observability (read-only, no lock: no await between reads) ---

    def snapshot(self) -> dict:
        active_clients: List[dict] = [
            {
                "numero": contact_id,
                "prenom": state.client.first_name,
                "state": state.phase,
                "timestamp": iso_from_ms(state.entered_at_ms),
            }
            for contact_id, state in self._states.items()
        ]
        active_questions: List[dict] = [
            {
                "numero": contact_id,
                "currentIndex": progress.current_index,
                "totalQuestions": len(progress.questions),
            }
            for contact_id, progress in self._progress.items()
        ]
        return {
            "activeClients": active_clients,
            "activeQuestions": active_questions,
            "total": len(active_clients),
        }

    def __contains__(self, contact_id: str) -> bool:
        return contact_id in self._states

    def __len__(self) -> int:
        return len(self._states)
