from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from surveybot.utils.phone import normalize_contact_id
from surveybot.utils.time import now_ms

@dataclass
class Client:
    """Canonical client record. Everything the core reads about a contact."""
    contact_id: str
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    survey_id: Optional[str] = None
    survey_link: Optional[str] = None
    status: Optional[str] = None

@dataclass(frozen=True)
class Question:
    id: str
    text: str

@dataclass
class ConversationState:
    phase: str
    client: Client
    entered_at_ms: int = field(default_factory=now_ms)
    # Fresh per entry; timers armed for an earlier entry compare it and stand down
    version: int = 0

@dataclass
class QuestionProgress:
    questions: List[Question]
    current_index: int = 0
    answers: List[str] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return self.current_index >= len(self.questions)

    @property
    def current(self) -> Optional[Question]:
        if self.exhausted:
            return None
        return self.questions[self.current_index]

@dataclass
class AnswerRecord:
    contact_id: str
    question_id: str
    question_text: str
    answer: str
    received_at: datetime


# Column/field aliases seen from the database (snake_case, French) and the
# back-office API (camelCase). Order matters: first non-empty wins.
_ALIASES: Dict[str, tuple] = {
    "phone": ("numero_whatsapp", "numeroWhatsapp", "numero", "phone", "number"),
    "first_name": ("prenom", "firstName", "first_name"),
    "last_name": ("nom", "lastName", "last_name", "name"),
    "survey_id": ("survey_id", "surveyId"),
    "survey_link": ("survey_link", "surveyLink", "link"),
    "status": ("statut", "status"),
}


def _pick(row: Dict[str, Any], keys: tuple) -> Any:
    for k in keys:
        v = row.get(k)
        if v is not None and v != "":
            return v
    return None


def client_from_row(row: Dict[str, Any]) -> Client:
    """Map any known client shape onto Client so the core never branches on field names."""
    row = row or {}
    phone = str(_pick(row, _ALIASES["phone"]) or "")
    survey_id = _pick(row, _ALIASES["survey_id"])
    return Client(
        contact_id=normalize_contact_id(phone),
        first_name=str(_pick(row, _ALIASES["first_name"]) or ""),
        last_name=str(_pick(row, _ALIASES["last_name"]) or ""),
        phone=phone,
        survey_id=str(survey_id) if survey_id is not None else None,
        survey_link=_pick(row, _ALIASES["survey_link"]),
        status=_pick(row, _ALIASES["status"]),
    )
