from dataclasses import dataclass
from typing import Optional

from surveybot.core.errors import NoQuestionsDefined
from surveybot.gateway.catalog import SurveyCatalog
from surveybot.store.conversation_store import ConversationStore
from surveybot.store.models import Client, Question, QuestionProgress


@dataclass(frozen=True)
class AnswerOutcome:
    question: Question
    done: bool
    next_index: int
    total: int


class QuestionCursor:
    """
    Walks a contact through the catalog's questions in order, one answer per step.
    Callers hold the contact's lock; record_answer never awaits, so the answer
    append and the cursor step cannot be split by another event.
    """

    def __init__(self, store: ConversationStore, catalog: SurveyCatalog):
        self.store = store
        self.catalog = catalog

    async def begin(self, contact_id: str, client: Client, survey_id: str) -> QuestionProgress:
        """
        Fetch the questions and put the contact in Q&A.

        Raises CatalogUnavailable or NoQuestionsDefined; the contact's state is
        left untouched in both cases.
        """
        questions = await self.catalog.get_questions(survey_id)
        if not questions:
            raise NoQuestionsDefined(f"survey {survey_id} has no questions")
        progress = QuestionProgress(questions=list(questions))
        self.store.enter_questions(contact_id, client, progress)
        return progress

    def current_question(self, contact_id: str) -> Optional[Question]:
        progress = self.store.get_progress(contact_id)
        if progress is None:
            return None
        return progress.current

    def record_answer(self, contact_id: str, text: str) -> Optional[AnswerOutcome]:
        """Any text, empty included, answers the current question. None without progress."""
        progress = self.store.get_progress(contact_id)
        if progress is None or progress.exhausted:
            return None
        question = progress.current
        progress.answers.append(text if text is not None else "")
        progress.current_index += 1
        return AnswerOutcome(
            question=question,
            done=progress.exhausted,
            next_index=progress.current_index,
            total=len(progress.questions),
        )

    def finish(self, contact_id: str) -> None:
        self.store.close(contact_id)
