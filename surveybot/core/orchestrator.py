import asyncio
import dataclasses
from typing import Awaitable, Callable, Optional

from surveybot.core import messages
from surveybot.core import state_machine as sm
from surveybot.core.errors import (
    CatalogUnavailable,
    ContactNotFound,
    DirectoryUnavailable,
    NoQuestionsDefined,
    PersistenceFailure,
    TransportSendFailure,
)
from surveybot.core.question_cursor import QuestionCursor
from surveybot.core.scheduler import TimerScheduler
from surveybot.gateway.catalog import SurveyCatalog
from surveybot.gateway.completion import CompletionCheck
from surveybot.gateway.messenger import Messenger
from surveybot.gateway.shortener import LinkShortener
from surveybot.observability.logging import log
import surveybot.observability.metrics as metrics
from surveybot.settings import settings
from surveybot.store.conversation_store import ConversationStore
from surveybot.store.directory import ContactDirectory
from surveybot.store.models import AnswerRecord, Client, ConversationState
from surveybot.store.responses import ResponseStore
from surveybot.utils.phone import normalize_contact_id
from surveybot.utils.time import utcnow

Sleep = Callable[[float], Awaitable[None]]


class ConversationOrchestrator:
    """
    Per-contact conversation state machine.

    greeting -> (reply | T1) -> survey link -> T2 -> completed? close : Q&A -> thanks -> close

    Every entry point (campaign start, timer, inbound message) runs under the
    contact's lock and re-reads the state it acts on. Timers carry the version of
    the state that armed them and do nothing if that state is gone. A failed send
    leaves the contact where it was and arms nothing.
    """

    def __init__(
        self,
        *,
        store: ConversationStore,
        directory: ContactDirectory,
        responses: ResponseStore,
        catalog: SurveyCatalog,
        messenger: Messenger,
        shortener: LinkShortener,
        completion: CompletionCheck,
        scheduler: TimerScheduler,
        sleep: Sleep = asyncio.sleep,
    ):
        self.store = store
        self.directory = directory
        self.responses = responses
        self.messenger = messenger
        self.shortener = shortener
        self.completion = completion
        self.scheduler = scheduler
        self.cursor = QuestionCursor(store, catalog)
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def start_contact(self, client: Client) -> bool:
        """Send the greeting and arm T1. Returns False when the greeting was not sent."""
        contact_id = client.contact_id or normalize_contact_id(client.phone)
        if not contact_id:
            log("start_skipped", reason="no_contact_id", firstName=client.first_name)
            return False
        if contact_id != client.contact_id:
            client = dataclasses.replace(client, contact_id=contact_id)

        async with self.store.locked(contact_id):
            previous = self.store.get_state(contact_id)
            if not await self._send(contact_id, messages.greeting(client.first_name), kind="greeting"):
                return False
            if previous is not None:
                log("conversation_restarted", contactId=contact_id, previousPhase=previous.phase)
            state = self.store.enter(contact_id, sm.AWAITING_INITIAL_RESPONSE, client)
            self.scheduler.schedule(
                contact_id, settings.ESCALATION_DELAY_SEC,
                self.on_escalation_timer, contact_id, state.version,
            )
            self._transition(contact_id, previous.phase if previous else None, state, trigger="campaign")
        return True

    async def on_escalation_timer(self, contact_id: str, version: int) -> None:
        """T1: no reply to the greeting in time, offer the survey link."""
        async with self.store.locked(contact_id):
            state = self.store.get_state(contact_id)
            if not self._still(state, sm.AWAITING_INITIAL_RESPONSE, version):
                self._stale("escalation", contact_id, state)
                return
            await self._offer_survey(contact_id, state, trigger="escalation_timer")

    async def on_survey_check_timer(self, contact_id: str, version: int) -> None:
        """T2: close if the external survey was completed, otherwise start Q&A."""
        async with self.store.locked(contact_id):
            state = self.store.get_state(contact_id)
            if not self._still(state, sm.SURVEY_OFFERED, version):
                self._stale("survey_check", contact_id, state)
                return
            if await self._survey_completed(state.client):
                await self._close(contact_id, reason="survey_completed")
                return
            await self._begin_questions(contact_id, state)

    async def handle_incoming(self, raw_sender: str, text: str) -> None:
        contact_id = normalize_contact_id(raw_sender)
        if not contact_id:
            log("inbound_unroutable", sender=str(raw_sender)[:64])
            return
        received_at = utcnow()
        log("inbound_received", contactId=contact_id, text=text or "")

        async with self.store.locked(contact_id):
            try:
                await self.directory.get(contact_id)
            except ContactNotFound:
                log("contact_not_found", contactId=contact_id)
                await self._send(contact_id, messages.NOT_REGISTERED, kind="not_registered")
                return
            except DirectoryUnavailable as e:
                log("directory_lookup_failed", contactId=contact_id, error=str(e)[:300])
                await self._send(contact_id, messages.APOLOGY, kind="apology")
                return

            state = self.store.get_state(contact_id)
            if state is None:
                await self._send(contact_id, messages.OUT_OF_WORKFLOW, kind="out_of_workflow")
            elif state.phase == sm.AWAITING_INITIAL_RESPONSE:
                # The snapshot taken at campaign start carries the survey assignment
                await self._offer_survey(contact_id, state, trigger="reply")
            elif state.phase == sm.IN_QANDA:
                await self._answer(contact_id, text or "", received_at)
            else:
                log("inbound_ignored", contactId=contact_id, phase=state.phase)

    def dispatch_incoming(self, raw_sender: str, text: str) -> asyncio.Task:
        """Handle an inbound message in the background (webhook path)."""
        return self.scheduler.spawn(self.handle_incoming(raw_sender, text), name="inbound")

    def snapshot(self) -> dict:
        return self.store.snapshot()

    # ------------------------------------------------------------------
    # Transitions (caller holds the contact's lock)
    # ------------------------------------------------------------------

    async def _offer_survey(self, contact_id: str, state: ConversationState, *, trigger: str) -> bool:
        client = state.client
        if not client.survey_link:
            log("survey_link_missing", contactId=contact_id, trigger=trigger)
            return False
        link = await self.shortener.shorten(client.survey_link)
        if not await self._send(contact_id, messages.survey_link(link), kind="survey_link"):
            return False
        new_state = self.store.enter(contact_id, sm.SURVEY_OFFERED, client)
        self.scheduler.schedule(
            contact_id, settings.SURVEY_CHECK_DELAY_SEC,
            self.on_survey_check_timer, contact_id, new_state.version,
        )
        self._transition(contact_id, state.phase, new_state, trigger=trigger)
        return True

    async def _begin_questions(self, contact_id: str, state: ConversationState) -> bool:
        client = state.client
        survey_id = client.survey_id or await self._lookup_survey_id(contact_id)
        if not survey_id:
            log("survey_id_missing", contactId=contact_id)
            await self._send(contact_id, messages.NO_QUESTIONS, kind="apology")
            return False

        try:
            progress = await self.cursor.begin(contact_id, client, survey_id)
        except (CatalogUnavailable, NoQuestionsDefined) as e:
            # No progress is created; the contact stays in SURVEY_OFFERED with no timer
            log("questions_unavailable", contactId=contact_id, surveyId=survey_id,
                errorType=type(e).__name__, error=str(e)[:300])
            await self._send(contact_id, messages.NO_QUESTIONS, kind="apology")
            return False

        total = len(progress.questions)
        if not await self._send(contact_id, messages.questions_intro(total), kind="questions_intro"):
            self.store.enter(contact_id, sm.SURVEY_OFFERED, client)
            log("questions_abandoned", contactId=contact_id, reason="intro_not_sent")
            return False
        self._transition(contact_id, state.phase, self.store.get_state(contact_id),
                         trigger="survey_check_timer", questions=total)

        await self._sleep(settings.QUESTION_INTRO_DELAY_SEC)
        await self._send_current_question(contact_id)
        return True

    async def _answer(self, contact_id: str, text: str, received_at) -> None:
        outcome = self.cursor.record_answer(contact_id, text)
        if outcome is None:
            log("answer_without_progress", contactId=contact_id)
            return

        record = AnswerRecord(
            contact_id=contact_id,
            question_id=outcome.question.id,
            question_text=outcome.question.text,
            answer=text,
            received_at=received_at,
        )
        try:
            await self.responses.append_answer(record)
        except PersistenceFailure as e:
            # The cursor has already moved on; the answer is lost from the store
            log("answer_persist_failed", contactId=contact_id, questionId=outcome.question.id, error=str(e)[:300])
        else:
            await metrics.increment_answers()
        log("answer_recorded", contactId=contact_id, questionId=outcome.question.id,
            answered=outcome.next_index, total=outcome.total)

        await self._sleep(settings.QUESTION_PACING_SEC)
        if outcome.done:
            await self._send(contact_id, messages.THANKS, kind="thanks")
            await self._close(contact_id, reason="questions_answered")
            return
        await self._send_current_question(contact_id)

    async def _send_current_question(self, contact_id: str) -> bool:
        progress = self.store.get_progress(contact_id)
        question = self.cursor.current_question(contact_id)
        if progress is None or question is None:
            log("question_missing", contactId=contact_id)
            return False
        text = messages.question(progress.current_index, len(progress.questions), question.text)
        return await self._send(contact_id, text, kind="question")

    async def _close(self, contact_id: str, *, reason: str) -> None:
        try:
            await self.responses.mark_responded(contact_id)
        except PersistenceFailure as e:
            log("status_update_failed", contactId=contact_id, error=str(e)[:300])
        previous = self.store.get_state(contact_id)
        self.cursor.finish(contact_id)
        await metrics.increment_completed()
        log("conversation_closed", contactId=contact_id, reason=reason,
            fromPhase=previous.phase if previous else None)

    # ------------------------------------------------------------------
    # Collaborator calls
    # ------------------------------------------------------------------

    async def _send(self, contact_id: str, text: str, *, kind: str) -> bool:
        try:
            await self.messenger.send_text(contact_id, text)
        except TransportSendFailure as e:
            log("send_failed", contactId=contact_id, kind=kind, error=str(e)[:300])
            await metrics.increment_send_failure()
            return False
        await metrics.increment_sent()
        log("message_sent", contactId=contact_id, kind=kind)
        return True

    async def _survey_completed(self, client: Client) -> bool:
        try:
            return bool(await self.completion.is_completed(client))
        except Exception as e:
            log("completion_check_failed", contactId=client.contact_id,
                errorType=type(e).__name__, error=str(e)[:300])
            return False

    async def _lookup_survey_id(self, contact_id: str) -> Optional[str]:
        try:
            client = await self.directory.find(contact_id)
        except DirectoryUnavailable as e:
            log("survey_id_lookup_failed", contactId=contact_id, error=str(e)[:300])
            return None
        return client.survey_id if client else None

    # ------------------------------------------------------------------
    # Guards and logging
    # ------------------------------------------------------------------

    @staticmethod
    def _still(state: Optional[ConversationState], phase: str, version: int) -> bool:
        return state is not None and state.phase == phase and state.version == version

    @staticmethod
    def _stale(timer: str, contact_id: str, state: Optional[ConversationState]) -> None:
        log("timer_stale", contactId=contact_id, timer=timer, phase=state.phase if state else None)

    @staticmethod
    def _transition(contact_id: str, from_phase: Optional[str], state: ConversationState, *, trigger: str, **extra) -> None:
        log("transition", contactId=contact_id, fromPhase=from_phase, toPhase=state.phase,
            version=state.version, trigger=trigger, **extra)
