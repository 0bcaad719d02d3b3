import asyncio

import pytest

from surveybot.core.errors import NoQuestionsDefined
from surveybot.core.question_cursor import QuestionCursor
from surveybot.store.conversation_store import ConversationStore
from surveybot.store.models import Client, Question

CID = "212600000001"


class StaticCatalog:
    def __init__(self, questions):
        self.questions = questions
        self.requested = []

    async def get_questions(self, survey_id):
        self.requested.append(survey_id)
        return self.questions


def test_begin_with_no_questions_leaves_state_alone():
    store = ConversationStore()
    cursor = QuestionCursor(store, StaticCatalog([]))

    async def scenario():
        async with store.locked(CID):
            with pytest.raises(NoQuestionsDefined):
                await cursor.begin(CID, Client(contact_id=CID), "7")
            assert store.get_state(CID) is None

    asyncio.run(scenario())


def test_answers_track_the_cursor():
    store = ConversationStore()
    catalog = StaticCatalog([Question("a", "First?"), Question("b", "Second?")])
    cursor = QuestionCursor(store, catalog)

    async def scenario():
        async with store.locked(CID):
            await cursor.begin(CID, Client(contact_id=CID), "7")
            assert cursor.current_question(CID) == Question("a", "First?")

            first = cursor.record_answer(CID, "fine")
            assert (first.question.id, first.done, first.next_index, first.total) == ("a", False, 1, 2)
            progress = store.get_progress(CID)
            assert len(progress.answers) == progress.current_index

            second = cursor.record_answer(CID, "great")
            assert second.question.id == "b"
            assert second.done
            assert cursor.current_question(CID) is None
            assert cursor.record_answer(CID, "extra") is None
            assert store.get_progress(CID).answers == ["fine", "great"]

            cursor.finish(CID)
            assert store.get_state(CID) is None

    asyncio.run(scenario())
    assert catalog.requested == ["7"]


def test_record_answer_without_progress():
    store = ConversationStore()
    cursor = QuestionCursor(store, StaticCatalog([]))

    async def scenario():
        async with store.locked(CID):
            return cursor.record_answer(CID, "hello")

    assert asyncio.run(scenario()) is None
