import asyncio
from types import SimpleNamespace

import pytest
from unittest.mock import patch

from surveybot.core.errors import PersistenceFailure, DirectoryUnavailable, TransportSendFailure
from surveybot.core.orchestrator import ConversationOrchestrator
from surveybot.gateway.catalog import SurveyCatalog
from surveybot.settings import settings
from surveybot.store.conversation_store import ConversationStore
from surveybot.store.directory import ContactDirectory
from surveybot.store.responses import ResponseStore
from surveybot.utils.phone import normalize_contact_id


class FakeMessenger:
    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self.fail_texts = set()
        self.delays = {}

    async def send_text(self, contact_id, text):
        await asyncio.sleep(max((s for t, s in self.delays.items() if t in text), default=0))
        if contact_id in self.fail_for or any(t in text for t in self.fail_texts):
            raise TransportSendFailure("gateway answered 503")
        self.sent.append((contact_id, text))

    def texts(self, contact_id):
        return [t for cid, t in self.sent if cid == contact_id]


class FakeDatabase:
    def __init__(self):
        self.clients = {}
        self.answers = []
        self.statuses = {}
        self.lookup_error = None
        self.fail_inserts = False

    def add_client(self, phone, **row):
        contact_id = normalize_contact_id(phone)
        self.clients[contact_id] = {"numero_whatsapp": contact_id, **row}
        return contact_id

    async def find_client(self, contact_id):
        if self.lookup_error:
            raise self.lookup_error
        return self.clients.get(contact_id)

    async def insert_answer(self, record):
        if self.fail_inserts:
            raise PersistenceFailure("insert failed")
        self.answers.append(record)

    async def update_client_status(self, contact_id, status):
        self.statuses[contact_id] = status


class FakeBackend:
    def __init__(self):
        self.pending = []
        self.questions = {}

    async def list_pending_clients(self):
        if isinstance(self.pending, Exception):
            raise self.pending
        return self.pending

    async def get_questions(self, survey_id):
        value = self.questions.get(survey_id, [])
        if isinstance(value, Exception):
            raise value
        return value


class FakeShortener:
    async def shorten(self, long_url):
        return "https://short.example/abc"


class FakeCompletion:
    def __init__(self, completed=False):
        self.completed = completed
        self.checked = []

    async def is_completed(self, client):
        self.checked.append(client.contact_id)
        if isinstance(self.completed, Exception):
            raise self.completed
        return self.completed


class ManualScheduler:
    """Records timers instead of sleeping; tests fire them explicitly."""

    def __init__(self):
        self.timers = []
        self.spawned = []

    def schedule(self, contact_id, delay, callback, *args):
        self.timers.append((contact_id, delay, callback, args))

    def spawn(self, coro, *, name=None):
        task = asyncio.get_running_loop().create_task(coro)
        self.spawned.append(task)
        return task

    def pending(self, contact_id):
        return sum(1 for t in self.timers if t[0] == contact_id)

    def names(self):
        return [t[2].__name__ for t in self.timers]

    async def fire(self, name):
        for i, (_, _, callback, args) in enumerate(self.timers):
            if callback.__name__ == name:
                del self.timers[i]
                await callback(*args)
                return
        raise AssertionError(f"no pending timer {name}: {self.names()}")

    async def shutdown(self):
        self.timers.clear()


async def no_sleep(_seconds):
    return None


@pytest.fixture(autouse=True)
def _no_metrics():
    with patch.object(settings, "METRICS_ENABLED", False):
        yield


def _build_bot(scheduler):
    db = FakeDatabase()
    backend = FakeBackend()
    messenger = FakeMessenger()
    completion = FakeCompletion()
    store = ConversationStore()
    directory = ContactDirectory(db, backend)
    orchestrator = ConversationOrchestrator(
        store=store,
        directory=directory,
        responses=ResponseStore(db, responded_status="Responded"),
        catalog=SurveyCatalog(backend),
        messenger=messenger,
        shortener=FakeShortener(),
        completion=completion,
        scheduler=scheduler,
        sleep=no_sleep,
    )
    return SimpleNamespace(
        orchestrator=orchestrator,
        store=store,
        directory=directory,
        db=db,
        backend=backend,
        messenger=messenger,
        scheduler=scheduler,
        completion=completion,
    )


@pytest.fixture
def bot():
    return _build_bot(ManualScheduler())


@pytest.fixture
def make_bot():
    """Same wiring as `bot` around a scheduler of the test's choosing."""
    return _build_bot


@pytest.fixture
def directory_down():
    return DirectoryUnavailable("connection refused")
