import asyncio
import json

import httpx
import pytest

from surveybot.core.errors import CatalogUnavailable, DirectoryUnavailable, TransportSendFailure
from surveybot.gateway.backend import BackendClient
from surveybot.gateway.catalog import SurveyCatalog, parse_questions
from surveybot.gateway.completion import HttpCompletionCheck, NeverCompleted, build_completion_check
from surveybot.gateway.messenger import HttpMessenger
from surveybot.gateway.shortener import LinkShortener
from surveybot.store.models import Client, Question


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# --- messenger ---

def test_messenger_posts_jid_and_text():
    seen = []

    def handler(request):
        seen.append((str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={"ok": True})

    messenger = HttpMessenger("http://gateway.local/", send_path="/send", client=_client(handler))
    asyncio.run(messenger.send_text("212612345678", "Hello"))

    assert seen == [("http://gateway.local/send", {"jid": "212612345678@s.whatsapp.net", "text": "Hello"})]


def test_messenger_non_2xx_is_send_failure():
    messenger = HttpMessenger("http://gateway.local", client=_client(lambda r: httpx.Response(503, text="not connected")))
    with pytest.raises(TransportSendFailure, match="503"):
        asyncio.run(messenger.send_text("212612345678", "Hello"))


def test_messenger_transport_error_is_send_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    messenger = HttpMessenger("http://gateway.local", client=_client(handler))
    with pytest.raises(TransportSendFailure):
        asyncio.run(messenger.send_text("212612345678", "Hello"))


def test_messenger_rejects_empty_text():
    messenger = HttpMessenger("http://gateway.local", client=_client(lambda r: httpx.Response(200)))
    with pytest.raises(TransportSendFailure):
        asyncio.run(messenger.send_text("212612345678", ""))


# --- shortener ---

def test_shortener_returns_short_link():
    def handler(request):
        assert request.url.params["url"] == "https://survey.example/42"
        return httpx.Response(200, text="https://tiny.example/xyz\n")

    shortener = LinkShortener("https://tiny.example/api", enabled=True, client=_client(handler))
    assert asyncio.run(shortener.shorten("https://survey.example/42")) == "https://tiny.example/xyz"


@pytest.mark.parametrize("response", [httpx.Response(500), httpx.Response(200, text="Error")])
def test_shortener_falls_back_to_long_link(response):
    shortener = LinkShortener("https://tiny.example/api", enabled=True, client=_client(lambda r: response))
    assert asyncio.run(shortener.shorten("https://survey.example/42")) == "https://survey.example/42"


def test_shortener_disabled_never_calls_out():
    def handler(request):
        raise AssertionError("should not be called")

    shortener = LinkShortener("https://tiny.example/api", enabled=False, client=_client(handler))
    assert asyncio.run(shortener.shorten("https://survey.example/42")) == "https://survey.example/42"


# --- back-office ---

def test_backend_lists_pending_clients():
    def handler(request):
        assert request.url.path == "/api/clients/non-respondus"
        return httpx.Response(200, json=[{"numero": "0612345678", "prenom": "Sara"}])

    backend = BackendClient("http://backoffice.local", client=_client(handler))
    assert asyncio.run(backend.list_pending_clients()) == [{"numero": "0612345678", "prenom": "Sara"}]


@pytest.mark.parametrize("response", [httpx.Response(500), httpx.Response(200, json={"clients": []})])
def test_backend_pending_failure_is_directory_unavailable(response):
    backend = BackendClient("http://backoffice.local", client=_client(lambda r: response))
    with pytest.raises(DirectoryUnavailable):
        asyncio.run(backend.list_pending_clients())


def test_catalog_reads_questions_in_order():
    def handler(request):
        assert request.url.path == "/api/clients/questions/42"
        return httpx.Response(200, json=[
            {"qid": 7, "question": "How satisfied are you?"},
            {"id": "b", "text": "Would you recommend us?"},
        ])

    catalog = SurveyCatalog(BackendClient("http://backoffice.local", client=_client(handler)))
    assert asyncio.run(catalog.get_questions("42")) == [
        Question("7", "How satisfied are you?"),
        Question("b", "Would you recommend us?"),
    ]


def test_catalog_outage_is_catalog_unavailable():
    catalog = SurveyCatalog(BackendClient("http://backoffice.local", client=_client(lambda r: httpx.Response(502))))
    with pytest.raises(CatalogUnavailable):
        asyncio.run(catalog.get_questions("42"))


def test_parse_questions_positions_and_bad_items():
    assert parse_questions([{"label": "Anything else?"}]) == [Question("1", "Anything else?")]
    with pytest.raises(CatalogUnavailable):
        parse_questions([{"qid": 1}])
    with pytest.raises(CatalogUnavailable):
        parse_questions(["not an object"])


# --- completion check ---

def test_completion_check_reads_flag():
    def handler(request):
        assert str(request.url) == "http://surveys.local/status/212612345678/42"
        return httpx.Response(200, json={"completed": True})

    check = HttpCompletionCheck("http://surveys.local/status/{contact_id}/{survey_id}", client=_client(handler))
    client = Client(contact_id="212612345678", survey_id="42")
    assert asyncio.run(check.is_completed(client)) is True


def test_completion_check_errors_count_as_not_completed():
    check = HttpCompletionCheck("http://surveys.local/{contact_id}", client=_client(lambda r: httpx.Response(500)))
    assert asyncio.run(check.is_completed(Client(contact_id="212612345678"))) is False


def test_build_completion_check_without_url():
    check = build_completion_check("")
    assert isinstance(check, NeverCompleted)
    assert asyncio.run(check.is_completed(Client(contact_id="212612345678"))) is False
