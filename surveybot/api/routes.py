import dataclasses
import os
import signal
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Request
from fastapi.responses import JSONResponse

from surveybot.api.normalize import normalize_inbound_payload
from surveybot.api.schemas import (
    ActiveClientsResponse,
    ClientSummary,
    ConnectionUpdate,
    ReminderClient,
    ReminderResponse,
    StartWorkflowResponse,
    WebhookAck,
)
from surveybot.core.campaign import run_campaign
from surveybot.core.errors import DirectoryUnavailable
from surveybot.core.orchestrator import ConversationOrchestrator
from surveybot.observability.logging import log
import surveybot.observability.metrics as metrics
from surveybot.store.directory import ContactDirectory
from surveybot.store.models import Client
from surveybot.utils.phone import normalize_contact_id

router = APIRouter()

REMINDER_REQUIRED = ("numero", "prenom", "link")


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    return request.app.state.orchestrator


def get_directory(request: Request) -> ContactDirectory:
    return request.app.state.directory


def _terminate_process() -> None:
    # The transport session is gone; let the supervisor restart us with a fresh one.
    os.kill(os.getpid(), signal.SIGTERM)


@router.post("/start-workflow", response_model=StartWorkflowResponse)
async def start_workflow(
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    directory: ContactDirectory = Depends(get_directory),
):
    """Greet every client that has not responded yet."""
    try:
        clients = await directory.list_pending()
    except DirectoryUnavailable as e:
        log("workflow_directory_failed", error=str(e)[:300])
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to start the workflow", "details": str(e)},
        )

    summaries = [ClientSummary(name=c.last_name, firstName=c.first_name, number=c.phone) for c in clients]
    if not clients:
        return StartWorkflowResponse(message="No pending clients found", success=0, total=0, clients=[])

    result = await run_campaign(orchestrator, clients)
    return StartWorkflowResponse(
        message=f"Workflow started for {result.success_count}/{result.total} clients",
        success=result.success_count,
        total=result.total,
        clients=summaries,
    )


@router.post("/send-whatsapp-reminder", response_model=ReminderResponse)
async def send_reminder(
    payload: Any = Body(None),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    directory: ContactDirectory = Depends(get_directory),
):
    """Start the workflow for a single contact, known or not."""
    payload = payload if isinstance(payload, dict) else {}
    numero, prenom, link = (str(payload.get(k) or "").strip() for k in REMINDER_REQUIRED)
    if not (numero and prenom and link):
        return JSONResponse(
            status_code=400,
            content={"error": "Missing data", "required": list(REMINDER_REQUIRED)},
        )

    contact_id = normalize_contact_id(numero)
    client = None
    try:
        client = await directory.find(contact_id)
    except DirectoryUnavailable as e:
        log("reminder_lookup_failed", contactId=contact_id, error=str(e)[:300])
    if client is None:
        # Unknown contact: survey id is resolved later if the catalog is needed
        client = Client(contact_id=contact_id, first_name=prenom, phone=numero, survey_link=link)
    elif not client.survey_link:
        client = dataclasses.replace(client, survey_link=link)

    log("reminder_requested", contactId=contact_id, known=client.survey_id is not None)
    if not await orchestrator.start_contact(client):
        return JSONResponse(status_code=500, content={"error": "Failed to send the initial message"})

    return ReminderResponse(
        message="Workflow started",
        client=ReminderClient(prenom=prenom, numero=numero),
    )


@router.get("/active-clients", response_model=ActiveClientsResponse)
async def active_clients(orchestrator: ConversationOrchestrator = Depends(get_orchestrator)):
    return orchestrator.snapshot()


@router.post("/webhook/messages", response_model=WebhookAck)
async def inbound_messages(
    payload: Any = Body(None),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """Inbound chat events from the gateway; handled in the background."""
    messages = normalize_inbound_payload(payload)
    for m in messages:
        orchestrator.dispatch_incoming(m.sender, m.text)
    return WebhookAck(status="accepted" if messages else "ignored", accepted=len(messages))


@router.post("/webhook/connection")
async def connection_update(update: ConnectionUpdate, background_tasks: BackgroundTasks):
    log("transport_connection_update", connection=update.connection, reason=update.reason)
    if (update.connection or "").lower() == "close":
        log("transport_disconnected", reason=update.reason)
        background_tasks.add_task(_terminate_process)
        return {"status": "shutting_down"}
    return {"status": "ok"}


@router.get("/metrics")
async def metrics_snapshot():
    return await metrics.get_metrics_snapshot()
