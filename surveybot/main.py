from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from surveybot.api.routes import router
from surveybot.core.orchestrator import ConversationOrchestrator
from surveybot.core.scheduler import TimerScheduler
from surveybot.gateway.backend import BackendClient
from surveybot.gateway.catalog import SurveyCatalog
from surveybot.gateway.completion import build_completion_check
from surveybot.gateway.messenger import HttpMessenger
from surveybot.gateway.shortener import LinkShortener
from surveybot.observability.logging import log
import surveybot.observability.metrics as metrics
from surveybot.settings import settings
from surveybot.store.conversation_store import ConversationStore
from surveybot.store.database import Database
from surveybot.store.directory import ContactDirectory
from surveybot.store.responses import ResponseStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    backend = BackendClient()
    messenger = HttpMessenger()
    shortener = LinkShortener()
    completion = build_completion_check()
    scheduler = TimerScheduler()
    db = Database()
    directory = ContactDirectory(db, backend)

    app.state.directory = directory
    app.state.orchestrator = ConversationOrchestrator(
        store=ConversationStore(),
        directory=directory,
        responses=ResponseStore(db),
        catalog=SurveyCatalog(backend),
        messenger=messenger,
        shortener=shortener,
        completion=completion,
        scheduler=scheduler,
    )
    log(
        "boot",
        escalationDelaySec=settings.ESCALATION_DELAY_SEC,
        surveyCheckDelaySec=settings.SURVEY_CHECK_DELAY_SEC,
        completionCheck=type(completion).__name__,
        metricsEnabled=settings.METRICS_ENABLED,
    )
    try:
        yield
    finally:
        # Pending timers die with the process; in-memory conversations are not persisted
        await scheduler.shutdown()
        for closable in (backend, messenger, shortener, completion):
            aclose = getattr(closable, "aclose", None)
            if aclose is not None:
                await aclose()
        await metrics.close()
        log("shutdown")


app = FastAPI(title="Survey Campaign Bot", lifespan=lifespan)

origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/")
def root():
    return {
        "status": "ok",
        "message": "Survey bot is running. POST /start-workflow or /send-whatsapp-reminder to begin.",
    }


@app.get("/health")
def health():
    return {"status": "ok"}


@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    log("unhandled_exception", path=request.url.path, errorType=type(exc).__name__, error=str(exc)[:300])
    return JSONResponse(status_code=500, content={"error": "Internal error"})
