import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Sequence

from surveybot.core.orchestrator import ConversationOrchestrator
from surveybot.observability.logging import log
import surveybot.observability.metrics as metrics
from surveybot.settings import settings
from surveybot.store.models import Client


@dataclass
class CampaignResult:
    success_count: int = 0
    total: int = 0
    failed: List[str] = field(default_factory=list)


async def run_campaign(
    orchestrator: ConversationOrchestrator,
    contacts: Sequence[Client],
    *,
    pacing_sec: float = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> CampaignResult:
    """
    Greet every contact in order, pausing between sends so the transport is not
    burst. One contact failing never stops the batch.
    """
    pacing = settings.CAMPAIGN_PACING_SEC if pacing_sec is None else pacing_sec
    result = CampaignResult(total=len(contacts))
    log("campaign_started", total=result.total)

    for i, client in enumerate(contacts):
        try:
            ok = await orchestrator.start_contact(client)
        except Exception as e:
            log("campaign_contact_error", contactId=client.contact_id,
                errorType=type(e).__name__, error=str(e)[:300])
            ok = False
        if ok:
            result.success_count += 1
        else:
            result.failed.append(client.contact_id or client.phone)

        if i < len(contacts) - 1:
            await sleep(pacing)

    await metrics.increment_campaigns()
    log("campaign_finished", success=result.success_count, total=result.total, failed=len(result.failed))
    return result
