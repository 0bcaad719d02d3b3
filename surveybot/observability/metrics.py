"""
Campaign Counters
-----------------
Lightweight Redis counters for the conversation engine and the snapshot served
by GET /metrics. Every call is best-effort: a missing or unreachable Redis is
logged and never interrupts a conversation.
"""
from __future__ import annotations
import time
from typing import Dict, Optional

from redis.asyncio import Redis

from surveybot.observability.logging import log
from surveybot.settings import settings
from surveybot.store.redis_conn import get_redis

# Keys (stable across restarts)
K_SENT = "metrics:messages:sent"
K_SEND_FAIL = "metrics:messages:failed"
K_ANSWERS = "metrics:answers:recorded"
K_COMPLETED = "metrics:conversations:completed"
K_CAMPAIGNS = "metrics:campaigns:run"

_COUNTERS = {
    "messages_sent": K_SENT,
    "send_failures": K_SEND_FAIL,
    "answers_recorded": K_ANSWERS,
    "conversations_completed": K_COMPLETED,
    "campaigns_run": K_CAMPAIGNS,
}

_client: Optional[Redis] = None


def _redis() -> Redis:
    global _client
    if _client is None:
        _client = get_redis()
    return _client


async def _incr(key: str, amount: int = 1) -> None:
    if not settings.METRICS_ENABLED:
        return
    try:
        await _redis().incr(key, amount)
    except Exception as e:
        log("metrics_write_failed", key=key, error=str(e)[:200])


async def increment_sent() -> None:
    await _incr(K_SENT)

async def increment_send_failure() -> None:
    await _incr(K_SEND_FAIL)

async def increment_answers() -> None:
    await _incr(K_ANSWERS)

async def increment_completed() -> None:
    await _incr(K_COMPLETED)

async def increment_campaigns() -> None:
    await _incr(K_CAMPAIGNS)


async def get_metrics_snapshot() -> Dict[str, object]:
    """Counter values keyed by their public name, zeros when Redis is empty or down."""
    out: Dict[str, object] = {name: 0 for name in _COUNTERS}
    out["enabled"] = bool(settings.METRICS_ENABLED)
    out["snapshot_at"] = int(time.time())
    if not settings.METRICS_ENABLED:
        return out
    try:
        values = await _redis().mget(list(_COUNTERS.values()))
    except Exception as e:
        log("metrics_read_failed", error=str(e)[:200])
        return out
    for name, raw in zip(_COUNTERS, values):
        try:
            out[name] = int(raw or 0)
        except (TypeError, ValueError):
            out[name] = 0
    return out


async def close() -> None:
    global _client
    if _client is not None:
        try:
            await _client.aclose()
        except Exception as e:
            log("metrics_close_failed", error=str(e)[:200])
        _client = None
