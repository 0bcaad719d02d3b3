from redis.asyncio import Redis
from surveybot.settings import settings


def get_redis() -> Redis:
    return Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
    )
