import time
from typing import Optional, Protocol

import httpx

from surveybot.core.errors import TransportSendFailure
from surveybot.observability.logging import log
from surveybot.settings import settings
from surveybot.utils.phone import to_jid


class Messenger(Protocol):
    async def send_text(self, contact_id: str, text: str) -> None:
        """Deliver text to the contact or raise TransportSendFailure."""
        ...


class HttpMessenger:
    """
    Chat gateway client. The gateway owns the transport session (pairing,
    reconnects); we only hand it {jid, text} and read the status code.
    """

    def __init__(self, base_url: str = None, *, send_path: str = None, timeout: float = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.url = f"{(base_url or settings.MESSENGER_BASE_URL).rstrip('/')}{send_path or settings.MESSENGER_SEND_PATH}"
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.HTTP_TIMEOUT_SEC)

    async def send_text(self, contact_id: str, text: str) -> None:
        if not contact_id or not text:
            raise TransportSendFailure("missing recipient or text")

        jid = to_jid(contact_id)
        start = time.time()
        try:
            resp = await self._client.post(self.url, json={"jid": jid, "text": text})
        except httpx.HTTPError as e:
            raise TransportSendFailure(f"{type(e).__name__}: {str(e)[:200]}") from e

        elapsed_ms = int((time.time() - start) * 1000)
        if not (200 <= resp.status_code < 300):
            raise TransportSendFailure(f"gateway answered {resp.status_code}: {(resp.text or '')[:200]}")
        log("message_delivered", jid=jid, statusCode=resp.status_code, elapsedMs=elapsed_ms, text=text)

    async def aclose(self) -> None:
        await self._client.aclose()
