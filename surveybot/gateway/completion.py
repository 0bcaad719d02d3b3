from typing import Optional, Protocol

import httpx

from surveybot.observability.logging import log
from surveybot.settings import settings
from surveybot.store.models import Client


class CompletionCheck(Protocol):
    async def is_completed(self, client: Client) -> bool:
        ...


class NeverCompleted:
    """Used when no completion endpoint is configured: every contact falls through to Q&A."""

    async def is_completed(self, client: Client) -> bool:
        return False


class HttpCompletionCheck:
    """GET a URL template ({contact_id}, {survey_id}) answering {"completed": bool}."""

    def __init__(self, url_template: str, *, timeout: float = None, client: Optional[httpx.AsyncClient] = None):
        self.url_template = url_template
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.HTTP_TIMEOUT_SEC)

    async def is_completed(self, client: Client) -> bool:
        url = self.url_template.format(contact_id=client.contact_id, survey_id=client.survey_id or "")
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            # Unknown counts as not completed; the contact gets the Q&A fallback
            log("completion_check_failed", contactId=client.contact_id, error=f"{type(e).__name__}: {str(e)[:200]}")
            return False
        return bool(isinstance(data, dict) and data.get("completed"))

    async def aclose(self) -> None:
        await self._client.aclose()


def build_completion_check(url_template: str = None) -> CompletionCheck:
    url_template = settings.COMPLETION_CHECK_URL if url_template is None else url_template
    if url_template:
        return HttpCompletionCheck(url_template)
    return NeverCompleted()
