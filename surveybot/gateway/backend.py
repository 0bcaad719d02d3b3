import time
from typing import Any, List, Optional

import httpx

from surveybot.core.errors import CatalogUnavailable, DirectoryUnavailable
from surveybot.observability.logging import log
from surveybot.settings import settings


class BackendClient:
    """Survey back-office API: pending clients and per-survey question lists."""

    def __init__(self, base_url: str = None, *, timeout: float = None, client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or settings.BACKEND_BASE_URL).rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.HTTP_TIMEOUT_SEC)

    async def _get_json(self, path: str) -> Any:
        url = f"{self.base_url}{path}"
        start = time.time()
        resp = await self._client.get(url)
        resp.raise_for_status()
        log("backend_get", url=url, statusCode=resp.status_code, elapsedMs=int((time.time() - start) * 1000))
        return resp.json()

    async def list_pending_clients(self) -> List[dict]:
        """Raises DirectoryUnavailable on transport errors, non-2xx or a non-list body."""
        try:
            data = await self._get_json(settings.DIRECTORY_PENDING_PATH)
        except (httpx.HTTPError, ValueError) as e:
            raise DirectoryUnavailable(f"pending clients unavailable: {type(e).__name__}: {e}") from e
        if not isinstance(data, list):
            raise DirectoryUnavailable("pending clients response is not a list")
        return data

    async def get_questions(self, survey_id: str) -> List[dict]:
        """Raises CatalogUnavailable on transport errors, non-2xx or a non-list body."""
        path = settings.CATALOG_QUESTIONS_PATH.format(survey_id=survey_id)
        try:
            data = await self._get_json(path)
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogUnavailable(f"questions for survey {survey_id} unavailable: {type(e).__name__}: {e}") from e
        if not isinstance(data, list):
            raise CatalogUnavailable(f"questions for survey {survey_id}: response is not a list")
        return data

    async def aclose(self) -> None:
        await self._client.aclose()
