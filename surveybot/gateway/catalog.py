from typing import List

from surveybot.core.errors import CatalogUnavailable
from surveybot.gateway.backend import BackendClient
from surveybot.store.models import Question

_ID_KEYS = ("qid", "id", "questionId")
_TEXT_KEYS = ("question", "text", "label")


def _first(item: dict, keys: tuple):
    for k in keys:
        v = item.get(k)
        if v is not None and v != "":
            return v
    return None


def parse_questions(items: list) -> List[Question]:
    """Catalog items -> ordered Questions. Order is the catalog's order."""
    out: List[Question] = []
    for pos, item in enumerate(items):
        if not isinstance(item, dict):
            raise CatalogUnavailable(f"question #{pos} is not an object")
        qid = _first(item, _ID_KEYS)
        text = _first(item, _TEXT_KEYS)
        if text is None:
            raise CatalogUnavailable(f"question #{pos} has no text")
        out.append(Question(id=str(qid if qid is not None else pos + 1), text=str(text)))
    return out


class SurveyCatalog:
    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def get_questions(self, survey_id: str) -> List[Question]:
        """Raises CatalogUnavailable. An empty list is returned as-is."""
        return parse_questions(await self.backend.get_questions(survey_id))
