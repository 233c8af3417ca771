"""
fallback.py
-----------

Fallback answers for time-sensitive questions about current officials.

The table lives in a JSON file (`settings.officials_path`) so it can be
updated when officeholders change, without touching code.
"""

import json
import logging
from typing import List

from pydantic import BaseModel

from .base import ServiceBase
from ..schemas.documents import CivicsQuestion, SearchResult

logger = logging.getLogger(__name__)


class OfficialAnswer(BaseModel):
    question_id: int
    position: str
    question: str
    answer: str
    category: str
    keywords: List[str] = []

    def to_result(self) -> SearchResult:
        question = CivicsQuestion(
            question_id=self.question_id,
            question=self.question,
            answer=self.answer,
            category=self.category,
        )
        return SearchResult(metadata=question, similarity=1.0)


class FallbackAnswerSource(ServiceBase):
    """
    Lazily loaded table of official answers.

    Args:
        path (str): JSON file with a list of `OfficialAnswer` records.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = self.resolve_path(path)
        self._entries: List[OfficialAnswer] | None = None

    @property
    def entries(self) -> List[OfficialAnswer]:
        if self._entries is None:
            with open(self.path, encoding="utf-8") as f:
                self._entries = [OfficialAnswer(**record) for record in json.load(f)]
            logger.info("Loaded %d fallback official answer(s).", len(self._entries))
        return self._entries

    def lookup(self, message: str) -> List[SearchResult]:
        """Entries whose keywords appear in `message`; the whole table when none do."""
        lowered = message.lower()
        matched = [
            entry for entry in self.entries
            if any(keyword in lowered for keyword in entry.keywords)
        ]
        return [entry.to_result() for entry in (matched or self.entries)]
