"""
documents.py
------------

Pydantic models for the civics corpus and for retrieval results.

- `RawDocument`: one corpus record as authored (`id`, question, answer, category).
- `CivicsQuestion`: a stored question, identified by its stable `question_id`.
- `SearchResult`: a question plus its cosine similarity to a query.
- `DatabaseInfo`: store diagnostics for `/search/info`.
"""

from pydantic import BaseModel, Field
from typing import Dict, List


class RawDocument(BaseModel):
    """A corpus record before ingestion."""
    id: int = Field(ge=1)
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    category: str = Field(min_length=1)

    @property
    def content(self) -> str:
        """Text handed to the embedding provider."""
        return f"{self.question} {self.answer}"


class CivicsQuestion(BaseModel):
    question_id: int
    question: str
    answer: str
    category: str

    @classmethod
    def from_raw(cls, doc: RawDocument) -> "CivicsQuestion":
        return cls(
            question_id=doc.id,
            question=doc.question,
            answer=doc.answer,
            category=doc.category,
        )


class SearchResult(BaseModel):
    """
    One ranked neighbour.

    Attributes:
        metadata (CivicsQuestion): Denormalised copy of the matched question.
        similarity (float): Cosine similarity, higher is more relevant.
    """
    metadata: CivicsQuestion
    similarity: float


class DatabaseInfo(BaseModel):
    backend: str
    total_documents: int
    categories: Dict[str, int]
    embedding_model: str
    status: str = "ready"
    recent_searches: List[dict] = []
