"""
responses.py
-------------

Defines the **Pydantic response models** used across API endpoints of the
Citizenship Coach. Field names on the wire are camelCase, matching what the
browser client reads.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional

from .documents import SearchResult


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(CamelModel):
    """
    Response for `/health`.

    Attributes:
        status (str): "ok" when the vector store is initialised, else "degraded".
        vector_backend (str): Configured backend ("faiss" or "postgres").
        documents (int): Stored question count (0 while uninitialised).
    """
    status: str
    vector_backend: str
    documents: int


class SearchResponse(CamelModel):
    query: str
    results: List[SearchResult]
    count: int


class DatabaseInfoResponse(CamelModel):
    backend: str
    total_documents: int = Field(serialization_alias="totalDocuments")
    categories: Dict[str, int]
    embedding_model: str = Field(serialization_alias="embeddingModel")
    status: str
    recent_searches: List[dict] = Field(default=[], serialization_alias="recentSearches")


class EnhanceMessageResponse(CamelModel):
    """
    Response for `/enhance-message`.

    Attributes:
        original_message (str): Message as sent by the user.
        enhanced_message (str): Message with retrieved context prepended, or the
            original when no context was added.
        has_context (bool): Whether context was added.
        context_size (int): Number of official answers in the context.
        search_results (List[SearchResult]): Retrieved neighbours.
        warning (Optional[str]): Set when the message is not citizenship-related.
    """
    original_message: str = Field(serialization_alias="originalMessage")
    enhanced_message: str = Field(serialization_alias="enhancedMessage")
    has_context: bool = Field(serialization_alias="hasContext")
    context_size: int = Field(serialization_alias="contextSize")
    search_results: List[SearchResult] = Field(default=[], serialization_alias="searchResults")
    warning: Optional[str] = None


class QuestionResponse(CamelModel):
    id: int
    question: str
    answer: str
    category: str


class CheckAnswerResponse(CamelModel):
    correct: bool
    canonical_answer: str
    user_answer: str = Field(serialization_alias="userAnswer")
    feedback: str


class ReingestResponse(CamelModel):
    status: str
    ingested: int
