"""
search.py
---------

Defines the **SearchService**, the thin orchestration layer every caller
(HTTP routes, the RAG layer, practice sessions) goes through to reach the
vector store.

### Responsibilities
- Pick and initialise the configured vector store backend.
- Forward searches and lookups to the store; store errors propagate.
- Log each search to `SearchAnalytics` on a best-effort basis, off the event loop.
- Clear-and-reingest the corpus on demand.
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from .analytics import SearchAnalytics
from .base import ServiceBase
from .corpus import load_corpus
from .vector_database import FaissVectorStore, VectorStore
from ..core.config import settings
from ..schemas.documents import CivicsQuestion, DatabaseInfo, RawDocument, SearchResult

logger = logging.getLogger(__name__)


def build_vector_store(settings) -> VectorStore:
    """Instantiate the backend named in `settings.vector_backend`."""
    if settings.vector_backend == "postgres":
        from .postgres_vector_database import PostgresVectorStore

        return PostgresVectorStore(settings.database_url)
    if settings.vector_backend != "faiss":
        raise ValueError(f"Unknown vector backend: {settings.vector_backend}")
    return FaissVectorStore(
        local_database_path=settings.vector_db_path,
        catalogue_timezone=settings.catalogue_timezone,
    )


class SearchService(ServiceBase):
    """
    Search orchestration over a `VectorStore`.

    Args:
        vector_store (VectorStore): Backend holding the civics questions.
        analytics (SearchAnalytics, optional): Query log; searches are not
            logged when omitted.
    """

    def __init__(self, vector_store: VectorStore, analytics: Optional[SearchAnalytics] = None):
        super().__init__()
        self.vector_store = vector_store
        self.analytics = analytics

    @property
    def initialized(self) -> bool:
        return self.vector_store.initialized

    @property
    def backend(self) -> str:
        return self.vector_store.backend

    async def initialize(self):
        await self.vector_store.initialize()
        if self.analytics is not None:
            self.analytics.initialize()

    async def search(self, query: str, k: int = 5, user_id: Optional[str] = None) -> List[SearchResult]:
        """Top-`k` questions for `query`, most similar first."""
        results = await self.vector_store.search(query, k)
        logger.info(f"Search \"{query[:60]}\" returned {len(results)} result(s)")
        if self.analytics is not None:
            try:
                await asyncio.to_thread(self.analytics.record, query, results, user_id)
            except Exception as e:
                logger.warning(f"Search analytics failed: {e}")
        return results

    async def info(self) -> DatabaseInfo:
        info = await self.vector_store.info()
        if self.analytics is not None:
            info.recent_searches = await asyncio.to_thread(self.analytics.recent)
        return info

    async def count(self) -> int:
        return await self.vector_store.count()

    async def random_question(self) -> CivicsQuestion:
        return await self.vector_store.get_random_document()

    async def get_question(self, question_id: int) -> CivicsQuestion:
        return await self.vector_store.get_by_id(question_id)

    async def ingest(self, documents: Iterable[RawDocument]) -> int:
        return await self.vector_store.ingest(documents)

    async def reingest(self, corpus_path: str) -> int:
        """Clear the store and ingest the corpus file again."""
        documents = load_corpus(corpus_path)
        await self.vector_store.clear()
        return await self.vector_store.ingest(documents)


# Singleton instance for reuse across app
search_singleton = SearchService(
    build_vector_store(settings),
    SearchAnalytics(settings.analytics_db_url),
)
