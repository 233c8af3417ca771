"""
vector_database.py
------------------

Implements the **VectorStore** contract and its default FAISS backend for the
Citizenship Coach.

The store owns the 100 civics questions and their embeddings and answers
nearest-neighbour queries by cosine similarity. At this corpus size an exact
flat index is used: every stored vector is L2-normalised, so the inner product
computed by `faiss.IndexFlatIP` is the cosine similarity itself.

Responsibilities:
  - Load and persist the FAISS index (`save_local` / `load_local`).
  - Upsert questions by `question_id`; re-ingestion overwrites in place.
  - Keep a CSV catalogue of ingested questions.
  - Serve search, random pick, lookup by id and diagnostics.

Database layout:
  /database/vector_db/
    ├── index.faiss
    ├── index.pkl
    └── file_list.csv  → (ingestion catalogue)
"""

import asyncio
import csv
import logging
import os
import random
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List

import faiss
import numpy as np
import pytz
from langchain_community.docstore.in_memory import InMemoryDocstore
from langchain_community.vectorstores import FAISS
from langchain_community.vectorstores.utils import DistanceStrategy
from langchain_core.embeddings import Embeddings

from .base import ServiceBase
from .embeddings import build_embeddings, embed_text, embedding_model_name
from ..core.config import settings
from ..core.errors import EmptyStoreError, NotFoundError, NotInitializedError
from ..schemas.documents import CivicsQuestion, DatabaseInfo, RawDocument, SearchResult

logger = logging.getLogger(__name__)


class VectorStore(ServiceBase, ABC):
    """
    Contract shared by every vector store backend.

    Backends must return search results in non-increasing similarity order and
    raise `NotInitializedError` when used before `initialize()`.
    """

    backend = "abstract"

    def __init__(self, embeddings: Embeddings | None = None):
        super().__init__()
        self._embeddings = embeddings
        self.initialized = False
        # Ingestion is the only writer; searches never take this lock.
        self._write_lock = asyncio.Lock()

    @property
    def embeddings(self) -> Embeddings:
        if self._embeddings is None:
            self._embeddings = build_embeddings(settings)
        return self._embeddings

    @property
    def embedding_model(self) -> str:
        if self._embeddings is None:
            return settings.embedding_model
        return embedding_model_name(self._embeddings)

    def _require_initialized(self):
        if not self.initialized:
            raise NotInitializedError(f"{type(self).__name__} is not initialized")

    async def ingest(self, documents: Iterable[RawDocument]) -> int:
        """
        Embed and upsert documents by `question_id`.

        A document whose embedding or write fails is logged and skipped; the
        rest of the batch still goes in.

        Returns:
            int: Number of documents written.
        """
        self._require_initialized()
        written = 0
        async with self._write_lock:
            for doc in documents:
                try:
                    embedding = await embed_text(self.embeddings, doc.content)
                    await self._upsert(doc, embedding)
                    written += 1
                    logger.debug("Ingested question %s: %s", doc.id, doc.question[:50])
                except Exception as e:
                    logger.error("Failed to ingest question %s: %s", doc.id, e)
            await self._flush()
        logger.info("Ingested %d question(s).", written, extra={"status": "success"})
        return written

    async def _flush(self):
        """Persist pending writes; backends that write through need nothing."""

    @abstractmethod
    async def initialize(self): ...

    @abstractmethod
    async def _upsert(self, doc: RawDocument, embedding: List[float]): ...

    @abstractmethod
    async def search(self, query: str, k: int = 5) -> List[SearchResult]: ...

    @abstractmethod
    async def count(self) -> int: ...

    @abstractmethod
    async def info(self) -> DatabaseInfo: ...

    @abstractmethod
    async def get_random_document(self) -> CivicsQuestion: ...

    @abstractmethod
    async def get_by_id(self, question_id: int) -> CivicsQuestion: ...

    @abstractmethod
    async def clear(self): ...


def normalize(vector: List[float]) -> np.ndarray:
    """Return `vector` scaled to unit length (zero vectors are left as-is)."""
    array = np.asarray(vector, dtype=np.float32)
    norm = np.linalg.norm(array)
    if norm == 0:
        return array
    return array / norm


class FaissVectorStore(VectorStore):
    """
    Flat FAISS index over the civics corpus, persisted on local disk.

    Args:
        local_database_path (str, optional): Directory of the index and catalogue.
            Relative paths are resolved against the project root.
        embeddings (Embeddings, optional): Embedding provider. Built from settings
            on first use when omitted.
        catalogue_timezone (str, optional): Timezone of catalogue timestamps.
    """

    backend = "faiss"

    def __init__(
        self,
        local_database_path: str = "database/vector_db",
        embeddings: Embeddings | None = None,
        catalogue_timezone: str = "America/New_York",
    ):
        super().__init__(embeddings=embeddings)
        self.local_database_path = self.resolve_path(local_database_path)
        self.catalogue_path = os.path.join(self.local_database_path, "file_list.csv")
        self.database: FAISS | None = None
        self._documents: Dict[int, CivicsQuestion] = {}
        self._dirty = False

        # Set a time stamp to update vector database catalogue.
        timezone = pytz.timezone(catalogue_timezone)
        self.catalogue_time_stamper = lambda time_stamp: pytz.utc.localize(time_stamp) \
            .astimezone(timezone).strftime("%m/%d/%Y, %H:%M:%S")

    @staticmethod
    def _docstore_id(question_id: int) -> str:
        return f"question_{question_id}"

    async def initialize(self):
        """Load the index from disk if present and prepare the catalogue."""
        os.makedirs(self.local_database_path, exist_ok=True)

        if os.path.exists(os.path.join(self.local_database_path, "index.faiss")):
            self.database = FAISS.load_local(
                self.local_database_path,
                self.embeddings,
                allow_dangerous_deserialization=True,
                distance_strategy=DistanceStrategy.MAX_INNER_PRODUCT,
            )
            self._documents = {}
            for docstore_id in self.database.index_to_docstore_id.values():
                doc = self.database.docstore.search(docstore_id)
                question = CivicsQuestion(**doc.metadata)
                self._documents[question.question_id] = question
            logger.info(
                f"Loaded {len(self._documents)} question(s) from \"{self.local_database_path}\".",
                extra={"status": "success"},
            )

        # Write head in catalogue file.
        if not os.path.exists(self.catalogue_path):
            with open(self.catalogue_path, "w", newline="") as catalogue_pt:
                csv.writer(catalogue_pt).writerow(["Source", "Time", "Comment"])

        self.initialized = True

    def _new_database(self, dimensions: int) -> FAISS:
        return FAISS(
            embedding_function=self.embeddings,
            index=faiss.IndexFlatIP(dimensions),
            docstore=InMemoryDocstore(),
            index_to_docstore_id={},
            distance_strategy=DistanceStrategy.MAX_INNER_PRODUCT,
        )

    async def _upsert(self, doc: RawDocument, embedding: List[float]):
        vector = normalize(embedding)
        if self.database is None:
            self.database = self._new_database(len(vector))
        elif self.database.index.d != len(vector):
            raise ValueError(
                f"Embedding has {len(vector)} dimensions, index expects {self.database.index.d}"
            )

        docstore_id = self._docstore_id(doc.id)
        existed = doc.id in self._documents
        if existed:
            self.database.delete([docstore_id])

        question = CivicsQuestion.from_raw(doc)
        self.database.add_embeddings(
            text_embeddings=[(doc.content, vector.tolist())],
            metadatas=[question.model_dump()],
            ids=[docstore_id],
        )
        self._documents[doc.id] = question
        self._dirty = True
        self.update_database_catalogue(docstore_id, "updated" if existed else "inserted")

    async def _flush(self):
        if self._dirty and self.database is not None:
            self.database.save_local(self.local_database_path)
            self._dirty = False

    def update_database_catalogue(self, source: str, comment: str = ""):
        """Append one row to the ingestion catalogue.

        Args:
            source (str): Catalogue source key (docstore id).
            comment (str): What happened to the source.
        """
        with open(self.catalogue_path, "a", newline="") as catalogue_pt:
            csv.writer(catalogue_pt).writerow([
                source,
                self.catalogue_time_stamper(datetime.utcnow()),
                comment,
            ])

    async def search(self, query: str, k: int = 5) -> List[SearchResult]:
        """
        Rank stored questions by cosine similarity to `query`.

        Args:
            query (str): Free text, any language.
            k (int): Maximum number of results.

        Returns:
            List[SearchResult]: At most `k` results, most similar first.
        """
        self._require_initialized()
        if k <= 0 or self.database is None or not self._documents:
            return []

        query_vector = normalize(await embed_text(self.embeddings, query))
        hits = self.database.similarity_search_with_score_by_vector(
            query_vector.tolist(), k=min(k, len(self._documents))
        )
        return [
            SearchResult(metadata=CivicsQuestion(**doc.metadata), similarity=float(score))
            for doc, score in hits
        ]

    async def count(self) -> int:
        self._require_initialized()
        return len(self._documents)

    async def info(self) -> DatabaseInfo:
        self._require_initialized()
        categories: Dict[str, int] = {}
        for question in self._documents.values():
            categories[question.category] = categories.get(question.category, 0) + 1
        return DatabaseInfo(
            backend=self.backend,
            total_documents=len(self._documents),
            categories=dict(sorted(categories.items())),
            embedding_model=self.embedding_model,
        )

    async def get_random_document(self) -> CivicsQuestion:
        self._require_initialized()
        if not self._documents:
            raise EmptyStoreError("No questions found in database")
        return random.choice(list(self._documents.values()))

    async def get_by_id(self, question_id: int) -> CivicsQuestion:
        self._require_initialized()
        try:
            return self._documents[question_id]
        except KeyError:
            raise NotFoundError(f"Question with id {question_id} not found") from None

    async def clear(self):
        """Drop every stored question and the index files on disk."""
        self._require_initialized()
        async with self._write_lock:
            for name in ("index.faiss", "index.pkl"):
                path = os.path.join(self.local_database_path, name)
                if os.path.exists(path):
                    os.remove(path)
            self.database = None
            self._documents = {}
            self._dirty = False
            self.update_database_catalogue("*", "cleared")
        logger.info("Vector database cleared.")
