"""
postgres_vector_database.py
---------------------------

PostgreSQL backend of the **VectorStore** contract, using the pgvector
extension.

Each question is one row of `civics_questions` with a native `vector` column.
Upserts go through `INSERT ... ON CONFLICT (question_id) DO UPDATE`, and search
orders rows by the `<=>` cosine-distance operator, so the ranking contract is
the same as the FAISS backend's.

SQLAlchemy calls are synchronous; they run in a worker thread so request
handlers stay non-blocking.
"""

import asyncio
import logging
from typing import List

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, DateTime, Integer, Text, create_engine, delete, func, select, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import declarative_base, sessionmaker
from langchain_core.embeddings import Embeddings

from .embeddings import embed_text
from .vector_database import VectorStore
from ..core.config import settings
from ..core.errors import EmptyStoreError, NotFoundError
from ..schemas.documents import CivicsQuestion, DatabaseInfo, RawDocument, SearchResult

logger = logging.getLogger(__name__)

Base = declarative_base()


class CivicsQuestionRow(Base):
    __tablename__ = "civics_questions"

    id = Column(Integer, primary_key=True)
    question_id = Column(Integer, nullable=False, unique=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    category = Column(Text, nullable=False)
    embedding = Column(Vector(settings.embedding_dimensions))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_question(self) -> CivicsQuestion:
        return CivicsQuestion(
            question_id=self.question_id,
            question=self.question,
            answer=self.answer,
            category=self.category,
        )


class PostgresVectorStore(VectorStore):
    """
    pgvector-backed store.

    Args:
        database_url (str): SQLAlchemy URL, e.g. "postgresql+psycopg://host/db".
        embeddings (Embeddings, optional): Embedding provider.
    """

    backend = "postgres"

    def __init__(self, database_url: str, embeddings: Embeddings | None = None):
        super().__init__(embeddings=embeddings)
        self.database_url = database_url
        self.engine = None
        self.SessionLocal = None

    async def initialize(self):
        """Connect, make sure the `vector` extension exists and create the table."""
        await asyncio.to_thread(self._connect)
        self.initialized = True
        logger.info("PostgresVectorStore initialized.", extra={"status": "success"})

    def _connect(self):
        self.engine = create_engine(self.database_url, pool_pre_ping=True)
        with self.engine.begin() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        Base.metadata.create_all(bind=self.engine)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    async def _upsert(self, doc: RawDocument, embedding: List[float]):
        await asyncio.to_thread(self._write_row, doc, embedding)

    @staticmethod
    def _upsert_statement(doc: RawDocument, embedding: List[float]):
        stmt = insert(CivicsQuestionRow).values(
            question_id=doc.id,
            question=doc.question,
            answer=doc.answer,
            category=doc.category,
            embedding=embedding,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CivicsQuestionRow.question_id],
            set_={
                "question": stmt.excluded.question,
                "answer": stmt.excluded.answer,
                "category": stmt.excluded.category,
                "embedding": stmt.excluded.embedding,
                "updated_at": func.now(),
            },
        )
        return stmt

    def _write_row(self, doc: RawDocument, embedding: List[float]):
        with self.SessionLocal() as session:
            session.execute(self._upsert_statement(doc, embedding))
            session.commit()

    async def search(self, query: str, k: int = 5) -> List[SearchResult]:
        self._require_initialized()
        if k <= 0:
            return []
        query_vector = await embed_text(self.embeddings, query)
        return await asyncio.to_thread(self._nearest, query_vector, k)

    @staticmethod
    def _nearest_statement(query_vector: List[float], k: int):
        distance = CivicsQuestionRow.embedding.cosine_distance(query_vector)
        return (
            select(CivicsQuestionRow, distance.label("distance"))
            .order_by(distance, CivicsQuestionRow.question_id)
            .limit(k)
        )

    def _nearest(self, query_vector: List[float], k: int) -> List[SearchResult]:
        with self.SessionLocal() as session:
            rows = session.execute(self._nearest_statement(query_vector, k)).all()
        return [
            SearchResult(metadata=row.to_question(), similarity=1.0 - float(dist))
            for row, dist in rows
        ]

    async def count(self) -> int:
        self._require_initialized()
        return await asyncio.to_thread(self._scalar, select(func.count(CivicsQuestionRow.id)))

    def _scalar(self, stmt):
        with self.SessionLocal() as session:
            return session.execute(stmt).scalar_one()

    async def info(self) -> DatabaseInfo:
        self._require_initialized()
        return await asyncio.to_thread(self._info)

    def _info(self) -> DatabaseInfo:
        stmt = (
            select(CivicsQuestionRow.category, func.count(CivicsQuestionRow.id))
            .group_by(CivicsQuestionRow.category)
            .order_by(CivicsQuestionRow.category)
        )
        with self.SessionLocal() as session:
            categories = {category: count for category, count in session.execute(stmt).all()}
        return DatabaseInfo(
            backend=self.backend,
            total_documents=sum(categories.values()),
            categories=categories,
            embedding_model=self.embedding_model,
        )

    async def get_random_document(self) -> CivicsQuestion:
        self._require_initialized()
        row = await asyncio.to_thread(
            self._first, select(CivicsQuestionRow).order_by(func.random()).limit(1)
        )
        if row is None:
            raise EmptyStoreError("No questions found in database")
        return row

    async def get_by_id(self, question_id: int) -> CivicsQuestion:
        self._require_initialized()
        row = await asyncio.to_thread(
            self._first,
            select(CivicsQuestionRow).where(CivicsQuestionRow.question_id == question_id),
        )
        if row is None:
            raise NotFoundError(f"Question with id {question_id} not found")
        return row

    def _first(self, stmt) -> CivicsQuestion | None:
        with self.SessionLocal() as session:
            row = session.execute(stmt).scalars().first()
            return row.to_question() if row is not None else None

    async def clear(self):
        self._require_initialized()
        async with self._write_lock:
            await asyncio.to_thread(self._delete_all)
        logger.info("Cleared all records from civics_questions table.")

    def _delete_all(self):
        with self.SessionLocal() as session:
            session.execute(delete(CivicsQuestionRow))
            session.commit()
