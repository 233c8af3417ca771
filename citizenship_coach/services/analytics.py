"""
analytics.py
------------

Best-effort search analytics for the Citizenship Coach.

One `search_queries` row is written per search (query text, optional user id,
result count, average similarity). Analytics never decides whether a search
succeeds: every failure here is logged as a warning and swallowed.
"""

import logging
import os
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, DateTime, Float, Integer, String, Text, create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..schemas.documents import SearchResult

logger = logging.getLogger(__name__)

Base = declarative_base()


class SearchQuery(Base):
    __tablename__ = "search_queries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    query = Column(Text, nullable=False)
    user_id = Column(String(255), nullable=True)
    results_count = Column(Integer, nullable=False, default=0)
    avg_similarity = Column(Float, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class SearchAnalytics:
    """
    Search query log backed by SQLAlchemy.

    Args:
        database_url (str): SQLAlchemy URL, e.g. "sqlite:///./database/analytics.db".
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = None
        self.SessionLocal = None

    @property
    def enabled(self) -> bool:
        return self.SessionLocal is not None

    def initialize(self):
        """Create the engine and the `search_queries` table."""
        try:
            url = make_url(self.database_url)
            engine_args = {}
            if url.get_backend_name() == "sqlite":
                engine_args["connect_args"] = {"check_same_thread": False}  # Required for SQLite
                if url.database in (None, "", ":memory:"):
                    # One shared connection, so worker threads see the same database.
                    engine_args["poolclass"] = StaticPool
                else:
                    os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)
            self.engine = create_engine(self.database_url, **engine_args)
            Base.metadata.create_all(bind=self.engine)
            self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
            logger.info("Search analytics ready.")
        except Exception as e:
            logger.warning(f"Search analytics disabled: {e}")
            self.engine = None
            self.SessionLocal = None

    def record(self, query: str, results: List[SearchResult], user_id: Optional[str] = None):
        """Log one search. Never raises."""
        if not self.enabled:
            return
        avg_similarity = (
            sum(r.similarity for r in results) / len(results) if results else None
        )
        try:
            with self.SessionLocal() as session:
                session.add(SearchQuery(
                    query=query,
                    user_id=user_id,
                    results_count=len(results),
                    avg_similarity=avg_similarity,
                ))
                session.commit()
        except Exception as e:
            logger.warning(f"Failed to log search query: {e}")

    def recent(self, limit: int = 5) -> List[dict]:
        """Most recent searches, newest first. Empty on any failure."""
        if not self.enabled:
            return []
        try:
            stmt = select(SearchQuery).order_by(SearchQuery.id.desc()).limit(limit)
            with self.SessionLocal() as session:
                rows = session.execute(stmt).scalars().all()
                return [
                    {
                        "query": row.query,
                        "resultsCount": row.results_count,
                        "avgSimilarity": row.avg_similarity,
                        "timestamp": row.timestamp.isoformat() if row.timestamp else None,
                    }
                    for row in rows
                ]
        except Exception as e:
            logger.warning(f"Failed to read recent searches: {e}")
            return []
