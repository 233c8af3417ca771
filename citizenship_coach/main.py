"""
main.py
-------

Entry point for the **Citizenship Coach** FastAPI service.

Responsibilities:
  • Initialize FastAPI app and register API routes.
  • Initialize the configured vector store (FAISS on disk or Postgres/pgvector).
  • Ingest the USCIS civics corpus when the store is empty.

Startup Sequence:
  1. Configure logging.
  2. Initialize the vector store and search analytics (via `search_singleton`).
  3. Ingest `data/civics_questions.json` if the store holds no questions.
  4. Serve routes defined in `citizenship_coach/api/routes.py`.
"""

import logging
import os
from fastapi import FastAPI
from contextlib import asynccontextmanager
from .api.routes import router
from .core.config import settings
from .core.logging import setup_logging
from .services.corpus import load_corpus
from .services.search import search_singleton

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan handler for startup/shutdown events.

    During startup:
      - Initializes the vector store; on failure requests get 503.
      - Ingests the civics corpus into an empty store.
    """
    setup_logging(settings.log_level, settings.log_file)

    try:
        await search_singleton.initialize()
        logger.info(f"Vector store ready ({settings.vector_backend}).", extra={"status": "success"})
    except Exception as e:
        logger.error(f"Failed to initialize vector store: {e}")

    if search_singleton.initialized:
        corpus = settings.corpus_path
        try:
            if await search_singleton.count() == 0:
                if os.path.exists(corpus):
                    ingested = await search_singleton.ingest(load_corpus(corpus))
                    logger.info(f"Ingested {ingested} civics question(s) from {corpus}")
                else:
                    logger.warning(f"No corpus found at {corpus}")
        except Exception as e:
            logger.error(f"Failed to ingest corpus: {e}")

    yield
    logger.info("Lifespan cleanup complete.")

# Create and configure FastAPI app
app = FastAPI(
    title="Citizenship Coach",
    version="0.1.0",
    lifespan=lifespan,
)

# Register all routes
app.include_router(router)

@app.get("/")
def root():
    """Service info endpoint."""
    return {
        "service": "Citizenship-Coach",
        "message": "US naturalization civics test practice service.",
        "docs": "/docs",
    }
