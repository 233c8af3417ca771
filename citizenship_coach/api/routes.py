"""
routes.py
---------

Implements the REST and WebSocket endpoints of the Citizenship Coach.

### Overview
1. **Retrieval API**
   - `/search`, `/search/info`: semantic search over the 100 civics questions.
   - `/enhance-message`: RAG enhancement of a user message.
2. **Practice API**
   - `/random-question`, `/questions/{id}`, `/check-answer`.
3. **Administration**
   - `/health`, `/documents/reingest`.
4. **Realtime practice session**
   - `/session/ws`: the browser relays model events; the server keeps the
     displayed practice question reconciled and pushes slot updates.

Service errors are mapped to HTTP status codes by `_service_errors`.
"""

import json
import logging
from contextlib import contextmanager

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect

from ..core.config import settings
from ..core.errors import EmbeddingError, EmptyStoreError, NotFoundError, NotInitializedError
from ..schemas.requests import CheckAnswerRequest, EnhanceMessageRequest, SearchRequest
from ..schemas.responses import (
    CheckAnswerResponse,
    DatabaseInfoResponse,
    EnhanceMessageResponse,
    HealthResponse,
    QuestionResponse,
    ReingestResponse,
    SearchResponse,
)
from ..services.practice import check_answer
from ..services.rag import RAG, rag_singleton
from ..services.search import SearchService, search_singleton
from ..session.channel import WebSocketChannel
from ..session.practice_session import PracticeSession

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_search_service() -> SearchService:
    return search_singleton


def get_rag_service() -> RAG:
    return rag_singleton


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------

@contextmanager
def _service_errors():
    """Translate service exceptions into HTTP errors."""
    try:
        yield
    except NotInitializedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except EmbeddingError as e:
        logger.error(f"Embedding failure: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except (EmptyStoreError, NotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))


def _question_response(question) -> QuestionResponse:
    return QuestionResponse(
        id=question.question_id,
        question=question.question,
        answer=question.answer,
        category=question.category,
    )


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
async def health(search: SearchService = Depends(get_search_service)):
    if not search.initialized:
        return HealthResponse(status="degraded", vector_backend=search.backend, documents=0)
    return HealthResponse(status="ok", vector_backend=search.backend, documents=await search.count())


# ---------------------------------------------------------------------------
# Retrieval API
# ---------------------------------------------------------------------------

@router.post("/search", response_model=SearchResponse)
async def search_questions(payload: SearchRequest, search: SearchService = Depends(get_search_service)):
    """Semantic search over the civics questions."""
    if not payload.query or not payload.query.strip():
        raise HTTPException(status_code=400, detail="Query parameter is required")
    with _service_errors():
        results = await search.search(payload.query, payload.limit, user_id=payload.user_id)
    return SearchResponse(query=payload.query, results=results, count=len(results))


@router.get("/search/info", response_model=DatabaseInfoResponse)
async def search_info(search: SearchService = Depends(get_search_service)):
    with _service_errors():
        info = await search.info()
    return DatabaseInfoResponse(**info.model_dump())


@router.post("/enhance-message", response_model=EnhanceMessageResponse)
async def enhance_message(payload: EnhanceMessageRequest, rag: RAG = Depends(get_rag_service)):
    """Ground a user message with official USCIS answers."""
    if not payload.message or not payload.message.strip():
        raise HTTPException(status_code=400, detail="Message parameter is required")
    logger.info(f"Enhancing message: \"{payload.message[:80]}\"")
    with _service_errors():
        enhanced = await rag.enhance(payload.message)
    return EnhanceMessageResponse(**enhanced)


# ---------------------------------------------------------------------------
# Practice API
# ---------------------------------------------------------------------------

@router.get("/random-question", response_model=QuestionResponse)
async def random_question(search: SearchService = Depends(get_search_service)):
    with _service_errors():
        question = await search.random_question()
    return _question_response(question)


@router.get("/questions/{question_id}", response_model=QuestionResponse)
async def get_question(question_id: int, search: SearchService = Depends(get_search_service)):
    with _service_errors():
        question = await search.get_question(question_id)
    return _question_response(question)


@router.post("/check-answer", response_model=CheckAnswerResponse)
async def check_user_answer(payload: CheckAnswerRequest, search: SearchService = Depends(get_search_service)):
    """Check a user's answer against the canonical one."""
    if payload.question_id is None or not payload.user_answer or not payload.user_answer.strip():
        raise HTTPException(status_code=400, detail="Question ID and user answer are required")
    with _service_errors():
        question = await search.get_question(payload.question_id)
    return CheckAnswerResponse(**check_answer(question, payload.user_answer))


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------

@router.post("/documents/reingest", response_model=ReingestResponse)
async def reingest_documents(search: SearchService = Depends(get_search_service)):
    """Clear the vector store and ingest the corpus file again."""
    with _service_errors():
        try:
            ingested = await search.reingest(settings.corpus_path)
        except FileNotFoundError:
            raise HTTPException(status_code=404, detail=f"Corpus file not found: {settings.corpus_path}")
    return ReingestResponse(status="ok", ingested=ingested)


# ---------------------------------------------------------------------------
# Realtime Practice Session
# ---------------------------------------------------------------------------

CONTROL_MESSAGES = {
    "session.start": "start",
    "session.pause": "pause",
    "session.resume": "resume",
    "session.stop": "stop",
}


@router.websocket("/session/ws")
async def practice_session_ws(websocket: WebSocket, search: SearchService = Depends(get_search_service)):
    """
    Realtime practice session.

    Inbound messages are either control messages (`session.*`, `ui.*`) or
    model events relayed by the browser, optionally wrapped as
    `{"type": "server_event", "event": {...}}`.
    """
    await websocket.accept()
    channel = WebSocketChannel(websocket)
    session = PracticeSession(channel, search.search, on_slot_change=channel.send_slot)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                logger.warning("Dropping non-JSON session message")
                continue
            if not isinstance(message, dict):
                logger.warning("Dropping non-object session message")
                continue

            message_type = message.get("type")
            try:
                if message_type in CONTROL_MESSAGES:
                    await getattr(session, CONTROL_MESSAGES[message_type])()
                elif message_type in ("ui.reveal_answer", "ui.request_question"):
                    session.note_user_activity()
                elif message_type == "server_event":
                    await session.receive(message.get("event"))
                else:
                    await session.receive(message)
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception(f"Failed to handle session message {message_type}")
    except WebSocketDisconnect:
        logger.info("Practice session websocket closed.")
    finally:
        await session.stop(close_channel=False)
