import asyncio
import json
import os

import pytest
from fastapi.testclient import TestClient

from citizenship_coach.api.routes import get_rag_service, get_search_service
from citizenship_coach.core.config import settings
from citizenship_coach.main import app
from citizenship_coach.services.fallback import FallbackAnswerSource
from citizenship_coach.services.rag import RAG
from citizenship_coach.services.search import SearchService
from citizenship_coach.services.vector_database import FaissVectorStore
from citizenship_coach.session.events import PRACTICE_QUESTION_FUNCTION

from conftest import SAMPLE_QUESTIONS, FailingEmbeddings, KeywordEmbeddings

OFFICIALS_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "current_officials.json")


def build_service(db_path, embeddings, documents=None):
    store = FaissVectorStore(local_database_path=db_path, embeddings=embeddings)
    service = SearchService(store)

    async def setup():
        await service.initialize()
        if documents:
            await service.ingest(documents)

    asyncio.run(setup())
    return service


@pytest.fixture
def service(db_path, sample_documents):
    return build_service(db_path, KeywordEmbeddings(), sample_documents)


@pytest.fixture
def client(service):
    rag = RAG(service, fallback=FallbackAnswerSource(OFFICIALS_PATH))
    app.dependency_overrides[get_search_service] = lambda: service
    app.dependency_overrides[get_rag_service] = lambda: rag
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/").json()["service"] == "Citizenship-Coach"


def test_health(client):
    body = client.get("/health").json()
    assert body == {"status": "ok", "vector_backend": "faiss", "documents": 5}


def test_health_degraded_before_initialize(db_path):
    store = FaissVectorStore(local_database_path=db_path, embeddings=KeywordEmbeddings())
    app.dependency_overrides[get_search_service] = lambda: SearchService(store)
    try:
        body = TestClient(app).get("/health").json()
    finally:
        app.dependency_overrides.clear()
    assert body["status"] == "degraded"


def test_search(client):
    response = client.post("/search", json={"query": "Hoa Kỳ có bao nhiêu thượng nghị sĩ?", "limit": 2})
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert body["results"][0]["metadata"]["question_id"] == 18
    assert body["results"][0]["similarity"] >= body["results"][1]["similarity"]
    assert set(body["results"][0]) == {"metadata", "similarity"}


def test_search_requires_query(client):
    assert client.post("/search", json={}).status_code == 400
    assert client.post("/search", json={"query": "   "}).status_code == 400


def test_search_uninitialized_store_is_503(db_path):
    store = FaissVectorStore(local_database_path=db_path, embeddings=KeywordEmbeddings())
    app.dependency_overrides[get_search_service] = lambda: SearchService(store)
    try:
        response = TestClient(app).post("/search", json={"query": "constitution"})
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 503


def test_search_embedding_failure_is_502(service):
    service.vector_store._embeddings = FailingEmbeddings()
    app.dependency_overrides[get_search_service] = lambda: service
    try:
        response = TestClient(app).post("/search", json={"query": "constitution"})
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 502


def test_search_info(client):
    body = client.get("/search/info").json()
    assert body["totalDocuments"] == 5
    assert body["embeddingModel"] == "keyword-test-embeddings"
    assert body["status"] == "ready"
    assert body["categories"]["System of Government"] == 3


def test_enhance_message_for_officials(client):
    body = client.post("/enhance-message", json={"message": "who is the current president?"}).json()
    assert body["hasContext"] is True
    assert body["contextSize"] == 5
    assert body["originalMessage"] == "who is the current president?"
    assert body["enhancedMessage"].startswith("Here are the official USCIS answers")
    assert body["searchResults"][0]["metadata"]["question_id"] == 28
    assert body["warning"] is None


def test_enhance_message_out_of_domain(client):
    body = client.post("/enhance-message", json={"message": "how do I cook pasta"}).json()
    assert body["hasContext"] is False
    assert body["enhancedMessage"] == "how do I cook pasta"
    assert body["warning"]


def test_enhance_message_requires_message(client):
    assert client.post("/enhance-message", json={}).status_code == 400


def test_random_question(client):
    body = client.get("/random-question").json()
    assert body["id"] in {q["id"] for q in SAMPLE_QUESTIONS}
    assert set(body) == {"id", "question", "answer", "category"}


def test_random_question_empty_store(db_path):
    empty = build_service(db_path, KeywordEmbeddings())
    app.dependency_overrides[get_search_service] = lambda: empty
    try:
        response = TestClient(app).get("/random-question")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 404


def test_get_question(client):
    assert client.get("/questions/18").json()["answer"] == "one hundred (100)"
    assert client.get("/questions/99").status_code == 404


@pytest.mark.parametrize("answer, correct", [
    ("The Constitution", True),
    ("constitution", True),
    ("the Declaration of Independence", False),
])
def test_check_answer(client, answer, correct):
    body = client.post("/check-answer", json={"questionId": 1, "userAnswer": answer}).json()
    assert body["correct"] is correct
    assert body["canonical_answer"] == "the Constitution"
    if correct:
        assert body["feedback"] == "Correct!"
    else:
        assert body["feedback"] == "The correct answer is: the Constitution"


def test_check_answer_validation(client):
    assert client.post("/check-answer", json={"questionId": 1}).status_code == 400
    assert client.post("/check-answer", json={"questionId": 1, "userAnswer": " "}).status_code == 400
    assert client.post("/check-answer", json={"questionId": 99, "userAnswer": "x"}).status_code == 404


def test_reingest(client, tmp_path, monkeypatch):
    path = tmp_path / "corpus.json"
    path.write_text(json.dumps(SAMPLE_QUESTIONS[:3]), encoding="utf-8")
    monkeypatch.setattr(settings, "corpus_path", str(path))
    body = client.post("/documents/reingest").json()
    assert body == {"status": "ok", "ingested": 3}
    assert client.get("/health").json()["documents"] == 3


def test_reingest_missing_corpus(client, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "corpus_path", str(tmp_path / "missing.json"))
    assert client.post("/documents/reingest").status_code == 404


def test_session_websocket_flow(client):
    call = {
        "type": "response.done",
        "response": {"output": [{
            "type": "function_call",
            "name": PRACTICE_QUESTION_FUNCTION,
            "call_id": "call_1",
            "arguments": json.dumps({"question": "Hoa Kỳ có bao nhiêu thượng nghị sĩ?"}),
        }]},
    }
    with client.websocket_connect("/session/ws") as ws:
        ws.send_text(json.dumps({"type": "session.start"}))
        assert ws.receive_json() == {"type": "transport.connect"}

        ws.send_text("not json")
        ws.send_text(json.dumps({"type": "server_event", "event": {"type": "session.created"}}))
        update = ws.receive_json()
        assert update["type"] == "client_event"
        assert update["event"]["type"] == "session.update"

        ws.send_text(json.dumps(call))
        slot = ws.receive_json()
        assert slot["type"] == "slot"
        assert slot["question"]["id"] == 18
        assert slot["question"]["question"] == "How many U.S. Senators are there?"

        ws.send_text(json.dumps({"type": "session.pause"}))
        assert ws.receive_json() == {"type": "transport.disconnect"}
        ws.send_text(json.dumps({"type": "session.resume"}))
        assert ws.receive_json() == {"type": "transport.connect"}
