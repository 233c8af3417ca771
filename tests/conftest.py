from typing import List

import pytest
from langchain_core.embeddings import Embeddings

from citizenship_coach.schemas.documents import RawDocument
from citizenship_coach.services.vector_database import FaissVectorStore

# One dimension per concept; English and Vietnamese terms share a dimension,
# standing in for a multilingual embedding model.
CONCEPTS = [
    ("law", "luật"),
    ("constitution", "hiến pháp"),
    ("amendment", "tu chính"),
    ("rights", "quyền"),
    ("senator", "thượng nghị sĩ"),
    ("president", "tổng thống"),
    ("vice", "phó"),
    ("trump",),
    ("vance",),
    ("cook", "pasta"),
]
BIAS = 0.1


class KeywordEmbeddings(Embeddings):
    """Deterministic bag-of-concepts embeddings."""

    model_name = "keyword-test-embeddings"

    def embed_query(self, text: str) -> List[float]:
        lowered = text.lower()
        vector = [float(sum(lowered.count(term) for term in terms)) for terms in CONCEPTS]
        return vector + [BIAS]

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return [self.embed_query(text) for text in texts]


class FailingEmbeddings(Embeddings):
    def embed_query(self, text: str) -> List[float]:
        raise RuntimeError("embedding service unavailable")

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        raise RuntimeError("embedding service unavailable")


SAMPLE_QUESTIONS = [
    {"id": 1, "question": "What is the supreme law of the land?",
     "answer": "the Constitution", "category": "Principles of Democracy"},
    {"id": 5, "question": "What do we call the first ten amendments to the Constitution?",
     "answer": "the Bill of Rights", "category": "Principles of Democracy"},
    {"id": 18, "question": "How many U.S. Senators are there?",
     "answer": "one hundred (100)", "category": "System of Government"},
    {"id": 28, "question": "What is the name of the President of the United States now?",
     "answer": "Donald Trump", "category": "System of Government"},
    {"id": 29, "question": "What is the name of the Vice President of the United States now?",
     "answer": "J.D. Vance", "category": "System of Government"},
]


@pytest.fixture
def sample_documents():
    return [RawDocument(**record) for record in SAMPLE_QUESTIONS]


@pytest.fixture
def embeddings():
    return KeywordEmbeddings()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "vector_db")


@pytest.fixture
async def store(db_path, embeddings):
    vector_store = FaissVectorStore(local_database_path=db_path, embeddings=embeddings)
    await vector_store.initialize()
    return vector_store


@pytest.fixture
async def loaded_store(store, sample_documents):
    await store.ingest(sample_documents)
    return store
