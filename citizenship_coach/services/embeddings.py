"""
embeddings.py
-------------

Embedding provider for the vector stores.

Any langchain `Embeddings` implementation can serve as the provider. The
configured one is either a local HuggingFace sentence-transformer (default)
or OpenAI's embedding API. Provider failures surface as `EmbeddingError`.
"""

from typing import List

from langchain_core.embeddings import Embeddings

from ..core.errors import EmbeddingError


def build_embeddings(settings) -> Embeddings:
    """
    Build the embedding provider named in `settings.embedding_provider`.

    Args:
        settings (Settings): Application settings.

    Returns:
        Embeddings: A langchain embeddings object.
    """
    if settings.embedding_provider == "openai":
        from langchain_openai import OpenAIEmbeddings

        return OpenAIEmbeddings(model=settings.embedding_model)

    from langchain_huggingface import HuggingFaceEmbeddings

    return HuggingFaceEmbeddings(
        model_name=settings.embedding_model,
        model_kwargs={"device": settings.device},
        encode_kwargs={"normalize_embeddings": True},
    )


def embedding_model_name(embeddings: Embeddings) -> str:
    """Best-effort model identifier for diagnostics."""
    for attribute in ("model_name", "model"):
        name = getattr(embeddings, attribute, None)
        if isinstance(name, str) and name:
            return name
    return type(embeddings).__name__


async def embed_text(embeddings: Embeddings, text: str) -> List[float]:
    """Embed one text, wrapping provider failures in `EmbeddingError`."""
    try:
        return await embeddings.aembed_query(text)
    except Exception as e:
        raise EmbeddingError(f"Embedding request failed: {e}") from e
