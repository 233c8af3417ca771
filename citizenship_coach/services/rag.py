"""
rag.py
------

Defines the **Retrieval-Augmented Generation (RAG)** decision layer of the
Citizenship Coach.

Before a free-text user message reaches the conversational model, this layer
decides whether to ground it with official USCIS answers retrieved from the
vector store.

### Flow
1. Messages outside the civics domain are returned unchanged with a warning.
2. Questions about current officials retrieve `rag_officials_k` neighbours,
   everything else `rag_default_k`.
3. Neighbours are formatted as an `OFFICIAL QUESTION` / `OFFICIAL ANSWER`
   block and prepended to the message, which stays recoverable through the
   `User question:` marker (`extract_user_message`).

For officials questions, an empty retrieval or an embedding failure falls back
to the configured table of current officials. Other search errors propagate.

The layer is read-only: it never writes to the vector store.
"""

import logging
import re
from typing import List, Optional

from .base import ServiceBase
from .classifier import DomainClassifier, KeywordDomainClassifier
from .fallback import FallbackAnswerSource
from .search import SearchService, search_singleton
from ..core.config import settings
from ..core.errors import EmbeddingError
from ..schemas.documents import SearchResult

logger = logging.getLogger(__name__)

CONTEXT_PREFIX = 'Here are the official USCIS answers for your question about "'
USER_QUESTION_MARKER = "\n\nUser question: "
OUT_OF_DOMAIN_WARNING = (
    "This question doesn't appear to be citizenship-related. "
    "The assistant will redirect to citizenship topics."
)


def format_context_from_results(results: List[SearchResult], query: str) -> Optional[str]:
    """Labelled context block for `results`, or None when there are none."""
    if not results:
        return None

    parts = [f'{CONTEXT_PREFIX}{query}":']
    for result in results:
        metadata = result.metadata
        parts.extend([
            "",
            f"OFFICIAL QUESTION {metadata.question_id}: {metadata.question}",
            f"OFFICIAL ANSWER: {metadata.answer}",
        ])
    return "\n".join(parts)


def prepare_enhanced_message(user_message: str, results: List[SearchResult]) -> dict:
    """
    Prepend retrieved context to `user_message`.

    Returns:
        dict: `message`, `has_context` and `context_size`.
    """
    context = format_context_from_results(results, user_message)
    if context is None:
        return {"message": user_message, "has_context": False, "context_size": 0}

    return {
        "message": f"{context}{USER_QUESTION_MARKER}{user_message}",
        "has_context": True,
        "context_size": len(results),
    }


def extract_user_message(enhanced_message: str) -> str:
    """Recover the original user message from an enhanced one."""
    # The intro line quotes the user message, which pins down the right marker
    # even when the message itself contains the marker text.
    start = enhanced_message.find(USER_QUESTION_MARKER)
    while start != -1:
        candidate = enhanced_message[start + len(USER_QUESTION_MARKER):]
        if enhanced_message.startswith(f'{CONTEXT_PREFIX}{candidate}":\n'):
            return candidate
        start = enhanced_message.find(USER_QUESTION_MARKER, start + 1)

    match = re.search(r"User [Qq]uestion: (.+)\Z", enhanced_message)
    return match.group(1) if match else enhanced_message


class RAG(ServiceBase):
    """
    Message enhancement over the search service.

    Args:
        search (SearchService): Retrieval backend.
        classifier (DomainClassifier, optional): Domain and officials classifier.
        fallback (FallbackAnswerSource, optional): Answers used when officials
            retrieval comes back empty or fails to embed.
    """

    def __init__(
        self,
        search: SearchService,
        classifier: DomainClassifier | None = None,
        fallback: FallbackAnswerSource | None = None,
    ):
        super().__init__()
        self.search = search
        self.classifier = classifier or KeywordDomainClassifier()
        self.fallback = fallback
        self.default_k = settings.rag_default_k
        self.officials_k = settings.rag_officials_k

    async def enhance(self, message: str, user_id: Optional[str] = None) -> dict:
        """
        Decide whether and how to ground `message`.

        Returns:
            dict: `original_message`, `enhanced_message`, `has_context`,
            `context_size`, `search_results` and `warning`.
        """
        if not self.classifier.is_in_domain(message):
            logger.info("Message not citizenship-related, passing through unchanged.")
            return {
                "original_message": message,
                "enhanced_message": message,
                "has_context": False,
                "context_size": 0,
                "search_results": [],
                "warning": OUT_OF_DOMAIN_WARNING,
            }

        about_officials = self.classifier.is_about_current_officials(message)
        k = self.officials_k if about_officials else self.default_k

        try:
            results = await self.search.search(message, k, user_id=user_id)
        except EmbeddingError as e:
            if not (about_officials and self.fallback is not None):
                raise
            logger.warning(f"Officials search failed, using fallback answers: {e}")
            results = []

        if not results and about_officials and self.fallback is not None:
            results = self.fallback.lookup(message)

        enhanced = prepare_enhanced_message(message, results)
        return {
            "original_message": message,
            "enhanced_message": enhanced["message"],
            "has_context": enhanced["has_context"],
            "context_size": enhanced["context_size"],
            "search_results": results,
            "warning": None,
        }


# Singleton instance for reuse across app
rag_singleton = RAG(
    search_singleton,
    fallback=FallbackAnswerSource(settings.officials_path),
)
