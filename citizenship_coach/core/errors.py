"""
errors.py
---------

Exception taxonomy for the Citizenship Coach service.

Store and service errors propagate to their direct caller (usually a route,
which maps them to an HTTP status). Reconciliation errors are contained inside
the practice session and only ever logged.
"""


class CitizenshipCoachError(Exception):
    """Base class for all service errors."""


class NotInitializedError(CitizenshipCoachError):
    """A store or service was used before its setup completed."""


class EmbeddingError(CitizenshipCoachError):
    """The embedding provider failed to embed a text."""


class EmptyStoreError(CitizenshipCoachError):
    """The vector store holds no documents."""


class NotFoundError(CitizenshipCoachError):
    """A requested question does not exist."""


class MalformedEventError(CitizenshipCoachError):
    """A realtime event (or its function-call arguments) could not be parsed."""


class SearchResolutionError(CitizenshipCoachError):
    """A spoken question could not be resolved against the search service."""
