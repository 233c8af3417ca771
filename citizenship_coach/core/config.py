"""
Configuration Loader

This module centralizes configuration for the Citizenship Coach service.
It supports multiple sources:
1. Default values (lowest precedence).
2. A `.env` file, loaded with python-dotenv.
3. Environment variables (highest precedence).

The resolved configuration is exposed as a singleton `settings` object
that can be imported anywhere in the codebase.
"""

import os
import torch
from dotenv import load_dotenv


class Settings:
    """
    Application configuration settings.

    Attributes:
        vector_backend (str): "faiss" (flat index on disk) or "postgres" (pgvector).
        vector_db_path (str): Directory holding the FAISS index and catalogue.
        database_url (str): SQLAlchemy URL of the Postgres/pgvector database.
        analytics_db_url (str): SQLAlchemy URL for the search analytics log.
        embedding_provider (str): "huggingface" (local) or "openai".
        embedding_model (str): Embedding model identifier.
        embedding_dimensions (int): Vector size of the pgvector column.
        corpus_path (str): JSON file with the 100 civics questions.
        officials_path (str): JSON file with fallback answers for current officials.
        rag_default_k (int): Neighbours retrieved for ordinary civics messages.
        rag_officials_k (int): Neighbours retrieved for current-officials messages.
        check_in_delay (float): Seconds before the gentle check-in prompt.
        inactivity_warning (float): Seconds of inactivity before the warning prompt.
        inactivity_pause (float): Seconds of inactivity before the session is paused.
        catalogue_timezone (str): Timezone of the ingestion catalogue timestamps.
        log_level (str): Root log level.
        log_file (str | None): Optional log file path.
        device (str): Device used for local embeddings ("cpu", "cuda" or "mps").
    """

    def __init__(self):
        """Initialize settings (environment + GPU auto-detect)."""
        load_dotenv()

        # --- Default values ---
        self.vector_backend = "faiss"
        self.vector_db_path = "database/vector_db"
        self.database_url = "postgresql+psycopg://localhost/citizenship"
        self.analytics_db_url = "sqlite:///./database/analytics.db"
        self.embedding_provider = "huggingface"
        self.embedding_model = "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2"
        self.embedding_dimensions = 384
        self.corpus_path = os.path.join(os.getcwd(), "data", "civics_questions.json")
        self.officials_path = os.path.join(os.getcwd(), "data", "current_officials.json")
        self.rag_default_k = 3
        self.rag_officials_k = 5
        self.check_in_delay = 20.0
        self.inactivity_warning = 60.0
        self.inactivity_pause = 90.0
        self.catalogue_timezone = "America/New_York"
        self.log_level = "INFO"
        self.log_file = None
        self.device = "cpu"

        # --- Override with environment variables ---
        self._load_env_overrides()

        self.device = self._detect_device()

    # ----------------------------------------------------------------------
    def _load_env_overrides(self):
        """Load environment variable overrides."""
        self.vector_backend = os.getenv("VECTOR_BACKEND", self.vector_backend).lower()
        self.vector_db_path = os.getenv("VECTOR_DB_PATH", self.vector_db_path)
        self.database_url = os.getenv("DATABASE_URL", self.database_url)
        self.analytics_db_url = os.getenv("ANALYTICS_DB_URL", self.analytics_db_url)
        self.embedding_provider = os.getenv("EMBEDDING_PROVIDER", self.embedding_provider).lower()
        self.embedding_model = os.getenv("EMBEDDING_MODEL", self.embedding_model)
        self.embedding_dimensions = int(
            os.getenv("EMBEDDING_DIMENSIONS", self.embedding_dimensions)
        )
        self.corpus_path = os.getenv("CORPUS_PATH", self.corpus_path)
        self.officials_path = os.getenv("OFFICIALS_PATH", self.officials_path)
        self.rag_default_k = int(os.getenv("RAG_DEFAULT_K", self.rag_default_k))
        self.rag_officials_k = int(os.getenv("RAG_OFFICIALS_K", self.rag_officials_k))
        self.check_in_delay = float(os.getenv("CHECK_IN_DELAY_SECONDS", self.check_in_delay))
        self.inactivity_warning = float(
            os.getenv("INACTIVITY_WARNING_SECONDS", self.inactivity_warning)
        )
        self.inactivity_pause = float(
            os.getenv("INACTIVITY_PAUSE_SECONDS", self.inactivity_pause)
        )
        self.catalogue_timezone = os.getenv("CATALOGUE_TIMEZONE", self.catalogue_timezone)
        self.log_level = os.getenv("LOG_LEVEL", self.log_level).upper()
        self.log_file = os.getenv("LOG_FILE", self.log_file)

    def _detect_device(self) -> str:
        """Detect best available compute device for local embeddings."""
        # If user explicitly set DEVICE, respect it
        if os.getenv("DEVICE"):
            return os.getenv("DEVICE").lower()

        if torch.cuda.is_available():
            return "cuda"
        if torch.backends.mps.is_available():
            return "mps"
        return "cpu"

# Singleton settings object
settings = Settings()
