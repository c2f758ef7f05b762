"""Application configuration and environment-driven settings.

Defines the Settings class based on pydantic-settings to centralize configuration for:
- Generation provider keys and model names (primary + fallback)
- Embedding provider key and model
- Data store (PostgreSQL with pgvector)
- Ingestion parameters (allow-listed domains, chunking, dedup prefix)
- Retrieval limits
- Per-call timeouts and the chat request deadline
- Logging/tracing toggles

Components receive a Settings instance in their constructor; only this module reads
the process environment. A warning is logged if no generation key is configured.
"""
import logging
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_DOMAINS = ",".join(
    [
        "india.gov.in",
        "pmindia.gov.in",
        "scholarships.gov.in",
        "umang.gov.in",
        "tn.gov.in",
        "up.gov.in",
        "mha.gov.in",
        "niti.gov.in",
        "pmkisan.gov.in",
        "pmfby.gov.in",
        "nrega.nic.in",
        "uidai.gov.in",
        "epfindia.gov.in",
        "labour.gov.in",
        "rural.gov.in",
        "moes.gov.in",
        "education.gov.in",
        "agricoop.nic.in",
        "nhm.gov.in",
        "pmjay.gov.in",
        ".gov.in",
        ".nic.in",
    ]
)


class Settings(BaseSettings):
    """Strongly-typed application settings loaded from environment variables.

    Uses pydantic-settings to populate fields from a .env file or process env.
    See individual field names for semantics and safe defaults.
    """
    # Generation (Groq, OpenAI-compatible API)
    GROQ_API_KEY: str = Field(default="", description="Primary Groq API key")
    GROQ_API_KEY_2: str = ""
    GROQ_API_KEY_3: str = ""
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_FALLBACK_MODEL: str = "llama-3.1-8b-instant"
    GENERATION_TEMPERATURE: float = 0.1
    MAX_OUTPUT_TOKENS: int = 512
    HISTORY_TURNS: int = 4
    CONTEXT_CHAR_BUDGET: int = 25000

    # Embeddings
    OPENAI_API_KEY: str = Field(default="", description="Embedding API key")
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"  # 1536 dims
    EMBEDDING_INPUT_CHARS: int = 2048

    # Scraping (Browserless headless Chrome)
    BROWSERLESS_TOKEN: str = ""
    BROWSERLESS_BASE_URL: str = "https://chrome.browserless.io"
    SEARCH_ENGINE_URL: str = "https://www.bing.com/search"
    SEARCH_RESULTS_LIMIT: int = 5

    # Data store
    DATABASE_URL: str = "postgresql+psycopg2://scheme_user:scheme_pass@db:5432/scheme_db"

    # Ingestion
    ALLOWED_DOMAINS: str = DEFAULT_ALLOWED_DOMAINS
    CHUNK_SIZE: int = 1000
    MIN_CONTENT_CHARS: int = 100
    HASH_PREFIX_CHARS: int = 500

    # Retrieval
    KEYWORD_RESULT_LIMIT: int = 5
    CATEGORY_RESULT_LIMIT: int = 3
    AUTO_INGEST_MIN_QUERY_CHARS: int = 6

    # Timeouts (seconds)
    EMBEDDING_TIMEOUT_SECONDS: float = 20.0
    SCRAPE_TIMEOUT_SECONDS: float = 45.0
    GENERATION_TIMEOUT_SECONDS: float = 60.0
    CHAT_DEADLINE_SECONDS: float = 120.0
    # Share of the chat deadline web auto-ingestion may use; the rest is left for generation
    AUTO_INGEST_BUDGET_SECONDS: float = 60.0

    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_CONSOLE_EXPORT: bool = False

    # Derived
    @property
    def EMBEDDING_DIM(self) -> int:
        """Embedding dimension stored in the chunks table.

        Fixed at 1536 so the schema never depends on which provider answered;
        the hash-embedding fallback produces the same width.
        """
        return 1536

    @property
    def generation_api_keys(self) -> List[str]:
        """Configured Groq keys in rotation order, blanks removed."""
        keys = [self.GROQ_API_KEY, self.GROQ_API_KEY_2, self.GROQ_API_KEY_3]
        return [k.strip() for k in keys if k and k.strip()]

    @property
    def generation_models(self) -> List[str]:
        """Models in failover order: primary large model, then the smaller fallback."""
        models = [self.GROQ_MODEL, self.GROQ_FALLBACK_MODEL]
        out: List[str] = []
        for m in models:
            if m and m not in out:
                out.append(m)
        return out

    @property
    def allowed_domains(self) -> List[str]:
        """Lowercased hostname suffixes accepted for ingestion."""
        return [d.strip().lower() for d in self.ALLOWED_DOMAINS.split(",") if d.strip()]

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide Settings instance."""
    return settings


if not settings.generation_api_keys:
    # Avoid raising to allow local scaffolding before setting .env
    logger.warning("GROQ_API_KEY not set. Chat answers will report a configuration error.")
