"""Chat orchestration: retrieve, optionally ingest, gate, and generate.

ChatService.answer runs one chat turn:
1. Keyword/category retrieval (Hit | Miss)
2. On a miss for a non-trivial query, web auto-ingestion followed by one retry
3. Relevance gate; only relevant results become context and sources
4. System prompt + failover generation under the request deadline

The result is always a response body; generation exhaustion becomes an explanatory
message and any other failure becomes a generic apology.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from scheme_savvy.config import Settings
from scheme_savvy.generation import (
    ERROR_SOURCE_LABEL,
    GenerationClient,
    GenerationExhaustedError,
    MissingCredentialsError,
    build_context,
    build_system_prompt,
    exhausted_message,
    source_label,
)
from scheme_savvy.ingestion.auto_ingest import AutoIngestor
from scheme_savvy.obs import span
from scheme_savvy.retrieval import Hit, RetrievedChunk, Retriever, sources_for
from scheme_savvy.store import DocumentStore
from scheme_savvy.timeouts import Deadline

logger = logging.getLogger(__name__)

APOLOGY = "I apologize, but I encountered an error. Please try again."
APOLOGY_SOURCE_LABEL = "Error occurred"


class ChatService:
    def __init__(
        self,
        store: DocumentStore,
        settings: Settings,
        retriever: Retriever,
        ingestor: AutoIngestor,
        generator: GenerationClient,
    ):
        self.store = store
        self.settings = settings
        self.retriever = retriever
        self.ingestor = ingestor
        self.generator = generator

    def answer(
        self,
        message: str,
        history: Sequence[Dict[str, str]] = (),
        language: str = "english",
    ) -> Dict[str, Any]:
        """Answer one user message.

        Args:
            message: User message (non-empty).
            history: Prior turns as {"role", "content"} dicts.
            language: 'english', 'tamil' or 'hindi'.

        Returns:
            dict: {content, sources, sourceLabel, newKnowledgeIndexed}.
        """
        try:
            return self._answer(message, history, language)
        except Exception:
            logger.exception("Chat error")
            return {
                "content": APOLOGY,
                "sources": [],
                "sourceLabel": APOLOGY_SOURCE_LABEL,
                "newKnowledgeIndexed": False,
            }

    def _retrieve(self, message: str, deadline: Deadline) -> Tuple[List[RetrievedChunk], int]:
        with span("retrieve", {"query": message}):
            outcome = self.retriever.attempt_retrieve(message)
        if isinstance(outcome, Hit):
            return outcome.results, 0

        if not self.ingestor.should_auto_ingest(message):
            return [], 0
        # Generation keeps whatever the ingestion budget leaves of the request deadline
        ingest_deadline = deadline.child(self.settings.AUTO_INGEST_BUDGET_SECONDS)
        retry = self.ingestor.ingest_then_retry(message, self.retriever, deadline=ingest_deadline)
        if isinstance(retry.outcome, Hit):
            return retry.outcome.results, retry.indexed
        logger.info("Auto-ingestion produced no context: %s", retry.outcome.reason)
        return [], retry.indexed

    def _answer(self, message: str, history: Sequence[Dict[str, str]], language: str) -> Dict[str, Any]:
        deadline = Deadline(self.settings.CHAT_DEADLINE_SECONDS)
        logger.info("KB stats: %s", self.store.stats())

        results, indexed = self._retrieve(message, deadline)
        relevant = self.retriever.is_relevant(results, message)
        if results and not relevant:
            logger.info("Discarding %d retrieved chunks as irrelevant to %r", len(results), message)

        context = ""
        sources: List[Dict[str, str]] = []
        if relevant:
            context = build_context(results, self.settings.CONTEXT_CHAR_BUDGET)
            sources = sources_for(results)

        label = source_label(language, relevant)
        prompt = build_system_prompt(context, bool(sources), language)
        try:
            content = self.generator.generate(prompt, message, history, deadline=deadline)
        except (MissingCredentialsError, GenerationExhaustedError) as exc:
            content = exhausted_message(exc)
            label = ERROR_SOURCE_LABEL

        return {
            "content": content,
            "sources": sources,
            "sourceLabel": label,
            "newKnowledgeIndexed": indexed > 0,
        }


def build_chat_service(
    store: DocumentStore,
    settings: Settings,
    ingestor: AutoIngestor,
    generator: Optional[GenerationClient] = None,
) -> ChatService:
    """Wire a ChatService for one request session."""
    return ChatService(
        store=store,
        settings=settings,
        retriever=Retriever(store, settings),
        ingestor=ingestor,
        generator=generator or GenerationClient(settings),
    )
