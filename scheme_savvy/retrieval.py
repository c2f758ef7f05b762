"""Keyword retrieval with category fallback and a coarse relevance gate.

This module implements:
- extract_search_terms: query -> lowercased terms (letters/numbers kept, stop words dropped)
- Retriever.retrieve: substring search (OR across terms, capped) then category fallback
- Retriever.attempt_retrieve: the same, returned as Hit | Miss for the chat flow
- is_relevant: accept/reject a result set against the query's category and terms

Retrieval is substring matching on chunk content; stored embeddings are not used for
similarity search. Store queries are single round-trips with fixed limits.
"""
import logging
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Union

from scheme_savvy.category import detect_category
from scheme_savvy.config import Settings
from scheme_savvy.models import Chunk
from scheme_savvy.store import DocumentStore

logger = logging.getLogger(__name__)

# English plus common romanized Hindi/Tamil fillers
STOP_WORDS = frozenset(
    {
        "the", "a", "an", "in", "on", "at", "for", "to", "of", "and", "with", "about",
        "is", "are", "was", "were", "scheme", "yojana", "program", "portal",
        "ka", "ki", "ke", "aur", "hai", "oru", "ipadi",
    }
)


@dataclass
class RetrievedChunk:
    """A chunk joined with the provenance fields of its document."""
    chunk_id: int
    document_id: str
    content: str
    title: str
    source_url: str
    source_type: str
    category: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Chunk) -> "RetrievedChunk":
        doc = row.document
        return cls(
            chunk_id=row.id,
            document_id=row.document_id,
            content=row.content,
            title=doc.title if doc else "",
            source_url=doc.source_url if doc else "",
            source_type=doc.source_type if doc else "pdf",
            category=doc.category if doc else "General",
            metadata=dict(row.meta or {}),
        )


@dataclass
class Hit:
    results: List[RetrievedChunk]
    stage: str  # "keyword" | "category"


@dataclass
class Miss:
    query: str


@dataclass
class Empty:
    reason: str


RetrievalOutcome = Union[Hit, Miss]


def _keep_char(ch: str) -> bool:
    # Marks (M*) are kept so Devanagari/Tamil vowel signs stay attached to their words
    return ch.isspace() or unicodedata.category(ch)[0] in ("L", "N", "M")


def extract_search_terms(query: str) -> List[str]:
    """Derive search terms from a query.

    Args:
        query: Raw user query.

    Returns:
        List[str]: Lowercased tokens longer than 2 characters that are not stop words,
        in query order.
    """
    filtered = "".join(ch for ch in (query or "").lower() if _keep_char(ch))
    return [w for w in filtered.split() if len(w) > 2 and w not in STOP_WORDS]


def is_relevant(results: Sequence[RetrievedChunk], query: str) -> bool:
    """Return True if any result matches the query's category or contains a query term.

    Does not rank; accepts or rejects the set as a whole.
    """
    if not results:
        return False
    query_category = detect_category(query)
    terms = extract_search_terms(query)
    for r in results:
        if query_category and (r.category or "").lower() == query_category.lower():
            return True
        content = r.content.lower()
        if any(t in content for t in terms):
            return True
    return False


class Retriever:
    """Query the document store for chunks relevant to a user message.

    Args:
        store: DocumentStore bound to the request's session.
        settings: Provides KEYWORD_RESULT_LIMIT and CATEGORY_RESULT_LIMIT.
    """

    def __init__(self, store: DocumentStore, settings: Settings):
        self.store = store
        self.settings = settings

    def attempt_retrieve(self, query: str) -> RetrievalOutcome:
        """Run keyword search, then category fallback.

        Returns:
            Hit with the stage that produced results, or Miss when both are empty.
        """
        terms = extract_search_terms(query)
        rows = self.store.search_chunks(terms, self.settings.KEYWORD_RESULT_LIMIT)
        if rows:
            logger.info("Keyword retrieval: %d chunks for terms=%s", len(rows), terms)
            return Hit([RetrievedChunk.from_row(r) for r in rows], stage="keyword")

        category = detect_category(query)
        if category:
            rows = self.store.chunks_by_category(category, self.settings.CATEGORY_RESULT_LIMIT)
            if rows:
                logger.info("Category retrieval: %d chunks for category=%s", len(rows), category)
                return Hit([RetrievedChunk.from_row(r) for r in rows], stage="category")

        logger.info("Retrieval miss for query=%r (terms=%s, category=%s)", query, terms, category)
        return Miss(query)

    def retrieve(self, query: str) -> List[RetrievedChunk]:
        """Results of attempt_retrieve as a plain list (empty on miss)."""
        outcome = self.attempt_retrieve(query)
        return outcome.results if isinstance(outcome, Hit) else []

    def is_relevant(self, results: Sequence[RetrievedChunk], query: str) -> bool:
        return is_relevant(results, query)


def sources_for(results: Sequence[RetrievedChunk]) -> List[Dict[str, str]]:
    """Citation sources for results, deduplicated by URL (last occurrence wins)."""
    by_url: Dict[str, Dict[str, str]] = {}
    for r in results:
        by_url[r.source_url] = {
            "name": r.title or "Government Document",
            "type": "web" if r.source_type == "web" else "document",
            "url": r.source_url or "",
        }
    return list(by_url.values())
