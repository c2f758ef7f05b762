"""Index raw text into the document store.

Indexer.index_content runs one source through the pipeline:
clean -> length gate -> content hash -> duplicate check -> category -> document row
-> chunk -> embed -> chunk rows, committing document and chunks together.

Policy rejections (too short, already indexed) are returned as IndexResult values,
never raised.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from scheme_savvy.category import detect_document_category
from scheme_savvy.config import Settings
from scheme_savvy.embedding import EmbeddingGenerator
from scheme_savvy.store import DocumentStore, DuplicateContentError
from scheme_savvy.timeouts import Deadline
from scheme_savvy.utils import chunk_content, clean_content, content_hash

logger = logging.getLogger(__name__)

ALREADY_INDEXED = "Content already indexed"
TOO_SHORT = "Content too short or empty after cleaning"


@dataclass
class IndexResult:
    success: bool
    message: str
    chunks: int = 0
    document_id: Optional[str] = None
    duplicate: bool = False


class Indexer:
    def __init__(self, store: DocumentStore, embedder: EmbeddingGenerator, settings: Settings):
        self.store = store
        self.embedder = embedder
        self.settings = settings

    def index_content(
        self,
        *,
        title: str,
        url: str,
        content: str,
        domain: str,
        source_type: str = "web",
        source_tag: str = "admin_ingest",
        deadline: Optional[Deadline] = None,
    ) -> IndexResult:
        """Clean, deduplicate, chunk, embed and store one source.

        Args:
            title: Document title.
            url: Source identifier (page URL or file:// name); part of the content hash.
            content: Raw extracted text.
            domain: Hostname, or 'local-upload' for uploaded files.
            source_type: 'web' or 'pdf'.
            source_tag: Ingestion path recorded in chunk metadata.
            deadline: Optional request deadline passed to embedding calls.

        Returns:
            IndexResult: success with chunk count, or a failure message.
        """
        cleaned = clean_content(content)
        if len(cleaned) < self.settings.MIN_CONTENT_CHARS:
            logger.info("Rejected %s: %s (%d chars)", url, TOO_SHORT, len(cleaned))
            return IndexResult(False, TOO_SHORT)

        digest = content_hash(url, cleaned, self.settings.HASH_PREFIX_CHARS)
        if self.store.find_by_hash(digest) is not None:
            logger.info("Skipped %s: %s", url, ALREADY_INDEXED)
            return IndexResult(False, ALREADY_INDEXED, duplicate=True)

        category = detect_document_category(cleaned)
        try:
            doc = self.store.add_document(
                title=title,
                source_url=url,
                source_type=source_type,
                category=category,
                domain=domain,
                content_hash=digest,
            )
        except DuplicateContentError:
            # Lost an insert race against a concurrent ingest of the same content
            return IndexResult(False, ALREADY_INDEXED, duplicate=True)
        except SQLAlchemyError as exc:
            self.store.rollback()
            logger.exception("Failed to insert document for %s", url)
            return IndexResult(False, f"Database error: {exc}")

        doc_id = doc.id
        chunks = chunk_content(cleaned, self.settings.CHUNK_SIZE)
        try:
            for i, text in enumerate(chunks):
                embedding = self.embedder.embed(text, deadline=deadline)
                self.store.add_chunk(doc, i, text, embedding, {"category": category, "source": source_tag})
            self.store.commit()
        except SQLAlchemyError as exc:
            self.store.rollback()
            logger.exception("Failed to store chunks for %s", url)
            return IndexResult(False, f"Database error: {exc}")

        logger.info("Indexed %d chunks from %s (category=%s)", len(chunks), url, category)
        return IndexResult(True, "Indexed successfully", chunks=len(chunks), document_id=doc_id)
