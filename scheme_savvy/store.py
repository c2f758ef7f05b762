"""Document store over the documents/chunks tables.

DocumentStore wraps a SQLAlchemy Session and exposes the lookups the pipeline needs:
by content hash (dedup), by substring (keyword retrieval), by category (fallback
retrieval), plus listing with read-time chunk counts and cascading delete.

The unique constraint on documents.content_hash is the only dedup guarantee at the
storage boundary; a violation on insert surfaces as DuplicateContentError.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from scheme_savvy.models import Chunk, Document

logger = logging.getLogger(__name__)


class DuplicateContentError(Exception):
    """A document with the same content hash already exists."""


class DocumentStore:
    def __init__(self, db: Session):
        self.db = db

    # Writes

    def find_by_hash(self, content_hash: str) -> Optional[Document]:
        return self.db.execute(
            select(Document).where(Document.content_hash == content_hash)
        ).scalar_one_or_none()

    def add_document(
        self,
        *,
        title: str,
        source_url: str,
        source_type: str,
        category: str,
        domain: str,
        content_hash: str,
    ) -> Document:
        """Insert a document row and flush so its id is available.

        Raises:
            DuplicateContentError: If content_hash violates the unique constraint.
        """
        doc = Document(
            title=title[:512],
            source_url=source_url,
            source_type=source_type,
            category=category,
            domain=domain,
            content_hash=content_hash,
        )
        self.db.add(doc)
        try:
            self.db.flush()
        except IntegrityError as exc:
            self.db.rollback()
            logger.info("Duplicate content hash on insert: %s", content_hash)
            raise DuplicateContentError(content_hash) from exc
        return doc

    def add_chunk(
        self,
        document: Document,
        index: int,
        content: str,
        embedding: Sequence[float],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Chunk:
        row = Chunk(
            document_id=document.id,
            chunk_index=index,
            content=content,
            embedding=list(embedding),
            meta=metadata,
        )
        self.db.add(row)
        return row

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    # Reads

    def search_chunks(self, terms: Sequence[str], limit: int) -> List[Chunk]:
        """Chunks whose content contains any of the terms (case-insensitive)."""
        if not terms:
            return []
        conds = [Chunk.content.ilike(f"%{t}%") for t in terms]
        stmt = (
            select(Chunk)
            .options(joinedload(Chunk.document))
            .where(or_(*conds))
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def chunks_by_category(self, category: str, limit: int) -> List[Chunk]:
        """Chunks from documents filed under category."""
        stmt = (
            select(Chunk)
            .join(Chunk.document)
            .options(joinedload(Chunk.document))
            .where(Document.category == category)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_document(self, document_id: str) -> Optional[Document]:
        return self.db.get(Document, document_id)

    def list_documents(self) -> List[Tuple[Document, int]]:
        """All documents, newest first, each paired with its chunk count."""
        counts = (
            select(Chunk.document_id, func.count(Chunk.id).label("n"))
            .group_by(Chunk.document_id)
            .subquery()
        )
        stmt = (
            select(Document, func.coalesce(counts.c.n, 0))
            .outerjoin(counts, counts.c.document_id == Document.id)
            .order_by(Document.created_at.desc())
        )
        return [(doc, int(n)) for doc, n in self.db.execute(stmt).all()]

    def delete_document(self, document_id: str) -> bool:
        """Delete a document and its chunks. Returns False if it does not exist."""
        doc = self.get_document(document_id)
        if doc is None:
            return False
        title = doc.title
        self.db.delete(doc)
        self.db.commit()
        logger.info("Deleted document %s (%s)", document_id, title)
        return True

    def stats(self) -> Dict[str, int]:
        """Knowledge-base counts: documents, chunks and web-sourced documents."""
        docs = self.db.execute(select(func.count(Document.id))).scalar_one()
        chunks = self.db.execute(select(func.count(Chunk.id))).scalar_one()
        web = self.db.execute(
            select(func.count(Document.id)).where(Document.source_type == "web")
        ).scalar_one()
        return {"docs": int(docs), "chunks": int(chunks), "web": int(web)}
