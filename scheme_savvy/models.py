"""Database ORM models.

Defines persistent entities used by the ingestion and retrieval pipelines:
- Document: one row per indexed source (uploaded PDF text or scraped page). The
  content_hash column carries the unique constraint that deduplicates ingestion.
- Chunk: a paragraph-bounded slice of a document with its embedding vector. Chunks
  are owned by their document; deleting a document cascades to its chunks.
"""
import uuid
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from scheme_savvy.config import settings
from scheme_savvy.db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Document(Base):
    """An indexed source document.

    Attributes mirror the documents listing contract: title, source_url, source_type
    ('pdf' | 'web'), category (one of the six welfare domains or 'General'), domain
    (hostname or 'local-upload') and timestamps. Chunk counts are computed at read time.
    """
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(512), nullable=False)
    source_url = Column(String(2048), nullable=False)
    source_type = Column(String(16), nullable=False, default="web")
    category = Column(String(64), nullable=False, default="General")
    domain = Column(String(255), nullable=False)
    content_hash = Column(String(64), nullable=False, unique=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    chunks = relationship(
        "Chunk",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Chunk.chunk_index",
    )

    __table_args__ = (
        Index("idx_documents_category", "category"),
    )


class Chunk(Base):
    """Embedded content chunk belonging to exactly one Document.

    Indexes:
        - idx_chunks_document: speeds up per-document counts and cascades

    Notes:
        The embedding is stored as pgvector on PostgreSQL and as JSON on other
        engines (used by the test suite); both hold settings.EMBEDDING_DIM floats.
    """
    __tablename__ = "chunks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    chunk_index = Column(Integer, nullable=False, default=0)  # order within a doc
    content = Column(Text, nullable=False)
    embedding = Column(
        Vector(dim=settings.EMBEDDING_DIM).with_variant(JSON(), "sqlite"), nullable=False
    )
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    document = relationship("Document", back_populates="chunks")

    __table_args__ = (
        Index("idx_chunks_document", "document_id"),
    )
