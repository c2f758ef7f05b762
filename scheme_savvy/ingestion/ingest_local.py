"""Local PDF ingestion CLI.

Extracts the text of a PDF on disk with pypdf and indexes it through the same
pipeline as admin uploads (clean -> dedup -> category -> chunk -> embed -> store),
recorded as source_type 'pdf' under the 'local-upload' domain.

Usage:
    python -m scheme_savvy.ingestion.ingest_local --path ./pm-kisan.pdf [--title "PM-KISAN"]
"""
import argparse
import logging
import os
from typing import Optional

from pypdf import PdfReader

from scheme_savvy.config import settings
from scheme_savvy.db import init_db, session_scope
from scheme_savvy.embedding import EmbeddingGenerator
from scheme_savvy.ingestion.indexer import IndexResult, Indexer
from scheme_savvy.obs import LOG_FORMAT
from scheme_savvy.store import DocumentStore

logger = logging.getLogger(__name__)


def extract_pdf_text(path: str) -> str:
    """Concatenate the extracted text of every page, one page per line block."""
    reader = PdfReader(path)
    text = "\n".join(page.extract_text() or "" for page in reader.pages)
    logger.info("Extracted %d characters from %d pages of %s", len(text), len(reader.pages), path)
    return text


def ingest_pdf(path: str, title: Optional[str] = None) -> IndexResult:
    """Index one local PDF.

    Args:
        path: Filesystem path to the PDF.
        title: Document title; defaults to the file name without its .pdf extension.

    Returns:
        IndexResult: Outcome of indexing, including policy rejections.
    """
    name = title or os.path.splitext(os.path.basename(path))[0]
    text = extract_pdf_text(path)
    with session_scope() as session:
        indexer = Indexer(DocumentStore(session), EmbeddingGenerator(settings), settings)
        return indexer.index_content(
            title=name,
            url=f"file://{name}",
            content=text,
            domain="local-upload",
            source_type="pdf",
            source_tag="local_ingest",
        )


def main():
    parser = argparse.ArgumentParser(description="Index a local PDF into the scheme knowledge base.")
    parser.add_argument("--path", required=True, help="Path to the PDF file")
    parser.add_argument("--title", default=None, help="Document title (default: file name)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: INFO)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format=LOG_FORMAT)
    logger.info("Starting local PDF ingestion for %s", args.path)

    init_db()
    try:
        result = ingest_pdf(args.path, args.title)
    except Exception:
        logger.exception("Ingestion failed for %s", args.path)
        raise
    print(f"[INGEST-PDF] {args.path} -> {result.message} ({result.chunks} chunks)")


if __name__ == "__main__":
    main()
