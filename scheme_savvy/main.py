"""FastAPI application entrypoint and routes.

Exposes health, chat, ingest and documents endpoints, configures CORS, and
initializes logging and the database schema at startup. Components are built per
request through FastAPI dependencies so tests can override any of them.
"""
import logging
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from scheme_savvy.chat import ChatService, build_chat_service
from scheme_savvy.config import Settings, get_settings
from scheme_savvy.db import get_db, init_db
from scheme_savvy.embedding import EmbeddingGenerator
from scheme_savvy.ingestion.auto_ingest import DOMAIN_REJECTED, AutoIngestor, IngestOutcome
from scheme_savvy.ingestion.indexer import Indexer
from scheme_savvy.ingestion.scraper import BrowserlessClient
from scheme_savvy.obs import configure_logging
from scheme_savvy.schemas import (
    ChatRequest,
    ChatResponse,
    DeleteDocumentRequest,
    DocumentOut,
    DocumentsResponse,
    IngestRequest,
)
from scheme_savvy.store import DocumentStore

logger = logging.getLogger(__name__)

INVALID_ACTION = (
    'Invalid action. Use "ingest_text" with content, "ingest_url" with url parameter '
    'or "search_and_ingest" with query parameter.'
)
SCRAPER_NOT_CONFIGURED = "BROWSERLESS_TOKEN not configured"

app = FastAPI(title="Scheme Savvy API", version="0.1.0")

# The chat UI is served from a separate origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_credentials=True,
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    """Configure logging and ensure the database schema exists."""
    configure_logging()
    init_db()


def get_store(db: Session = Depends(get_db)) -> DocumentStore:
    return DocumentStore(db)


def get_ingestor(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> AutoIngestor:
    indexer = Indexer(store, EmbeddingGenerator(settings), settings)
    return AutoIngestor(indexer, BrowserlessClient(settings), settings)


def get_chat_service(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    ingestor: AutoIngestor = Depends(get_ingestor),
) -> ChatService:
    return build_chat_service(store, settings, ingestor)


def _error(status: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message, **extra})


@app.get("/health")
def health():
    """Liveness probe endpoint.

    Returns:
        dict: {"status": "ok"} when the service is running.
    """
    return {"status": "ok"}


@app.post("/chat", response_model=ChatResponse)
def chat(req: ChatRequest, service: ChatService = Depends(get_chat_service)):
    """Answer a user message about government schemes.

    Workflow:
    - Reject blank messages with 400
    - Retrieve chunks by keyword, then by category
    - On a miss, search and ingest official pages, then retry retrieval once
    - Gate results for relevance; build context and sources
    - Generate with model/key failover

    Any failure past validation is reported in a 200 body (apology or
    configuration/rate-limit message), never as an HTTP error.
    """
    if not req.message.strip():
        return _error(400, "Message is required")
    history = [m.model_dump() for m in req.conversationHistory]
    return service.answer(req.message, history, req.language)


@app.post("/ingest")
def ingest(
    req: IngestRequest,
    ingestor: AutoIngestor = Depends(get_ingestor),
):
    """Admin ingestion.

    Actions:
    - ingest_text: index supplied text (e.g. extracted from a PDF upload)
    - ingest_url: render and index one allow-listed government page
    - search_and_ingest: search gov.in and index each allow-listed result
    """
    try:
        if req.action == "ingest_text" and req.content:
            title = req.title or "Uploaded Document"
            logger.info("Ingesting raw text: %s", title)
            result = ingestor.indexer.index_content(
                title=title,
                url=req.url or f"file://{title}",
                content=req.content,
                domain="local-upload",
                source_type="pdf",
                source_tag="admin_ingest",
            )
            chunks = result.chunks if result.success else None
            return IngestOutcome(result.success, result.message, chunks).as_response()

        if req.action == "ingest_url" and req.url:
            if not ingestor.is_allowed(req.url):
                return _error(400, DOMAIN_REJECTED, success=False)
            if not ingestor.scraper.configured:
                return _error(500, SCRAPER_NOT_CONFIGURED, success=False)
            return ingestor.ingest_url(req.url).as_response()

        if req.action == "search_and_ingest" and req.query:
            if not ingestor.scraper.configured:
                return _error(500, SCRAPER_NOT_CONFIGURED, success=False)
            return ingestor.search_and_ingest(req.query).as_response()
    except Exception as exc:
        logger.exception("Ingest error")
        return _error(500, "Ingestion failed", details=str(exc))

    return _error(400, INVALID_ACTION)


@app.get("/documents", response_model=DocumentsResponse)
def list_documents(store: DocumentStore = Depends(get_store)):
    """List indexed documents, newest first, with their chunk counts."""
    docs = []
    for doc, count in store.list_documents():
        out = DocumentOut.model_validate(doc)
        out.chunkCount = count
        docs.append(out)
    return DocumentsResponse(documents=docs)


@app.delete("/documents")
def delete_document(
    req: Optional[DeleteDocumentRequest] = None,
    store: DocumentStore = Depends(get_store),
):
    """Delete a document and, by cascade, its chunks."""
    if req is None or not req.documentId:
        return _error(400, "Document ID is required")
    try:
        deleted = store.delete_document(req.documentId)
    except Exception:
        logger.exception("Documents error")
        return _error(500, "Failed to process request")
    if not deleted:
        return _error(404, "Document not found")
    return {"success": True}
