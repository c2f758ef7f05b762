"""Scheme Savvy: a retrieval-augmented chat backend for Indian government welfare schemes.

Submodules overview:
- main: FastAPI application bootstrap and routes (chat, ingest, documents).
- chat: Per-request chat orchestration.
- config: Application settings and environment variable loading.
- db: Database engine/session management helpers.
- models: ORM models (documents, chunks).
- store: Document store queries over the ORM models.
- schemas: Pydantic request/response models for API contracts.
- retrieval: Keyword/category retrieval and the relevance gate.
- category: Keyword-based welfare category detection.
- generation: Prompt building and failover chat completion.
- embedding: Embedding provider wrapper and hash fallback.
- ingestion: Scraping, indexing and auto-ingestion.
- timeouts: Request deadline shared by outbound calls.
- obs: Logging setup and tracing spans.
- utils: Text cleaning, chunking, hashing and URL helpers.
"""
