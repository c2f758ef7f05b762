"""Ingestion package: scraping, indexing and auto-ingestion.

Contains the Browserless scraper, the Indexer that turns raw text into stored
chunks, the AutoIngestor used by the chat flow and the ingest endpoint, and the
ingest_local CLI for PDFs on disk.
"""
