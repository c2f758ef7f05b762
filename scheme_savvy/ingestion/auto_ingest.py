"""Web ingestion from allow-listed government sources.

AutoIngestor covers the three ingestion paths that reach the web:
- ingest_url: render one allow-listed page and index it
- search_and_ingest: search gov.in for a query, then ingest each allow-listed hit
- ingest_then_retry: the chat flow's cache-miss path; search_and_ingest followed by a
  single retrieval retry, returning Hit or Empty

Search/scrape failures never escape ingest_then_retry; the chat flow then continues
without context.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

from scheme_savvy.config import Settings
from scheme_savvy.ingestion.indexer import Indexer
from scheme_savvy.ingestion.scraper import BrowserlessClient, ScrapeError
from scheme_savvy.obs import span
from scheme_savvy.retrieval import Empty, Hit, Retriever
from scheme_savvy.timeouts import Deadline, DeadlineExceeded
from scheme_savvy.utils import is_allowed_domain, normalize_url, title_from_url

logger = logging.getLogger(__name__)

DOMAIN_REJECTED = "URL must be from an official Indian government domain (*.gov.in or *.nic.in)"


@dataclass
class IngestOutcome:
    success: bool
    message: str
    chunks_indexed: Optional[int] = None

    def as_response(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.chunks_indexed is not None:
            out["chunksIndexed"] = self.chunks_indexed
        return out


@dataclass
class SearchIngestReport:
    success: bool
    indexed: int = 0
    results: List[Dict[str, str]] = field(default_factory=list)

    def as_response(self) -> Dict[str, Any]:
        return {"success": self.success, "indexed": self.indexed, "results": self.results}


@dataclass
class RetryResult:
    outcome: Union[Hit, Empty]
    indexed: int = 0


class AutoIngestor:
    def __init__(self, indexer: Indexer, scraper: BrowserlessClient, settings: Settings):
        self.indexer = indexer
        self.scraper = scraper
        self.settings = settings

    def is_allowed(self, url: str) -> bool:
        return is_allowed_domain(url, self.settings.allowed_domains)

    def should_auto_ingest(self, query: str) -> bool:
        """Only non-trivial queries trigger web ingestion on a retrieval miss."""
        return len(query or "") >= self.settings.AUTO_INGEST_MIN_QUERY_CHARS

    def ingest_url(self, url: str, deadline: Optional[Deadline] = None) -> IngestOutcome:
        """Render an allow-listed page and index its text."""
        if not self.is_allowed(url):
            logger.info("Rejected non-government URL: %s", url)
            return IngestOutcome(False, DOMAIN_REJECTED)

        logger.info("Rendering %s", url)
        try:
            page = self.scraper.render(url, deadline=deadline)
        except ScrapeError as exc:
            logger.warning("Scrape failed for %s: %s", url, exc)
            return IngestOutcome(False, str(exc))

        title = page.title or title_from_url(url)
        result = self.indexer.index_content(
            title=title,
            url=url,
            content=page.text,
            domain=urlparse(url).hostname or "",
            source_type="web",
            source_tag="web_ingest",
            deadline=deadline,
        )
        if result.success:
            return IngestOutcome(True, f'Successfully indexed "{title}"', result.chunks)
        return IngestOutcome(False, result.message)

    def search_and_ingest(self, query: str, deadline: Optional[Deadline] = None) -> SearchIngestReport:
        """Search gov.in for query and ingest each allow-listed result.

        A failure on one candidate is recorded in its status and does not stop the rest.
        """
        try:
            candidates = self.scraper.search(query, deadline=deadline)
        except (ScrapeError, DeadlineExceeded) as exc:
            logger.warning("Search failed for %r: %s", query, exc)
            return SearchIngestReport(success=False)

        seen = set()
        report = SearchIngestReport(success=True)
        for cand in candidates:
            url = normalize_url(cand.url)
            if url in seen or not self.is_allowed(url):
                continue
            seen.add(url)

            if deadline is not None and deadline.expired():
                report.results.append({"url": url, "title": cand.title, "status": "skipped: deadline exceeded"})
                continue
            try:
                res = self.ingest_url(url, deadline=deadline)
                status = "indexed" if res.success else res.message
            except DeadlineExceeded:
                status = "skipped: deadline exceeded"
            except Exception as exc:
                logger.exception("Ingestion failed for %s", url)
                status = f"error: {exc}"
            else:
                if res.success:
                    report.indexed += 1
            report.results.append({"url": url, "title": cand.title, "status": status})

        logger.info("Search-and-ingest for %r indexed %d of %d results", query, report.indexed, len(report.results))
        return report

    def ingest_then_retry(self, query: str, retriever: Retriever, deadline: Optional[Deadline] = None) -> RetryResult:
        """Ingest web results for a missed query, then retry retrieval once.

        Returns:
            RetryResult: Hit from the retry, or Empty with the reason, plus the number of
            newly indexed documents.
        """
        if not self.scraper.configured:
            logger.info("Auto-ingestion skipped: scraping service not configured")
            return RetryResult(Empty("scraper not configured"))

        logger.info("No local results. Triggering auto-ingestion for: %s", query)
        with span("auto_ingest", {"query": query}):
            try:
                report = self.search_and_ingest(query, deadline=deadline)
            except Exception:
                logger.exception("Auto-ingestion failed for %r", query)
                return RetryResult(Empty("ingestion failed"))

        outcome = retriever.attempt_retrieve(query)
        if isinstance(outcome, Hit):
            return RetryResult(outcome, report.indexed)
        return RetryResult(Empty("no results after ingestion"), report.indexed)
