"""Headless-browser scraping through the Browserless REST API.

Main functions:
- BrowserlessClient.search: run a web search restricted to gov.in and return the top
  result links ({title, url})
- BrowserlessClient.render: load a page in headless Chrome and return its title and
  visible text; falls back to the /content endpoint (rendered HTML parsed with
  BeautifulSoup) when the /function endpoint fails

Configuration:
- Token, base URL, search engine and result limit: scheme_savvy.config.Settings
  (BROWSERLESS_TOKEN, BROWSERLESS_BASE_URL, SEARCH_ENGINE_URL, SEARCH_RESULTS_LIMIT)
- Per-call timeout: Settings.SCRAPE_TIMEOUT_SECONDS, capped by the request Deadline
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

import requests

from scheme_savvy.config import Settings
from scheme_savvy.timeouts import Deadline
from scheme_savvy.utils import html_to_text

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "SchemeSavvy-Ingestor/1.0",
    "Content-Type": "application/json",
}

# Evaluated by Browserless inside the headless browser
SEARCH_FUNCTION = """
module.exports = async ({ page, context }) => {
    await page.goto(context.url, { waitUntil: 'domcontentloaded' });
    const links = await page.evaluate((limit) => {
        return Array.from(document.querySelectorAll('li.b_algo h2 a')).slice(0, limit).map(a => ({
            title: a.innerText,
            url: a.href
        }));
    }, context.limit);
    return links;
};
"""

RENDER_FUNCTION = """
module.exports = async ({ page, context }) => {
    await page.goto(context.url, { waitUntil: 'networkidle0' });
    const content = await page.evaluate(() => document.body.innerText);
    const title = await page.title();
    return { content, title };
};
"""


class ScrapeError(Exception):
    """The scraping service failed or returned an unusable payload."""


@dataclass
class SearchResult:
    title: str
    url: str


@dataclass
class RenderedPage:
    url: str
    title: str
    text: str


def _unwrap(payload: Any) -> Any:
    """Browserless wraps function return values as {"data": ..., "type": ...}."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


class BrowserlessClient:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.base_url = settings.BROWSERLESS_BASE_URL.rstrip("/")

    @property
    def configured(self) -> bool:
        return bool(self.settings.BROWSERLESS_TOKEN)

    def _post(self, endpoint: str, body: Dict[str, Any], deadline: Optional[Deadline]) -> requests.Response:
        timeout = self.settings.SCRAPE_TIMEOUT_SECONDS
        if deadline is not None:
            timeout = deadline.timeout_for(timeout)
        url = f"{self.base_url}/{endpoint}"
        return requests.post(
            url,
            params={"token": self.settings.BROWSERLESS_TOKEN},
            json=body,
            headers=HEADERS,
            timeout=timeout,
        )

    def search(self, query: str, deadline: Optional[Deadline] = None) -> List[SearchResult]:
        """Search the web for government pages matching query.

        Raises:
            ScrapeError: On transport failure or a non-success response.
        """
        search_url = f"{self.settings.SEARCH_ENGINE_URL}?q={quote_plus(query + ' site:gov.in')}"
        logger.info("Searching for %r via %s", query, search_url)
        try:
            resp = self._post(
                "function",
                {
                    "code": SEARCH_FUNCTION,
                    "context": {"url": search_url, "limit": self.settings.SEARCH_RESULTS_LIMIT},
                },
                deadline,
            )
        except requests.RequestException as exc:
            raise ScrapeError(f"search request failed: {exc}") from exc
        if not resp.ok:
            raise ScrapeError(f"search failed with HTTP {resp.status_code}")

        try:
            items = _unwrap(resp.json()) or []
        except ValueError as exc:
            raise ScrapeError("search returned invalid JSON") from exc
        if not isinstance(items, list):
            raise ScrapeError("search returned an unexpected payload")

        results: List[SearchResult] = []
        for item in items[: self.settings.SEARCH_RESULTS_LIMIT]:
            if isinstance(item, dict) and item.get("url"):
                results.append(SearchResult(title=str(item.get("title") or ""), url=str(item["url"])))
        logger.info("Search returned %d candidate links", len(results))
        return results

    def render(self, url: str, deadline: Optional[Deadline] = None) -> RenderedPage:
        """Render url in headless Chrome and return its title and visible text.

        Raises:
            ScrapeError: If both the function and the content endpoints fail.
        """
        try:
            resp = self._post("function", {"code": RENDER_FUNCTION, "context": {"url": url}}, deadline)
            if resp.ok:
                data = _unwrap(resp.json()) or {}
                content = data.get("content") if isinstance(data, dict) else None
                if content:
                    return RenderedPage(url=url, title=str(data.get("title") or ""), text=str(content))
            logger.warning("Browserless function render failed for %s (HTTP %s)", url, resp.status_code)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Browserless function render failed for %s: %s", url, exc)

        return self._render_html(url, deadline)

    def _render_html(self, url: str, deadline: Optional[Deadline]) -> RenderedPage:
        try:
            resp = self._post(
                "content",
                {"url": url, "waitFor": 3000, "rejectResourceTypes": ["image", "font", "media"]},
                deadline,
            )
        except requests.RequestException as exc:
            raise ScrapeError(f"render request failed: {exc}") from exc
        if not resp.ok:
            raise ScrapeError(f"Failed to render page (HTTP {resp.status_code})")
        title, text = html_to_text(resp.text)
        return RenderedPage(url=url, title=title, text=text)
