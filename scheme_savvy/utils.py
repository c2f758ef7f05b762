"""Utility helpers for URL handling, HTML extraction, content cleaning and chunking.

This module provides:
- content_hash: SHA-256 fingerprint of (source + cleaned content prefix) used for dedup
- normalize_url: normalization to make candidate URLs consistent for deduplication
- is_allowed_domain: hostname suffix allow-list for government sources
- title_from_url: readable fallback title derived from a URL path
- html_to_text: HTML to (title, visible text) extraction using BeautifulSoup
- clean_content: removal of navigation/UI boilerplate lines from extracted text
- chunk_content: paragraph-aligned chunking bounded by a maximum size
"""
import hashlib
import re
from typing import Iterable, List, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

# Lines (trimmed, lowercased) equal to one of these are navigation/UI noise
BOILERPLATE_EXACT = frozenset(
    {
        "home", "login", "register", "search", "menu",
        "skip to main content", "navigation", "sidebar",
        "submit", "cancel", "close",
        "facebook", "twitter", "youtube", "instagram",
        "terms of use", "privacy policy", "disclaimer",
        "help", "contact us", "feedback", "sitemap",
        "screen reader access", "font size", "theme",
        "language", "english", "hindi", "tamil",
    }
)
BOILERPLATE_PREFIXES = ("copyright", "all rights reserved")
BOILERPLATE_SUBSTRINGS = ("isl chatbot", "translation feedback", "cpgrams")
LOADING_LINE = re.compile(r"^loading\.+$")
NUMERIC_LINE = re.compile(r"^[0-9]+$")
PARAGRAPH_BREAK = re.compile(r"\n\n+")


def content_hash(source: str, cleaned_text: str, prefix_chars: int = 500) -> str:
    """Fingerprint a source for deduplication.

    Args:
        source: Source identifier (URL or filename).
        cleaned_text: Content after clean_content.
        prefix_chars: Number of leading content characters included in the digest.

    Returns:
        str: 64-char SHA-256 hex digest of source + content prefix.
    """
    payload = f"{source}{cleaned_text[:prefix_chars]}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def normalize_url(u: str) -> str:
    """Normalize URLs by removing fragments and trailing slashes.

    Args:
        u: Raw URL.

    Returns:
        str: Normalized URL suitable for deduplicating search candidates.
    """
    u = re.sub(r"#.*$", "", u.strip())
    if len(u) > 1 and u.endswith("/"):
        u = u[:-1]
    return u


def is_allowed_domain(url: str, allowed_domains: Iterable[str]) -> bool:
    """Check whether a URL's hostname ends with an allow-listed suffix.

    The suffix check runs on the parsed hostname only, so a government domain
    appearing in the path or query of another host is rejected.

    Args:
        url: Candidate URL.
        allowed_domains: Hostname suffixes such as "pmkisan.gov.in" or ".gov.in".

    Returns:
        bool: True if allowed; False on parse failure or no match.
    """
    try:
        hostname = urlparse(url).hostname
    except (ValueError, AttributeError):
        return False
    if not hostname:
        return False
    hostname = hostname.lower()
    return any(hostname.endswith(d.lower()) for d in allowed_domains if d)


def title_from_url(url: str) -> str:
    """Derive a readable title from the last path segment of a URL.

    "https://x.gov.in/schemes/pm-kisan_details.html" -> "Pm Kisan Details".
    """
    try:
        parts = [p for p in urlparse(url).path.split("/") if p]
    except ValueError:
        parts = []
    if parts:
        name = re.sub(r"\.[^.]+$", "", parts[-1].replace("-", " ").replace("_", " "))
        words = [w[:1].upper() + w[1:] for w in name.split(" ")]
        title = " ".join(words).strip()
        if title:
            return title
    return "Government Document"


def html_to_text(html: str) -> Tuple[str, str]:
    """Convert rendered HTML into (title, visible text).

    Headings and paragraph-like elements become separate lines. Script, style and
    page chrome (nav/header/footer) are removed. If no structure is detected, falls
    back to the whole page text.

    Args:
        html: Raw HTML string.

    Returns:
        Tuple[str, str]: Page title (may be empty) and newline-separated text.
    """
    soup = BeautifulSoup(html, "lxml")

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()[:500]

    for tag in soup(["script", "style", "noscript", "nav", "header", "footer"]):
        tag.decompose()

    lines: List[str] = []
    root = soup.body if soup.body else soup
    for el in root.descendants:
        if isinstance(el, Tag) and el.name in ["h1", "h2", "h3", "h4", "p", "li", "td"]:
            txt = re.sub(r"\s+", " ", el.get_text(" ", strip=True)).strip()
            if txt:
                lines.append(txt)

    if not lines:
        text = root.get_text("\n", strip=True)
        return title, text
    return title, "\n".join(lines)


def _is_boilerplate(line: str) -> bool:
    if line in BOILERPLATE_EXACT or LOADING_LINE.match(line):
        return True
    if line.startswith(BOILERPLATE_PREFIXES):
        return True
    return any(s in line for s in BOILERPLATE_SUBSTRINGS)


def clean_content(text: str) -> str:
    """Drop navigation/UI boilerplate lines from extracted text.

    A line is removed when it is blank, matches the boilerplate set, or is shorter
    than 3 characters without being purely numeric. Kept lines are returned
    unchanged and in order, so cleaning is idempotent.

    Args:
        text: Raw text extracted from a PDF or a rendered page.

    Returns:
        str: Newline-joined surviving lines.
    """
    if not text:
        return ""
    kept: List[str] = []
    for line in text.split("\n"):
        probe = line.strip().lower()
        if not probe:
            continue
        if _is_boilerplate(probe):
            continue
        if len(probe) < 3 and not NUMERIC_LINE.match(probe):
            continue
        kept.append(line)
    return "\n".join(kept)


def _split_oversized(paragraph: str, max_chunk_size: int) -> List[str]:
    """Split a paragraph longer than the limit on line boundaries.

    A single line longer than the limit is kept whole.
    """
    pieces: List[str] = []
    buf = ""
    for line in paragraph.split("\n"):
        if buf and len(buf) + 1 + len(line) > max_chunk_size:
            pieces.append(buf)
            buf = line
        else:
            buf = f"{buf}\n{line}" if buf else line
    if buf:
        pieces.append(buf)
    return pieces


def chunk_content(text: str, max_chunk_size: int = 1000) -> List[str]:
    """Split text into paragraph-aligned chunks of at most max_chunk_size characters.

    Paragraphs (blank-line separated) are accumulated greedily; the buffer is
    flushed when the next paragraph would push it over the limit. Paragraphs that
    alone exceed the limit are first split on line boundaries.

    Args:
        text: Cleaned input text.
        max_chunk_size: Upper bound on chunk length in characters.

    Returns:
        List[str]: Ordered chunks; never empty for non-empty input.
    """
    if not text:
        return []

    units: List[str] = []
    for para in PARAGRAPH_BREAK.split(text):
        if len(para) > max_chunk_size:
            units.extend(_split_oversized(para, max_chunk_size))
        else:
            units.append(para)

    chunks: List[str] = []
    current = ""
    for unit in units:
        if current and len(current) + len(unit) > max_chunk_size:
            chunks.append(current.strip())
            current = ""
        current += unit + "\n\n"

    if current.strip():
        chunks.append(current.strip())

    return chunks if chunks else [text[:max_chunk_size]]
