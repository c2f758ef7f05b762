"""
Shared test fixtures and configuration for the test suite.

Provides: in-memory SQLite database session, test settings, document store,
fake scraper and fake generation clients.
Dependencies: pytest, sqlalchemy
"""

import os

# Settings are read at import time; pin them before any scheme_savvy import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ["BROWSERLESS_TOKEN"] = ""
os.environ["GROQ_API_KEY"] = ""
os.environ["GROQ_API_KEY_2"] = ""
os.environ["GROQ_API_KEY_3"] = ""

from types import SimpleNamespace
from typing import List
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scheme_savvy.config import Settings
from scheme_savvy.db import init_db
from scheme_savvy.embedding import EmbeddingGenerator
from scheme_savvy.ingestion.indexer import Indexer
from scheme_savvy.ingestion.scraper import RenderedPage, SearchResult
from scheme_savvy.store import DocumentStore

FARMER_PAGE = "\n".join(
    [
        "Home",
        "Skip to main content",
        "Pradhan Mantri Kisan Samman Nidhi",
        "PM-KISAN is a central sector scheme providing income support to all landholding farmer families.",
        "Eligible farmers receive Rs 6000 per year in three equal instalments directly into bank accounts.",
        "Agriculture departments of the states identify eligible beneficiaries for the scheme.",
        "Copyright 2024 Government of India",
    ]
)


@pytest.fixture
def farmer_page() -> str:
    return FARMER_PAGE


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across connections, with tables created."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with no external credentials; embeddings use the hash fallback."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        OPENAI_API_KEY="",
        GROQ_API_KEY="",
        GROQ_API_KEY_2="",
        GROQ_API_KEY_3="",
        BROWSERLESS_TOKEN="",
    )


@pytest.fixture
def store(db_session) -> DocumentStore:
    return DocumentStore(db_session)


@pytest.fixture
def indexer(store, test_settings) -> Indexer:
    return Indexer(store, EmbeddingGenerator(test_settings), test_settings)


@pytest.fixture
def fake_scraper():
    """
    Mock BrowserlessClient that finds one government page and one foreign page.

    Returns:
        MagicMock: configured=True, search() -> 2 results, render() -> FARMER_PAGE
    """
    scraper = MagicMock()
    scraper.configured = True
    scraper.search.return_value = [
        SearchResult(title="PM-KISAN", url="https://pmkisan.gov.in/schemes/"),
        SearchResult(title="Blog", url="https://example.com/pmkisan.gov.in"),
    ]
    scraper.render.side_effect = lambda url, deadline=None: RenderedPage(
        url=url, title="PM-KISAN Scheme", text=FARMER_PAGE
    )
    return scraper


def completion(text: str):
    """Shape of an OpenAI chat completion response."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class FakeChatClient:
    """Stands in for an OpenAI client; records every completion call.

    Each entry of outcomes is either an exception to raise or a string to return.
    """

    def __init__(self, outcomes: List):
        self.outcomes = list(outcomes)
        self.calls: List[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return completion(outcome)


@pytest.fixture
def fake_chat_client():
    return FakeChatClient
