"""
Tests for ChatService orchestration.

Uses the real store/retriever over SQLite with a mocked scraper and a mocked
generation client.
"""

import time
from unittest.mock import MagicMock

import pytest

from scheme_savvy.chat import APOLOGY, ChatService
from scheme_savvy.generation import ERROR_SOURCE_LABEL, GenerationExhaustedError, MissingCredentialsError
from scheme_savvy.ingestion.auto_ingest import AutoIngestor
from scheme_savvy.ingestion.scraper import ScrapeError, SearchResult
from scheme_savvy.retrieval import Retriever


@pytest.fixture
def generator():
    gen = MagicMock()
    gen.generate.return_value = "Scheme Name: PM-KISAN"
    return gen


@pytest.fixture
def service(store, test_settings, indexer, fake_scraper, generator):
    ingestor = AutoIngestor(indexer, fake_scraper, test_settings)
    return ChatService(store, test_settings, Retriever(store, test_settings), ingestor, generator)


class TestChatService:
    def test_auto_ingests_on_miss_and_answers_with_sources(self, service, generator, fake_scraper):
        result = service.answer("list agriculture schemes for farmers")

        fake_scraper.search.assert_called_once()
        assert result["content"] == "Scheme Name: PM-KISAN"
        assert result["newKnowledgeIndexed"] is True
        assert result["sourceLabel"] == "Based on verified government documents"
        assert result["sources"] == [
            {"name": "PM-KISAN Scheme", "type": "web", "url": "https://pmkisan.gov.in/schemes"}
        ]
        prompt = generator.generate.call_args.args[0]
        assert "CONTEXT:\n" in prompt
        assert "farmers receive Rs 6000" in prompt

    def test_local_hit_skips_ingestion(self, service, indexer, fake_scraper, farmer_page):
        indexer.index_content(title="Guide", url="file://guide", content=farmer_page, domain="local-upload", source_type="pdf")
        result = service.answer("farmers income support")
        fake_scraper.search.assert_not_called()
        assert result["newKnowledgeIndexed"] is False
        assert result["sources"][0]["type"] == "document"

    def test_short_query_does_not_ingest(self, service, fake_scraper):
        result = service.answer("hi!!")
        fake_scraper.search.assert_not_called()
        assert result["sources"] == []
        assert result["sourceLabel"] == "No relevant verified government documents found"

    def test_ungrounded_answer_uses_fallback_prompt(self, service, generator, fake_scraper):
        fake_scraper.search.return_value = []
        result = service.answer("passport renewal process")
        assert result["sources"] == []
        assert result["newKnowledgeIndexed"] is False
        assert "GENERAL KNOWLEDGE FALLBACK MODE" in generator.generate.call_args.args[0]

    def test_history_and_language_are_forwarded(self, service, generator):
        history = [{"role": "user", "content": "vanakkam"}]
        result = service.answer("hi!!", history, "tamil")
        assert generator.generate.call_args.args[2] == history
        assert "Tamil" in generator.generate.call_args.args[0]
        assert result["sourceLabel"] == "சம்பந்தப்பட்ட சரிபார்க்கப்பட்ட அரசு ஆவணங்கள் எதுவும் இல்லை"

    def test_exhausted_generation_reports_rate_limit(self, service, generator):
        generator.generate.side_effect = GenerationExhaustedError(RuntimeError("429 rate limit"))
        result = service.answer("hi!!")
        assert result["content"].startswith("Rate Limit Exceeded")
        assert result["sourceLabel"] == ERROR_SOURCE_LABEL

    def test_missing_key_reports_configuration_error(self, service, generator):
        generator.generate.side_effect = MissingCredentialsError("GROQ_API_KEY is not set")
        result = service.answer("hi!!")
        assert result["content"] == "System Configuration Error: GROQ_API_KEY is missing."
        assert result["sourceLabel"] == ERROR_SOURCE_LABEL

    def test_unexpected_error_becomes_apology(self, store, test_settings, generator):
        retriever = MagicMock()
        retriever.attempt_retrieve.side_effect = RuntimeError("database down")
        service = ChatService(store, test_settings, retriever, MagicMock(), generator)
        result = service.answer("list agriculture schemes")
        assert result == {
            "content": APOLOGY,
            "sources": [],
            "sourceLabel": "Error occurred",
            "newKnowledgeIndexed": False,
        }

    def test_slow_scraping_leaves_time_for_generation(self, store, test_settings, indexer, fake_scraper, generator):
        settings = test_settings.model_copy(update={"CHAT_DEADLINE_SECONDS": 5.0, "AUTO_INGEST_BUDGET_SECONDS": 0.2})
        fake_scraper.search.return_value = [
            SearchResult(title=f"Portal {i}", url=f"https://portal{i}.gov.in/rules") for i in range(3)
        ]

        def slow_render(url, deadline=None):
            time.sleep(deadline.timeout_for(settings.SCRAPE_TIMEOUT_SECONDS))
            raise ScrapeError("render timed out")

        fake_scraper.render.side_effect = slow_render
        ingestor = AutoIngestor(indexer, fake_scraper, settings)
        service = ChatService(store, settings, Retriever(store, settings), ingestor, generator)

        result = service.answer("tell me about passport renewal rules")

        assert fake_scraper.render.call_count == 1
        assert result["content"] == "Scheme Name: PM-KISAN"
        assert result["sources"] == []
        assert result["newKnowledgeIndexed"] is False
        assert not generator.generate.call_args.kwargs["deadline"].expired()
