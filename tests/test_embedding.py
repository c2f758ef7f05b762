"""
Tests for the embedding generator and its hash fallback.
"""

import math
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from scheme_savvy.embedding import EmbeddingGenerator, hash_embedding
from scheme_savvy.timeouts import Deadline


def _norm(vec):
    return math.sqrt(sum(v * v for v in vec))


def _client_returning(vector):
    client = MagicMock()
    client.embeddings.create.return_value = SimpleNamespace(data=[SimpleNamespace(embedding=vector)])
    return client


class TestHashEmbedding:
    def test_is_deterministic(self):
        text = "PM Kisan provides income support to farmers"
        assert hash_embedding(text) == hash_embedding(text)

    def test_has_requested_dimension(self):
        assert len(hash_embedding("some text")) == 1536
        assert len(hash_embedding("some text", dim=64)) == 64

    def test_is_unit_norm(self):
        assert _norm(hash_embedding("housing scheme for rural families")) == pytest.approx(1.0)

    def test_is_case_insensitive(self):
        assert hash_embedding("Ayushman Bharat") == hash_embedding("ayushman bharat")

    def test_different_text_differs(self):
        assert hash_embedding("scholarship") != hash_embedding("pension")


class TestEmbeddingGenerator:
    @pytest.fixture
    def keyed_settings(self, test_settings):
        return test_settings.model_copy(update={"OPENAI_API_KEY": "sk-test"})

    def test_without_key_uses_hash_embedding(self, test_settings):
        factory = MagicMock()
        gen = EmbeddingGenerator(test_settings, client_factory=factory)
        assert gen.embed("text") == hash_embedding("text")
        factory.assert_not_called()

    def test_returns_provider_vector(self, keyed_settings):
        vector = [0.5] * 1536
        client = _client_returning(vector)
        gen = EmbeddingGenerator(keyed_settings, client_factory=lambda key, timeout: client)
        assert gen.embed("text") == vector

    def test_input_is_capped(self, keyed_settings):
        client = _client_returning([0.1] * 1536)
        gen = EmbeddingGenerator(keyed_settings, client_factory=lambda key, timeout: client)
        gen.embed("x" * 5000, max_chars=100)
        assert client.embeddings.create.call_args.kwargs["input"] == ["x" * 100]

    def test_wrong_dimension_falls_back(self, keyed_settings):
        client = _client_returning([0.1] * 768)
        gen = EmbeddingGenerator(keyed_settings, client_factory=lambda key, timeout: client)
        assert gen.embed("farmer support") == hash_embedding("farmer support")

    def test_provider_error_falls_back(self, keyed_settings):
        client = MagicMock()
        client.embeddings.create.side_effect = RuntimeError("503 upstream")
        gen = EmbeddingGenerator(keyed_settings, client_factory=lambda key, timeout: client)
        assert gen.embed("farmer support") == hash_embedding("farmer support")

    def test_expired_deadline_falls_back_without_calling_provider(self, keyed_settings):
        factory = MagicMock()
        gen = EmbeddingGenerator(keyed_settings, client_factory=factory)
        assert gen.embed("text", deadline=Deadline(0)) == hash_embedding("text")
        factory.assert_not_called()

    def test_timeout_is_capped_by_deadline(self, keyed_settings):
        seen = {}

        def factory(key, timeout):
            seen["timeout"] = timeout
            return _client_returning([0.0] * 1536)

        EmbeddingGenerator(keyed_settings, client_factory=factory).embed("text", deadline=Deadline(5))
        assert 0 < seen["timeout"] <= 5
