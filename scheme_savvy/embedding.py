"""Embedding utilities wrapping OpenAI's embeddings API with a deterministic fallback.

Provides:
- hash_embedding: word-hash pseudo-embedding used whenever the remote call fails.
- EmbeddingGenerator: per-chunk embedding with input capping, dimension validation
  and fallback to hash_embedding.

The fallback is not semantically meaningful; it only guarantees that every stored
chunk carries a vector of settings.EMBEDDING_DIM floats.
"""
import logging
import math
import re
from typing import Callable, List, Optional

from openai import OpenAI

from scheme_savvy.config import Settings
from scheme_savvy.timeouts import Deadline

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, float], OpenAI]


def _word_hash(word: str) -> int:
    """32-bit signed rolling hash (h * 31 + code) over the word's characters."""
    h = 0
    for ch in word:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def hash_embedding(text: str, dim: int = 1536) -> List[float]:
    """Derive a deterministic, L2-normalized pseudo-embedding from text.

    Each whitespace-separated word is hashed into one of `dim` buckets; the bucket is
    updated as (value + 1) / (position + 1), so later words weigh less.

    Args:
        text: Input text.
        dim: Output dimension.

    Returns:
        List[float]: Vector of length dim; unit norm unless every bucket is zero.
    """
    vec = [0.0] * dim
    words = re.split(r"\s+", text.lower())
    for i, word in enumerate(words):
        idx = abs(_word_hash(word)) % dim
        vec[idx] = (vec[idx] + 1.0) / (i + 1)

    magnitude = math.sqrt(sum(v * v for v in vec))
    if magnitude > 0:
        vec = [v / magnitude for v in vec]
    return vec


def _openai_client(api_key: str, timeout: float) -> OpenAI:
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=0)


class EmbeddingGenerator:
    """Embed chunk text through the configured provider, falling back to hash_embedding.

    Args:
        settings: Application settings (key, model, dimension, input cap, timeout).
        client_factory: Optional callable (api_key, timeout) -> OpenAI, for tests.
    """

    def __init__(self, settings: Settings, client_factory: Optional[ClientFactory] = None):
        self.settings = settings
        self.dim = settings.EMBEDDING_DIM
        self._client_factory = client_factory or _openai_client

    def embed(self, text: str, deadline: Optional[Deadline] = None, max_chars: Optional[int] = None) -> List[float]:
        """Return a settings.EMBEDDING_DIM vector for text.

        Args:
            text: Chunk text; only the first max_chars characters are submitted.
            deadline: Optional request deadline capping the call timeout.
            max_chars: Input cap; defaults to settings.EMBEDDING_INPUT_CHARS.

        Returns:
            List[float]: Provider embedding when valid, otherwise hash_embedding(text).
        """
        cap = max_chars or self.settings.EMBEDDING_INPUT_CHARS
        snippet = text[:cap]

        if not self.settings.OPENAI_API_KEY:
            logger.debug("No embedding key configured; using hash embedding")
            return hash_embedding(text, self.dim)

        try:
            timeout = self.settings.EMBEDDING_TIMEOUT_SECONDS
            if deadline is not None:
                timeout = deadline.timeout_for(timeout)
            client = self._client_factory(self.settings.OPENAI_API_KEY, timeout)
            resp = client.embeddings.create(model=self.settings.OPENAI_EMBEDDING_MODEL, input=[snippet])
            values = list(resp.data[0].embedding)
        except Exception as exc:
            logger.warning("Embedding API failed (%s); using hash embedding", exc)
            return hash_embedding(text, self.dim)

        if len(values) != self.dim:
            logger.warning(
                "Embedding API returned %d dims (expected %d); using hash embedding", len(values), self.dim
            )
            return hash_embedding(text, self.dim)
        return [float(v) for v in values]
