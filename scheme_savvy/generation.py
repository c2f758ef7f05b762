"""Answer generation through Groq's OpenAI-compatible chat completions API.

Provides:
- build_context: Cleaned retrieved chunks joined into one context block, capped in size
- build_system_prompt: The assistant persona, per-language output template and disclaimer,
  and either the context or the general-knowledge fallback instruction
- source_label: The user-facing provenance label for a response
- GenerationClient.generate: Completion with failover across models (outer) and API keys
  (inner); the first success wins
- exhausted_message: User-facing text for a generation that produced nothing

Configuration is read from scheme_savvy.config.Settings (GROQ_* keys/models,
GENERATION_TEMPERATURE, MAX_OUTPUT_TOKENS, HISTORY_TURNS, CONTEXT_CHAR_BUDGET,
GENERATION_TIMEOUT_SECONDS).
"""
import logging
from typing import Callable, Dict, List, Optional, Sequence

import openai
from openai import OpenAI

from scheme_savvy.config import Settings
from scheme_savvy.obs import span
from scheme_savvy.retrieval import RetrievedChunk
from scheme_savvy.timeouts import Deadline, DeadlineExceeded
from scheme_savvy.utils import clean_content

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, str, float], OpenAI]

CONTEXT_SEPARATOR = "\n\n---\n\n"
TRUNCATION_MARKER = "...[truncated]"
ERROR_SOURCE_LABEL = "System Error (Response could not be generated)"
MAX_ERROR_DETAIL_CHARS = 200

LANGUAGE_INSTRUCTIONS = {
    "english": "- Output Language: English (Formal)",
    "tamil": "- Output Language: Tamil (தமிழ்).",
    "hindi": "- Output Language: Hindi (हिंदी). Use clear Devanagari script.",
}

OUTPUT_FORMATS = {
    "english": (
        "Scheme Name:\n"
        "Purpose:\n"
        "Eligibility:\n"
        "Benefits:\n"
        "How to Apply:\n"
        'Official Government Source: (If known, else say "Refer official portal")'
    ),
    "tamil": (
        "திட்டத்தின் பெயர்:\n"
        "நோக்கம்:\n"
        "தகுதி:\n"
        "நன்மைகள்:\n"
        "விண்ணப்பிக்கும் முறை:\n"
        'அதிகாரப்பூர்வ அரசு ஆதாரம்: (தெரிந்தால், இல்லையெனில் "அதிகாரப்பூர்வ இணையதளத்தைப் பார்க்கவும்" என்று கூறவும்)'
    ),
    "hindi": (
        "योजना का नाम:\n"
        "उद्देश्य:\n"
        "पात्रता:\n"
        "लाभ:\n"
        "आवेदन कैसे करें:\n"
        'आधिकारिक सरकारी स्रोत: (यदि ज्ञात हो, अन्यथा कहें "आधिकारिक पोर्टल देखें")'
    ),
}

DISCLAIMERS = {
    "english": '"Information is based on general knowledge. Please verify with official documents."',
    "tamil": '"தகவல்கள் பொது அறிவு அடிப்படையிலானவை. தயவுசெய்து அதிகாரப்பூர்வ ஆவணங்களை சரிபார்க்கவும்."',
    "hindi": '"जानकारी सामान्य ज्ञान पर आधारित है। कृपया आधिकारिक दस्तावेजों से सत्यापित करें।"',
}

# (grounded, ungrounded) per language
SOURCE_LABELS = {
    "english": (
        "Based on verified government documents",
        "No relevant verified government documents found",
    ),
    "tamil": (
        "சரிபார்க்கப்பட்ட அரசு ஆவணங்களின் அடிப்படையில்",
        "சம்பந்தப்பட்ட சரிபார்க்கப்பட்ட அரசு ஆவணங்கள் எதுவும் இல்லை",
    ),
    "hindi": (
        "सत्यापित सरकारी दस्तावेजों के आधार पर",
        "कोई प्रासंगिक सत्यापित सरकारी दस्तावेज नहीं मिले",
    ),
}

FALLBACK_INSTRUCTION = (
    "CONTEXT: NO DOCUMENTED KNOWLEDGE FOUND.\n"
    'IMPORTANT: You are now in "GENERAL KNOWLEDGE FALLBACK MODE".\n'
    "- You MAY use your internal training data to answer.\n"
    '- You MUST qualify your answer saying "General Information (Not from verified PDF)".'
)

RATE_LIMIT_MARKERS = ("429", "rate limit", "quota", "overloaded")


class MissingCredentialsError(Exception):
    """No generation API key is configured."""


class GenerationExhaustedError(Exception):
    """Every (model, key) attempt failed; carries the last underlying error."""

    def __init__(self, last_error: Optional[BaseException]):
        super().__init__(str(last_error) if last_error else "Unknown error")
        self.last_error = last_error


def _language(language: Optional[str]) -> str:
    return language if language in LANGUAGE_INSTRUCTIONS else "english"


def build_context(results: Sequence[RetrievedChunk], budget: int = 25000) -> str:
    """Join cleaned chunk contents into one context block.

    Args:
        results: Retrieved chunks, in retrieval order.
        budget: Maximum characters kept before the truncation marker is appended.

    Returns:
        str: Context text; at most budget characters plus TRUNCATION_MARKER.
    """
    raw = CONTEXT_SEPARATOR.join(clean_content(r.content) for r in results)
    if len(raw) > budget:
        return raw[:budget] + TRUNCATION_MARKER
    return raw


def build_system_prompt(context: str, has_context: bool, language: str = "english") -> str:
    """Compose the system prompt for one chat turn.

    Args:
        context: Output of build_context (ignored when has_context is False).
        has_context: Whether grounded context passed the relevance gate.
        language: 'english', 'tamil' or 'hindi'; unknown values use English.

    Returns:
        str: Full system prompt.
    """
    lang = _language(language)
    context_instruction = f"CONTEXT:\n{context}" if has_context else FALLBACK_INSTRUCTION
    return (
        "You are “Scheme Savvy”, a Government Scheme Assistant.\n\n"
        "YOUR CORE RULE:\n"
        "1. IF context is present, use it strictly.\n"
        "2. IF context is empty, use your general knowledge to help the user, but explicitly state it is general info.\n\n"
        "DATA SOURCE POLICY:\n"
        "Prioritize: india.gov.in, pmindia.gov.in, scholarships.gov.in.\n\n"
        "BEHAVIOR RULES:\n"
        "1. Do NOT hallucinate.\n"
        f"2. {LANGUAGE_INSTRUCTIONS[lang]}\n\n"
        "OUTPUT FORMAT (MANDATORY):\n"
        f"{OUTPUT_FORMATS[lang]}\n\n"
        "DISCLAIMER (MANDATORY – ALWAYS ADD):\n"
        f"{DISCLAIMERS[lang]}\n\n"
        f"{context_instruction}"
    )


def source_label(language: str, grounded: bool) -> str:
    grounded_label, ungrounded_label = SOURCE_LABELS[_language(language)]
    return grounded_label if grounded else ungrounded_label


def is_rate_limit_error(exc: BaseException) -> bool:
    """True for provider throttling/overload errors."""
    if isinstance(exc, openai.RateLimitError):
        return True
    if getattr(exc, "status_code", None) == 429:
        return True
    msg = str(exc).lower()
    return any(m in msg for m in RATE_LIMIT_MARKERS)


def exhausted_message(error: Optional[BaseException]) -> str:
    """User-facing text for a failed generation.

    Args:
        error: MissingCredentialsError, GenerationExhaustedError or any other error.

    Returns:
        str: Rate-limit, configuration or internal-error message. Internal errors carry
        a short detail suffix only.
    """
    last = error.last_error if isinstance(error, GenerationExhaustedError) else error
    if isinstance(last, MissingCredentialsError) or "GROQ_API_KEY" in str(last or ""):
        return "System Configuration Error: GROQ_API_KEY is missing."
    if last is not None and is_rate_limit_error(last):
        return "Rate Limit Exceeded: All available keys and models are currently busy. Please try again in 1 hour."
    detail = str(last) if last is not None else "Unknown error"
    if len(detail) > MAX_ERROR_DETAIL_CHARS:
        detail = detail[:MAX_ERROR_DETAIL_CHARS] + "..."
    return f"I encountered an internal error while generating the response. (Details: {detail})"


def _groq_client(api_key: str, base_url: str, timeout: float) -> OpenAI:
    return OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)


class GenerationClient:
    """Chat completion with model × key failover.

    Args:
        settings: Application settings.
        client_factory: Optional callable (api_key, base_url, timeout) -> OpenAI, for tests.
    """

    def __init__(self, settings: Settings, client_factory: Optional[ClientFactory] = None):
        self.settings = settings
        self._client_factory = client_factory or _groq_client

    def _messages(self, system_prompt: str, message: str, history: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
        turns = self.settings.HISTORY_TURNS
        recent = list(history)[-turns:] if turns > 0 else []
        return (
            [{"role": "system", "content": system_prompt}]
            + [{"role": h["role"], "content": h["content"]} for h in recent]
            + [{"role": "user", "content": message}]
        )

    def _complete(self, model: str, key: str, messages: List[Dict[str, str]], deadline: Optional[Deadline]) -> str:
        timeout = self.settings.GENERATION_TIMEOUT_SECONDS
        if deadline is not None:
            timeout = deadline.timeout_for(timeout)
        client = self._client_factory(key, self.settings.GROQ_BASE_URL, timeout)
        resp = client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=self.settings.GENERATION_TEMPERATURE,
            max_tokens=self.settings.MAX_OUTPUT_TOKENS,
        )
        content = (resp.choices[0].message.content or "").strip()
        if not content:
            raise ValueError("empty completion")
        return content

    def generate(
        self,
        system_prompt: str,
        message: str,
        history: Sequence[Dict[str, str]] = (),
        deadline: Optional[Deadline] = None,
    ) -> str:
        """Generate a reply, trying each model with each key until one succeeds.

        Args:
            system_prompt: Output of build_system_prompt.
            message: Current user message.
            history: Prior turns as {"role", "content"} dicts; only the most recent
                settings.HISTORY_TURNS are sent.
            deadline: Optional request deadline capping each attempt's timeout.

        Returns:
            str: The first non-empty completion.

        Raises:
            MissingCredentialsError: If no API key is configured.
            GenerationExhaustedError: If every attempt failed or the deadline ran out.
        """
        keys = self.settings.generation_api_keys
        if not keys:
            raise MissingCredentialsError("GROQ_API_KEY is not set")

        messages = self._messages(system_prompt, message, history)
        last_error: Optional[BaseException] = None
        with span("generate", {"models": len(self.settings.generation_models), "keys": len(keys)}):
            for model in self.settings.generation_models:
                for key in keys:
                    logger.info("Attempting generation with model=%s key=...%s", model, key[-4:])
                    try:
                        content = self._complete(model, key, messages, deadline)
                    except DeadlineExceeded as exc:
                        logger.warning("Generation deadline exceeded before model=%s key=...%s", model, key[-4:])
                        raise GenerationExhaustedError(exc) from exc
                    except Exception as exc:
                        kind = "rate limited" if is_rate_limit_error(exc) else "failed"
                        logger.warning("Generation %s (model=%s key=...%s): %s", kind, model, key[-4:], exc)
                        last_error = exc
                        continue
                    if model != self.settings.GROQ_MODEL:
                        logger.info("Fallback model %s succeeded", model)
                    return content

        logger.error("All generation keys and models exhausted")
        raise GenerationExhaustedError(last_error)
