"""Keyword rules that classify text into welfare scheme categories.

Defines:
- Category: Literal type alias of the six welfare domains.
- CATEGORY_RULES: ordered (category, keywords) table; first match wins.
- detect_category: classify a user query (None on miss).
- detect_document_category: classify document content ('General' on miss).

Rules run in a fixed priority order, so text mentioning several domains is always
classified the same way. Matching is plain substring containment on lowercased text.
"""
from typing import Literal, Optional, Tuple

Category = Literal["Agriculture", "Education", "Housing", "Health", "Employment", "Women & Child"]

GENERAL = "General"

# Romanized Tamil/Hindi terms sit alongside English ones (velai = job, pengal = women)
CATEGORY_RULES: Tuple[Tuple[Category, Tuple[str, ...]], ...] = (
    ("Agriculture", ("agriculture", "farmer", "kisan")),
    ("Education", ("scholarship", "education", "student")),
    ("Housing", ("housing", "home", "awas")),
    ("Health", ("health", "medical", "ayushman", "maruthuvam")),
    ("Employment", ("job", "employment", "skill", "velai")),
    ("Women & Child", ("women", "girl", "mahila", "pengal")),
)

CATEGORIES = tuple(c for c, _ in CATEGORY_RULES)


def detect_category(text: str) -> Optional[Category]:
    """Classify a query into a welfare category.

    Args:
        text: Raw query text.

    Returns:
        Optional[Category]: First matching category, or None when no rule matches.
    """
    t = (text or "").lower()
    for category, keywords in CATEGORY_RULES:
        if any(k in t for k in keywords):
            return category
    return None


def detect_document_category(text: str) -> str:
    """Classify document content; unmatched documents are filed under 'General'."""
    return detect_category(text) or GENERAL
