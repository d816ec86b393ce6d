"""Keyword-rule chunk classifier.

Rules are checked in order against the lowercased ``title + " " + content``;
the first rule with a matching keyword decides the category.  Order
matters: a passage about repairing a rented device is filed under
``rental`` because the rental rule comes first.
"""

from __future__ import annotations

from collections.abc import Sequence

DEFAULT_CATEGORY = "uncategorized"

CategoryRule = tuple[str, tuple[str, ...]]

DEFAULT_CATEGORY_RULES: tuple[CategoryRule, ...] = (
    ("rental", ("대여", "rental")),
    ("repair", ("수리", "repair")),
    ("custom_fabrication", ("맞춤", "제작", "custom")),
    ("assessment", ("평가", "assessment")),
    ("budget", ("예산", "budget")),
    ("staffing", ("인력", "인원", "staff")),
    ("reporting", ("보고", "report")),
    ("consultation", ("상담", "consult")),
    ("experience", ("체험", "experience")),
    ("education", ("교육", "education")),
    ("promotion", ("홍보", "promotion")),
)


def classify_category(
    title: str,
    content: str,
    rules: Sequence[CategoryRule] = DEFAULT_CATEGORY_RULES,
) -> str:
    """Return the category of the first rule whose keyword occurs in the text."""
    text = f"{title} {content}".lower()
    for category, keywords in rules:
        if any(keyword.lower() in text for keyword in keywords):
            return category
    return DEFAULT_CATEGORY
