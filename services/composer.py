"""Builds bounded-length alert messages from the category table."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from models.records import AlertMessage, Category
from services.classifier import CategoryClassifier

ELLIPSIS = "..."
DEFAULT_CHAR_LIMIT = 160

_TEMPLATE = "Alert: The current PM2.5 AQI is {value} which is considered '{label}'. "


def format_value(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def truncate_at_word(text: str, budget: int) -> str:
    """Cut ``text`` to at most ``budget`` characters without splitting a word.

    Returns an empty string when not even the first word fits.
    """

    if len(text) <= budget:
        return text
    if budget <= 0:
        return ""
    cut = text[:budget]
    if text[budget] != " ":
        head, sep, _ = cut.rpartition(" ")
        cut = head if sep else ""
    return cut.rstrip(" ,;:.")


class MessageComposer:
    def __init__(
        self,
        classifier: CategoryClassifier,
        char_limit: int = DEFAULT_CHAR_LIMIT,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if char_limit <= 0:
            raise ValueError("char_limit must be positive.")
        self.classifier = classifier
        self.char_limit = char_limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def compose(self, value: float, category: Category) -> AlertMessage:
        prefix = _TEMPLATE.format(
            value=format_value(value), label=self.classifier.label(category)
        )
        advisory = self.classifier.advisory(category)

        if len(prefix) + len(advisory) > self.char_limit:
            budget = self.char_limit - len(prefix) - len(ELLIPSIS)
            advisory = truncate_at_word(advisory, budget) + ELLIPSIS

        return AlertMessage(
            category=category,
            value=value,
            advisory_text=advisory,
            text=prefix + advisory,
            composed_at=self._clock(),
        )
