"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Category(str, Enum):
    """Health categories ordered from least to most severe."""

    good = "good"
    moderate = "moderate"
    unhealthy_sensitive = "unhealthy_sensitive"
    unhealthy = "unhealthy"
    very_unhealthy = "very_unhealthy"
    hazardous = "hazardous"


@dataclass(frozen=True, slots=True)
class Reading:
    """A single pollutant reading; ``value`` is None when unavailable."""

    location: str
    value: Optional[float]
    observed_at: datetime

    @property
    def is_absent(self) -> bool:
        return self.value is None


@dataclass(frozen=True, slots=True)
class AlertState:
    """What was last successfully alerted for a location.

    Instances are replaced, never mutated, so both fields always change together.
    """

    location: str
    last_alerted_category: Optional[Category] = None
    last_alerted_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class AlertMessage:
    category: Category
    value: float
    advisory_text: str
    text: str
    composed_at: datetime


@dataclass(frozen=True, slots=True)
class DispatchResult:
    success: bool
    error_kind: Optional[str] = None
