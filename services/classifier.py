"""Mapping of AQI values onto health categories."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from models.records import Category
from services.errors import (
    CategoryTableError,
    ClassificationError,
    ClassificationErrorKind,
)


@dataclass(frozen=True)
class CategoryBand:
    """One row of the boundary table: ``lower <= value < upper``.

    ``upper`` is None for the open-ended top band.
    """

    category: Category
    lower: float
    upper: Optional[float]
    label: str
    advisory: str

    def contains(self, value: float) -> bool:
        if value < self.lower:
            return False
        return self.upper is None or value < self.upper


# Advisories follow the EPA PM2.5 cautionary statements and must fit a
# 160-character message after the longest prefix of their band.
DEFAULT_BANDS: tuple[CategoryBand, ...] = (
    CategoryBand(
        Category.good,
        0,
        50,
        "Good",
        "Air quality is satisfactory, and air pollution poses little or no risk.",
    ),
    CategoryBand(
        Category.moderate,
        50,
        100,
        "Moderate",
        "Unusually sensitive people should consider reducing prolonged or heavy exertion.",
    ),
    CategoryBand(
        Category.unhealthy_sensitive,
        100,
        150,
        "Unhealthy for Sensitive Groups",
        "Sensitive groups should reduce prolonged or heavy exertion.",
    ),
    CategoryBand(
        Category.unhealthy,
        150,
        200,
        "Unhealthy",
        "Everyone should reduce prolonged or heavy exertion; sensitive groups should avoid it.",
    ),
    CategoryBand(
        Category.very_unhealthy,
        200,
        300,
        "Very Unhealthy",
        "Health alert: everyone should avoid prolonged or heavy exertion.",
    ),
    CategoryBand(
        Category.hazardous,
        300,
        None,
        "Hazardous",
        "Health warning: everyone should avoid all physical activity outdoors.",
    ),
)


def validate_bands(bands: Sequence[CategoryBand]) -> None:
    """Ensure the bands cover [0, inf) contiguously, in order, without overlap."""

    if not bands:
        raise CategoryTableError("Category table is empty.")
    if bands[0].lower != 0:
        raise CategoryTableError(
            f"First band {bands[0].category.value!r} must start at 0, not {bands[0].lower}."
        )

    seen: set[Category] = set()
    for index, band in enumerate(bands):
        if band.category in seen:
            raise CategoryTableError(f"Category {band.category.value!r} appears twice.")
        seen.add(band.category)

        is_last = index == len(bands) - 1
        if band.upper is None:
            if not is_last:
                raise CategoryTableError(
                    f"Only the last band may be open-ended; {band.category.value!r} is not last."
                )
            continue
        if band.upper <= band.lower:
            raise CategoryTableError(
                f"Band {band.category.value!r} has upper bound {band.upper} <= lower bound {band.lower}."
            )
        if is_last:
            raise CategoryTableError(
                f"Last band {band.category.value!r} must be open-ended, not capped at {band.upper}."
            )
        following = bands[index + 1]
        if following.lower != band.upper:
            kind = "gap" if following.lower > band.upper else "overlap"
            raise CategoryTableError(
                f"{kind} between {band.category.value!r} (upper {band.upper}) "
                f"and {following.category.value!r} (lower {following.lower})."
            )


class CategoryClassifier:
    """Pure boundary lookup over a validated category table."""

    def __init__(self, bands: Sequence[CategoryBand] = DEFAULT_BANDS) -> None:
        validate_bands(bands)
        self._bands = tuple(bands)
        self._by_category: Dict[Category, CategoryBand] = {
            band.category: band for band in self._bands
        }

    def classify(self, value: Optional[float]) -> Category:
        if value is None or (isinstance(value, float) and math.isnan(value)):
            raise ClassificationError(ClassificationErrorKind.absent, value)
        if value < 0:
            raise ClassificationError(ClassificationErrorKind.negative, value)

        for band in self._bands:
            if band.contains(value):
                return band.category
        # Unreachable for a validated table.
        raise CategoryTableError(f"No band contains value {value!r}.")

    def band(self, category: Category) -> CategoryBand:
        try:
            return self._by_category[category]
        except KeyError as exc:
            raise CategoryTableError(
                f"Category {category.value!r} is not in the table."
            ) from exc

    def label(self, category: Category) -> str:
        return self.band(category).label

    def advisory(self, category: Category) -> str:
        return self.band(category).advisory
