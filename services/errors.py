"""Error taxonomy for the alerting pipeline."""

from __future__ import annotations

from enum import Enum


class FetchErrorKind(str, Enum):
    network = "network"
    timeout = "timeout"
    malformed_response = "malformed_response"


class ClassificationErrorKind(str, Enum):
    negative = "negative"
    absent = "absent"


class DispatchErrorKind(str, Enum):
    channel_rejected = "channel_rejected"
    timeout = "timeout"
    auth_failure = "auth_failure"


class FetchError(Exception):
    """Raised when a reading could not be retrieved from the feed."""

    def __init__(self, kind: FetchErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)

    @property
    def transient(self) -> bool:
        return self.kind in {FetchErrorKind.network, FetchErrorKind.timeout}


class ClassificationError(ValueError):
    """Raised when a value cannot be mapped to a health category."""

    def __init__(self, kind: ClassificationErrorKind, value: object = None) -> None:
        self.kind = kind
        self.value = value
        super().__init__(f"Cannot classify AQI value {value!r}: {kind.value}")


class DispatchError(Exception):
    """Delivery channel failure; converted to a DispatchResult at the dispatcher boundary."""

    def __init__(self, kind: DispatchErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class CategoryTableError(ValueError):
    """The category boundary table has a gap, overlap, or open start."""
