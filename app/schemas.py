"""Pydantic schemas for cycle records and the HTTP API layer."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from models.records import AlertState, Category


class FetchOutcome(str, Enum):
    """How the fetch step of a cycle ended."""

    ok = "ok"
    network = "network"
    timeout = "timeout"
    malformed_response = "malformed_response"


class DispatchOutcome(str, Enum):
    sent = "sent"
    channel_rejected = "channel_rejected"
    timeout = "timeout"
    auth_failure = "auth_failure"


class CycleRecord(BaseModel):
    """Structured outcome of one pipeline cycle."""

    cycle_id: str
    location: str
    started_at: dt.datetime
    fetch_outcome: FetchOutcome
    observed_at: Optional[dt.datetime] = None
    value: Optional[float] = Field(default=None, ge=0)
    category: Optional[Category] = None
    alerted: bool = Field(
        default=False, description="Whether the decider asked for an alert this cycle."
    )
    dispatch_outcome: Optional[DispatchOutcome] = None
    message: Optional[str] = None


class AlertStateResponse(BaseModel):
    location: str
    last_alerted_category: Optional[Category] = None
    last_alerted_at: Optional[dt.datetime] = None

    @classmethod
    def from_state(cls, state: AlertState) -> "AlertStateResponse":
        return cls(
            location=state.location,
            last_alerted_category=state.last_alerted_category,
            last_alerted_at=state.last_alerted_at,
        )


class SeriesPoint(BaseModel):
    """One entry of the chart feed."""

    date: dt.date
    value: float = Field(..., ge=0)
