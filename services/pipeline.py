"""Fetch, classify, decide, compose, dispatch and record, once per trigger."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from threading import Lock
from typing import Callable, Optional
from uuid import uuid4

from app.schemas import CycleRecord, DispatchOutcome, FetchOutcome
from datastore.cycle_log import CycleLogTable, build_default_cycle_log
from models.records import AlertState, DispatchResult, Reading
from services.classifier import CategoryClassifier
from services.composer import MessageComposer
from services.decider import AlertDecider
from services.dispatcher import AlertDispatcher, LoggingDispatcher, TwilioDispatcher
from services.errors import ClassificationError, DispatchError, FetchError, FetchErrorKind
from services.source import AirQualitySource
from settings import get_settings

logger = logging.getLogger(__name__)

DRY_RUN_RECIPIENT = "console"


class AlertPipeline:
    """Runs alert cycles for one location and owns its AlertState.

    Cycles are serialized. The state is replaced only after a successful
    dispatch, as the last step of the cycle.
    """

    def __init__(
        self,
        location: str,
        source: AirQualitySource,
        classifier: CategoryClassifier,
        decider: AlertDecider,
        composer: MessageComposer,
        dispatcher: AlertDispatcher,
        recipient: str,
        cycle_log: Optional[CycleLogTable] = None,
        state: Optional[AlertState] = None,
        fetch_attempts: int = 1,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if state is not None and state.location != location:
            raise ValueError(
                f"Alert state belongs to {state.location!r}, not {location!r}."
            )
        self.location = location
        self.source = source
        self.classifier = classifier
        self.decider = decider
        self.composer = composer
        self.dispatcher = dispatcher
        self.recipient = recipient
        self.cycle_log = cycle_log
        self.fetch_attempts = max(1, fetch_attempts)
        self._state = state or AlertState(location=location)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._cycle_lock = Lock()

    @property
    def state(self) -> AlertState:
        return self._state

    def run_cycle(self) -> CycleRecord:
        with self._cycle_lock:
            record = self._run_cycle()
            self._record(record)
        return record

    def shutdown(self) -> None:
        self.source.close()
        self.dispatcher.close()

    def _run_cycle(self) -> CycleRecord:
        base = {
            "cycle_id": str(uuid4()),
            "location": self.location,
            "started_at": self._clock(),
        }

        try:
            reading = self._fetch()
        except FetchError as exc:
            return CycleRecord(**base, fetch_outcome=FetchOutcome(exc.kind.value))

        try:
            category = self.classifier.classify(reading.value)
        except ClassificationError:
            return CycleRecord(
                **base,
                fetch_outcome=FetchOutcome.malformed_response,
                observed_at=reading.observed_at,
            )

        observed = {
            "fetch_outcome": FetchOutcome.ok,
            "observed_at": reading.observed_at,
            "value": reading.value,
            "category": category,
        }
        if not self.decider.should_alert(category, self._state):
            return CycleRecord(**base, **observed, alerted=False)

        message = self.composer.compose(reading.value, category)
        try:
            result = self.dispatcher.dispatch(message, self.recipient)
        except DispatchError as exc:
            result = DispatchResult(success=False, error_kind=exc.kind.value)

        if not result.success:
            return CycleRecord(
                **base,
                **observed,
                alerted=True,
                dispatch_outcome=DispatchOutcome(
                    result.error_kind or DispatchOutcome.channel_rejected.value
                ),
                message=message.text,
            )

        self._state = AlertState(
            location=self.location,
            last_alerted_category=category,
            last_alerted_at=self._clock(),
        )
        return CycleRecord(
            **base,
            **observed,
            alerted=True,
            dispatch_outcome=DispatchOutcome.sent,
            message=message.text,
        )

    def _fetch(self) -> Reading:
        for attempt in range(1, self.fetch_attempts + 1):
            try:
                reading = self.source.fetch(self.location)
            except FetchError as exc:
                if not exc.transient or attempt == self.fetch_attempts:
                    raise
                logger.info(
                    "Retrying fetch after %s",
                    exc.kind.value,
                    extra={"location": self.location, "attempt": attempt},
                )
                continue
            if reading.is_absent:
                raise FetchError(FetchErrorKind.malformed_response, "PM2.5 value absent")
            return reading
        raise AssertionError("unreachable")

    def _record(self, record: CycleRecord) -> None:
        if self.cycle_log is not None:
            self.cycle_log.put_item(record)

        failed = record.fetch_outcome is not FetchOutcome.ok or (
            record.dispatch_outcome not in {None, DispatchOutcome.sent}
        )
        logger.log(
            logging.WARNING if failed else logging.INFO,
            "Alert cycle finished",
            extra={
                "cycle_id": record.cycle_id,
                "location": record.location,
                "fetch_outcome": record.fetch_outcome.value,
                "value": record.value,
                "category": record.category.value if record.category else None,
                "alerted": record.alerted,
                "dispatch_outcome": (
                    record.dispatch_outcome.value if record.dispatch_outcome else None
                ),
            },
        )


def _build_dispatcher() -> tuple[AlertDispatcher, str]:
    settings = get_settings()
    if not settings.delivery_configured:
        logger.warning("Delivery credentials not configured; alerts will only be logged.")
        return LoggingDispatcher(), settings.alert_recipient or DRY_RUN_RECIPIENT

    if not settings.alert_recipient:
        raise ValueError("AQ_ALERT_RECIPIENT is required when delivery credentials are set.")
    dispatcher = TwilioDispatcher(
        account_sid=settings.twilio_account_sid or "",
        auth_token=settings.twilio_auth_token or "",
        from_number=settings.twilio_from_number or "",
        base_url=settings.twilio_base_url,
        timeout=settings.dispatch_timeout,
    )
    return dispatcher, settings.alert_recipient


@lru_cache
def build_default_pipeline() -> AlertPipeline:
    """Factory that wires the pipeline from environment settings."""
    settings = get_settings()
    classifier = CategoryClassifier()
    dispatcher, recipient = _build_dispatcher()
    source = AirQualitySource(
        base_url=settings.api_base_url,
        token=settings.api_token,
        timeout=settings.fetch_timeout,
    )
    return AlertPipeline(
        location=settings.location,
        source=source,
        classifier=classifier,
        decider=AlertDecider(),
        composer=MessageComposer(classifier, char_limit=settings.message_char_limit),
        dispatcher=dispatcher,
        recipient=recipient,
        cycle_log=build_default_cycle_log(),
        fetch_attempts=settings.fetch_attempts,
    )
