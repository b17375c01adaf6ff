"""Debounce logic deciding whether a classified reading warrants an alert."""

from __future__ import annotations

from models.records import AlertState, Category


class AlertDecider:
    """Alerts on the first classification and on every category change.

    Improvements are reported too, including the return to ``good``. The decider
    never touches ``state``; only the pipeline replaces it after a successful
    dispatch.
    """

    def should_alert(self, new_category: Category, state: AlertState) -> bool:
        if state.last_alerted_category is None:
            return True
        return new_category != state.last_alerted_category
