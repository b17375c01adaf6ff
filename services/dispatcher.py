"""Delivery channels for composed alert messages."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from models.records import AlertMessage, DispatchResult
from services.errors import DispatchError, DispatchErrorKind

logger = logging.getLogger(__name__)


class AlertDispatcher(Protocol):
    def dispatch(self, message: AlertMessage, recipient: str) -> DispatchResult: ...

    def close(self) -> None: ...


class TwilioDispatcher:
    """Sends alerts as SMS through the Twilio Messages REST endpoint.

    Channel failures are reported in the returned :class:`DispatchResult`; nothing
    raises past ``dispatch`` and nothing is retried here.

    As with the feed client, ``timeout`` applies per network phase rather than
    to the whole request.
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        base_url: str = "https://api.twilio.com",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._account_sid = account_sid
        self._from_number = from_number
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            auth=(account_sid, auth_token),
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def dispatch(self, message: AlertMessage, recipient: str) -> DispatchResult:
        try:
            self._send(message.text, recipient)
        except DispatchError as exc:
            logger.warning(
                "Alert delivery failed: %s",
                exc.detail or exc.kind.value,
                extra={"error_kind": exc.kind.value, "category": message.category.value},
            )
            return DispatchResult(success=False, error_kind=exc.kind.value)
        return DispatchResult(success=True)

    def _send(self, body: str, recipient: str) -> None:
        try:
            response = self._client.post(
                f"/2010-04-01/Accounts/{self._account_sid}/Messages.json",
                data={"To": recipient, "From": self._from_number, "Body": body},
            )
        except httpx.TimeoutException as exc:
            raise DispatchError(DispatchErrorKind.timeout, type(exc).__name__) from exc
        except httpx.RequestError as exc:
            raise DispatchError(DispatchErrorKind.channel_rejected, type(exc).__name__) from exc

        if response.status_code in {401, 403}:
            raise DispatchError(
                DispatchErrorKind.auth_failure, f"channel returned status {response.status_code}"
            )
        if not response.is_success:
            raise DispatchError(
                DispatchErrorKind.channel_rejected,
                f"channel returned status {response.status_code}",
            )


class LoggingDispatcher:
    """Dry-run channel used when no delivery credentials are configured."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, AlertMessage]] = []

    def close(self) -> None:
        pass

    def dispatch(self, message: AlertMessage, recipient: str) -> DispatchResult:
        self.sent.append((recipient, message))
        logger.info(
            "Dry-run alert for %s: %s",
            recipient,
            message.text,
            extra={"category": message.category.value},
        )
        return DispatchResult(success=True)
