from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

import httpx

from assessment_engine.core.clock import utc_now
from assessment_engine.core.config import settings


logger = logging.getLogger(__name__)

SIMULATION_COMPLETED = 'simulation_completed'
CORRECTION_REQUESTED = 'correction_requested'


@dataclass(frozen=True)
class NotificationEvent:
    event_type: str
    simulation_id: UUID
    result_id: UUID
    student_id: UUID
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utc_now)


class NotificationChannel(ABC):
    @abstractmethod
    def send(self, event: NotificationEvent) -> None:
        pass


class LoggingNotificationChannel(NotificationChannel):
    def send(self, event: NotificationEvent) -> None:
        logger.info(
            'Notification %s for result %s (simulation %s, student %s)',
            event.event_type,
            event.result_id,
            event.simulation_id,
            event.student_id,
        )


class WebhookNotificationChannel(NotificationChannel):
    """Posts each event as JSON to an HTTP endpoint (mailer, chat bridge, etc.)."""

    def __init__(
        self,
        url: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {'Content-Type': 'application/json', 'User-Agent': 'assessment-engine'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def send(self, event: NotificationEvent) -> None:
        body = {
            'event_type': event.event_type,
            'simulation_id': str(event.simulation_id),
            'result_id': str(event.result_id),
            'student_id': str(event.student_id),
            'occurred_at': event.occurred_at.isoformat(),
            'payload': event.payload,
        }
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            resp = client.post(self.url, headers=self._headers(), json=body)
        resp.raise_for_status()


class NotificationOutbox:
    """Per-request buffer; events leave only after the primary write commits."""

    def __init__(self) -> None:
        self._events: list[NotificationEvent] = []

    def publish(self, event: NotificationEvent) -> None:
        self._events.append(event)

    def drain(self) -> list[NotificationEvent]:
        events, self._events = self._events, []
        return events

    def __len__(self) -> int:
        return len(self._events)


class NotificationDispatcher:
    def __init__(self, channel: NotificationChannel) -> None:
        self.channel = channel

    def deliver(self, event: NotificationEvent) -> bool:
        try:
            self.channel.send(event)
        except Exception:  # noqa: BLE001
            logger.warning(
                'Notification %s for result %s failed',
                event.event_type,
                event.result_id,
                exc_info=True,
            )
            return False
        return True

    def deliver_all(self, events: list[NotificationEvent]) -> int:
        return sum(1 for event in events if self.deliver(event))


def get_dispatcher() -> NotificationDispatcher:
    if settings.NOTIFICATION_WEBHOOK_URL:
        channel: NotificationChannel = WebhookNotificationChannel(
            settings.NOTIFICATION_WEBHOOK_URL,
            token=settings.NOTIFICATION_WEBHOOK_TOKEN,
            timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
        )
    else:
        channel = LoggingNotificationChannel()
    return NotificationDispatcher(channel)
