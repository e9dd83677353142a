import json
import logging
import uuid

import httpx

from assessment_engine.services.notification_service import (
    SIMULATION_COMPLETED,
    NotificationChannel,
    NotificationDispatcher,
    NotificationEvent,
    NotificationOutbox,
    WebhookNotificationChannel,
)


class _RecordingChannel(NotificationChannel):
    def __init__(self) -> None:
        self.sent: list[NotificationEvent] = []

    def send(self, event: NotificationEvent) -> None:
        self.sent.append(event)


class _BrokenChannel(NotificationChannel):
    def send(self, event: NotificationEvent) -> None:
        raise ConnectionError('mail relay unavailable')


def _event() -> NotificationEvent:
    return NotificationEvent(
        event_type=SIMULATION_COMPLETED,
        simulation_id=uuid.uuid4(),
        result_id=uuid.uuid4(),
        student_id=uuid.uuid4(),
    )


def test_outbox_drains_once() -> None:
    outbox = NotificationOutbox()
    event = _event()
    outbox.publish(event)

    assert len(outbox) == 1
    assert outbox.drain() == [event]
    assert outbox.drain() == []


def test_dispatcher_delivers_through_channel() -> None:
    channel = _RecordingChannel()
    events = [_event(), _event()]

    assert NotificationDispatcher(channel).deliver_all(events) == 2
    assert channel.sent == events


def test_dispatcher_logs_and_swallows_channel_failures(caplog) -> None:
    dispatcher = NotificationDispatcher(_BrokenChannel())

    with caplog.at_level(logging.WARNING, logger='assessment_engine.services.notification_service'):
        delivered = dispatcher.deliver(_event())

    assert delivered is False
    assert 'failed' in caplog.text


def test_webhook_channel_posts_event_json() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(202)

    event = _event()
    channel = WebhookNotificationChannel(
        'https://hooks.example.test/results',
        token='secret',
        transport=httpx.MockTransport(handler),
    )

    assert NotificationDispatcher(channel).deliver(event) is True
    assert captured[0].headers['Authorization'] == 'Bearer secret'
    body = json.loads(captured[0].content)
    assert body['event_type'] == SIMULATION_COMPLETED
    assert body['result_id'] == str(event.result_id)


def test_webhook_error_status_counts_as_failed_delivery() -> None:
    channel = WebhookNotificationChannel(
        'https://hooks.example.test/results',
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )

    assert NotificationDispatcher(channel).deliver(_event()) is False
