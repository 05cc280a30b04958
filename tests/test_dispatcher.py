"""Behaviour of the dispatcher across enqueue, delivery and retries."""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.application.use_cases.notifications import NotificationDispatcher, RetryPolicy
from app.domain.entities import (
    DELIVERY_STATUS_FAILED,
    DELIVERY_STATUS_QUEUED,
    DELIVERY_STATUS_SENT,
    DELIVERY_STATUS_SKIPPED,
    OUTBOX_STATUS_FAILED,
    OUTBOX_STATUS_PENDING,
    OUTBOX_STATUS_PROCESSING,
    OUTBOX_STATUS_SENT,
    Channel,
    DeliveryOutcome,
)
from app.domain.errors import ChannelDeliveryError
from app.infrastructure.notifications import (
    EmailChannelProvider,
    EmailErrorClassifier,
    PushErrorClassifier,
)
from app.infrastructure.notifications.push import PUSH_TOKEN_NOT_REGISTERED
from app.infrastructure.repositories import (
    NotificationDeliveryRepository,
    NotificationOutboxRepository,
    UserRepository,
)

from conftest import FakeClock, StubProvider


class RecordingReporter:
    def __init__(self) -> None:
        self.entries = []

    def report_terminal_failure(self, entry) -> None:
        self.entries.append(entry)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture()
def make_dispatcher(outbox_repo, delivery_repo, clock, reporter):
    def _make(*providers, **kwargs) -> NotificationDispatcher:
        kwargs.setdefault("retry_policy", RetryPolicy(max_attempts=3))
        return NotificationDispatcher(
            outbox_repo,
            delivery_repo,
            providers,
            failure_reporter=reporter,
            clock=clock,
            **kwargs,
        )

    return _make


def _statuses(delivery_repo, notification_id: int, user_id: int) -> dict[Channel, str]:
    return {
        record.channel: record.status
        for record in delivery_repo.list_for_notification(notification_id, user_id=user_id)
    }


def _process(dispatcher, entry, notification) -> str:
    return dispatcher.process(
        entry.id, notification=notification, user_id=entry.user_id, channels=entry.channels
    )


def test_enqueue_creates_deliveries_and_one_entry_per_user(
    make_dispatcher, notification, delivery_repo
) -> None:
    dispatcher = make_dispatcher()

    entries = dispatcher.enqueue(notification, [10, 11, 10], [Channel.PUSH, Channel.EMAIL])

    assert [entry.user_id for entry in entries] == [10, 11]
    assert all(entry.status == OUTBOX_STATUS_PENDING for entry in entries)
    assert all(entry.channels == [Channel.PUSH, Channel.EMAIL] for entry in entries)
    records = delivery_repo.list_for_notification(notification.id)
    assert len(records) == 4
    assert {record.status for record in records} == {DELIVERY_STATUS_QUEUED}


def test_enqueue_defaults_to_every_channel(make_dispatcher, notification) -> None:
    entry = make_dispatcher().enqueue(notification, [10])[0]

    assert entry.channels == [Channel.PUSH, Channel.EMAIL, Channel.REALTIME]


def test_enqueue_requires_users(make_dispatcher, notification) -> None:
    with pytest.raises(ValueError):
        make_dispatcher().enqueue(notification, [])


def test_enqueue_twice_keeps_single_delivery_record(
    make_dispatcher, notification, delivery_repo, outbox_repo
) -> None:
    dispatcher = make_dispatcher()

    dispatcher.enqueue(notification, [10], [Channel.EMAIL])
    dispatcher.enqueue(notification, [10], [Channel.EMAIL])

    assert len(delivery_repo.list_for_notification(notification.id)) == 1
    assert len(outbox_repo.list_for_notification(notification.id)) == 2


def test_enqueue_rejects_unknown_channel(make_dispatcher, notification) -> None:
    with pytest.raises(ValueError):
        make_dispatcher().enqueue(notification, [10], ["fax"])


def test_unconfigured_channels_are_skipped_and_entry_sent(
    make_dispatcher, notification, delivery_repo, outbox_repo, session, token_repo
) -> None:
    """No push token and no email transport: both channels skip, entry is sent."""

    from app.infrastructure.notifications import PushChannelProvider

    class IdleClient:
        def is_initialized(self) -> bool:
            return True

        def transmit(self, message):  # pragma: no cover
            raise AssertionError("push should not be attempted without a token")

    dispatcher = make_dispatcher(
        PushChannelProvider(IdleClient(), token_repo),
        EmailChannelProvider(None, UserRepository(session)),
    )
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH, Channel.EMAIL])[0]

    status = _process(dispatcher, entry, notification)

    assert status == OUTBOX_STATUS_SENT
    assert outbox_repo.get(entry.id).status == OUTBOX_STATUS_SENT
    assert _statuses(delivery_repo, notification.id, 10) == {
        Channel.PUSH: DELIVERY_STATUS_SKIPPED,
        Channel.EMAIL: DELIVERY_STATUS_SKIPPED,
    }


def test_unregistered_push_token_is_removed(
    make_dispatcher, notification, delivery_repo, outbox_repo, token_repo
) -> None:
    token_repo.save(10, "stale-token")
    push = StubProvider(
        Channel.PUSH,
        outcomes=[
            ChannelDeliveryError(
                Channel.PUSH.value, PUSH_TOKEN_NOT_REGISTERED, "Requested entity was not found."
            )
        ],
        error_classifier=PushErrorClassifier(token_repo),
    )
    email = StubProvider(Channel.EMAIL, outcomes=[DeliveryOutcome.SENT])
    dispatcher = make_dispatcher(push, email)
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH, Channel.EMAIL])[0]

    status = _process(dispatcher, entry, notification)

    assert status == OUTBOX_STATUS_SENT
    assert token_repo.get_token(10) is None
    assert _statuses(delivery_repo, notification.id, 10) == {
        Channel.PUSH: DELIVERY_STATUS_SKIPPED,
        Channel.EMAIL: DELIVERY_STATUS_SENT,
    }
    assert delivery_repo.get(
        notification_id=notification.id, user_id=10, channel=Channel.PUSH
    ).error == (
        "[push:registration-token-not-registered] Requested entity was not found."
    )


def test_transient_failure_reschedules_entry(
    make_dispatcher, notification, delivery_repo, outbox_repo, clock
) -> None:
    push = StubProvider(Channel.PUSH, outcomes=[DeliveryOutcome.SENT])
    email = StubProvider(
        Channel.EMAIL,
        outcomes=[ChannelDeliveryError(Channel.EMAIL.value, "transport-error", "connection reset")],
        error_classifier=EmailErrorClassifier(),
    )
    dispatcher = make_dispatcher(push, email)
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH, Channel.EMAIL])[0]

    status = _process(dispatcher, entry, notification)

    stored = outbox_repo.get(entry.id)
    assert status == OUTBOX_STATUS_PENDING
    assert stored.status == OUTBOX_STATUS_PENDING
    assert stored.attempts == 1
    assert stored.last_error == "[email:transport-error] connection reset"
    assert stored.next_attempt_at == clock.now + timedelta(seconds=60)
    assert _statuses(delivery_repo, notification.id, 10) == {
        Channel.PUSH: DELIVERY_STATUS_SENT,
        Channel.EMAIL: DELIVERY_STATUS_FAILED,
    }


def test_transient_failure_stops_remaining_channels(make_dispatcher, notification) -> None:
    push = StubProvider(Channel.PUSH, outcomes=[RuntimeError("socket closed")])
    email = StubProvider(Channel.EMAIL)
    dispatcher = make_dispatcher(push, email)
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH, Channel.EMAIL])[0]

    _process(dispatcher, entry, notification)

    assert push.calls == [(10, notification.id)]
    assert email.calls == []


def test_retry_skips_channels_already_sent(
    make_dispatcher, notification, delivery_repo, outbox_repo, clock
) -> None:
    push = StubProvider(Channel.PUSH, outcomes=[DeliveryOutcome.SENT, DeliveryOutcome.SENT])
    email = StubProvider(
        Channel.EMAIL, outcomes=[RuntimeError("timeout"), DeliveryOutcome.SENT]
    )
    dispatcher = make_dispatcher(push, email)
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH, Channel.EMAIL])[0]

    _process(dispatcher, entry, notification)
    clock.advance(seconds=60)
    status = _process(dispatcher, entry, notification)

    assert status == OUTBOX_STATUS_SENT
    assert len(push.calls) == 1
    assert len(email.calls) == 2
    assert set(_statuses(delivery_repo, notification.id, 10).values()) == {
        DELIVERY_STATUS_SENT
    }


def test_retry_can_resend_every_channel(make_dispatcher, notification) -> None:
    push = StubProvider(Channel.PUSH, outcomes=[DeliveryOutcome.SENT, DeliveryOutcome.SENT])
    email = StubProvider(Channel.EMAIL, outcomes=[RuntimeError("timeout"), DeliveryOutcome.SENT])
    dispatcher = make_dispatcher(push, email, skip_sent_channels=False)
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH, Channel.EMAIL])[0]

    _process(dispatcher, entry, notification)
    _process(dispatcher, entry, notification)

    assert len(push.calls) == 2


def test_exponential_backoff_grows_between_attempts(
    make_dispatcher, notification, outbox_repo, clock
) -> None:
    email = StubProvider(Channel.EMAIL, outcomes=[RuntimeError("down")] * 3)
    dispatcher = make_dispatcher(
        email, retry_policy=RetryPolicy(strategy="exponential", max_attempts=5)
    )
    entry = dispatcher.enqueue(notification, [10], [Channel.EMAIL])[0]

    delays = []
    for _ in range(3):
        _process(dispatcher, entry, notification)
        stored = outbox_repo.get(entry.id)
        delays.append((stored.next_attempt_at - clock.now).total_seconds())
        clock.advance(seconds=delays[-1])

    assert delays == [60, 120, 240]
    assert outbox_repo.get(entry.id).attempts == 3


def test_entry_fails_after_max_attempts(
    make_dispatcher, notification, delivery_repo, outbox_repo, reporter
) -> None:
    push = StubProvider(Channel.PUSH, outcomes=[DeliveryOutcome.SENT])
    email = StubProvider(Channel.EMAIL, outcomes=[RuntimeError("down")] * 3)
    realtime = StubProvider(Channel.REALTIME)
    dispatcher = make_dispatcher(push, email, realtime)
    entry = dispatcher.enqueue(
        notification, [10], [Channel.PUSH, Channel.EMAIL, Channel.REALTIME]
    )[0]

    statuses = [_process(dispatcher, entry, notification) for _ in range(3)]

    assert statuses == [OUTBOX_STATUS_PENDING, OUTBOX_STATUS_PENDING, OUTBOX_STATUS_FAILED]
    assert outbox_repo.get(entry.id).attempts == 3
    assert [failed.id for failed in reporter.entries] == [entry.id]
    assert _statuses(delivery_repo, notification.id, 10) == {
        Channel.PUSH: DELIVERY_STATUS_SENT,
        Channel.EMAIL: DELIVERY_STATUS_FAILED,
        Channel.REALTIME: DELIVERY_STATUS_FAILED,
    }
    assert realtime.calls == []


def test_processing_a_settled_entry_is_a_no_op(
    make_dispatcher, notification, delivery_repo
) -> None:
    push = StubProvider(Channel.PUSH)
    dispatcher = make_dispatcher(push)
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH])[0]

    assert _process(dispatcher, entry, notification) == OUTBOX_STATUS_SENT
    assert _process(dispatcher, entry, notification) == OUTBOX_STATUS_SENT
    assert len(push.calls) == 1


def test_process_unknown_entry(make_dispatcher, notification) -> None:
    with pytest.raises(ValueError):
        make_dispatcher().process(
            404, notification=notification, user_id=10, channels=[Channel.PUSH]
        )


def test_channels_without_provider_are_ignored(
    make_dispatcher, notification, delivery_repo
) -> None:
    email = StubProvider(Channel.EMAIL)
    dispatcher = make_dispatcher(email)
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH, Channel.EMAIL])[0]

    assert _process(dispatcher, entry, notification) == OUTBOX_STATUS_SENT
    assert _statuses(delivery_repo, notification.id, 10) == {
        Channel.PUSH: DELIVERY_STATUS_QUEUED,
        Channel.EMAIL: DELIVERY_STATUS_SENT,
    }


def test_concurrent_process_delivers_once(session_factory, notification) -> None:
    """A second caller arriving while the entry is leased sends nothing."""

    def dispatcher_for(provider) -> NotificationDispatcher:
        session = session_factory()
        return NotificationDispatcher(
            NotificationOutboxRepository(session),
            NotificationDeliveryRepository(session),
            [provider],
        )

    second_results = []
    late = StubProvider(Channel.PUSH)
    second = dispatcher_for(late)

    class RacingProvider(StubProvider):
        def send(self, user_id, notification):
            second_results.append(_process(second, entry, notification))
            return super().send(user_id, notification)

    first_provider = RacingProvider(Channel.PUSH)
    first = dispatcher_for(first_provider)
    entry = first.enqueue(notification, [10], [Channel.PUSH])[0]

    assert _process(first, entry, notification) == OUTBOX_STATUS_SENT
    assert second_results == [OUTBOX_STATUS_PROCESSING]
    assert len(first_provider.calls) == 1
    assert late.calls == []
    assert _process(second, entry, notification) == OUTBOX_STATUS_SENT
    assert late.calls == []


def test_process_skips_entry_leased_by_another_worker(
    make_dispatcher, notification, outbox_repo
) -> None:
    push = StubProvider(Channel.PUSH)
    dispatcher = make_dispatcher(push)
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH])[0]
    outbox_repo.claim(entry.id)

    status = _process(dispatcher, entry, notification)

    assert status == OUTBOX_STATUS_PROCESSING
    assert push.calls == []


def test_process_with_held_lease_delivers(make_dispatcher, notification, outbox_repo) -> None:
    push = StubProvider(Channel.PUSH)
    dispatcher = make_dispatcher(push)
    entry = dispatcher.enqueue(notification, [10], [Channel.PUSH])[0]
    leased = outbox_repo.claim(entry.id)

    status = dispatcher.process(
        leased.id,
        notification=notification,
        user_id=leased.user_id,
        channels=leased.channels,
        claimed=True,
    )

    assert status == OUTBOX_STATUS_SENT
    assert len(push.calls) == 1
