"""Tests for the consumer loop's acknowledgement and concurrency handling."""

from __future__ import annotations

import threading

from kombu import Connection

from notifier.application.delivery import JobOutcome
from notifier.infrastructure.broker import build_notification_queue
from notifier.infrastructure.worker import NotificationWorker


class FakeMessage:
    """Stand-in for ``kombu.message.Message`` recording how it was settled."""

    def __init__(self, payload):
        self.payload = payload
        self.acked = False
        self.rejected = False
        self.requeued = False

    def ack(self):
        self.acked = True

    def reject(self, requeue=False):
        self.rejected = True
        self.requeued = requeue


class FakeProcessor:
    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.seen = []
        self._lock = threading.Lock()

    def process_payload(self, body):
        with self._lock:
            self.seen.append(body["id"])
        outcome = self.outcomes[body["id"]]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeScheduler:
    def __init__(self):
        self.polls = 0

    def release_due(self):
        self.polls += 1
        return 0


def _worker(processor, scheduler=None, concurrency=2):
    return NotificationWorker(
        Connection("memory://"),
        processor,
        scheduler or FakeScheduler(),
        job_queue=build_notification_queue("test-worker"),
        concurrency=concurrency,
        poll_interval=0.0,
    )


def test_messages_are_settled_according_to_outcome():
    """Terminal outcomes are acked; everything else is rejected without requeue."""

    processor = FakeProcessor(
        {
            1: JobOutcome.DELIVERED,
            2: JobOutcome.RETRY_SCHEDULED,
            3: JobOutcome.NOTIFICATION_MISSING,
            4: JobOutcome.SCHEDULING_ERROR,
            5: RuntimeError("boom"),
        }
    )
    worker = _worker(processor)
    messages = {job_id: FakeMessage({"id": job_id}) for job_id in range(1, 6)}

    for job_id, message in messages.items():
        worker.on_message({"id": job_id}, message)
    worker.stop()
    worker.on_iteration()

    assert worker.should_stop is True
    assert sorted(processor.seen) == [1, 2, 3, 4, 5]
    assert messages[1].acked and not messages[1].rejected
    assert messages[2].rejected and not messages[2].requeued
    assert messages[3].rejected and not messages[3].requeued
    assert messages[4].rejected and not messages[4].requeued
    assert messages[5].rejected and not messages[5].requeued


def test_iteration_polls_due_retries():
    scheduler = FakeScheduler()
    worker = _worker(FakeProcessor({}), scheduler)

    worker.on_iteration()

    assert scheduler.polls == 1
    worker.drain()


def test_message_received_after_shutdown_is_left_unsettled():
    worker = _worker(FakeProcessor({1: JobOutcome.DELIVERED}))
    worker.drain()
    message = FakeMessage({"id": 1})

    worker.on_message({"id": 1}, message)

    assert message.acked is False
    assert message.rejected is False


def test_in_flight_jobs_never_exceed_concurrency():
    """The pool never runs more jobs at once than its configured concurrency."""

    active = 0
    peak = 0
    lock = threading.Lock()
    release = threading.Event()

    class SlowProcessor:
        def process_payload(self, body):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            release.wait(timeout=0.2)
            with lock:
                active -= 1
            return JobOutcome.DELIVERED

    worker = _worker(SlowProcessor(), concurrency=2)
    messages = [FakeMessage({"id": job_id}) for job_id in range(6)]
    for message in messages:
        worker.on_message(message.payload, message)
    release.set()
    worker.drain()

    assert peak <= 2
    assert all(message.acked for message in messages)
