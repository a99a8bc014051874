from __future__ import annotations

import pytest

from courier.cache.message_cache import MessageCache
from courier.core.errors import OperationFailed
from courier.dispatch.dispatcher import Dispatcher
from courier.models.tables import Message
from courier.store.repository import limit_statement_time
from tests.utils_bootstrap import DownRedis, FakeRedis, RecordingDelivery, load, seed_messages


def test_run_once_sends_at_most_batch_size_oldest_first(store):
    ids = seed_messages(5)
    delivery = RecordingDelivery()
    d = Dispatcher(store=store, delivery=delivery, cache=MessageCache(FakeRedis()), batch_size=2)

    report = d.run_once()

    assert report.fetched == 2
    assert report.sent == 2
    assert [c["content"] for c in delivery.calls] == ["message 0", "message 1"]
    assert load(ids[0]).is_sent and load(ids[1]).is_sent
    assert not load(ids[2]).is_sent
    assert [m.id for m in store.fetch_unsent(10)] == ids[2:]


def test_failed_delivery_does_not_abort_batch(store):
    first, second = seed_messages(2)
    delivery = RecordingDelivery(fail_for={load(first).to})
    cache = MessageCache(FakeRedis())
    d = Dispatcher(store=store, delivery=delivery, cache=cache, batch_size=2)

    report = d.run_once()

    assert report.failed == 1
    assert report.sent == 1
    assert load(first).is_sent is False
    assert load(second).is_sent is True
    assert cache.get(second).provider_message_id == "prov-2"
    assert cache.get(first) is None
    # The failed message is picked up again next time.
    assert [m.id for m in store.fetch_unsent(2)] == [first]


def test_mark_sent_failure_leaves_message_redeliverable(store):
    (msg_id,) = seed_messages(1)

    class FlakyStore:
        def fetch_unsent(self, limit, *, timeout=None):
            return store.fetch_unsent(limit, timeout=timeout)

        def mark_sent(self, message_id, *, timeout=None):
            raise OperationFailed("db went away", op="mark message sent", message_id=message_id)

    cache = MessageCache(FakeRedis())
    delivery = RecordingDelivery()
    d = Dispatcher(store=FlakyStore(), delivery=delivery, cache=cache)

    report = d.run_once()

    assert report.mark_failed == 1
    assert report.sent == 0
    assert load(msg_id).is_sent is False
    # Provider id is still recorded.
    assert cache.get(msg_id).provider_message_id == "prov-1"

    d.run_once()
    assert len(delivery.calls) == 2


def test_cache_failure_is_not_fatal(store):
    ids = seed_messages(2)
    d = Dispatcher(store=store, delivery=RecordingDelivery(), cache=MessageCache(DownRedis()))

    report = d.run_once()

    assert report.sent == 2
    assert report.cache_failed == 2
    assert all(load(i).is_sent for i in ids)


def test_runs_without_cache(store):
    (msg_id,) = seed_messages(1)
    d = Dispatcher(store=store, delivery=RecordingDelivery(), cache=None)

    assert d.run_once().sent == 1
    assert load(msg_id).is_sent


def test_fetch_failure_is_the_tick_error():
    class BrokenStore:
        def fetch_unsent(self, limit, *, timeout=None):
            raise OperationFailed("connection refused", op="fetch unsent messages")

        def mark_sent(self, message_id, *, timeout=None):
            raise AssertionError("not reached")

    d = Dispatcher(store=BrokenStore(), delivery=RecordingDelivery())

    with pytest.raises(OperationFailed):
        d.run_once()


def test_unexpected_delivery_exception_is_isolated(store):
    first, second = seed_messages(2)

    class Exploding(RecordingDelivery):
        def deliver(self, *, to, content, timeout):
            if content == "message 0":
                raise RuntimeError("bug in adapter")
            return super().deliver(to=to, content=content, timeout=timeout)

    report = Dispatcher(store=store, delivery=Exploding()).run_once()

    assert report.failed == 1
    assert load(second).is_sent


def test_per_message_timeout_is_nested_in_batch_budget(store):
    seed_messages(2)
    now = [0.0]
    delivery = RecordingDelivery()

    class SlowDelivery:
        def deliver(self, *, to, content, timeout):
            receipt = delivery.deliver(to=to, content=content, timeout=timeout)
            now[0] += 3.0
            return receipt

    d = Dispatcher(
        store=store,
        delivery=SlowDelivery(),
        batch_timeout_s=7.0,
        message_timeout_s=5.0,
        clock=lambda: now[0],
    )

    report = d.run_once()

    assert [c["timeout"] for c in delivery.calls] == [5.0, 4.0]
    assert report.sent == 2


def test_exhausted_batch_budget_fails_remaining_messages(store):
    first, second = seed_messages(2)
    now = [0.0]

    class SlowDelivery(RecordingDelivery):
        def deliver(self, *, to, content, timeout):
            receipt = super().deliver(to=to, content=content, timeout=timeout)
            now[0] += 10.0
            return receipt

    delivery = SlowDelivery()
    d = Dispatcher(store=store, delivery=delivery, batch_timeout_s=10.0, clock=lambda: now[0])

    report = d.run_once()

    # The first delivery ate the whole budget: marking it fails too, so it is
    # delivered again next tick; the second is never attempted.
    assert len(delivery.calls) == 1
    assert report.mark_failed == 1
    assert report.failed == 1
    assert report.sent == 0
    assert load(first).is_sent is False
    assert load(second).is_sent is False


def test_store_calls_get_the_batch_budget():
    now = [0.0]
    rows = [Message(id="a", to="+1", content="x"), Message(id="b", to="+2", content="y")]
    seen = []

    class TimedStore:
        def fetch_unsent(self, limit, *, timeout=None):
            seen.append(("fetch", timeout))
            now[0] += 1.0
            return rows[:limit]

        def mark_sent(self, message_id, *, timeout=None):
            seen.append(("mark", message_id, timeout))

    class TimedDelivery(RecordingDelivery):
        def deliver(self, *, to, content, timeout):
            now[0] += 2.0
            return super().deliver(to=to, content=content, timeout=timeout)

    d = Dispatcher(
        store=TimedStore(),
        delivery=TimedDelivery(),
        batch_timeout_s=10.0,
        message_timeout_s=5.0,
        clock=lambda: now[0],
    )

    d.run_once()

    assert seen == [("fetch", 10.0), ("mark", "a", 7.0), ("mark", "b", 5.0)]


def test_sql_store_rejects_a_spent_budget(store):
    seed_messages(1)

    assert len(store.fetch_unsent(2, timeout=5.0)) == 1
    with pytest.raises(OperationFailed):
        store.fetch_unsent(2, timeout=0.0)


def test_statement_timeout_is_set_on_postgres():
    executed = []

    class _Dialect:
        name = "postgresql"

    class _Bind:
        dialect = _Dialect()

    class _Session:
        def get_bind(self):
            return _Bind()

        def execute(self, stmt):
            executed.append(str(stmt))

    limit_statement_time(_Session(), 2.5, op="fetch unsent messages")
    limit_statement_time(_Session(), None, op="fetch unsent messages")

    assert executed == ["SET LOCAL statement_timeout = 2500"]
