from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Callable

from courier.cache.message_cache import MessageCache
from courier.core.errors import CacheError, DeliveryFailed, DeliveryFailureKind
from courier.delivery.base import DeliveryPort, DeliveryReceipt
from courier.models.tables import Message
from courier.store.repository import MessageStore
from courier.util.time import Deadline, now_utc

log = logging.getLogger("dispatcher")

DEFAULT_INTERVAL_S = 120.0
DEFAULT_BATCH_SIZE = 2
DEFAULT_BATCH_TIMEOUT_S = 10.0
DEFAULT_MESSAGE_TIMEOUT_S = 5.0


@dataclass
class DispatchReport:
    fetched: int = 0
    sent: int = 0
    failed: int = 0
    mark_failed: int = 0
    cache_failed: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


class Dispatcher:
    """Periodically sends unsent messages to the delivery port.

    Lifecycle is Stopped -> Running -> Stopped. `start()` launches one background
    thread; `stop()` signals it and blocks until the tick in progress (if any)
    has finished. Cancellation is only observed between ticks.

    Delivery is at-least-once: a message that was delivered but could not be
    marked as sent stays unsent and is delivered again on a later tick. Running
    two dispatchers against the same store can also deliver twice.
    """

    def __init__(
        self,
        *,
        store: MessageStore,
        delivery: DeliveryPort,
        cache: MessageCache | None = None,
        interval_s: float = DEFAULT_INTERVAL_S,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_timeout_s: float = DEFAULT_BATCH_TIMEOUT_S,
        message_timeout_s: float = DEFAULT_MESSAGE_TIMEOUT_S,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._store = store
        self._delivery = delivery
        self._cache = cache
        self.interval_s = interval_s
        self.batch_size = batch_size
        self.batch_timeout_s = batch_timeout_s
        self.message_timeout_s = message_timeout_s
        self._clock = clock

        # _state_lock guards only the flag; _lifecycle_lock serializes start/stop
        # so a new loop never overlaps one that is still draining.
        self._state_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._running = False
        self._cancel: threading.Event | None = None
        self._done: threading.Event | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> bool:
        """Start the loop. Returns False if it was already running."""

        with self._lifecycle_lock:
            with self._state_lock:
                if self._running:
                    return False
                cancel = threading.Event()
                done = threading.Event()
                self._cancel, self._done = cancel, done
                self._running = True

            self._thread = threading.Thread(
                target=self._loop,
                args=(cancel, done),
                name="message-dispatcher",
                daemon=True,
            )
            self._thread.start()

        log.info(
            "Dispatcher started (interval=%ss batch_size=%s batch_timeout=%ss message_timeout=%ss)",
            self.interval_s,
            self.batch_size,
            self.batch_timeout_s,
            self.message_timeout_s,
        )
        return True

    def stop(self) -> bool:
        """Stop the loop and wait for it to exit. Returns False if it was not running."""

        with self._lifecycle_lock:
            with self._state_lock:
                if not self._running:
                    return False
                cancel, done = self._cancel, self._done
                self._running = False

            cancel.set()
            done.wait()

        log.info("Dispatcher stopped")
        return True

    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    def _loop(self, cancel: threading.Event, done: threading.Event) -> None:
        try:
            # wait() returns True once cancelled, False when the interval elapses.
            while not cancel.wait(self.interval_s):
                try:
                    self.run_once()
                except Exception:
                    log.exception("Failed to send messages")
        finally:
            done.set()

    def run_once(self) -> DispatchReport:
        """Fetch one batch and send it message by message.

        Only a failure to fetch the batch is raised; per-message failures are
        logged and counted in the report.
        """

        budget = self._deadline(self.batch_timeout_s)
        messages = self._store.fetch_unsent(self.batch_size, timeout=budget.remaining())
        report = DispatchReport(fetched=len(messages))

        for msg in messages:
            self._dispatch_one(msg, budget, report)

        if messages:
            log.info("Dispatch tick: %s", report.as_dict())
        else:
            log.debug("Dispatch tick: nothing to send")
        return report

    def _deadline(self, seconds: float) -> Deadline:
        if self._clock is None:
            return Deadline(seconds)
        return Deadline(seconds, clock=self._clock)

    def _dispatch_one(self, msg: Message, budget: Deadline, report: DispatchReport) -> None:
        try:
            receipt = self._deliver(msg, budget.child(self.message_timeout_s))
        except DeliveryFailed as e:
            report.failed += 1
            log.warning("Failed to send message %s: %s", msg.id, e)
            return
        except Exception:
            report.failed += 1
            log.exception("Failed to send message %s", msg.id)
            return

        try:
            # Marking runs on the batch budget, like the fetch.
            self._store.mark_sent(msg.id, timeout=budget.remaining())
        except Exception as e:
            report.mark_failed += 1
            log.error(
                "Message %s was delivered (provider id %s) but could not be marked as sent; "
                "it will be delivered again on a later tick: %s",
                msg.id,
                receipt.provider_message_id,
                e,
            )
        else:
            report.sent += 1
            log.info("Message %s sent (provider id %s)", msg.id, receipt.provider_message_id)

        # Written even if mark_sent failed so the provider id is not lost.
        if self._cache is not None:
            try:
                self._cache.put(msg.id, receipt.provider_message_id, sent_at=now_utc())
            except CacheError as e:
                report.cache_failed += 1
                log.warning("Failed to cache provider id for message %s: %s", msg.id, e)

    def _deliver(self, msg: Message, deadline: Deadline) -> DeliveryReceipt:
        if deadline.expired:
            raise DeliveryFailed(
                DeliveryFailureKind.TIMEOUT,
                "batch time budget exhausted",
                message_id=msg.id,
            )
        return self._delivery.deliver(to=msg.to, content=msg.content, timeout=deadline.remaining())
