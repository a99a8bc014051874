from __future__ import annotations

import logging

from courier.core.celery_app import celery
from courier.core.errors import CourierError
from courier.dispatch import factory

log = logging.getLogger("dispatch_tasks")


@celery.task(name="courier.dispatch.tasks.dispatch_pending")
def dispatch_pending(*, limit: int | None = None) -> dict:
    """Run a single dispatch cycle on a worker.

    Same semantics as one tick of the in-process loop. Do not schedule this
    alongside a running in-process dispatcher: two senders over one store can
    deliver the same message twice.
    """

    cache = factory.build_message_cache()
    try:
        with factory.build_webhook_client() as delivery:
            dispatcher = factory.build_dispatcher(delivery=delivery, cache=cache, batch_size=limit)
            try:
                report = dispatcher.run_once()
            except CourierError as e:
                log.error("dispatch_pending: %s", e)
                return {"ok": False, "error": str(e)}
    finally:
        cache.close()

    return {"ok": True, **report.as_dict()}
