"""Thread pool that keeps each user's events in order."""

from __future__ import annotations

import queue
import threading
from typing import Callable, List, Optional

from weatherbot.domain import InboundEvent
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="worker_pool")

_STOP = object()


class EventWorkerPool:
    """
    Fixed set of worker threads, one queue each.

    Events are routed by user id, so a user's events are handled one at a
    time and in arrival order while other users proceed on other workers.
    """

    def __init__(self, handler: Callable[[InboundEvent], None], workers: int = 4, name: str = "weatherbot") -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._handler = handler
        self._name = name
        self._queues: List[queue.Queue] = [queue.Queue() for _ in range(workers)]
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        return len(self._queues)

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        """Start the worker threads; calling it twice is a no-op."""
        with self._lock:
            if self._threads:
                return
            for idx, q in enumerate(self._queues):
                thread = threading.Thread(target=self._run, args=(q,), name=f"{self._name}-worker-{idx}", daemon=True)
                thread.start()
                self._threads.append(thread)
        logger.info(f"Started {self.size} event workers")

    def _queue_for(self, user_id: int) -> queue.Queue:
        return self._queues[hash(user_id) % len(self._queues)]

    def submit(self, event: InboundEvent) -> None:
        """Queue an event on its user's worker."""
        self._queue_for(event.user_id).put(event)

    def drain(self) -> None:
        """Block until every queued event has been handled."""
        for q in self._queues:
            q.join()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Let workers finish their queues, then join them."""
        with self._lock:
            threads, self._threads = self._threads, []
        if not threads:
            return
        for q in self._queues:
            q.put(_STOP)
        for thread in threads:
            thread.join(timeout)
        logger.info("Event workers stopped")

    def _run(self, q: queue.Queue) -> None:
        while True:
            event = q.get()
            try:
                if event is _STOP:
                    return
                self._handler(event)
            except Exception:
                # One bad event must not take the worker down.
                logger.exception(f"Unhandled error while processing {type(event).__name__}")
            finally:
                q.task_done()
