"""
Progress observers.

The pipeline reports ``ParseProgress`` snapshots to a single observer; these
classes adapt that observer interface to callbacks, log lines and the
push-style event stream consumed by the API.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Set

from domain.models import ParseProgress

logger = logging.getLogger(__name__)


class CallbackObserver:
    """Forwards every snapshot to a plain callable."""

    def __init__(self, callback: Callable[[ParseProgress], None]):
        self.callback = callback

    def on_progress(self, progress: ParseProgress) -> None:
        self.callback(progress)


class LoggingObserver:
    """Writes every snapshot to the log at DEBUG level."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def on_progress(self, progress: ParseProgress) -> None:
        self.log.debug(
            "[%s] %s %d/%d (%d%%) %s",
            progress.file_name,
            progress.status.value,
            progress.current,
            progress.total,
            progress.percentage,
            progress.message or "",
        )


class CompositeObserver:
    """Fans a snapshot out to several observers; one failing does not stop the rest."""

    def __init__(self, observers: List[object]):
        self.observers = [o for o in observers if o is not None]

    def add(self, observer: object) -> None:
        self.observers.append(observer)

    def on_progress(self, progress: ParseProgress) -> None:
        for observer in self.observers:
            try:
                observer.on_progress(progress)
            except Exception as exc:
                logger.warning("Progress observer %s failed: %s", observer.__class__.__name__, exc)


class ProgressBroadcaster:
    """
    Push-style progress stream.

    Each subscriber gets its own bounded queue. A slow subscriber whose
    queue is full loses its oldest snapshot rather than blocking ingestion.
    Must be used from the event loop thread.
    """

    def __init__(self, max_queue_size: int = 1000):
        self.max_queue_size = max_queue_size
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def on_progress(self, progress: ParseProgress) -> None:
        for queue in list(self._subscribers):
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(progress)
