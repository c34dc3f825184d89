"""
Notification outbox: an in-process queue drained by a background worker.

Intent:
    Services call `emit()` right after a transition has been persisted. The
    call only enqueues; a daemon thread delivers through the configured
    sender. Delivery failures are logged and dropped, never propagated and
    never rolled back into the transition.

Operational notes:
    - A full queue drops the message with a warning instead of blocking the
      request.
    - `drain()` waits until everything enqueued so far was attempted (tests,
      graceful shutdown). `close()` stops the worker after draining; later
      `emit()` calls are dropped with a warning.
"""
from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Optional

from .ports import EmailMessage, EmailSenderProtocol

LOG = logging.getLogger(__name__)

_STOP = object()


class NotificationOutbox:
    def __init__(self, sender: EmailSenderProtocol, *, max_size: int = 1000, autostart: bool = True) -> None:
        self._sender = sender
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=max_size)
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._closed = False
        self.sent = 0
        self.failed = 0
        self.dropped = 0
        if autostart:
            self.start()

    def start(self) -> None:
        with self._lock:
            if self._closed or (self._thread is not None and self._thread.is_alive()):
                return
            self._thread = threading.Thread(target=self._run, name="notification-outbox", daemon=True)
            self._thread.start()

    def emit(self, message: EmailMessage) -> None:
        if not message.to:
            LOG.warning("Notification without recipient dropped (subject=%s)", message.subject)
            self.dropped += 1
            return
        with self._lock:
            if self._closed:
                LOG.warning("Notification outbox closed; dropping message (subject=%s)", message.subject)
                self.dropped += 1
                return
            try:
                self._queue.put_nowait(message)
            except queue.Full:
                LOG.warning("Notification outbox full; dropping message (subject=%s)", message.subject)
                self.dropped += 1

    def drain(self, timeout: float | None = None) -> bool:
        """Block until all queued messages were attempted. Returns False on timeout.

        Once closed with no live worker nothing can make progress, so this
        answers immediately instead of waiting.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if self._closed and not self._worker_alive():
                    return False
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    def close(self, timeout: float = 5.0) -> None:
        """Stop accepting messages, then let the worker finish what is queued."""
        with self._lock:
            self._closed = True
            thread = self._thread
        if thread is None or not thread.is_alive():
            return
        self._queue.put(_STOP)
        thread.join(timeout)

    def _worker_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)  # type: ignore[arg-type]
            finally:
                self._queue.task_done()

    def _deliver(self, message: EmailMessage) -> None:
        try:
            self._sender.send(to=message.to, subject=message.subject, body=message.body)
        except Exception as exc:  # Best-effort delivery: log and move on.
            self.failed += 1
            LOG.warning(
                "Notification delivery failed (subject=%s, error=%s)",
                message.subject,
                exc.__class__.__name__,
            )
            return
        self.sent += 1
        LOG.info("Notification sent (subject=%s)", message.subject)


__all__ = ["NotificationOutbox"]
