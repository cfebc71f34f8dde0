from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Dict, Optional, Set

from ..domain.exceptions import BestEffortFailure
from ..domain.ports.collaborators import NotificationResult, NotificationSender

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fire-and-forget delivery of notifications on a small worker pool.

    ``submit`` returns immediately with a Future the caller may ignore.
    Failures, whether reported by the sender or raised by it, end up in the
    log and nowhere else.
    """

    def __init__(self, sender: NotificationSender, *, max_workers: int = 2) -> None:
        self._sender = sender
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notifications")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, kind: str, recipient: str, data: Optional[Dict[str, Any]] = None) -> Optional[Future]:
        if self._closed:
            logger.warning("Notification dispatcher is shut down; dropping %s for %s.", kind, recipient)
            return None
        future = self._executor.submit(self._deliver, kind, recipient, dict(data or {}))
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _deliver(self, kind: str, recipient: str, data: Dict[str, Any]) -> NotificationResult:
        try:
            result = self._sender.send(kind, recipient, data)
        except Exception as exc:
            failure = BestEffortFailure(
                f"Notification sender raised for {kind} to {recipient}",
                details={"kind": kind, "recipient": recipient, "error": str(exc)},
            )
            logger.error("%s", failure, exc_info=exc, extra={"failure": failure})
            return NotificationResult(success=False, error=str(exc))
        if not result.success:
            failure = BestEffortFailure(
                f"Failed to send {kind} notification to {recipient}: {result.error}",
                details={"kind": kind, "recipient": recipient, "error": result.error},
            )
            logger.error("%s", failure, extra={"failure": failure})
        return result

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted notification has finished."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Stopping notification dispatcher.")
        self._executor.shutdown(wait=wait_for_pending)
