"""Cancellation and deadline token passed through every engine call."""
import threading
import time

from flask import current_app, has_app_context

from .errors import OperationCancelled

DEFAULT_TIMEOUT_SECONDS = 30.0


class SyncContext:
    def __init__(self, timeout=None):
        if timeout is None:
            timeout = DEFAULT_TIMEOUT_SECONDS
            if has_app_context():
                timeout = current_app.config.get('SYNC_TIMEOUT_SECONDS', DEFAULT_TIMEOUT_SECONDS)
        self.deadline = time.monotonic() + float(timeout) if timeout else None
        self._cancelled = threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    @property
    def expired(self):
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self, stage=''):
        """Raise OperationCancelled if the caller gave up or time ran out."""
        if self.cancelled:
            raise OperationCancelled(f"cancelled before {stage}" if stage else "cancelled")
        if self.expired:
            raise OperationCancelled(f"deadline exceeded before {stage}" if stage else "deadline exceeded")
