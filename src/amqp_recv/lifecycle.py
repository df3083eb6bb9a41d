"""Process lifecycle: cancellation token and signal-driven shutdown."""

import logging
import signal
import threading
from enum import StrEnum

from amqp_recv.logging import get_logger


class CancellationToken:
    """
    Write-once shutdown signal shared by every component.

    Producers call ``cancel``; consumers poll ``is_cancelled`` or block in
    ``wait``. Once tripped the token never resets.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str) -> bool:
        """
        Trips the token.

        Returns:
            True only for the call that actually tripped it.
        """
        # non-blocking so a signal handler never deadlocks against a cancel in progress
        if not self._lock.acquire(blocking=False):
            return False
        try:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            return True
        finally:
            self._lock.release()

    def wait(self, timeout: float | None = None) -> bool:
        """Blocks up to ``timeout`` seconds; returns True if the token is tripped."""
        return self._event.wait(timeout)


class LifecycleState(StrEnum):
    RUNNING = "running"
    CANCELLING = "cancelling"
    TERMINATED = "terminated"


class LifecycleController:
    """
    Merges OS interrupts and the dispatch-complete trigger into one token.

    Used as a context manager around the consumer run: entering installs the
    signal handlers, leaving restores them and marks the process terminated.
    """

    def __init__(
        self,
        token: CancellationToken | None = None,
        signals: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM),
        logger: logging.Logger | None = None,
    ):
        self._token = token or CancellationToken()
        self._signals = signals
        self._logger = logger or get_logger("lifecycle")
        self._previous_handlers: dict[signal.Signals, object] = {}
        self._terminated = False

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def state(self) -> LifecycleState:
        if self._terminated:
            return LifecycleState.TERMINATED
        if self._token.is_cancelled:
            return LifecycleState.CANCELLING
        return LifecycleState.RUNNING

    def install_signal_handlers(self) -> None:
        for signum in self._signals:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)

    def restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _handle_signal(self, signum, frame) -> None:
        name = signal.Signals(signum).name
        if self._token.cancel(f"received {name}"):
            self._logger.info("Interrupt received, shutting down", extra={"signal": name})

    def done(self) -> None:
        """Dispatch-complete trigger: the single message has been handled."""
        if self._token.cancel("message processed"):
            self._logger.info("Message processed, shutting down")

    def mark_terminated(self) -> None:
        self._terminated = True
        self._logger.info(
            "Consumer terminated", extra={"reason": self._token.reason or "not cancelled"}
        )

    def __enter__(self) -> "LifecycleController":
        self.install_signal_handlers()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.restore_signal_handlers()
        self.mark_terminated()
        return False
