"""
Cooperative cancellation for validation requests.

A request abandoned by its caller (client disconnect, timeout, Ctrl+C on
the command line) cancels its token. Resolvers check the token before
fetching, before parsing and before invoking the engine, and raise
OperationCancelledException there. Graphs acquired so far are released
by the scope that owns them.

Example:
    ```python
    token = CancellationToken()
    with cancel_on_sigint(token), deadline(token, 30):
        outcome = service.validate(data_spec, schema_spec, sources,
                                   cancellation_token=token)
    ```
"""

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

logger = logging.getLogger(__name__)


class OperationCancelledException(Exception):
    """
    Raised at a cancellation point of a cancelled request.

    Attributes:
        message: Human-readable description.
        operation: Step that observed the cancellation, if known.
    """

    def __init__(self, message: str = "Operation was cancelled", operation: Optional[str] = None):
        self.message = message
        self.operation = operation
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.message} (operation: {self.operation})" if self.operation else self.message


class CancellationToken:
    """
    Cancellation flag shared by one request and its worker threads.

    Data and schema are resolved on separate threads that observe the same
    token, so whichever of them has not yet reached its next check stops
    there.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._on_cancel: List[Callable[[], None]] = []
        self.cancel_reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        """Cancel the token. Later calls are ignored, including their reason."""
        with self._lock:
            if self._event.is_set():
                return
            self.cancel_reason = reason
            self._event.set()
            pending = list(self._on_cancel)

        logger.info(f"Cancellation requested: {reason or 'caller initiated'}")
        for callback in pending:
            try:
                callback()
            except Exception as e:
                logger.error(f"Cancellation callback failed: {e}")

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def throw_if_cancelled(self, operation: Optional[str] = None) -> None:
        if not self._event.is_set():
            return
        message = "Operation was cancelled"
        if self.cancel_reason:
            message += f": {self.cancel_reason}"
        raise OperationCancelledException(message, operation)

    def register_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once when the token is cancelled."""
        with self._lock:
            self._on_cancel.append(callback)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; True if cancelled."""
        return self._event.wait(timeout)


@contextmanager
def deadline(token: CancellationToken, seconds: Optional[float]) -> Iterator[CancellationToken]:
    """
    Cancel ``token`` if the block is still running after ``seconds``.

    A falsy ``seconds`` disables the deadline.
    """
    if not seconds:
        yield token
        return
    timer = threading.Timer(seconds, token.cancel, kwargs={"reason": f"timed out after {seconds}s"})
    timer.daemon = True
    timer.start()
    try:
        yield token
    finally:
        timer.cancel()


@contextmanager
def cancel_on_sigint(token: CancellationToken) -> Iterator[CancellationToken]:
    """
    Route Ctrl+C to ``token`` while the block runs.

    The first SIGINT cancels the token so the validation releases its
    graphs and returns an error result. A second one raises
    KeyboardInterrupt. The previous handler is restored on exit.
    """
    previous = signal.getsignal(signal.SIGINT)

    def on_sigint(signum, frame) -> None:
        if token.is_cancelled():
            raise KeyboardInterrupt
        token.cancel("user interrupted (SIGINT)")

    signal.signal(signal.SIGINT, on_sigint)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)
