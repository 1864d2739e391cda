"""Cancellation of a run by process signals."""

from __future__ import annotations

import signal
from contextlib import contextmanager
from typing import Iterator, Sequence

from image_installer.exceptions import InterruptedRunError
from image_installer.logging import LoggerFactory
from image_installer.storage.tracker import ResourceTracker


log = LoggerFactory.for_system()

CANCEL_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


@contextmanager
def cleanup_on_signals(
    tracker: ResourceTracker,
    signals: Sequence[signal.Signals] = CANCEL_SIGNALS,
) -> Iterator[None]:
    """Abort the run when a cancel signal arrives.

    The handler only raises ``InterruptedRunError``; the release itself is
    left to the tracker's own exit, which runs after ``subprocess.run`` has
    killed and reaped a delegate that was in progress. A signal that lands
    once cleanup has started is only logged.
    """

    def _handler(signum, frame):
        name = signal.Signals(signum).name
        if tracker.cleanup_started:
            log.warning(f"Received {name} during cleanup, finishing cleanup first")
            return
        log.warning(f"Received {name}, cancelling installation")
        raise InterruptedRunError(signum, name)

    previous = {sig: signal.signal(sig, _handler) for sig in signals}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            # None means the previous handler was not installed from Python
            signal.signal(sig, signal.SIG_DFL if handler is None else handler)
