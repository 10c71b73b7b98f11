from __future__ import annotations

import contextlib
import logging
import signal
import threading
import typing
from collections.abc import Iterator

from .util_baseclasses import SignalInterruptException

logger = logging.getLogger(__file__)

SIGNALS_RELEASING_PINS = (signal.SIGTERM, signal.SIGHUP)
"""
SIGINT is not listed: Python already raises KeyboardInterrupt.
SIGKILL can not be handled: The pins stay as they are.
"""


def _raise_signal_interrupt(signum: int, frame: typing.Any) -> None:
    logger.warning(f"Received signal {signal.Signals(signum).name}")
    raise SignalInterruptException(signum=signum)


@contextlib.contextmanager
def signal_guard() -> Iterator[None]:
    """
    While inside this guard, SIGTERM and SIGHUP raise SignalInterruptException.
    The stack unwinds and all 'finally' blocks run: The pins get released.

    Signal handlers may only be installed from the main thread.
    In any other thread, this guard does nothing.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    handlers_before = {
        signum: signal.signal(signum, _raise_signal_interrupt)
        for signum in SIGNALS_RELEASING_PINS
    }
    try:
        yield
    finally:
        for signum, handler in handlers_before.items():
            # None: The handler was not installed from python
            signal.signal(signum, signal.SIG_DFL if handler is None else handler)
