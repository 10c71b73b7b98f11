from __future__ import annotations

from .util_constants import (
    EXIT_CODE_PIN_UNAVAILABLE,
    EXIT_CODE_SIGNAL_BASE,
    EXIT_CODE_USAGE,
)


class PinflashAppExitException(Exception):
    """
    This exception terminates the application

    When this exception is thrown, everything has been handled and logged.
    When this exception is caught, the only thing left to do is
    to print the message and exit.
    """

    exit_code = EXIT_CODE_USAGE


class PinUnavailableException(PinflashAppExitException):
    """
    A gpio pin could not be claimed:
    Already in use, insufficient permissions or the pin does not exist.

    No reset pulse has been issued and the flashing tool has not been started.
    """

    exit_code = EXIT_CODE_PIN_UNAVAILABLE

    def __init__(self, pin: int | str, reason: str):
        self.pin = pin
        self.reason = reason
        super().__init__(f"GPIO pin {pin} is not available: {reason}")


class FlashToolFailureException(Exception):
    """
    The flashing tool terminated with a returncode other than 0.
    The pins have already been released when this exception is caught.
    """

    def __init__(self, msg: str, returncode: int):
        assert isinstance(msg, str)
        assert isinstance(returncode, int)
        self.returncode = returncode
        super().__init__(msg)


class SignalInterruptException(Exception):
    """
    Raised by the signal handler which is installed while the pins are held.
    Unwinding the stack releases the pins.
    """

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"Interrupted by signal {signum}")

    @property
    def exit_code(self) -> int:
        return EXIT_CODE_SIGNAL_BASE + self.signum
