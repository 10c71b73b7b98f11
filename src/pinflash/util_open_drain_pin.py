"""
Open drain emulation on a gpio of the host.

The target (for example an ESP8266) has pull-ups on its boot and reset pins.
The host must never drive these lines high: It either pulls them low
(output, level 0) or releases them (input with pull-up).
"""

from __future__ import annotations

import enum
import logging

from gpiozero import GPIODevice
from gpiozero.pins import Factory

from .util_baseclasses import PinUnavailableException
from .util_constants import Pull

logger = logging.getLogger(__file__)


class OpenDrainState(enum.StrEnum):
    LOW = "low"
    """
    Output, driven low: Asserted
    """
    OPEN = "open"
    """
    Input, pull resistor: Released
    """


class OpenDrainPin(GPIODevice):
    """
    Claims the gpio exclusively for the lifetime of this object.

    'close()' always leaves the pin released (OpenDrainState.OPEN)
    and returns the pin to the pin factory.
    """

    def __init__(
        self,
        pin: int | str,
        label: str,
        pull: Pull = Pull.UP,
        pin_factory: Factory | None = None,
    ) -> None:
        assert isinstance(label, str)
        self._label = label
        self._pull_open = Pull(pull)
        self._drain_state = OpenDrainState.OPEN
        try:
            super().__init__(pin, pin_factory=pin_factory)
            self.set_open()
        except Exception as e:
            # gpiozero only knows the pins claimed by this process.
            # A line claimed by another process is reported by the backend,
            # for example 'lgpio.error: GPIO busy', which is a plain Exception.
            # The pin might be half initialized: Give it back.
            self.close()
            raise PinUnavailableException(pin=pin, reason=f"{label}: {e!r}") from e

    @property
    def label(self) -> str:
        return self._label

    @property
    def drain_state(self) -> OpenDrainState:
        return self._drain_state

    @property
    def is_asserted(self) -> bool:
        return self._drain_state is OpenDrainState.LOW

    def set_low(self) -> None:
        logger.info(f"{self._label}: pin {self.pin} low")
        # 'output_with_state' sets the level before the mode changes: no glitch
        self.pin.output_with_state(False)
        self._drain_state = OpenDrainState.LOW

    def set_open(self) -> None:
        logger.info(f"{self._label}: pin {self.pin} open (pull {self._pull_open})")
        self.pin.input_with_pull(str(self._pull_open))
        self._drain_state = OpenDrainState.OPEN

    def set(self, state: OpenDrainState) -> None:
        if state is OpenDrainState.LOW:
            self.set_low()
            return
        self.set_open()

    def close(self) -> None:
        if getattr(self, "_pin", None) is not None:
            try:
                self.set_open()
            finally:
                super().close()
            return
        factory = getattr(self, "pin_factory", None)
        if factory is not None:
            # Reserved, but the backend refused the pin
            factory.release_all(self)
        super().close()

    def __repr__(self) -> str:
        if self.closed:
            return f"<{self.__class__.__name__} {self._label} closed>"
        return (
            f"<{self.__class__.__name__} {self._label} "
            f"pin={self.pin} state={self._drain_state}>"
        )
