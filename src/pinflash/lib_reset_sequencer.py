"""
Bring the target into its bootloader, run the flashing tool and
boot the target into the application again.

  boot pin low -> reset pulse -> settle -> flashing tool -> boot pin open -> reset pulse

The boot pin is released on every exit path:
Tool failure, missing tool, KeyboardInterrupt, SIGTERM, SIGHUP.
"""

from __future__ import annotations

import contextlib
import logging
import pathlib
import threading
import time
from collections.abc import Iterator

from gpiozero.pins import Factory

from .util_baseclasses import PinflashAppExitException
from .util_config import PinConfig, Timing
from .util_open_drain_pin import OpenDrainPin
from .util_recipe import Recipe
from .util_signal import signal_guard
from .util_subprocess import subprocess_run

logger = logging.getLogger(__file__)


class TargetPins:
    """
    The claimed pins of one target.
    Pin changes are serialized as the reboot thread might access them too.
    """

    def __init__(
        self, boot: OpenDrainPin, reset: OpenDrainPin | None, timing: Timing
    ) -> None:
        assert isinstance(boot, OpenDrainPin)
        assert isinstance(reset, OpenDrainPin | None)
        assert isinstance(timing, Timing)
        self.boot = boot
        self.reset = reset
        self.timing = timing
        self._lock = threading.Lock()

    def _pulse_reset(self) -> None:
        if self.reset is None:
            logger.warning("No reset pin: Please power cycle the target now.")
            return
        self.reset.set_low()
        time.sleep(self.timing.reset_pulse_s)
        self.reset.set_open()

    def enter_boot_mode(self) -> None:
        with self._lock:
            self.boot.set_low()
            time.sleep(self.timing.boot_delay_s)
            self._pulse_reset()
            time.sleep(self.timing.settle_s)

    def boot_application(self) -> None:
        with self._lock:
            self.boot.set_open()
            time.sleep(self.timing.boot_delay_s)
            self._pulse_reset()


class RebootThread:
    """
    Boots the target into the application after 'delay_s'
    while the flashing tool is still running.

    Some tools (a serial monitor for example) stay connected and
    expect the target to leave the bootloader.
    """

    def __init__(self, pins: TargetPins, delay_s: float) -> None:
        assert isinstance(pins, TargetPins)
        assert isinstance(delay_s, float)
        self._pins = pins
        self._delay_s = delay_s
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run)
        self._thread.daemon = True
        self._thread.name = "reboot after delay"

    def _run(self) -> None:
        if self._stopped.wait(timeout=self._delay_s):
            return
        logger.info(f"Reboot into application after {self._delay_s:0.3f}s.")
        self._pins.boot_application()

    def __enter__(self) -> RebootThread:
        self._thread.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self._stopped.set()
        self._thread.join()


class ResetSequencer:
    def __init__(
        self,
        boot: PinConfig,
        reset: PinConfig | None = None,
        timing: Timing | None = None,
        pin_factory: Factory | None = None,
    ) -> None:
        """
        'pin_factory': None selects the gpiozero default (lgpio on a Raspberry Pi).
        """
        assert isinstance(boot, PinConfig)
        assert isinstance(reset, PinConfig | None)
        assert isinstance(timing, Timing | None)
        if reset is not None and reset.pin == boot.pin:
            raise PinflashAppExitException(
                f"Boot pin and reset pin must differ: Both are {boot.pin}."
            )
        self.boot = boot
        self.reset = reset
        self.timing = Timing() if timing is None else timing
        self.pin_factory = pin_factory

    @contextlib.contextmanager
    def claim_pins(self) -> Iterator[TargetPins]:
        """
        Claims all pins before any pin is driven.
        Raises PinUnavailableException if a pin may not be claimed.
        On exit, all pins are released and given back.
        """
        with contextlib.ExitStack() as stack:
            boot = stack.enter_context(
                OpenDrainPin(
                    self.boot.pin,
                    label="boot",
                    pull=self.boot.pull,
                    pin_factory=self.pin_factory,
                )
            )
            reset = None
            if self.reset is not None:
                reset = stack.enter_context(
                    OpenDrainPin(
                        self.reset.pin,
                        label="reset",
                        pull=self.reset.pull,
                        pin_factory=self.pin_factory,
                    )
                )
            yield TargetPins(boot=boot, reset=reset, timing=self.timing)

    def flash(
        self,
        recipe: Recipe,
        logfile: pathlib.Path | None = None,
        timeout_s: float | None = None,
        reboot_after_s: float | None = None,
    ) -> int:
        """
        Returns the returncode of the flashing tool.
        Raises FlashToolFailureException if the tool failed:
        The pins have been released before.
        """
        assert isinstance(recipe, Recipe)

        with signal_guard(), self.claim_pins() as pins:
            try:
                logger.info("[COLOR_INFO]Reboot target into boot mode.")
                pins.enter_boot_mode()
                logger.info(f"[COLOR_INFO]Executing {recipe.text}")
                with contextlib.ExitStack() as stack:
                    if reboot_after_s is not None:
                        stack.enter_context(RebootThread(pins, delay_s=reboot_after_s))
                    returncode = subprocess_run(
                        args=recipe.args,
                        logfile=logfile,
                        timeout_s=timeout_s,
                    )
            finally:
                logger.info("[COLOR_INFO]Reboot target into application.")
                pins.boot_application()

        logger.info("[COLOR_SUCCESS]Done!")
        return returncode

    def reboot(self) -> None:
        """
        Reboot the target into the application: Boot pin open and a reset pulse.
        """
        if self.reset is None:
            raise PinflashAppExitException(
                "No reset pin given: Use '--reset-pin' or [reset] in the configuration."
            )
        with signal_guard(), self.claim_pins() as pins:
            logger.info("[COLOR_INFO]Reboot target into application.")
            pins.boot_application()
        logger.info("[COLOR_SUCCESS]Done!")
