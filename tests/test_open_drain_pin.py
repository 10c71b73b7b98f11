from __future__ import annotations

import pytest
from gpiozero import DigitalOutputDevice
from gpiozero.pins.mock import MockFactory

from pinflash.util_baseclasses import PinUnavailableException
from pinflash.util_constants import Pull
from pinflash.util_open_drain_pin import OpenDrainPin, OpenDrainState


def test_low_and_open(pin_factory: MockFactory) -> None:
    mock_pin = pin_factory.pin(4)
    with OpenDrainPin(4, label="boot", pin_factory=pin_factory) as pin:
        assert pin.drain_state is OpenDrainState.OPEN
        assert mock_pin.function == "input"
        assert mock_pin.pull == "up"

        pin.set_low()
        assert pin.is_asserted
        assert mock_pin.function == "output"
        assert not mock_pin.state

        pin.set(OpenDrainState.OPEN)
        assert not pin.is_asserted
        assert mock_pin.function == "input"
        assert mock_pin.state

    assert pin.closed


def test_close_releases(pin_factory: MockFactory) -> None:
    mock_pin = pin_factory.pin(4)
    pin = OpenDrainPin(4, label="boot", pin_factory=pin_factory)
    pin.set_low()
    pin.close()

    assert mock_pin.function == "input"
    assert mock_pin.pull == "up"
    # Given back: may be claimed again
    DigitalOutputDevice(4, pin_factory=pin_factory).close()


def test_pull_down(pin_factory: MockFactory) -> None:
    mock_pin = pin_factory.pin(4)
    with OpenDrainPin(4, label="boot", pull=Pull.DOWN, pin_factory=pin_factory):
        assert mock_pin.pull == "down"
        assert not mock_pin.state


def test_in_use(pin_factory: MockFactory) -> None:
    with OpenDrainPin(4, label="boot", pin_factory=pin_factory):
        with pytest.raises(PinUnavailableException) as e:
            OpenDrainPin(4, label="boot", pin_factory=pin_factory)
    assert e.value.pin == 4
    assert "boot" in e.value.reason


class _BackendBusyError(Exception):
    """
    Like 'lgpio.error': A plain Exception raised by the gpio backend
    when the line is claimed by another process.
    """


def test_claimed_by_other_process(
    pin_factory: MockFactory, monkeypatch: pytest.MonkeyPatch
) -> None:
    pin_orig = pin_factory.pin

    def pin_busy(spec, *args, **kwargs):
        raise _BackendBusyError("GPIO busy")

    monkeypatch.setattr(pin_factory, "pin", pin_busy)
    with pytest.raises(PinUnavailableException) as e:
        OpenDrainPin(4, label="boot", pin_factory=pin_factory)
    assert e.value.pin == 4
    assert "GPIO busy" in e.value.reason

    # The reservation has been given back
    monkeypatch.setattr(pin_factory, "pin", pin_orig)
    DigitalOutputDevice(4, pin_factory=pin_factory).close()
