from __future__ import annotations

import dataclasses
import typing
from collections.abc import Iterator

import pytest
from gpiozero import Device
from gpiozero.pins.mock import MockFactory

from pinflash import lib_reset_sequencer
from pinflash.util_open_drain_pin import OpenDrainPin


@pytest.fixture
def pin_factory(monkeypatch: pytest.MonkeyPatch) -> Iterator[MockFactory]:
    """
    A mocked gpio factory. Also installed as the gpiozero default.
    """
    factory = MockFactory()
    monkeypatch.setattr(Device, "pin_factory", factory)
    yield factory
    factory.reset()


@dataclasses.dataclass
class Recorder:
    """
    Records pin changes and tool invocations in the order they happen.

    Example: [("boot", "low"), ("reset", "low"), ("reset", "open"), ("tool", [...])]
    """

    events: list[tuple[str, typing.Any]] = dataclasses.field(default_factory=list)
    tool_returncode: int = 0
    tool_exception: BaseException | None = None
    tool_callback: typing.Callable[[], None] | None = None

    @property
    def tool_calls(self) -> list[list[str]]:
        return [args for label, args in self.events if label == "tool"]

    def labels(self, label: str) -> list[typing.Any]:
        return [state for _label, state in self.events if _label == label]

    def index(self, event: tuple[str, typing.Any], start: int = 0) -> int:
        return self.events.index(event, start)


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch) -> Recorder:
    rec = Recorder()

    set_low_orig = OpenDrainPin.set_low
    set_open_orig = OpenDrainPin.set_open

    def set_low(self: OpenDrainPin) -> None:
        set_low_orig(self)
        rec.events.append((self.label, "low"))

    def set_open(self: OpenDrainPin) -> None:
        set_open_orig(self)
        rec.events.append((self.label, "open"))

    def subprocess_run(args: list[str], **kwargs: typing.Any) -> int:
        rec.events.append(("tool", list(args)))
        if rec.tool_callback is not None:
            rec.tool_callback()
        if rec.tool_exception is not None:
            raise rec.tool_exception
        return rec.tool_returncode

    monkeypatch.setattr(OpenDrainPin, "set_low", set_low)
    monkeypatch.setattr(OpenDrainPin, "set_open", set_open)
    monkeypatch.setattr(lib_reset_sequencer, "subprocess_run", subprocess_run)
    return rec
