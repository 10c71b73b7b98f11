"""
Configuration of the pins, timing and recipes.

Example 'pinflash.toml':

  tool = "esptool.py"
  default_recipe = "flash"

  [boot]
  pin = 4

  [reset]
  pin = 17
  pull = "up"

  [timing]
  settle_ms = 200

  [recipes.flash]
  command = "esptool.py"
  arguments = ["--port", "/dev/ttyUSB0", "write_flash", "0x0", "firmware.bin"]

Values given on the command line override the values from the file.
"""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import tomllib
import typing

from .util_baseclasses import PinflashAppExitException
from .util_constants import (
    BOOT_DELAY_S,
    RESET_PULSE_S,
    SETTLE_S,
    TOOL_DEFAULT,
    Pull,
)
from .util_recipe import Recipe

logger = logging.getLogger(__file__)


@dataclasses.dataclass(frozen=True)
class PinConfig:
    pin: int
    pull: Pull = Pull.UP

    @staticmethod
    def from_dict(label: str, d: typing.Any) -> PinConfig:
        if not isinstance(d, dict):
            raise ValueError(f"[{label}] must be a table!")
        pin = d.get("pin", None)
        if not isinstance(pin, int) or isinstance(pin, bool) or pin < 0:
            raise ValueError(f"[{label}] 'pin' must be a positive integer!")
        try:
            pull = Pull(d.get("pull", Pull.UP))
        except ValueError as e:
            choices = ", ".join(p.value for p in Pull)
            raise ValueError(f"[{label}] 'pull' must be one of: {choices}") from e
        return PinConfig(pin=pin, pull=pull)


@dataclasses.dataclass(frozen=True)
class Timing:
    boot_delay_s: float = BOOT_DELAY_S
    reset_pulse_s: float = RESET_PULSE_S
    settle_s: float = SETTLE_S

    @staticmethod
    def from_dict(d: typing.Any) -> Timing:
        if not isinstance(d, dict):
            raise ValueError("[timing] must be a table!")

        def get_s(key: str, default_s: float) -> float:
            value_ms = d.get(key, None)
            if value_ms is None:
                return default_s
            if not isinstance(value_ms, int | float) or value_ms < 0:
                raise ValueError(f"[timing] '{key}' must be a positive number!")
            return value_ms / 1000.0

        return Timing(
            boot_delay_s=get_s("boot_delay_ms", BOOT_DELAY_S),
            reset_pulse_s=get_s("reset_pulse_ms", RESET_PULSE_S),
            settle_s=get_s("settle_ms", SETTLE_S),
        )


@dataclasses.dataclass(frozen=True)
class Configuration:
    boot: PinConfig | None = None
    """
    GPIO connected to the boot-select pin of the target (e.g. GPIO0 on an ESP)
    """
    reset: PinConfig | None = None
    """
    GPIO connected to the reset pin of the target (e.g. EN on an ESP)
    """
    timing: Timing = dataclasses.field(default_factory=Timing)
    tool: str = TOOL_DEFAULT
    default_recipe: str | None = None
    recipes: dict[str, Recipe] = dataclasses.field(default_factory=dict)

    @staticmethod
    def from_dict(d: dict[str, typing.Any]) -> Configuration:
        boot = None if "boot" not in d else PinConfig.from_dict("boot", d["boot"])
        reset = None if "reset" not in d else PinConfig.from_dict("reset", d["reset"])
        timing = Timing() if "timing" not in d else Timing.from_dict(d["timing"])

        tool = d.get("tool", TOOL_DEFAULT)
        if not isinstance(tool, str) or tool == "":
            raise ValueError("'tool' must be a non empty string!")

        recipes_dict = d.get("recipes", {})
        if not isinstance(recipes_dict, dict):
            raise ValueError("[recipes] must be a table!")
        recipes = {
            name: Recipe.from_dict(name, recipe)
            for name, recipe in recipes_dict.items()
        }

        default_recipe = d.get("default_recipe", None)
        if default_recipe is not None and default_recipe not in recipes:
            raise ValueError(
                f"The default recipe '{default_recipe}' does not match any of the given recipes."
            )

        return Configuration(
            boot=boot,
            reset=reset,
            timing=timing,
            tool=tool,
            default_recipe=default_recipe,
            recipes=recipes,
        )

    @staticmethod
    def load(filename: pathlib.Path | None) -> Configuration:
        """
        Without a file, the defaults are returned.
        """
        if filename is None:
            return Configuration()
        logger.debug(f"Configuration: {filename}")
        try:
            d = tomllib.loads(filename.read_text())
        except OSError as e:
            raise PinflashAppExitException(
                f"Could not read configuration {filename}: {e}"
            ) from e
        except tomllib.TOMLDecodeError as e:
            raise PinflashAppExitException(
                f"Configuration {filename} is not valid toml: {e}"
            ) from e
        try:
            return Configuration.from_dict(d)
        except ValueError as e:
            raise PinflashAppExitException(f"Configuration {filename}: {e}") from e

    def override(
        self,
        boot_pin: int | None = None,
        reset_pin: int | None = None,
        tool: str | None = None,
        settle_ms: float | None = None,
    ) -> Configuration:
        """
        Apply the values given on the command line.
        """
        c = self
        if boot_pin is not None:
            pull = Pull.UP if c.boot is None else c.boot.pull
            c = dataclasses.replace(c, boot=PinConfig(pin=boot_pin, pull=pull))
        if reset_pin is not None:
            pull = Pull.UP if c.reset is None else c.reset.pull
            c = dataclasses.replace(c, reset=PinConfig(pin=reset_pin, pull=pull))
        if tool is not None:
            c = dataclasses.replace(c, tool=tool)
        if settle_ms is not None:
            c = dataclasses.replace(
                c, timing=dataclasses.replace(c.timing, settle_s=settle_ms / 1000.0)
            )
        return c

    @property
    def boot_mandatory(self) -> PinConfig:
        if self.boot is None:
            raise PinflashAppExitException(
                "No boot pin given: Use '--boot-pin' or [boot] in the configuration."
            )
        return self.boot
