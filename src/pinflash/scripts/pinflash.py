from __future__ import annotations

import contextlib
import logging
import pathlib
from collections.abc import Iterator
from typing import Optional

import typer
import typing_extensions

from ..lib_reset_sequencer import ResetSequencer
from ..util_baseclasses import (
    FlashToolFailureException,
    PinflashAppExitException,
    SignalInterruptException,
)
from ..util_config import Configuration
from ..util_constants import ENV_PINFLASH_CONFIG, EXIT_CODE_SIGNAL_BASE
from ..util_recipe import resolve_recipe
from .pinflash_logging import init_logging

# 'typer' does not work correctly with typing.Annotated
# Required is: typing_extensions.Annotated
TyperAnnotated = typing_extensions.Annotated

# mypy: disable-error-code="valid-type"

logger = logging.getLogger(__file__)

app = typer.Typer(
    help="Reboot a microcontroller into its bootloader using gpios and run a flashing tool."
)

_ConfigAnnotation = TyperAnnotated[
    Optional[pathlib.Path],  # noqa: UP045
    typer.Option(
        help="Configuration file (toml): pins, timing and recipes.",
        envvar=ENV_PINFLASH_CONFIG,
        exists=True,
        dir_okay=False,
    ),
]
_BootPinAnnotation = TyperAnnotated[
    Optional[int],  # noqa: UP045
    typer.Option(help="GPIO held low to select the bootloader (BCM numbering)."),
]
_ResetPinAnnotation = TyperAnnotated[
    Optional[int],  # noqa: UP045
    typer.Option(help="GPIO pulsed low to reset the target (BCM numbering)."),
]
_DebugAnnotation = TyperAnnotated[
    bool,
    typer.Option(help="Log debug messages."),
]


@contextlib.contextmanager
def _exit_code() -> Iterator[None]:
    """
    Translate the exceptions into the exit code of this program.
    The pins have been released when we get here.
    """
    try:
        yield
    except PinflashAppExitException as e:
        logger.error(f"[COLOR_ERROR]{e}")
        raise typer.Exit(code=e.exit_code) from e
    except FlashToolFailureException as e:
        logger.error(f"[COLOR_FAILED]{e}")
        raise typer.Exit(code=e.returncode) from e
    except SignalInterruptException as e:
        logger.error(f"[COLOR_ERROR]{e}")
        raise typer.Exit(code=e.exit_code) from e
    except KeyboardInterrupt as e:
        logger.error("[COLOR_ERROR]Interrupted by keyboard")
        raise typer.Exit(code=EXIT_CODE_SIGNAL_BASE + 2) from e


@app.command(
    help="Hold the boot pin low, reset the target and run the flashing tool. "
    "All ARGS and unknown options are forwarded to the flashing tool. "
    "Use '--' to forward options which collide with ours.",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def flash(
    args: TyperAnnotated[
        Optional[list[str]],  # noqa: UP045
        typer.Argument(
            help="Recipe name or arguments for the flashing tool.",
            show_default=False,
        ),
    ] = None,
    config: _ConfigAnnotation = None,
    boot_pin: _BootPinAnnotation = None,
    reset_pin: _ResetPinAnnotation = None,
    tool: TyperAnnotated[
        Optional[str],  # noqa: UP045
        typer.Option(help="The flashing tool. Default: esptool.py"),
    ] = None,
    settle_ms: TyperAnnotated[
        Optional[float],  # noqa: UP045
        typer.Option(help="Delay after the reset pulse until the tool is started."),
    ] = None,
    reboot_after_ms: TyperAnnotated[
        Optional[float],  # noqa: UP045
        typer.Option(
            help="Reboot into the application while the tool is still running, "
            "for example for a serial monitor."
        ),
    ] = None,
    logfile: TyperAnnotated[
        Optional[pathlib.Path],  # noqa: UP045
        typer.Option(help="Write the output of the flashing tool to this file."),
    ] = None,
    timeout_s: TyperAnnotated[
        Optional[float],  # noqa: UP045
        typer.Option(help="Terminate the flashing tool after this time."),
    ] = None,
    debug: _DebugAnnotation = False,
) -> None:
    init_logging(logging.DEBUG if debug else None)

    with _exit_code():
        configuration = Configuration.load(config).override(
            boot_pin=boot_pin,
            reset_pin=reset_pin,
            tool=tool,
            settle_ms=settle_ms,
        )
        recipe = resolve_recipe(
            args=[] if args is None else args,
            tool=configuration.tool,
            recipes=configuration.recipes,
            default_recipe=configuration.default_recipe,
        )
        sequencer = ResetSequencer(
            boot=configuration.boot_mandatory,
            reset=configuration.reset,
            timing=configuration.timing,
        )
        reboot_after_s = None
        if reboot_after_ms is not None:
            reboot_after_s = reboot_after_ms / 1000.0
        sequencer.flash(
            recipe=recipe,
            logfile=logfile,
            timeout_s=timeout_s,
            reboot_after_s=reboot_after_s,
        )


@app.command(help="Release the boot pin and reset the target into the application.")
def reset(
    config: _ConfigAnnotation = None,
    boot_pin: _BootPinAnnotation = None,
    reset_pin: _ResetPinAnnotation = None,
    debug: _DebugAnnotation = False,
) -> None:
    init_logging(logging.DEBUG if debug else None)

    with _exit_code():
        configuration = Configuration.load(config).override(
            boot_pin=boot_pin,
            reset_pin=reset_pin,
        )
        sequencer = ResetSequencer(
            boot=configuration.boot_mandatory,
            reset=configuration.reset,
            timing=configuration.timing,
        )
        sequencer.reboot()


@app.command(help="List the recipes of the configuration file.")
def recipes(config: _ConfigAnnotation = None) -> None:
    init_logging()

    with _exit_code():
        configuration = Configuration.load(config)
        if len(configuration.recipes) == 0:
            print("No recipes configured.")
            return
        for name, recipe in configuration.recipes.items():
            default = " (default)" if name == configuration.default_recipe else ""
            print(f"{name}{default}: {recipe.text}")


if __name__ == "__main__":
    app()
