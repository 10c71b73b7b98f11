import enum

ENV_PINFLASH_CONFIG = "PINFLASH_CONFIG"
"""
Path to the toml configuration file, used if '--config' is not given.
"""

TOOL_DEFAULT = "esptool.py"
"""
The flashing tool which receives the forwarded command line arguments.
"""

BOOT_DELAY_S = 0.020
"""
Delay after changing the boot pin before the reset pin is touched.
"""

RESET_PULSE_S = 0.100
"""
Duration the reset pin is held low.
"""

SETTLE_S = 0.100
"""
Delay after releasing reset: The bootloader is ready to communicate.
"""

TOOL_TERMINATE_TIMEOUT_S = 5.0
"""
Grace period for the flashing tool after 'terminate()' before it gets killed.
"""

EXIT_CODE_USAGE = 2
EXIT_CODE_PIN_UNAVAILABLE = 3
EXIT_CODE_TIMEOUT = 124
"""
The flashing tool has been terminated after the timeout, like 'timeout(1)'.
"""
EXIT_CODE_TOOL_NOT_FOUND = 127
EXIT_CODE_SIGNAL_BASE = 128
"""
Killed by signal N: exit code 128+N, like the shell does.
"""


class Pull(enum.StrEnum):
    """
    Pull resistor of a released (open) pin.
    These values are the ones gpiozero uses for 'Pin.pull'.
    """

    UP = "up"
    DOWN = "down"
    FLOATING = "floating"
