from __future__ import annotations

import dataclasses
import typing


@dataclasses.dataclass(frozen=True)
class Recipe:
    """
    A command line to be executed while the target is in boot mode.

    Example (toml):
      [recipes.flash]
      command = "esptool.py"
      arguments = ["--port", "/dev/ttyUSB0", "write_flash", "0x0", "firmware.bin"]
    """

    command: str
    arguments: tuple[str, ...] = ()

    @property
    def args(self) -> list[str]:
        return [self.command, *self.arguments]

    @property
    def text(self) -> str:
        return " ".join(self.args)

    @staticmethod
    def from_dict(name: str, d: dict[str, typing.Any]) -> Recipe:
        command = d.get("command", None)
        if not isinstance(command, str) or command == "":
            raise ValueError(f"Recipe '{name}': 'command' must be a non empty string!")
        arguments = d.get("arguments", [])
        if not isinstance(arguments, list):
            raise ValueError(f"Recipe '{name}': 'arguments' must be a list!")
        for argument in arguments:
            if not isinstance(argument, str):
                raise ValueError(
                    f"Recipe '{name}': argument {argument!r} must be a string!"
                )
        return Recipe(command=command, arguments=tuple(arguments))


def resolve_recipe(
    args: list[str],
    tool: str,
    recipes: dict[str, Recipe],
    default_recipe: str | None,
) -> Recipe:
    """
    No 'args': The default recipe is used, if configured.
    A single argument naming a recipe: This recipe is used.
    Otherwise all 'args' are forwarded verbatim to 'tool'.
    """
    assert isinstance(args, list)
    assert isinstance(tool, str)

    if len(args) == 0 and default_recipe is not None:
        return recipes[default_recipe]
    if len(args) == 1:
        recipe = recipes.get(args[0], None)
        if recipe is not None:
            return recipe
    return Recipe(command=tool, arguments=tuple(args))
