"""Safe construction of QEMU command-line arguments.

Only a fixed set of QEMU options is accepted, each with a declared kind of
value. Values are checked for characters that would change how QEMU parses
them, and every value is shell-quoted when encoded.
"""

from __future__ import annotations

import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class ArgAcceptedValue(str, Enum):
    """The kind of value a QEMU option takes."""

    UINT = "uint"
    STRING = "string"
    KEY_VALUE = "kv"
    NONE = "none"


_SAFE_ARGS: dict[str, ArgAcceptedValue] = {
    "accel": ArgAcceptedValue.KEY_VALUE,
    "boot": ArgAcceptedValue.STRING,
    "m": ArgAcceptedValue.UINT,
    "smp": ArgAcceptedValue.UINT,
    "device": ArgAcceptedValue.KEY_VALUE,
    "netdev": ArgAcceptedValue.KEY_VALUE,
    "serial": ArgAcceptedValue.STRING,
    "cdrom": ArgAcceptedValue.STRING,
    "machine": ArgAcceptedValue.KEY_VALUE,
    "cpu": ArgAcceptedValue.STRING,
    "display": ArgAcceptedValue.STRING,
    "drive": ArgAcceptedValue.KEY_VALUE,
    "bios": ArgAcceptedValue.STRING,
}

_MAX_UINT64 = 2**64 - 1


def _validate_arg_key(key: str, value_type: ArgAcceptedValue) -> None:
    allowed = _SAFE_ARGS.get(key)
    if allowed is None:
        raise ValueError(f"unknown safe arg '{key}'")
    if allowed != value_type:
        raise ValueError(
            f"bad arg value type: want '{allowed.value}', have '{value_type.value}'"
        )


def _validate_arg_str_value(s: str) -> None:
    if "," in s:
        raise ValueError("commas are not allowed")
    if "\\" in s:
        # Backslashes rarely work as intended; Windows paths should use forward slashes.
        raise ValueError("backslashes are not allowed")
    if "=" in s:
        raise ValueError("equals sign is not allowed")


class Arg(ABC):
    """A single QEMU option with its value."""

    value_type: ArgAcceptedValue

    def __init__(self, key: str) -> None:
        try:
            _validate_arg_key(key, self.value_type)
        except ValueError as e:
            raise ValueError(f"validate arg key: {e}") from e
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    @abstractmethod
    def string_value(self) -> str:
        """The option's value as it appears on the command line, unquoted."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._key!r}, {self.string_value()!r})"


class FlagArg(Arg):
    """An option that takes no value."""

    value_type = ArgAcceptedValue.NONE

    def __init__(self, key: str) -> None:
        super().__init__(key)

    def string_value(self) -> str:
        return ""


@dataclass(frozen=True)
class KeyValueArgItem:
    key: str
    value: str = ""


class KeyValueArg(Arg):
    """An option whose value is a comma-separated list of ``key[=value]`` items."""

    value_type = ArgAcceptedValue.KEY_VALUE

    def __init__(self, key: str, items: Iterable[KeyValueArgItem]) -> None:
        super().__init__(key)
        checked: list[KeyValueArgItem] = []
        for item in items:
            if not item.key:
                raise ValueError("empty key not allowed")
            try:
                _validate_arg_str_value(item.key)
            except ValueError as e:
                raise ValueError(f"validate key '{item.key}': {e}") from e
            try:
                _validate_arg_str_value(item.value)
            except ValueError as e:
                raise ValueError(f"validate map value '{item.value}': {e}") from e
            checked.append(KeyValueArgItem(item.key, item.value))
        self._items = tuple(checked)

    @property
    def items(self) -> tuple[KeyValueArgItem, ...]:
        return self._items

    def string_value(self) -> str:
        return ",".join(
            f"{item.key}={item.value}" if item.value else item.key
            for item in self._items
            if item.key
        )


class StringArg(Arg):
    """An option with a plain string value."""

    value_type = ArgAcceptedValue.STRING

    def __init__(self, key: str, value: str) -> None:
        super().__init__(key)
        try:
            _validate_arg_str_value(value)
        except ValueError as e:
            raise ValueError(f"validate str value: {e}") from e
        self._value = value

    def string_value(self) -> str:
        return self._value


class UintArg(Arg):
    """An option with an unsigned integer value."""

    value_type = ArgAcceptedValue.UINT

    def __init__(self, key: str, value: int) -> None:
        super().__init__(key)
        value = int(value)
        if not 0 <= value <= _MAX_UINT64:
            raise ValueError(f"value {value} is out of unsigned 64-bit range")
        self._value = value

    def string_value(self) -> str:
        return str(self._value)


def encode_arg(arg: Arg) -> tuple[str, str | None]:
    """Encode one argument as ``(flag, quoted value)``; the value is None for flags."""
    key = arg.key
    value_type = arg.value_type
    try:
        _validate_arg_key(key, value_type)
    except ValueError as e:
        raise ValueError(f"validate arg key: {e}") from e

    if value_type == ArgAcceptedValue.NONE:
        if arg.string_value() != "":
            raise ValueError(
                f"arg returned a value while declaring no value (type {type(arg).__name__})"
            )
        return key, None

    value = arg.string_value()
    if value == "":
        raise ValueError(
            f"empty string value while declaring non-empty value (type {type(arg).__name__})"
        )
    return "-" + key, shlex.quote(value)


def encode_args(args: Iterable[Arg]) -> list[str]:
    """Encode a sequence of arguments into a flat command-line list."""
    out: list[str] = []
    for i, arg in enumerate(args):
        try:
            flag, value = encode_arg(arg)
        except ValueError as e:
            raise ValueError(f"encode flag #{i}: {e}") from e
        out.append(flag)
        if value is not None:
            out.append(value)
    return out