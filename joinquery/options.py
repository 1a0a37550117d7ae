"""Command-line option parsing driven by a compact specification string.

A specification is a comma separated list of ``name:type`` entries, for
example ``"w:p,q:p,s:n"``.  The type is one character:

* ``c`` a single character
* ``p`` a string
* ``i`` a signed integer
* ``u`` a non-negative integer
* ``f`` a single precision float
* ``d`` a double precision float
* ``n`` a flag that takes no value

A value type followed by ``n`` (``"x:pn"``) marks the option as optional:
when it is absent its result is ``(OptionKind.BOOL, True)``.  On the command
line an option is written with one leading character, normally a dash,
followed by its name (``-w``).
"""

from __future__ import annotations

import re
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

__all__ = [
    "OptionError",
    "OptionKind",
    "is_int_numeric",
    "is_float_numeric",
    "getopts",
]

_DIGITS = frozenset("0123456789")
_TYPE_CODES = frozenset("cpiufdn")
_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+))")


class OptionError(ValueError):
    """Raised when the command line does not satisfy the specification."""


class OptionKind(Enum):
    """The kind of value an option produced."""

    BOOL = 0
    CHAR = 1
    CHAR_POINTER = 2
    INT = 3
    UNSIGNED_INT = 4
    FLOAT = 5
    DOUBLE = 6


@dataclass(frozen=True)
class _Entry:
    name: str
    code: str
    optional: bool


def is_int_numeric(text: str) -> bool:
    """Return True if *text* is digits, optionally preceded by one dash."""
    count = 0
    dash = False
    for ch in text:
        if ch not in _DIGITS:
            if count == 0 and ch == "-":
                dash = True
            else:
                return False
        count += 1
    return not (dash and count == 1)


def is_float_numeric(text: str) -> bool:
    """Return True if *text* is digits with at most one dot and a leading dash."""
    count = 0
    dash = False
    dot = False
    for ch in text:
        if ch not in _DIGITS:
            if ch == "." and not dot:
                dot = True
                continue
            if count == 0 and ch == "-":
                dash = True
            else:
                return False
        count += 1
    return not (dash and count == 1)


def _atoi(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def _atof(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else 0.0


def _to_single(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def _parse_spec(spec: str) -> list[_Entry]:
    entries = []
    for item in spec.split(","):
        if not item:
            continue
        name, sep, types = item.partition(":")
        if not sep or not name or not types or len(types) > 2:
            raise OptionError(f"malformed option specification {item!r}")
        code, suffix = types[0], types[1:]
        if code not in _TYPE_CODES:
            raise OptionError("UNSUPPORTED ARGUMENT TYPE")
        if suffix not in ("", "n"):
            raise OptionError(f"malformed option specification {item!r}")
        entries.append(_Entry(name, code, suffix == "n"))
    return entries


def _convert(code: str, text: str) -> tuple[OptionKind, object]:
    if code == "c":
        return OptionKind.CHAR, text[:1]
    if code == "p":
        return OptionKind.CHAR_POINTER, text
    if code in "iu":
        if not is_int_numeric(text):
            raise OptionError("NON-NUMERIC")
        number = _atoi(text)
        if code == "i":
            return OptionKind.INT, number
        if number < 0:
            raise OptionError("NON-NEGATIVE")
        return OptionKind.UNSIGNED_INT, number
    if not is_float_numeric(text):
        raise OptionError("NON-FLOAT-NUMERIC")
    if code == "f":
        return OptionKind.FLOAT, _to_single(_atof(text))
    return OptionKind.DOUBLE, _atof(text)


def _locate(
    args: Sequence[str], entry: _Entry, flags: Iterable[str]
) -> tuple[OptionKind, object]:
    index = 0
    while index < len(args):
        name = args[index][1:]
        if name == entry.name:
            if entry.code == "n":
                return OptionKind.BOOL, True
            if index + 1 >= len(args):
                break
            return _convert(entry.code, args[index + 1])
        # Options other than flags are followed by their value; skip it.
        index += 1 if name in flags else 2
    if entry.optional:
        return OptionKind.BOOL, True
    if entry.code == "n":
        return OptionKind.BOOL, False
    raise OptionError("MISSING ARGUMENT")


def getopts(argv: Sequence[str], spec: str | None) -> list[tuple[OptionKind, object]]:
    """Parse *argv* (without the program name) according to *spec*.

    Returns one ``(kind, value)`` pair per specification entry, in the
    order of the specification.  Raises :class:`OptionError` when a
    required option is missing or a value has the wrong form.
    """
    if spec is None:
        raise OptionError("no option specification given")
    entries = _parse_spec(spec)
    args = list(argv)
    flags = {entry.name for entry in entries if entry.code == "n"}
    return [_locate(args, entry, flags) for entry in entries]