"""Summary: Typed preference values used by the client runtime.

Importance: Lets services read and write preference lines as Python values.
Alternatives: Treat every preference value as an opaque string.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from prefexchange.errors import ValueFormatError


INT_MIN = -(2**31)
INT_MAX = 2**31 - 1
COLOR_MAX = 0xFFFFFF

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\t": "\\t", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "t": "\t", "r": "\r"}


@dataclass(frozen=True)
class Color:
    """Summary: RGB color stored as a single integer.

    Importance: Mirrors the hex color format understood by the client.
    Alternatives: Store colors as (r, g, b) tuples.
    """

    rgb: int

    def __post_init__(self) -> None:
        if not 0 <= self.rgb <= COLOR_MAX:
            raise ValueFormatError(f"Color out of range: {self.rgb}")


@dataclass(frozen=True)
class Rect:
    """Summary: Rectangle in integer or fractional coordinates."""

    x: int | float
    y: int | float
    width: int | float
    height: int | float


def parse_value(type_tag: str, raw: str) -> Any:
    """Summary: Convert the raw text of a preference line into a Python value.

    Importance: Gives services typed access without changing the stored text.
    Alternatives: Parse values lazily in every consumer.
    """

    try:
        if type_tag == "boolean":
            return raw.lower() == "true"
        if type_tag == "integer":
            return _checked_int(int(raw))
        if type_tag == "double":
            return float(raw)
        if type_tag == "string":
            return unescape_string(raw)
        if type_tag == "intlist":
            return [_checked_int(int(item)) for item in raw.split()]
        if type_tag == "color":
            return Color(int(raw, 16))
        if type_tag == "rect.int":
            return Rect(*_rect_parts(raw, int))
        if type_tag == "rect.double":
            return Rect(*_rect_parts(raw, float))
    except ValueFormatError:
        raise
    except ValueError as exc:
        raise ValueFormatError(f"Wrong {type_tag} format: {raw}") from exc
    return raw


def format_value(value: Any) -> tuple[str, str]:
    """Summary: Produce the (type tag, raw text) pair for a Python value.

    Importance: Keeps written values readable by the client runtime.
    Alternatives: Require callers to format values by hand.
    """

    if isinstance(value, bool):
        return "boolean", "true" if value else "false"
    if isinstance(value, int):
        return "integer", str(_checked_int(value))
    if isinstance(value, float):
        return "double", repr(value)
    if isinstance(value, str):
        return "string", escape_string(value)
    if isinstance(value, Color):
        return "color", format(value.rgb, "x")
    if isinstance(value, Rect):
        parts = (value.x, value.y, value.width, value.height)
        if all(isinstance(part, int) and not isinstance(part, bool) for part in parts):
            return "rect.int", ";".join(str(part) for part in parts)
        return "rect.double", ";".join(repr(float(part)) for part in parts)
    if isinstance(value, (list, tuple)) and all(
        isinstance(item, int) and not isinstance(item, bool) for item in value
    ):
        return "intlist", " ".join(str(_checked_int(item)) for item in value)
    raise ValueFormatError(f"Unsupported preference type: {type(value).__name__}")


def escape_string(text: str) -> str:
    return "".join(_ESCAPES.get(char, char) for char in text)


def unescape_string(text: str) -> str:
    """Summary: Reverse escape_string, keeping unknown escapes verbatim."""

    output: list[str] = []
    index = 0
    while index < len(text):
        char = text[index]
        if char == "\\" and index + 1 < len(text) and text[index + 1] in _UNESCAPES:
            output.append(_UNESCAPES[text[index + 1]])
            index += 2
            continue
        output.append(char)
        index += 1
    return "".join(output)


def _checked_int(value: int) -> int:
    if not INT_MIN <= value <= INT_MAX:
        raise ValueFormatError(f"Integer out of 32-bit range: {value}")
    return value


def _rect_parts(raw: str, kind: type) -> list[Any]:
    parts = raw.split(";")
    if len(parts) != 4:
        raise ValueFormatError(f"Wrong rectangle format: {raw}")
    return [kind(part) for part in parts]
