"""Summary: Encoder and decoder for the preference blob wire format.

Importance: Defines the byte-exact text form preferences take on the wire and in storage.
Alternatives: Serialize preferences as JSON and break existing stored blobs.

The blob is a sequence of groups separated by a blank line. A group is its
type name on the first line followed by `name=typeTag;value` lines. Values
are not escaped, so decoding splits positionally on the first `=` and then
on the first `;`.
"""

from __future__ import annotations

from prefexchange.errors import DecodeError, EncodeError
from prefexchange.models import PreferenceGroup, PreferenceLine, PreferenceSet


GROUP_SEPARATOR = "\n\n"
LINE_SEPARATOR = "\n"


def encode(prefs: PreferenceSet) -> str:
    """Summary: Serialize a preference set into its canonical blob.

    Importance: Produces text that decode() turns back into the same set.
    Alternatives: Escape separators and break compatibility with stored blobs.
    """

    seen_types: set[str] = set()
    chunks: list[str] = []
    for group in prefs.groups:
        _check_group(group, seen_types)
        text = group.type_name + LINE_SEPARATOR
        text += "".join(line.to_text() + LINE_SEPARATOR for line in group.lines)
        chunks.append(text)
    return LINE_SEPARATOR.join(chunks)


def decode(blob: str) -> PreferenceSet:
    """Summary: Parse a blob into a preference set.

    Importance: Lets the server validate uploads and render stored preferences.
    Alternatives: Skip malformed lines and accept partial preference sets.
    """

    if not blob:
        return PreferenceSet.empty()
    groups: list[PreferenceGroup] = []
    seen_types: set[str] = set()
    offset = 0
    for chunk in blob.split(GROUP_SEPARATOR):
        raw_lines = chunk.split(LINE_SEPARATOR)
        numbered = [
            (offset + index + 1, raw) for index, raw in enumerate(raw_lines) if raw
        ]
        offset += len(raw_lines) + 1
        if not numbered:
            continue
        type_number, type_name = numbered[0]
        if type_name in seen_types:
            raise DecodeError(
                "duplicate_group",
                f"Duplicate preferences type on line {type_number}: {type_name}",
                line_number=type_number,
                line=type_name,
            )
        seen_types.add(type_name)
        lines: list[PreferenceLine] = []
        names: set[str] = set()
        for number, raw in numbered[1:]:
            line = parse_line(raw, number)
            if line.name in names:
                raise DecodeError(
                    "duplicate_name",
                    f"Duplicate preference {line.name} in {type_name} on line {number}",
                    line_number=number,
                    line=raw,
                )
            names.add(line.name)
            lines.append(line)
        groups.append(PreferenceGroup(type_name=type_name, lines=tuple(lines)))
    return PreferenceSet(groups=tuple(groups))


def decode_bytes(raw: bytes) -> PreferenceSet:
    """Summary: Decode a UTF-8 blob as received from a client or the store."""

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError("encoding", f"Preferences are not valid UTF-8: {exc.reason}") from exc
    return decode(text)


def parse_line(raw: str, line_number: int = 1) -> PreferenceLine:
    """Summary: Split one `name=typeTag;value` line on its first separators.

    Importance: Keeps `=` and `;` inside values intact under the legacy grammar.
    Alternatives: Use a regular expression with stricter character classes.
    """

    name, eq, rest = raw.partition("=")
    if not eq:
        raise DecodeError.malformed_line(line_number, raw)
    type_tag, semi, value = rest.partition(";")
    if not semi:
        raise DecodeError.malformed_line(line_number, raw)
    return PreferenceLine(name=name, type_tag=type_tag, value=value)


def _check_group(group: PreferenceGroup, seen_types: set[str]) -> None:
    if not group.type_name or LINE_SEPARATOR in group.type_name:
        raise EncodeError(f"Invalid preferences type name: {group.type_name!r}")
    if group.type_name in seen_types:
        raise EncodeError(f"Duplicate preferences type: {group.type_name}")
    seen_types.add(group.type_name)
    names: set[str] = set()
    for line in group.lines:
        if "=" in line.name or LINE_SEPARATOR in line.name:
            raise EncodeError(f"Invalid preference name: {line.name!r}")
        if ";" in line.type_tag or LINE_SEPARATOR in line.type_tag:
            raise EncodeError(f"Invalid type tag for {line.name}: {line.type_tag!r}")
        if LINE_SEPARATOR in line.value:
            raise EncodeError(f"Preference {line.name} has a multi-line value")
        if line.name in names:
            raise EncodeError(f"Duplicate preference {line.name} in {group.type_name}")
        names.add(line.name)
