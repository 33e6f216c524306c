"""Summary: Domain model dataclasses for the preferences exchange.

Importance: Defines the preference set structure shared by the codec, store, and handler.
Alternatives: Use Pydantic models or plain dictionaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from prefexchange.values import format_value, parse_value


def normalize_user_id(raw: str) -> str:
    """Summary: Normalize a principal name into a stable user id.

    Importance: Keeps one store record per user regardless of login casing.
    Alternatives: Store ids exactly as typed and compare case-insensitively.
    """

    user_id = raw.strip().lower()
    if not user_id:
        raise ValueError("User id must not be empty")
    return user_id


@dataclass(frozen=True)
class PreferenceLine:
    """Summary: A single named preference with its type tag and raw value.

    Importance: Smallest unit of the blob grammar `name=typeTag;value`.
    Alternatives: Store parsed values only and lose the original text.
    """

    name: str
    type_tag: str
    value: str

    @staticmethod
    def of(name: str, value: Any) -> "PreferenceLine":
        """Summary: Build a line from a Python value.

        Importance: Lets callers write typed values without formatting by hand.
        Alternatives: Construct lines from raw strings only.
        """

        type_tag, raw = format_value(value)
        return PreferenceLine(name=name, type_tag=type_tag, value=raw)

    def typed_value(self) -> Any:
        return parse_value(self.type_tag, self.value)

    def to_text(self) -> str:
        return f"{self.name}={self.type_tag};{self.value}"


@dataclass(frozen=True)
class PreferenceGroup:
    """Summary: Ordered preference lines sharing a preferences type.

    Importance: Groups map to one preferences object in the client runtime.
    Alternatives: Flatten all lines into a single namespace.
    """

    type_name: str
    lines: tuple[PreferenceLine, ...] = field(default_factory=tuple)

    def get(self, name: str) -> PreferenceLine | None:
        for line in self.lines:
            if line.name == name:
                return line
        return None


@dataclass(frozen=True)
class PreferenceSet:
    """Summary: Ordered groups making up a user's full preferences.

    Importance: Group and line order are preserved across save and load.
    Alternatives: Use a dict of dicts and accept reordering.
    """

    groups: tuple[PreferenceGroup, ...] = field(default_factory=tuple)

    @staticmethod
    def empty() -> "PreferenceSet":
        return PreferenceSet(groups=())

    @property
    def is_empty(self) -> bool:
        return not self.groups

    def get(self, type_name: str) -> PreferenceGroup | None:
        for group in self.groups:
            if group.type_name == type_name:
                return group
        return None


@dataclass(frozen=True)
class UserRecord:
    """Summary: Stored row for a user with their blob and active save key.

    Importance: Mirrors the persistent state owned by the preference store.
    Alternatives: Keep blobs and keys in separate tables.
    """

    user_id: str
    prefs_blob: bytes | None
    save_key: str | None


@dataclass(frozen=True)
class StartupParameter:
    """Summary: One name/value startup parameter for the client runtime."""

    name: str
    value: str
