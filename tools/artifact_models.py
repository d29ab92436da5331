"""Data models exchanged between the capture, recognition and scan layers.

* :class:`WindowRect` / :class:`Rect` — screen and window-relative rectangles.
* :class:`FieldRole` — semantic role of each field read from the item panel.
* :class:`RecognizedField` — decoded text for one role.
* :class:`ArtifactRecord` — everything recognized for one list slot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True, slots=True)
class WindowRect:
    """Client area of the game window in absolute screen pixels."""

    left: int
    top: int
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle relative to the game window."""

    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def shifted(self, dx: int, dy: int) -> "Rect":
        return Rect(self.left + dx, self.top + dy, self.width, self.height)


class FieldRole(str, Enum):
    """What a panel field means; order of declaration is recognition order."""

    NAME = "name"
    MAIN_STAT_NAME = "main_stat_name"
    MAIN_STAT_VALUE = "main_stat_value"
    LEVEL = "level"
    SUB_STAT_1 = "sub_stat_1"
    SUB_STAT_2 = "sub_stat_2"
    SUB_STAT_3 = "sub_stat_3"
    SUB_STAT_4 = "sub_stat_4"
    EQUIP = "equip"
    STAR = "star"
    LOCK = "lock"
    ITEM_COUNT = "item_count"


TEXT_ROLES: tuple[FieldRole, ...] = (
    FieldRole.NAME,
    FieldRole.MAIN_STAT_NAME,
    FieldRole.MAIN_STAT_VALUE,
    FieldRole.LEVEL,
    FieldRole.SUB_STAT_1,
    FieldRole.SUB_STAT_2,
    FieldRole.SUB_STAT_3,
    FieldRole.SUB_STAT_4,
    FieldRole.EQUIP,
)
"""Roles read by the text recognizer, in the order they are recognized."""

SUB_STAT_ROLES: tuple[FieldRole, ...] = (
    FieldRole.SUB_STAT_1,
    FieldRole.SUB_STAT_2,
    FieldRole.SUB_STAT_3,
    FieldRole.SUB_STAT_4,
)


@dataclass(frozen=True, slots=True)
class RecognizedField:
    """Decoded text of one field; an empty string means unknown."""

    role: FieldRole
    text: str


@dataclass(frozen=True, slots=True)
class StatValue:
    """A parsed stat line, e.g. ``critRate_ = 3.9``."""

    key: str
    value: float


@dataclass(frozen=True, slots=True)
class ArtifactRecord:
    """Every field recognized for one slot, raw and parsed.

    Attributes:
        slot_index: Position of the slot in scan order (0-based).
        fields:     Raw recognized text keyed by role.
        name:       Piece name as displayed.
        set_key:    Set identifier, ``None`` when the name is unknown.
        slot_key:   ``flower``/``plume``/``sands``/``goblet``/``circlet`` or ``None``.
        main_stat:  Parsed main stat, ``None`` when unreadable.
        sub_stats:  Parsed sub stat lines (unreadable lines are skipped).
        level:      Enhancement level, ``None`` when unreadable.
        star:       Rarity 1-5.
        equip:      Character name the piece is equipped on, or ``""``.
        locked:     Whether the lock icon is set.
    """

    slot_index: int
    fields: dict[FieldRole, str] = field(default_factory=dict)
    name: str = ""
    set_key: str | None = None
    slot_key: str | None = None
    main_stat: StatValue | None = None
    sub_stats: tuple[StatValue, ...] = ()
    level: int | None = None
    star: int = 0
    equip: str = ""
    locked: bool = False

    def text(self, role: FieldRole) -> str:
        return self.fields.get(role, "")

    def signature(self) -> tuple[str, ...]:
        """Identity used for repeat detection; ignores the slot index."""
        return tuple(self.fields.get(role, "") for role in FieldRole)
