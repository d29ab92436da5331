"""Turn recognized field text into structured artifact values.

Every parser is tolerant: unreadable input gives ``None`` (or an empty
value) instead of raising, so one misread field never voids a record.
"""

from __future__ import annotations

import re

from tools.artifact_constants import (
    EQUIP_SUFFIX,
    ITEM_COUNT_PREFIX,
    LOCK_BRIGHTNESS_THRESHOLD,
    PERCENT_VARIANTS,
    PIECE_NAMES,
    RARITY_COLORS,
    STAT_NAMES,
)
from tools.artifact_models import (
    SUB_STAT_ROLES,
    ArtifactRecord,
    FieldRole,
    RecognizedField,
    StatValue,
)

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_COUNT_RE = re.compile(r"(\d+)\s*/\s*(\d+)")

# Common CRNN confusions in numeric text
_DIGIT_FIXES = str.maketrans({"O": "0", "o": "0", "l": "1", "I": "1", "，": ",", "。": "."})


def _clean(text: str) -> str:
    return (text or "").strip().replace(" ", "")


def parse_number(text: str) -> float | None:
    """First number in *text* (thousands separators removed)."""
    cleaned = _clean(text).translate(_DIGIT_FIXES).replace(",", "")
    match = _NUMBER_RE.search(cleaned)
    if match is None:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


def parse_stat_name(text: str, percent: bool) -> str | None:
    """Map a stat label to its key; ``percent`` picks the ``%`` variant."""
    label = _clean(text)
    if not label:
        return None
    key = STAT_NAMES.get(label)
    if key is None:
        # longest label contained in the text wins (元素充能效率 before 元素精通 etc.)
        for name in sorted(STAT_NAMES, key=len, reverse=True):
            if name in label:
                key = STAT_NAMES[name]
                break
    if key is None:
        return None
    if percent:
        return PERCENT_VARIANTS.get(key, key)
    return key


def parse_stat_line(text: str) -> StatValue | None:
    """Parse a sub stat line such as ``暴击率+3.9%`` or ``攻击力+19``."""
    cleaned = _clean(text).lstrip("·•")
    if "+" not in cleaned:
        return None
    label, _, raw_value = cleaned.partition("+")
    value = parse_number(raw_value)
    if value is None:
        return None
    key = parse_stat_name(label, percent="%" in raw_value)
    if key is None:
        return None
    return StatValue(key=key, value=value)


def parse_main_stat(name_text: str, value_text: str) -> StatValue | None:
    """Combine the main stat label and its value field."""
    value = parse_number(value_text)
    if value is None:
        return None
    key = parse_stat_name(name_text, percent="%" in value_text)
    if key is None:
        return None
    return StatValue(key=key, value=value)


def parse_level(text: str) -> int | None:
    """``+20`` -> ``20``; values outside ``0..20`` are rejected."""
    value = parse_number(text)
    if value is None:
        return None
    level = int(value)
    if level < 0 or level > 20:
        return None
    return level


def parse_equip(text: str) -> str:
    """``胡桃已装备`` -> ``胡桃``; anything else -> ``""``."""
    cleaned = _clean(text)
    if not cleaned.endswith(EQUIP_SUFFIX):
        return ""
    return cleaned[: -len(EQUIP_SUFFIX)].rstrip(":：")


def parse_item_count(text: str) -> int | None:
    """``圣遗物 1234/1500`` -> ``1234``."""
    cleaned = _clean(text).replace(ITEM_COUNT_PREFIX, "").translate(_DIGIT_FIXES)
    match = _COUNT_RE.search(cleaned)
    if match is None:
        return None
    return int(match.group(1))


def lookup_piece(name: str) -> tuple[str | None, str | None]:
    """Return ``(set_key, slot_key)`` for a piece name, ``(None, None)`` if unknown."""
    entry = PIECE_NAMES.get(_clean(name))
    if entry is None:
        return None, None
    return entry


def rarity_from_color(color: tuple[int, int, int]) -> int:
    """Nearest reference rarity for a BGR colour sampled from the panel header."""
    best_star = 0
    best_distance: int | None = None
    for star, reference in RARITY_COLORS.items():
        distance = sum((int(a) - int(b)) ** 2 for a, b in zip(color, reference))
        if best_distance is None or distance < best_distance:
            best_star = star
            best_distance = distance
    return best_star


def is_locked(color: tuple[int, int, int]) -> bool:
    return sum(color) / 3.0 < LOCK_BRIGHTNESS_THRESHOLD


def build_record(
    slot_index: int,
    recognized: list[RecognizedField],
    star: int,
    locked: bool,
) -> ArtifactRecord:
    """Assemble an :class:`ArtifactRecord` from the recognized fields of one slot."""
    texts: dict[FieldRole, str] = {item.role: item.text for item in recognized}
    texts[FieldRole.STAR] = str(star)
    texts[FieldRole.LOCK] = "1" if locked else "0"

    name = _clean(texts.get(FieldRole.NAME, ""))
    set_key, slot_key = lookup_piece(name)

    sub_stats: list[StatValue] = []
    for role in SUB_STAT_ROLES:
        stat = parse_stat_line(texts.get(role, ""))
        if stat is not None:
            sub_stats.append(stat)

    return ArtifactRecord(
        slot_index=slot_index,
        fields=texts,
        name=name,
        set_key=set_key,
        slot_key=slot_key,
        main_stat=parse_main_stat(
            texts.get(FieldRole.MAIN_STAT_NAME, ""),
            texts.get(FieldRole.MAIN_STAT_VALUE, ""),
        ),
        sub_stats=tuple(sub_stats),
        level=parse_level(texts.get(FieldRole.LEVEL, "")),
        star=star,
        equip=parse_equip(texts.get(FieldRole.EQUIP, "")),
        locked=locked,
    )
