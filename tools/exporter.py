"""Export dispatcher — write scan results in third-party JSON schemas.

Supported schemas (closed set, see :class:`ExportFormat`):

* ``mona``      — mona-uranai import file, grouped by slot.
* ``mingyulab`` — MingyuLab artifact list.
* ``good``      — Genshin Open Object Description (GOOD) v1.
* ``all``       — every schema above.

Each schema is written to ``<output_dir>/<schema>.json``.  All requested
schemas are attempted; failures are collected and raised together as
:class:`ExportError` once the others are written.  The in-memory records are
never modified.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Sequence

from tools.artifact_constants import CHARACTER_KEYS, MONA_SLOT_NAMES, MONA_STAT_NAMES, PERCENT_KEYS
from tools.artifact_models import ArtifactRecord, StatValue
from utils.logger import ScanLogger

_log = ScanLogger("Export")

SOURCE_NAME = "artiscan"


class ExportFormat(str, Enum):
    MONA = "mona"
    MINGYULAB = "mingyulab"
    GOOD = "good"
    ALL = "all"

    def expand(self) -> tuple["ExportFormat", ...]:
        if self is ExportFormat.ALL:
            return (ExportFormat.MONA, ExportFormat.MINGYULAB, ExportFormat.GOOD)
        return (self,)


class ExportError(OSError):
    """One or more schemas could not be written.

    Attributes:
        failures: ``{schema: error message}`` for every failed schema.
        written:  Files that were written successfully.
    """

    def __init__(self, failures: dict[str, str], written: list[Path]) -> None:
        detail = "; ".join(f"{name}: {message}" for name, message in failures.items())
        super().__init__(f"export failed ({detail})")
        self.failures = failures
        self.written = written


def _exportable(records: Sequence[ArtifactRecord]) -> list[tuple[ArtifactRecord, str, StatValue]]:
    """Records with a known slot, set and main stat, paired with the slot and main stat."""
    kept: list[tuple[ArtifactRecord, str, StatValue]] = []
    for record in records:
        slot_key, main_stat = record.slot_key, record.main_stat
        if slot_key is None or record.set_key is None or main_stat is None:
            _log.debug(f"slot {record.slot_index}: skipped, name={record.name!r} not exportable")
            continue
        kept.append((record, slot_key, main_stat))
    return kept


def _stat_value(stat: StatValue) -> float:
    """Percentage stats are stored as fractions by mona / mingyulab."""
    if stat.key in PERCENT_KEYS:
        return round(stat.value / 100.0, 6)
    return stat.value


# ── Schemas ──────────────────────────────────────────────────────────────

def to_mona(records: Sequence[ArtifactRecord]) -> dict[str, Any]:
    payload: dict[str, Any] = {"version": "1"}
    for slot_name in MONA_SLOT_NAMES.values():
        payload[slot_name] = []

    for record, slot_key, main_stat in _exportable(records):
        position = MONA_SLOT_NAMES[slot_key]
        payload[position].append({
            "setName": record.set_key,
            "position": position,
            "mainTag": {
                "name": MONA_STAT_NAMES[main_stat.key],
                "value": _stat_value(main_stat),
            },
            "normalTags": [
                {"name": MONA_STAT_NAMES[stat.key], "value": _stat_value(stat)}
                for stat in record.sub_stats
            ],
            "omit": False,
            "level": record.level or 0,
            "star": record.star,
            "equip": record.equip or None,
        })
    return payload


def to_mingyulab(records: Sequence[ArtifactRecord]) -> list[dict[str, Any]]:
    entries: list[dict[str, Any]] = []
    for record, slot_key, main_stat in _exportable(records):
        entries.append({
            "asKey": record.set_key,
            "rarity": record.star,
            "slot": slot_key,
            "level": record.level or 0,
            "mainStat": {main_stat.key: _stat_value(main_stat)},
            "subStats": {stat.key: _stat_value(stat) for stat in record.sub_stats},
        })
    return entries


def to_good(records: Sequence[ArtifactRecord]) -> dict[str, Any]:
    artifacts: list[dict[str, Any]] = []
    for record, slot_key, main_stat in _exportable(records):
        artifacts.append({
            "setKey": record.set_key,
            "slotKey": slot_key,
            "level": record.level or 0,
            "rarity": record.star,
            "mainStatKey": main_stat.key,
            "location": CHARACTER_KEYS.get(record.equip, ""),
            "lock": record.locked,
            "substats": [{"key": stat.key, "value": stat.value} for stat in record.sub_stats],
        })
    return {"format": "GOOD", "version": 1, "source": SOURCE_NAME, "artifacts": artifacts}


_SERIALIZERS: dict[ExportFormat, Callable[[Sequence[ArtifactRecord]], Any]] = {
    ExportFormat.MONA: to_mona,
    ExportFormat.MINGYULAB: to_mingyulab,
    ExportFormat.GOOD: to_good,
}


def export_records(
    records: Sequence[ArtifactRecord],
    fmt: ExportFormat | str,
    output_dir: str | os.PathLike[str],
) -> list[Path]:
    """Write *records* in every schema selected by *fmt*.

    Returns:
        Paths of the written files.

    Raises:
        ExportError: at least one schema could not be written.
        ValueError:  *fmt* is not a known schema name.
    """
    export_format = ExportFormat(fmt)
    directory = Path(output_dir)
    written: list[Path] = []
    failures: dict[str, str] = {}

    for schema in export_format.expand():
        target = directory / f"{schema.value}.json"
        try:
            payload = _SERIALIZERS[schema](records)
            directory.mkdir(parents=True, exist_ok=True)
            with open(target, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False, indent=2)
        except (OSError, TypeError, ValueError) as err:
            _log.error(f"{schema.value}: {err}")
            failures[schema.value] = str(err)
            continue
        _log.success(f"{schema.value}: wrote {target}")
        written.append(target)

    if failures:
        raise ExportError(failures, written)
    return written
