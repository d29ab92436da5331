"""Scan configuration value.

A single immutable :class:`ScanConfig` is built once per run (from
``config.yaml`` / ``ARTISCAN_*`` env vars, then CLI overrides) and passed
explicitly into the orchestrator.  Nothing reads scan options from globals.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

from utils.settings import ScanSettings, settings as default_settings

_OUTPUT_FORMATS = ("mona", "mingyulab", "good", "all")


def clamp_int(value: int, min_value: int, max_value: int) -> int:
    """Clamp *value* into ``[min_value, max_value]``."""
    return max(min_value, min(max_value, value))


@dataclass(frozen=True, slots=True)
class ScanConfig:
    """Options for one scan session.

    Attributes:
        max_row:              Maximum number of grid rows to scan.
        min_star:             Records below this rarity are dropped.
        min_level:            Records below this level are dropped.
        max_wait_switch_ms:   Render-settle bound for a local game window.
        cloud_wait_switch_ms: Render-settle bound for the cloud (streamed) client.
        scroll_stop_ms:       Pause after each wheel tick while paging.
        number:               Manual item total (``0`` = read the in-game counter).
        offset_x, offset_y:   Pixel corrections added to every field rectangle.
        dump:                 Persist crops and predictions for each slot.
        capture_only:         Capture the first slot's images and stop.
        poll_interval_ms:     Interval between fingerprint polls.
        max_scroll_ticks:     Wheel ticks tried before a row scroll gives up.
    """

    max_row: int = 1000
    min_star: int = 4
    min_level: int = 0
    max_wait_switch_ms: int = 800
    cloud_wait_switch_ms: int = 1500
    scroll_stop_ms: int = 80
    number: int = 0
    offset_x: int = 0
    offset_y: int = 0
    dump: bool = False
    dump_dir: str = "dumps"
    capture_only: bool = False
    output_format: str = "mona"
    output_dir: str = "."
    verbose: bool = False
    poll_interval_ms: int = 10
    max_scroll_ticks: int = 25
    model_path: str = "models/model_training.onnx"
    vocab_path: str = "models/index_2_word.json"

    def __post_init__(self) -> None:
        if self.output_format not in _OUTPUT_FORMATS:
            raise ValueError(
                f"output_format must be one of {', '.join(_OUTPUT_FORMATS)}, got {self.output_format!r}"
            )

    def max_wait_ms(self, is_cloud: bool) -> int:
        """Render-settle bound for the detected client variant."""
        return self.cloud_wait_switch_ms if is_cloud else self.max_wait_switch_ms

    @classmethod
    def from_settings(cls, source: ScanSettings | None = None, **overrides: Any) -> "ScanConfig":
        """Build a config from ``config.yaml`` / env, then apply *overrides*.

        ``None`` overrides are ignored so argparse namespaces can be passed
        through without filtering.
        """
        src = source or default_settings
        base = cls()
        values: dict[str, Any] = {
            "max_row": src.get_int("scan.max_row", base.max_row),
            "min_star": src.get_int("scan.min_star", base.min_star),
            "min_level": src.get_int("scan.min_level", base.min_level),
            "max_wait_switch_ms": src.get_int("scan.max_wait_switch_ms", base.max_wait_switch_ms),
            "cloud_wait_switch_ms": src.get_int("scan.cloud_wait_switch_ms", base.cloud_wait_switch_ms),
            "scroll_stop_ms": src.get_int("scan.scroll_stop_ms", base.scroll_stop_ms),
            "number": src.get_int("scan.number", base.number),
            "offset_x": src.get_int("window.offset_x", base.offset_x),
            "offset_y": src.get_int("window.offset_y", base.offset_y),
            "poll_interval_ms": src.get_int("scan.poll_interval_ms", base.poll_interval_ms),
            "max_scroll_ticks": src.get_int("scan.max_scroll_ticks", base.max_scroll_ticks),
            "dump": src.get_bool("debug.dump", base.dump),
            "dump_dir": src.get_str("debug.dump_dir", base.dump_dir),
            "capture_only": src.get_bool("debug.capture_only", base.capture_only),
            "verbose": src.get_bool("debug.verbose", base.verbose),
            "output_format": src.get_str("export.format", base.output_format).strip().lower(),
            "output_dir": src.get_str("export.output_dir", base.output_dir),
            "model_path": src.get_str("model.path", base.model_path),
            "vocab_path": src.get_str("model.vocab", base.vocab_path),
        }

        known = {f.name for f in fields(cls)}
        for key, value in overrides.items():
            if key in known and value is not None:
                values[key] = value

        return cls(**values).validated()

    def validated(self) -> "ScanConfig":
        """Return a copy with numeric options clamped into sane ranges."""
        return replace(
            self,
            max_row=max(1, self.max_row),
            min_star=clamp_int(self.min_star, 1, 5),
            min_level=clamp_int(self.min_level, 0, 20),
            max_wait_switch_ms=max(0, self.max_wait_switch_ms),
            cloud_wait_switch_ms=max(0, self.cloud_wait_switch_ms),
            scroll_stop_ms=max(0, self.scroll_stop_ms),
            number=max(0, self.number),
            poll_interval_ms=max(1, self.poll_interval_ms),
            max_scroll_ticks=max(1, self.max_scroll_ticks),
        )
