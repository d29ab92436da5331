"""Scan settings — ``config.yaml`` values with ``ARTISCAN_*`` overrides.

Keys are dotted paths into the YAML document.  For every key an environment
variable named ``ARTISCAN_`` + the upper-cased path (dots become
underscores) wins over the file::

    scan.min_star   ->  ARTISCAN_SCAN_MIN_STAR
    debug.dump      ->  ARTISCAN_DEBUG_DUMP

The file is located through ``ARTISCAN_CONFIG_FILE``, then the working
directory, then the project root.  It is read once, on first access.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml

from utils.logger import ScanLogger

_log = ScanLogger("Settings")

_T = TypeVar("_T")

_BOOL_WORDS = {
    "1": True, "true": True, "yes": True, "on": True,
    "0": False, "false": False, "no": False, "off": False,
}


def _find_config_path() -> Path:
    env_path = os.getenv("ARTISCAN_CONFIG_FILE", "").strip()
    if env_path:
        return Path(env_path)
    project_root = Path(__file__).resolve().parent.parent
    for directory in (Path.cwd(), project_root):
        candidate = directory / "config.yaml"
        if candidate.exists():
            return candidate
    return project_root / "config.yaml"


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return _BOOL_WORDS[str(value).strip().lower()]


class ScanSettings:
    """Typed, read-only view of one settings file.

    Args:
        config_path: Explicit YAML file; ``None`` searches the usual places.
    """

    def __init__(self, config_path: str | Path | None = None) -> None:
        self._config_path = Path(config_path) if config_path else None
        self._data: dict[str, Any] | None = None
        self._lock = threading.Lock()

    def _document(self) -> dict[str, Any]:
        with self._lock:
            if self._data is None:
                self._data = self._read(self._config_path or _find_config_path())
            return self._data

    @staticmethod
    def _read(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError) as err:
            _log.warn(f"could not read {path}: {err}")
            return {}
        return raw if isinstance(raw, dict) else {}

    @staticmethod
    def env_name(key: str) -> str:
        return "ARTISCAN_" + key.upper().replace(".", "_")

    def _yaml_value(self, key: str) -> Any:
        node: Any = self._document()
        for part in key.split("."):
            if not isinstance(node, dict):
                return None
            node = node.get(part)
        return node

    def _get(self, key: str, default: _T, convert: Callable[[Any], _T]) -> _T:
        """Env value, else YAML value, else *default*; unparsable values are skipped."""
        env_value = os.getenv(self.env_name(key), "").strip()
        for candidate in (env_value or None, self._yaml_value(key)):
            if candidate is None:
                continue
            try:
                return convert(candidate)
            except (KeyError, TypeError, ValueError):
                _log.warn(f"ignoring invalid value {candidate!r} for {key}")
        return default

    def get_str(self, key: str, default: str = "") -> str:
        return self._get(key, default, str)

    def get_int(self, key: str, default: int = 0) -> int:
        return self._get(key, default, int)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self._get(key, default, _to_bool)


settings = ScanSettings()
