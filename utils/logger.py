"""Coloured console logger for artiscan.

Each line is prefixed with the emitting module (``[Scanner]``, ``[Export]``,
...) and a one-character level marker.  Colour is dropped for non-tty
output or when ``ARTISCAN_NO_COLOR`` / ``NO_COLOR`` is set.  Debug lines
only appear in verbose mode (``--verbose`` or ``ARTISCAN_VERBOSE=1``).
"""

from __future__ import annotations

import os
import sys

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"

_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_BLUE = "\033[34m"
_MAGENTA = "\033[35m"
_CYAN = "\033[36m"
_WHITE = "\033[37m"
_BRIGHT_GREEN = "\033[92m"
_BRIGHT_YELLOW = "\033[93m"
_BRIGHT_CYAN = "\033[96m"

_TRUTHY = {"1", "true", "yes", "on"}

_MODULE_COLORS: dict[str, str] = {
    "Scanner": _CYAN,
    "Geometry": _MAGENTA,
    "Recognizer": _BLUE,
    "Capture": _BRIGHT_CYAN,
    "Window": _GREEN,
    "Driver": _BRIGHT_GREEN,
    "Export": _YELLOW,
    "Dump": _BRIGHT_YELLOW,
    "Settings": _WHITE,
}

# level -> (marker, colour of the marker)
_LEVELS: dict[str, tuple[str, str]] = {
    "info": (">", _GREEN),
    "success": ("+", _BRIGHT_GREEN),
    "warn": ("!", _YELLOW),
    "error": ("X", _RED),
    "debug": (".", _DIM),
    "highlight": ("*", _BOLD),
}


def _supports_color() -> bool:
    if os.getenv("ARTISCAN_NO_COLOR", "").strip().lower() in _TRUTHY or os.getenv("NO_COLOR"):
        return False
    if os.name == "nt":
        try:
            import ctypes

            kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
            # ENABLE_VIRTUAL_TERMINAL_PROCESSING on stdout
            kernel32.SetConsoleMode(kernel32.GetStdHandle(-11), 7)
            return True
        except Exception:
            return bool(os.getenv("WT_SESSION"))
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_COLOR_ENABLED = _supports_color()
_VERBOSE = os.getenv("ARTISCAN_VERBOSE", "").strip().lower() in _TRUTHY


def set_verbose(enabled: bool) -> None:
    """Toggle :meth:`ScanLogger.debug` output for the whole process."""
    global _VERBOSE
    _VERBOSE = bool(enabled)


def is_verbose() -> bool:
    return _VERBOSE


class ScanLogger:
    """Module-prefixed console logger; errors go to stderr."""

    def __init__(self, module: str) -> None:
        self.module = module
        self._color = _MODULE_COLORS.get(module, _WHITE)

    def _emit(self, level: str, message: str) -> None:
        marker, color = _LEVELS[level]
        stream = sys.stderr if level == "error" else sys.stdout
        if not _COLOR_ENABLED:
            print(f"[{self.module}] {marker} {message}", file=stream)
            return
        prefix = f"{self._color}{_BOLD}[{self.module}]{_RESET}"
        if level == "highlight":
            print(f"{prefix} {_BOLD}{marker} {message}{_RESET}", file=stream)
        else:
            print(f"{prefix} {color}{marker}{_RESET} {message}", file=stream)

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def warn(self, message: str) -> None:
        self._emit("warn", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def debug(self, message: str) -> None:
        if _VERBOSE:
            self._emit("debug", message)

    def highlight(self, message: str) -> None:
        """Scan start / finish banner line."""
        self._emit("highlight", message)
