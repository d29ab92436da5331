"""Game window discovery.

Finds the game's client area on screen and reports whether it is the local
client or the cloud (streamed) one.  One interface, one implementation per
platform:

* :class:`Win32WindowLocator` — ``win32gui`` title search (local title first,
  then the cloud title), restore + bring to front, client rectangle via
  ``ClientToScreen`` / ``GetClientRect``.
* :class:`X11WindowLocator` — asks ``xwininfo`` to let the operator click the
  window, then parses its geometry.

:func:`default_locator` picks the implementation for the running platform.

Environment variables
---------------------
``ARTISCAN_WINDOW_TITLE``        Local client title (default ``原神``).
``ARTISCAN_CLOUD_WINDOW_TITLE``  Cloud client title (default ``云·原神``).
"""

from __future__ import annotations

import ctypes
import os
import subprocess
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from tools.artifact_models import WindowRect
from utils.logger import ScanLogger

try:
    import win32con  # type: ignore[import-untyped]
    import win32gui  # type: ignore[import-untyped]
except Exception:  # pragma: no cover
    win32gui = None  # type: ignore[assignment]
    win32con = None  # type: ignore[assignment]

_log = ScanLogger("Window")

_DEFAULT_LOCAL_TITLE = "原神"
_DEFAULT_CLOUD_TITLE = "云·原神"


class WindowNotFoundError(RuntimeError):
    """The game window could not be located."""


@dataclass(frozen=True, slots=True)
class GameWindow:
    rect: WindowRect
    is_cloud: bool


class WindowLocator(Protocol):
    def locate(self) -> GameWindow: ...


def is_admin() -> bool:
    """``True`` when the process may send input to an elevated game (Windows)."""
    if os.name != "nt":
        return True
    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
    except Exception:
        return False


def set_dpi_awareness() -> None:
    """Make Win32 report physical pixels so rects match ``mss`` captures."""
    if os.name != "nt":
        return
    try:
        ctypes.windll.shcore.SetProcessDpiAwareness(2)  # type: ignore[attr-defined]
    except Exception:
        try:
            ctypes.windll.user32.SetProcessDPIAware()  # type: ignore[attr-defined]
        except Exception:
            _log.warn("could not enable DPI awareness; window rect may be scaled")


class _POINT(ctypes.Structure):
    _fields_ = [("x", ctypes.c_long), ("y", ctypes.c_long)]


class Win32WindowLocator:
    """Locate the game window through ``win32gui``.

    Args:
        local_title:    Exact title of the local client window.
        cloud_title:    Exact title of the cloud client window.
        activate_delay: Seconds to wait after bringing the window to front.
    """

    def __init__(
        self,
        local_title: str | None = None,
        cloud_title: str | None = None,
        activate_delay: float = 1.0,
    ) -> None:
        self.local_title = local_title or os.getenv("ARTISCAN_WINDOW_TITLE", "").strip() or _DEFAULT_LOCAL_TITLE
        self.cloud_title = cloud_title or os.getenv("ARTISCAN_CLOUD_WINDOW_TITLE", "").strip() or _DEFAULT_CLOUD_TITLE
        self.activate_delay = activate_delay

    def _find(self, title: str) -> int:
        if win32gui is None:
            return 0
        try:
            return int(win32gui.FindWindow(None, title) or 0)
        except Exception:
            return 0

    def _client_rect(self, hwnd: int) -> WindowRect:
        user32 = ctypes.windll.user32  # type: ignore[attr-defined]
        origin = _POINT(0, 0)
        user32.ClientToScreen(hwnd, ctypes.byref(origin))
        _, _, right, bottom = win32gui.GetClientRect(hwnd)
        return WindowRect(left=int(origin.x), top=int(origin.y), width=int(right), height=int(bottom))

    def _activate(self, hwnd: int) -> None:
        try:
            win32gui.ShowWindow(hwnd, win32con.SW_RESTORE)
            win32gui.SetForegroundWindow(hwnd)
        except Exception as err:
            _log.warn(f"could not bring window to front: {err}")
        time.sleep(self.activate_delay)

    def locate(self) -> GameWindow:
        if win32gui is None:
            raise WindowNotFoundError("pywin32 is not available on this platform")
        set_dpi_awareness()

        is_cloud = False
        hwnd = self._find(self.local_title)
        if hwnd == 0:
            hwnd = self._find(self.cloud_title)
            is_cloud = True
        if hwnd == 0:
            raise WindowNotFoundError(
                f"game window not found (looked for {self.local_title!r} and {self.cloud_title!r})"
            )

        self._activate(hwnd)
        rect = self._client_rect(hwnd)
        if rect.width <= 0 or rect.height <= 0:
            raise WindowNotFoundError(f"game window has an empty client area: {rect}")
        return GameWindow(rect=rect, is_cloud=is_cloud)


def parse_xwininfo(output: str) -> WindowRect:
    """Extract the absolute position and size from ``xwininfo`` output."""
    values: dict[str, int] = {}
    keys = {
        "Absolute upper-left X": "left",
        "Absolute upper-left Y": "top",
        "Width": "width",
        "Height": "height",
    }
    for line in output.splitlines():
        label, sep, raw = line.strip().partition(":")
        if not sep or label not in keys:
            continue
        try:
            values[keys[label]] = int(raw.strip())
        except ValueError:
            continue
    missing = {"left", "top", "width", "height"} - set(values)
    if missing:
        raise WindowNotFoundError(f"xwininfo output lacks {', '.join(sorted(missing))}")
    return WindowRect(**values)


class X11WindowLocator:
    """Locate the game window under X11 with ``xwininfo``.

    ``xwininfo`` without ``-id`` waits for the operator to click the window.
    Cloud detection is not available here; the local variant is assumed.
    """

    def __init__(self, runner: Callable[..., Any] | None = None) -> None:
        self._run = runner or subprocess.run

    def locate(self) -> GameWindow:
        _log.info("click the game window to select it")
        try:
            result = self._run(["xwininfo"], capture_output=True, text=True, check=True)
        except (OSError, subprocess.CalledProcessError) as err:
            raise WindowNotFoundError(f"xwininfo failed: {err}") from err
        return GameWindow(rect=parse_xwininfo(result.stdout), is_cloud=False)


def default_locator() -> WindowLocator:
    if os.name == "nt":
        return Win32WindowLocator()
    return X11WindowLocator()
