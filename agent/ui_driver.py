"""UI driver — mouse input sent to the game window through PyAutoGUI.

The scanner only needs three gestures: move, click and wheel scroll.  All
coordinates are absolute screen pixels (see ``GeometrySet.to_screen``).

Environment variables
---------------------
``ARTISCAN_CLICK_DELAY``  Seconds to hold between move and click (default ``0.0``).
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

from utils.logger import ScanLogger

try:
    import pyautogui  # type: ignore[import-untyped]

    pyautogui.FAILSAFE = True
    pyautogui.PAUSE = 0.0
except Exception:  # pragma: no cover - no display (CI)
    pyautogui = None  # type: ignore[assignment]

_log = ScanLogger("Driver")


class MouseDriver:
    """Real mouse input via PyAutoGUI.

    Moving the cursor into a screen corner is the operator's emergency stop:
    PyAutoGUI's ``FailSafeException`` is re-raised as ``KeyboardInterrupt``
    so the scan ends the same way as Ctrl+C and keeps its partial results.
    """

    def __init__(self, click_delay: float | None = None) -> None:
        if pyautogui is None:
            raise RuntimeError("pyautogui is unavailable (no display?)")
        if click_delay is None:
            raw = os.getenv("ARTISCAN_CLICK_DELAY", "").strip()
            try:
                click_delay = float(raw) if raw else 0.0
            except ValueError:
                click_delay = 0.0
        self.click_delay = max(0.0, click_delay)

    @staticmethod
    @contextmanager
    def _failsafe() -> Iterator[None]:
        try:
            yield
        except pyautogui.FailSafeException as err:
            _log.warn("mouse moved into a screen corner; stopping the scan")
            raise KeyboardInterrupt from err

    def move_to(self, x: int, y: int) -> None:
        with self._failsafe():
            pyautogui.moveTo(x, y)

    def click(self, x: int, y: int) -> None:
        with self._failsafe():
            pyautogui.moveTo(x, y)
            if self.click_delay:
                pyautogui.sleep(self.click_delay)
            pyautogui.click(x, y)
        _log.debug(f"click ({x}, {y})")

    def scroll(self, ticks: int) -> None:
        """Scroll the wheel; negative *ticks* scroll the list down."""
        with self._failsafe():
            pyautogui.scroll(ticks)
