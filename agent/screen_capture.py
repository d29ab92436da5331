"""Screen capture and time source for the scanner.

:class:`ScreenCapture` grabs a screen rectangle with ``mss`` and returns a
BGR ``numpy`` array (H x W x 3).  :class:`SystemClock` is the real-time
clock the orchestrator polls with; tests inject a fake one instead.
"""

from __future__ import annotations

import time
from typing import Any

import mss
import numpy as np

from tools.artifact_models import WindowRect


class ScreenCapture:
    """Grab screen regions via ``mss``.

    The ``mss`` handle is opened lazily and reused across grabs; call
    :meth:`close` (or use the instance as a context manager) when done.
    """

    def __init__(self) -> None:
        self._sct: Any | None = None

    def _handle(self) -> Any:
        if self._sct is None:
            self._sct = mss.mss()
        return self._sct

    def capture(self, rect: WindowRect) -> np.ndarray:
        monitor = {
            "left": rect.left,
            "top": rect.top,
            "width": rect.width,
            "height": rect.height,
        }
        raw = self._handle().grab(monitor)
        # mss returns BGRA; drop alpha
        return np.array(raw)[:, :, :3]

    def close(self) -> None:
        if self._sct is not None:
            self._sct.close()
            self._sct = None

    def __enter__(self) -> "ScreenCapture":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class SystemClock:
    def now(self) -> float:
        return time.perf_counter()

    def sleep(self, seconds: float) -> None:
        if seconds > 0:
            time.sleep(seconds)
