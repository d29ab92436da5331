"""Debug dump writer — persist captured frames, crops and predictions.

Used with ``--dump`` / ``--capture-only`` to inspect what the recognizer
actually saw.  Layout::

    <root>/
        frame_0000.png
        0000/
            name_raw.png
            name_norm.png
            predictions.json
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import cv2
import numpy as np

from tools.artifact_models import FieldRole
from tools.frame_preprocess import NormalizedField
from utils.logger import ScanLogger

_log = ScanLogger("Dump")


class DumpWriter:
    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    def _slot_dir(self, slot_index: int) -> Path:
        path = self.root / f"{slot_index:04d}"
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _write_image(self, path: Path, image: np.ndarray) -> None:
        if image.size == 0:
            return
        if not cv2.imwrite(str(path), image):
            _log.warn(f"could not write {path}")

    def save_frame(self, slot_index: int, frame: np.ndarray) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        self._write_image(self.root / f"frame_{slot_index:04d}.png", frame)

    def save_field(
        self,
        slot_index: int,
        role: FieldRole,
        raw: np.ndarray,
        normalized: NormalizedField,
    ) -> None:
        slot_dir = self._slot_dir(slot_index)
        self._write_image(slot_dir / f"{role.value}_raw.png", raw)
        gray = (normalized.buffer[0] * 255.0).clip(0, 255).astype(np.uint8)
        self._write_image(slot_dir / f"{role.value}_norm.png", gray)

    def save_predictions(self, slot_index: int, predictions: dict[FieldRole, str]) -> None:
        slot_dir = self._slot_dir(slot_index)
        payload = {role.value: text for role, text in predictions.items()}
        with open(slot_dir / "predictions.json", "w", encoding="utf-8") as fh:
            json.dump(payload, fh, ensure_ascii=False, indent=2)
