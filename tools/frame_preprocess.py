"""Frame preprocessing — crop, normalise and fingerprint captured frames.

Turns one field rectangle of a captured window frame into the fixed-height,
intensity-normalised single-channel buffer the CRNN was trained on.

Pipeline for :meth:`FramePreprocessor.normalize`:

1. Grayscale (``cv2.cvtColor``) scaled to ``[0, 1]``.
2. Min-max contrast stretch.
3. Auto-inverse: text must be bright on a dark background; a bright border
   means the polarity is reversed.
4. Trim to the bounding box of pixels above ``text_threshold``.
5. Resize to ``height`` keeping the aspect ratio, right-pad with zeros to
   ``max_width`` (content wider than that is scaled down to fit).

Every function here is pure: identical input gives identical output.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from tools.artifact_models import FieldRole, Rect

MODEL_HEIGHT = 32
MODEL_WIDTH = 384


@dataclass(slots=True)
class NormalizedField:
    """Recognizer-ready buffer for one field.

    Attributes:
        role:          Semantic role of the field.
        buffer:        ``float32`` array of shape ``(1, height, width)``.
        content_width: Width of the text before right padding.
    """

    role: FieldRole
    buffer: np.ndarray
    content_width: int

    @property
    def is_blank(self) -> bool:
        return self.content_width == 0


def crop(frame: np.ndarray, rect: Rect) -> np.ndarray:
    """Cut *rect* out of *frame*, clipped to the frame bounds.

    Rectangles that extend past the frame are clamped; a rectangle entirely
    outside gives an empty array with the frame's channel layout.
    """
    height, width = frame.shape[:2]
    x0 = min(max(rect.left, 0), width)
    y0 = min(max(rect.top, 0), height)
    x1 = min(max(rect.right, 0), width)
    y1 = min(max(rect.bottom, 0), height)
    if x1 <= x0 or y1 <= y0:
        return frame[0:0, 0:0]
    return frame[y0:y1, x0:x1]


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert a BGR/BGRA/gray ``uint8`` image to ``float32`` gray in ``[0, 1]``."""
    if image.size == 0:
        return np.zeros(image.shape[:2], dtype=np.float32)
    if image.ndim == 3:
        image = np.ascontiguousarray(image)
        channels = image.shape[2]
        if channels == 4:
            gray = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        elif channels == 3:
            gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        else:
            gray = image[:, :, 0]
    else:
        gray = image
    if gray.dtype == np.uint8:
        return gray.astype(np.float32) / 255.0
    return np.clip(gray.astype(np.float32), 0.0, 1.0)


def fingerprint(frame: np.ndarray, rect: Rect) -> float:
    """Cheap signature of *rect*: summed gray intensity of the region."""
    region = crop(frame, rect)
    if region.size == 0:
        return 0.0
    return float(np.sum(to_gray(region), dtype=np.float64))


def sample_pixel(frame: np.ndarray, point: tuple[int, int]) -> tuple[int, int, int]:
    """Return the ``(b, g, r)`` colour at *point*, clamped to the frame."""
    height, width = frame.shape[:2]
    if height == 0 or width == 0:
        return (0, 0, 0)
    x = min(max(point[0], 0), width - 1)
    y = min(max(point[1], 0), height - 1)
    pixel = frame[y, x]
    if np.ndim(pixel) == 0:
        value = int(pixel)
        return (value, value, value)
    return (int(pixel[0]), int(pixel[1]), int(pixel[2]))


class FramePreprocessor:
    """Crop + normalise fields for the text recognizer.

    Args:
        height:         Model input height.
        max_width:      Model input width; buffers are right-padded to it.
        text_threshold: Intensity above which a pixel counts as text when
                        trimming the crop to its content.
    """

    def __init__(
        self,
        height: int = MODEL_HEIGHT,
        max_width: int = MODEL_WIDTH,
        text_threshold: float = 0.6,
    ) -> None:
        self.height = height
        self.max_width = max_width
        self.text_threshold = text_threshold

    def crop(self, frame: np.ndarray, rect: Rect) -> np.ndarray:
        return crop(frame, rect)

    def normalize(self, sub_image: np.ndarray, role: FieldRole = FieldRole.NAME) -> NormalizedField:
        gray = to_gray(sub_image)
        if gray.size == 0:
            return self._blank(role)

        low = float(gray.min())
        high = float(gray.max())
        if high - low < 1e-6:
            return self._blank(role)
        stretched = (gray - low) / (high - low)

        if self._border_mean(stretched) > 0.5:
            stretched = 1.0 - stretched

        trimmed = self._trim(stretched)
        if trimmed is None:
            return self._blank(role)

        resized = self._resize(trimmed)
        content_width = resized.shape[1]
        buffer = np.zeros((1, self.height, self.max_width), dtype=np.float32)
        buffer[0, : resized.shape[0], :content_width] = resized
        return NormalizedField(role=role, buffer=buffer, content_width=content_width)

    def process(self, frame: np.ndarray, rect: Rect, role: FieldRole) -> NormalizedField:
        """Crop *rect* from *frame* and normalise it in one step."""
        return self.normalize(self.crop(frame, rect), role)

    # -- helpers -------------------------------------------------------------

    def _blank(self, role: FieldRole) -> NormalizedField:
        buffer = np.zeros((1, self.height, self.max_width), dtype=np.float32)
        return NormalizedField(role=role, buffer=buffer, content_width=0)

    @staticmethod
    def _border_mean(image: np.ndarray) -> float:
        border = np.concatenate((image[0, :], image[-1, :], image[:, 0], image[:, -1]))
        return float(border.mean())

    def _trim(self, image: np.ndarray) -> np.ndarray | None:
        mask = image > self.text_threshold
        rows = np.flatnonzero(mask.any(axis=1))
        cols = np.flatnonzero(mask.any(axis=0))
        if rows.size == 0 or cols.size == 0:
            return None
        return image[rows[0] : rows[-1] + 1, cols[0] : cols[-1] + 1]

    def _resize(self, image: np.ndarray) -> np.ndarray:
        src_h, src_w = image.shape
        new_w = max(1, int(round(src_w * self.height / src_h)))
        new_h = self.height
        if new_w > self.max_width:
            new_w = self.max_width
            new_h = max(1, min(self.height, int(round(src_h * self.max_width / src_w))))
        resized = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_LINEAR)
        return np.clip(resized, 0.0, 1.0).astype(np.float32)
