"""Text recognizer — CRNN inference and CTC best-path decoding.

The model emits one class distribution per image column (time step), over a
fixed vocabulary that includes a designated blank ("no output") class.  The
decoding contract the model was trained under:

1. take the arg-max class per step;
2. collapse consecutive repeats of the same class;
3. drop every blank;
4. concatenate the surviving symbols.

``[a, a, ∅, b, b, b, ∅, c]`` decodes to ``"abc"``.  Empty or all-blank input
decodes to ``""``; callers decide what an empty field means.

Model files
-----------
``model_training.onnx``  CRNN exported to ONNX, input ``(N, 1, 32, W)``.
``index_2_word.json``    ``{"0": "<blank>", "1": "攻", ...}`` class index -> symbol.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol, Sequence

import numpy as np

from tools.frame_preprocess import NormalizedField
from utils.logger import ScanLogger

_log = ScanLogger("Recognizer")


class RecognizerLoadError(RuntimeError):
    """The model or its vocabulary could not be loaded."""


class RecognitionError(RuntimeError):
    """Inference failed for a single field."""


class TextRecognizer(Protocol):
    def recognize(self, field: NormalizedField) -> str: ...


def ctc_greedy_decode(
    indices: Iterable[int],
    vocabulary: Sequence[str] | Mapping[int, str],
    blank_index: int = 0,
) -> str:
    """Best-path decode a per-step class index sequence.

    Args:
        indices:     Arg-max class index for each time step.
        vocabulary:  Class index -> symbol.
        blank_index: Index of the blank class.

    Returns:
        The decoded string (``""`` for empty or all-blank input).
    """
    symbols: list[str] = []
    previous: int | None = None
    for raw_index in indices:
        index = int(raw_index)
        if index != previous and index != blank_index:
            symbols.append(vocabulary[index])
        previous = index
    return "".join(symbols)


def load_vocabulary(path: str | os.PathLike[str]) -> dict[int, str]:
    """Read ``index_2_word.json`` into an ``{index: symbol}`` dict."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (OSError, json.JSONDecodeError) as err:
        raise RecognizerLoadError(f"cannot read vocabulary {path}: {err}") from err

    if isinstance(payload, list):
        return {index: str(symbol) for index, symbol in enumerate(payload)}
    if not isinstance(payload, dict):
        raise RecognizerLoadError(f"vocabulary {path} must be a JSON object or array")

    vocabulary: dict[int, str] = {}
    for raw_index, symbol in payload.items():
        try:
            vocabulary[int(raw_index)] = str(symbol)
        except (TypeError, ValueError) as err:
            raise RecognizerLoadError(f"bad vocabulary index {raw_index!r} in {path}") from err
    return vocabulary


class CRNNRecognizer:
    """ONNX CRNN text recognizer.

    Args:
        model_path:  Path to the ``.onnx`` model.
        vocab_path:  Path to the ``index_2_word.json`` vocabulary.
        blank_index: Class index of the CTC blank.
        session:     Pre-built inference session (skips model loading).
    """

    def __init__(
        self,
        model_path: str | os.PathLike[str],
        vocab_path: str | os.PathLike[str],
        blank_index: int = 0,
        session: Any | None = None,
    ) -> None:
        self.model_path = Path(model_path)
        self.blank_index = blank_index
        self.vocabulary = load_vocabulary(vocab_path)
        self._session = session if session is not None else self._load_session(self.model_path)
        self._input_name = self._session.get_inputs()[0].name
        _log.debug(f"model={self.model_path} classes={len(self.vocabulary)} input={self._input_name}")

    @staticmethod
    def _load_session(model_path: Path) -> Any:
        if not model_path.exists():
            raise RecognizerLoadError(f"model file not found: {model_path}")
        try:
            import onnxruntime as ort

            options = ort.SessionOptions()
            options.log_severity_level = 3
            return ort.InferenceSession(
                str(model_path),
                sess_options=options,
                providers=["CPUExecutionProvider"],
            )
        except Exception as err:
            raise RecognizerLoadError(f"cannot load model {model_path}: {err}") from err

    def _step_indices(self, output: np.ndarray) -> np.ndarray:
        """Reduce a model output to the arg-max class index per time step."""
        scores = np.asarray(output)
        if scores.ndim == 3:
            # (T, 1, C) from the seq-first export, (1, T, C) from batch-first
            scores = scores[:, 0, :] if scores.shape[1] == 1 else scores[0]
        if scores.ndim != 2:
            raise RecognitionError(f"unexpected model output shape {np.shape(output)}")
        return np.argmax(scores, axis=1)

    def recognize(self, field: NormalizedField) -> str:
        if field.is_blank:
            return ""
        batch = field.buffer[np.newaxis, ...].astype(np.float32)
        try:
            outputs = self._session.run(None, {self._input_name: batch})
        except Exception as err:
            raise RecognitionError(f"inference failed for {field.role.value}: {err}") from err
        indices = self._step_indices(outputs[0])
        try:
            return ctc_greedy_decode(indices, self.vocabulary, self.blank_index)
        except KeyError as err:
            raise RecognitionError(f"class index {err} missing from vocabulary") from err
