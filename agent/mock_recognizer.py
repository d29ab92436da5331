"""Mock recognizer — canned text outputs for testing without a model.

Returns pre-scripted strings in call order so the orchestrator can be
exercised deterministically, with no ONNX model, capture or real UI.

Usage::

    from agent.mock_recognizer import MockRecognizer, script_for_records

    mock = MockRecognizer(script_for_records([
        {"name": "角斗士的留恋", "level": "+20"},
        {"name": "宗室之花", "level": "+16"},
    ]))
    mock.recognize(field)  # -> "角斗士的留恋"
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Mapping

from tools.artifact_models import TEXT_ROLES, FieldRole
from tools.frame_preprocess import NormalizedField


def script_for_records(records: Iterable[Mapping[str, str]]) -> list[str]:
    """Flatten per-slot field texts into recognizer call order.

    Each mapping is keyed by :class:`FieldRole` value; missing roles read as
    ``""``.
    """
    script: list[str] = []
    for record in records:
        script.extend(record.get(role.value, "") for role in TEXT_ROLES)
    return script


class MockRecognizer:
    """Deterministic recognizer returning canned outputs.

    Args:
        outputs: Strings returned one per :meth:`recognize` call.
        default: Returned once *outputs* is exhausted.
    """

    def __init__(self, outputs: Iterable[str], default: str = "") -> None:
        self._outputs: deque[str] = deque(outputs)
        self.default = default
        self.calls: list[FieldRole] = []

    @property
    def remaining(self) -> int:
        return len(self._outputs)

    def recognize(self, field: NormalizedField) -> str:
        self.calls.append(field.role)
        if not self._outputs:
            return self.default
        return self._outputs.popleft()
