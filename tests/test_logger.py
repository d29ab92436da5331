from __future__ import annotations

from typing import Iterator

import pytest

from utils import logger
from utils.logger import ScanLogger, is_verbose, set_verbose


@pytest.fixture(autouse=True)
def _plain_output(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(logger, "_COLOR_ENABLED", False)
    previous = is_verbose()
    yield
    set_verbose(previous)


def test_messages_carry_module_prefix(capsys: pytest.CaptureFixture[str]) -> None:
    log = ScanLogger("Scanner")
    log.info("starting")
    log.error("broken")

    captured = capsys.readouterr()
    assert captured.out == "[Scanner] > starting\n"
    assert captured.err == "[Scanner] X broken\n"


def test_debug_only_prints_when_verbose(capsys: pytest.CaptureFixture[str]) -> None:
    log = ScanLogger("Geometry")
    set_verbose(False)
    log.debug("hidden")
    assert capsys.readouterr().out == ""

    set_verbose(True)
    log.debug("shown")
    assert capsys.readouterr().out == "[Geometry] . shown\n"


def test_highlight_and_warn_markers(capsys: pytest.CaptureFixture[str]) -> None:
    log = ScanLogger("Export")
    log.highlight("scan start")
    log.warn("slow")
    assert capsys.readouterr().out == "[Export] * scan start\n[Export] ! slow\n"
