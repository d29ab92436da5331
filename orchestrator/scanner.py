"""Scan orchestrator — the per-slot state machine that reads the inventory.

Visits every inventory slot once, on a single thread::

    SELECT_SLOT -> WAIT_FOR_RENDER -> CAPTURE_FIELDS -> RECOGNIZE_FIELDS
        -> CHECK_TERMINATION -> FILTER_AND_APPEND -> ADVANCE -> SELECT_SLOT
                 |                                      |
                 +----------------> DONE <--------------+

* **WAIT_FOR_RENDER** polls the panel fingerprint until it has moved away
  from the previous slot's and then stayed put for one poll, bounded by the
  (local or cloud) max wait.  A timeout is not an error: the slot is
  captured anyway.
* **CHECK_TERMINATION** stops when the list wraps around (the record equals
  the first one scanned) or when the item total is reached.
* **FILTER_AND_APPEND** counts every visited slot, but only keeps records
  meeting ``min_star`` / ``min_level``.
* **ADVANCE** moves to the next cell, scrolling the grid by whole rows when
  the visible page is exhausted.

Every collaborator (capture, mouse, recognizer, clock) is injected, so tests
can replay arbitrary frame sequences and settle timings without delays.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol

import numpy as np

from tools.artifact_models import TEXT_ROLES, ArtifactRecord, FieldRole, RecognizedField, WindowRect
from tools.artifact_parser import build_record, is_locked, parse_item_count, rarity_from_color
from tools.dump_writer import DumpWriter
from tools.frame_preprocess import FramePreprocessor, NormalizedField, fingerprint, sample_pixel
from tools.geometry import GeometrySet
from tools.text_recognizer import RecognitionError, TextRecognizer
from utils.config import ScanConfig
from utils.logger import ScanLogger

_log = ScanLogger("Scanner")

_FINGERPRINT_EPSILON = 1e-3
_COLOR_TOLERANCE = 10
_AVERAGE_AFTER_ROWS = 3


class FrameSource(Protocol):
    def capture(self, rect: WindowRect) -> np.ndarray: ...


class UIDriver(Protocol):
    def move_to(self, x: int, y: int) -> None: ...

    def click(self, x: int, y: int) -> None: ...

    def scroll(self, ticks: int) -> None: ...


class Clock(Protocol):
    def now(self) -> float: ...

    def sleep(self, seconds: float) -> None: ...


class ScanState(Enum):
    SELECT_SLOT = "select_slot"
    WAIT_FOR_RENDER = "wait_for_render"
    CAPTURE_FIELDS = "capture_fields"
    RECOGNIZE_FIELDS = "recognize_fields"
    CHECK_TERMINATION = "check_termination"
    FILTER_AND_APPEND = "filter_and_append"
    ADVANCE = "advance"
    DONE = "done"


@dataclass(slots=True)
class CapturedField:
    role: FieldRole
    raw: np.ndarray
    normalized: NormalizedField


@dataclass(slots=True)
class ScanSession:
    """Mutable state of one scan, owned by :class:`ScanOrchestrator`.

    Attributes:
        total:            Slots to visit (override or in-game counter).
        records:          Accepted records, in scan order (append-only).
        first_signature:  Signature of the first record, for wrap detection.
        scanned:          Slots visited so far, accepted or not.
        row, col:         Grid cell of the current slot on the visible page.
        prev_fingerprint: Panel fingerprint of the previous slot.
        polls:            Frames captured while waiting for render.
        timeouts:         Slots whose render wait hit the bound.
        stop_reason:      Why the scan reached ``DONE``.
    """

    config: ScanConfig
    total: int
    records: list[ArtifactRecord] = field(default_factory=list)
    first_signature: tuple[str, ...] | None = None
    scanned: int = 0
    row: int = 0
    col: int = 0
    prev_fingerprint: float | None = None
    polls: int = 0
    timeouts: int = 0
    frame: np.ndarray | None = None
    captured: list[CapturedField] = field(default_factory=list)
    star: int = 0
    locked: bool = False
    record: ArtifactRecord | None = None
    stop_reason: str = ""


@dataclass(slots=True)
class ScanReport:
    records: list[ArtifactRecord]
    scanned: int
    total: int
    stop_reason: str
    elapsed_seconds: float
    timeouts: int = 0

    @property
    def accepted(self) -> int:
        return len(self.records)


class ScanOrchestrator:
    """Scan every inventory slot and collect :class:`ArtifactRecord` values.

    Args:
        geometry:     Field rectangles for this window (see ``tools.geometry``).
        config:       Immutable scan options.
        capture:      Frame source; ``capture(rect)`` returns a BGR array.
        driver:       Mouse driver used to select slots and scroll.
        recognizer:   Text recognizer (``recognize(field) -> str``).
        clock:        Time source with ``now()`` and ``sleep()``.
        is_cloud:     Use the cloud render-settle bound.
        preprocessor: Crop/normalise stage; defaults to model geometry.
        dump_writer:  Receives frames/crops/predictions when dumping.
    """

    def __init__(
        self,
        geometry: GeometrySet,
        config: ScanConfig,
        capture: FrameSource,
        driver: UIDriver,
        recognizer: TextRecognizer,
        clock: Clock,
        is_cloud: bool = False,
        preprocessor: FramePreprocessor | None = None,
        dump_writer: DumpWriter | None = None,
    ) -> None:
        self.geometry = geometry
        self.config = config
        self.capture = capture
        self.driver = driver
        self.recognizer = recognizer
        self.clock = clock
        self.is_cloud = is_cloud
        self.preprocessor = preprocessor or FramePreprocessor()
        if dump_writer is None and (config.dump or config.capture_only):
            dump_writer = DumpWriter(config.dump_dir)
        self.dump_writer = dump_writer
        self.session: ScanSession | None = None
        self._row_ticks: list[int] = []

        self._handlers: dict[ScanState, Callable[[ScanSession], ScanState]] = {
            ScanState.SELECT_SLOT: self._select_slot,
            ScanState.WAIT_FOR_RENDER: self._wait_for_render,
            ScanState.CAPTURE_FIELDS: self._capture_fields,
            ScanState.RECOGNIZE_FIELDS: self._recognize_fields,
            ScanState.CHECK_TERMINATION: self._check_termination,
            ScanState.FILTER_AND_APPEND: self._filter_and_append,
            ScanState.ADVANCE: self._advance,
        }

    # -- total count ---------------------------------------------------------

    def detect_total(self) -> int:
        """Number of slots to visit.

        A manual ``number`` is authoritative; otherwise the in-game counter is
        read.  Either way the total is capped at ``max_row`` full rows.
        """
        cap = self.config.max_row * self.geometry.cols
        if self.config.number > 0:
            total = self.config.number
            _log.info(f"item count (manual) = {total}")
            return min(total, cap)

        frame = self.capture.capture(self.geometry.capture_rect)
        normalized = self.preprocessor.process(frame, self.geometry.item_count, FieldRole.ITEM_COUNT)
        try:
            text = self.recognizer.recognize(normalized)
        except RecognitionError as err:
            _log.debug(f"item count recognition failed: {err}")
            text = ""
        count = parse_item_count(text)
        if count is None:
            _log.warn(f"could not read the item count ({text!r}); scanning up to {cap} slots")
            return cap
        _log.info(f"item count = {count}")
        return min(count, cap)

    # -- main loop -----------------------------------------------------------

    def scan(self) -> ScanReport:
        """Run the state machine to ``DONE`` and report the outcome.

        ``KeyboardInterrupt`` ends the scan early; records accepted so far are
        kept.
        """
        started = self.clock.now()
        session = ScanSession(config=self.config, total=self.detect_total())
        self.session = session
        self._row_ticks = []
        _log.highlight(
            f"scan start: total={session.total} grid={self.geometry.rows}x{self.geometry.cols} "
            f"wait={self.config.max_wait_ms(self.is_cloud)}ms cloud={self.is_cloud}"
        )

        state = ScanState.SELECT_SLOT if session.total > 0 else ScanState.DONE
        if state is ScanState.DONE:
            session.stop_reason = "empty"
        try:
            while state is not ScanState.DONE:
                state = self._handlers[state](session)
        except KeyboardInterrupt:
            session.stop_reason = "interrupted"
            _log.warn(f"interrupted after {session.scanned} slots")

        elapsed = self.clock.now() - started
        _log.success(
            f"scan done: scanned={session.scanned} accepted={len(session.records)} "
            f"reason={session.stop_reason} timeouts={session.timeouts}"
        )
        return ScanReport(
            records=list(session.records),
            scanned=session.scanned,
            total=session.total,
            stop_reason=session.stop_reason,
            elapsed_seconds=elapsed,
            timeouts=session.timeouts,
        )

    def run(self) -> list[ArtifactRecord]:
        """Scan and return the accepted records in scan order."""
        return self.scan().records

    # -- states --------------------------------------------------------------

    def _select_slot(self, session: ScanSession) -> ScanState:
        x, y = self.geometry.slot_center(session.row, session.col)
        self.driver.click(*self.geometry.to_screen(x, y))
        return ScanState.WAIT_FOR_RENDER

    def _wait_for_render(self, session: ScanSession) -> ScanState:
        """Poll until the panel has changed and then held still for one poll."""
        poll_seconds = self.config.poll_interval_ms / 1000.0
        max_wait = self.config.max_wait_ms(self.is_cloud) / 1000.0
        started = self.clock.now()
        baseline = session.prev_fingerprint
        changed = baseline is None
        last: float | None = None

        while True:
            frame = self.capture.capture(self.geometry.capture_rect)
            session.polls += 1
            current = fingerprint(frame, self.geometry.panel)
            if changed and last is not None and abs(current - last) <= _FINGERPRINT_EPSILON:
                break
            if not changed and abs(current - baseline) > _FINGERPRINT_EPSILON:
                changed = True
            last = current
            if self.clock.now() - started >= max_wait:
                session.timeouts += 1
                _log.debug(f"slot {session.scanned}: render wait timed out after {max_wait:.3f}s")
                break
            self.clock.sleep(poll_seconds)

        return ScanState.CAPTURE_FIELDS

    def _capture_fields(self, session: ScanSession) -> ScanState:
        frame = self.capture.capture(self.geometry.capture_rect)
        session.frame = frame
        session.prev_fingerprint = fingerprint(frame, self.geometry.panel)
        session.captured = []
        for role in TEXT_ROLES:
            raw = self.preprocessor.crop(frame, self.geometry.field_rect(role))
            session.captured.append(CapturedField(role, raw, self.preprocessor.normalize(raw, role)))
        session.star = rarity_from_color(sample_pixel(frame, self.geometry.star_point))
        session.locked = is_locked(sample_pixel(frame, self.geometry.lock_point))

        if self.dump_writer is not None:
            self.dump_writer.save_frame(session.scanned, frame)
            for item in session.captured:
                self.dump_writer.save_field(session.scanned, item.role, item.raw, item.normalized)

        if self.config.capture_only:
            session.stop_reason = "capture-only"
            _log.info(f"capture-only: images saved to {self.config.dump_dir}")
            return ScanState.DONE
        return ScanState.RECOGNIZE_FIELDS

    def _recognize_fields(self, session: ScanSession) -> ScanState:
        recognized: list[RecognizedField] = []
        for item in session.captured:
            try:
                text = self.recognizer.recognize(item.normalized).strip()
            except RecognitionError as err:
                _log.debug(f"slot {session.scanned}: {item.role.value} failed: {err}")
                text = ""
            if not text:
                _log.debug(f"slot {session.scanned}: {item.role.value} is empty")
            recognized.append(RecognizedField(item.role, text))

        session.record = build_record(session.scanned, recognized, session.star, session.locked)
        if self.dump_writer is not None:
            self.dump_writer.save_predictions(
                session.scanned, {item.role: item.text for item in recognized}
            )
        _log.debug(
            f"slot {session.scanned}: {session.record.name or '?'} "
            f"star={session.record.star} level={session.record.level}"
        )
        return ScanState.CHECK_TERMINATION

    def _check_termination(self, session: ScanSession) -> ScanState:
        if session.scanned >= session.total:
            session.stop_reason = "total"
            return ScanState.DONE
        signature = self._current_record(session).signature()
        if session.first_signature is None:
            session.first_signature = signature
        elif signature == session.first_signature:
            session.stop_reason = "repeat"
            _log.info(f"slot {session.scanned} repeats the first item; list exhausted")
            return ScanState.DONE
        return ScanState.FILTER_AND_APPEND

    def _filter_and_append(self, session: ScanSession) -> ScanState:
        record = self._current_record(session)
        session.scanned += 1
        level = record.level if record.level is not None else 0
        if record.star >= self.config.min_star and level >= self.config.min_level:
            session.records.append(record)
        else:
            _log.debug(f"slot {record.slot_index}: filtered out (star={record.star} level={level})")
        return ScanState.ADVANCE

    @staticmethod
    def _current_record(session: ScanSession) -> ArtifactRecord:
        if session.record is None:
            raise RuntimeError(f"slot {session.scanned}: no record recognized")
        return session.record

    def _advance(self, session: ScanSession) -> ScanState:
        if session.scanned >= session.total:
            session.stop_reason = "total"
            return ScanState.DONE

        rows, cols = self.geometry.rows, self.geometry.cols
        session.col += 1
        if session.col >= cols:
            session.col = 0
            session.row += 1
        if session.row < rows:
            return ScanState.SELECT_SLOT

        remaining_rows = math.ceil((session.total - session.scanned) / cols)
        scroll_rows = min(rows, remaining_rows)
        if not self._scroll_rows(scroll_rows):
            session.stop_reason = "scroll"
            _log.warn(f"could not scroll {scroll_rows} rows; stopping after {session.scanned} slots")
            return ScanState.DONE
        session.row = rows - scroll_rows
        return ScanState.SELECT_SLOT

    # -- scrolling -----------------------------------------------------------

    def _flag_color(self) -> tuple[int, int, int]:
        frame = self.capture.capture(self.geometry.capture_rect)
        return sample_pixel(frame, self.geometry.flag_point)

    @staticmethod
    def _same_color(a: tuple[int, int, int], b: tuple[int, int, int]) -> bool:
        return all(abs(int(x) - int(y)) <= _COLOR_TOLERANCE for x, y in zip(a, b))

    def _scroll_rows(self, count: int) -> bool:
        """Scroll the grid down by *count* whole rows."""
        x, y = self.geometry.slot_center(0, 0)
        self.driver.move_to(*self.geometry.to_screen(x, y))
        for _ in range(count):
            if not self._scroll_one_row():
                return False
        return True

    def _scroll_one_row(self) -> bool:
        """Scroll until the flag pixel leaves its colour and comes back.

        Once a few rows have been measured the average tick count is used
        directly, skipping the per-tick captures.
        """
        stop_seconds = self.config.scroll_stop_ms / 1000.0
        if len(self._row_ticks) >= _AVERAGE_AFTER_ROWS:
            ticks = int(round(sum(self._row_ticks) / len(self._row_ticks)))
            self.driver.scroll(-ticks)
            self.clock.sleep(stop_seconds)
            return True

        reference = self._flag_color()
        left_row = False
        for tick in range(1, self.config.max_scroll_ticks + 1):
            self.driver.scroll(-1)
            self.clock.sleep(stop_seconds)
            same = self._same_color(self._flag_color(), reference)
            if not left_row and not same:
                left_row = True
            elif left_row and same:
                self._row_ticks.append(tick)
                return True
        return False
