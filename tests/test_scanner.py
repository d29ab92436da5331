from __future__ import annotations

import json
from pathlib import Path

import numpy as np

from agent.mock_recognizer import MockRecognizer, script_for_records
from orchestrator.scanner import ScanOrchestrator, ScanState
from tools.artifact_constants import RARITY_COLORS
from tools.artifact_models import FieldRole, WindowRect
from tools.frame_preprocess import NormalizedField
from tools.geometry import GeometrySet, derive
from tools.text_recognizer import RecognitionError
from utils.config import ScanConfig

WINDOW = WindowRect(100, 50, 320, 180)
FLAG_ON = (200, 200, 200)
FLAG_OFF = (30, 30, 30)


class FakeClock:
    """Virtual time in whole milliseconds; ``sleep`` only advances it."""

    def __init__(self) -> None:
        self._ms = 0

    def now(self) -> float:
        return self._ms / 1000.0

    def sleep(self, seconds: float) -> None:
        self._ms += int(round(seconds * 1000))


class FakeGame:
    """Synthetic inventory: a capture source and mouse driver in one.

    Every click changes the detail panel (unless ``static``).  The flag pixel
    is "on" whenever the list sits on a row boundary, i.e. the scroll position
    is a multiple of ``ticks_per_row`` (never, when ``stuck``).
    """

    def __init__(
        self,
        geometry: GeometrySet,
        static: bool = False,
        stars: list[int] | None = None,
        ticks_per_row: int = 4,
        stuck: bool = False,
        interrupt_on_click: int | None = None,
    ) -> None:
        self.geometry = geometry
        self.static = static
        self.stars = stars or []
        self.ticks_per_row = ticks_per_row
        self.stuck = stuck
        self.interrupt_on_click = interrupt_on_click
        self.clicks: list[tuple[int, int]] = []
        self.moves: list[tuple[int, int]] = []
        self.scroll_calls: list[int] = []
        self.scroll_ticks = 0
        self.captures = 0

    # driver
    def click(self, x: int, y: int) -> None:
        if self.interrupt_on_click is not None and len(self.clicks) == self.interrupt_on_click:
            raise KeyboardInterrupt
        self.clicks.append((x, y))

    def move_to(self, x: int, y: int) -> None:
        self.moves.append((x, y))

    def scroll(self, ticks: int) -> None:
        self.scroll_calls.append(ticks)
        self.scroll_ticks -= ticks

    # capture
    def capture(self, rect: WindowRect) -> np.ndarray:
        self.captures += 1
        frame = np.zeros((rect.height, rect.width, 3), dtype=np.uint8)
        slot = len(self.clicks) - 1
        if not self.static:
            panel = self.geometry.panel
            frame[panel.top:panel.bottom, panel.left:panel.right] = self.panel_shade()
        star = self.stars[slot] if 0 <= slot < len(self.stars) else 5
        sx, sy = self.geometry.star_point
        frame[sy, sx] = RARITY_COLORS[star]
        on_boundary = not self.stuck and self.scroll_ticks % self.ticks_per_row == 0
        fx, fy = self.geometry.flag_point
        frame[fy, fx] = FLAG_ON if on_boundary else FLAG_OFF
        return frame

    def panel_shade(self) -> int:
        return _shade(len(self.clicks))


class LaggyGame(FakeGame):
    """The panel lags behind each click.

    The first capture after a click still shows the previous item, the second
    one a half-drawn transition frame; later captures show the new item.
    """

    TRANSITION = 1

    def __init__(self, geometry: GeometrySet) -> None:
        super().__init__(geometry)
        self._since_click = 0

    def click(self, x: int, y: int) -> None:
        super().click(x, y)
        self._since_click = 0

    def capture(self, rect: WindowRect) -> np.ndarray:
        self._since_click += 1
        return super().capture(rect)

    def panel_shade(self) -> int:
        if self._since_click == 1:
            return _shade(len(self.clicks) - 1)
        if self._since_click == 2:
            return self.TRANSITION
        return _shade(len(self.clicks))


class FrameLog:
    """Dump writer that remembers the panel shade of every captured slot."""

    def __init__(self, geometry: GeometrySet) -> None:
        self.geometry = geometry
        self.shades: list[int] = []

    def save_frame(self, index: int, frame: np.ndarray) -> None:
        panel = self.geometry.panel
        self.shades.append(int(np.median(frame[panel.top:panel.bottom, panel.left:panel.right])))

    def save_field(self, *args) -> None:
        pass

    def save_predictions(self, *args) -> None:
        pass


def _shade(clicks: int) -> int:
    return (clicks * 37) % 256


def _items(count: int, **extra: str) -> list[dict[str, str]]:
    return [{"name": f"item{i}", "level": "+20", **extra} for i in range(count)]


def _scanner(
    config: ScanConfig,
    script: list[str],
    is_cloud: bool = False,
    **game_options,
) -> tuple[ScanOrchestrator, FakeGame, MockRecognizer, FakeClock]:
    geometry = derive(WINDOW)
    game = FakeGame(geometry, **game_options)
    recognizer = MockRecognizer(script)
    clock = FakeClock()
    orchestrator = ScanOrchestrator(
        geometry=geometry,
        config=config,
        capture=game,
        driver=game,
        recognizer=recognizer,
        clock=clock,
        is_cloud=is_cloud,
    )
    return orchestrator, game, recognizer, clock


def test_stops_when_list_wraps_to_first_item() -> None:
    items = [
        {"name": "角斗士的留恋", "level": "+20"},
        {"name": "宗室之花", "level": "+16"},
        {"name": "魔女的炎之花", "level": "+12"},
        {"name": "角斗士的留恋", "level": "+20"},
    ]
    orchestrator, game, recognizer, _ = _scanner(ScanConfig(number=100, min_star=1), script_for_records(items))

    report = orchestrator.scan()

    assert report.stop_reason == "repeat"
    assert report.scanned == 3
    assert [record.name for record in report.records] == ["角斗士的留恋", "宗室之花", "魔女的炎之花"]
    assert len(game.clicks) == 4
    assert recognizer.remaining == 0


def test_render_wait_then_exactly_one_field_capture_per_slot() -> None:
    orchestrator, game, _, _ = _scanner(ScanConfig(number=3), script_for_records(_items(3)))

    report = orchestrator.scan()

    assert report.stop_reason == "total"
    assert report.timeouts == 0
    assert orchestrator.session is not None
    assert game.captures == orchestrator.session.polls + 3


def test_clicks_slot_centres_in_screen_coordinates() -> None:
    orchestrator, game, _, _ = _scanner(ScanConfig(number=8), script_for_records(_items(8)))
    geometry = orchestrator.geometry

    orchestrator.scan()

    expected = [geometry.to_screen(*geometry.slot_center(0, col)) for col in range(7)]
    expected.append(geometry.to_screen(*geometry.slot_center(1, 0)))
    assert game.clicks == expected
    assert game.clicks[0][0] >= WINDOW.left


def test_recognizes_every_text_field_in_order() -> None:
    orchestrator, _, recognizer, _ = _scanner(ScanConfig(number=1), script_for_records(_items(1)))

    orchestrator.scan()

    assert recognizer.calls == [
        FieldRole.NAME,
        FieldRole.MAIN_STAT_NAME,
        FieldRole.MAIN_STAT_VALUE,
        FieldRole.LEVEL,
        FieldRole.SUB_STAT_1,
        FieldRole.SUB_STAT_2,
        FieldRole.SUB_STAT_3,
        FieldRole.SUB_STAT_4,
        FieldRole.EQUIP,
    ]


def test_filter_keeps_scan_order_and_counts_rejected_slots() -> None:
    items = [
        {"name": "a", "level": "+20"},
        {"name": "b", "level": "+4"},
        {"name": "c", "level": ""},
        {"name": "d", "level": "+16"},
        {"name": "e", "level": "+12"},
    ]
    config = ScanConfig(number=5, min_star=4, min_level=10)
    orchestrator, _, _, _ = _scanner(config, script_for_records(items), stars=[5, 5, 5, 3, 4])

    report = orchestrator.scan()

    assert report.scanned == 5
    assert report.accepted == 2
    assert [record.slot_index for record in report.records] == [0, 4]
    assert [record.star for record in report.records] == [5, 4]


def test_render_timeout_is_not_fatal() -> None:
    config = ScanConfig(number=3, max_wait_switch_ms=50, poll_interval_ms=10)
    orchestrator, game, _, _ = _scanner(config, script_for_records(_items(3)), static=True)

    report = orchestrator.scan()

    assert report.scanned == 3
    assert report.timeouts == 2
    assert len(game.clicks) == 3
    assert 0.1 <= report.elapsed_seconds <= 0.13


def test_cloud_client_waits_longer() -> None:
    config = ScanConfig(number=2, max_wait_switch_ms=50, cloud_wait_switch_ms=200, poll_interval_ms=10)
    orchestrator, _, _, _ = _scanner(config, script_for_records(_items(2)), is_cloud=True, static=True)

    report = orchestrator.scan()

    assert report.timeouts == 1
    assert report.elapsed_seconds >= 0.2


def test_scrolls_one_row_when_page_is_exhausted() -> None:
    orchestrator, game, _, _ = _scanner(ScanConfig(number=40), script_for_records(_items(40)))
    geometry = orchestrator.geometry

    report = orchestrator.scan()

    assert report.scanned == 40
    assert report.stop_reason == "total"
    assert game.scroll_ticks == 4
    assert len(game.moves) == 1
    # the list moved up one row: the remaining five items sit on the last row
    last_row = [geometry.to_screen(*geometry.slot_center(4, col)) for col in range(5)]
    assert game.clicks[35:] == last_row


def test_scroll_uses_measured_average_after_three_rows() -> None:
    orchestrator, game, _, _ = _scanner(ScanConfig(number=70), script_for_records(_items(70)))

    report = orchestrator.scan()

    assert report.scanned == 70
    assert game.scroll_ticks == 20
    assert game.scroll_calls[:12] == [-1] * 12
    assert game.scroll_calls[12:] == [-4, -4]


def test_scroll_failure_stops_scan() -> None:
    config = ScanConfig(number=50, max_scroll_ticks=5)
    orchestrator, game, _, _ = _scanner(config, script_for_records(_items(50)), stuck=True)

    report = orchestrator.scan()

    assert report.stop_reason == "scroll"
    assert report.scanned == 35
    assert game.scroll_calls == [-1] * 5


def test_total_is_read_from_item_counter() -> None:
    script = ["圣遗物 3/1500", *script_for_records(_items(5))]
    orchestrator, game, _, _ = _scanner(ScanConfig(), script)

    report = orchestrator.scan()

    assert report.total == 3
    assert report.scanned == 3
    assert len(game.clicks) == 3


def test_unreadable_counter_falls_back_to_max_rows() -> None:
    script = ["???", *script_for_records(_items(7))]
    orchestrator, _, _, _ = _scanner(ScanConfig(max_row=1), script)

    report = orchestrator.scan()

    assert report.total == 7
    assert report.scanned == 7


def test_manual_number_is_capped_by_max_rows() -> None:
    orchestrator, _, _, _ = _scanner(ScanConfig(number=500, max_row=1), script_for_records(_items(7)))

    assert orchestrator.detect_total() == 7


def test_recognition_errors_leave_fields_empty() -> None:
    class FlakyRecognizer(MockRecognizer):
        def recognize(self, field: NormalizedField) -> str:
            text = super().recognize(field)
            if field.role is FieldRole.LEVEL:
                raise RecognitionError("bad level crop")
            return text

    geometry = derive(WINDOW)
    game = FakeGame(geometry)
    orchestrator = ScanOrchestrator(
        geometry=geometry,
        config=ScanConfig(number=2, min_star=1),
        capture=game,
        driver=game,
        recognizer=FlakyRecognizer(script_for_records(_items(2))),
        clock=FakeClock(),
    )

    records = orchestrator.run()

    assert len(records) == 2
    assert records[0].level is None
    assert records[0].text(FieldRole.LEVEL) == ""
    assert records[0].name == "item0"


def test_capture_only_dumps_first_slot_and_stops(tmp_path: Path) -> None:
    config = ScanConfig(number=10, capture_only=True, dump_dir=str(tmp_path))
    orchestrator, game, recognizer, _ = _scanner(config, [])

    report = orchestrator.scan()

    assert report.records == []
    assert report.stop_reason == "capture-only"
    assert recognizer.calls == []
    assert len(game.clicks) == 1
    assert (tmp_path / "frame_0000.png").is_file()
    assert (tmp_path / "0000" / "name_raw.png").is_file()
    assert (tmp_path / "0000" / "equip_norm.png").is_file()


def test_dump_writes_predictions_per_slot(tmp_path: Path) -> None:
    config = ScanConfig(number=2, dump=True, dump_dir=str(tmp_path))
    orchestrator, _, _, _ = _scanner(config, script_for_records(_items(2)))

    orchestrator.scan()

    predictions = json.loads((tmp_path / "0001" / "predictions.json").read_text(encoding="utf-8"))
    assert predictions["name"] == "item1"
    assert predictions["level"] == "+20"


def test_interrupt_keeps_records_scanned_so_far() -> None:
    orchestrator, _, _, _ = _scanner(
        ScanConfig(number=10, min_star=1), script_for_records(_items(10)), interrupt_on_click=2
    )

    report = orchestrator.scan()

    assert report.stop_reason == "interrupted"
    assert report.scanned == 2
    assert [record.name for record in report.records] == ["item0", "item1"]


def test_empty_inventory_finishes_immediately() -> None:
    orchestrator, game, _, _ = _scanner(ScanConfig(), ["圣遗物 0/1500"])

    report = orchestrator.scan()

    assert report.stop_reason == "empty"
    assert game.clicks == []


def test_states_cover_the_scan_cycle() -> None:
    assert [state.name for state in ScanState] == [
        "SELECT_SLOT",
        "WAIT_FOR_RENDER",
        "CAPTURE_FIELDS",
        "RECOGNIZE_FIELDS",
        "CHECK_TERMINATION",
        "FILTER_AND_APPEND",
        "ADVANCE",
        "DONE",
    ]


def test_fields_are_captured_after_the_panel_settles() -> None:
    geometry = derive(WINDOW)
    game = LaggyGame(geometry)
    frames = FrameLog(geometry)
    orchestrator = ScanOrchestrator(
        geometry=geometry,
        config=ScanConfig(number=4, min_star=1),
        capture=game,
        driver=game,
        recognizer=MockRecognizer(script_for_records(_items(4))),
        clock=FakeClock(),
        dump_writer=frames,
    )

    report = orchestrator.scan()

    assert report.scanned == 4
    assert report.timeouts == 0
    assert frames.shades == [_shade(1), _shade(2), _shade(3), _shade(4)]
