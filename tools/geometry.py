"""Geometry model — field rectangles derived from the game window shape.

The inventory screen is laid out differently per aspect ratio (letterboxing
and UI scaling are not uniform), so each supported ratio carries its own
:class:`LayoutConstants`, measured at a base resolution.  :func:`derive`
scales those constants linearly to the actual window size and adds the
operator's pixel offsets uniformly.

Coordinate system
-----------------
Every rectangle and point in a :class:`GeometrySet` is **window-relative**
(already including ``offset_x`` / ``offset_y``).  Frames are captured for the
whole window, so the rects index frames directly.  Mouse targets go through
:meth:`GeometrySet.to_screen`, which adds the window origin::

    screen_x = window.left + base_x * width / base_width + offset_x
    screen_y = window.top  + base_y * height / base_height + offset_y
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from tools.artifact_models import FieldRole, Rect, WindowRect


class UnsupportedResolution(ValueError):
    """The window matches none of the supported aspect ratios."""

    def __init__(self, rect: WindowRect) -> None:
        super().__init__(f"unsupported resolution {rect.width}x{rect.height}")
        self.rect = rect


class AspectBucket(Enum):
    """Supported ``width:height`` ratios, in matching order."""

    R43_18 = (43, 18)
    R16_9 = (16, 9)
    R8_5 = (8, 5)
    R4_3 = (4, 3)
    R7_3 = (7, 3)

    def matches(self, width: int, height: int) -> bool:
        ratio_w, ratio_h = self.value
        return height * ratio_w == width * ratio_h


# (left, top, right, bottom) at the base resolution
_Box = tuple[float, float, float, float]
_Point = tuple[float, float]


@dataclass(frozen=True, slots=True)
class LayoutConstants:
    """Pixel layout of the inventory screen at ``base_width x base_height``."""

    base_width: float
    base_height: float

    name: _Box
    main_stat_name: _Box
    main_stat_value: _Box
    level: _Box
    sub_stat_1: _Box
    sub_stat_2: _Box
    sub_stat_3: _Box
    sub_stat_4: _Box
    equip: _Box
    item_count: _Box
    panel: _Box

    star_point: _Point
    lock_point: _Point
    flag_point: _Point

    item_width: float
    item_height: float
    gap_x: float
    gap_y: float
    left_margin: float
    top_margin: float
    rows: int
    cols: int


LAYOUTS: dict[AspectBucket, LayoutConstants] = {
    AspectBucket.R43_18: LayoutConstants(
        base_width=3440, base_height=1440,
        name=(2261, 157, 2780, 203),
        main_stat_name=(2261, 354, 2560, 392),
        main_stat_value=(2261, 392, 2560, 458),
        level=(2282, 549, 2357, 578),
        sub_stat_1=(2282, 608, 2700, 650),
        sub_stat_2=(2282, 662, 2700, 704),
        sub_stat_3=(2282, 717, 2700, 758),
        sub_stat_4=(2282, 771, 2700, 813),
        equip=(2311, 1219, 2800, 1267),
        item_count=(2560, 32, 3000, 69),
        panel=(2215, 232, 2792, 336),
        star_point=(2740, 275),
        lock_point=(2760, 560),
        flag_point=(548, 299),
        item_width=197, item_height=243,
        gap_x=48, gap_y=35,
        left_margin=510, top_margin=160,
        rows=5, cols=8,
    ),
    AspectBucket.R16_9: LayoutConstants(
        base_width=1600, base_height=900,
        name=(1123, 98, 1441, 127),
        main_stat_name=(1123, 221, 1311, 245),
        main_stat_value=(1123, 245, 1311, 286),
        level=(1136, 343, 1182, 361),
        sub_stat_1=(1136, 380, 1400, 406),
        sub_stat_2=(1136, 414, 1400, 440),
        sub_stat_3=(1136, 448, 1400, 474),
        sub_stat_4=(1136, 482, 1400, 508),
        equip=(1154, 762, 1460, 792),
        item_count=(1300, 20, 1568, 43),
        panel=(1094, 145, 1475, 210),
        star_point=(1469, 172),
        lock_point=(1462, 350),
        flag_point=(271, 187),
        item_width=123, item_height=152,
        gap_x=30, gap_y=22,
        left_margin=99, top_margin=100,
        rows=5, cols=7,
    ),
    AspectBucket.R8_5: LayoutConstants(
        base_width=1440, base_height=900,
        name=(990, 95, 1300, 125),
        main_stat_name=(990, 207, 1164, 231),
        main_stat_value=(990, 231, 1164, 270),
        level=(1000, 322, 1044, 340),
        sub_stat_1=(1000, 356, 1245, 381),
        sub_stat_2=(1000, 388, 1245, 413),
        sub_stat_3=(1000, 420, 1245, 445),
        sub_stat_4=(1000, 452, 1245, 477),
        equip=(1018, 773, 1300, 803),
        item_count=(1130, 19, 1400, 42),
        panel=(963, 136, 1310, 198),
        star_point=(1300, 165),
        lock_point=(1290, 330),
        flag_point=(245, 178),
        item_width=112, item_height=138,
        gap_x=27, gap_y=21,
        left_margin=90, top_margin=98,
        rows=6, cols=6,
    ),
    AspectBucket.R4_3: LayoutConstants(
        base_width=1280, base_height=960,
        name=(880, 85, 1157, 112),
        main_stat_name=(880, 184, 1035, 206),
        main_stat_value=(880, 206, 1035, 240),
        level=(889, 286, 928, 302),
        sub_stat_1=(889, 317, 1108, 339),
        sub_stat_2=(889, 345, 1108, 367),
        sub_stat_3=(889, 373, 1108, 395),
        sub_stat_4=(889, 401, 1108, 423),
        equip=(905, 884, 1160, 911),
        item_count=(1010, 17, 1250, 38),
        panel=(856, 121, 1165, 176),
        star_point=(1155, 147),
        lock_point=(1148, 294),
        flag_point=(218, 160),
        item_width=100, item_height=123,
        gap_x=24, gap_y=19,
        left_margin=80, top_margin=88,
        rows=7, cols=5,
    ),
    AspectBucket.R7_3: LayoutConstants(
        base_width=2100, base_height=900,
        name=(1620, 98, 1938, 127),
        main_stat_name=(1620, 221, 1808, 245),
        main_stat_value=(1620, 245, 1808, 286),
        level=(1633, 343, 1679, 361),
        sub_stat_1=(1633, 380, 1897, 406),
        sub_stat_2=(1633, 414, 1897, 440),
        sub_stat_3=(1633, 448, 1897, 474),
        sub_stat_4=(1633, 482, 1897, 508),
        equip=(1651, 762, 1957, 792),
        item_count=(1797, 20, 2065, 43),
        panel=(1591, 145, 1972, 210),
        star_point=(1966, 172),
        lock_point=(1959, 350),
        flag_point=(521, 187),
        item_width=123, item_height=152,
        gap_x=30, gap_y=22,
        left_margin=349, top_margin=100,
        rows=5, cols=8,
    ),
}


@dataclass(frozen=True, slots=True)
class GeometrySet:
    """Field rectangles, sample points and grid layout for one session."""

    bucket: AspectBucket
    window: WindowRect
    fields: dict[FieldRole, Rect]
    item_count: Rect
    panel: Rect
    star_point: tuple[int, int]
    lock_point: tuple[int, int]
    flag_point: tuple[int, int]
    item_width: float
    item_height: float
    gap_x: float
    gap_y: float
    left_margin: float
    top_margin: float
    offset_x: int
    offset_y: int
    rows: int
    cols: int

    def field_rect(self, role: FieldRole) -> Rect:
        return self.fields[role]

    def slot_center(self, row: int, col: int) -> tuple[int, int]:
        """Window-relative centre of the grid cell at ``(row, col)``."""
        x = self.left_margin + (self.item_width + self.gap_x) * col + self.item_width / 2
        y = self.top_margin + (self.item_height + self.gap_y) * row + self.item_height / 2
        return (int(round(x)) + self.offset_x, int(round(y)) + self.offset_y)

    def to_screen(self, x: int, y: int) -> tuple[int, int]:
        """Convert a window-relative point to absolute screen coordinates."""
        return (self.window.left + x, self.window.top + y)

    @property
    def capture_rect(self) -> WindowRect:
        return self.window


def select_bucket(rect: WindowRect) -> AspectBucket:
    """Return the bucket whose ratio matches *rect* exactly.

    Raises:
        UnsupportedResolution: no bucket matches.
    """
    if rect.width <= 0 or rect.height <= 0:
        raise UnsupportedResolution(rect)
    for bucket in AspectBucket:
        if bucket.matches(rect.width, rect.height):
            return bucket
    raise UnsupportedResolution(rect)


def derive(rect: WindowRect, offset_x: int = 0, offset_y: int = 0) -> GeometrySet:
    """Build the :class:`GeometrySet` for *rect*.

    Pure: identical inputs always give identical output.

    Raises:
        UnsupportedResolution: the window ratio is not supported.
    """
    bucket = select_bucket(rect)
    layout = LAYOUTS[bucket]
    sx = rect.width / layout.base_width
    sy = rect.height / layout.base_height

    def _rect(box: _Box) -> Rect:
        left, top, right, bottom = box
        x0 = int(round(left * sx))
        y0 = int(round(top * sy))
        x1 = int(round(right * sx))
        y1 = int(round(bottom * sy))
        return Rect(x0 + offset_x, y0 + offset_y, max(1, x1 - x0), max(1, y1 - y0))

    def _point(point: _Point) -> tuple[int, int]:
        return (int(round(point[0] * sx)) + offset_x, int(round(point[1] * sy)) + offset_y)

    text_fields = {
        FieldRole.NAME: _rect(layout.name),
        FieldRole.MAIN_STAT_NAME: _rect(layout.main_stat_name),
        FieldRole.MAIN_STAT_VALUE: _rect(layout.main_stat_value),
        FieldRole.LEVEL: _rect(layout.level),
        FieldRole.SUB_STAT_1: _rect(layout.sub_stat_1),
        FieldRole.SUB_STAT_2: _rect(layout.sub_stat_2),
        FieldRole.SUB_STAT_3: _rect(layout.sub_stat_3),
        FieldRole.SUB_STAT_4: _rect(layout.sub_stat_4),
        FieldRole.EQUIP: _rect(layout.equip),
    }

    return GeometrySet(
        bucket=bucket,
        window=rect,
        fields=text_fields,
        item_count=_rect(layout.item_count),
        panel=_rect(layout.panel),
        star_point=_point(layout.star_point),
        lock_point=_point(layout.lock_point),
        flag_point=_point(layout.flag_point),
        item_width=layout.item_width * sx,
        item_height=layout.item_height * sy,
        gap_x=layout.gap_x * sx,
        gap_y=layout.gap_y * sy,
        left_margin=layout.left_margin * sx,
        top_margin=layout.top_margin * sy,
        offset_x=offset_x,
        offset_y=offset_y,
        rows=layout.rows,
        cols=layout.cols,
    )
