from __future__ import annotations

import pytest

from tools.artifact_models import FieldRole, Rect, WindowRect
from tools.geometry import AspectBucket, UnsupportedResolution, derive, select_bucket


@pytest.mark.parametrize(
    ("width", "height", "bucket"),
    [
        (3440, 1440, AspectBucket.R43_18),
        (1920, 1080, AspectBucket.R16_9),
        (1600, 900, AspectBucket.R16_9),
        (1680, 1050, AspectBucket.R8_5),
        (1024, 768, AspectBucket.R4_3),
        (2100, 900, AspectBucket.R7_3),
    ],
)
def test_select_bucket_matches_exact_ratio(width: int, height: int, bucket: AspectBucket) -> None:
    assert select_bucket(WindowRect(0, 0, width, height)) is bucket


@pytest.mark.parametrize(("width", "height"), [(1000, 1000), (2560, 1080), (1366, 768), (0, 0)])
def test_unsupported_resolution_raises(width: int, height: int) -> None:
    rect = WindowRect(0, 0, width, height)
    with pytest.raises(UnsupportedResolution) as excinfo:
        derive(rect)
    assert excinfo.value.rect == rect


def test_derive_is_deterministic() -> None:
    rect = WindowRect(10, 20, 1920, 1080)
    assert derive(rect, 3, -2) == derive(rect, 3, -2)


def test_base_resolution_uses_layout_constants() -> None:
    geometry = derive(WindowRect(0, 0, 1600, 900))

    assert geometry.field_rect(FieldRole.NAME) == Rect(1123, 98, 318, 29)
    assert geometry.rows == 5
    assert geometry.cols == 7


def test_rects_scale_linearly_with_window_size() -> None:
    base = derive(WindowRect(0, 0, 1600, 900))
    double = derive(WindowRect(0, 0, 3200, 1800))

    for role in FieldRole:
        if role not in base.fields:
            continue
        small = base.field_rect(role)
        large = double.field_rect(role)
        assert large == Rect(small.left * 2, small.top * 2, small.width * 2, small.height * 2)


def test_offsets_shift_every_rect_and_point() -> None:
    rect = WindowRect(0, 0, 1920, 1080)
    plain = derive(rect)
    shifted = derive(rect, offset_x=5, offset_y=-3)

    for role, field in plain.fields.items():
        assert shifted.field_rect(role) == field.shifted(5, -3)
    assert shifted.panel == plain.panel.shifted(5, -3)
    assert shifted.star_point == (plain.star_point[0] + 5, plain.star_point[1] - 3)
    px, py = plain.slot_center(2, 3)
    assert shifted.slot_center(2, 3) == (px + 5, py - 3)


def test_to_screen_adds_window_origin() -> None:
    geometry = derive(WindowRect(300, 200, 1600, 900))
    x, y = geometry.slot_center(0, 0)

    assert geometry.to_screen(x, y) == (300 + x, 200 + y)
    assert geometry.capture_rect == WindowRect(300, 200, 1600, 900)


def test_slot_centers_step_by_item_pitch() -> None:
    geometry = derive(WindowRect(0, 0, 1600, 900))
    x0, y0 = geometry.slot_center(0, 0)
    x1, _ = geometry.slot_center(0, 1)
    _, y1 = geometry.slot_center(1, 0)

    assert abs((x1 - x0) - (123 + 30)) <= 1
    assert abs((y1 - y0) - (152 + 22)) <= 1
