from __future__ import annotations

from pathlib import Path

import pytest

from utils.config import ScanConfig, clamp_int
from utils.settings import ScanSettings

YAML = """
scan:
  min_star: 5
  min_level: 12
  max_wait_switch_ms: 600
window:
  offset_x: 4
export:
  format: GOOD
debug:
  dump: yes
"""


@pytest.fixture()
def settings_file(tmp_path: Path) -> ScanSettings:
    path = tmp_path / "config.yaml"
    path.write_text(YAML, encoding="utf-8")
    return ScanSettings(path)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("ARTISCAN_SCAN_MIN_STAR", "ARTISCAN_SCAN_MIN_LEVEL", "ARTISCAN_DEBUG_DUMP", "ARTISCAN_EXPORT_FORMAT"):
        monkeypatch.delenv(key, raising=False)


def test_yaml_values_are_read_by_dotted_key(settings_file: ScanSettings) -> None:
    assert settings_file.get_int("scan.min_star") == 5
    assert settings_file.get_bool("debug.dump") is True
    assert settings_file.get_str("export.format") == "GOOD"
    assert settings_file.get_int("scan.missing", 7) == 7
    assert settings_file.get_int("window.offset_x") == 4


def test_env_overrides_yaml(settings_file: ScanSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARTISCAN_SCAN_MIN_STAR", "3")
    monkeypatch.setenv("ARTISCAN_DEBUG_DUMP", "off")

    assert settings_file.get_int("scan.min_star") == 3
    assert settings_file.get_bool("debug.dump") is False


def test_invalid_env_value_falls_back_to_yaml(settings_file: ScanSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARTISCAN_SCAN_MIN_LEVEL", "lots")
    assert settings_file.get_int("scan.min_level") == 12


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    empty = ScanSettings(tmp_path / "nope.yaml")
    assert empty.get_int("scan.min_star", 4) == 4
    assert empty.get_bool("debug.dump") is False


def test_file_is_read_once(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("scan:\n  max_row: 3\n", encoding="utf-8")
    source = ScanSettings(path)
    assert source.get_int("scan.max_row") == 3

    path.write_text("scan:\n  max_row: 9\n", encoding="utf-8")
    assert source.get_int("scan.max_row") == 3


def test_invalid_yaml_value_gives_default(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("scan:\n  max_row: many\ndebug:\n  dump: maybe\n", encoding="utf-8")
    source = ScanSettings(path)

    assert source.get_int("scan.max_row", 1000) == 1000
    assert source.get_bool("debug.dump", True) is True
    assert ScanSettings.env_name("scan.max_row") == "ARTISCAN_SCAN_MAX_ROW"


def test_config_from_settings(settings_file: ScanSettings) -> None:
    config = ScanConfig.from_settings(settings_file)

    assert config.min_star == 5
    assert config.min_level == 12
    assert config.max_wait_switch_ms == 600
    assert config.offset_x == 4
    assert config.output_format == "good"
    assert config.dump is True
    assert config.max_row == 1000


def test_cli_overrides_win_and_none_is_ignored(settings_file: ScanSettings) -> None:
    config = ScanConfig.from_settings(settings_file, min_star=4, min_level=None, unknown="x")

    assert config.min_star == 4
    assert config.min_level == 12


def test_config_values_are_clamped(settings_file: ScanSettings) -> None:
    config = ScanConfig.from_settings(settings_file, min_star=9, min_level=-3, max_row=0, number=-5)

    assert config.min_star == 5
    assert config.min_level == 0
    assert config.max_row == 1
    assert config.number == 0


def test_unknown_output_format_is_rejected() -> None:
    with pytest.raises(ValueError):
        ScanConfig(output_format="csv")


def test_max_wait_depends_on_client_variant() -> None:
    config = ScanConfig(max_wait_switch_ms=800, cloud_wait_switch_ms=1500)

    assert config.max_wait_ms(is_cloud=False) == 800
    assert config.max_wait_ms(is_cloud=True) == 1500


def test_clamp_int() -> None:
    assert clamp_int(7, 1, 5) == 5
    assert clamp_int(-1, 0, 20) == 0
    assert clamp_int(3, 1, 5) == 3
