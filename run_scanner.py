"""run_scanner.py — artifact inventory scanner entry point.

Startup sequence:

  1. Parse CLI options and merge them over ``config.yaml`` / ``ARTISCAN_*``.
  2. Load the CRNN model and vocabulary.
  3. Locate the game window (local client first, then cloud).
  4. Derive the field geometry for the window size.
  5. Run the scan state machine.
  6. Export the accepted records in the requested schema(s).

Open the in-game artifact inventory before starting.  Moving the mouse into
a screen corner stops the scan like Ctrl+C (PyAutoGUI fail-safe); the
records read so far are still exported.

Usage::

    python run_scanner.py
    python run_scanner.py --min-star 5 --min-level 16 -f all -o out
    python run_scanner.py --capture-only --offset-x 2
    python run_scanner.py --recognize-image dumps/0000/name_raw.png

Exit status
-----------
``0``  scan and export finished.
``1``  fatal startup error (not elevated, window, resolution, model).
``2``  scan finished but at least one export schema failed.
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

import cv2

from agent.game_window import WindowNotFoundError, default_locator, is_admin
from agent.screen_capture import ScreenCapture, SystemClock
from orchestrator.scanner import ScanOrchestrator
from tools.exporter import ExportError, ExportFormat, export_records
from tools.frame_preprocess import FramePreprocessor
from tools.geometry import UnsupportedResolution, derive
from tools.text_recognizer import CRNNRecognizer, RecognitionError, RecognizerLoadError
from utils.config import ScanConfig
from utils.logger import ScanLogger, set_verbose

__version__ = "0.3.0"

_log = ScanLogger("Scanner")


def _banner() -> None:
    print(
        f"""
========================================================
  artiscan {__version__}  |  artifact inventory scanner
  capture: mss   recognition: CRNN (onnxruntime)
========================================================
"""
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artiscan",
        description="Scan the game's artifact inventory and export it as JSON.",
    )
    parser.add_argument("--max-row", type=int, default=None, help="maximum number of rows to scan")
    parser.add_argument("--dump", action="store_true", default=None, help="save frames, crops and predictions")
    parser.add_argument(
        "--capture-only", action="store_true", default=None,
        help="capture the first slot's images into the dump dir and stop",
    )
    parser.add_argument("--min-star", type=int, default=None, help="minimum rarity to keep (1-5)")
    parser.add_argument("--min-level", type=int, default=None, help="minimum level to keep (0-20)")
    parser.add_argument(
        "--max-wait-switch-artifact", type=int, default=None, dest="max_wait_switch_ms",
        help="render-settle bound in ms (local client)",
    )
    parser.add_argument(
        "--cloud-wait-switch-artifact", type=int, default=None, dest="cloud_wait_switch_ms",
        help="render-settle bound in ms (cloud client)",
    )
    parser.add_argument("-o", "--output-dir", default=None, help="directory for the exported JSON files")
    parser.add_argument(
        "--scroll-stop", type=int, default=None, dest="scroll_stop_ms",
        help="pause after each wheel tick in ms",
    )
    parser.add_argument("--number", type=int, default=None, help="item total (skip reading the in-game counter)")
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="print debug output")
    parser.add_argument("--offset-x", type=int, default=None, help="x correction added to every field (px)")
    parser.add_argument("--offset-y", type=int, default=None, help="y correction added to every field (px)")
    parser.add_argument(
        "-f", "--output-format", default=None,
        choices=[fmt.value for fmt in ExportFormat],
        help="export schema (default: mona)",
    )
    parser.add_argument("--model", default=None, dest="model_path", help="path to the CRNN .onnx model")
    parser.add_argument("--vocab", default=None, dest="vocab_path", help="path to index_2_word.json")
    parser.add_argument(
        "--recognize-image", default=None, metavar="PATH",
        help="recognize the text in a single image file and exit",
    )
    parser.add_argument("--no-pause", action="store_true", help="do not wait for Enter before exiting")
    return parser


def _load_recognizer(config: ScanConfig) -> CRNNRecognizer:
    recognizer = CRNNRecognizer(config.model_path, config.vocab_path)
    _log.success(f"model loaded: {config.model_path}")
    return recognizer


def recognize_image(path: str, config: ScanConfig) -> int:
    """Run the recognizer on one local image file and print the text."""
    image = cv2.imread(path, cv2.IMREAD_COLOR)
    if image is None:
        _log.error(f"cannot read image {path}")
        return 1
    try:
        recognizer = _load_recognizer(config)
        text = recognizer.recognize(FramePreprocessor().normalize(image))
    except (RecognizerLoadError, RecognitionError) as err:
        _log.error(str(err))
        return 1
    print(text)
    return 0


def _pause(enabled: bool) -> None:
    if enabled and sys.stdin is not None and sys.stdin.isatty():
        try:
            input("Press Enter to exit...")
        except EOFError:
            pass


def _mouse_driver():
    # imported late: pyautogui needs a display at import time
    from agent.ui_driver import MouseDriver

    return MouseDriver()


def run(config: ScanConfig) -> int:
    """Full scan: returns the process exit status."""
    if not is_admin():
        _log.error("run artiscan as administrator: the game ignores input from a non-elevated process")
        return 1

    try:
        recognizer = _load_recognizer(config)
        window = default_locator().locate()
        geometry = derive(window.rect, config.offset_x, config.offset_y)
        driver = _mouse_driver()
    except WindowNotFoundError as err:
        _log.error(f"{err}. Is the game running with the inventory open?")
        return 1
    except UnsupportedResolution as err:
        _log.error(f"{err}. Supported ratios: 43:18, 16:9, 8:5, 4:3, 7:3.")
        return 1
    except RecognizerLoadError as err:
        _log.error(f"{err}. Use --model / --vocab to point at the model files.")
        return 1
    except RuntimeError as err:
        _log.error(str(err))
        return 1

    rect = window.rect
    _log.info(
        f"window: left={rect.left} top={rect.top} {rect.width}x{rect.height} "
        f"({geometry.bucket.value[0]}:{geometry.bucket.value[1]}, "
        f"{'cloud' if window.is_cloud else 'local'})"
    )

    clock = SystemClock()
    with ScreenCapture() as capture:
        orchestrator = ScanOrchestrator(
            geometry=geometry,
            config=config,
            capture=capture,
            driver=driver,
            recognizer=recognizer,
            clock=clock,
            is_cloud=window.is_cloud,
        )
        report = orchestrator.scan()

    _log.info(
        f"scanned {report.scanned}/{report.total}, kept {report.accepted} "
        f"in {report.elapsed_seconds:.1f}s ({report.stop_reason})"
    )
    if config.capture_only:
        return 0

    try:
        export_records(report.records, config.output_format, config.output_dir)
    except ExportError as err:
        _log.error(f"{err}; {len(err.written)} file(s) written")
        return 2
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {
        key: value
        for key, value in vars(args).items()
        if key not in {"recognize_image", "no_pause"}
    }
    try:
        config = ScanConfig.from_settings(**overrides)
    except ValueError as err:
        _log.error(str(err))
        return 1
    if config.verbose:
        set_verbose(True)

    if args.recognize_image:
        return recognize_image(args.recognize_image, config)

    _banner()
    status = run(config)
    _pause(not args.no_pause)
    return status


if __name__ == "__main__":
    sys.exit(main())
