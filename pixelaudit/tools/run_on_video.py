from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pixelaudit.core.analytics.adjustments import AdjustmentConfig
from pixelaudit.core.analytics.sampler import AnalysisSession
from pixelaudit.core.config.settings import load_settings
from pixelaudit.core.errors import AnalysisError
from pixelaudit.core.exclusion import areas_to_jsonable
from pixelaudit.core.export import color_results_to_export, motion_results_to_export
from pixelaudit.core.media import load_image
from pixelaudit.core.services.reencode import (
    VERTICAL_PRESETS,
    OpenCVReencoder,
    calculate_crop_box,
    move_crop_box,
)
from pixelaudit.core.services.tesseract import TesseractRecognizer
from pixelaudit.core.types import ExcludedArea
from pixelaudit.core.video_sources.base import OpenCVVideoSource

logger = logging.getLogger("pixelaudit.run")


def _parse_area(text: str) -> ExcludedArea:
    try:
        x, y, w, h = (float(v) for v in text.split(","))
    except ValueError as exc:
        raise argparse.ArgumentTypeError("expected x,y,width,height") from exc
    return ExcludedArea(x=x, y=y, width=w, height=h)


def _parse_target(text: str) -> tuple[int, int]:
    if text in VERTICAL_PRESETS:
        return VERTICAL_PRESETS[text]
    try:
        w, h = (int(v) for v in text.lower().split("x"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError("expected WIDTHxHEIGHT") from exc
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError("target dimensions must be > 0")
    return w, h


def _session_from_args(args: argparse.Namespace) -> AnalysisSession:
    overrides: dict[str, Any] = {}
    for name in ("color_threshold", "minimum_coverage", "edge_threshold", "comparison_points", "tolerance"):
        value = getattr(args, name, None)
        if value is not None:
            overrides[name] = value
    if args.max_duration is not None:
        overrides["max_video_duration"] = args.max_duration
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    settings = load_settings(**overrides)

    def _progress(current: int, total: int) -> None:
        if total and (current == total or current % 15 == 0):
            logger.info("Progress %d/%d", current, total)

    session = AnalysisSession.from_settings(settings, on_progress=_progress)
    if args.exclusions:
        session.import_excluded_areas(Path(args.exclusions).read_text(encoding="utf-8"))
    return session


def _run_crop(args: argparse.Namespace) -> dict[str, Any]:
    with OpenCVVideoSource(args.input) as source:
        dims = (source.width, source.height)
    box = calculate_crop_box(dims, args.target)
    if args.crop_x is not None or args.crop_y is not None:
        x = box.x if args.crop_x is None else args.crop_x
        y = box.y if args.crop_y is None else args.crop_y
        box = move_crop_box(box, x, y, dims)
    written = OpenCVReencoder().reencode(args.input, box, args.target, args.output)
    print(f"Wrote {written} frames ({args.target[0]}x{args.target[1]}) to {args.output}")
    return {
        "crop": {"x": box.x, "y": box.y, "width": box.width, "height": box.height},
        "target": list(args.target),
        "frames": written,
    }


def _run_ocr(session: AnalysisSession, args: argparse.Namespace) -> dict[str, Any]:
    adjustments = AdjustmentConfig(
        contrast=args.contrast,
        grayscale=args.grayscale,
        binarize=args.binarize,
    )
    recognizer = TesseractRecognizer(language=args.lang)
    text = session.recognize_text(recognizer, load_image(args.input), args.area, adjustments)
    area = args.area
    return {
        "area": {"x": area.x, "y": area.y, "width": area.width, "height": area.height},
        "text": text,
    }


def run(args: argparse.Namespace) -> list[dict[str, Any]]:
    if args.mode == "crop":
        return [_run_crop(args)]

    session = _session_from_args(args)
    if args.mode == "ocr":
        outputs = [_run_ocr(session, args)]
    elif args.mode == "image":
        result = session.analyze_image(load_image(args.input), with_visualization=False)
        outputs = color_results_to_export([result], session.minimum_coverage)
    else:
        with OpenCVVideoSource(args.input) as source:
            if args.mode == "color":
                results = session.analyze_color_video(source, with_visualization=False)
                outputs = color_results_to_export(results, session.minimum_coverage)
            else:
                outputs = motion_results_to_export(session.analyze_motion_video(source))

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    document: Any = outputs
    if session.excluded_areas:
        document = {"excludedAreas": areas_to_jsonable(session.excluded_areas), "results": outputs}
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)
    print(f"Wrote {len(outputs)} {args.mode} results to {out_path}")
    return outputs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run color, motion or text analysis on an image or short video, or crop a video"
    )
    parser.add_argument("--input", required=True, help="Path to an image or video file")
    parser.add_argument("--output", required=True, help="Where to save JSON output (the video, for crop mode)")
    parser.add_argument("--mode", choices=("color", "motion", "image", "ocr", "crop"), default="color")
    parser.add_argument("--color-threshold", type=float, default=None)
    parser.add_argument(
        "--minimum-coverage", type=float, default=None, help="Coverage ratio (0-1) for a uniform verdict"
    )
    parser.add_argument("--edge-threshold", type=float, default=None)
    parser.add_argument("--comparison-points", type=int, default=None)
    parser.add_argument("--tolerance", type=float, default=None)
    parser.add_argument("--exclusions", default=None, help="JSON file with excluded areas")
    parser.add_argument("--max-duration", type=float, default=None, help="Longest accepted video, seconds")
    parser.add_argument("--seed", type=int, default=None, help="Seed motion sampling for reproducible runs")
    parser.add_argument("--area", type=_parse_area, default=None, help="OCR region as x,y,width,height")
    parser.add_argument("--lang", default="eng", help="Tesseract language for OCR mode")
    parser.add_argument("--contrast", type=float, default=0.0, help="OCR pre-adjustment, -255..255")
    parser.add_argument("--grayscale", action="store_true", help="OCR pre-adjustment")
    parser.add_argument("--binarize", action="store_true", help="OCR pre-adjustment")
    parser.add_argument(
        "--target",
        type=_parse_target,
        default=VERTICAL_PRESETS["1080x2340"],
        help=f"Crop target as WIDTHxHEIGHT or one of {sorted(VERTICAL_PRESETS)}",
    )
    parser.add_argument("--crop-x", type=float, default=None, help="Move the crop box (default: centered)")
    parser.add_argument("--crop-y", type=float, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.mode == "ocr" and args.area is None:
        parser.error("--area is required for --mode ocr")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        run(args)
    except AnalysisError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
