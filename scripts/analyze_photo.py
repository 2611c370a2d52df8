"""Detect moles on one photo and optionally save the annotated PNG."""

from __future__ import annotations

import argparse
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from mole_scan.config import DEVICE_CHOICES, load_settings
from mole_scan.detection import AnnotationStyle, YoloDetector
from mole_scan.imaging import PhotoDecodeError, load_photo, save_png
from mole_scan.service import AnalysisPipeline, ErrorKind, Failure


LOGGER = logging.getLogger("mole_scan.cli")


def build_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    settings = load_settings()
    parser = argparse.ArgumentParser(
        description="Detect moles on a photo and draw boxes with confidence labels."
    )
    parser.add_argument("image", help="Path to the photo to analyze.")
    parser.add_argument(
        "--model",
        default=settings.model_path,
        help=f"YOLO weights path (default: {settings.model_path}).",
    )
    parser.add_argument(
        "--conf",
        type=float,
        default=settings.confidence,
        help=f"Detection confidence threshold (default: {settings.confidence}).",
    )
    parser.add_argument(
        "--device",
        choices=DEVICE_CHOICES,
        default=settings.device,
        help=f"Compute backend (default: {settings.device}).",
    )
    parser.add_argument(
        "--annotated-png",
        default=None,
        help="Optional path to save PNG with detected moles marked in red.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log pipeline progress to stderr.",
    )
    return parser


def _build_output(
    *,
    image_path: str,
    model_path: str,
    confidence: float,
    mole_count: int | None,
    summary: str | None,
    annotated_png_path: str | None,
    status: str,
    error: str | None,
) -> dict[str, object]:
    return {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "image": image_path,
        "model": model_path,
        "confidence_threshold": confidence,
        "mole_count": mole_count,
        "summary": summary,
        "annotated_png_path": annotated_png_path,
        "status": status,
        "error": error,
    }


def main(argv: list[str] | None = None) -> int:
    """Run the analysis script and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    def report(**fields) -> None:
        payload = _build_output(
            image_path=args.image,
            model_path=args.model,
            confidence=args.conf,
            **fields,
        )
        print(json.dumps(payload, ensure_ascii=False))

    try:
        photo = load_photo(args.image)
    except (FileNotFoundError, PhotoDecodeError) as exc:
        report(mole_count=None, summary=None, annotated_png_path=None, status="error", error=str(exc))
        return 1

    detector = YoloDetector(model_path=args.model, confidence=args.conf, device=args.device)
    with AnalysisPipeline(detector, style=AnnotationStyle.from_settings(load_settings())) as pipeline:
        result = pipeline.submit(photo).result()

    if isinstance(result, Failure):
        report(mole_count=None, summary=None, annotated_png_path=None, status="error", error=result.message)
        return 2 if result.reason is ErrorKind.MODEL_LOAD else 1

    annotated_png_path = None
    if args.annotated_png:
        annotated_png_path = save_png(result.annotated_image, args.annotated_png)
        LOGGER.info("Saved annotated PNG to %s", annotated_png_path)

    report(
        mole_count=result.count,
        summary=result.summary,
        annotated_png_path=annotated_png_path,
        status="ok",
        error=None,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
