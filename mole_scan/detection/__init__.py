"""Mole detection and annotation helpers."""

from .annotate import AnnotationStyle, annotate_photo, format_label
from .exceptions import DetectionError, InferenceError, ModelLoadError
from .geometry import to_pixel_box
from .types import Detection, Detector, NormalizedBox, PixelBox
from .yolo import YoloDetector, load_yolo_model, region_to_detection, run_inference

__all__ = [
    "AnnotationStyle",
    "Detection",
    "DetectionError",
    "Detector",
    "InferenceError",
    "ModelLoadError",
    "NormalizedBox",
    "PixelBox",
    "YoloDetector",
    "annotate_photo",
    "format_label",
    "load_yolo_model",
    "region_to_detection",
    "run_inference",
    "to_pixel_box",
]
