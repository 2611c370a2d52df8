"""YOLO-based mole detection."""

from __future__ import annotations

from pathlib import Path
import logging
import threading
from typing import Any, Callable, TypeAlias

from PIL import Image

from mole_scan.config import AppSettings
from mole_scan.imaging import Orientation, Photo, to_upright

from .exceptions import DetectionError, InferenceError, ModelLoadError
from .types import Detection, NormalizedBox


# (center_x, center_y, width, height) normalized with top-left origin, class id, confidence
RawRegion: TypeAlias = tuple[tuple[float, float, float, float], int, float]
ModelLoader: TypeAlias = Callable[[str], Any]

LOGGER = logging.getLogger("mole_scan.detection")
_DEVICE_ARGS: dict[str, object] = {"cpu": "cpu", "gpu": 0}


def load_yolo_model(model_path: str):
    """Load YOLO weights lazily to keep imports optional outside detection code."""
    try:
        from ultralytics import YOLO
    except ImportError as exc:
        raise ModelLoadError(
            "ultralytics is not installed. Install dependencies with `poetry install`."
        ) from exc

    if not Path(model_path).expanduser().is_file():
        raise ModelLoadError(f"Model resource not found: {model_path}")
    try:
        return YOLO(str(Path(model_path).expanduser()))
    except Exception as exc:
        raise ModelLoadError(str(exc)) from exc


def _as_list(values) -> list:
    return values.tolist() if hasattr(values, "tolist") else list(values)


def _class_names(source) -> dict[int, str]:
    names = getattr(source, "names", None) or {}
    if isinstance(names, dict):
        return {int(k): str(v) for k, v in names.items()}
    return dict(enumerate(str(v) for v in names))


def run_inference(
    model,
    pixels: Image.Image,
    orientation: Orientation,
    confidence: float,
    device: str = "auto",
) -> tuple[list[RawRegion], dict[int, str]]:
    """Predict on the bitmap in its display orientation and return raw regions plus class names."""
    predict_kwargs: dict[str, object] = {
        "source": to_upright(pixels, orientation),
        "conf": confidence,
        "verbose": False,
    }
    if device in _DEVICE_ARGS:
        predict_kwargs["device"] = _DEVICE_ARGS[device]

    try:
        results = model.predict(**predict_kwargs)
    except Exception as exc:
        raise InferenceError(str(exc)) from exc

    names = _class_names(model)
    if not results:
        return [], names

    result = results[0]
    names = _class_names(result) or names
    boxes = getattr(result, "boxes", None)
    if (
        boxes is None
        or getattr(boxes, "xywhn", None) is None
        or getattr(boxes, "cls", None) is None
        or getattr(boxes, "conf", None) is None
    ):
        return [], names

    xywhn_values = _as_list(boxes.xywhn)
    cls_values = _as_list(boxes.cls)
    conf_values = _as_list(boxes.conf)

    regions: list[RawRegion] = []
    for xywhn, cls_id, score in zip(xywhn_values, cls_values, conf_values):
        cx, cy, w, h = (float(v) for v in xywhn[:4])
        regions.append(((cx, cy, w, h), int(cls_id), float(score)))
    return regions, names


def region_to_detection(region: RawRegion, names: dict[int, str]) -> Detection:
    """Flip a top-left-origin center box to a clamped bottom-left-origin box."""
    (cx, cy, w, h), cls_id, score = region
    box = NormalizedBox(x=cx - w / 2.0, y=1.0 - (cy + h / 2.0), width=w, height=h)
    if not box.in_unit_square:
        LOGGER.debug("Clamping out-of-range box %s", box)
        box = box.clamped()
    return Detection(
        box=box,
        label=str(names.get(cls_id, "")),
        confidence=min(1.0, max(0.0, score)),
    )


class YoloDetector:
    """Detector backed by an ultralytics model loaded once and shared across calls.

    ultralytics predictors keep per-call state on the model, so predictions on
    the shared instance are serialized.
    """

    def __init__(
        self,
        model_path: str,
        confidence: float = 0.25,
        device: str = "auto",
        loader: ModelLoader = load_yolo_model,
    ) -> None:
        self.model_path = model_path
        self.confidence = confidence
        self.device = device
        self._loader = loader
        self._model = None
        self._lock = threading.Lock()
        self._predict_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: AppSettings) -> YoloDetector:
        return cls(
            model_path=settings.model_path,
            confidence=settings.confidence,
            device=settings.device,
        )

    def _get_model(self):
        if self._model is None:
            with self._lock:
                if self._model is None:
                    LOGGER.info("Loading model from %s", self.model_path)
                    try:
                        self._model = self._loader(self.model_path)
                    except ModelLoadError:
                        raise
                    except Exception as exc:
                        raise ModelLoadError(str(exc)) from exc
        return self._model

    def detect(self, photo: Photo) -> list[Detection]:
        """Run the model on one photo; an empty list means nothing was found."""
        model = self._get_model()
        try:
            with self._predict_lock:
                regions, names = run_inference(
                    model,
                    photo.pixels,
                    photo.orientation,
                    confidence=self.confidence,
                    device=self.device,
                )
        except DetectionError:
            raise
        except Exception as exc:
            raise InferenceError(str(exc)) from exc
        return [region_to_detection(region, names) for region in regions]
