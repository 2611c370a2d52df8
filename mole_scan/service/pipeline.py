"""Detect-then-annotate analysis flow with future-based delivery."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable, Sequence, TypeAlias

from mole_scan.config import AppSettings
from mole_scan.detection import (
    AnnotationStyle,
    Detection,
    Detector,
    InferenceError,
    ModelLoadError,
    YoloDetector,
    annotate_photo,
)
from mole_scan.imaging import Photo


LOGGER = logging.getLogger("mole_scan.pipeline")


class PipelineState(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ErrorKind(str, Enum):
    MODEL_LOAD = "model_load"
    INFERENCE = "inference"
    UNEXPECTED = "unexpected"


def summarize(count: int) -> str:
    """Return the user-facing status line for a successful analysis."""
    if count == 0:
        return "No moles detected"
    return f"Detected {count} mole(s)"


@dataclass(frozen=True, slots=True)
class Success:
    """Annotated photo plus number of detected moles."""

    annotated_image: Photo
    count: int

    @property
    def state(self) -> PipelineState:
        return PipelineState.SUCCEEDED

    @property
    def summary(self) -> str:
        return summarize(self.count)


@dataclass(frozen=True, slots=True)
class Failure:
    """Failure kind and the message shown to the user."""

    reason: ErrorKind
    message: str

    @property
    def state(self) -> PipelineState:
        return PipelineState.FAILED

    @property
    def summary(self) -> str:
        return self.message


AnalysisResult: TypeAlias = Success | Failure
StateObserver: TypeAlias = Callable[[PipelineState], None]
Annotator: TypeAlias = Callable[[Photo, Sequence[Detection], AnnotationStyle | None], Photo]


class AnalysisPipeline:
    """Runs detection then annotation for one photo per call.

    Calls share nothing except the detector and its cached model.
    ``submit`` runs ``analyze`` on a worker pool and returns a future so the
    caller is never blocked by inference.
    """

    def __init__(
        self,
        detector: Detector,
        style: AnnotationStyle | None = None,
        max_workers: int = 2,
        annotator: Annotator = annotate_photo,
    ) -> None:
        self.detector = detector
        self.style = style or AnnotationStyle()
        self._annotator = annotator
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mole-scan")

    @classmethod
    def from_settings(cls, settings: AppSettings) -> AnalysisPipeline:
        return cls(
            detector=YoloDetector.from_settings(settings),
            style=AnnotationStyle.from_settings(settings),
            max_workers=settings.worker_threads,
        )

    def analyze(self, photo: Photo, on_state: StateObserver | None = None) -> AnalysisResult:
        """Run one analysis to a terminal result; detector errors never escape."""

        def transition(state: PipelineState) -> None:
            LOGGER.debug("Analysis state -> %s", state.value)
            if on_state is not None:
                on_state(state)

        transition(PipelineState.RUNNING)
        try:
            detections = self.detector.detect(photo)
            annotated = self._annotator(photo, detections, self.style)
        except ModelLoadError as exc:
            LOGGER.warning("Model load failed: %s", exc)
            result: AnalysisResult = Failure(ErrorKind.MODEL_LOAD, f"Error loading model: {exc}")
        except InferenceError as exc:
            LOGGER.warning("Inference failed: %s", exc)
            result = Failure(ErrorKind.INFERENCE, f"Error: {exc}")
        except Exception as exc:
            LOGGER.exception("Analysis failed: %s", exc)
            result = Failure(ErrorKind.UNEXPECTED, f"Error: {exc}")
        else:
            result = Success(annotated_image=annotated, count=len(detections))
            LOGGER.info("Analysis done: %s", result.summary)

        transition(result.state)
        return result

    def submit(
        self,
        photo: Photo,
        callback: Callable[[AnalysisResult], None] | None = None,
    ) -> Future[AnalysisResult]:
        """Schedule ``analyze`` on the worker pool; ``callback`` receives the terminal result."""
        future = self._executor.submit(self.analyze, photo)
        if callback is not None:
            future.add_done_callback(lambda done: callback(done.result()))
        return future

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> AnalysisPipeline:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
