from __future__ import annotations

import threading
import unittest
from unittest.mock import MagicMock

from PIL import Image

from mole_scan.detection import Detection, InferenceError, ModelLoadError, NormalizedBox
from mole_scan.imaging import Photo
from mole_scan.service import (
    AnalysisPipeline,
    ErrorKind,
    Failure,
    PipelineState,
    Success,
    summarize,
)


def _photo() -> Photo:
    return Photo(Image.new("RGB", (120, 80), (205, 170, 150)))


class _StaticDetector:
    def __init__(self, detections: list[Detection]) -> None:
        self._detections = detections
        self.calls = 0

    def detect(self, photo: Photo) -> list[Detection]:
        self.calls += 1
        return list(self._detections)


class _RaisingDetector:
    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    def detect(self, photo: Photo) -> list[Detection]:
        raise self._exc


TWO_MOLES = [
    Detection(box=NormalizedBox(0.1, 0.1, 0.2, 0.2), label="Mole", confidence=0.91),
    Detection(box=NormalizedBox(0.6, 0.5, 0.3, 0.3), label="Mole", confidence=0.47),
]


class SummarizeTests(unittest.TestCase):
    def test_summary_text(self) -> None:
        self.assertEqual(summarize(0), "No moles detected")
        self.assertEqual(summarize(1), "Detected 1 mole(s)")
        self.assertEqual(summarize(2), "Detected 2 mole(s)")


class AnalyzeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pipelines: list[AnalysisPipeline] = []

    def tearDown(self) -> None:
        for pipeline in self.pipelines:
            pipeline.close()

    def _pipeline(self, detector, **kwargs) -> AnalysisPipeline:
        pipeline = AnalysisPipeline(detector, **kwargs)
        self.pipelines.append(pipeline)
        return pipeline

    def test_two_detections_succeed(self) -> None:
        photo = _photo()

        result = self._pipeline(_StaticDetector(TWO_MOLES)).analyze(photo)

        self.assertIsInstance(result, Success)
        self.assertIs(result.state, PipelineState.SUCCEEDED)
        self.assertEqual(result.count, 2)
        self.assertEqual(result.summary, "Detected 2 mole(s)")
        self.assertNotEqual(result.annotated_image, photo)
        self.assertEqual(result.annotated_image.size, photo.size)

    def test_no_detections_is_success_with_unmodified_image(self) -> None:
        photo = _photo()

        result = self._pipeline(_StaticDetector([])).analyze(photo)

        self.assertIsInstance(result, Success)
        self.assertEqual(result.count, 0)
        self.assertEqual(result.summary, "No moles detected")
        self.assertEqual(result.annotated_image, photo)

    def test_model_load_error_fails_without_annotating(self) -> None:
        annotator = MagicMock()
        pipeline = self._pipeline(
            _RaisingDetector(ModelLoadError("resource not found")),
            annotator=annotator,
        )

        result = pipeline.analyze(_photo())

        self.assertIsInstance(result, Failure)
        self.assertIs(result.state, PipelineState.FAILED)
        self.assertIs(result.reason, ErrorKind.MODEL_LOAD)
        self.assertIn("resource not found", result.message)
        self.assertEqual(result.message, "Error loading model: resource not found")
        annotator.assert_not_called()

    def test_inference_error_fails(self) -> None:
        result = self._pipeline(_RaisingDetector(InferenceError("tensor shape mismatch"))).analyze(_photo())

        self.assertIsInstance(result, Failure)
        self.assertIs(result.reason, ErrorKind.INFERENCE)
        self.assertEqual(result.message, "Error: tensor shape mismatch")

    def test_unexpected_error_is_reported_not_raised(self) -> None:
        annotator = MagicMock(side_effect=RuntimeError("canvas broke"))

        with self.assertLogs("mole_scan.pipeline", level="ERROR"):
            result = self._pipeline(_StaticDetector(TWO_MOLES), annotator=annotator).analyze(_photo())

        self.assertIsInstance(result, Failure)
        self.assertIs(result.reason, ErrorKind.UNEXPECTED)
        self.assertIn("canvas broke", result.message)

    def test_detect_runs_before_annotate(self) -> None:
        order: list[str] = []

        class _Detector:
            def detect(self, photo):
                order.append("detect")
                return TWO_MOLES

        def annotator(photo, detections, style):
            order.append(f"annotate:{len(detections)}")
            return photo

        self._pipeline(_Detector(), annotator=annotator).analyze(_photo())

        self.assertEqual(order, ["detect", "annotate:2"])

    def test_state_transitions(self) -> None:
        succeeded: list[PipelineState] = []
        failed: list[PipelineState] = []

        self._pipeline(_StaticDetector([])).analyze(_photo(), on_state=succeeded.append)
        self._pipeline(_RaisingDetector(InferenceError("boom"))).analyze(_photo(), on_state=failed.append)

        self.assertEqual(
            succeeded,
            [PipelineState.RUNNING, PipelineState.SUCCEEDED],
        )
        self.assertEqual(
            failed,
            [PipelineState.RUNNING, PipelineState.FAILED],
        )

    def test_calls_are_independent(self) -> None:
        detector = _StaticDetector(TWO_MOLES)
        pipeline = self._pipeline(detector)

        first = pipeline.analyze(_photo())
        second = pipeline.analyze(_photo())

        self.assertEqual(first, second)
        self.assertEqual(detector.calls, 2)


class SubmitTests(unittest.TestCase):
    def test_submit_returns_future_with_result(self) -> None:
        with AnalysisPipeline(_StaticDetector(TWO_MOLES)) as pipeline:
            result = pipeline.submit(_photo()).result(timeout=10)

        self.assertIsInstance(result, Success)
        self.assertEqual(result.count, 2)

    def test_submit_runs_off_caller_thread_and_calls_back(self) -> None:
        caller = threading.get_ident()
        seen_threads: list[int] = []
        delivered = threading.Event()
        received: list = []

        class _Detector:
            def detect(self, photo):
                seen_threads.append(threading.get_ident())
                return []

        def callback(result) -> None:
            received.append(result)
            delivered.set()

        with AnalysisPipeline(_Detector()) as pipeline:
            pipeline.submit(_photo(), callback=callback)
            self.assertTrue(delivered.wait(timeout=10))

        self.assertNotEqual(seen_threads, [caller])
        self.assertEqual(received[0].summary, "No moles detected")

    def test_submit_failure_is_delivered_as_result(self) -> None:
        with AnalysisPipeline(_RaisingDetector(ModelLoadError("resource not found"))) as pipeline:
            result = pipeline.submit(_photo()).result(timeout=10)

        self.assertIsInstance(result, Failure)
        self.assertIn("resource not found", result.message)

    def test_concurrent_submissions_all_complete(self) -> None:
        with AnalysisPipeline(_StaticDetector(TWO_MOLES), max_workers=4) as pipeline:
            futures = [pipeline.submit(_photo()) for _ in range(8)]
            results = [future.result(timeout=10) for future in futures]

        self.assertTrue(all(result.count == 2 for result in results))


if __name__ == "__main__":
    unittest.main()
