"""Custom exceptions for model loading and inference."""


class DetectionError(Exception):
    """Base exception for detector failures."""


class ModelLoadError(DetectionError):
    """Raised when the model resource is missing, malformed, or the backend cannot start."""


class InferenceError(DetectionError):
    """Raised when the backend fails while running detection."""
