"""Service-layer analysis flow."""

from .pipeline import (
    AnalysisPipeline,
    AnalysisResult,
    ErrorKind,
    Failure,
    PipelineState,
    Success,
    summarize,
)

__all__ = [
    "AnalysisPipeline",
    "AnalysisResult",
    "ErrorKind",
    "Failure",
    "PipelineState",
    "Success",
    "summarize",
]
