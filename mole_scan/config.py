"""Runtime configuration helpers."""

from __future__ import annotations

from dataclasses import dataclass
import os


DEVICE_CHOICES = ("auto", "cpu", "gpu")


@dataclass(frozen=True)
class AppSettings:
    """Environment-backed settings for the analysis pipeline and host shells."""

    model_path: str
    confidence: float
    device: str
    worker_threads: int
    stroke_width: int
    font_size: int


DEFAULT_MODEL_PATH = "models/skincancer.pt"


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer for {name}: {value}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid float for {name}: {value}") from exc


def _env_device(name: str, default: str) -> str:
    value = os.getenv(name, default).strip().lower()
    if value not in DEVICE_CHOICES:
        raise RuntimeError(f"Invalid device for {name}: {value} (expected one of {', '.join(DEVICE_CHOICES)})")
    return value


def load_settings() -> AppSettings:
    """Load all app settings from the environment."""
    return AppSettings(
        model_path=os.getenv("MOLE_MODEL", DEFAULT_MODEL_PATH),
        confidence=_env_float("MOLE_CONF", 0.25),
        device=_env_device("MOLE_DEVICE", "auto"),
        worker_threads=_env_int("MOLE_WORKERS", 2),
        stroke_width=_env_int("MOLE_STROKE_WIDTH", 2),
        font_size=_env_int("MOLE_FONT_SIZE", 12),
    )
