"""
Runtime configuration for the monitoring engine.

Defaults live in DEFAULT_CONFIG. An optional JSON file at config/monitor.json
overrides any subset of keys; unknown keys are ignored. Anything unreadable
or out of range falls back to the defaults with a warning.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
CONFIG_PATH = PROJECT_ROOT / "config" / "monitor.json"

DEFAULT_CONFIG = {
    "aggregation_period_s": 10.0,
    "pointer_normalization": 10.0,
    "keystroke_buffer_size": 100,
    "pointer_buffer_size": 50,
    "history_length": 30,
    "intervention_timeout_s": 60.0,
    "attention": {
        "corner_exponent": 3.0,
        "smoothing_factor": 0.15,
        "noise_amplitude": 0.01,
        "tick_s": 1.0,
    },
    # interval minutes; 0 turns a reminder off
    "reminders": {
        "check_s": 30.0,
        "breathing_min": 30.0,
        "eye_rest_min": 20.0,
        "posture_min": 45.0,
        "hydration_min": 60.0,
    },
    "display_refresh_ms": 50,
    "db_path": "flow_monitor.db",
}

_SECTIONS = ("attention", "reminders")

_POSITIVE_FIELDS = (
    "aggregation_period_s", "pointer_normalization", "keystroke_buffer_size",
    "pointer_buffer_size", "history_length", "intervention_timeout_s",
    "attention_tick_s", "display_refresh_ms", "reminder_check_s",
)
_NON_NEGATIVE_FIELDS = (
    "corner_exponent", "smoothing_factor", "noise_amplitude",
    "breathing_interval_min", "eye_rest_interval_min",
    "posture_interval_min", "hydration_interval_min",
)


@dataclass(frozen=True)
class MonitorConfig:
    aggregation_period_s: float = 10.0
    pointer_normalization: float = 10.0
    keystroke_buffer_size: int = 100
    pointer_buffer_size: int = 50
    history_length: int = 30
    intervention_timeout_s: float = 60.0
    corner_exponent: float = 3.0
    smoothing_factor: float = 0.15
    noise_amplitude: float = 0.01
    attention_tick_s: float = 1.0
    reminder_check_s: float = 30.0
    breathing_interval_min: float = 30.0
    eye_rest_interval_min: float = 20.0
    posture_interval_min: float = 45.0
    hydration_interval_min: float = 60.0
    display_refresh_ms: int = 50
    db_path: Path = PROJECT_ROOT / "flow_monitor.db"

    def __post_init__(self) -> None:
        # written as `not (v > 0)` so NaN is rejected too
        for name in _POSITIVE_FIELDS:
            value = getattr(self, name)
            if not (value > 0) or math.isinf(value):
                raise ValueError(f"{name} must be a positive finite number")
        for name in _NON_NEGATIVE_FIELDS:
            value = getattr(self, name)
            if not (value >= 0) or math.isinf(value):
                raise ValueError(f"{name} must be a non-negative finite number")

    @classmethod
    def from_dict(cls, cfg: dict) -> "MonitorConfig":
        attention = cfg["attention"]
        reminders = cfg["reminders"]
        db_path = Path(cfg.get("db_path", DEFAULT_CONFIG["db_path"]))
        if not db_path.is_absolute():
            db_path = PROJECT_ROOT / db_path
        return cls(
            aggregation_period_s=float(cfg["aggregation_period_s"]),
            pointer_normalization=float(cfg["pointer_normalization"]),
            keystroke_buffer_size=int(cfg["keystroke_buffer_size"]),
            pointer_buffer_size=int(cfg["pointer_buffer_size"]),
            history_length=int(cfg["history_length"]),
            intervention_timeout_s=float(cfg["intervention_timeout_s"]),
            corner_exponent=float(attention["corner_exponent"]),
            smoothing_factor=float(attention["smoothing_factor"]),
            noise_amplitude=float(attention["noise_amplitude"]),
            attention_tick_s=float(attention["tick_s"]),
            reminder_check_s=float(reminders["check_s"]),
            breathing_interval_min=float(reminders["breathing_min"]),
            eye_rest_interval_min=float(reminders["eye_rest_min"]),
            posture_interval_min=float(reminders["posture_min"]),
            hydration_interval_min=float(reminders["hydration_min"]),
            display_refresh_ms=int(cfg["display_refresh_ms"]),
            db_path=db_path,
        )


def _defaults() -> dict:
    merged = DEFAULT_CONFIG.copy()
    for section in _SECTIONS:
        merged[section] = DEFAULT_CONFIG[section].copy()
    return merged


def load_config(path: Optional[Path] = None) -> MonitorConfig:
    """Read the JSON override file (if any) on top of DEFAULT_CONFIG."""
    path = path or CONFIG_PATH
    merged = _defaults()
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                cfg = json.load(f)
            merged.update({k: v for k, v in cfg.items() if k in DEFAULT_CONFIG})
            for section in _SECTIONS:
                overrides = cfg.get(section, {})
                if not isinstance(overrides, dict):
                    raise TypeError(f"'{section}' must be an object")
                merged[section] = {**DEFAULT_CONFIG[section], **overrides}
        except (ValueError, TypeError, AttributeError, OSError):
            # ValueError also covers JSONDecodeError and UnicodeDecodeError
            logger.warning("Bad monitor config at %s, using defaults.", path, exc_info=True)
            merged = _defaults()
    try:
        return MonitorConfig.from_dict(merged)
    except (KeyError, TypeError, ValueError, OverflowError):
        logger.warning("Invalid values in monitor config, using defaults.", exc_info=True)
        return MonitorConfig.from_dict(_defaults())
