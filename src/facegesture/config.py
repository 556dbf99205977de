"""Detector configuration: thresholds and cooldown.

Configuration is immutable once built. Values are clamped rather than
rejected: thresholds into [0, 1], the cooldown to a non-negative duration.

YAML layout (either flat or under a ``detector`` section):

    detector:
      blink_threshold: 0.7
      jaw_open_threshold: 0.4
      smile_threshold: 0.7
      cooldown_seconds: 0.5
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path

import yaml

from facegesture.gestures import GestureKind

logger = logging.getLogger("facegesture.config")

DEFAULT_BLINK_THRESHOLD = 0.7
DEFAULT_JAW_OPEN_THRESHOLD = 0.4
DEFAULT_SMILE_THRESHOLD = 0.7
DEFAULT_COOLDOWN_SECONDS = 0.5


class ConfigurationError(ValueError):
    """Raised when a detector cannot be constructed from the given settings."""


def clamp_threshold(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def clamp_cooldown(value: float) -> float:
    return max(0.0, float(value))


@dataclass(frozen=True)
class DetectorConfig:
    """Per-gesture thresholds and a cooldown shared by all gesture kinds."""

    blink_threshold: float = DEFAULT_BLINK_THRESHOLD
    jaw_open_threshold: float = DEFAULT_JAW_OPEN_THRESHOLD
    smile_threshold: float = DEFAULT_SMILE_THRESHOLD
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS

    def __post_init__(self):
        # frozen dataclass: clamp through object.__setattr__
        object.__setattr__(self, "blink_threshold", clamp_threshold(self.blink_threshold))
        object.__setattr__(self, "jaw_open_threshold", clamp_threshold(self.jaw_open_threshold))
        object.__setattr__(self, "smile_threshold", clamp_threshold(self.smile_threshold))
        object.__setattr__(self, "cooldown_seconds", clamp_cooldown(self.cooldown_seconds))

    def threshold_for(self, kind: GestureKind) -> float:
        if kind == GestureKind.BLINK:
            return self.blink_threshold
        if kind == GestureKind.JAW_OPEN:
            return self.jaw_open_threshold
        return self.smile_threshold

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> DetectorConfig:
        section = data.get("detector", data) if data else {}
        if not isinstance(section, dict):
            raise ConfigurationError("detector section must be a mapping")

        known = set(cls.__dataclass_fields__)
        unknown = set(section) - known
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        values = {}
        for key, value in section.items():
            try:
                values[key] = float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"{key} must be a number, got {value!r}") from None
        return cls(**values)


def load_config(path: str | Path) -> DetectorConfig:
    """Load a DetectorConfig from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at top level")

    config = DetectorConfig.from_dict(data)
    logger.debug("Loaded detector config from %s: %s", path, config)
    return config


def save_config(config: DetectorConfig, path: str | Path):
    """Write a DetectorConfig to YAML."""
    with open(path, "w") as f:
        yaml.dump({"detector": config.to_dict()}, f, default_flow_style=False, sort_keys=False)
