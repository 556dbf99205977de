"""Fluent builder for a configured detection session.

Usage:
    machine = (
        DetectorBuilder()
        .set_listener(MyListener())
        .set_blink_threshold(0.6)
        .set_gesture_cooldown(0.8)
        .build()
    )
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from facegesture.config import (
    ConfigurationError,
    DetectorConfig,
    clamp_cooldown,
    clamp_threshold,
    load_config,
)
from facegesture.events import FaceGestureListener
from facegesture.state_machine import GestureStateMachine

if TYPE_CHECKING:
    from facegesture.pipeline import FaceGestureDetector, Landmarker


class DetectorBuilder:
    """Collects settings, clamping as they are set, and builds a session.

    A listener is required; building without one raises ConfigurationError.
    """

    def __init__(self):
        defaults = DetectorConfig()
        self._listener: Optional[FaceGestureListener] = None
        self._blink_threshold = defaults.blink_threshold
        self._jaw_open_threshold = defaults.jaw_open_threshold
        self._smile_threshold = defaults.smile_threshold
        self._cooldown_seconds = defaults.cooldown_seconds

    def set_listener(self, listener: FaceGestureListener) -> DetectorBuilder:
        self._listener = listener
        return self

    def set_blink_threshold(self, threshold: float) -> DetectorBuilder:
        """Higher values require a more pronounced blink of both eyes."""
        self._blink_threshold = clamp_threshold(threshold)
        return self

    def set_jaw_open_threshold(self, threshold: float) -> DetectorBuilder:
        self._jaw_open_threshold = clamp_threshold(threshold)
        return self

    def set_smile_threshold(self, threshold: float) -> DetectorBuilder:
        self._smile_threshold = clamp_threshold(threshold)
        return self

    def set_gesture_cooldown(self, seconds: float) -> DetectorBuilder:
        """Minimum time between two detections of the same gesture."""
        self._cooldown_seconds = clamp_cooldown(seconds)
        return self

    def apply_config(self, config: DetectorConfig) -> DetectorBuilder:
        self._blink_threshold = config.blink_threshold
        self._jaw_open_threshold = config.jaw_open_threshold
        self._smile_threshold = config.smile_threshold
        self._cooldown_seconds = config.cooldown_seconds
        return self

    @classmethod
    def from_config(cls, config: DetectorConfig) -> DetectorBuilder:
        return cls().apply_config(config)

    @classmethod
    def from_yaml(cls, path: str | Path) -> DetectorBuilder:
        return cls.from_config(load_config(path))

    def build_config(self) -> DetectorConfig:
        return DetectorConfig(
            blink_threshold=self._blink_threshold,
            jaw_open_threshold=self._jaw_open_threshold,
            smile_threshold=self._smile_threshold,
            cooldown_seconds=self._cooldown_seconds,
        )

    def build(self) -> GestureStateMachine:
        """Build a state machine wired to the listener.

        Raises:
            ConfigurationError: if no listener was set.
        """
        if self._listener is None:
            raise ConfigurationError("FaceGestureListener must be set")
        return GestureStateMachine(self.build_config(), self._listener)

    def build_detector(self, landmarker: Optional[Landmarker] = None) -> FaceGestureDetector:
        """Build the camera-facing host around a new state machine."""
        from facegesture.pipeline import FaceGestureDetector

        return FaceGestureDetector(self.build(), landmarker=landmarker)
