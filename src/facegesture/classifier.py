"""Threshold-based gesture classification from blendshape scores."""

from __future__ import annotations

from typing import Optional

from facegesture.config import DetectorConfig
from facegesture.gestures import GESTURE_RULES, FrameObservation, GestureKind, GestureRule


class BlendshapeClassifier:
    """Maps a frame's blendshape scores to a boolean per gesture kind.

    A gesture is active when each of its blendshape scores is strictly
    greater than the configured threshold. Missing scores count as 0.0.
    Frames without a face, or without any blendshape output, are never
    active.

    The classifier holds no per-frame state: the same observation always
    yields the same predicates.
    """

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        rules: Optional[dict[GestureKind, GestureRule]] = None,
    ):
        self.config = config or DetectorConfig()
        self._rules = rules or GESTURE_RULES

    def evaluate(self, kind: GestureKind, observation: FrameObservation) -> bool:
        """Return whether ``kind`` is active in ``observation``."""
        if not observation.face_detected or not observation.has_scores:
            return False
        return self._rules[kind].match(observation, self.config.threshold_for(kind))

    def classify(self, observation: FrameObservation) -> dict[GestureKind, bool]:
        """Evaluate every gesture kind, in reporting order."""
        return {kind: self.evaluate(kind, observation) for kind in GestureKind.ordered()}

    def active_gestures(self, observation: FrameObservation) -> list[GestureKind]:
        return [kind for kind, active in self.classify(observation).items() if active]
