"""Gesture vocabulary and per-frame observations built from blendshape scores."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# MediaPipe / ARKit blendshape category names
EYE_BLINK_LEFT = "eyeBlinkLeft"
EYE_BLINK_RIGHT = "eyeBlinkRight"
JAW_OPEN = "jawOpen"
MOUTH_SMILE_LEFT = "mouthSmileLeft"
MOUTH_SMILE_RIGHT = "mouthSmileRight"


class GestureKind(Enum):
    """Facial gestures the detector can report."""
    BLINK = "blink"
    SMILE = "smile"
    JAW_OPEN = "jaw_open"

    @classmethod
    def ordered(cls) -> tuple[GestureKind, ...]:
        """Kinds in the order they are evaluated and reported within a frame."""
        return (cls.BLINK, cls.JAW_OPEN, cls.SMILE)


@dataclass(frozen=True)
class GestureRule:
    """A gesture is active when every listed blendshape exceeds the threshold.

    Bilateral gestures (blink, smile) list the left and right scores so a
    one-sided wink or smirk does not count.
    """

    kind: GestureKind
    blendshapes: tuple[str, ...]

    def match(self, observation: FrameObservation, threshold: float) -> bool:
        return all(observation.score(name) > threshold for name in self.blendshapes)


GESTURE_RULES: dict[GestureKind, GestureRule] = {
    GestureKind.BLINK: GestureRule(GestureKind.BLINK, (EYE_BLINK_LEFT, EYE_BLINK_RIGHT)),
    GestureKind.JAW_OPEN: GestureRule(GestureKind.JAW_OPEN, (JAW_OPEN,)),
    GestureKind.SMILE: GestureRule(GestureKind.SMILE, (MOUTH_SMILE_LEFT, MOUTH_SMILE_RIGHT)),
}

# Column order for compact recordings
TRACKED_BLENDSHAPES = (
    EYE_BLINK_LEFT,
    EYE_BLINK_RIGHT,
    JAW_OPEN,
    MOUTH_SMILE_LEFT,
    MOUTH_SMILE_RIGHT,
)


@dataclass(frozen=True)
class FrameObservation:
    """Blendshape scores for a single processed frame.

    ``scores`` is None when the model produced no blendshape output at all,
    which is distinct from an empty mapping only in how it was produced;
    both classify as "no gesture".
    """

    face_detected: bool
    scores: Optional[dict[str, float]] = None

    def score(self, name: str) -> float:
        """Score for a blendshape, 0.0 when it is missing or not a number."""
        if not self.scores:
            return 0.0
        try:
            return float(self.scores.get(name, 0.0))
        except (TypeError, ValueError):
            return 0.0

    @property
    def has_scores(self) -> bool:
        return self.scores is not None

    @classmethod
    def no_face(cls) -> FrameObservation:
        return cls(face_detected=False, scores=None)

    def to_dict(self) -> dict:
        return {
            "face_detected": self.face_detected,
            "scores": dict(self.scores) if self.scores is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> FrameObservation:
        scores = data.get("scores")
        return cls(
            face_detected=bool(data.get("face_detected", False)),
            scores={k: float(v) for k, v in scores.items()} if scores is not None else None,
        )
