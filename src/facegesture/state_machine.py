"""Session state machine: frame observations in, ordered events out.

Each tracked attribute (face presence, face-in-position, and one flag per
gesture kind) is a two-state machine starting inactive. A frame is diffed
against the previous state and every transition becomes an event:

    FaceDetected         -- face presence changed
    FaceInPosition       -- position flag changed (follows face presence)
    GestureStateChanged  -- a gesture started or ended, never debounced
    GestureDetected      -- rising edge that passed the per-kind cooldown

When the face is lost, position and all active gestures are forced off in
the same frame so no gesture stays active without a face.

Not thread-safe. Feed frames from a single thread, in arrival order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from facegesture.classifier import BlendshapeClassifier
from facegesture.config import DetectorConfig
from facegesture.debounce import GestureDebouncer
from facegesture.events import (
    DetectionError,
    Event,
    FaceDetected,
    FaceGestureListener,
    FaceInPosition,
    GestureDetected,
    GestureStateChanged,
    deliver,
)
from facegesture.gestures import FrameObservation, GestureKind

logger = logging.getLogger("facegesture.state_machine")


@dataclass
class SessionState:
    """Mutable per-session flags."""
    face_detected: bool = False
    face_in_position: bool = False
    active: dict[GestureKind, bool] = field(
        default_factory=lambda: {kind: False for kind in GestureKind}
    )

    def copy(self) -> SessionState:
        return SessionState(self.face_detected, self.face_in_position, dict(self.active))


@dataclass
class SessionStats:
    frames_processed: int = 0
    errors: int = 0
    detections: dict[str, int] = field(default_factory=dict)
    suppressed: dict[str, int] = field(default_factory=dict)


class GestureStateMachine:
    """Turns per-frame observations into debounced gesture events."""

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        listener: Optional[FaceGestureListener] = None,
    ):
        self.config = config or DetectorConfig()
        self.listener = listener or FaceGestureListener()
        self.classifier = BlendshapeClassifier(self.config)
        self.debouncer = GestureDebouncer(self.config.cooldown_seconds)
        self._state = SessionState()
        self._stats = SessionStats()

    def process_frame(self, observation: FrameObservation, now: float) -> list[Event]:
        """Process one frame and deliver the resulting events.

        Args:
            observation: Blendshape scores for the frame.
            now: Frame timestamp in seconds, non-decreasing across calls.

        Returns:
            Events in the order they were delivered to the listener.
        """
        self._stats.frames_processed += 1
        state = self._state
        events: list[Event] = []

        face = observation.face_detected
        if face != state.face_detected:
            state.face_detected = face
            events.append(FaceDetected(face))

        if not face:
            if state.face_in_position:
                state.face_in_position = False
                events.append(FaceInPosition(False))
            for kind in GestureKind.ordered():
                if state.active[kind]:
                    state.active[kind] = False
                    events.append(GestureStateChanged(kind, False))
            return self._deliver(events)

        # Position tracks face presence; no geometric check.
        if not state.face_in_position:
            state.face_in_position = True
            events.append(FaceInPosition(True))

        for kind in GestureKind.ordered():
            active = self.classifier.evaluate(kind, observation)
            if active == state.active[kind]:
                continue

            state.active[kind] = active
            events.append(GestureStateChanged(kind, active))

            if not active:
                continue
            if self.debouncer.should_fire(kind, now):
                events.append(GestureDetected(kind))
                self._count(self._stats.detections, kind)
            else:
                logger.debug(
                    "%s suppressed by cooldown (%.3fs since last)",
                    kind.value, now - self.debouncer.last_fired(kind),
                )
                self._count(self._stats.suppressed, kind)

        return self._deliver(events)

    def report_error(self, message: str, code: int = 0) -> list[Event]:
        """Forward an acquisition/inference error. Session state is untouched."""
        self._stats.errors += 1
        return self._deliver([DetectionError(message, code)])

    def _deliver(self, events: list[Event]) -> list[Event]:
        for event in events:
            logger.debug("event %s", event)
            deliver(event, self.listener)
        return events

    @staticmethod
    def _count(counter: dict[str, int], kind: GestureKind):
        counter[kind.value] = counter.get(kind.value, 0) + 1

    @property
    def state(self) -> SessionState:
        """Snapshot of the current session flags."""
        return self._state.copy()

    @property
    def stats(self) -> SessionStats:
        return SessionStats(
            frames_processed=self._stats.frames_processed,
            errors=self._stats.errors,
            detections=dict(self._stats.detections),
            suppressed=dict(self._stats.suppressed),
        )

    def is_active(self, kind: GestureKind) -> bool:
        return self._state.active[kind]

    def reset(self):
        """Start a new session: all flags off, cooldowns cleared. No events."""
        self._state = SessionState()
        self._stats = SessionStats()
        self.debouncer.reset()
