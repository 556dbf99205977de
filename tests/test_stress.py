"""Randomized long-run checks of the state machine invariants."""

import numpy as np
import pytest

from facegesture.config import DetectorConfig
from facegesture.events import (
    EventCollector,
    FaceDetected,
    FaceInPosition,
    GestureDetected,
    GestureStateChanged,
)
from facegesture.gestures import TRACKED_BLENDSHAPES, FrameObservation, GestureKind
from facegesture.state_machine import GestureStateMachine


def random_frames(seed, n=5000, face_rate=0.9):
    rng = np.random.default_rng(seed)
    t = 0.0
    for _ in range(n):
        t += float(rng.uniform(0.0, 0.1))
        face = bool(rng.random() < face_rate)
        scores = None
        if rng.random() > 0.05:
            scores = {
                name: float(v)
                for name, v in zip(TRACKED_BLENDSHAPES, rng.random(len(TRACKED_BLENDSHAPES)))
                if rng.random() > 0.1
            }
        yield FrameObservation(face, scores), t


@pytest.mark.parametrize("seed", [0, 1, 2])
class TestInvariants:
    def test_invariants_hold_every_frame(self, seed):
        config = DetectorConfig(0.6, 0.5, 0.6, cooldown_seconds=0.3)
        machine = GestureStateMachine(config, EventCollector())
        last_fired = {kind: None for kind in GestureKind}
        active = {kind: False for kind in GestureKind}

        for observation, t in random_frames(seed):
            events = machine.process_frame(observation, t)
            state = machine.state

            if not state.face_detected:
                assert not state.face_in_position
                assert not any(state.active.values())
            else:
                assert state.face_in_position

            for event in events:
                if isinstance(event, GestureStateChanged):
                    assert event.active != active[event.kind]
                    active[event.kind] = event.active
                elif isinstance(event, GestureDetected):
                    # detection only right after a rising edge in the same frame
                    assert GestureStateChanged(event.kind, True) in events
                    prev = last_fired[event.kind]
                    assert prev is None or round((t - prev) * 1000) >= round(config.cooldown_seconds * 1000)
                    last_fired[event.kind] = t

            assert active == state.active

    def test_at_most_one_event_of_each_kind_per_frame(self, seed):
        machine = GestureStateMachine(DetectorConfig(cooldown_seconds=0.0), EventCollector())
        for observation, t in random_frames(seed, n=2000, face_rate=0.5):
            events = machine.process_frame(observation, t)
            assert sum(isinstance(e, FaceDetected) for e in events) <= 1
            assert sum(isinstance(e, FaceInPosition) for e in events) <= 1
            for kind in GestureKind:
                assert sum(
                    isinstance(e, GestureStateChanged) and e.kind == kind for e in events
                ) <= 1
                assert events.count(GestureDetected(kind)) <= 1
