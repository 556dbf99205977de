"""Tests for the gesture state machine: edges, cooldowns and face loss."""

import pytest

from facegesture.config import DetectorConfig
from facegesture.events import (
    DetectionError,
    EventCollector,
    FaceDetected,
    FaceGestureListener,
    FaceInPosition,
    GestureDetected,
    GestureStateChanged,
)
from facegesture.gestures import FrameObservation, GestureKind
from facegesture.state_machine import GestureStateMachine

BLINK = GestureKind.BLINK
JAW = GestureKind.JAW_OPEN
SMILE = GestureKind.SMILE


def face(**scores):
    return FrameObservation(face_detected=True, scores=scores)


def blinking():
    return face(eyeBlinkLeft=0.9, eyeBlinkRight=0.85)


def smiling():
    return face(mouthSmileLeft=0.9, mouthSmileRight=0.9)


@pytest.fixture
def collector():
    return EventCollector()


@pytest.fixture
def machine(collector):
    config = DetectorConfig(
        blink_threshold=0.7, jaw_open_threshold=0.4, smile_threshold=0.7, cooldown_seconds=0.5,
    )
    return GestureStateMachine(config, collector)


class TestScenarios:
    def test_blink_session(self, machine):
        # first frame: face appears and blinks
        assert machine.process_frame(blinking(), 0.0) == [
            FaceDetected(True),
            FaceInPosition(True),
            GestureStateChanged(BLINK, True),
            GestureDetected(BLINK),
        ]
        # sustained blink: no edge
        assert machine.process_frame(blinking(), 0.1) == []
        # left eye opens
        assert machine.process_frame(face(eyeBlinkLeft=0.1, eyeBlinkRight=0.85), 0.2) == [
            GestureStateChanged(BLINK, False),
        ]
        # re-blink inside cooldown: state change only
        assert machine.process_frame(blinking(), 0.3) == [GestureStateChanged(BLINK, True)]
        machine.process_frame(face(), 0.4)
        # fresh edge after cooldown
        assert machine.process_frame(blinking(), 0.6) == [
            GestureStateChanged(BLINK, True),
            GestureDetected(BLINK),
        ]

    def test_face_lost_while_smiling(self, machine):
        machine.process_frame(smiling(), 0.0)
        events = machine.process_frame(FrameObservation.no_face(), 0.1)
        assert events == [
            FaceDetected(False),
            FaceInPosition(False),
            GestureStateChanged(SMILE, False),
        ]


class TestFaceLoss:
    def test_all_active_gestures_forced_off_in_order(self, machine):
        obs = face(
            eyeBlinkLeft=0.9, eyeBlinkRight=0.9, jawOpen=0.9,
            mouthSmileLeft=0.9, mouthSmileRight=0.9,
        )
        machine.process_frame(obs, 0.0)
        events = machine.process_frame(FrameObservation.no_face(), 0.1)
        assert events == [
            FaceDetected(False),
            FaceInPosition(False),
            GestureStateChanged(BLINK, False),
            GestureStateChanged(JAW, False),
            GestureStateChanged(SMILE, False),
        ]
        state = machine.state
        assert not state.face_in_position
        assert not any(state.active.values())

    def test_repeated_no_face_frames_are_silent(self, machine):
        machine.process_frame(smiling(), 0.0)
        machine.process_frame(FrameObservation.no_face(), 0.1)
        for t in (0.2, 0.3, 0.4):
            assert machine.process_frame(FrameObservation.no_face(), t) == []

    def test_no_face_from_start_is_silent(self, machine):
        assert machine.process_frame(FrameObservation.no_face(), 0.0) == []

    def test_scores_ignored_without_face(self, machine):
        obs = FrameObservation(face_detected=False, scores={"jawOpen": 1.0})
        assert machine.process_frame(obs, 0.0) == []
        assert not machine.is_active(JAW)

    def test_face_returns_with_gesture(self, machine):
        machine.process_frame(smiling(), 0.0)
        machine.process_frame(FrameObservation.no_face(), 0.1)
        events = machine.process_frame(smiling(), 1.0)
        assert events == [
            FaceDetected(True),
            FaceInPosition(True),
            GestureStateChanged(SMILE, True),
            GestureDetected(SMILE),
        ]


class TestDebouncing:
    def test_sustained_gesture_fires_once(self, machine):
        machine.process_frame(face(jawOpen=0.9), 0.0)
        for t in (1.0, 2.0, 3.0):
            assert machine.process_frame(face(jawOpen=0.9), t) == []
        assert machine.stats.detections == {"jaw_open": 1}

    def test_cooldown_is_per_kind(self, machine):
        machine.process_frame(blinking(), 0.0)
        machine.process_frame(face(), 0.1)
        events = machine.process_frame(
            face(eyeBlinkLeft=0.9, eyeBlinkRight=0.9, mouthSmileLeft=0.9, mouthSmileRight=0.9),
            0.2,
        )
        assert events == [
            GestureStateChanged(BLINK, True),
            GestureStateChanged(SMILE, True),
            GestureDetected(SMILE),
        ]
        assert machine.stats.suppressed == {"blink": 1}

    @pytest.mark.parametrize("gap,expected", [(0.49, 1), (0.5, 2), (2.0, 2)])
    def test_two_edges_separated_by_gap(self, machine, gap, expected):
        machine.process_frame(face(jawOpen=0.9), 0.0)
        machine.process_frame(face(jawOpen=0.0), gap / 2)
        machine.process_frame(face(jawOpen=0.9), gap)
        assert machine.stats.detections.get("jaw_open", 0) == expected

    def test_edge_exactly_one_cooldown_later_fires(self, machine):
        machine.process_frame(face(jawOpen=0.9), 0.2)
        machine.process_frame(face(jawOpen=0.0), 0.4)
        events = machine.process_frame(face(jawOpen=0.9), 0.7)
        assert events == [GestureStateChanged(JAW, True), GestureDetected(JAW)]

    def test_malformed_scores_do_not_raise(self, machine):
        events = machine.process_frame(face(jawOpen=None, eyeBlinkLeft=0.9, eyeBlinkRight="x"), 0.0)
        assert events == [FaceDetected(True), FaceInPosition(True)]

    def test_suppressed_edge_does_not_restart_cooldown(self, machine):
        machine.process_frame(face(jawOpen=0.9), 0.0)
        machine.process_frame(face(), 0.1)
        machine.process_frame(face(jawOpen=0.9), 0.4)  # suppressed
        machine.process_frame(face(), 0.45)
        events = machine.process_frame(face(jawOpen=0.9), 0.55)
        assert GestureDetected(JAW) in events


class TestListenerDelivery:
    def test_listener_sees_same_order(self, machine, collector):
        returned = machine.process_frame(blinking(), 0.0)
        assert collector.events == returned

    def test_error_forwarded_verbatim(self, machine, collector):
        machine.process_frame(smiling(), 0.0)
        before = machine.state
        events = machine.report_error("model crashed", 3)
        assert events == [DetectionError("model crashed", 3)]
        assert collector.events[-1] == DetectionError("model crashed", 3)
        assert machine.state == before
        assert machine.stats.errors == 1

    def test_listener_exception_does_not_abort_frame(self):
        class Broken(FaceGestureListener):
            def __init__(self):
                self.calls = 0

            def on_face_detected(self, detected):
                raise RuntimeError("boom")

            def on_gesture_detected(self, kind):
                self.calls += 1

        listener = Broken()
        machine = GestureStateMachine(DetectorConfig(), listener)
        events = machine.process_frame(blinking(), 0.0)
        assert len(events) == 4
        assert listener.calls == 1

    def test_default_listener(self):
        machine = GestureStateMachine()
        assert machine.process_frame(blinking(), 0.0)[0] == FaceDetected(True)


class TestReset:
    def test_reset_clears_state_and_cooldowns(self, machine):
        machine.process_frame(blinking(), 0.0)
        machine.reset()
        assert machine.state.face_detected is False
        assert machine.stats.frames_processed == 0
        events = machine.process_frame(blinking(), 0.1)
        assert GestureDetected(BLINK) in events

    def test_state_is_a_snapshot(self, machine):
        machine.process_frame(blinking(), 0.0)
        snapshot = machine.state
        snapshot.active[BLINK] = False
        assert machine.is_active(BLINK)
