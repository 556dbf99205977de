"""Tests for converting Face Landmarker results into observations."""

from types import SimpleNamespace

from facegesture.detector import InferenceError, observation_from_result


def category(name, score):
    return SimpleNamespace(category_name=name, score=score)


def make_result(faces=1, blendshapes=None):
    return SimpleNamespace(
        face_landmarks=[[SimpleNamespace(x=0.5, y=0.5, z=0.0)] * 478 for _ in range(faces)],
        face_blendshapes=blendshapes if blendshapes is not None else [],
    )


class TestObservationFromResult:
    def test_no_face(self):
        obs = observation_from_result(make_result(faces=0))
        assert obs.face_detected is False
        assert obs.scores is None

    def test_face_with_blendshapes(self):
        result = make_result(blendshapes=[[
            category("_neutral", 0.1),
            category("eyeBlinkLeft", 0.92),
            category("eyeBlinkRight", 0.88),
            category("jawOpen", 0.05),
        ]])
        obs = observation_from_result(result)
        assert obs.face_detected is True
        assert obs.score("eyeBlinkLeft") == 0.92
        assert obs.score("jawOpen") == 0.05
        assert obs.score("mouthSmileLeft") == 0.0

    def test_face_without_blendshapes(self):
        obs = observation_from_result(make_result(blendshapes=[]))
        assert obs.face_detected is True
        assert obs.has_scores is False

    def test_only_first_face_used(self):
        result = make_result(faces=2, blendshapes=[
            [category("jawOpen", 0.9)],
            [category("jawOpen", 0.1)],
        ])
        assert observation_from_result(result).score("jawOpen") == 0.9


class TestInferenceError:
    def test_carries_code(self):
        err = InferenceError("model not loaded", 2)
        assert str(err) == "model not loaded"
        assert err.code == 2
