"""Face landmark and blendshape extraction using MediaPipe Face Landmarker."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import numpy as np

from facegesture.gestures import FrameObservation

try:
    import mediapipe as mp
    from mediapipe.tasks.python import BaseOptions, vision
except ImportError:
    mp = None


class InferenceError(RuntimeError):
    """A frame could not be turned into an observation.

    Raised by landmarkers to report a failure with an error code; the host
    forwards the message and code to the listener.
    """

    def __init__(self, message: str, code: int = 0):
        super().__init__(message)
        self.code = code


def observation_from_result(result) -> FrameObservation:
    """Convert a FaceLandmarkerResult into a FrameObservation.

    Only the first face is used. A result with landmarks but without
    blendshape output yields ``scores=None``.
    """
    if not result.face_landmarks:
        return FrameObservation.no_face()

    if not result.face_blendshapes:
        return FrameObservation(face_detected=True, scores=None)

    scores = {
        category.category_name: float(category.score)
        for category in result.face_blendshapes[0]
    }
    return FrameObservation(face_detected=True, scores=scores)


class FaceLandmarkDetector:
    """Runs the Face Landmarker task on RGB frames, one face at a time.

    Frames are processed in VIDEO running mode, which requires strictly
    increasing timestamps; equal or older timestamps are bumped by 1 ms.
    """

    def __init__(
        self,
        model_path: str | Path = "face_landmarker.task",
        min_face_detection_confidence: float = 0.5,
        min_face_presence_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install mediapipe"
            )

        options = vision.FaceLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(model_path)),
            running_mode=vision.RunningMode.VIDEO,
            num_faces=1,
            output_face_blendshapes=True,
            min_face_detection_confidence=min_face_detection_confidence,
            min_face_presence_confidence=min_face_presence_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._landmarker = vision.FaceLandmarker.create_from_options(options)
        self._last_timestamp_ms: Optional[int] = None

    def detect(
        self, frame_rgb: np.ndarray, timestamp_ms: int, mirror: bool = False
    ) -> FrameObservation:
        """Detect a face and return its blendshape scores.

        Args:
            frame_rgb: RGB image as numpy array (H, W, 3), uint8.
            timestamp_ms: Frame timestamp in milliseconds.
            mirror: Flip horizontally first (front-facing cameras).
        """
        if mirror:
            frame_rgb = np.ascontiguousarray(frame_rgb[:, ::-1])

        if self._last_timestamp_ms is not None and timestamp_ms <= self._last_timestamp_ms:
            timestamp_ms = self._last_timestamp_ms + 1
        self._last_timestamp_ms = timestamp_ms

        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        result = self._landmarker.detect_for_video(image, timestamp_ms)
        return observation_from_result(result)

    def close(self):
        """Release MediaPipe resources."""
        self._landmarker.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
