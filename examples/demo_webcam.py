#!/usr/bin/env python3
"""Live webcam face gesture demo with an on-screen overlay.

Usage:
    python examples/demo_webcam.py --model face_landmarker.task [--camera 0] [--no-display]
"""

import argparse
import sys

import cv2

sys.path.insert(0, "src")
from facegesture import DetectorBuilder, FaceGestureListener, GestureKind
from facegesture.detector import FaceLandmarkDetector


class OverlayListener(FaceGestureListener):
    """Keeps the latest state for drawing."""

    def __init__(self):
        self.face = False
        self.active: set[GestureKind] = set()
        self.last_detected = ""

    def on_face_detected(self, detected):
        self.face = detected

    def on_gesture_state_changed(self, kind, active):
        if active:
            self.active.add(kind)
        else:
            self.active.discard(kind)

    def on_gesture_detected(self, kind):
        self.last_detected = kind.value
        print(f"  ✨ {kind.value}")

    def on_error(self, message, code=0):
        print(f"  error: {message}")


def draw_overlay(frame, listener: OverlayListener, fps: float):
    color = (0, 255, 0) if listener.face else (0, 0, 255)
    cv2.putText(frame, f"FPS: {fps:.1f}", (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2)
    cv2.putText(
        frame, "face" if listener.face else "no face",
        (10, 60), cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2,
    )
    for i, kind in enumerate(GestureKind.ordered()):
        on = kind in listener.active
        cv2.putText(
            frame, f"{kind.value}: {'ON' if on else '-'}",
            (10, 95 + i * 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7,
            (0, 255, 255) if on else (200, 200, 200), 2,
        )
    if listener.last_detected:
        cv2.putText(
            frame, f"last: {listener.last_detected}",
            (10, 200), cv2.FONT_HERSHEY_SIMPLEX, 0.9, (255, 255, 0), 2,
        )
    return frame


def main():
    parser = argparse.ArgumentParser(description="facegesture webcam demo")
    parser.add_argument("--model", default="face_landmarker.task", help="Face Landmarker model")
    parser.add_argument("--camera", type=int, default=0, help="Camera index")
    parser.add_argument("--no-display", action="store_true", help="Run headless")
    args = parser.parse_args()

    cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        print(f"Error: Cannot open camera {args.camera}")
        sys.exit(1)

    print("Starting facegesture...")
    print("Press 'q' to quit\n")

    listener = OverlayListener()
    builder = DetectorBuilder().set_listener(listener).set_gesture_cooldown(0.8)

    with builder.build_detector(FaceLandmarkDetector(args.model)) as detector:
        while True:
            ret, frame = cap.read()
            if not ret:
                break

            frame = cv2.flip(frame, 1)
            frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            detector.process_frame(frame_rgb)

            if not args.no_display:
                frame = draw_overlay(frame, listener, detector.stats.fps)
                cv2.imshow("facegesture", frame)

                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break

    cap.release()
    cv2.destroyAllWindows()

    stats = detector.stats
    print(f"\nProcessed {stats.total_frames} frames, {stats.session.detections} detections")


if __name__ == "__main__":
    main()
