"""Observation recording and replay — capture blendshape streams to disk.

Recordings let the state machine be exercised without a camera or model:
- Reproducible tests of gesture timing
- Tuning thresholds and cooldowns offline
- CI runs on headless machines
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from facegesture.events import Event
from facegesture.gestures import TRACKED_BLENDSHAPES, FrameObservation
from facegesture.state_machine import GestureStateMachine

FORMAT_VERSION = 1


@dataclass
class RecordedFrame:
    """A single frame in a recording."""
    timestamp: float  # seconds from recording start
    observation: FrameObservation


class ObservationRecorder:
    """Records frame observations with their timestamps.

    Usage:
        recorder = ObservationRecorder()
        recorder.start()
        # In your frame loop:
        recorder.add(observation)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[RecordedFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        """Begin a new recording session."""
        self._frames = []
        self._start_time = time.monotonic()
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def add(self, observation: FrameObservation, timestamp: Optional[float] = None):
        """Add an observation. ``timestamp`` is relative to the recording start."""
        if not self._recording:
            return
        if timestamp is None:
            timestamp = time.monotonic() - self._start_time
        self._frames.append(RecordedFrame(timestamp=timestamp, observation=observation))

    def save(self, path: str | Path):
        """Save recording to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "version": FORMAT_VERSION,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [
                {"timestamp": f.timestamp, **f.observation.to_dict()}
                for f in self._frames
            ],
        }
        with open(path, "w") as f:
            json.dump(data, f)

    def save_compact(self, path: str | Path):
        """Save in compact numpy npz format.

        Only the blendshapes used for classification are kept. Missing
        scores are stored as NaN; frames without a score vector have
        ``has_scores`` False.
        """
        path = Path(path).with_suffix(".npz")
        path.parent.mkdir(parents=True, exist_ok=True)

        n = len(self._frames)
        timestamps = np.array([f.timestamp for f in self._frames], dtype=np.float64)
        face = np.array([f.observation.face_detected for f in self._frames], dtype=bool)
        has_scores = np.array([f.observation.has_scores for f in self._frames], dtype=bool)
        scores = np.full((n, len(TRACKED_BLENDSHAPES)), np.nan, dtype=np.float32)

        for i, f in enumerate(self._frames):
            if not f.observation.scores:
                continue
            for j, name in enumerate(TRACKED_BLENDSHAPES):
                if name in f.observation.scores:
                    scores[i, j] = f.observation.scores[name]

        np.savez_compressed(
            path,
            timestamps=timestamps,
            face_detected=face,
            has_scores=has_scores,
            scores=scores,
            names=np.array(TRACKED_BLENDSHAPES),
        )


class ObservationPlayer:
    """Replays a recorded observation stream.

    Usage:
        player = ObservationPlayer.load("session.json")
        events = player.replay(state_machine)
    """

    def __init__(self, frames: list[RecordedFrame]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> ObservationPlayer:
        """Load a recording from JSON or npz."""
        path = Path(path)
        if path.suffix == ".npz":
            return cls._load_compact(path)

        with open(path) as f:
            data = json.load(f)

        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported recording version: {version}")

        frames = [
            RecordedFrame(timestamp=float(f["timestamp"]), observation=FrameObservation.from_dict(f))
            for f in data["frames"]
        ]
        return cls(frames)

    @classmethod
    def _load_compact(cls, path: Path) -> ObservationPlayer:
        data = np.load(path, allow_pickle=False)
        names = [str(n) for n in data["names"]]
        scores = data["scores"]

        frames = []
        for i, timestamp in enumerate(data["timestamps"]):
            row = None
            if data["has_scores"][i]:
                row = {
                    name: float(scores[i, j])
                    for j, name in enumerate(names)
                    if not np.isnan(scores[i, j])
                }
            frames.append(RecordedFrame(
                timestamp=float(timestamp),
                observation=FrameObservation(bool(data["face_detected"][i]), row),
            ))
        return cls(frames)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def play(self) -> Iterator[RecordedFrame]:
        """Iterate through all frames instantly (no timing)."""
        yield from self._frames

    def play_realtime(self, speed: float = 1.0) -> Iterator[RecordedFrame]:
        """Replay at original timing (or scaled by speed factor).

        Args:
            speed: Playback speed multiplier (2.0 = double speed).
        """
        start = time.monotonic()
        for frame in self._frames:
            target_time = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target_time > elapsed:
                time.sleep(target_time - elapsed)
            yield frame

    def replay(self, state_machine: GestureStateMachine) -> list[Event]:
        """Feed every frame to a state machine using the recorded timestamps."""
        events: list[Event] = []
        for frame in self.play():
            events.extend(state_machine.process_frame(frame.observation, frame.timestamp))
        return events
