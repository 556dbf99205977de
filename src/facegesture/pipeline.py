"""Host that connects frame acquisition and inference to the state machine.

Frames can be processed inline with ``process_frame`` or handed to a single
background worker with ``submit``. Either way exactly one thread drives the
state machine and frames are handled in arrival order.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Optional, Protocol

import numpy as np

from facegesture.detector import FaceLandmarkDetector, InferenceError
from facegesture.events import Event
from facegesture.gestures import FrameObservation
from facegesture.state_machine import GestureStateMachine, SessionStats

logger = logging.getLogger("facegesture.pipeline")


class Landmarker(Protocol):
    def detect(
        self, frame_rgb: np.ndarray, timestamp_ms: int, mirror: bool = False
    ) -> FrameObservation: ...

    def close(self): ...


@dataclass
class PipelineStats:
    """Runtime performance statistics."""
    fps: float
    avg_latency_ms: float
    total_frames: int
    total_errors: int
    dropped_frames: int = 0
    session: SessionStats = field(default_factory=SessionStats)


class FaceGestureDetector:
    """End-to-end host: frame -> landmarker -> observation -> state machine.

    Features:
    - Inference failures are reported to the listener as error events and
      the frame is skipped
    - Timestamps are kept non-decreasing
    - Optional single-worker queue for frames produced on another thread
    """

    def __init__(
        self,
        state_machine: GestureStateMachine,
        landmarker: Optional[Landmarker] = None,
        queue_size: int = 4,
    ):
        self.state_machine = state_machine
        self.landmarker = landmarker if landmarker is not None else FaceLandmarkDetector()

        self.last_observation: Optional[FrameObservation] = None

        self._last_timestamp: Optional[float] = None
        self._frame_times: deque = deque(maxlen=60)
        self._total_frames = 0
        self._total_errors = 0
        self._dropped_frames = 0

        self._queue: queue.Queue = queue.Queue(maxsize=max(1, queue_size))
        self._worker: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def process_frame(
        self,
        frame_rgb: np.ndarray,
        timestamp: Optional[float] = None,
        mirror: bool = False,
    ) -> list[Event]:
        """Run inference on a frame and feed the result to the state machine.

        Args:
            frame_rgb: RGB image as numpy array (H, W, 3), uint8.
            timestamp: Capture time in seconds; defaults to time.monotonic().
            mirror: Flip horizontally before inference (front camera).

        Returns:
            Events emitted for this frame, or a single DetectionError.
        """
        now = self._next_timestamp(timestamp)
        t_start = time.monotonic()
        self._total_frames += 1
        self.last_observation = None

        try:
            observation = self.landmarker.detect(frame_rgb, int(now * 1000), mirror=mirror)
        except InferenceError as e:
            return self._report(str(e), e.code)
        except Exception as e:
            return self._report(f"Error processing image: {e}", 0)

        self.last_observation = observation
        events = self.state_machine.process_frame(observation, now)
        self._frame_times.append(time.monotonic() - t_start)
        return events

    def process_observation(
        self, observation: FrameObservation, timestamp: Optional[float] = None
    ) -> list[Event]:
        """Feed an observation produced elsewhere, skipping inference."""
        now = self._next_timestamp(timestamp)
        self._total_frames += 1
        self.last_observation = observation
        return self.state_machine.process_frame(observation, now)

    def report_error(self, message: str, code: int = 0) -> list[Event]:
        """Forward an acquisition failure (e.g. camera read) to the listener."""
        return self._report(message, code)

    def _report(self, message: str, code: int) -> list[Event]:
        logger.error("Face detection error (%d): %s", code, message)
        self._total_errors += 1
        return self.state_machine.report_error(message, code)

    def _next_timestamp(self, timestamp: Optional[float]) -> float:
        now = time.monotonic() if timestamp is None else timestamp
        if self._last_timestamp is not None and now < self._last_timestamp:
            logger.debug("Out-of-order timestamp %.3f clamped to %.3f", now, self._last_timestamp)
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    # -- background worker --------------------------------------------------

    def start(self):
        """Start the frame worker thread. No-op if already running."""
        if self._worker is not None:
            return
        self._stop.clear()
        self._worker = threading.Thread(target=self._run, name="facegesture-worker", daemon=True)
        self._worker.start()
        logger.info("Frame worker started")

    def submit(
        self,
        frame_rgb: np.ndarray,
        timestamp: Optional[float] = None,
        mirror: bool = False,
    ):
        """Queue a frame for the worker. Drops the oldest frame when full."""
        if self._worker is None:
            raise RuntimeError("start() must be called before submit()")

        item = (frame_rgb, time.monotonic() if timestamp is None else timestamp, mirror)
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    continue
                self._queue.task_done()
                self._dropped_frames += 1
                logger.debug("Frame queue full, dropped oldest frame")

    def flush(self):
        """Block until every queued frame has been processed."""
        self._queue.join()

    def _run(self):
        while not self._stop.is_set():
            try:
                frame_rgb, timestamp, mirror = self._queue.get(timeout=0.05)
            except queue.Empty:
                continue
            try:
                self.process_frame(frame_rgb, timestamp, mirror)
            finally:
                self._queue.task_done()

    def _drain(self):
        # unprocessed frames are discarded so flush() never waits on them
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return
            self._queue.task_done()

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    # -- stats / lifecycle --------------------------------------------------

    @property
    def stats(self) -> PipelineStats:
        if self._frame_times:
            avg_latency = sum(self._frame_times) / len(self._frame_times)
            fps = 1.0 / avg_latency if avg_latency > 0 else 0
        else:
            avg_latency = 0
            fps = 0

        return PipelineStats(
            fps=fps,
            avg_latency_ms=avg_latency * 1000,
            total_frames=self._total_frames,
            total_errors=self._total_errors,
            dropped_frames=self._dropped_frames,
            session=self.state_machine.stats,
        )

    def shutdown(self):
        """Stop the worker and release the landmarker."""
        if self._worker is not None:
            self._stop.set()
            self._worker.join()
            self._worker = None
            self._drain()
            logger.info("Frame worker stopped")
        self.landmarker.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.shutdown()
