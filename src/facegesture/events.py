"""Detection events and the listener interface that receives them.

Subclass FaceGestureListener and override the callbacks you care about:

    class MyListener(FaceGestureListener):
        def on_gesture_detected(self, kind):
            print(f"Got gesture: {kind.value}")

Or use the decorator API:

    listener = CallbackListener()

    @listener.on("gesture_detected")
    def handle(event):
        print(event.kind)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Union

from facegesture.gestures import GestureKind

logger = logging.getLogger("facegesture.events")


@dataclass(frozen=True)
class FaceDetected:
    detected: bool
    type: str = field(default="face_detected", init=False)

    def dispatch(self, listener: FaceGestureListener):
        listener.on_face_detected(self.detected)


@dataclass(frozen=True)
class FaceInPosition:
    in_position: bool
    type: str = field(default="face_in_position", init=False)

    def dispatch(self, listener: FaceGestureListener):
        listener.on_face_in_position(self.in_position)


@dataclass(frozen=True)
class GestureDetected:
    """A debounced, discrete gesture detection."""
    kind: GestureKind
    type: str = field(default="gesture_detected", init=False)

    def dispatch(self, listener: FaceGestureListener):
        listener.on_gesture_detected(self.kind)


@dataclass(frozen=True)
class GestureStateChanged:
    """A gesture started or ended. Reported on every edge."""
    kind: GestureKind
    active: bool
    type: str = field(default="gesture_state_changed", init=False)

    def dispatch(self, listener: FaceGestureListener):
        listener.on_gesture_state_changed(self.kind, self.active)


@dataclass(frozen=True)
class DetectionError:
    """An error reported by the frame acquisition or inference stage."""
    message: str
    code: int = 0
    type: str = field(default="error", init=False)

    def dispatch(self, listener: FaceGestureListener):
        listener.on_error(self.message, self.code)


Event = Union[FaceDetected, FaceInPosition, GestureDetected, GestureStateChanged, DetectionError]


class FaceGestureListener:
    """Receives detection events. All callbacks default to no-ops."""

    def on_face_detected(self, detected: bool):
        """Called when a face appears in or leaves the frame."""
        pass

    def on_face_in_position(self, in_position: bool):
        """Called when the face enters or leaves the detection position."""
        pass

    def on_gesture_detected(self, kind: GestureKind):
        """Called once per gesture activation, subject to the cooldown."""
        pass

    def on_gesture_state_changed(self, kind: GestureKind, active: bool):
        """Called whenever a gesture starts or ends."""
        pass

    def on_error(self, message: str, code: int = 0):
        """Called when frame acquisition or inference fails."""
        pass


class CallbackListener(FaceGestureListener):
    """Listener that forwards events to registered callables by event type."""

    def __init__(self):
        self._handlers: dict[str, list[Callable[[Event], None]]] = {}

    def on(self, event_type: str = "*"):
        """Decorator to register a handler for one event type, or all with "*"."""
        def decorator(fn: Callable[[Event], None]):
            self._handlers.setdefault(event_type, []).append(fn)
            return fn
        return decorator

    def _emit(self, event: Event):
        for handler in self._handlers.get(event.type, []) + self._handlers.get("*", []):
            try:
                handler(event)
            except Exception as e:
                logger.error("Handler %s failed on %s: %s", getattr(handler, "__name__", handler), event.type, e)

    def on_face_detected(self, detected: bool):
        self._emit(FaceDetected(detected))

    def on_face_in_position(self, in_position: bool):
        self._emit(FaceInPosition(in_position))

    def on_gesture_detected(self, kind: GestureKind):
        self._emit(GestureDetected(kind))

    def on_gesture_state_changed(self, kind: GestureKind, active: bool):
        self._emit(GestureStateChanged(kind, active))

    def on_error(self, message: str, code: int = 0):
        self._emit(DetectionError(message, code))


class EventCollector(CallbackListener):
    """Listener that keeps every event it receives, in order."""

    def __init__(self):
        super().__init__()
        self.events: list[Event] = []
        self.on("*")(self.events.append)

    def clear(self):
        self.events.clear()

    def of_type(self, event_cls: type) -> list[Event]:
        return [e for e in self.events if isinstance(e, event_cls)]


def deliver(event: Event, listener: FaceGestureListener):
    """Dispatch one event, logging rather than propagating listener failures."""
    try:
        event.dispatch(listener)
    except Exception as e:
        logger.error("Listener %s failed on %s: %s", type(listener).__name__, event.type, e)
