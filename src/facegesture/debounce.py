"""Per-gesture cooldown tracking."""

from __future__ import annotations

from typing import Optional

from facegesture.gestures import GestureKind


def _to_ms(seconds: float) -> int:
    # whole milliseconds, so 0.7 - 0.2 compares equal to 0.5
    return round(seconds * 1000)


class GestureDebouncer:
    """Decides whether a gesture activation may fire a detection event.

    Each gesture kind keeps its own last-fired timestamp, so a suppressed
    blink never affects smile. Only called on a rising edge; continuous
    state changes are not debounced.
    """

    def __init__(self, cooldown_seconds: float = 0.5):
        self.cooldown_seconds = max(0.0, cooldown_seconds)
        self._last_fired: dict[GestureKind, Optional[float]] = {
            kind: None for kind in GestureKind
        }

    def should_fire(self, kind: GestureKind, now: float) -> bool:
        """Return True and record ``now`` if ``kind`` is out of cooldown."""
        last = self._last_fired[kind]
        if last is not None and _to_ms(now - last) < _to_ms(self.cooldown_seconds):
            return False
        self._last_fired[kind] = now
        return True

    def last_fired(self, kind: GestureKind) -> Optional[float]:
        return self._last_fired[kind]

    def reset(self):
        for kind in self._last_fired:
            self._last_fired[kind] = None
