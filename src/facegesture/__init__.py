"""facegesture - Debounced blink, smile and jaw-open events from face blendshapes."""

__version__ = "0.1.0"

from facegesture.gestures import GestureKind, FrameObservation, GestureRule
from facegesture.classifier import BlendshapeClassifier
from facegesture.debounce import GestureDebouncer
from facegesture.config import DetectorConfig, ConfigurationError, load_config
from facegesture.events import (
    FaceGestureListener,
    CallbackListener,
    EventCollector,
    FaceDetected,
    FaceInPosition,
    GestureDetected,
    GestureStateChanged,
    DetectionError,
)
from facegesture.state_machine import GestureStateMachine, SessionState
from facegesture.builder import DetectorBuilder
from facegesture.pipeline import FaceGestureDetector, PipelineStats
from facegesture.recorder import ObservationRecorder, ObservationPlayer
