"""facegesture CLI.

Usage:
    facegesture watch        — Detect gestures live from a camera
    facegesture replay       — Replay a recorded observation stream
    facegesture show-config  — Print the effective detector config
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer
import yaml

from facegesture.builder import DetectorBuilder
from facegesture.config import ConfigurationError, DetectorConfig, load_config
from facegesture.events import FaceGestureListener
from facegesture.gestures import GestureKind

app = typer.Typer(
    name="facegesture",
    help="Blink, smile and jaw-open detection from face blendshapes.",
    add_completion=False,
)


READ_FAILURE_CODE = 1
MAX_READ_FAILURES = 30
READ_RETRY_DELAY = 0.01


class PrintListener(FaceGestureListener):
    """Echoes events to the terminal."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.detections = 0

    def on_face_detected(self, detected: bool):
        typer.echo("🙂 face detected" if detected else "   face lost")

    def on_face_in_position(self, in_position: bool):
        if self.verbose:
            typer.echo(f"   in position: {in_position}")

    def on_gesture_detected(self, kind: GestureKind):
        self.detections += 1
        typer.echo(f"   ✨ {kind.value}")

    def on_gesture_state_changed(self, kind: GestureKind, active: bool):
        if self.verbose:
            typer.echo(f"   {kind.value}: {'start' if active else 'end'}")

    def on_error(self, message: str, code: int = 0):
        typer.echo(f"❌ {message} (code {code})", err=True)


def _resolve_config(
    config_path: Optional[str],
    blink: Optional[float],
    jaw: Optional[float],
    smile: Optional[float],
    cooldown: Optional[float],
) -> DetectorBuilder:
    """File values first, then any explicit flags on top."""
    try:
        config = load_config(config_path) if config_path else DetectorConfig()
    except (OSError, yaml.YAMLError, ConfigurationError) as e:
        typer.echo(f"❌ Could not load config: {e}", err=True)
        raise typer.Exit(1)

    builder = DetectorBuilder.from_config(config)
    if blink is not None:
        builder.set_blink_threshold(blink)
    if jaw is not None:
        builder.set_jaw_open_threshold(jaw)
    if smile is not None:
        builder.set_smile_threshold(smile)
    if cooldown is not None:
        builder.set_gesture_cooldown(cooldown)
    return builder


def _setup_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


ConfigOpt = typer.Option(None, "--config", help="Path to detector YAML config")
BlinkOpt = typer.Option(None, "--blink-threshold", help="Blink threshold (0-1)")
JawOpt = typer.Option(None, "--jaw-threshold", help="Jaw-open threshold (0-1)")
SmileOpt = typer.Option(None, "--smile-threshold", help="Smile threshold (0-1)")
CooldownOpt = typer.Option(None, "--cooldown", help="Seconds between detections of one gesture")


@app.command()
def watch(
    model: str = typer.Option("face_landmarker.task", help="Path to the Face Landmarker model"),
    camera: int = typer.Option(0, help="Camera device index"),
    mirror: bool = typer.Option(True, help="Mirror frames (front camera)"),
    duration: float = typer.Option(0, help="Stop after N seconds (0 = until Ctrl+C)"),
    record: Optional[str] = typer.Option(None, "--record", help="Save observations to this file"),
    verbose: bool = typer.Option(False, "-v", help="Show state changes too"),
    config: Optional[str] = ConfigOpt,
    blink_threshold: Optional[float] = BlinkOpt,
    jaw_threshold: Optional[float] = JawOpt,
    smile_threshold: Optional[float] = SmileOpt,
    cooldown: Optional[float] = CooldownOpt,
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Detect face gestures live from the camera."""
    import cv2
    from facegesture.detector import FaceLandmarkDetector
    from facegesture.recorder import ObservationRecorder

    _setup_logging(log_level)
    builder = _resolve_config(config, blink_threshold, jaw_threshold, smile_threshold, cooldown)

    if not Path(model).exists():
        typer.echo(f"❌ Model not found: {model}", err=True)
        raise typer.Exit(1)

    cap = cv2.VideoCapture(camera)
    if not cap.isOpened():
        typer.echo(f"❌ Could not open camera {camera}", err=True)
        raise typer.Exit(1)

    listener = PrintListener(verbose=verbose)
    detector = builder.set_listener(listener).build_detector(FaceLandmarkDetector(model))
    recorder = ObservationRecorder()
    if record:
        recorder.start()

    typer.echo(f"🎥 Watching camera {camera}... press Ctrl+C to stop")
    start = time.monotonic()
    failures = 0

    try:
        while True:
            ret, frame = cap.read()
            if ret:
                failures = 0
                frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                detector.process_frame(frame_rgb, mirror=mirror)
                if detector.last_observation is not None:
                    recorder.add(detector.last_observation)
            else:
                failures += 1
                detector.report_error("Could not read frame from camera", READ_FAILURE_CODE)
                if failures >= MAX_READ_FAILURES:
                    typer.echo(f"❌ Camera {camera} stopped delivering frames", err=True)
                    break
                time.sleep(READ_RETRY_DELAY)

            if duration > 0 and (time.monotonic() - start) >= duration:
                break
    except KeyboardInterrupt:
        pass
    finally:
        recorder.stop()
        cap.release()
        detector.shutdown()

    stats = detector.stats
    typer.echo(
        f"\n📊 {stats.total_frames} frames, {listener.detections} gestures, "
        f"{stats.total_errors} errors, {stats.fps:.1f} fps"
    )

    if record:
        recorder.save(record)
        typer.echo(f"💾 Saved {recorder.frame_count} observations to: {record}")


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file (.json or .npz)"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier"),
    realtime: bool = typer.Option(False, help="Play at original timing"),
    verbose: bool = typer.Option(False, "-v", help="Show state changes too"),
    config: Optional[str] = ConfigOpt,
    blink_threshold: Optional[float] = BlinkOpt,
    jaw_threshold: Optional[float] = JawOpt,
    smile_threshold: Optional[float] = SmileOpt,
    cooldown: Optional[float] = CooldownOpt,
):
    """Replay a recorded observation stream through the detector."""
    from facegesture.recorder import ObservationPlayer

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    builder = _resolve_config(config, blink_threshold, jaw_threshold, smile_threshold, cooldown)
    listener = PrintListener(verbose=verbose)
    machine = builder.set_listener(listener).build()

    player = ObservationPlayer.load(path)
    typer.echo(f"▶️  Replaying {path.name} ({player.frame_count} frames, {player.duration:.1f}s)")

    frames = player.play_realtime(speed=speed) if realtime else player.play()
    for frame in frames:
        machine.process_frame(frame.observation, frame.timestamp)

    typer.echo(f"\n✅ Replay complete. {listener.detections} gestures detected.")


@app.command("show-config")
def show_config(
    config: Optional[str] = ConfigOpt,
    blink_threshold: Optional[float] = BlinkOpt,
    jaw_threshold: Optional[float] = JawOpt,
    smile_threshold: Optional[float] = SmileOpt,
    cooldown: Optional[float] = CooldownOpt,
):
    """Print the effective detector configuration as YAML."""
    builder = _resolve_config(config, blink_threshold, jaw_threshold, smile_threshold, cooldown)
    typer.echo(yaml.dump({"detector": builder.build_config().to_dict()}, sort_keys=False), nl=False)


def main():
    app()


if __name__ == "__main__":
    main()
