"""
Capture session setup and frame loop.

Setup helpers report failures as ``SetupResult`` values rather than raising,
so the caller decides whether to re-select configuration or give up.
"""
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Generic, Optional, TypeVar, Union

from loguru import logger

from .clock import Clock, SystemClock
from .config import ConfigStore
from .detection.base import Detector, FrameSource
from .detection.camera import CameraSource
from .detection.cascade import CascadeDetector, DetectorKind, cascade_path
from .events.continuity import DetectionEvent
from .signaling import SignalingController
from .utils.visualization import draw_regions

T = TypeVar("T")


class SetupError(Enum):
    CONFIGURATION = "configuration"
    DEVICE = "device"


@dataclass
class SetupResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[SetupError] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "SetupResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: SetupError, message: str) -> "SetupResult[T]":
        return cls(error=error, message=message)


class SessionOutcome(Enum):
    STOPPED = "stopped"
    DEVICE_ERROR = "device_error"


def load_detector(kind: Union[str, DetectorKind],
                  resources_path: Optional[Union[str, Path]] = None) -> SetupResult[Detector]:
    try:
        kind = DetectorKind(kind)
    except ValueError:
        choices = ", ".join(k.value for k in DetectorKind)
        return SetupResult.failure(
            SetupError.CONFIGURATION, f"Invalid detector '{kind}'; choose one of: {choices}"
        )

    detector = CascadeDetector(cascade_path(kind, resources_path))
    try:
        detector.load()
    except (FileNotFoundError, ValueError) as e:
        return SetupResult.failure(SetupError.CONFIGURATION, f"{type(e).__name__}: {e}")
    return SetupResult.success(detector)


def open_source(source: FrameSource) -> SetupResult[FrameSource]:
    if not source.open():
        return SetupResult.failure(SetupError.DEVICE, "Frame source could not be opened")
    logger.info("Video capture opened")
    return SetupResult.success(source)


def open_camera(index: int) -> SetupResult[FrameSource]:
    return open_source(CameraSource(index))


class CaptureSession:
    """
    One run of the frame loop against a single detector and frame source.

    Frames without any detected region never reach the controller.
    """

    def __init__(self,
                 source: FrameSource,
                 detector: Detector,
                 controller: SignalingController,
                 config_store: ConfigStore,
                 clock: Optional[Clock] = None,
                 highlight_regions: bool = True) -> None:
        self.source = source
        self.detector = detector
        self.controller = controller
        self.config_store = config_store
        self.clock = clock or SystemClock()
        self.highlight_regions = highlight_regions
        self.frames_read = 0

    def step(self, frame) -> bool:
        """Run detection on one frame; returns True if it held a detection."""
        self.frames_read += 1
        regions = self.detector.detect(frame)
        if not regions:
            return False

        if self.highlight_regions:
            draw_regions(frame, regions)
        event = DetectionEvent(
            timestamp_ms=self.clock.monotonic_ms(),
            wall_time=self.clock.now(),
            region_count=len(regions),
        )
        self.controller.process(event, frame)
        return True

    def run(self, stop_event: threading.Event) -> SessionOutcome:
        try:
            while not stop_event.is_set():
                frame = self.source.read()
                if frame is None:
                    logger.error("Frame source read failed; ending capture session")
                    return SessionOutcome.DEVICE_ERROR
                self.step(frame)

                interval_ms = self.config_store.snapshot().frame_interval_ms
                if interval_ms > 0 and stop_event.wait(interval_ms / 1000.0):
                    break
            return SessionOutcome.STOPPED
        finally:
            self.source.release()
            logger.info("Resources: frame source released")
            self.detector.close()
            logger.info("Resources: detector released")
            logger.info(f"Capture session ended after {self.frames_read} frames: "
                        f"{self.controller.get_stats()}")
