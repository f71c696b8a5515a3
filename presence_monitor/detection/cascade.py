"""
Haar cascade human detector.
Runs OpenCV's CascadeClassifier on an equalized grayscale copy of the frame.
"""
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from .base import Detector, Region


class DetectorKind(Enum):
    FRONTAL_FACE = "frontal_face"
    FULL_BODY = "full_body"
    UPPER_BODY = "upper_body"


CASCADE_FILES = {
    DetectorKind.FRONTAL_FACE: "haarcascade_frontalface_default.xml",
    DetectorKind.FULL_BODY: "haarcascade_fullbody.xml",
    DetectorKind.UPPER_BODY: "haarcascade_upperbody.xml",
}


def default_resources_path() -> Path:
    """Directory of the cascade files bundled with opencv-python."""
    try:
        import cv2
    except ImportError as exc:
        raise RuntimeError("opencv-python is required for cascade detection") from exc
    return Path(cv2.data.haarcascades)


def cascade_path(kind: DetectorKind, resources_path: Optional[Union[str, Path]] = None) -> Path:
    base = Path(resources_path) if resources_path else default_resources_path()
    return base / CASCADE_FILES[kind]


class CascadeDetector(Detector):
    def __init__(
        self,
        path: Union[str, Path],
        scale_factor: float = 1.1,
        min_neighbors: int = 2,
        min_size: tuple = (30, 30),
    ) -> None:
        self.path = Path(path)
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size
        self._classifier = None

    def load(self) -> None:
        """
        Load the cascade file.

        Raises:
            FileNotFoundError: if the file does not exist
            ValueError: if OpenCV cannot parse it
        """
        try:
            import cv2
        except ImportError as exc:
            raise RuntimeError("opencv-python is required for cascade detection") from exc

        if not self.path.exists():
            raise FileNotFoundError(f"File {self.path} not found")
        classifier = cv2.CascadeClassifier()
        try:
            loaded = classifier.load(str(self.path))
        except cv2.error as e:
            raise ValueError(f"Couldn't load CascadeClassifier with {self.path}: {e}") from e
        if not loaded:
            raise ValueError(f"Couldn't load CascadeClassifier with {self.path}")
        self._classifier = classifier
        logger.info(f"Loaded CascadeClassifier with {self.path}")

    def detect(self, frame) -> List[Region]:
        import cv2

        if self._classifier is None:
            raise RuntimeError("Detector not loaded")

        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        gray = cv2.equalizeHist(gray)
        rects = self._classifier.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            flags=0,
            minSize=self.min_size,
        )
        return [Region(int(x), int(y), int(w), int(h)) for (x, y, w, h) in rects]
