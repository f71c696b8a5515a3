from typing import Optional

from loguru import logger

from .base import FrameSource


class CameraSource(FrameSource):
    """Local camera read through OpenCV's VideoCapture."""

    def __init__(self, index: int = 0) -> None:
        self.index = index
        self._cap = None

    def open(self) -> bool:
        try:
            import cv2
        except ImportError as exc:
            raise RuntimeError("opencv-python is required for camera capture") from exc

        self._cap = cv2.VideoCapture(self.index)
        if not self._cap.isOpened():
            logger.error(
                "Video capture is not open. Check that the camera is not in use "
                "by another program or running instance"
            )
            return False
        return True

    def read(self) -> Optional[object]:
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok:
            return None
        return frame

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Video capture stopped")
