"""
Evidence frame capture.
Saves the frame that triggered a signal as a timestamped JPEG.
"""
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from loguru import logger


def evidence_filename(when: datetime) -> str:
    """
    Build the evidence file name for a signal time.

    The stamp follows the ``yyyyMMdd_hhmmssSSS`` pattern: the hour is on the
    12-hour clock (01-12) and the last three digits are milliseconds.
    """
    return f"frame_{when.strftime('%Y%m%d_%I%M%S')}{when.microsecond // 1000:03d}.jpg"


class EvidenceWriter:
    """Writes evidence frames under a single directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, when: datetime) -> Path:
        return self.directory / evidence_filename(when)

    def save(self, frame, when: datetime) -> Optional[Path]:
        """
        Save a frame to disk.

        Args:
            frame: BGR image as produced by the frame source
            when: Signal wall-clock time used for the file name

        Returns:
            Path of the written file, or None if the write failed
        """
        try:
            import cv2
        except ImportError as exc:
            raise RuntimeError("opencv-python is required for saving evidence frames") from exc

        if frame is None:
            logger.warning("No frame available for evidence capture")
            return None

        path = self.path_for(when)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            if not cv2.imwrite(str(path), frame):
                logger.error(f"Failed to write evidence frame to {path}")
                return None
        except (OSError, cv2.error) as e:
            logger.error(f"Evidence write error: {e}")
            return None

        logger.debug(f"Saved evidence frame {path}")
        return path
