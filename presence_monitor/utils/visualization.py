from typing import Iterable

from ..detection.base import Region


def draw_regions(frame, regions: Iterable[Region]) -> None:
    try:
        import cv2
    except ImportError as exc:
        raise RuntimeError("opencv-python is required for drawing") from exc

    for region in regions:
        x1, y1, x2, y2 = region.bbox
        cv2.rectangle(frame, (x1, y1), (x2, y2), (0, 255, 0), 2)
