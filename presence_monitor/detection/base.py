from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass
class Region:
    x: int
    y: int
    width: int
    height: int

    @property
    def bbox(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)


class Detector:
    def load(self) -> None:
        raise NotImplementedError

    def detect(self, frame) -> List[Region]:
        raise NotImplementedError

    def close(self) -> None:
        pass


class FrameSource:
    def open(self) -> bool:
        raise NotImplementedError

    def read(self) -> Optional[object]:
        """Next frame, or None when the source can no longer deliver one."""
        raise NotImplementedError

    def release(self) -> None:
        pass
