"""
Pose landmark sequence loading with frame iteration.

Expected JSON layout (one pose detector run over a video):

    {
      "space": "normalized",            # or "pixel"
      "image_size": [1920, 1080],       # needed for normalised input
      "fps": 30.0,                      # used when a frame has no timestamp
      "frames": [
        {"timestamp": 0.0, "landmarks": [[x, y, z, visibility], ... 33 ...]},
        ...
      ]
    }

Landmarks may also be objects {"x", "y", "z", "visibility"}.
"""
from __future__ import annotations
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, List, Optional, Tuple, Union

from .models.geometry import CoordinateSpace
from .models.landmarks import LandmarkFrame


@dataclass
class SequenceMetadata:
    path:         str
    space:        CoordinateSpace
    image_size:   Optional[Tuple[int, int]]
    fps:          float
    total_frames: int

    @property
    def duration_s(self) -> float:
        return self.total_frames / self.fps if self.fps > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "path":         self.path,
            "space":        self.space.value,
            "image_size":   list(self.image_size) if self.image_size else None,
            "fps":          self.fps,
            "total_frames": self.total_frames,
        }


class LandmarkLoader:
    """Reads a landmark sequence file; use as a context manager."""

    def __init__(self, path: Union[str, Path], default_fps: float = 30.0):
        self.path = str(path)
        self._default_fps = default_fps
        self._raw_frames: Optional[List[dict]] = None
        self._meta: Optional[SequenceMetadata] = None

    def __enter__(self) -> "LandmarkLoader":
        path = Path(self.path)
        if not path.exists():
            raise IOError(f"Cannot open landmark file: {self.path}")
        with path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"{self.path} is not valid JSON: {e}") from e
        self._raw_frames, self._meta = self._parse(data)
        return self

    def __exit__(self, *_) -> None:
        self._raw_frames = None

    def _parse(self, data) -> Tuple[List[dict], SequenceMetadata]:
        if isinstance(data, list):
            data = {"frames": data}
        if not isinstance(data, dict) or "frames" not in data:
            raise ValueError(f"{self.path}: expected an object with a 'frames' list")
        size = data.get("image_size")
        meta = SequenceMetadata(
            path=self.path,
            space=CoordinateSpace(data.get("space", CoordinateSpace.NORMALIZED.value)),
            image_size=(int(size[0]), int(size[1])) if size else None,
            fps=float(data.get("fps") or self._default_fps),
            total_frames=len(data["frames"]),
        )
        if meta.space is CoordinateSpace.WORLD:
            raise ValueError(f"{self.path}: landmark sequences must be pixel or normalized")
        return list(data["frames"]), meta

    @property
    def metadata(self) -> SequenceMetadata:
        if self._meta is None:
            raise RuntimeError("LandmarkLoader not opened; use it as a context manager")
        return self._meta

    def frames(
        self,
        skip: int = 0,
        max_frames: Optional[int] = None,
    ) -> Generator[Tuple[int, LandmarkFrame], None, None]:
        """
        Yield (frame_number, LandmarkFrame).

        Args:
            skip:       Return every (skip+1)-th frame.
            max_frames: Stop after this many yields.

        Raises:
            ValueError: a frame does not hold exactly 33 landmarks.
        """
        if self._raw_frames is None:
            raise RuntimeError("LandmarkLoader not opened")
        meta  = self.metadata
        count = 0
        for fn, raw in enumerate(self._raw_frames):
            if fn % (skip + 1):
                continue
            if isinstance(raw, dict):
                landmarks = raw.get("landmarks", [])
                ts = raw.get("timestamp")
            else:
                landmarks, ts = raw, None
            timestamp = float(ts) if ts is not None else fn / meta.fps
            try:
                frame = LandmarkFrame.from_list(landmarks, timestamp,
                                                meta.space, meta.image_size)
            except ValueError as e:
                raise ValueError(f"{self.path}, frame {fn}: {e}") from e
            yield fn, frame
            count += 1
            if max_frames and count >= max_frames:
                break
