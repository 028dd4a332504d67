"""
Pose landmark models (33-point BlazePose / MediaPipe topology).
"""
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple
import numpy as np

from .geometry import CoordinateSpace
from .. import config


POSE_LANDMARK_NAMES: Tuple[str, ...] = (
    "nose",
    "left_eye_inner", "left_eye", "left_eye_outer",
    "right_eye_inner", "right_eye", "right_eye_outer",
    "left_ear", "right_ear",
    "mouth_left", "mouth_right",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_pinky", "right_pinky",
    "left_index", "right_index",
    "left_thumb", "right_thumb",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
    "left_heel", "right_heel",
    "left_foot_index", "right_foot_index",
)

LANDMARK_INDEX: Dict[str, int] = {name: i for i, name in enumerate(POSE_LANDMARK_NAMES)}


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0

    @classmethod
    def parse(cls, raw) -> "Landmark":
        """Accept a dict {x, y, z?, visibility?} or a sequence [x, y, z?, vis?]."""
        if isinstance(raw, Landmark):
            return raw
        if isinstance(raw, dict):
            return cls(
                float(raw["x"]), float(raw["y"]),
                float(raw.get("z", 0.0) or 0.0),
                float(raw.get("visibility", 1.0)),
            )
        values = [float(v) for v in raw]
        if len(values) < 2:
            raise ValueError(f"Landmark needs at least x and y, got {raw!r}")
        values += [0.0, 1.0][len(values) - 2:]
        return cls(*values[:4])


@dataclass(frozen=True, eq=False)
class LandmarkFrame:
    """
    One pose-detector output: 33 landmarks plus the frame timestamp (s).

    `image_size` is (width, height) in pixels and is needed to convert
    normalised landmarks to pixels.
    """
    landmarks: Tuple[Landmark, ...]
    timestamp: float
    space: CoordinateSpace = CoordinateSpace.NORMALIZED
    image_size: Optional[Tuple[int, int]] = None

    def __post_init__(self):
        if len(self.landmarks) != config.NUM_LANDMARKS:
            raise ValueError(
                f"Expected {config.NUM_LANDMARKS} landmarks, got {len(self.landmarks)}")
        object.__setattr__(self, "landmarks", tuple(self.landmarks))

    @classmethod
    def from_list(
        cls,
        raw_landmarks: Sequence,
        timestamp: float,
        space: CoordinateSpace = CoordinateSpace.NORMALIZED,
        image_size: Optional[Tuple[int, int]] = None,
    ) -> "LandmarkFrame":
        return cls(
            landmarks=tuple(Landmark.parse(lm) for lm in raw_landmarks),
            timestamp=float(timestamp),
            space=space,
            image_size=tuple(image_size) if image_size is not None else None,
        )

    def __getitem__(self, key) -> Landmark:
        if isinstance(key, str):
            return self.landmarks[LANDMARK_INDEX[key]]
        return self.landmarks[key]

    def positions(self) -> np.ndarray:
        """(33, 3) array of raw x, y, z."""
        return np.array([[lm.x, lm.y, lm.z] for lm in self.landmarks], dtype=np.float64)

    def visibility(self) -> np.ndarray:
        return np.array([lm.visibility for lm in self.landmarks], dtype=np.float64)

    def visible_mask(self, threshold: float = config.VISIBILITY_THRESHOLD) -> np.ndarray:
        return self.visibility() >= threshold

    def visible_count(self, threshold: float = config.VISIBILITY_THRESHOLD) -> int:
        return int(np.count_nonzero(self.visible_mask(threshold)))

    def pixel_positions(self) -> np.ndarray:
        """
        Landmark positions in pixels. z is scaled by the frame width,
        matching the pose model's depth convention.
        """
        pos = self.positions()
        if self.space is CoordinateSpace.PIXEL:
            return pos
        if self.space is not CoordinateSpace.NORMALIZED:
            raise ValueError(f"Cannot express {self.space.value} landmarks in pixels")
        if self.image_size is None:
            raise ValueError("Normalised landmarks need image_size to convert to pixels")
        w, h = self.image_size
        return pos * np.array([w, h, w], dtype=np.float64)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "space": self.space.value,
            "image_size": list(self.image_size) if self.image_size else None,
            "landmarks": [[lm.x, lm.y, lm.z, lm.visibility] for lm in self.landmarks],
        }
