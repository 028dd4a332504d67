"""
Pytest fixtures for courtspeed tests.
"""
import cv2
import numpy as np
import pytest
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from courtspeed.court.template import reference_point_for
from courtspeed.models import (
    CoordinateSpace, Landmark, LandmarkFrame, Point2D, Point3D,
    POSE_LANDMARK_NAMES,
)


# Badminton doubles corners as seen by a broadcast-style camera (1920x1080)
_IMAGE_CORNERS = np.array([
    [700.0,  300.0],    # corner-tl (far left)
    [1220.0, 300.0],    # corner-tr (far right)
    [1600.0, 950.0],    # corner-br (near right)
    [320.0,  950.0],    # corner-bl (near left)
], dtype=np.float32)

_WORLD_CORNERS = np.array([
    [-3.05,  6.7],
    [ 3.05,  6.7],
    [ 3.05, -6.7],
    [-3.05, -6.7],
], dtype=np.float32)


class SyntheticCamera:
    """Ground-truth world (x, z) → image homography."""

    def __init__(self, world_to_image: np.ndarray, court_type: str = "badminton"):
        self.world_to_image = world_to_image
        self.court_type = court_type

    def to_image(self, point: Point3D) -> Point2D:
        src = np.array([[[point.x, point.z]]], dtype=np.float64)
        u, v = cv2.perspectiveTransform(src, self.world_to_image)[0, 0]
        return Point2D(float(u), float(v))

    def image_of(self, point_id: str) -> Point2D:
        return self.to_image(reference_point_for(self.court_type, point_id))

    def pairs(self, point_ids: Iterable[str]):
        return [(self.image_of(pid), reference_point_for(self.court_type, pid))
                for pid in point_ids]


@pytest.fixture
def camera():
    H = cv2.getPerspectiveTransform(_WORLD_CORNERS, _IMAGE_CORNERS).astype(np.float64)
    return SyntheticCamera(H)


@pytest.fixture
def corner_ids():
    return ["corner-tl", "corner-tr", "corner-br", "corner-bl"]


@pytest.fixture
def ten_point_ids():
    return [
        "corner-tl", "corner-tr", "corner-br", "corner-bl",
        "net-left", "net-right",
        "service-left", "service-right",
        "far-service-left", "far-service-right",
    ]


# ── Pose fixtures ─────────────────────────────────────────────────────────────

# Standing player, normalised image coordinates (y grows downwards)
_STANDING_POSE: Dict[str, Tuple[float, float]] = {
    "nose":            (0.50, 0.20),
    "left_eye_inner":  (0.51, 0.19), "left_eye":  (0.52, 0.19), "left_eye_outer":  (0.53, 0.19),
    "right_eye_inner": (0.49, 0.19), "right_eye": (0.48, 0.19), "right_eye_outer": (0.47, 0.19),
    "left_ear":        (0.54, 0.20), "right_ear": (0.46, 0.20),
    "mouth_left":      (0.51, 0.22), "mouth_right": (0.49, 0.22),
    "left_shoulder":   (0.56, 0.30), "right_shoulder": (0.44, 0.30),
    "left_elbow":      (0.58, 0.42), "right_elbow":    (0.42, 0.42),
    "left_wrist":      (0.59, 0.52), "right_wrist":    (0.41, 0.52),
    "left_pinky":      (0.59, 0.55), "right_pinky":    (0.41, 0.55),
    "left_index":      (0.60, 0.55), "right_index":    (0.40, 0.55),
    "left_thumb":      (0.58, 0.54), "right_thumb":    (0.42, 0.54),
    "left_hip":        (0.53, 0.55), "right_hip":      (0.47, 0.55),
    "left_knee":       (0.53, 0.72), "right_knee":     (0.47, 0.72),
    "left_ankle":      (0.53, 0.88), "right_ankle":    (0.47, 0.88),
    "left_heel":       (0.53, 0.90), "right_heel":     (0.47, 0.90),
    "left_foot_index": (0.54, 0.92), "right_foot_index": (0.46, 0.92),
}


def standing_positions() -> np.ndarray:
    return np.array([[*_STANDING_POSE[n], 0.0] for n in POSE_LANDMARK_NAMES])


def make_frame(
    timestamp: float = 0.0,
    positions: Optional[np.ndarray] = None,
    visibility: Optional[Sequence[float]] = None,
    offset: Sequence[float] = (0.0, 0.0, 0.0),
    space: CoordinateSpace = CoordinateSpace.NORMALIZED,
    image_size: Optional[Tuple[int, int]] = None,
) -> LandmarkFrame:
    pos = standing_positions() if positions is None else np.asarray(positions, float)
    pos = pos + np.asarray(offset, float)
    vis = np.ones(len(pos)) if visibility is None else np.asarray(visibility, float)
    landmarks = [Landmark(*p, visibility=float(v)) for p, v in zip(pos, vis)]
    return LandmarkFrame.from_list(landmarks, timestamp, space, image_size)


@pytest.fixture
def frame_factory():
    return make_frame


@pytest.fixture
def standing_pose():
    return standing_positions()
