"""
Core data models for courtspeed.
Split across sub-modules; this __init__ re-exports everything.
"""
from .geometry    import CoordinateSpace, Point2D, Point3D
from .calibration import (
    CourtDimensions, CalibrationPoint, CalibrationMode,
    HomographyResult, CalibrationSettings,
)
from .landmarks   import Landmark, LandmarkFrame, POSE_LANDMARK_NAMES, LANDMARK_INDEX
from .metrics     import SpeedMetrics

__all__ = [
    "CoordinateSpace", "Point2D", "Point3D",
    "CourtDimensions", "CalibrationPoint", "CalibrationMode",
    "HomographyResult", "CalibrationSettings",
    "Landmark", "LandmarkFrame", "POSE_LANDMARK_NAMES", "LANDMARK_INDEX",
    "SpeedMetrics",
]
