from .anthropometry import AnthropometricModel, MassPolicy, SEGMENTS, SEGMENT_TYPES
from .speed         import SpeedEstimator
from .heatmap       import PositionHeatmap, ZONES

__all__ = [
    "AnthropometricModel", "MassPolicy", "SEGMENTS", "SEGMENT_TYPES",
    "SpeedEstimator",
    "PositionHeatmap", "ZONES",
]
