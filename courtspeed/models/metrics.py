"""
Per-frame speed metrics.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional

from .geometry import CoordinateSpace, Point3D


@dataclass
class SpeedMetrics:
    center_of_mass:       Point3D
    velocity:             Point3D
    speed:                float                 # m/s (or scaled units/s)
    general_moving_speed: float                 # horizontal (x, z) only
    per_landmark_speed:   Dict[str, float] = field(default_factory=dict)
    scaling_factor:       float = 1.0
    is_valid:             bool  = True
    center_of_gravity_height: float = 0.0
    average_speed:        float = 0.0
    samples:              int   = 0
    clamped:              bool  = False
    invalid_reason:       Optional[str] = None
    timestamp:            float = 0.0

    @classmethod
    def invalid(cls, reason: str, timestamp: float = 0.0,
                space: CoordinateSpace = CoordinateSpace.WORLD) -> "SpeedMetrics":
        """Explicit zeros everywhere; never carries values from earlier frames."""
        return cls(
            center_of_mass=Point3D.zero(space),
            velocity=Point3D.zero(space),
            speed=0.0,
            general_moving_speed=0.0,
            per_landmark_speed={},
            scaling_factor=0.0,
            is_valid=False,
            invalid_reason=reason,
            timestamp=timestamp,
        )

    @property
    def right_foot_speed(self) -> float:
        return self.per_landmark_speed.get("right_foot_index", 0.0)

    def to_dict(self) -> dict:
        return {
            "timestamp":            round(self.timestamp, 4),
            "is_valid":             self.is_valid,
            "invalid_reason":       self.invalid_reason,
            "center_of_mass":       self.center_of_mass.to_dict(),
            "velocity":             self.velocity.to_dict(),
            "speed":                round(self.speed, 3),
            "general_moving_speed": round(self.general_moving_speed, 3),
            "right_foot_speed":     round(self.right_foot_speed, 3),
            "average_speed":        round(self.average_speed, 3),
            "center_of_gravity_height": round(self.center_of_gravity_height, 3),
            "scaling_factor":       round(self.scaling_factor, 6),
            "clamped":              self.clamped,
            "samples":              self.samples,
            "per_landmark_speed":   {
                name: round(v, 3) for name, v in self.per_landmark_speed.items()},
        }
