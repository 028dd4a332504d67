"""
Point types with an explicit coordinate space.

Pixel, normalised (0-1) and world (metres) coordinates are never told
apart by magnitude: every point carries its space and arithmetic between
points of different spaces raises ValueError.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Tuple
import numpy as np


class CoordinateSpace(Enum):
    PIXEL      = "pixel"
    NORMALIZED = "normalized"
    WORLD      = "world"


def _check_same_space(a, b) -> None:
    if a.space is not b.space:
        raise ValueError(
            f"Cannot combine {a.space.value} and {b.space.value} coordinates")


@dataclass(frozen=True)
class Point2D:
    x: float
    y: float
    space: CoordinateSpace = CoordinateSpace.PIXEL

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def distance_to(self, other: "Point2D") -> float:
        _check_same_space(self, other)
        return float(np.hypot(self.x - other.x, self.y - other.y))

    def to_pixel(self, width: float, height: float) -> "Point2D":
        """Convert a normalised point to pixels for a frame of the given size."""
        if self.space is CoordinateSpace.PIXEL:
            return self
        if self.space is not CoordinateSpace.NORMALIZED:
            raise ValueError(f"Cannot convert {self.space.value} point to pixels")
        return Point2D(self.x * width, self.y * height, CoordinateSpace.PIXEL)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "space": self.space.value}

    @classmethod
    def from_dict(cls, d: dict) -> "Point2D":
        return cls(float(d["x"]), float(d["y"]),
                   CoordinateSpace(d.get("space", "pixel")))


@dataclass(frozen=True)
class Point3D:
    """
    World: metres, court plane is (x, z), height is y.
    Normalised: raw pose-landmark space.
    """
    x: float
    y: float
    z: float
    space: CoordinateSpace = CoordinateSpace.WORLD

    @classmethod
    def zero(cls, space: CoordinateSpace = CoordinateSpace.WORLD) -> "Point3D":
        return cls(0.0, 0.0, 0.0, space)

    @classmethod
    def from_array(cls, arr, space: CoordinateSpace = CoordinateSpace.WORLD) -> "Point3D":
        return cls(float(arr[0]), float(arr[1]), float(arr[2]), space)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def __sub__(self, other: "Point3D") -> "Point3D":
        _check_same_space(self, other)
        return Point3D(self.x - other.x, self.y - other.y, self.z - other.z, self.space)

    def __add__(self, other: "Point3D") -> "Point3D":
        _check_same_space(self, other)
        return Point3D(self.x + other.x, self.y + other.y, self.z + other.z, self.space)

    def scaled(self, factor: float) -> "Point3D":
        return Point3D(self.x * factor, self.y * factor, self.z * factor, self.space)

    def norm(self) -> float:
        return float(np.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2))

    def horizontal_norm(self) -> float:
        """Length in the (x, z) plane, ignoring height."""
        return float(np.hypot(self.x, self.z))

    def to_dict(self) -> dict:
        return {
            "x": round(self.x, 4),
            "y": round(self.y, 4),
            "z": round(self.z, 4),
            "space": self.space.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Point3D":
        return cls(float(d["x"]), float(d["y"]), float(d["z"]),
                   CoordinateSpace(d.get("space", "world")))
