"""
Calibration data models.
"""
from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np

from .geometry import CoordinateSpace, Point2D, Point3D
from .. import config


@dataclass(frozen=True)
class CourtDimensions:
    length: float
    width: float
    singles_width: float

    def to_dict(self) -> dict:
        return {
            "length": self.length,
            "width": self.width,
            "singles_width": self.singles_width,
        }


@dataclass(frozen=True)
class CalibrationPoint:
    """A user click on a named court reference point."""
    id: str
    image: Point2D
    confidence: float = 1.0

    def __post_init__(self):
        if self.image.space is not CoordinateSpace.PIXEL:
            raise ValueError(
                f"Calibration point '{self.id}' must be in pixel space, "
                f"got {self.image.space.value}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "image": self.image.to_dict(),
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "CalibrationPoint":
        return cls(
            id=d["id"],
            image=Point2D.from_dict(d["image"]),
            confidence=float(d.get("confidence", 1.0)),
        )


@dataclass(frozen=True)
class CalibrationMode:
    """Static descriptor of which court points a calibration mode uses."""
    id: str
    name: str
    required_points: Tuple[str, ...]
    optional_points: Tuple[str, ...] = ()
    min_points: int = config.MIN_CALIBRATION_POINTS

    def __post_init__(self):
        if self.min_points < config.MIN_CALIBRATION_POINTS:
            raise ValueError(
                f"Mode '{self.id}': min_points must be >= "
                f"{config.MIN_CALIBRATION_POINTS}, got {self.min_points}")
        if len(self.required_points) + len(self.optional_points) < self.min_points:
            raise ValueError(
                f"Mode '{self.id}' lists fewer points than min_points={self.min_points}")
        if len(set(self.all_points)) != len(self.all_points):
            raise ValueError(f"Mode '{self.id}' lists a point more than once")

    @property
    def all_points(self) -> Tuple[str, ...]:
        return self.required_points + self.optional_points

    def __contains__(self, point_id: str) -> bool:
        return point_id in self.all_points


@dataclass(frozen=True, eq=False)
class HomographyResult:
    """
    Outcome of one calibration attempt. Never mutated; a new attempt
    produces a new result.

    `matrix` maps image pixels → court metres (x, z);
    `inverse_matrix` maps court metres → image pixels.
    """
    matrix: np.ndarray
    inverse_matrix: np.ndarray
    reprojection_error: float               # metres, mean over all pairs
    confidence: float
    inlier_indices: Tuple[int, ...]
    inlier_error: float = 0.0               # metres, mean over inliers
    inlier_ratio: float = 1.0
    condition_number: float = 1.0
    meters_per_pixel: float = 1.0
    frobenius_normalized: bool = False

    def __post_init__(self):
        for name in ("matrix", "inverse_matrix"):
            arr = np.array(getattr(self, name), dtype=np.float64)
            if arr.shape != (3, 3):
                raise ValueError(f"{name} must be 3x3, got {arr.shape}")
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)
        object.__setattr__(self, "inlier_indices", tuple(int(i) for i in self.inlier_indices))

    # ── Transforms ────────────────────────────────────────────────────────────

    def image_to_world(self, point: Point2D) -> Point3D:
        """Project a pixel onto the court floor (y = 0)."""
        if point.space is not CoordinateSpace.PIXEL:
            raise ValueError(f"Expected a pixel point, got {point.space.value}")
        x, z = _project(self.matrix, point.x, point.y)
        return Point3D(x, 0.0, z, CoordinateSpace.WORLD)

    def world_to_image(self, point: Point3D) -> Point2D:
        """Project a floor point back to pixels. Height (y) is ignored."""
        if point.space is not CoordinateSpace.WORLD:
            raise ValueError(f"Expected a world point, got {point.space.value}")
        px, py = _project(self.inverse_matrix, point.x, point.z)
        return Point2D(px, py, CoordinateSpace.PIXEL)

    # ── Serialisation ─────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "matrix": self.matrix.tolist(),
            "inverse_matrix": self.inverse_matrix.tolist(),
            "reprojection_error": self.reprojection_error,
            "inlier_error": self.inlier_error,
            "confidence": round(self.confidence, 4),
            "inlier_indices": list(self.inlier_indices),
            "inlier_ratio": self.inlier_ratio,
            "condition_number": self.condition_number,
            "meters_per_pixel": self.meters_per_pixel,
            "frobenius_normalized": bool(self.frobenius_normalized),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "HomographyResult":
        return cls(
            matrix=np.array(d["matrix"], dtype=np.float64),
            inverse_matrix=np.array(d["inverse_matrix"], dtype=np.float64),
            reprojection_error=float(d["reprojection_error"]),
            confidence=float(d["confidence"]),
            inlier_indices=tuple(d.get("inlier_indices", ())),
            inlier_error=float(d.get("inlier_error", 0.0)),
            inlier_ratio=float(d.get("inlier_ratio", 1.0)),
            condition_number=float(d.get("condition_number", 1.0)),
            meters_per_pixel=float(d.get("meters_per_pixel", 1.0)),
            frobenius_normalized=bool(d.get("frobenius_normalized", False)),
        )


def _project(H: np.ndarray, x: float, y: float) -> Tuple[float, float]:
    xp = H[0, 0] * x + H[0, 1] * y + H[0, 2]
    yp = H[1, 0] * x + H[1, 1] * y + H[1, 2]
    wp = H[2, 0] * x + H[2, 1] * y + H[2, 2]
    if abs(wp) < config.H22_EPSILON:
        raise ValueError("Point maps to infinity under this homography")
    return float(xp / wp), float(yp / wp)


@dataclass
class CalibrationSettings:
    """
    User-facing calibration aggregate consumed by the speed estimator.
    Persisted by the host application.
    """
    use_height_calibration: bool = False
    player_height: float = config.DEFAULT_PLAYER_HEIGHT     # cm
    use_court_calibration: bool = False
    court_dimensions: Optional[CourtDimensions] = None
    homography: Optional[HomographyResult] = None

    def __post_init__(self):
        _check_player_height(self.player_height)

    def set_player_height(self, height_cm: float) -> None:
        _check_player_height(height_cm)
        self.player_height = float(height_cm)
        self.use_height_calibration = True

    def attach_homography(self, result: Optional[HomographyResult],
                          enable: Optional[bool] = None) -> None:
        """
        Store the court homography. Court scaling is switched off when
        result is None; otherwise enable sets it, and None keeps the
        current setting.
        """
        self.homography = result
        if result is None:
            self.use_court_calibration = False
        elif enable is not None:
            self.use_court_calibration = bool(enable)

    @property
    def calibration_accuracy(self) -> float:
        """0-100: half from height calibration, half from court confidence."""
        accuracy = 0.0
        if self.use_height_calibration:
            accuracy += 50.0
        if self.use_court_calibration and self.homography is not None:
            accuracy += 50.0 * self.homography.confidence
        return round(accuracy, 1)

    @property
    def is_calibrated(self) -> bool:
        return self.calibration_accuracy > 0

    def to_dict(self) -> dict:
        return {
            "use_height_calibration": self.use_height_calibration,
            "player_height": self.player_height,
            "use_court_calibration": self.use_court_calibration,
            "court_dimensions": (
                self.court_dimensions.to_dict() if self.court_dimensions else None),
            "homography": self.homography.to_dict() if self.homography else None,
            "is_calibrated": self.is_calibrated,
            "calibration_accuracy": self.calibration_accuracy,
        }


def _check_player_height(height_cm: float) -> None:
    if not config.MIN_PLAYER_HEIGHT <= height_cm <= config.MAX_PLAYER_HEIGHT:
        raise ValueError(
            f"player_height must be within {config.MIN_PLAYER_HEIGHT:.0f}-"
            f"{config.MAX_PLAYER_HEIGHT:.0f} cm, got {height_cm}")
