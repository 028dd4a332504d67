"""
Court templates – named reference points in world coordinates.

Origin at mid-court on the floor, metres:

    corner-tl ──── far-baseline-center ──── corner-tr     z = +L/2
    far-service-left ─ far-service-center ─ far-service-right   z = +s
    net-left ─────────── net-center ─────────── net-right z = 0
    service-left ───── service-center ───── service-right z = -s
    corner-bl ────── baseline-center ────── corner-br     z = -L/2

   x = -W/2                                   x = +W/2

x runs across the court (positive right), z along it (positive towards the
far end, the top of the image), y is height and is 0 for every point here.
"""
from __future__ import annotations
from typing import Dict, List, Tuple

from ..errors import UnknownPointId
from ..models.calibration import CourtDimensions
from ..models.geometry import CoordinateSpace, Point3D
from .. import config


COURT_TYPES = ("badminton", "tennis")


def _court_points(length: float, width: float, singles_width: float,
                  service: float) -> Dict[str, Tuple[float, float]]:
    """(x, z) for the points every court type shares."""
    hl, hw, hs = length / 2, width / 2, singles_width / 2
    return {
        "corner-tl":           (-hw,  hl),
        "corner-tr":           ( hw,  hl),
        "corner-bl":           (-hw, -hl),
        "corner-br":           ( hw, -hl),
        "singles-tl":          (-hs,  hl),
        "singles-tr":          ( hs,  hl),
        "singles-bl":          (-hs, -hl),
        "singles-br":          ( hs, -hl),
        "net-left":            (-hw, 0.0),
        "net-center":          (0.0, 0.0),
        "net-right":           ( hw, 0.0),
        "service-left":        (-hw, -service),
        "service-center":      (0.0, -service),
        "service-right":       ( hw, -service),
        "far-service-left":    (-hw,  service),
        "far-service-center":  (0.0,  service),
        "far-service-right":   ( hw,  service),
        "baseline-center":     (0.0, -hl),
        "far-baseline-center": (0.0,  hl),
    }


def _badminton() -> Dict[str, Tuple[float, float]]:
    points = _court_points(config.BADMINTON_LENGTH, config.BADMINTON_WIDTH,
                           config.BADMINTON_SINGLES_WIDTH,
                           config.BADMINTON_SHORT_SERVICE)
    hw   = config.BADMINTON_WIDTH / 2
    long = config.BADMINTON_LENGTH / 2 - config.BADMINTON_LONG_SERVICE
    points.update({
        "long-service-left":      (-hw, -long),
        "long-service-right":     ( hw, -long),
        "far-long-service-left":  (-hw,  long),
        "far-long-service-right": ( hw,  long),
    })
    return points


def _tennis() -> Dict[str, Tuple[float, float]]:
    return _court_points(config.TENNIS_LENGTH, config.TENNIS_WIDTH,
                         config.TENNIS_SINGLES_WIDTH, config.TENNIS_SERVICE_DEPTH)


_TEMPLATES: Dict[str, Dict[str, Tuple[float, float]]] = {
    "badminton": _badminton(),
    "tennis":    _tennis(),
}

_DIMENSIONS: Dict[str, CourtDimensions] = {
    "badminton": CourtDimensions(config.BADMINTON_LENGTH, config.BADMINTON_WIDTH,
                                 config.BADMINTON_SINGLES_WIDTH),
    "tennis":    CourtDimensions(config.TENNIS_LENGTH, config.TENNIS_WIDTH,
                                 config.TENNIS_SINGLES_WIDTH),
}


def _template(court_type: str) -> Dict[str, Tuple[float, float]]:
    try:
        return _TEMPLATES[court_type]
    except KeyError:
        raise UnknownPointId(
            f"Unknown court type '{court_type}'. "
            f"Supported: {', '.join(COURT_TYPES)}") from None


def reference_point_for(court_type: str, point_id: str) -> Point3D:
    """World position (metres, floor level) of a named court point."""
    template = _template(court_type)
    if point_id not in template:
        raise UnknownPointId(
            f"Point '{point_id}' is not defined for a {court_type} court")
    x, z = template[point_id]
    return Point3D(x, 0.0, z, CoordinateSpace.WORLD)


def point_ids(court_type: str) -> List[str]:
    return list(_template(court_type))


def court_dimensions(court_type: str) -> CourtDimensions:
    _template(court_type)
    return _DIMENSIONS[court_type]


def court_bounds(court_type: str) -> Tuple[float, float, float, float]:
    """(x_min, x_max, z_min, z_max) of the outer court lines."""
    dims = court_dimensions(court_type)
    return (-dims.width / 2, dims.width / 2, -dims.length / 2, dims.length / 2)
