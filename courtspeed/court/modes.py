"""
Calibration modes – which court points the user is asked to click.

Required points are suggested first, in the order listed; optional points
only improve the fit (and enable RANSAC once more than 4 are collected).
"""
from __future__ import annotations
from typing import Dict, List

from ..errors import UnknownMode
from ..models.calibration import CalibrationMode


FULL_COURT = CalibrationMode(
    id="full-court",
    name="Full Court",
    required_points=("corner-tl", "corner-tr", "corner-br", "corner-bl"),
    optional_points=("net-left", "net-right",
                     "service-left", "service-right",
                     "far-service-left", "far-service-right"),
)

HALF_COURT = CalibrationMode(
    id="half-court",
    name="Half Court (near side)",
    required_points=("net-left", "net-right", "corner-br", "corner-bl"),
    optional_points=("service-left", "service-right",
                     "service-center", "baseline-center"),
)

SERVICE_LINE = CalibrationMode(
    id="service-line",
    name="Service Lines",
    required_points=("service-left", "service-right",
                     "far-service-left", "far-service-right"),
    optional_points=("net-left", "net-right",
                     "service-center", "far-service-center"),
)

REFERENCE_LINES = CalibrationMode(
    id="reference-lines",
    name="Reference Lines",
    required_points=("net-left", "net-right"),
    optional_points=("service-left", "service-right",
                     "far-service-left", "far-service-right",
                     "service-center", "far-service-center",
                     "baseline-center", "far-baseline-center"),
)

CALIBRATION_MODES: Dict[str, CalibrationMode] = {
    m.id: m for m in (FULL_COURT, HALF_COURT, SERVICE_LINE, REFERENCE_LINES)
}


def get_mode(mode_id: str) -> CalibrationMode:
    try:
        return CALIBRATION_MODES[mode_id]
    except KeyError:
        raise UnknownMode(
            f"Unknown calibration mode '{mode_id}'. "
            f"Available: {', '.join(CALIBRATION_MODES)}") from None


def mode_ids() -> List[str]:
    return list(CALIBRATION_MODES)
