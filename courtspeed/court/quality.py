"""
Calibration quality assessment.

Scores a HomographyResult against the clicked correspondences in image
space (pixels), where the user can judge it:

  reprojection  – court point → image vs the click
  round trip    – click → court → image vs the click
  conditioning  – condition number of the normalised homography
  perspective   – spread of the local metres-per-pixel scale across the image
  inliers       – share of clicks RANSAC kept

The weighted sum gives an overall score, a grade and a list of
user-facing recommendations.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import numpy as np

from ..models.calibration import HomographyResult
from .homography import Pair, apply_homography, pairs_to_arrays
from .. import config


@dataclass
class CalibrationQuality:
    reprojection_error_px:  float
    round_trip_error_px:    float
    condition_number:       float
    perspective_distortion: float
    inlier_ratio:           float
    overall_confidence:     float
    grade:                  str
    recommendations:        List[str] = field(default_factory=list)

    @property
    def round_trip_ok(self) -> bool:
        return self.round_trip_error_px <= config.ROUND_TRIP_TOLERANCE_PX

    def to_dict(self) -> dict:
        return {
            "reprojection_error_px":  round(self.reprojection_error_px, 3),
            "round_trip_error_px":    round(self.round_trip_error_px, 6),
            "condition_number":       round(self.condition_number, 3),
            "perspective_distortion": round(self.perspective_distortion, 4),
            "inlier_ratio":           round(self.inlier_ratio, 3),
            "overall_confidence":     round(self.overall_confidence, 3),
            "grade":                  self.grade,
            "recommendations":        list(self.recommendations),
        }


def assess(
    result: HomographyResult,
    pairs: Sequence[Pair],
    image_size: Optional[Tuple[int, int]] = None,
) -> CalibrationQuality:
    """
    Args:
        result:     homography to assess.
        pairs:      the (image, court) correspondences it was fitted on.
        image_size: (width, height) of the video frame. When omitted the
                    bounding box of the clicks is sampled instead.
    """
    img, world = pairs_to_arrays(pairs)

    reproj     = _mean_finite(np.linalg.norm(
        apply_homography(result.inverse_matrix, world) - img, axis=1))
    round_trip = _mean_finite(np.linalg.norm(
        apply_homography(result.inverse_matrix,
                         apply_homography(result.matrix, img)) - img, axis=1))
    distortion = perspective_distortion(result.matrix, img, image_size)

    scores = {
        "reprojection": max(0.0, 1.0 - reproj / config.REPROJECTION_SCALE_PX),
        "condition":    max(0.0, 1.0 - np.log10(max(1.0, result.condition_number)) / 6.0),
        "perspective":  max(0.0, 1.0 - distortion),
        "inliers":      result.inlier_ratio,
        "round_trip":   1.0 if round_trip <= config.ROUND_TRIP_TOLERANCE_PX else 0.0,
    }
    overall = float(np.clip(
        sum(config.QUALITY_WEIGHTS[k] * s for k, s in scores.items()), 0.0, 1.0))

    quality = CalibrationQuality(
        reprojection_error_px=reproj,
        round_trip_error_px=round_trip,
        condition_number=result.condition_number,
        perspective_distortion=distortion,
        inlier_ratio=result.inlier_ratio,
        overall_confidence=overall,
        grade=quality_grade(overall),
    )
    quality.recommendations = _recommendations(quality, len(img))
    return quality


def perspective_distortion(
    H: np.ndarray,
    img: np.ndarray,
    image_size: Optional[Tuple[int, int]] = None,
) -> float:
    """
    Coefficient of variation of the horizontal metres-per-pixel scale at
    four sample positions. 0 means an orthographic (top-down) view.
    """
    if image_size is not None:
        x0, y0 = 0.0, 0.0
        x1, y1 = float(image_size[0]), float(image_size[1])
    else:
        x0, y0 = img.min(axis=0)
        x1, y1 = img.max(axis=0)

    lo, hi = config.QUALITY_TEST_FRACTIONS
    d = config.QUALITY_TEST_DISTANCE_PX
    scales = []
    for fx in (lo, hi):
        for fy in (lo, hi):
            px = x0 + (x1 - x0) * fx
            py = y0 + (y1 - y0) * fy
            w = apply_homography(H, np.array([[px - d, py], [px + d, py]]))
            dist = np.linalg.norm(w[1] - w[0])
            if np.isfinite(dist):
                scales.append(dist / (2 * d))

    if len(scales) < 2:
        return 1.0
    mean = float(np.mean(scales))
    return float(np.std(scales) / mean) if mean > 0 else 1.0


def quality_grade(confidence: float) -> str:
    if confidence >= config.GRADE_EXCELLENT:
        return "excellent"
    if confidence >= config.GRADE_GOOD:
        return "good"
    if confidence >= config.GRADE_FAIR:
        return "fair"
    return "poor"


def _mean_finite(values: np.ndarray) -> float:
    finite = values[np.isfinite(values)]
    return float(finite.mean()) if len(finite) else float("inf")


def _recommendations(q: CalibrationQuality, n_points: int) -> List[str]:
    recs: List[str] = []
    if q.reprojection_error_px > config.REPROJECTION_WARN_PX:
        recs.append("High reprojection error. Check that each point was clicked "
                    "exactly on the matching court line intersection.")
    if q.condition_number > config.CONDITION_WARN:
        recs.append("Calibration is numerically unstable. Spread the points "
                    "across more of the court.")
    if q.perspective_distortion > config.DISTORTION_WARN:
        recs.append("Strong perspective distortion. Add points on both the near "
                    "and the far half of the court.")
    if q.inlier_ratio < 1.0:
        rejected = n_points - int(round(q.inlier_ratio * n_points))
        recs.append(f"{rejected} point(s) were rejected as outliers. "
                    "Undo and re-click them.")
    if not q.round_trip_ok:
        recs.append("Image to court round trip is inconsistent. Recalibrate.")
    if not recs:
        recs.append("Calibration quality is good. No specific improvements needed.")
    return recs
