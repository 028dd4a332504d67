"""
Homography estimation – image pixels → court metres.

Direct Linear Transform on Hartley-normalised coordinates, solved by SVD:
each correspondence (u, v) → (X, Z) contributes two rows

    [-u, -v, -1,  0,  0,  0, X·u, X·v, X]
    [ 0,  0,  0, -u, -v, -1, Z·u, Z·v, Z]

and H is the right singular vector of the smallest singular value.
With more than 4 correspondences, RANSAC picks the largest consistent set
(residuals measured in world metres) and H is refitted on it.

The estimator is stateless apart from its random generator; it never
holds references to the caller's point lists.
"""
from __future__ import annotations
from dataclasses import dataclass
from itertools import combinations
from typing import List, Optional, Sequence, Tuple
import logging
import numpy as np

from ..errors import DegenerateConfiguration, InsufficientPoints
from ..models.calibration import HomographyResult
from ..models.geometry import CoordinateSpace, Point2D, Point3D
from .. import config

logger = logging.getLogger(__name__)

Pair = Tuple[Point2D, Point3D]


@dataclass
class _DltSolution:
    matrix:          np.ndarray     # denormalised, image → world
    normalized:      np.ndarray     # Hn, in Hartley-normalised space
    singular_values: np.ndarray     # of the DLT system, padded to 9
    frobenius:       bool           # H[2][2] ≈ 0, scaled by Frobenius norm


# ── Module helpers ────────────────────────────────────────────────────────────

def apply_homography(H: np.ndarray, points: np.ndarray) -> np.ndarray:
    """
    Map (N, 2) points through H. Points sent to infinity (w ≈ 0) come back
    as inf so they never count as inliers.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    homog = np.hstack([pts, np.ones((len(pts), 1))]) @ np.asarray(H, dtype=np.float64).T
    w = homog[:, 2:3]
    out = np.full((len(pts), 2), np.inf)
    ok = np.abs(w[:, 0]) >= config.H22_EPSILON
    out[ok] = homog[ok, :2] / w[ok]
    return out


def hartley_normalize(points: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Similarity T moving the centroid to the origin with mean distance √2.
    Returns (T, normalised points).
    """
    centroid = points.mean(axis=0)
    mean_dist = np.linalg.norm(points - centroid, axis=1).mean()
    if mean_dist < config.H22_EPSILON:
        raise DegenerateConfiguration("All calibration points coincide")
    s = np.sqrt(2.0) / mean_dist
    T = np.array([
        [s,   0.0, -s * centroid[0]],
        [0.0, s,   -s * centroid[1]],
        [0.0, 0.0, 1.0],
    ])
    return T, (points - centroid) * s


def _check_duplicates(normalized: np.ndarray, label: str) -> None:
    for i, j in combinations(range(len(normalized)), 2):
        if np.linalg.norm(normalized[i] - normalized[j]) < config.COLLINEARITY_TOLERANCE:
            raise DegenerateConfiguration(
                f"Two calibration points share the same {label} position "
                f"(#{i + 1} and #{j + 1})")


def _all_collinear(normalized: np.ndarray) -> bool:
    centred = normalized - normalized.mean(axis=0)
    sv = np.linalg.svd(centred, compute_uv=False)
    return sv[1] <= config.COLLINEARITY_TOLERANCE * max(sv[0], 1.0)


def _has_collinear_triple(normalized: np.ndarray) -> bool:
    for a, b, c in combinations(range(len(normalized)), 3):
        ab = normalized[b] - normalized[a]
        ac = normalized[c] - normalized[a]
        if abs(ab[0] * ac[1] - ab[1] * ac[0]) < config.COLLINEARITY_TOLERANCE:
            return True
    return False


def _dlt_system(img: np.ndarray, world: np.ndarray) -> np.ndarray:
    n = len(img)
    A = np.zeros((2 * n, 9))
    u, v = img[:, 0], img[:, 1]
    X, Z = world[:, 0], world[:, 1]
    A[0::2, 0] = -u
    A[0::2, 1] = -v
    A[0::2, 2] = -1.0
    A[0::2, 6] = X * u
    A[0::2, 7] = X * v
    A[0::2, 8] = X
    A[1::2, 3] = -u
    A[1::2, 4] = -v
    A[1::2, 5] = -1.0
    A[1::2, 6] = Z * u
    A[1::2, 7] = Z * v
    A[1::2, 8] = Z
    return A


def _solve_dlt(img: np.ndarray, world: np.ndarray) -> _DltSolution:
    """Normalised DLT on ≥ 4 correspondences. Raises DegenerateConfiguration."""
    T_img, img_n     = hartley_normalize(img)
    T_world, world_n = hartley_normalize(world)

    A = _dlt_system(img_n, world_n)
    _, s, Vt = np.linalg.svd(A)
    padded = np.zeros(9)
    padded[:len(s)] = s
    if padded[7] <= config.DEGENERACY_TOLERANCE * padded[0]:
        raise DegenerateConfiguration(
            "Calibration points do not determine a unique homography "
            "(collinear or repeated points)")

    Hn = Vt[-1].reshape(3, 3)
    H = np.linalg.inv(T_world) @ Hn @ T_img
    H = H / np.linalg.norm(H)

    frobenius = bool(abs(H[2, 2]) < config.H22_EPSILON)
    if not frobenius:
        H = H / H[2, 2]
    return _DltSolution(matrix=H, normalized=Hn, singular_values=padded,
                        frobenius=frobenius)


def _normalized_inverse(H: np.ndarray) -> np.ndarray:
    try:
        inv = np.linalg.inv(H)
    except np.linalg.LinAlgError:
        raise DegenerateConfiguration("Homography is singular") from None
    if abs(inv[2, 2]) >= config.H22_EPSILON:
        return inv / inv[2, 2]
    return inv / np.linalg.norm(inv)


def _residuals(H: np.ndarray, img: np.ndarray, world: np.ndarray) -> np.ndarray:
    """World-space distance (metres) between H·image and the court point."""
    return np.linalg.norm(apply_homography(H, img) - world, axis=1)


# ── Estimator ─────────────────────────────────────────────────────────────────

class HomographyEstimator:
    """
    Fits the image → court homography from (Point2D, Point3D) pairs.

    Args:
        ransac_threshold:  inlier residual in world metres.
        max_iterations:    RANSAC trial budget.
        early_exit_ratio:  stop sampling once this inlier ratio is reached.
        seed:              seed for reproducible sampling.
    """

    def __init__(
        self,
        ransac_threshold: float = config.RANSAC_THRESHOLD_M,
        max_iterations:   int   = config.RANSAC_ITERATIONS,
        early_exit_ratio: float = config.RANSAC_EARLY_EXIT_RATIO,
        seed:             Optional[int] = None,
    ):
        if ransac_threshold <= 0:
            raise ValueError(f"ransac_threshold must be > 0, got {ransac_threshold}")
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        self.ransac_threshold = ransac_threshold
        self.max_iterations   = max_iterations
        self.early_exit_ratio = early_exit_ratio
        self._rng = np.random.default_rng(seed)

    # ── Public API ─────────────────────────────────────────────────────────────

    def estimate(self, pairs: Sequence[Pair]) -> HomographyResult:
        """
        Raises:
            InsufficientPoints:      fewer than 4 pairs.
            DegenerateConfiguration: duplicated / collinear points or a
                                     singular solution.
        """
        if len(pairs) < config.MIN_CALIBRATION_POINTS:
            raise InsufficientPoints(
                f"Need at least {config.MIN_CALIBRATION_POINTS} calibration points, "
                f"got {len(pairs)}")

        img, world = pairs_to_arrays(pairs)
        n = len(img)

        _, img_n   = hartley_normalize(img)
        _, world_n = hartley_normalize(world)
        _check_duplicates(img_n, "image")
        _check_duplicates(world_n, "court")
        if _all_collinear(img_n) or _all_collinear(world_n):
            raise DegenerateConfiguration("Calibration points are collinear")
        if n == config.MIN_CALIBRATION_POINTS and (
                _has_collinear_triple(img_n) or _has_collinear_triple(world_n)):
            raise DegenerateConfiguration(
                "Three of the four calibration points are collinear")

        if n > config.MIN_CALIBRATION_POINTS:
            inliers = self._ransac(img, world, img_n, world_n)
        else:
            inliers = np.arange(n)

        fit = _solve_dlt(img[inliers], world[inliers])
        result = self._build_result(fit, img, world, inliers)
        logger.info(
            "Homography from %d/%d points: error=%.4f m, confidence=%.3f",
            len(inliers), n, result.reprojection_error, result.confidence)
        return result

    # ── Internals ──────────────────────────────────────────────────────────────

    def _ransac(
        self,
        img: np.ndarray, world: np.ndarray,
        img_n: np.ndarray, world_n: np.ndarray,
    ) -> np.ndarray:
        n = len(img)
        best_mask:  Optional[np.ndarray] = None
        best_count: int   = 0
        best_error: float = np.inf

        iterations = 0
        for iterations in range(1, self.max_iterations + 1):
            idx = self._rng.choice(n, config.MIN_CALIBRATION_POINTS, replace=False)
            if _has_collinear_triple(img_n[idx]) or _has_collinear_triple(world_n[idx]):
                continue
            try:
                candidate = _solve_dlt(img[idx], world[idx])
            except DegenerateConfiguration:
                continue

            residuals = _residuals(candidate.matrix, img, world)
            mask  = residuals < self.ransac_threshold
            count = int(mask.sum())
            error = float(residuals[mask].mean()) if count else np.inf
            if count > best_count or (count == best_count and error < best_error):
                best_mask, best_count, best_error = mask, count, error

            if best_count / n >= self.early_exit_ratio:
                break

        if best_mask is None or best_count < config.MIN_CALIBRATION_POINTS:
            raise DegenerateConfiguration(
                "No consistent set of 4 calibration points was found")

        logger.debug("RANSAC: %d/%d inliers after %d trials",
                     best_count, n, iterations)
        return np.flatnonzero(best_mask)

    def _build_result(
        self,
        fit: _DltSolution,
        img: np.ndarray,
        world: np.ndarray,
        inliers: np.ndarray,
    ) -> HomographyResult:
        H = fit.matrix
        H_inv = _normalized_inverse(H)

        condition = float(np.linalg.cond(fit.normalized))
        if not np.isfinite(condition) or condition > 1.0 / config.DEGENERACY_TOLERANCE:
            raise DegenerateConfiguration("Homography is singular")

        residuals    = _residuals(H, img, world)
        reprojection = float(residuals.mean())
        inlier_error = float(residuals[inliers].mean())
        inlier_ratio = len(inliers) / len(img)

        gap = fit.singular_values[7] / fit.singular_values[0]
        confidence = (
            inlier_ratio
            * _condition_score(condition)
            * min(1.0, gap / config.SPECTRAL_GAP_GOOD)
            * 1.0 / (1.0 + inlier_error / config.ERROR_SCALE_M)
        )
        if fit.frobenius:
            confidence *= config.FROBENIUS_PENALTY
        if not np.isfinite(confidence):
            confidence = 0.0

        return HomographyResult(
            matrix=H,
            inverse_matrix=H_inv,
            reprojection_error=reprojection,
            confidence=float(np.clip(confidence, 0.0, 1.0)),
            inlier_indices=tuple(int(i) for i in inliers),
            inlier_error=inlier_error,
            inlier_ratio=inlier_ratio,
            condition_number=condition,
            meters_per_pixel=_meters_per_pixel(H, img[inliers]),
            frobenius_normalized=fit.frobenius,
        )


def _condition_score(condition: float) -> float:
    """1.0 up to COND_GOOD, falling linearly in log10 to 0.0 at COND_BAD."""
    lo, hi = np.log10(config.COND_GOOD), np.log10(config.COND_BAD)
    return float(np.clip(1.0 - (np.log10(condition) - lo) / (hi - lo), 0.0, 1.0))


def _meters_per_pixel(H: np.ndarray, img: np.ndarray) -> float:
    """Mean world length of a one-pixel step at the centroid of the points."""
    c = img.mean(axis=0)
    steps_img = np.array([c, c + [1.0, 0.0], c + [0.0, 1.0]])
    mapped = apply_homography(H, steps_img)
    steps = np.linalg.norm(mapped[1:] - mapped[0], axis=1)
    if not np.all(np.isfinite(steps)):
        return 0.0
    return float(steps.mean())


def pairs_to_arrays(pairs: Sequence[Pair]) -> Tuple[np.ndarray, np.ndarray]:
    img: List[Tuple[float, float]] = []
    world: List[Tuple[float, float]] = []
    for image_pt, world_pt in pairs:
        if image_pt.space is not CoordinateSpace.PIXEL:
            raise ValueError(f"Image points must be in pixels, got {image_pt.space.value}")
        if world_pt.space is not CoordinateSpace.WORLD:
            raise ValueError(f"Court points must be in world metres, got {world_pt.space.value}")
        img.append((image_pt.x, image_pt.y))
        world.append((world_pt.x, world_pt.z))
    return np.array(img, dtype=np.float64), np.array(world, dtype=np.float64)
