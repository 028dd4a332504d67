"""
Court position heatmap.

Accumulates a player's ground position (feet projected through the court
homography) into a world-space grid, with zone timing and distance covered.
Only the last `max_samples` positions are kept; older ones are removed from
the grid as they fall out.

Grid rows run from the far baseline (row 0, top of the image) to the near
baseline, columns from the left sideline to the right one.
"""
from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Tuple
import logging
import cv2
import numpy as np

from ..models.calibration import HomographyResult
from ..models.geometry import CoordinateSpace, Point2D, Point3D
from ..models.landmarks import LANDMARK_INDEX, LandmarkFrame
from ..court.template import court_dimensions
from .. import config

logger = logging.getLogger(__name__)

GROUND_LANDMARKS = tuple(LANDMARK_INDEX[n] for n in (
    "left_ankle", "right_ankle", "left_foot_index", "right_foot_index"))

# depth is |z| / (length / 2): 0 at the net, 1 at the baseline
_DEPTH_BANDS = (("front", 0.0, 0.5), ("mid", 0.5, 0.7), ("back", 0.7, 1.0))
_SIDE_BANDS  = (("left", 0.0, 0.33), ("center", 0.33, 0.67), ("right", 0.67, 1.0))
ZONES = tuple(f"{d}-{s}" for d, _, _ in _DEPTH_BANDS for s, _, _ in _SIDE_BANDS)
OUT_OF_BOUNDS = "out-of-bounds"


@dataclass(frozen=True)
class PositionSample:
    timestamp: float
    x:         float
    z:         float
    cell:      Tuple[int, int]     # (row, col)
    zone:      str


class PositionHeatmap:
    """
    Args:
        court_type:     sets the grid extent.
        resolution:     cells per metre.
        smoothing:      gaussian radius in cells (0 disables smoothing).
        min_confidence: positions below this confidence are ignored.
        max_samples:    bounded sample history.
    """

    def __init__(
        self,
        court_type:     str   = config.DEFAULT_COURT_TYPE,
        resolution:     int   = config.HEATMAP_RESOLUTION,
        smoothing:      int   = config.HEATMAP_SMOOTHING,
        min_confidence: float = config.HEATMAP_MIN_CONFIDENCE,
        max_samples:    int   = config.HEATMAP_MAX_SAMPLES,
    ):
        if resolution < 1:
            raise ValueError(f"resolution must be >= 1, got {resolution}")
        dims = court_dimensions(court_type)
        self._width  = dims.width
        self._length = dims.length
        self._res    = resolution
        self.smoothing      = max(0, int(smoothing))
        self.min_confidence = min_confidence

        self._gw = int(np.ceil(dims.width * resolution))
        self._gh = int(np.ceil(dims.length * resolution))
        self._grid = np.zeros((self._gh, self._gw), np.float32)
        self._samples: Deque[PositionSample] = deque(maxlen=max_samples)
        self._zone_time: Dict[str, float] = {}
        self.total_distance = 0.0
        self.reset()

    # ── Input ──────────────────────────────────────────────────────────────────

    def add_position(self, position: Point3D, timestamp: float,
                     confidence: float = 1.0) -> bool:
        """Add one world position (metres). Returns False if it was ignored."""
        if position.space is not CoordinateSpace.WORLD:
            raise ValueError(f"Heatmap positions must be world metres, got {position.space.value}")
        if confidence < self.min_confidence:
            return False
        if not (np.isfinite(position.x) and np.isfinite(position.z)):
            logger.debug("Skipping non-finite position at t=%.3f", timestamp)
            return False

        zone = self.zone_for(position.x, position.z)
        if self._samples:
            last = self._samples[-1]
            self.total_distance += float(np.hypot(position.x - last.x, position.z - last.z))
            dt = timestamp - last.timestamp
            if dt > 0:
                self._zone_time[last.zone] = self._zone_time.get(last.zone, 0.0) + dt

        if len(self._samples) == self._samples.maxlen:
            evicted = self._samples[0]
            self._grid[evicted.cell] -= 1.0

        sample = PositionSample(timestamp, position.x, position.z,
                                self._cell(position.x, position.z), zone)
        self._samples.append(sample)
        self._grid[sample.cell] += 1.0
        return True

    def add_frame(self, frame: LandmarkFrame, homography: HomographyResult) -> bool:
        """Project the visible ankles / toes onto the court and add their midpoint."""
        visibility = frame.visibility()
        used = [i for i in GROUND_LANDMARKS if visibility[i] >= config.VISIBILITY_THRESHOLD]
        if not used:
            return False
        px, py, _ = frame.pixel_positions()[used].mean(axis=0)
        try:
            world = homography.image_to_world(Point2D(float(px), float(py)))
        except ValueError:
            return False
        return self.add_position(world, frame.timestamp, float(visibility[used].mean()))

    def reset(self) -> None:
        self._grid[:] = 0.0
        self._samples.clear()
        self._zone_time = {z: 0.0 for z in ZONES + (OUT_OF_BOUNDS,)}
        self.total_distance = 0.0

    # ── Queries ────────────────────────────────────────────────────────────────

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self._gh, self._gw)

    def zone_for(self, x: float, z: float) -> str:
        side  = (x + self._width / 2) / self._width
        depth = abs(z) / (self._length / 2)
        if not (0.0 <= side <= 1.0 and depth <= 1.0):
            return OUT_OF_BOUNDS
        d_name = next(n for n, lo, hi in _DEPTH_BANDS if depth <= hi)
        s_name = next(n for n, lo, hi in _SIDE_BANDS if side <= hi)
        return f"{d_name}-{s_name}"

    def zone_times(self) -> Dict[str, float]:
        return dict(self._zone_time)

    def most_visited_zone(self) -> Optional[str]:
        best = max(self._zone_time.items(), key=lambda kv: kv[1])
        return best[0] if best[1] > 0 else None

    def grid(self, smoothed: bool = True) -> np.ndarray:
        if not smoothed or self.smoothing == 0:
            return self._grid.copy()
        k = 2 * self.smoothing + 1
        return cv2.GaussianBlur(self._grid, (k, k), sigmaX=self.smoothing,
                                borderType=cv2.BORDER_CONSTANT)

    def to_image(self, size: Optional[Tuple[int, int]] = None) -> np.ndarray:
        """Colour (BGR) heatmap; `size` is (width, height) in pixels."""
        norm = cv2.normalize(self.grid(), None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
        coloured = cv2.applyColorMap(norm, cv2.COLORMAP_JET)
        if size is not None:
            coloured = cv2.resize(coloured, size, interpolation=cv2.INTER_NEAREST)
        return coloured

    def summary(self) -> dict:
        return {
            "samples":           self.sample_count,
            "total_distance_m":  round(self.total_distance, 2),
            "most_visited_zone": self.most_visited_zone(),
            "zone_time_s":       {z: round(t, 3) for z, t in self._zone_time.items()},
        }

    # ── Internals ──────────────────────────────────────────────────────────────

    def _cell(self, x: float, z: float) -> Tuple[int, int]:
        col = int(np.clip((x + self._width / 2) * self._res, 0, self._gw - 1))
        row = int(np.clip((self._length / 2 - z) * self._res, 0, self._gh - 1))
        return (row, col)
