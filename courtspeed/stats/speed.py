"""
Per-frame centre-of-mass speed estimation.

For each LandmarkFrame:

  1. reject frames with too few visible landmarks
  2. scale raw landmark coordinates (player height × court metres-per-pixel)
  3. centre of mass via the anthropometric model
  4. raw velocity = ΔCoM / Δt against the previous accepted frame
  5. output velocity = mean of the last few raw velocities
  6. speed, horizontal speed and per-landmark speeds, clamped to max_speed

History is a fixed-size ring buffer; nothing older than `history_size`
frames is kept.
"""
from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional, Tuple
import logging
import numpy as np

from ..errors import ErrorKind
from ..models.calibration import CalibrationSettings
from ..models.geometry import CoordinateSpace, Point3D
from ..models.landmarks import POSE_LANDMARK_NAMES, LandmarkFrame
from ..models.metrics import SpeedMetrics
from .anthropometry import AnthropometricModel
from .. import config

logger = logging.getLogger(__name__)

# invalid_reason values
INSUFFICIENT_LANDMARKS = "insufficient_landmarks"
NO_VISIBLE_SEGMENTS    = "no_visible_segments"
INSUFFICIENT_HISTORY   = "insufficient_history"
MISSING_IMAGE_SIZE     = "missing_image_size"
STALE_FRAME            = ErrorKind.STALE_FRAME.value


@dataclass(frozen=True)
class HistoryEntry:
    timestamp:      float
    center_of_mass: Point3D
    positions:      np.ndarray      # (33, 3), scaled
    visible:        np.ndarray      # (33,) bool


class SpeedEstimator:
    """
    Turns a stream of pose frames into SpeedMetrics.

    Args:
        settings:        active calibration (height / court scaling).
        model:           anthropometric model used for the CoM.
        history_size:    frames kept for differencing.
        velocity_window: raw velocity samples averaged per output.
        max_speed:       clamp for every speed output.
    """

    def __init__(
        self,
        settings:        Optional[CalibrationSettings] = None,
        model:           Optional[AnthropometricModel] = None,
        history_size:    int   = config.HISTORY_SIZE,
        velocity_window: int   = config.VELOCITY_WINDOW,
        max_speed:       float = config.MAX_SPEED_MS,
        min_visible:     int   = config.MIN_VISIBLE_LANDMARKS,
    ):
        if history_size < 2:
            raise ValueError(f"history_size must be >= 2, got {history_size}")
        if velocity_window < 1:
            raise ValueError(f"velocity_window must be >= 1, got {velocity_window}")
        if max_speed <= 0:
            raise ValueError(f"max_speed must be > 0, got {max_speed}")

        self.settings    = settings or CalibrationSettings()
        self.model       = model or AnthropometricModel()
        self.max_speed   = max_speed
        self.min_visible = min_visible

        self._history:    Deque[HistoryEntry] = deque(maxlen=history_size)
        self._velocities: Deque[np.ndarray]   = deque(maxlen=velocity_window)
        self._speed_total: float = 0.0
        self._samples:     int   = 0

    # ── Public API ─────────────────────────────────────────────────────────────

    @property
    def history(self) -> Tuple[Tuple[float, Point3D], ...]:
        return tuple((e.timestamp, e.center_of_mass) for e in self._history)

    @property
    def average_speed(self) -> float:
        return self._speed_total / self._samples if self._samples else 0.0

    def set_calibration(self, settings: CalibrationSettings) -> None:
        """Switch calibration. History is dropped because units change."""
        self.settings = settings
        self.reset()

    def reset(self) -> None:
        self._history.clear()
        self._velocities.clear()
        self._speed_total = 0.0
        self._samples     = 0

    def scaling_factor(self, frame: LandmarkFrame) -> float:
        height = 1.0
        if self.settings.use_height_calibration:
            height = self.settings.player_height / config.REFERENCE_HEIGHT_CM
        court = self._court_scale(frame)
        return height * (court if court is not None else 1.0)

    def update(self, frame: LandmarkFrame) -> SpeedMetrics:
        t = frame.timestamp
        visible = frame.visible_mask(self.model.visibility)
        if int(visible.sum()) < self.min_visible:
            logger.debug("t=%.3f: %d landmarks visible, need %d",
                         t, int(visible.sum()), self.min_visible)
            return SpeedMetrics.invalid(INSUFFICIENT_LANDMARKS, t)

        if (self._court_scale(frame) is not None
                and frame.space is CoordinateSpace.NORMALIZED and frame.image_size is None):
            logger.warning("t=%.3f: normalised frame has no image_size for court scaling", t)
            return SpeedMetrics.invalid(MISSING_IMAGE_SIZE, t)

        scale, positions, space = self._scaled_positions(frame)
        com = self.model.center_of_mass(frame, positions, space)
        if com is None:
            return SpeedMetrics.invalid(NO_VISIBLE_SEGMENTS, t)

        if self._history and self._history[-1].center_of_mass.space is not space:
            logger.warning("Coordinate space changed to %s; clearing history", space.value)
            self._history.clear()
            self._velocities.clear()

        entry = HistoryEntry(t, com, positions, visible)
        if not self._history:
            self._history.append(entry)
            return SpeedMetrics.invalid(INSUFFICIENT_HISTORY, t)

        last = self._history[-1]
        dt = t - last.timestamp
        if dt <= 0:
            logger.warning("Skipping stale frame: t=%.4f after t=%.4f", t, last.timestamp)
            return SpeedMetrics.invalid(STALE_FRAME, t)

        self._velocities.append((com - last.center_of_mass).as_array() / dt)
        velocity = np.mean(self._velocities, axis=0)

        clamped = False
        speed = float(np.linalg.norm(velocity))
        if speed > self.max_speed:
            velocity = velocity * (self.max_speed / speed)
            speed    = self.max_speed
            clamped  = True

        per_landmark, landmarks_clamped = self._landmark_speeds(entry, last, dt)
        self._history.append(entry)
        self._speed_total += speed
        self._samples     += 1

        return SpeedMetrics(
            center_of_mass=com,
            velocity=Point3D.from_array(velocity, space),
            speed=speed,
            general_moving_speed=float(np.hypot(velocity[0], velocity[2])),
            per_landmark_speed=per_landmark,
            scaling_factor=scale,
            is_valid=True,
            center_of_gravity_height=self.model.center_of_gravity_height(
                frame, positions, com),
            average_speed=self.average_speed,
            samples=self._samples,
            clamped=clamped or landmarks_clamped,
            timestamp=t,
        )

    # ── Internals ──────────────────────────────────────────────────────────────

    def _court_scale(self, frame: LandmarkFrame) -> Optional[float]:
        s = self.settings
        if not (s.use_court_calibration and s.homography is not None):
            return None
        if frame.space not in (CoordinateSpace.PIXEL, CoordinateSpace.NORMALIZED):
            return None
        return s.homography.meters_per_pixel

    def _scaled_positions(
        self, frame: LandmarkFrame,
    ) -> Tuple[float, np.ndarray, CoordinateSpace]:
        """Landmark positions multiplied by the active scaling factor."""
        scale = self.scaling_factor(frame)
        if self._court_scale(frame) is not None:
            return scale, frame.pixel_positions() * scale, CoordinateSpace.WORLD
        return scale, frame.positions() * scale, frame.space

    def _landmark_speeds(
        self, current: HistoryEntry, last: HistoryEntry, dt: float,
    ) -> Tuple[Dict[str, float], bool]:
        both = current.visible & last.visible
        deltas = np.linalg.norm(current.positions - last.positions, axis=1) / dt
        speeds: Dict[str, float] = {}
        clamped = False
        for i in np.flatnonzero(both):
            v = float(deltas[i])
            if v > self.max_speed:
                v, clamped = self.max_speed, True
            speeds[POSE_LANDMARK_NAMES[i]] = v
        return speeds, clamped
