"""
Calibration session – collects clicked court points and drives the estimator.

States:

    EMPTY ──add──▶ COLLECTING ──calibrate──▶ CALIBRATED ──confirm──▶ CONFIRMED
      ▲               │  ▲                       │
      └─reset/mode────┘  └────add / undo─────────┘
      (reset works from every state)

Every operation returns an `Outcome`; calibration errors are reported in it
and recorded as `last_error`, never raised, so the session stays usable.

Background estimation: `begin_calibration()` snapshots the points and tags
the job with the current generation. Any later change to the point list,
a mode switch or a reset bumps the generation, and `complete_calibration()`
drops results from older jobs.
"""
from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque, List, Optional, Tuple
import logging

from ..errors import (
    CalibrationError, DuplicatePoint, InsufficientPoints,
    InvalidPoint, InvalidTransition, UnknownPointId,
)
from ..models.calibration import (
    CalibrationMode, CalibrationPoint, CalibrationSettings, HomographyResult,
)
from ..models.geometry import Point2D
from .homography import HomographyEstimator, Pair
from .modes import get_mode
from .quality import CalibrationQuality, assess
from .template import court_dimensions, reference_point_for
from .. import config

logger = logging.getLogger(__name__)


class SessionState(Enum):
    EMPTY      = "empty"
    COLLECTING = "collecting"
    CALIBRATED = "calibrated"
    CONFIRMED  = "confirmed"


@dataclass(frozen=True)
class Outcome:
    ok:    bool
    error: Optional[CalibrationError] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> "Outcome":
        return cls(True)

    @classmethod
    def failure(cls, error: CalibrationError) -> "Outcome":
        return cls(False, error)


@dataclass(frozen=True)
class CalibrationJob:
    """Immutable snapshot handed to a (possibly background) estimator."""
    generation: int
    court_type: str
    mode_id:    str
    point_ids:  Tuple[str, ...]
    pairs:      Tuple[Pair, ...]


Listener = Callable[["CalibrationSession"], None]


class CalibrationSession:
    """Stateful collector of named calibration points for one court view."""

    def __init__(
        self,
        court_type: str = config.DEFAULT_COURT_TYPE,
        mode_id:    str = config.DEFAULT_CALIBRATION_MODE,
        estimator:  Optional[HomographyEstimator] = None,
        image_size: Optional[Tuple[int, int]] = None,
    ):
        court_dimensions(court_type)                # raises UnknownPointId
        self.court_type = court_type
        self.image_size = image_size
        self._estimator = estimator or HomographyEstimator()
        self._mode: CalibrationMode = get_mode(mode_id)

        self._points:     List[CalibrationPoint]       = []
        self._state:      SessionState                 = SessionState.EMPTY
        self._result:     Optional[HomographyResult]   = None
        self._confirmed:  Optional[HomographyResult]   = None
        self._quality:    Optional[CalibrationQuality] = None
        self._last_error: Optional[CalibrationError]   = None
        self._messages:   Deque[str]                   = deque(maxlen=50)
        self._generation: int                          = 0
        self._listeners:  List[Listener]               = []

    # ── Read-only view ─────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def mode(self) -> CalibrationMode:
        return self._mode

    @property
    def collected_points(self) -> Tuple[CalibrationPoint, ...]:
        return tuple(self._points)

    @property
    def collected_ids(self) -> Tuple[str, ...]:
        return tuple(p.id for p in self._points)

    @property
    def result(self) -> Optional[HomographyResult]:
        return self._result

    @property
    def confirmed_result(self) -> Optional[HomographyResult]:
        return self._confirmed

    @property
    def quality(self) -> Optional[CalibrationQuality]:
        return self._quality

    @property
    def last_error(self) -> Optional[CalibrationError]:
        return self._last_error

    @property
    def messages(self) -> Tuple[str, ...]:
        return tuple(self._messages)

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(session)` after every state change. Returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # ── Point collection ───────────────────────────────────────────────────────

    def set_mode(self, mode_id: str) -> Outcome:
        try:
            mode = get_mode(mode_id)
        except CalibrationError as e:
            return self._fail(e)
        self._clear()
        self._mode = mode
        self._say(f"Mode set to {mode.name}")
        self._notify()
        return Outcome.success()

    def add_point(self, point_id: str, image: Point2D, confidence: float = 1.0) -> Outcome:
        if self._state is SessionState.CONFIRMED:
            return self._fail(InvalidTransition(
                "Calibration is confirmed. Reset before adding points."))
        if point_id not in self._mode:
            return self._fail(UnknownPointId(
                f"'{point_id}' is not part of the {self._mode.name} mode"))
        if point_id in self.collected_ids:
            return self._fail(DuplicatePoint(f"'{point_id}' has already been placed"))
        try:
            reference_point_for(self.court_type, point_id)
        except CalibrationError as e:
            return self._fail(e)

        try:
            point = CalibrationPoint(point_id, image, confidence)
        except ValueError as e:
            return self._fail(InvalidPoint(str(e)))

        self._points.append(point)
        self._state = SessionState.COLLECTING
        self._generation += 1
        self._last_error = None
        self._say(f"Placed {point_id} ({len(self._points)}/{self._mode.min_points})")
        self._notify()
        return Outcome.success()

    def undo_last_point(self) -> Outcome:
        if self._state is SessionState.CONFIRMED:
            return self._fail(InvalidTransition(
                "Calibration is confirmed. Reset before removing points."))
        if not self._points:
            return self._fail(InvalidTransition("No point to undo"))

        removed = self._points.pop()
        self._generation += 1
        if len(self._points) < self._mode.min_points:
            self._result  = None
            self._quality = None
        self._state = SessionState.COLLECTING if self._points else SessionState.EMPTY
        self._say(f"Removed {removed.id}")
        self._notify()
        return Outcome.success()

    def suggest_next_point(self) -> Optional[str]:
        """First missing required point, else first missing optional one."""
        collected = set(self.collected_ids)
        for point_id in self._mode.required_points:
            if point_id not in collected:
                return point_id
        for point_id in self._mode.optional_points:
            if point_id not in collected:
                return point_id
        return None

    def can_calibrate(self) -> bool:
        return len(self._points) >= self._mode.min_points

    # ── Calibration ────────────────────────────────────────────────────────────

    def pairs(self) -> List[Pair]:
        """Collected clicks paired with their court positions."""
        return [(p.image, reference_point_for(self.court_type, p.id))
                for p in self._points]

    def begin_calibration(self) -> CalibrationJob:
        return CalibrationJob(
            generation=self._generation,
            court_type=self.court_type,
            mode_id=self._mode.id,
            point_ids=self.collected_ids,
            pairs=tuple(self.pairs()),
        )

    def complete_calibration(
        self,
        job: CalibrationJob,
        result: Optional[HomographyResult] = None,
        error: Optional[CalibrationError] = None,
    ) -> Outcome:
        """Apply the outcome of `job`, unless the session changed since it began."""
        if job.generation != self._generation:
            logger.warning("Discarding calibration for generation %d (session is at %d)",
                           job.generation, self._generation)
            return Outcome.failure(InvalidTransition(
                "Calibration result is out of date. The points changed meanwhile."))
        if self._state is SessionState.CONFIRMED:
            return self._fail(InvalidTransition(
                "Calibration is confirmed. Reset before recalibrating."))

        if error is not None or result is None:
            error = error or InsufficientPoints("Calibration produced no result")
            self._result  = None
            self._quality = None
            self._state = SessionState.COLLECTING if self._points else SessionState.EMPTY
            logger.info("Calibration failed: %s", error.message)
            return self._fail(error)

        self._result  = result
        self._quality = assess(result, job.pairs, self.image_size)
        self._state   = SessionState.CALIBRATED
        self._last_error = None
        self._say(
            f"Calibrated with {len(result.inlier_indices)}/{len(job.pairs)} points: "
            f"error {result.reprojection_error * 100:.1f} cm, "
            f"confidence {result.confidence:.0%} ({self._quality.grade})")
        self._notify()
        return Outcome.success()

    def calibrate(self) -> Outcome:
        if self._state is SessionState.CONFIRMED:
            return self._fail(InvalidTransition(
                "Calibration is confirmed. Reset before recalibrating."))
        if not self.can_calibrate():
            return self._fail(InsufficientPoints(
                f"Place at least {self._mode.min_points} points "
                f"({len(self._points)} placed)"))

        job = self.begin_calibration()
        try:
            result = self._estimator.estimate(job.pairs)
        except CalibrationError as e:
            return self.complete_calibration(job, error=e)
        return self.complete_calibration(job, result=result)

    def confirm(self) -> Outcome:
        if self._state is not SessionState.CALIBRATED:
            return self._fail(InvalidTransition(
                f"Cannot confirm from state '{self._state.value}'. Calibrate first."))
        self._confirmed = self._result
        self._state = SessionState.CONFIRMED
        self._say("Calibration confirmed")
        self._notify()
        return Outcome.success()

    def reset(self) -> Outcome:
        self._clear()
        self._say("Calibration reset")
        self._notify()
        return Outcome.success()

    def apply_to(self, settings: CalibrationSettings,
                 enable: Optional[bool] = None) -> None:
        """Hand the confirmed homography (or None) to the speed settings."""
        settings.court_dimensions = court_dimensions(self.court_type)
        settings.attach_homography(self._confirmed, enable=enable)

    # ── Internals ──────────────────────────────────────────────────────────────

    def _clear(self) -> None:
        self._points.clear()
        self._result     = None
        self._confirmed  = None
        self._quality    = None
        self._last_error = None
        self._messages.clear()
        self._state = SessionState.EMPTY
        self._generation += 1

    def _fail(self, error: CalibrationError) -> Outcome:
        self._last_error = error
        self._say(error.message)
        self._notify()
        return Outcome.failure(error)

    def _say(self, message: str) -> None:
        logger.debug("[%s] %s", self._mode.id, message)
        self._messages.append(message)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
