"""
Calibration store.

Saves a CalibrationSession (court type, mode, clicked points, state) as JSON
and restores it. The homography itself is not trusted from disk: loading
re-runs the estimator on the saved points, then re-confirms if the saved
session was confirmed.
"""
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Optional, Union

from ..models.calibration import CalibrationPoint
from .homography import HomographyEstimator
from .session import CalibrationSession, SessionState

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def session_to_dict(session: CalibrationSession) -> dict:
    result = session.confirmed_result or session.result
    return {
        "version":    FORMAT_VERSION,
        "court_type": session.court_type,
        "mode":       session.mode.id,
        "state":      session.state.value,
        "image_size": list(session.image_size) if session.image_size else None,
        "points":     [p.to_dict() for p in session.collected_points],
        "homography": result.to_dict() if result else None,
        "quality":    session.quality.to_dict() if session.quality else None,
    }


def session_from_dict(
    data: dict,
    estimator: Optional[HomographyEstimator] = None,
) -> CalibrationSession:
    image_size = data.get("image_size")
    session = CalibrationSession(
        court_type=data["court_type"],
        mode_id=data["mode"],
        estimator=estimator,
        image_size=tuple(image_size) if image_size else None,
    )
    for raw in data.get("points", []):
        point = CalibrationPoint.from_dict(raw)
        outcome = session.add_point(point.id, point.image, point.confidence)
        if not outcome:
            raise ValueError(f"Invalid saved point '{point.id}': {outcome.error.message}")

    state = SessionState(data.get("state", SessionState.COLLECTING.value))
    if state in (SessionState.CALIBRATED, SessionState.CONFIRMED):
        outcome = session.calibrate()
        if not outcome:
            logger.warning("Saved calibration no longer fits: %s", outcome.error.message)
        elif state is SessionState.CONFIRMED:
            session.confirm()
    return session


def save_calibration(session: CalibrationSession, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(session_to_dict(session), f, indent=2)
    logger.info("Saved %s calibration (%d points, %s) → %s",
                session.court_type, len(session.collected_points),
                session.state.value, path)
    return path


def load_calibration(
    path: Union[str, Path],
    estimator: Optional[HomographyEstimator] = None,
) -> CalibrationSession:
    """
    Raises:
        FileNotFoundError: path does not exist.
        ValueError:        malformed file or points that do not fit the mode.
        CalibrationError:  unknown court type or mode.
    """
    path = Path(path)
    with open(path) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"{path} is not valid JSON: {e}") from e
    try:
        session = session_from_dict(data, estimator)
    except KeyError as e:
        raise ValueError(f"{path} is missing field {e}") from e
    logger.info("Loaded %s calibration ← %s (%s)",
                session.court_type, path, session.state.value)
    return session
