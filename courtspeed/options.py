"""
Runtime analysis options.

Defaults come from `courtspeed.config`; a JSON file (or any mapping) can
override them. Invalid values raise ValueError naming the option.
"""
from __future__ import annotations
import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .court.modes import CALIBRATION_MODES
from .court.template import COURT_TYPES, court_dimensions
from .models.calibration import CalibrationSettings
from . import config


def _load_mapping(path: Path) -> dict:
    if path.suffix.lower() != ".json":
        raise ValueError(f"Unsupported options file type: {path} (expected .json)")
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("Options file must contain a JSON object at the top level")
    return data


def _as_bool(name: str, x: Any) -> bool:
    if isinstance(x, bool):
        return x
    if isinstance(x, str) and x.strip().lower() in {"true", "1", "yes", "on"}:
        return True
    if isinstance(x, str) and x.strip().lower() in {"false", "0", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean, got {x!r}")


@dataclass(frozen=True)
class AnalysisOptions:
    court_type:             str   = config.DEFAULT_COURT_TYPE
    calibration_mode:       str   = config.DEFAULT_CALIBRATION_MODE
    player_height:          float = config.DEFAULT_PLAYER_HEIGHT
    use_height_calibration: bool  = False
    use_court_calibration:  Optional[bool] = None   # None: on when a calibration is loaded
    smoothing_window:       int   = config.HISTORY_SIZE
    velocity_window:        int   = config.VELOCITY_WINDOW
    visibility_threshold:   float = config.VISIBILITY_THRESHOLD
    min_visible_landmarks:  int   = config.MIN_VISIBLE_LANDMARKS
    max_speed:              float = config.MAX_SPEED_MS
    ransac_threshold:       float = config.RANSAC_THRESHOLD_M
    ransac_iterations:      int   = config.RANSAC_ITERATIONS
    seed:                   Optional[int] = None

    def __post_init__(self):
        if self.court_type not in COURT_TYPES:
            raise ValueError(f"court_type must be one of {COURT_TYPES}, got {self.court_type!r}")
        if self.calibration_mode not in CALIBRATION_MODES:
            raise ValueError(
                f"calibration_mode must be one of {tuple(CALIBRATION_MODES)}, "
                f"got {self.calibration_mode!r}")
        if not config.MIN_PLAYER_HEIGHT <= self.player_height <= config.MAX_PLAYER_HEIGHT:
            raise ValueError(
                f"player_height must be within {config.MIN_PLAYER_HEIGHT:.0f}-"
                f"{config.MAX_PLAYER_HEIGHT:.0f} cm, got {self.player_height}")
        if self.smoothing_window < 2:
            raise ValueError(f"smoothing_window must be >= 2, got {self.smoothing_window}")
        if not 1 <= self.velocity_window <= self.smoothing_window:
            raise ValueError(
                f"velocity_window must be within 1-{self.smoothing_window}, "
                f"got {self.velocity_window}")
        if not 0.0 <= self.visibility_threshold <= 1.0:
            raise ValueError(
                f"visibility_threshold must be within 0-1, got {self.visibility_threshold}")
        if not 0 <= self.min_visible_landmarks <= config.NUM_LANDMARKS:
            raise ValueError(
                f"min_visible_landmarks must be within 0-{config.NUM_LANDMARKS}, "
                f"got {self.min_visible_landmarks}")
        if self.max_speed <= 0:
            raise ValueError(f"max_speed must be > 0, got {self.max_speed}")
        if self.ransac_threshold <= 0:
            raise ValueError(f"ransac_threshold must be > 0, got {self.ransac_threshold}")
        if self.ransac_iterations < 1:
            raise ValueError(f"ransac_iterations must be >= 1, got {self.ransac_iterations}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AnalysisOptions":
        known = {f.name: f for f in fields(cls)}
        unknown = set(data) - set(known)
        if unknown:
            raise ValueError(f"Unknown option(s): {', '.join(sorted(unknown))}")

        kwargs: dict = {}
        for name, value in data.items():
            if value is None and name not in ("seed", "use_court_calibration"):
                continue
            try:
                if name == "use_court_calibration":
                    kwargs[name] = None if value is None else _as_bool(name, value)
                elif name == "use_height_calibration":
                    kwargs[name] = _as_bool(name, value)
                elif name in ("court_type", "calibration_mode"):
                    kwargs[name] = str(value).strip().lower()
                elif name == "seed":
                    kwargs[name] = None if value is None else int(value)
                elif name in ("smoothing_window", "velocity_window",
                              "min_visible_landmarks", "ransac_iterations"):
                    kwargs[name] = int(value)
                else:
                    kwargs[name] = float(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Invalid value for {name}: {value!r} ({e})") from e
        return cls(**kwargs)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "AnalysisOptions":
        return cls.from_mapping(_load_mapping(Path(path)))

    def to_dict(self) -> dict:
        return asdict(self)

    def calibration_settings(self) -> CalibrationSettings:
        """Speed-estimation settings; the homography is attached separately."""
        return CalibrationSettings(
            use_height_calibration=self.use_height_calibration,
            player_height=self.player_height,
            use_court_calibration=bool(self.use_court_calibration),
            court_dimensions=court_dimensions(self.court_type),
        )
