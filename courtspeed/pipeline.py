"""
Analysis pipeline – replays a pose landmark sequence through the speed core.

  1. load a saved court calibration (optional) and attach its confirmed
     homography to the speed settings
  2. feed every landmark frame to the SpeedEstimator
  3. accumulate the feet position heatmap when a homography is available
  4. export JSON results (and the heatmap image)
"""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union
import logging
from tqdm import tqdm

from .court.calibration_store import load_calibration
from .court.homography import HomographyEstimator
from .court.session import CalibrationSession, SessionState
from .exporter import Exporter
from .landmark_loader import LandmarkLoader, SequenceMetadata
from .models.calibration import CalibrationSettings
from .models.geometry import CoordinateSpace
from .models.metrics import SpeedMetrics
from .options import AnalysisOptions
from .stats.anthropometry import AnthropometricModel
from .stats.heatmap import PositionHeatmap
from .stats.speed import SpeedEstimator
from . import config

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    metadata:    SequenceMetadata
    options:     AnalysisOptions
    settings:    CalibrationSettings
    frames:      List[SpeedMetrics] = field(default_factory=list)
    heatmap:     Optional[PositionHeatmap] = None
    calibration: Optional[dict] = None

    @property
    def valid_frames(self) -> List[SpeedMetrics]:
        return [m for m in self.frames if m.is_valid]

    def summary(self) -> dict:
        valid = self.valid_frames
        reasons: dict = {}
        for m in self.frames:
            if not m.is_valid:
                reasons[m.invalid_reason] = reasons.get(m.invalid_reason, 0) + 1
        return {
            "frames":          len(self.frames),
            "valid_frames":    len(valid),
            "invalid_reasons": reasons,
            "clamped_frames":  sum(1 for m in valid if m.clamped),
            "max_speed":       round(max((m.speed for m in valid), default=0.0), 3),
            "average_speed":   round(valid[-1].average_speed, 3) if valid else 0.0,
            "max_general_moving_speed": round(
                max((m.general_moving_speed for m in valid), default=0.0), 3),
        }

    def to_dict(self) -> dict:
        return {
            "metadata":    self.metadata.to_dict(),
            "options":     self.options.to_dict(),
            "settings":    self.settings.to_dict(),
            "calibration": self.calibration,
            "summary":     self.summary(),
            "heatmap":     self.heatmap.summary() if self.heatmap else None,
            "frames":      [m.to_dict() for m in self.frames],
        }


class Pipeline:
    """Landmark-sequence speed analysis with optional court calibration."""

    def __init__(
        self,
        options:          Optional[AnalysisOptions] = None,
        calibration_path: Optional[Union[str, Path]] = None,
        output_dir:       str  = config.RESULTS_DIR,
        save_json:        bool = True,
        save_heatmap:     bool = True,
        show_progress:    bool = True,
    ):
        self.options          = options or AnalysisOptions()
        self.calibration_path = Path(calibration_path) if calibration_path else None
        self.output_dir       = Path(output_dir)
        self.save_json        = save_json
        self.save_heatmap     = save_heatmap
        self.show_progress    = show_progress

    # ── Public entry point ────────────────────────────────────────────────────

    def process(
        self,
        landmarks_path: Union[str, Path],
        max_frames:     Optional[int] = None,
        skip:           int = 0,
        output_name:    Optional[str] = None,
    ) -> AnalysisResult:
        opts = self.options
        base = output_name or Path(landmarks_path).stem

        settings = opts.calibration_settings()
        session  = self._load_session()
        if session is not None:
            enable = True if opts.use_court_calibration is None else opts.use_court_calibration
            session.apply_to(settings, enable=enable)

        estimator = SpeedEstimator(
            settings=settings,
            model=AnthropometricModel(visibility=opts.visibility_threshold),
            history_size=opts.smoothing_window,
            velocity_window=opts.velocity_window,
            max_speed=opts.max_speed,
            min_visible=opts.min_visible_landmarks,
        )
        heatmap = None
        if settings.homography is not None:
            court_type = session.court_type if session is not None else opts.court_type
            heatmap = PositionHeatmap(court_type=court_type,
                                      min_confidence=opts.visibility_threshold)

        with LandmarkLoader(landmarks_path) as loader:
            meta = loader.metadata
            result = AnalysisResult(
                metadata=meta, options=opts, settings=settings, heatmap=heatmap,
                calibration=session_summary(session),
            )

            frames_iter = loader.frames(skip=skip, max_frames=max_frames)
            if self.show_progress:
                frames_iter = tqdm(frames_iter, total=meta.total_frames,
                                   desc="Analysing", unit="frames")

            for _, frame in frames_iter:
                result.frames.append(estimator.update(frame))
                if heatmap is not None and (
                        frame.image_size is not None or frame.space is CoordinateSpace.PIXEL):
                    heatmap.add_frame(frame, settings.homography)

        summary = result.summary()
        logger.info("Analysed %d frames (%d valid), max speed %.2f",
                    summary["frames"], summary["valid_frames"], summary["max_speed"])

        if self.save_json or (self.save_heatmap and heatmap is not None):
            exporter = Exporter(str(self.output_dir))
            if self.save_json:
                exporter.export_json(result, filename=f"{base}_speed.json")
                exporter.export_summary(result, filename=f"{base}_summary.json")
            if self.save_heatmap and heatmap is not None and heatmap.sample_count:
                exporter.export_heatmap(heatmap, filename=f"{base}_heatmap.png")
        return result

    # ── Calibration ───────────────────────────────────────────────────────────

    def _load_session(self) -> Optional[CalibrationSession]:
        if self.calibration_path is None:
            return None
        estimator = HomographyEstimator(
            ransac_threshold=self.options.ransac_threshold,
            max_iterations=self.options.ransac_iterations,
            seed=self.options.seed,
        )
        session = load_calibration(self.calibration_path, estimator)
        if session.state is not SessionState.CONFIRMED:
            logger.warning("Calibration %s is %s, not confirmed; court scaling disabled",
                           self.calibration_path, session.state.value)
        return session


def session_summary(session: Optional[CalibrationSession]) -> Optional[dict]:
    if session is None:
        return None
    result = session.confirmed_result
    return {
        "court_type": session.court_type,
        "mode":       session.mode.id,
        "state":      session.state.value,
        "points":     list(session.collected_ids),
        "homography": result.to_dict() if result else None,
        "quality":    session.quality.to_dict() if session.quality else None,
        "last_error": session.last_error.to_dict() if session.last_error else None,
    }
