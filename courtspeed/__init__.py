"""
courtspeed – court calibration and centre-of-mass speed estimation.

Public API:  all major components are importable directly from `courtspeed`.

    from courtspeed import CalibrationSession, HomographyEstimator
    from courtspeed import AnthropometricModel, SpeedEstimator, PositionHeatmap
    from courtspeed import Pipeline, AnalysisOptions
    from courtspeed.models import Point2D, Point3D, LandmarkFrame, SpeedMetrics
"""

# ── Pipeline (top-level entry point) ─────────────────────────────────────────
from .pipeline        import Pipeline, AnalysisResult
from .options         import AnalysisOptions

# ── Court calibration ─────────────────────────────────────────────────────────
from .court.template   import reference_point_for, point_ids, court_dimensions
from .court.modes      import CALIBRATION_MODES, get_mode
from .court.homography import HomographyEstimator, apply_homography
from .court.quality    import CalibrationQuality, assess
from .court.session    import CalibrationSession, SessionState, Outcome, CalibrationJob
from .court.calibration_store import save_calibration, load_calibration

# ── Speed ─────────────────────────────────────────────────────────────────────
from .stats.anthropometry import AnthropometricModel, MassPolicy
from .stats.speed         import SpeedEstimator
from .stats.heatmap       import PositionHeatmap

# ── Utilities ─────────────────────────────────────────────────────────────────
from .exporter        import Exporter
from .landmark_loader import LandmarkLoader
from .errors import (
    ErrorKind, CalibrationError,
    InsufficientPoints, DegenerateConfiguration, DuplicatePoint,
    UnknownPointId, InvalidPoint, UnknownMode, InvalidTransition, StaleFrame,
)

# ── Models (data classes) ─────────────────────────────────────────────────────
from .models import (
    CoordinateSpace, Point2D, Point3D,
    CourtDimensions, CalibrationPoint, CalibrationMode,
    HomographyResult, CalibrationSettings,
    Landmark, LandmarkFrame, SpeedMetrics,
)

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "Pipeline", "AnalysisResult", "AnalysisOptions",
    # Court
    "reference_point_for", "point_ids", "court_dimensions",
    "CALIBRATION_MODES", "get_mode",
    "HomographyEstimator", "apply_homography",
    "CalibrationQuality", "assess",
    "CalibrationSession", "SessionState", "Outcome", "CalibrationJob",
    "save_calibration", "load_calibration",
    # Speed
    "AnthropometricModel", "MassPolicy", "SpeedEstimator", "PositionHeatmap",
    # Utilities
    "Exporter", "LandmarkLoader",
    "ErrorKind", "CalibrationError",
    "InsufficientPoints", "DegenerateConfiguration", "DuplicatePoint",
    "UnknownPointId", "InvalidPoint", "UnknownMode", "InvalidTransition", "StaleFrame",
    # Models
    "CoordinateSpace", "Point2D", "Point3D",
    "CourtDimensions", "CalibrationPoint", "CalibrationMode",
    "HomographyResult", "CalibrationSettings",
    "Landmark", "LandmarkFrame", "SpeedMetrics",
]
