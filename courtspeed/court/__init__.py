from .template          import reference_point_for, point_ids, court_dimensions, COURT_TYPES
from .modes             import CALIBRATION_MODES, get_mode
from .homography        import HomographyEstimator, apply_homography
from .quality           import CalibrationQuality, assess
from .session           import CalibrationSession, SessionState, Outcome, CalibrationJob
from .calibration_store import save_calibration, load_calibration

__all__ = [
    "reference_point_for", "point_ids", "court_dimensions", "COURT_TYPES",
    "CALIBRATION_MODES", "get_mode",
    "HomographyEstimator", "apply_homography",
    "CalibrationQuality", "assess",
    "CalibrationSession", "SessionState", "Outcome", "CalibrationJob",
    "save_calibration", "load_calibration",
]
