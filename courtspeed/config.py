"""
Configuration for courtspeed.

Module-level defaults. Runtime overrides go through
`courtspeed.options.AnalysisOptions`.
"""

# ── Court geometry (metres) ───────────────────────────────────────────────────
BADMINTON_LENGTH        = 13.4
BADMINTON_WIDTH         = 6.1          # doubles
BADMINTON_SINGLES_WIDTH = 5.18
BADMINTON_SHORT_SERVICE = 1.98         # net → short service line
BADMINTON_LONG_SERVICE  = 0.76         # back line → doubles long service line

TENNIS_LENGTH           = 23.77
TENNIS_WIDTH            = 8.23         # singles
TENNIS_SINGLES_WIDTH    = 8.23
TENNIS_SERVICE_DEPTH    = 6.40         # net → service line

DEFAULT_COURT_TYPE      = "badminton"
DEFAULT_CALIBRATION_MODE = "full-court"

# ── Homography estimation ─────────────────────────────────────────────────────
MIN_CALIBRATION_POINTS  = 4
RANSAC_THRESHOLD_M      = 0.10         # inlier residual in world metres
RANSAC_ITERATIONS       = 500
RANSAC_EARLY_EXIT_RATIO = 0.95
DEGENERACY_TOLERANCE    = 1e-8         # padded s[7] / s[0] of the DLT system
COLLINEARITY_TOLERANCE  = 1e-6         # on Hartley-normalised coordinates
H22_EPSILON             = 1e-10
FROBENIUS_PENALTY       = 0.5          # confidence multiplier when H[2][2] ≈ 0

# Conditioning score: 1.0 up to COND_GOOD, 0.0 at COND_BAD (log scale)
COND_GOOD               = 1e3
COND_BAD                = 1e7
# DLT spectral gap (s[7] / s[0]) at and above which conditioning is "good"
SPECTRAL_GAP_GOOD       = 0.02
# Error score halves when the mean inlier error reaches this (metres)
ERROR_SCALE_M           = 0.10

# ── Calibration quality ───────────────────────────────────────────────────────
QUALITY_TEST_DISTANCE_PX = 50.0
QUALITY_TEST_FRACTIONS   = (0.2, 0.8)  # sample positions across the image
ROUND_TRIP_TOLERANCE_PX  = 2.0
REPROJECTION_SCALE_PX    = 100.0       # score reaches 0 at this image error
REPROJECTION_WARN_PX     = 50.0
CONDITION_WARN           = 1e3
DISTORTION_WARN          = 0.3
GRADE_EXCELLENT          = 0.9
GRADE_GOOD               = 0.7
GRADE_FAIR               = 0.5

# Overall quality weights (sum to 1)
QUALITY_WEIGHTS = {
    "reprojection": 0.3,
    "condition":    0.2,
    "perspective":  0.2,
    "inliers":      0.2,
    "round_trip":   0.1,
}

# ── Player / scaling ──────────────────────────────────────────────────────────
REFERENCE_HEIGHT_CM     = 170.0
DEFAULT_PLAYER_HEIGHT   = 170.0
MIN_PLAYER_HEIGHT       = 140.0
MAX_PLAYER_HEIGHT       = 220.0

# ── Pose landmarks ────────────────────────────────────────────────────────────
NUM_LANDMARKS           = 33
VISIBILITY_THRESHOLD    = 0.5
MIN_VISIBLE_LANDMARKS   = 15

# ── Speed estimation ──────────────────────────────────────────────────────────
HISTORY_SIZE            = 10           # rolling CoM history (frames)
VELOCITY_WINDOW         = 5            # raw velocity samples averaged
MAX_SPEED_MS            = 50.0

# ── Heatmap ───────────────────────────────────────────────────────────────────
HEATMAP_RESOLUTION      = 4            # cells per metre
HEATMAP_SMOOTHING       = 1            # gaussian radius in cells (0 = off)
HEATMAP_MIN_CONFIDENCE  = 0.5
HEATMAP_MAX_SAMPLES     = 10000

# ── Output ────────────────────────────────────────────────────────────────────
RESULTS_DIR             = "results"
