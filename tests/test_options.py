"""
Tests for analysis options and the model helpers they build on.
"""
import json
import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from courtspeed.errors import ErrorKind, InsufficientPoints
from courtspeed.models import (
    CalibrationPoint, CalibrationSettings, CoordinateSpace, Landmark, LandmarkFrame,
    Point2D, Point3D, SpeedMetrics,
)
from courtspeed.options import AnalysisOptions


class TestAnalysisOptions:

    def test_defaults(self):
        opts = AnalysisOptions()
        assert opts.court_type == "badminton"
        assert opts.calibration_mode == "full-court"
        assert not opts.use_height_calibration
        assert opts.use_court_calibration is None
        assert not opts.calibration_settings().use_court_calibration
        assert opts.velocity_window == 5

    def test_from_mapping_coerces(self):
        opts = AnalysisOptions.from_mapping({
            "court_type": "Tennis",
            "player_height": "182",
            "use_height_calibration": "yes",
            "smoothing_window": "12",
            "seed": "3",
        })
        assert opts.court_type == "tennis"
        assert opts.player_height == 182.0
        assert opts.use_height_calibration is True
        assert opts.smoothing_window == 12
        assert opts.seed == 3

    def test_court_calibration_flag(self):
        opts = AnalysisOptions.from_mapping({"use_court_calibration": None})
        assert opts.use_court_calibration is None
        opts = AnalysisOptions.from_mapping({"use_court_calibration": "false"})
        assert opts.use_court_calibration is False
        assert AnalysisOptions.from_mapping(opts.to_dict()) == opts

    @pytest.mark.parametrize("data", [
        {"colour": "red"},
        {"player_height": 90},
        {"court_type": "squash"},
        {"calibration_mode": "quarter"},
        {"velocity_window": 20},
        {"use_court_calibration": "maybe"},
        {"max_speed": "fast"},
    ])
    def test_invalid(self, data):
        with pytest.raises(ValueError):
            AnalysisOptions.from_mapping(data)

    def test_load(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text(json.dumps({"court_type": "tennis", "max_speed": 12}))
        opts = AnalysisOptions.load(path)
        assert opts.court_type == "tennis"
        assert opts.max_speed == 12.0

    def test_load_rejects_other_formats(self, tmp_path):
        path = tmp_path / "options.yaml"
        path.write_text("court_type: tennis")
        with pytest.raises(ValueError):
            AnalysisOptions.load(path)

    def test_to_dict_round_trip(self):
        opts = AnalysisOptions(player_height=190.0, seed=4)
        assert AnalysisOptions.from_mapping(opts.to_dict()) == opts

    def test_calibration_settings(self):
        settings = AnalysisOptions(court_type="tennis", player_height=180.0,
                                   use_height_calibration=True).calibration_settings()
        assert settings.player_height == 180.0
        assert settings.court_dimensions.length == pytest.approx(23.77)
        assert settings.calibration_accuracy == 50.0


class TestModels:

    def test_mixing_spaces_raises(self):
        a = Point3D(1.0, 2.0, 3.0, CoordinateSpace.WORLD)
        b = Point3D(1.0, 2.0, 3.0, CoordinateSpace.NORMALIZED)
        with pytest.raises(ValueError):
            a - b
        with pytest.raises(ValueError):
            Point2D(1, 1).distance_to(Point2D(1, 1, CoordinateSpace.NORMALIZED))

    def test_normalised_to_pixel(self):
        p = Point2D(0.5, 0.25, CoordinateSpace.NORMALIZED).to_pixel(1920, 1080)
        assert (p.x, p.y, p.space) == (960.0, 270.0, CoordinateSpace.PIXEL)

    def test_calibration_point_needs_pixels(self):
        with pytest.raises(ValueError):
            CalibrationPoint("corner-tl", Point2D(0.5, 0.5, CoordinateSpace.NORMALIZED))
        with pytest.raises(ValueError):
            CalibrationPoint("corner-tl", Point2D(5.0, 5.0), confidence=1.5)

    def test_player_height_range(self):
        settings = CalibrationSettings()
        with pytest.raises(ValueError):
            settings.set_player_height(250.0)
        settings.set_player_height(165.0)
        assert settings.use_height_calibration
        assert settings.is_calibrated

    def test_landmark_frame_needs_33(self):
        with pytest.raises(ValueError):
            LandmarkFrame.from_list([[0.5, 0.5]] * 32, 0.0)

    def test_landmark_parse(self):
        assert Landmark.parse([0.1, 0.2]) == Landmark(0.1, 0.2, 0.0, 1.0)
        assert Landmark.parse({"x": 1, "y": 2, "visibility": 0.3}).visibility == 0.3

    def test_frame_lookup(self, frame_factory):
        frame = frame_factory()
        assert frame["nose"] is frame[0]
        assert frame.visible_count() == 33
        with pytest.raises(ValueError):
            frame.pixel_positions()

    def test_invalid_metrics_are_zero(self):
        m = SpeedMetrics.invalid("stale_frame", 1.5)
        assert not m.is_valid
        assert m.speed == 0.0 and m.scaling_factor == 0.0
        assert m.to_dict()["invalid_reason"] == "stale_frame"

    def test_error_dict(self):
        err = InsufficientPoints("Need 4")
        assert err.to_dict() == {"kind": ErrorKind.INSUFFICIENT_POINTS.value,
                                 "message": "Need 4"}
