"""
Tests for landmark loading, the analysis pipeline and export.
"""
import json
import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from courtspeed.court.calibration_store import save_calibration
from courtspeed.court.session import CalibrationSession
from courtspeed.landmark_loader import LandmarkLoader
from courtspeed.models import CoordinateSpace
from courtspeed.options import AnalysisOptions
from courtspeed.pipeline import Pipeline
import main


def _write_sequence(path, standing_pose, n=10, fps=30.0, timestamps=True):
    frames = []
    for i in range(n):
        pos = standing_pose.copy()
        pos[:, 0] += 0.002 * i
        landmarks = [[x, y, z, 1.0] for x, y, z in pos]
        frame = {"landmarks": landmarks}
        if timestamps:
            frame["timestamp"] = i / fps
        frames.append(frame)
    data = {"space": "normalized", "image_size": [1920, 1080], "fps": fps,
            "frames": frames}
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def sequence(tmp_path, standing_pose):
    return _write_sequence(tmp_path / "rally.json", standing_pose)


@pytest.fixture
def calibration(tmp_path, camera, corner_ids):
    session = CalibrationSession("badminton", "full-court", image_size=(1920, 1080))
    for pid in corner_ids:
        session.add_point(pid, camera.image_of(pid))
    session.calibrate()
    session.confirm()
    return save_calibration(session, tmp_path / "calibration.json")


class TestLandmarkLoader:

    def test_metadata(self, sequence):
        with LandmarkLoader(sequence) as loader:
            meta = loader.metadata
        assert meta.space is CoordinateSpace.NORMALIZED
        assert meta.image_size == (1920, 1080)
        assert meta.total_frames == 10
        assert meta.duration_s == pytest.approx(10 / 30)

    def test_skip_and_max_frames(self, sequence):
        with LandmarkLoader(sequence) as loader:
            numbers = [fn for fn, _ in loader.frames(skip=1, max_frames=3)]
        assert numbers == [0, 2, 4]

    def test_timestamps_from_fps(self, tmp_path, standing_pose):
        path = _write_sequence(tmp_path / "s.json", standing_pose, n=3, fps=25.0,
                               timestamps=False)
        with LandmarkLoader(path) as loader:
            times = [frame.timestamp for _, frame in loader.frames()]
        assert times == pytest.approx([0.0, 0.04, 0.08])

    def test_missing_file(self, tmp_path):
        with pytest.raises(IOError):
            with LandmarkLoader(tmp_path / "none.json"):
                pass

    def test_world_space_rejected(self, tmp_path):
        path = tmp_path / "w.json"
        path.write_text(json.dumps({"space": "world", "frames": []}))
        with pytest.raises(ValueError):
            with LandmarkLoader(path):
                pass

    def test_short_frame(self, tmp_path):
        path = tmp_path / "short.json"
        path.write_text(json.dumps({"frames": [{"landmarks": [[0.5, 0.5]] * 20}]}))
        with LandmarkLoader(path) as loader:
            with pytest.raises(ValueError, match="frame 0"):
                list(loader.frames())

    def test_not_opened(self, sequence):
        with pytest.raises(RuntimeError):
            LandmarkLoader(sequence).metadata


class TestPipeline:

    def test_without_calibration(self, tmp_path, sequence):
        out = tmp_path / "out"
        result = Pipeline(output_dir=str(out), show_progress=False).process(sequence)

        assert len(result.frames) == 10
        assert len(result.valid_frames) == 9
        assert result.heatmap is None
        assert result.calibration is None
        assert result.frames[-1].speed == pytest.approx(0.06)
        assert (out / "rally_speed.json").exists()
        assert not (out / "rally_heatmap.png").exists()
        assert (out / "rally_summary.json").exists()

    def test_with_calibration(self, tmp_path, sequence, calibration):
        out = tmp_path / "out"
        pipeline = Pipeline(calibration_path=calibration, output_dir=str(out),
                            show_progress=False)
        result = pipeline.process(sequence, output_name="match")

        assert result.settings.use_court_calibration
        assert result.calibration["state"] == "confirmed"
        assert result.frames[-1].center_of_mass.space is CoordinateSpace.WORLD
        assert result.heatmap.sample_count == 10
        assert (out / "match_speed.json").exists()
        assert (out / "match_heatmap.png").exists()

        with open(out / "match_speed.json") as f:
            data = json.load(f)
        assert data["summary"]["valid_frames"] == 9
        assert len(data["frames"]) == 10

        with open(out / "match_summary.json") as f:
            summary = json.load(f)
        assert summary["summary"]["valid_frames"] == 9
        assert summary["heatmap"]["samples"] == 10
        assert summary["input"]["total_frames"] == 10
        assert summary["calibration_accuracy"] > 0

    def test_court_scaling_can_be_turned_off(self, tmp_path, sequence, calibration):
        opts = AnalysisOptions(use_court_calibration=False)
        result = Pipeline(calibration_path=calibration, options=opts, save_json=False,
                          output_dir=str(tmp_path), show_progress=False).process(sequence)

        assert result.settings.homography is not None
        assert not result.settings.use_court_calibration
        assert result.frames[-1].scaling_factor == 1.0
        assert result.frames[-1].center_of_mass.space is CoordinateSpace.NORMALIZED
        assert result.frames[-1].speed == pytest.approx(0.06)

    def test_height_option(self, tmp_path, sequence):
        opts = AnalysisOptions(player_height=187.0, use_height_calibration=True)
        result = Pipeline(options=opts, save_json=False, output_dir=str(tmp_path),
                          show_progress=False).process(sequence)
        assert result.frames[-1].scaling_factor == pytest.approx(1.1)
        assert result.frames[-1].speed == pytest.approx(0.066)

    def test_summary(self, tmp_path, sequence):
        result = Pipeline(save_json=False, output_dir=str(tmp_path),
                          show_progress=False).process(sequence, max_frames=4)
        summary = result.summary()
        assert summary["frames"] == 4
        assert summary["invalid_reasons"] == {"insufficient_history": 1}
        assert summary["clamped_frames"] == 0


class TestCli:

    def test_calibrate_then_analyse(self, tmp_path, camera, corner_ids, sequence):
        points = tmp_path / "clicks.json"
        points.write_text(json.dumps({
            "court_type": "badminton",
            "mode": "full-court",
            "image_size": [1920, 1080],
            "points": [{"id": pid, "x": camera.image_of(pid).x, "y": camera.image_of(pid).y}
                       for pid in corner_ids],
        }))
        cal = tmp_path / "cal.json"
        with pytest.raises(SystemExit) as exc:
            main.main(["calibrate", "--points", str(points), "--output", str(cal), "--seed", "1"])
        assert exc.value.code == 0
        assert cal.exists()

        out = tmp_path / "results"
        with pytest.raises(SystemExit) as exc:
            main.main(["analyse", "--input", str(sequence), "--calibration", str(cal),
                       "--output", str(out), "--quiet"])
        assert exc.value.code == 0
        assert (out / "rally_speed.json").exists()

    def test_missing_input(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main.main(["analyse", "--input", str(tmp_path / "none.json"), "--quiet"])
        assert exc.value.code == 1
