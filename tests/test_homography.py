"""
Tests for homography estimation.
"""
import dataclasses
import json
import numpy as np
import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from courtspeed.court.homography import HomographyEstimator, apply_homography
from courtspeed.errors import DegenerateConfiguration, ErrorKind, InsufficientPoints
from courtspeed.models import CoordinateSpace, HomographyResult, Point2D, Point3D


def _world(x, z):
    return Point3D(x, 0.0, z, CoordinateSpace.WORLD)


class TestExactFit:
    """Four clean correspondences determine H exactly."""

    def test_badminton_corners(self, camera, corner_ids):
        result = HomographyEstimator(seed=0).estimate(camera.pairs(corner_ids))

        assert result.reprojection_error < 1e-6
        assert result.confidence > 0.95
        assert result.inlier_indices == (0, 1, 2, 3)
        assert result.inlier_ratio == 1.0
        assert not result.frobenius_normalized

    def test_round_trip(self, camera, corner_ids):
        pairs = camera.pairs(corner_ids)
        result = HomographyEstimator().estimate(pairs)

        for image, world in pairs:
            mapped = result.image_to_world(image)
            assert mapped.space is CoordinateSpace.WORLD
            assert mapped.x == pytest.approx(world.x, abs=1e-6)
            assert mapped.z == pytest.approx(world.z, abs=1e-6)
            back = result.world_to_image(world)
            assert back.x == pytest.approx(image.x, abs=1e-4)
            assert back.y == pytest.approx(image.y, abs=1e-4)

    def test_interior_points_follow(self, camera, corner_ids):
        result = HomographyEstimator().estimate(camera.pairs(corner_ids))
        for pid in ("net-center", "service-right", "far-service-left"):
            image, world = camera.pairs([pid])[0]
            mapped = result.image_to_world(image)
            assert mapped.x == pytest.approx(world.x, abs=1e-6)
            assert mapped.z == pytest.approx(world.z, abs=1e-6)

    def test_normalised_h22(self, camera, corner_ids):
        result = HomographyEstimator().estimate(camera.pairs(corner_ids))
        assert result.matrix[2, 2] == pytest.approx(1.0)
        assert result.inverse_matrix[2, 2] == pytest.approx(1.0)

    def test_meters_per_pixel(self, camera, corner_ids):
        result = HomographyEstimator().estimate(camera.pairs(corner_ids))
        # 13.4 m over ~650 px near the middle of the frame
        assert 0.005 < result.meters_per_pixel < 0.1


class TestFailures:

    def test_insufficient_points(self, camera, corner_ids):
        with pytest.raises(InsufficientPoints) as exc:
            HomographyEstimator().estimate(camera.pairs(corner_ids[:3]))
        assert exc.value.kind is ErrorKind.INSUFFICIENT_POINTS

    def test_collinear_image_points(self, corner_ids):
        pairs = [
            (Point2D(100.0 * i, 200.0 * i + 10), _world(x, z))
            for i, (x, z) in enumerate([(-3, 6), (3, 6), (3, -6), (-3, -6)])
        ]
        with pytest.raises(DegenerateConfiguration):
            HomographyEstimator().estimate(pairs)

    def test_three_of_four_collinear(self, camera):
        pairs = camera.pairs(["corner-tl", "net-left", "corner-bl", "corner-br"])
        with pytest.raises(DegenerateConfiguration):
            HomographyEstimator().estimate(pairs)

    def test_duplicate_image_point(self, camera, corner_ids):
        pairs = camera.pairs(corner_ids)
        pairs[3] = (pairs[0][0], pairs[3][1])
        with pytest.raises(DegenerateConfiguration):
            HomographyEstimator().estimate(pairs)

    def test_wrong_spaces(self, camera, corner_ids):
        pairs = camera.pairs(corner_ids)
        image, world = pairs[0]
        pairs[0] = (Point2D(0.5, 0.5, CoordinateSpace.NORMALIZED), world)
        with pytest.raises(ValueError):
            HomographyEstimator().estimate(pairs)

    def test_bad_parameters(self):
        with pytest.raises(ValueError):
            HomographyEstimator(ransac_threshold=0)
        with pytest.raises(ValueError):
            HomographyEstimator(max_iterations=0)


class TestNoise:

    def test_error_grows_with_noise(self, camera):
        ids = ["corner-tl", "corner-tr", "corner-br", "corner-bl",
               "net-left", "net-right", "service-center", "far-service-center"]
        errors = []
        for delta in (0.0, 0.5, 1.0, 2.0, 4.0):
            pairs = camera.pairs(ids)
            image, world = pairs[6]
            pairs[6] = (Point2D(image.x + delta, image.y), world)
            result = HomographyEstimator(ransac_threshold=100.0, seed=1).estimate(pairs)
            assert len(result.inlier_indices) == len(ids)
            errors.append(result.reprojection_error)

        assert errors[0] < 1e-6
        assert all(a < b for a, b in zip(errors, errors[1:]))

    def test_near_collinear_lowers_confidence(self, camera):
        spread = [_world(-3, -3), _world(3, -3), _world(3, 3), _world(-3, 3)]
        near   = [_world(-3, -3), _world(0, -3), _world(3, -2.999), _world(0, 3)]
        good = HomographyEstimator().estimate([(camera.to_image(w), w) for w in spread])
        poor = HomographyEstimator().estimate([(camera.to_image(w), w) for w in near])
        assert poor.confidence < good.confidence


class TestRansac:
    """Outlier rejection with more than four points."""

    OFFSETS = [(150, -90), (-130, 110), (90, 160), (-170, -60), (120, 140)]

    def _with_outliers(self, camera, ids, clean):
        pairs = camera.pairs(ids)
        for j, i in enumerate(range(clean, len(ids))):
            image, world = pairs[i]
            dx, dy = self.OFFSETS[j]
            pairs[i] = (Point2D(image.x + dx, image.y + dy), world)
        return pairs

    def test_inlier_count_matches_clean_points(self, camera, ten_point_ids):
        counts = []
        for clean in range(5, 11):
            pairs = self._with_outliers(camera, ten_point_ids, clean)
            result = HomographyEstimator(seed=7).estimate(pairs)
            counts.append(len(result.inlier_indices))
            assert result.inlier_indices == tuple(range(clean))
            assert result.inlier_error < 1e-6

        assert counts == [5, 6, 7, 8, 9, 10]

    def test_outliers_lower_confidence(self, camera, ten_point_ids):
        clean = HomographyEstimator(seed=3).estimate(camera.pairs(ten_point_ids))
        dirty = HomographyEstimator(seed=3).estimate(
            self._with_outliers(camera, ten_point_ids, 7))
        assert dirty.inlier_ratio == pytest.approx(0.7)
        assert dirty.reprojection_error > dirty.inlier_error
        assert dirty.confidence < clean.confidence

    def test_seeded_runs_are_reproducible(self, camera, ten_point_ids):
        pairs = self._with_outliers(camera, ten_point_ids, 6)
        a = HomographyEstimator(seed=11).estimate(pairs)
        b = HomographyEstimator(seed=11).estimate(pairs)
        assert a.inlier_indices == b.inlier_indices
        np.testing.assert_allclose(a.matrix, b.matrix)

    def test_input_not_mutated(self, camera, ten_point_ids):
        pairs = self._with_outliers(camera, ten_point_ids, 8)
        before = list(pairs)
        HomographyEstimator(seed=2).estimate(pairs)
        assert pairs == before


class TestHomographyResult:

    def test_immutable(self, camera, corner_ids):
        result = HomographyEstimator().estimate(camera.pairs(corner_ids))
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.confidence = 0.0
        with pytest.raises(ValueError):
            result.matrix[0, 0] = 2.0

    def test_dict_round_trip(self, camera, corner_ids):
        result = HomographyEstimator().estimate(camera.pairs(corner_ids))
        restored = HomographyResult.from_dict(result.to_dict())
        np.testing.assert_allclose(restored.matrix, result.matrix)
        assert restored.inlier_indices == result.inlier_indices

    def test_rejects_wrong_space(self, camera, corner_ids):
        result = HomographyEstimator().estimate(camera.pairs(corner_ids))
        with pytest.raises(ValueError):
            result.image_to_world(Point2D(0.5, 0.5, CoordinateSpace.NORMALIZED))
        with pytest.raises(ValueError):
            result.world_to_image(Point3D(0.5, 0.5, 0.0, CoordinateSpace.NORMALIZED))

    def test_apply_homography_at_infinity(self):
        H = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]])
        out = apply_homography(H, np.array([[0.0, 5.0], [2.0, 1.0]]))
        assert np.all(np.isinf(out[0]))
        np.testing.assert_allclose(out[1], [1.0, 0.5])


class TestVanishingH22:
    """A camera whose image origin maps to the horizon has H[2][2] = 0."""

    H = np.array([[1.0, 0.0, -500.0],
                  [0.0, 1.0, -300.0],
                  [0.001, 0.002, 0.0]])

    def _pairs(self):
        img = np.array([[600.0, 400.0], [900.0, 400.0], [900.0, 700.0], [600.0, 700.0]])
        world = apply_homography(self.H, img)
        return [(Point2D(u, v), _world(x, z)) for (u, v), (x, z) in zip(img, world)]

    def test_falls_back_to_frobenius_scale(self):
        result = HomographyEstimator(seed=0).estimate(self._pairs())

        assert result.frobenius_normalized is True
        assert result.reprojection_error < 1e-6
        assert np.linalg.norm(result.matrix) == pytest.approx(1.0)
        expected = self.H / np.linalg.norm(self.H)
        sign = np.sign(result.matrix[0, 0])
        np.testing.assert_allclose(sign * result.matrix, expected, atol=1e-8)

    def test_confidence_is_penalised(self):
        result = HomographyEstimator(seed=0).estimate(self._pairs())
        assert result.confidence <= 0.5

    def test_serialises_as_json(self):
        result = HomographyEstimator(seed=0).estimate(self._pairs())
        data = json.loads(json.dumps(result.to_dict()))
        assert data["frobenius_normalized"] is True
        assert HomographyResult.from_dict(data).frobenius_normalized is True

    def test_projection_survives_scale(self):
        result = HomographyEstimator(seed=0).estimate(self._pairs())
        world = result.image_to_world(Point2D(750.0, 550.0))
        x, z = apply_homography(self.H, np.array([[750.0, 550.0]]))[0]
        assert world.x == pytest.approx(x)
        assert world.z == pytest.approx(z)
