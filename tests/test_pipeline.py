import logging

import numpy as np
import pytest

from spherical_sfm.errors import EstimationError
from spherical_sfm.geometry import rotation_angle_deg, spherical_to_planar
from spherical_sfm.pipeline import (
    RansacConfig,
    SphericalPoseConfig,
    estimate_spherical_relative_pose,
    triangulate_with_known_poses,
)

W, H = 3600, 1800


def _pixels(s, width=W, height=H, width2=None, height2=None):
    pts1 = spherical_to_planar(s.x1, width, height)
    pts2 = spherical_to_planar(s.x2, width2 or width, height2 or height)
    return pts1, pts2


def _config(threshold_deg=0.002):
    return SphericalPoseConfig(ransac=RansacConfig(threshold_deg=threshold_deg, seed=5), verbose=False)


def test_recovers_pose_from_pixels(make_scene):
    s = make_scene(n=120, seed=51, n_outliers=40)
    pts1, pts2 = _pixels(s)

    res = estimate_spherical_relative_pose(pts1, pts2, W, H, config=_config())

    assert rotation_angle_deg(res.R.T @ s.R) < 1e-3
    np.testing.assert_allclose(res.t, s.t, atol=1e-5)
    np.testing.assert_array_equal(res.inlier_mask, s.inlier_mask)

    # points come back at the true scale since ||t|| = 1 in the synthetic scene
    assert res.point_mask.sum() > 0.8 * s.n
    assert not res.point_mask[s.n:].any()
    np.testing.assert_allclose(res.points, s.X[res.point_mask[: s.n]], atol=1e-4)

    assert res.bearings1.shape == (3, 160)
    sv = np.linalg.svd(res.E, compute_uv=False)
    assert abs(sv[0] - sv[1]) < 1e-10 * sv[0]
    assert set(res.timings) == {"Robust essential estimation", "Pose recovery"}


def test_accepts_points_per_row(make_scene):
    s = make_scene(n=60, seed=52)
    pts1, pts2 = _pixels(s)
    res = estimate_spherical_relative_pose(pts1.T, pts2.T, W, H, config=_config())
    assert res.inlier_mask.all()


def test_second_panorama_may_differ_in_size(make_scene):
    s = make_scene(n=60, seed=53)
    pts1, pts2 = _pixels(s, width2=2000, height2=1000)

    res = estimate_spherical_relative_pose(
        pts1, pts2, W, H, config=_config(), width2=2000, height2=1000,
    )
    assert rotation_angle_deg(res.R.T @ s.R) < 1e-3


def test_adaptive_threshold_is_applied(make_scene):
    s = make_scene(n=60, seed=54, noise_deg=0.02)
    pts1, pts2 = _pixels(s)
    config = SphericalPoseConfig(verbose=False)

    res = estimate_spherical_relative_pose(pts1, pts2, W, H, config=config)
    assert res.config.ransac.threshold_deg == pytest.approx(0.2)
    assert config.ransac.threshold_deg is None
    assert rotation_angle_deg(res.R.T @ s.R) < 0.5


def test_logs_progress(make_scene, caplog):
    s = make_scene(n=40, seed=55)
    pts1, pts2 = _pixels(s)
    logger = logging.getLogger("spherical_sfm.test")

    with caplog.at_level(logging.INFO, logger="spherical_sfm.test"):
        estimate_spherical_relative_pose(pts1, pts2, W, H, config=_config(), logger=logger)

    text = caplog.text
    assert "RANSAC" in text
    assert "Recovered pose" in text


def test_too_few_matches(make_scene):
    s = make_scene(n=6, seed=56)
    pts1, pts2 = _pixels(s)
    with pytest.raises(EstimationError):
        estimate_spherical_relative_pose(pts1, pts2, W, H, config=_config())


def test_reused_config_adapts_to_each_panorama(make_scene):
    s = make_scene(n=60, seed=57)
    config = SphericalPoseConfig(verbose=False)

    small = estimate_spherical_relative_pose(*_pixels(s, 2000, 1000), 2000, 1000, config=config)
    large = estimate_spherical_relative_pose(*_pixels(s), W, H, config=config)

    assert small.config.ransac.threshold_deg == pytest.approx(0.36)
    assert large.config.ransac.threshold_deg == pytest.approx(0.2)
    assert config.ransac.threshold_deg is None


def test_triangulate_with_known_poses(make_scene):
    s = make_scene(n=80, seed=58)
    pts1, pts2 = _pixels(s)

    X, keep = triangulate_with_known_poses(
        pts1, pts2, W, H, np.eye(3), np.zeros(3), s.R, s.t, config=_config(),
    )

    assert keep.shape == (80,)
    assert keep.sum() > 0.8 * s.n
    np.testing.assert_allclose(X, s.X[keep], atol=1e-4)
