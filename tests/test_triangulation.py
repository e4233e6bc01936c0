import numpy as np
import pytest

from spherical_sfm.errors import ContractViolation
from spherical_sfm.geometry import (
    homogeneous_to_euclidean,
    nullspace,
    projection_matrix,
    spherical_cheirality_mask,
    triangulate_and_filter,
    triangulate_bearings,
    triangulate_dlt,
    triangulate_dlt_homogeneous,
    triangulation_angles_deg,
)

I3 = np.eye(3)
Z3 = np.zeros((3, 1))


def test_dlt_recovers_point(scene):
    P1 = projection_matrix(I3, Z3)
    P2 = projection_matrix(scene.R, scene.t)
    for i in range(10):
        X = triangulate_dlt(P1, scene.x1[:, i], P2, scene.x2[:, i])
        np.testing.assert_allclose(X, scene.X[i], atol=1e-8)


def test_dlt_does_not_need_unit_rays(scene):
    P1 = projection_matrix(I3, Z3)
    P2 = projection_matrix(scene.R, scene.t)
    X = triangulate_dlt(P1, 3.0 * scene.x1[:, 0], P2, 0.25 * scene.x2[:, 0])
    np.testing.assert_allclose(X, scene.X[0], atol=1e-8)


def test_dlt_homogeneous_is_unit_norm(scene):
    P1 = projection_matrix(I3, Z3)
    P2 = projection_matrix(scene.R, scene.t)
    X_h = triangulate_dlt_homogeneous(P1, scene.x1[:, 0], P2, scene.x2[:, 0])
    assert X_h.shape == (4,)
    assert abs(np.linalg.norm(X_h) - 1.0) < 1e-12


def test_parallel_rays_give_point_at_infinity():
    P1 = projection_matrix(I3, Z3)
    # second camera centered at (1, 0, 0)
    P2 = projection_matrix(I3, np.array([-1.0, 0.0, 0.0]))
    ray = np.array([0.0, 0.0, 1.0])

    X_h = triangulate_dlt_homogeneous(P1, ray, P2, ray)
    assert abs(X_h[3]) < 1e-9

    X = triangulate_dlt(P1, ray, P2, ray)
    assert np.isfinite(X).all()
    np.testing.assert_allclose(np.abs(X), [0.0, 0.0, 1.0], atol=1e-9)


def test_projection_matrix_shape_is_checked():
    with pytest.raises(ContractViolation):
        triangulate_dlt(np.eye(3), np.ones(3), np.eye(3, 4), np.ones(3))


def test_homogeneous_to_euclidean():
    np.testing.assert_allclose(homogeneous_to_euclidean(np.array([2.0, 4.0, 6.0, 2.0])), [1, 2, 3])
    np.testing.assert_allclose(homogeneous_to_euclidean(np.array([2.0, 4.0, 6.0, 0.0])), [2, 4, 6])


def test_nullspace_of_wide_matrix():
    A = np.array([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    np.testing.assert_allclose(np.abs(nullspace(A)), [0.0, 0.0, 1.0], atol=1e-12)


def test_batch_matches_single(scene):
    X = triangulate_bearings(scene.x1, scene.x2, I3, Z3, scene.R, scene.t)
    assert X.shape == (scene.n, 3)
    np.testing.assert_allclose(X, scene.X, atol=1e-8)


def test_batch_marks_points_at_infinity_as_nan():
    x = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 1.0]])
    x[:, 1] /= np.linalg.norm(x[:, 1])
    X = triangulate_bearings(x, x, I3, Z3, I3, np.array([-1.0, 0.0, 0.0]))
    assert np.isnan(X).all()


def test_empty_batch():
    X = triangulate_bearings(np.zeros((3, 0)), np.zeros((3, 0)), I3, Z3, I3, Z3)
    assert X.shape == (0, 3)


def test_cheirality_rejects_points_behind_the_ray(scene):
    keep = spherical_cheirality_mask(scene.X, I3, Z3, scene.x1)
    assert keep.all()
    keep = spherical_cheirality_mask(scene.X, I3, Z3, -scene.x1)
    assert not keep.any()


def test_triangulation_angle():
    t2 = np.array([-1.0, 0.0, 0.0])  # center at (1, 0, 0)
    ang = triangulation_angles_deg(np.array([[0.5, 0.0, 0.5], [np.nan, 0, 0]]), I3, Z3, I3, t2)
    assert ang[0] == pytest.approx(90.0)
    assert np.isnan(ang[1])


def test_triangulate_and_filter_drops_outliers(make_scene):
    s = make_scene(n=40, seed=31, n_outliers=10)
    X, keep = triangulate_and_filter(
        s.x1, s.x2, I3, Z3, s.R, s.t,
        max_angular_error_rad=1e-6,
        min_triang_angle_deg=0.0,
    )
    assert keep.shape == (50,)
    assert not keep[s.n:].any()
    assert keep[: s.n].all()
    np.testing.assert_allclose(X, s.X, atol=1e-8)


def test_triangulate_and_filter_distance_gate(scene):
    X, keep = triangulate_and_filter(
        scene.x1, scene.x2, I3, Z3, scene.R, scene.t,
        min_triang_angle_deg=0.0,
        max_distance=5.0,
    )
    d = np.linalg.norm(scene.X, axis=1)
    np.testing.assert_array_equal(keep, d <= 5.0)
