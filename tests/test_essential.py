import numpy as np
import pytest

from spherical_sfm.errors import ContractViolation, UnsupportedOperation
from spherical_sfm.geometry import (
    AngularError,
    EightPointRelativePoseSolver,
    Mat3Model,
    encode_epipolar_equation,
    epipolar_residuals,
    essential_from_pose,
    project_to_essential,
)


def test_solver_capabilities():
    solver = EightPointRelativePoseSolver()
    assert solver.minimum_samples == 8
    assert solver.maximum_models == 1
    assert solver.get_minimum_nb_required_samples() == 8
    assert solver.get_maximum_nb_models() == 1


def test_essential_from_pose_satisfies_constraint(scene):
    res = epipolar_residuals(scene.E, scene.x1, scene.x2)
    assert np.abs(res).max() < 1e-12


def test_encoded_system_has_essential_in_nullspace(scene):
    A = encode_epipolar_equation(scene.x1, scene.x2)
    assert A.shape == (scene.n, 9)
    assert np.abs(A @ scene.E.ravel()).max() < 1e-12


def test_eight_exact_correspondences_recover_essential(make_scene, proportional):
    s = make_scene(n=8, seed=4)
    models = EightPointRelativePoseSolver().solve(s.x1, s.x2)

    assert len(models) == 1
    assert isinstance(models[0], Mat3Model)
    assert proportional(models[0].matrix, s.E)

    errs = AngularError().errors(models[0], s.x1, s.x2)
    assert errs.max() < 1e-8


def test_many_exact_correspondences_recover_essential(make_scene, proportional):
    s = make_scene(n=60, seed=5)
    (model,) = EightPointRelativePoseSolver().solve(s.x1, s.x2)
    assert proportional(model.get_matrix(), s.E)


def test_noisy_solution_lies_on_essential_manifold(make_scene):
    s = make_scene(n=40, seed=6, noise_deg=0.5)
    (model,) = EightPointRelativePoseSolver().solve(s.x1, s.x2)

    sv = np.linalg.svd(model.matrix, compute_uv=False)
    assert abs(sv[0] - sv[1]) < 1e-10 * sv[0]
    assert sv[2] < 1e-10 * sv[0]
    assert np.linalg.matrix_rank(model.matrix, tol=1e-8 * sv[0]) == 2


def test_weighted_solve_is_unsupported(scene):
    solver = EightPointRelativePoseSolver()
    with pytest.raises(UnsupportedOperation):
        solver.solve(scene.x1, scene.x2, weights=np.ones(scene.n))
    # also a NotImplementedError for callers catching the builtin
    with pytest.raises(NotImplementedError):
        solver.solve(scene.x1, scene.x2, weights=[1.0] * scene.n)


def test_contract_violations(scene):
    solver = EightPointRelativePoseSolver()
    with pytest.raises(ContractViolation):
        solver.solve(scene.x1[:, :7], scene.x2[:, :7])
    with pytest.raises(ContractViolation):
        solver.solve(scene.x1, scene.x2[:, :-1])
    with pytest.raises(ContractViolation):
        solver.solve(scene.x1[:2], scene.x2[:2])


def test_degenerate_input_still_returns_a_model():
    # all rays identical: rank-1 system
    x = np.tile(np.array([[0.0], [0.0], [1.0]]), (1, 10))
    models = EightPointRelativePoseSolver().solve(x, x)
    assert len(models) == 1
    assert np.isfinite(models[0].matrix).all()


def test_project_to_essential_averages_top_singular_values():
    rng = np.random.default_rng(7)
    M = rng.normal(size=(3, 3))
    a, b, _ = np.linalg.svd(M, compute_uv=False)

    E = project_to_essential(M)
    sv = np.linalg.svd(E, compute_uv=False)
    np.testing.assert_allclose(sv, [(a + b) / 2, (a + b) / 2, 0.0], atol=1e-12)


def test_projection_keeps_a_valid_essential_matrix(scene):
    np.testing.assert_allclose(project_to_essential(scene.E), scene.E, atol=1e-12)


def test_essential_from_pose_is_normalized(scene):
    E = essential_from_pose(np.eye(3), np.zeros(3), scene.R, 5.0 * scene.t)
    assert abs(np.linalg.norm(E) - 1.0) < 1e-9
