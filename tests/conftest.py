from types import SimpleNamespace

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from spherical_sfm.geometry import essential_from_pose


def _unit(v, axis=0):
    return v / np.linalg.norm(v, axis=axis, keepdims=True)


def _make_scene(n=50, seed=0, rot_deg=20.0, n_outliers=0, noise_deg=0.0):
    """
    Two spherical cameras: camera 1 = [I | 0], camera 2 = [R | t] with ||t|| = 1.
    Points are placed 2..10 units from camera 1 in every direction.

    Inliers come first, outliers (random x2 bearings) last.
    """
    rng = np.random.default_rng(seed)

    axis = _unit(rng.normal(size=3))
    R = Rotation.from_rotvec(axis * np.deg2rad(rot_deg)).as_matrix()
    t = _unit(rng.normal(size=(3, 1)))

    dirs = _unit(rng.normal(size=(3, n)))
    depth = rng.uniform(2.0, 10.0, size=n)
    X = (dirs * depth).T  # (n,3)

    x1 = dirs.copy()
    x2 = _unit(R @ X.T + t)

    if noise_deg > 0:
        sigma = np.deg2rad(noise_deg)
        x1 = _unit(x1 + rng.normal(scale=sigma, size=x1.shape))
        x2 = _unit(x2 + rng.normal(scale=sigma, size=x2.shape))

    inlier_mask = np.ones((n,), dtype=bool)
    if n_outliers > 0:
        x1 = np.hstack([x1, _unit(rng.normal(size=(3, n_outliers)))])
        x2 = np.hstack([x2, _unit(rng.normal(size=(3, n_outliers)))])
        inlier_mask = np.concatenate([inlier_mask, np.zeros((n_outliers,), dtype=bool)])

    E = essential_from_pose(np.eye(3), np.zeros((3, 1)), R, t)

    return SimpleNamespace(R=R, t=t, X=X, x1=x1, x2=x2, E=E, inlier_mask=inlier_mask, n=n)


@pytest.fixture
def make_scene():
    return _make_scene


@pytest.fixture
def scene():
    return _make_scene()


def same_up_to_scale(A, B, atol=1e-6):
    """True when A and B are equal after Frobenius normalization, up to sign."""
    A = np.asarray(A, np.float64) / np.linalg.norm(A)
    B = np.asarray(B, np.float64) / np.linalg.norm(B)
    return min(np.abs(A - B).max(), np.abs(A + B).max()) < atol


@pytest.fixture
def proportional():
    return same_up_to_scale
