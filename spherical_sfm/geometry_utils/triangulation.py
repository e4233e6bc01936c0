import numpy as np
from typing import Optional, Tuple

from spherical_sfm.errors import ContractViolation
from spherical_sfm.geometry_utils.projective import (
    camera_center,
    homogeneous_to_euclidean,
    nullspace,
    projection_matrix,
)
from spherical_sfm.geometry_utils.reprojection import reprojection_errors, _is_finite_xyz

# ----------------------------
# Small numeric helpers
# ----------------------------
_EPS_DEPTH = 1e-12
_EPS_W = 1e-12


def _check_P(P: np.ndarray, name: str) -> np.ndarray:
    P = np.asarray(P, dtype=np.float64)
    if P.shape != (3, 4):
        raise ContractViolation(f"{name} must be (3,4), got {P.shape}")
    return P


def _cross_rows(P: np.ndarray, x: np.ndarray) -> np.ndarray:
    """
    Three rows of [x]_x P. Any 3D point X on the ray satisfies [x]_x P X = 0.
    x may be (3,) or (N,3); result is (3,4) or (N,3,4).
    """
    x = np.asarray(x, dtype=np.float64)
    x0, x1, x2 = x[..., 0, None], x[..., 1, None], x[..., 2, None]
    return np.stack([
        -x2 * P[1] + x1 * P[2],
        x2 * P[0] - x0 * P[2],
        -x1 * P[0] + x0 * P[1],
    ], axis=-2)


def triangulate_dlt_homogeneous(
    P1: np.ndarray,
    x1: np.ndarray,
    P2: np.ndarray,
    x2: np.ndarray,
) -> np.ndarray:
    """
    Solve
        [cross(x1, P1) X = 0]
        [cross(x2, P2) X = 0]
    for the homogeneous point X.

    Args:
      P1, P2: (3,4) calibrated projection matrices
      x1, x2: (3,) rays observed in each view
    Returns:
      X_h: (4,) unit-norm homogeneous point
    """
    P1 = _check_P(P1, "P1")
    P2 = _check_P(P2, "P2")
    x1 = np.asarray(x1, dtype=np.float64).reshape(3)
    x2 = np.asarray(x2, dtype=np.float64).reshape(3)

    design = np.vstack([_cross_rows(P1, x1), _cross_rows(P2, x2)])  # (6,4)
    return nullspace(design)


def triangulate_dlt(
    P1: np.ndarray,
    x1: np.ndarray,
    P2: np.ndarray,
    x2: np.ndarray,
    eps_w: float = _EPS_W,
) -> np.ndarray:
    """
    Euclidean version of triangulate_dlt_homogeneous.

    A near-zero fourth coordinate is not rejected: the first three
    homogeneous coordinates come back undivided (a direction at infinity).
    """
    X_h = triangulate_dlt_homogeneous(P1, x1, P2, x2)
    return homogeneous_to_euclidean(X_h, eps=eps_w)


def triangulate_bearings(
    x1s: np.ndarray,
    x2s: np.ndarray,
    R1: np.ndarray,
    t1: np.ndarray,
    R2: np.ndarray,
    t2: np.ndarray,
    eps_w: float = _EPS_W,
) -> np.ndarray:
    """
    Triangulate N bearing correspondences from two spherical views. No filtering here.

    Args:
      x1s, x2s: (3,N) bearings
    Returns:
      X: (N,3) float64. Points at infinity (|w| <= eps_w) are NaN so downstream filters can drop them.
    """
    x1s = np.asarray(x1s, dtype=np.float64)
    x2s = np.asarray(x2s, dtype=np.float64)

    if x1s.ndim != 2 or x1s.shape[0] != 3 or x1s.shape != x2s.shape:
        raise ContractViolation(f"x1s/x2s must be (3,N). Got {x1s.shape} and {x2s.shape}")

    P1 = projection_matrix(R1, t1)
    P2 = projection_matrix(R2, t2)

    N = x1s.shape[1]
    if N == 0:
        return np.zeros((0, 3), np.float64)

    design = np.concatenate([_cross_rows(P1, x1s.T), _cross_rows(P2, x2s.T)], axis=1)  # (N,6,4)
    _, _, Vt = np.linalg.svd(design)
    X_h = Vt[:, -1, :]  # (N,4)

    w = X_h[:, 3]
    good_w = np.isfinite(w) & (np.abs(w) > eps_w)

    X = np.full((N, 3), np.nan, dtype=np.float64)
    if np.any(good_w):
        X[good_w] = X_h[good_w, :3] / w[good_w, None]

    return X


def spherical_cheirality_mask(
    X: np.ndarray,
    R: np.ndarray,
    t: np.ndarray,
    bearings: np.ndarray,
) -> np.ndarray:
    """
    Keep points that lie on the observed half-ray rather than behind the camera.

    A spherical camera sees in every direction, so "positive depth" means
    the camera-frame point Xc = R*X + t points the same way as its bearing.
    """
    X = np.asarray(X, dtype=np.float64)
    R = np.asarray(R, dtype=np.float64)
    t = np.asarray(t, dtype=np.float64).reshape(3, 1)
    b = np.asarray(bearings, dtype=np.float64)

    keep = np.zeros((X.shape[0],), dtype=bool)
    finite = _is_finite_xyz(X) & np.isfinite(R).all() & np.isfinite(t).all()
    if not np.any(finite):
        return keep

    Xc = (R @ X[finite].T) + t
    depth = np.sum(Xc * b[:, finite], axis=0)
    keep[np.where(finite)[0]] = np.isfinite(depth) & (depth > _EPS_DEPTH)
    return keep


def triangulation_angles_deg(
    X: np.ndarray,
    R1: np.ndarray,
    t1: np.ndarray,
    R2: np.ndarray,
    t2: np.ndarray,
) -> np.ndarray:
    """
    Angle at X between the rays coming from both camera centers.

    Returns:
      angles_deg: (N,) with NaN for non-finite points.
    """
    X = np.asarray(X, dtype=np.float64)
    ang = np.full((X.shape[0],), np.nan, dtype=np.float64)

    finite = _is_finite_xyz(X)
    if not np.any(finite):
        return ang

    C1 = camera_center(R1, t1)
    C2 = camera_center(R2, t2)

    Xf = X[finite]
    v1 = Xf - C1[None, :]
    v2 = Xf - C2[None, :]

    v1n = v1 / (np.linalg.norm(v1, axis=1, keepdims=True) + 1e-12)
    v2n = v2 / (np.linalg.norm(v2, axis=1, keepdims=True) + 1e-12)

    cosang = np.clip(np.sum(v1n * v2n, axis=1), -1.0, 1.0)
    ang[np.where(finite)[0]] = np.degrees(np.arccos(cosang))
    return ang


def triangulate_and_filter(
    x1s: np.ndarray,
    x2s: np.ndarray,
    R1: np.ndarray,
    t1: np.ndarray,
    R2: np.ndarray,
    t2: np.ndarray,
    max_angular_error_rad: float = np.deg2rad(1.0),
    min_triang_angle_deg: float = 1.0,
    max_distance: Optional[float] = None,
    eps_w: float = _EPS_W,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Triangulate bearings and filter using:
      - finite / point-at-infinity
      - cheirality in both spherical cameras
      - angular reprojection error in both cameras
      - triangulation angle threshold
      - optional distance from the first camera center

    Returns:
      X_filt: (M,3)
      keep_mask: (N,) bool mask over original correspondences
    """
    x1s = np.asarray(x1s, dtype=np.float64)
    x2s = np.asarray(x2s, dtype=np.float64)

    X = triangulate_bearings(x1s, x2s, R1, t1, R2, t2, eps_w=eps_w)  # (N,3) with NaNs
    N = X.shape[0]
    if N == 0:
        return np.zeros((0, 3), np.float64), np.zeros((0,), dtype=bool)

    keep = _is_finite_xyz(X)

    keep &= spherical_cheirality_mask(X, R1, t1, x1s)
    keep &= spherical_cheirality_mask(X, R2, t2, x2s)

    if max_distance is not None and np.any(keep):
        C1 = camera_center(R1, t1)
        idx = np.where(keep)[0]
        keep[idx] &= np.linalg.norm(X[idx] - C1[None, :], axis=1) <= float(max_distance)

    if not np.any(keep):
        return np.zeros((0, 3), np.float64), keep

    err1 = reprojection_errors(X, x1s, R1, t1)
    err2 = reprojection_errors(X, x2s, R2, t2)
    keep &= (err1 <= float(max_angular_error_rad)) & (err2 <= float(max_angular_error_rad))

    if not np.any(keep):
        return np.zeros((0, 3), np.float64), keep

    ang = triangulation_angles_deg(X, R1, t1, R2, t2)
    keep &= np.isfinite(ang) & (ang >= float(min_triang_angle_deg))

    return X[keep].astype(np.float64), keep
