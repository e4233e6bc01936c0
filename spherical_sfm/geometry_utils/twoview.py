from attr import dataclass
import numpy as np
from typing import List, Tuple
from scipy.spatial.transform import Rotation

from spherical_sfm.errors import ContractViolation, EstimationError
from spherical_sfm.geometry_utils.triangulation import (
    triangulate_bearings,
    spherical_cheirality_mask,
    triangulation_angles_deg,
)

_W = np.array([
    [0.0, -1.0, 0.0],
    [1.0, 0.0, 0.0],
    [0.0, 0.0, 1.0],
])


@dataclass
class TwoViewResult:
    R: np.ndarray                 # (3,3)
    t: np.ndarray                 # (3,1) unit norm, up-to-scale
    inlier_mask: np.ndarray       # (N,) bool, points in front of both cameras
    points: np.ndarray            # (M,3) triangulated points for inlier_mask


def decompose_essential(E: np.ndarray) -> List[Tuple[np.ndarray, np.ndarray]]:
    """
    The four (R, t) pairs compatible with E = [t]_x R.

    Returns:
      list of (R (3,3), t (3,1)) with det(R) = +1 and ||t|| = 1.
    """
    E = np.asarray(E, np.float64)
    if E.shape != (3, 3):
        raise ContractViolation(f"E must be (3,3), got {E.shape}")

    U, _, Vt = np.linalg.svd(E)
    if np.linalg.det(U) < 0:
        U = -U
    if np.linalg.det(Vt) < 0:
        Vt = -Vt

    Ra = U @ _W @ Vt
    Rb = U @ _W.T @ Vt
    t = U[:, 2].reshape(3, 1)
    t = t / (np.linalg.norm(t) + 1e-12)

    return [(Ra, t), (Ra, -t), (Rb, t), (Rb, -t)]


def rotation_angle_deg(R: np.ndarray) -> float:
    """Magnitude of the rotation R in degrees."""
    return float(np.degrees(Rotation.from_matrix(np.asarray(R, np.float64)).magnitude()))


def recover_pose_from_bearings(
    x1: np.ndarray,
    x2: np.ndarray,
    E: np.ndarray,
    min_triang_angle_deg: float = 0.0,
    logger=None,
) -> TwoViewResult:
    """
    Recover relative pose between two spherical views.

    The first camera is [I | 0]; the second is [R | t].
    Among the four decompositions of E, keep the one placing the most
    triangulated bearings in front of both cameras.

    Args:
      x1, x2: (3,N) bearings (inlier-filtered recommended)
      E: (3,3) essential matrix with x2^T E x1 = 0
      min_triang_angle_deg: points with a smaller triangulation angle do not vote
      logger: Optional logger

    Returns:
      R, t (unit norm), inlier mask and the triangulated points of the chosen pose.
    """
    x1 = np.asarray(x1, np.float64)
    x2 = np.asarray(x2, np.float64)
    if x1.ndim != 2 or x1.shape[0] != 3 or x1.shape != x2.shape:
        raise ContractViolation(f"x1/x2 must be (3,N). Got {x1.shape} and {x2.shape}")

    R0 = np.eye(3)
    t0 = np.zeros((3, 1))

    best = None
    best_good = -1

    for k, (R, t) in enumerate(decompose_essential(E)):
        X = triangulate_bearings(x1, x2, R0, t0, R, t)

        good = spherical_cheirality_mask(X, R0, t0, x1) & spherical_cheirality_mask(X, R, t, x2)
        if min_triang_angle_deg > 0 and np.any(good):
            ang = triangulation_angles_deg(X, R0, t0, R, t)
            good &= np.isfinite(ang) & (ang >= float(min_triang_angle_deg))

        n_good = int(np.sum(good))
        if logger:
            logger.debug(f"  pose candidate {k}: in front={n_good}/{x1.shape[1]}")

        if n_good > best_good:
            best_good = n_good
            best = (R, t, good, X)

    if best is None or best_good <= 0:
        raise EstimationError("No pose candidate places any point in front of both cameras.")

    R, t, good, X = best
    if logger:
        logger.info(
            f"Recovered pose: rotation={rotation_angle_deg(R):.3f} deg "
            f"t={np.round(t.ravel(), 4).tolist()} in front={best_good}/{x1.shape[1]}"
        )

    return TwoViewResult(R=R, t=t, inlier_mask=good, points=X[good])
