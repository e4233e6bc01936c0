from __future__ import annotations

import numpy as np

from spherical_sfm.errors import ContractViolation
from spherical_sfm.geometry_utils.projective import skew


def essential_from_pose(
    R1: np.ndarray,
    t1: np.ndarray,
    R2: np.ndarray,
    t2: np.ndarray,
) -> np.ndarray:
    """Compute the essential matrix E such that x2^T E x1 = 0
    for corresponding bearings x1 in camera 1 and x2 in camera 2.

    Cameras map world to camera frame with Xc = R X + t.
    """
    R1 = np.asarray(R1, np.float64)
    R2 = np.asarray(R2, np.float64)
    t1 = np.asarray(t1, np.float64).reshape(3, 1)
    t2 = np.asarray(t2, np.float64).reshape(3, 1)

    R_rel = R2 @ R1.T
    t_rel = t2 - R_rel @ t1

    E = skew(t_rel) @ R_rel
    E /= (np.linalg.norm(E) + 1e-12)

    return E


def encode_epipolar_equation(x1: np.ndarray, x2: np.ndarray) -> np.ndarray:
    """
    Stack one row per correspondence so that A @ vec(E) = 0 encodes
    x2^T E x1 = 0, with E flattened row-major.

    Args:
      x1, x2: (3,N) bearings
    Returns:
      A: (N,9)
    """
    x1 = np.asarray(x1, np.float64)
    x2 = np.asarray(x2, np.float64)
    if x1.ndim != 2 or x1.shape[0] != 3 or x1.shape != x2.shape:
        raise ContractViolation(f"x1/x2 must both be (3,N). Got {x1.shape} and {x2.shape}")

    # row i = kron(x2[:, i], x1[:, i])
    return (x2.T[:, :, None] * x1.T[:, None, :]).reshape(-1, 9)


def epipolar_residuals(E: np.ndarray, x1: np.ndarray, x2: np.ndarray) -> np.ndarray:
    """Algebraic residual x2^T E x1 per column of (3,N) bearings."""
    E = np.asarray(E, np.float64)
    return np.sum(np.asarray(x2, np.float64) * (E @ np.asarray(x1, np.float64)), axis=0)


class AngularError:
    """
    Angle between x2 and the epipolar plane E x1, in [0, pi/2].

    On the sphere the epipolar constraint says x2 is orthogonal to E x1,
    so the residual is the angle x2 makes with that plane rather than a
    pixel distance.
    """

    def error(self, model, x1: np.ndarray, x2: np.ndarray) -> float:
        E = _matrix_of(model)
        x1 = np.asarray(x1, np.float64).reshape(3)
        x2 = np.asarray(x2, np.float64).reshape(3)

        Em1 = E @ x1
        n = np.linalg.norm(Em1)
        n2 = np.linalg.norm(x2)
        if n < 1e-12 or n2 < 1e-12:
            return float(np.pi / 2)
        Em1 = Em1 / n

        c = float(x2 @ Em1) / n2
        return float(abs(np.arcsin(np.clip(c, -1.0, 1.0))))

    def errors(self, model, x1: np.ndarray, x2: np.ndarray) -> np.ndarray:
        """Vectorized error() over (3,N) bearings."""
        E = _matrix_of(model)
        x1 = np.asarray(x1, np.float64)
        x2 = np.asarray(x2, np.float64)

        Em1 = E @ x1
        n = np.linalg.norm(Em1, axis=0)
        n2 = np.linalg.norm(x2, axis=0)
        err = np.full((x1.shape[1],), np.pi / 2, dtype=np.float64)

        good = (n > 1e-12) & (n2 > 1e-12)
        if np.any(good):
            c = np.sum(x2[:, good] * Em1[:, good], axis=0) / (n[good] * n2[good])
            err[good] = np.abs(np.arcsin(np.clip(c, -1.0, 1.0)))
        return err


def _matrix_of(model) -> np.ndarray:
    E = getattr(model, "matrix", model)
    E = np.asarray(E, np.float64)
    if E.shape != (3, 3):
        raise ContractViolation(f"Model must be (3,3), got {E.shape}")
    return E
