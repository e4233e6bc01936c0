import numpy as np

from spherical_sfm.errors import ContractViolation

_EPS_W = 1e-12


def projection_matrix(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """
    Compute the 3x4 calibrated projection matrix P = [R | t].

    Spherical cameras have no intrinsics: rays are already calibrated,
    so K is the identity.
    Args:
        R: (3,3) rotation matrix
        t: (3,) or (3,1) translation vector
    Returns:
        P: (3,4) projection matrix
    """

    R = np.asarray(R, np.float64)
    t = np.asarray(t, np.float64).reshape(3, 1)

    if R.shape != (3, 3):
        raise ContractViolation(f"R must be (3,3), got {R.shape}")
    if t.shape != (3, 1):
        raise ContractViolation(f"t must be (3,1), got {t.shape}")

    return np.hstack([R, t])  # 3x4


def camera_center(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """Compute camera center in world coordinates from extrinsics R and t.
    Args:
        R: (3,3) rotation matrix
        t: (3,1) translation vector
    Returns:
        C: (3,) camera center in world coordinates"""
    # world->cam: Xc = R X + t  => C = -R^T t
    R = np.asarray(R, np.float64)
    t = np.asarray(t, np.float64).reshape(3, 1)
    return (-R.T @ t).reshape(3)


def skew(v: np.ndarray) -> np.ndarray:
    """Cross-product matrix [v]_x such that [v]_x @ w == v x w."""
    v = np.asarray(v, np.float64).reshape(3)
    return np.array([
        [0, -v[2], v[1]],
        [v[2], 0, -v[0]],
        [-v[1], v[0], 0]
    ], dtype=np.float64)


def nullspace(A: np.ndarray) -> np.ndarray:
    """
    Unit vector v minimizing ||A v||: the right singular vector of the
    smallest singular value.

    Rank-deficient systems still return a vector; no check is made.
    """
    A = np.asarray(A, np.float64)
    if A.ndim != 2:
        raise ContractViolation(f"A must be 2D, got shape {A.shape}")

    # full_matrices so that a wide system (rows < cols) still yields Vt of size (cols, cols)
    _, _, Vt = np.linalg.svd(A, full_matrices=True)
    return Vt[-1, :].copy()


def homogeneous_to_euclidean(X_h: np.ndarray, eps: float = _EPS_W) -> np.ndarray:
    """
    Divide the first coordinates by the last.

    If |w| <= eps the point is at infinity and the leading coordinates are
    returned undivided; callers decide what to do with such points.
    """
    X_h = np.asarray(X_h, np.float64)
    w = X_h[-1]
    if not np.isfinite(w) or abs(w) <= eps:
        return X_h[:-1].copy()
    return X_h[:-1] / w
