import numpy as np

# ----------------------------
# Small numeric helpers
# ----------------------------
_EPS_N = 1e-12


def _is_finite_xyz(X: np.ndarray) -> np.ndarray:
    """Return boolean mask of rows of X that are finite."""
    X = np.asarray(X)
    if X.ndim != 2 or X.shape[1] != 3:
        raise ValueError(f"Expected (N,3) array, got {X.shape}")
    return np.isfinite(X).all(axis=1)


def project_to_bearings(
    X: np.ndarray,
    R: np.ndarray,
    t: np.ndarray,
) -> np.ndarray:
    """
    Project 3D points onto the unit sphere of a camera.

    Returns:
      b: (3,N) float64. Non-finite points or points at the camera center give NaN columns.
    """
    X = np.asarray(X, dtype=np.float64)
    R = np.asarray(R, dtype=np.float64)
    t = np.asarray(t, dtype=np.float64).reshape(3, 1)

    if X.ndim != 2 or X.shape[1] != 3:
        raise ValueError(f"X must be (N,3). Got {X.shape}")

    b = np.full((3, X.shape[0]), np.nan, dtype=np.float64)

    finite = _is_finite_xyz(X) & np.isfinite(R).all() & np.isfinite(t).all()
    if not np.any(finite):
        return b

    Xc = (R @ X[finite].T) + t  # (3,Nf)
    n = np.linalg.norm(Xc, axis=0)
    good_n = np.isfinite(n) & (n > _EPS_N)

    if np.any(good_n):
        b[:, np.where(finite)[0][good_n]] = Xc[:, good_n] / n[good_n][None, :]

    return b


def reprojection_errors(
    X: np.ndarray,
    bearings: np.ndarray,
    R: np.ndarray,
    t: np.ndarray,
) -> np.ndarray:
    """
    Angle (radians) between each observed bearing and the direction
    to the reconstructed point.

    Returns:
      err: (N,) float64. Non-finite projections yield +inf error.
    """
    b_proj = project_to_bearings(X, R, t)           # (3,N) with NaNs for invalid
    b_obs = np.asarray(bearings, dtype=np.float64)
    if b_obs.shape != b_proj.shape:
        raise ValueError(f"bearings must be {b_proj.shape}, got {b_obs.shape}")

    err = np.full((b_proj.shape[1],), np.inf, dtype=np.float64)
    good = np.isfinite(b_proj).all(axis=0) & np.isfinite(b_obs).all(axis=0)
    if np.any(good):
        n_obs = np.linalg.norm(b_obs[:, good], axis=0) + _EPS_N
        c = np.sum(b_proj[:, good] * b_obs[:, good], axis=0) / n_obs
        err[good] = np.arccos(np.clip(c, -1.0, 1.0))
    return err
