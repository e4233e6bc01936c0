from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

import numpy as np

from .parsing import dump_data, extract_floats, load_data


def read_pose(path: Union[str, Path]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Read the extrinsics of a spherical camera, x_cam = R X + t.

    Accepted layouts:
      - {"R": 3x3, "t": 3} as written by write_pose (extra keys ignored)
      - {"P": 3x4} or {"Rt": 3x4}: [R | t] as a single matrix
      - plain text with exactly 12 numbers, [R | t] row-major

    Returns:
      R (3,3) proper rotation, t (3,1)
    """
    Rt = _rt_from_obj(load_data(path), path)
    R, t = Rt[:, :3].copy(), Rt[:, 3:].copy()
    _validate_R(R)
    return R, t


def write_pose(
    path: Union[str, Path],
    R: np.ndarray,
    t: np.ndarray,
    E: Optional[np.ndarray] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> None:
    """Write a relative pose (and optionally its essential matrix) to .json/.yaml."""
    out = {
        "R": np.asarray(R, np.float64).tolist(),
        "t": np.asarray(t, np.float64).reshape(3).tolist(),
    }
    if E is not None:
        out["E"] = np.asarray(E, np.float64).tolist()
    if extra:
        out.update(dict(extra))
    dump_data(out, path)


def _rt_from_obj(obj: Any, path) -> np.ndarray:
    if isinstance(obj, str):
        vals = extract_floats(obj)
        if len(vals) != 12:
            raise ValueError(f"{path}: expected 12 numbers for [R | t], got {len(vals)}")
        return np.array(vals, dtype=np.float64).reshape(3, 4)

    if isinstance(obj, Mapping):
        if "R" in obj and "t" in obj:
            return np.hstack([_matrix(obj["R"], (3, 3), "R"), _matrix(obj["t"], (3, 1), "t")])
        for key in ("P", "Rt"):
            if key in obj:
                return _matrix(obj[key], (3, 4), key)

    raise ValueError(f"{path}: no pose found (expected R/t, P, Rt or 12 numbers)")


def _matrix(x: Any, shape: Tuple[int, int], name: str) -> np.ndarray:
    arr = np.asarray(x, dtype=np.float64)
    if arr.size != shape[0] * shape[1]:
        raise ValueError(f"{name}: expected {shape[0]}x{shape[1]} values, got {arr.size}")
    arr = arr.reshape(shape)
    if not np.isfinite(arr).all():
        raise ValueError(f"{name} contains non-finite values.")
    return arr


def _validate_R(R: np.ndarray) -> None:
    if not np.allclose(R.T @ R, np.eye(3), atol=1e-6):
        raise ValueError("R is not orthonormal.")
    if np.linalg.det(R) < 0:
        raise ValueError(f"Expected det(R) = +1, got {np.linalg.det(R):.6f}")
