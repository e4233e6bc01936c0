from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Tuple, Union

import numpy as np

from .parsing import extract_floats, load_data


def read_correspondences(path: Union[str, Path]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Read pixel correspondences between two panoramas.

    Formats:
      - text/csv: one match per line, "x1 y1 x2 y2" (commas allowed, '#' comments skipped)
      - .json/.yaml: {"pts1": [[x, y], ...], "pts2": [[x, y], ...]}

    Returns:
      pts1, pts2: (2,N) float64 pixel coordinates, one point per column.
    """
    obj = load_data(path)

    if isinstance(obj, str):
        pts1, pts2 = _from_text(obj, path)
    elif isinstance(obj, Mapping):
        pts1, pts2 = _from_mapping(obj)
    else:
        raise ValueError(f"Unsupported correspondence content in {path}")

    if pts1.shape != pts2.shape:
        raise ValueError(f"pts1/pts2 mismatch: {pts1.shape} vs {pts2.shape}")
    if not (np.isfinite(pts1).all() and np.isfinite(pts2).all()):
        raise ValueError(f"Correspondences contain non-finite values: {path}")

    return pts1.T.copy(), pts2.T.copy()


def write_correspondences(
    path: Union[str, Path],
    pts1: np.ndarray,
    pts2: np.ndarray,
) -> None:
    """Write (2,N) correspondences as "x1 y1 x2 y2" lines."""
    path = Path(path)
    pts1 = np.asarray(pts1, np.float64)
    pts2 = np.asarray(pts2, np.float64)
    if pts1.ndim != 2 or pts1.shape[0] != 2 or pts1.shape != pts2.shape:
        raise ValueError(f"pts1/pts2 must be (2,N). Got {pts1.shape} and {pts2.shape}")

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write("# x1 y1 x2 y2\n")
        for a, b in zip(pts1.T, pts2.T):
            f.write(f"{a[0]:.6f} {a[1]:.6f} {b[0]:.6f} {b[1]:.6f}\n")


def _from_text(text: str, path: Any) -> Tuple[np.ndarray, np.ndarray]:
    rows = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        vals = extract_floats(line)
        if len(vals) < 4:
            raise ValueError(f"{path}:{lineno}: expected 4 numbers, got {len(vals)}")
        rows.append(vals[:4])

    arr = np.array(rows, dtype=np.float64).reshape(-1, 4)
    return arr[:, :2], arr[:, 2:]


def _from_mapping(obj: Mapping) -> Tuple[np.ndarray, np.ndarray]:
    if "pts1" not in obj or "pts2" not in obj:
        raise ValueError("Expected keys 'pts1' and 'pts2'.")
    pts1 = np.array(obj["pts1"], dtype=np.float64).reshape(-1, 2)
    pts2 = np.array(obj["pts2"], dtype=np.float64).reshape(-1, 2)
    return pts1, pts2
