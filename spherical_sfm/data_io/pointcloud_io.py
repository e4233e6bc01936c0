from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np


def write_ply(
    path: Union[str, Path],
    points: np.ndarray,
    colors: Optional[np.ndarray] = None,
) -> None:
    """
    Write a point cloud to an ASCII PLY file.

    Args:
        path: output file path
        points: (N, 3) float array
        colors: (N, 3) uint8 array in RGB [0,255], optional
    """
    path = Path(path)
    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError(f"points must have shape (N,3), got {points.shape}")

    has_color = colors is not None
    if has_color:
        colors = np.asarray(colors, dtype=np.uint8)
        if colors.shape != (points.shape[0], 3):
            raise ValueError(f"colors must have shape (N,3), got {colors.shape}")

    header = [
        "ply",
        "format ascii 1.0",
        f"element vertex {points.shape[0]}",
        "property float x",
        "property float y",
        "property float z",
    ]
    if has_color:
        header += ["property uchar red", "property uchar green", "property uchar blue"]
    header.append("end_header")

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write("\n".join(header) + "\n")
        for i, p in enumerate(points):
            line = f"{p[0]} {p[1]} {p[2]}"
            if has_color:
                c = colors[i]
                line += f" {int(c[0])} {int(c[1])} {int(c[2])}"
            f.write(line + "\n")


def read_ply(
    path: Union[str, Path],
) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Read an ASCII PLY point cloud written by write_ply.

    Returns:
      points: (N,3) float64
      colors: (N,3) uint8 in RGB, or None if not present
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"PLY not found: {path}")

    lines = path.read_text(encoding="utf-8", errors="ignore").splitlines()
    if not lines or lines[0].strip() != "ply":
        raise ValueError(f"Not a PLY file: {path}")

    n_vertex = None
    props = []
    body_start = None
    for i, line in enumerate(lines[1:], start=1):
        tok = line.split()
        if not tok:
            continue
        if tok[0] == "format" and tok[1] != "ascii":
            raise ValueError(f"Only ASCII PLY is supported, got {tok[1]}")
        if tok[0] == "element" and tok[1] == "vertex":
            n_vertex = int(tok[2])
        elif tok[0] == "property":
            props.append(tok[-1])
        elif tok[0] == "end_header":
            body_start = i + 1
            break

    if n_vertex is None or body_start is None:
        raise ValueError(f"Malformed PLY header: {path}")

    data = np.array(
        [line.split() for line in lines[body_start:body_start + n_vertex]],
        dtype=np.float64,
    ).reshape(n_vertex, len(props))

    points = data[:, [props.index("x"), props.index("y"), props.index("z")]]
    colors = None
    if all(c in props for c in ("red", "green", "blue")):
        colors = data[:, [props.index("red"), props.index("green"), props.index("blue")]].astype(np.uint8)

    return points, colors
