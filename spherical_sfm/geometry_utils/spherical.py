"""
spherical_sfm/geometry_utils/spherical.py

Equirectangular pixel <-> unit-sphere bearing conversions.

Convention (u = x / width, v = y / height):
    d = (sin(v*pi) * cos(pi*(2u + 0.5)),
         cos(v*pi),
         sin(v*pi) * sin(pi*(2u + 0.5)))
The image center maps to (0, 0, -1); the top row maps to +Y.
"""

from __future__ import annotations

import numpy as np

from spherical_sfm.errors import ContractViolation

_EPS_NORM = 1e-12


def _as_columns(coords: np.ndarray, dim: int) -> np.ndarray:
    """Return coords as (dim, N). (N, dim) input is transposed when unambiguous."""
    coords = np.asarray(coords, dtype=np.float64)
    if coords.ndim == 1 and coords.shape[0] == dim:
        return coords.reshape(dim, 1)
    if coords.ndim != 2:
        raise ContractViolation(f"Expected ({dim},N) or (N,{dim}) array, got {coords.shape}")
    if coords.shape[0] == dim:
        return coords
    if coords.shape[1] == dim:
        return coords.T
    raise ContractViolation(f"Expected ({dim},N) or (N,{dim}) array, got {coords.shape}")


def _check_size(width: float, height: float) -> None:
    if not (width > 0 and height > 0):
        raise ContractViolation(f"width and height must be > 0, got {width}x{height}")


def normalize_bearings(x: np.ndarray) -> np.ndarray:
    """
    Scale each column of a (3,N) array to unit length.
    Zero columns are left as zeros.
    """
    x = _as_columns(x, 3)
    n = np.linalg.norm(x, axis=0, keepdims=True)
    return x / np.where(n > _EPS_NORM, n, 1.0)


def planar_to_spherical(
    coords: np.ndarray,
    width: float,
    height: float,
) -> np.ndarray:
    """
    Map equirectangular pixel coordinates to unit bearing vectors.

    Args:
      coords: (2,N) pixel coordinates, one point per column. (N,2) is accepted too.
      width, height: panorama size in pixels, both > 0

    Returns:
      bearings: (3,N) float64, unit norm, same order as the input.
    """
    _check_size(width, height)
    xy = _as_columns(coords, 2)

    u = xy[0] / float(width)
    v = xy[1] / float(height)

    theta = v * np.pi
    phi = np.pi * (2.0 * u + 0.5)

    d = np.vstack([
        np.sin(theta) * np.cos(phi),
        np.cos(theta),
        np.sin(theta) * np.sin(phi),
    ])
    return normalize_bearings(d)


def spherical_to_planar(
    bearings: np.ndarray,
    width: float,
    height: float,
) -> np.ndarray:
    """
    Inverse of planar_to_spherical.

    Returns:
      coords: (2,N) pixel coordinates with x in [0, width) and y in [0, height].
    """
    _check_size(width, height)
    d = normalize_bearings(bearings)

    v = np.arccos(np.clip(d[1], -1.0, 1.0)) / np.pi
    phi = np.arctan2(d[2], d[0])
    u = np.mod((phi / np.pi - 0.5) / 2.0, 1.0)

    return np.vstack([u * float(width), v * float(height)])


def angular_distance(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Column-wise angle in radians between two (3,N) sets of directions."""
    a = normalize_bearings(a)
    b = normalize_bearings(b)
    c = np.clip(np.sum(a * b, axis=0), -1.0, 1.0)
    return np.arccos(c)
