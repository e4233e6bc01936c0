"""
spherical_sfm/geometry_utils/essential.py

Eight-point essential matrix solver for bearing-vector correspondences
(Hartley & Zisserman, Result 11.1), followed by projection onto the
essential manifold.

The projection averages the two largest singular values and zeroes the
third. It is the Frobenius-closest essential matrix to the linear
solution, with no iterative refinement afterwards: its accuracy is
bounded by the linear fit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from spherical_sfm.errors import ContractViolation, UnsupportedOperation
from spherical_sfm.geometry_utils.epipolar import encode_epipolar_equation
from spherical_sfm.geometry_utils.projective import nullspace


@dataclass(frozen=True)
class Mat3Model:
    """A 3x3 model (essential matrix), defined up to scale and sign."""
    matrix: np.ndarray  # (3,3)

    def get_matrix(self) -> np.ndarray:
        return self.matrix


def project_to_essential(E: np.ndarray) -> np.ndarray:
    """
    Closest matrix to E with singular values (s, s, 0),
    s = (a + b) / 2 for the two largest singular values a, b of E.
    """
    E = np.asarray(E, np.float64)
    U, d, Vt = np.linalg.svd(E)
    a, b = d[0], d[1]
    s = (a + b) / 2.0
    return U @ np.diag([s, s, 0.0]) @ Vt


class EightPointRelativePoseSolver:
    """Linear essential matrix solver from N >= 8 bearing correspondences."""

    minimum_samples = 8
    maximum_models = 1

    def get_minimum_nb_required_samples(self) -> int:
        return self.minimum_samples

    def get_maximum_nb_models(self) -> int:
        return self.maximum_models

    def solve(
        self,
        x1: np.ndarray,
        x2: np.ndarray,
        weights: Optional[Sequence[float]] = None,
    ) -> List[Mat3Model]:
        """
        Args:
          x1, x2: (3,N) bearings, N >= 8, column i of x1 matches column i of x2
          weights: not supported; passing anything raises UnsupportedOperation

        Returns:
          a list holding exactly one Mat3Model. Degenerate inputs still
          produce a model; scoring is left to the caller.
        """
        if weights is not None:
            raise UnsupportedOperation(
                "EightPointRelativePoseSolver does not support problem solving with weights."
            )

        x1 = np.asarray(x1, np.float64)
        x2 = np.asarray(x2, np.float64)

        if x1.ndim != 2 or x1.shape[0] != 3:
            raise ContractViolation(f"x1 must be (3,N), got {x1.shape}")
        if x1.shape[1] < self.minimum_samples:
            raise ContractViolation(
                f"Need at least {self.minimum_samples} correspondences, got {x1.shape[1]}"
            )
        if x2.shape != x1.shape:
            raise ContractViolation(f"x1/x2 shape mismatch: {x1.shape} vs {x2.shape}")

        A = encode_epipolar_equation(x1, x2)  # (N,9)
        e = nullspace(A)
        E = e.reshape(3, 3)

        if x1.shape[1] > self.minimum_samples:
            E = project_to_essential(E)

        return [Mat3Model(matrix=E)]
