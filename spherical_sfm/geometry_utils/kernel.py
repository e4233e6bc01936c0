"""
spherical_sfm/geometry_utils/kernel.py

Kernel contract consumed by robust estimators (see spherical_sfm/robust).

A kernel binds a {solver, error metric, model} triple to one set of
correspondences and exposes:
    minimum_samples, maximum_models, nb_samples,
    fit(samples) -> models, error(model, index) -> float, errors(model) -> (N,)

`fit` receives indices into the full stored correspondence arrays.
Stored arrays are read-only for the kernel's lifetime, so many threads
may call fit/error concurrently.
"""

from __future__ import annotations

from typing import Generic, List, Optional, Protocol, Sequence, TypeVar

import numpy as np

from spherical_sfm.errors import ContractViolation
from spherical_sfm.geometry_utils.epipolar import AngularError
from spherical_sfm.geometry_utils.essential import EightPointRelativePoseSolver, Mat3Model

ModelT = TypeVar("ModelT")


class Solver(Protocol[ModelT]):
    minimum_samples: int
    maximum_models: int

    def solve(
        self,
        x1: np.ndarray,
        x2: np.ndarray,
        weights: Optional[Sequence[float]] = None,
    ) -> List[ModelT]:
        ...


class ErrorMetric(Protocol[ModelT]):
    def error(self, model: ModelT, x1: np.ndarray, x2: np.ndarray) -> float:
        ...


class RobustKernel(Protocol[ModelT]):
    @property
    def minimum_samples(self) -> int:
        ...

    @property
    def maximum_models(self) -> int:
        ...

    @property
    def nb_samples(self) -> int:
        ...

    def fit(self, samples: Sequence[int]) -> List[ModelT]:
        ...

    def error(self, model: ModelT, index: int) -> float:
        ...

    def errors(self, model: ModelT) -> np.ndarray:
        ...


def _readonly(x: np.ndarray) -> np.ndarray:
    x = np.array(x, dtype=np.float64, copy=True)
    x.flags.writeable = False
    return x


class PointFittingKernel(Generic[ModelT]):
    """Generic kernel over (3,N) correspondence arrays."""

    def __init__(
        self,
        solver: Solver[ModelT],
        error_metric: ErrorMetric[ModelT],
        x1: np.ndarray,
        x2: np.ndarray,
    ):
        x1 = np.asarray(x1, np.float64)
        x2 = np.asarray(x2, np.float64)
        if x1.ndim != 2 or x1.shape[0] != 3:
            raise ContractViolation(f"x1 must be (3,N), got {x1.shape}")
        if x2.shape != x1.shape:
            raise ContractViolation(f"x1/x2 shape mismatch: {x1.shape} vs {x2.shape}")

        self._solver = solver
        self._error_metric = error_metric
        self._x1 = _readonly(x1)
        self._x2 = _readonly(x2)

    @property
    def minimum_samples(self) -> int:
        return int(self._solver.minimum_samples)

    @property
    def maximum_models(self) -> int:
        return int(self._solver.maximum_models)

    @property
    def nb_samples(self) -> int:
        return int(self._x1.shape[1])

    @property
    def x1(self) -> np.ndarray:
        return self._x1

    @property
    def x2(self) -> np.ndarray:
        return self._x2

    def fit(self, samples: Sequence[int]) -> List[ModelT]:
        idx = np.asarray(samples, dtype=np.int64).reshape(-1)
        if idx.size < self.minimum_samples:
            raise ContractViolation(
                f"fit() needs at least {self.minimum_samples} samples, got {idx.size}"
            )
        if np.any(idx < 0) or np.any(idx >= self.nb_samples):
            raise ContractViolation(f"Sample index out of range [0, {self.nb_samples})")

        return self._solver.solve(self._x1[:, idx], self._x2[:, idx])

    def error(self, model: ModelT, index: int) -> float:
        return float(self._error_metric.error(model, self._x1[:, index], self._x2[:, index]))

    def errors(self, model: ModelT) -> np.ndarray:
        batched = getattr(self._error_metric, "errors", None)
        if batched is not None:
            return np.asarray(batched(model, self._x1, self._x2), dtype=np.float64)
        return np.array([self.error(model, i) for i in range(self.nb_samples)], dtype=np.float64)


class EssentialKernelSpherical(PointFittingKernel[Mat3Model]):
    """Eight-point solver + angular error over spherical bearing correspondences."""

    def __init__(self, x1: np.ndarray, x2: np.ndarray):
        super().__init__(EightPointRelativePoseSolver(), AngularError(), x1, x2)
