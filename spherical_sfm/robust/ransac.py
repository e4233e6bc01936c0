"""
spherical_sfm/robust/ransac.py

Generic RANSAC driver.

Works with any object honoring the kernel contract from
spherical_sfm/geometry_utils/kernel.py: it only ever calls
minimum_samples, nb_samples, fit(indices) and errors(model).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from spherical_sfm.errors import EstimationError


@dataclass
class RansacResult:
    """Best hypothesis found by the driver."""
    model: Any
    inliers: np.ndarray        # (K,) indices into the kernel's correspondences
    residuals: np.ndarray      # (N,) residual of every correspondence under model
    n_iterations: int

    @property
    def inlier_mask(self) -> np.ndarray:
        mask = np.zeros((self.residuals.shape[0],), dtype=bool)
        mask[self.inliers] = True
        return mask


def required_iterations(inlier_ratio: float, sample_size: int, confidence: float) -> float:
    """Number of draws needed to hit one all-inlier sample with the given confidence."""
    if inlier_ratio <= 0.0:
        return np.inf
    p_good = inlier_ratio ** sample_size
    if p_good >= 1.0:
        return 1.0
    if confidence >= 1.0:
        return np.inf
    # log1p keeps tiny p_good from rounding 1 - p_good to exactly 1
    denom = np.log1p(-p_good)
    if not np.isfinite(denom) or denom >= 0.0:
        return np.inf
    return float(np.log1p(-confidence) / denom)


def _score(residuals: np.ndarray, threshold: float):
    """(inlier count, truncated residual sum). Higher count wins, then lower cost."""
    inl = residuals <= threshold
    cost = float(np.sum(np.minimum(residuals, threshold)))
    return int(np.sum(inl)), cost


def ransac(
    kernel,
    threshold: float,
    max_iterations: int = 4096,
    min_iterations: int = 50,
    confidence: float = 0.999,
    refit: bool = True,
    rng: Optional[np.random.Generator] = None,
    logger=None,
) -> RansacResult:
    """
    Estimate the model best supported by the kernel's correspondences.

    Args:
        kernel: object exposing minimum_samples, nb_samples, fit, errors
        threshold: inlier threshold, in the units of kernel.errors
        max_iterations / min_iterations: bounds on the number of samples drawn
        confidence: stop once an all-inlier sample was drawn with this probability
        refit: re-solve on the consensus set and keep it when it does not lose inliers
        rng: numpy Generator; a fresh default_rng() when None
        logger: Optional logger

    Returns:
        RansacResult

    Raises:
        EstimationError: fewer correspondences than a minimal sample, or
                         no hypothesis reached minimum_samples inliers.
    """
    n = int(kernel.nb_samples)
    s = int(kernel.minimum_samples)
    if n < s:
        raise EstimationError(f"Need at least {s} correspondences, got {n}.")

    if rng is None:
        rng = np.random.default_rng()

    best_model = None
    best_res = None
    best_score = (-1, np.inf)
    needed = float(max_iterations)

    it = 0
    while it < max_iterations and (it < min_iterations or it < needed):
        it += 1
        sample = rng.choice(n, size=s, replace=False)

        for model in kernel.fit(sample):
            res = kernel.errors(model)
            score = _score(res, threshold)
            if score[0] > best_score[0] or (score[0] == best_score[0] and score[1] < best_score[1]):
                best_model, best_res, best_score = model, res, score
                needed = required_iterations(score[0] / float(n), s, confidence)

        # exhaustive problem: nothing else to draw
        if n == s:
            break

    if best_model is None or best_score[0] < s:
        raise EstimationError(
            f"RANSAC found no model with at least {s} inliers "
            f"(best={max(best_score[0], 0)}, iterations={it})."
        )

    if logger:
        logger.info(f"RANSAC: {best_score[0]}/{n} inliers after {it} iterations")

    if refit and best_score[0] > s:
        inliers = np.where(best_res <= threshold)[0]
        for model in kernel.fit(inliers):
            res = kernel.errors(model)
            score = _score(res, threshold)
            if score[0] >= best_score[0]:
                best_model, best_res, best_score = model, res, score
        if logger:
            logger.info(f"RANSAC refit: {best_score[0]}/{n} inliers")

    inliers = np.where(best_res <= threshold)[0]
    return RansacResult(model=best_model, inliers=inliers, residuals=best_res, n_iterations=it)
