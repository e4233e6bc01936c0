"""
spherical_sfm/pipeline/relative_pose.py

Two-view relative pose for equirectangular panoramas.
This is a thin orchestrator that calls the geometry components.

ALL numeric defaults come from config.py - no hardcoded values here.
"""

from __future__ import annotations
import copy
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple
import numpy as np

from spherical_sfm.geometry import (
    EssentialKernelSpherical,
    TwoViewResult,
    planar_to_spherical,
    recover_pose_from_bearings,
    triangulate_and_filter,
)
from spherical_sfm.robust.ransac import RansacResult, ransac
from spherical_sfm.utils.logging_utils import make_logger, timed

from .config import SphericalPoseConfig, get_default_config


@dataclass
class SphericalPoseResult:
    """Final output of spherical two-view estimation."""
    E: np.ndarray                 # (3,3) essential matrix, x2^T E x1 = 0
    R: np.ndarray                 # (3,3) rotation of camera 2
    t: np.ndarray                 # (3,1) unit translation of camera 2
    points: np.ndarray            # (M,3) filtered triangulated points
    point_mask: np.ndarray        # (N,) correspondences that produced a point
    inlier_mask: np.ndarray       # (N,) RANSAC inliers
    bearings1: np.ndarray         # (3,N)
    bearings2: np.ndarray         # (3,N)
    ransac: RansacResult
    two_view: TwoViewResult
    timings: Dict[str, float] = field(default_factory=dict)  # stage -> seconds
    config: Optional[SphericalPoseConfig] = None  # effective config (adaptive values filled in)


def estimate_spherical_relative_pose(
    pts1: np.ndarray,
    pts2: np.ndarray,
    width: float,
    height: float,
    config: Optional[SphericalPoseConfig] = None,
    width2: Optional[float] = None,
    height2: Optional[float] = None,
    logger=None,
) -> SphericalPoseResult:
    """
    Estimate the relative pose between two spherical cameras.

    Args:
        pts1, pts2: (2,N) pixel correspondences ((N,2) accepted)
        width, height: panorama size of image 1 (and of image 2 unless width2/height2 given)
        config: SphericalPoseConfig (if None, uses default). Not modified;
                adaptive values are filled in on a copy kept in result.config
        logger: Optional logger (created from config.verbose if None)

    Returns:
        SphericalPoseResult with E, pose, inliers and 3D points

    Example:
        result = estimate_spherical_relative_pose(pts1, pts2, 3600, 1800)
        print(result.R, result.t, result.points.shape)
    """
    config, logger = _prepare(config, width, height, logger)
    rc = config.ransac
    tc = config.triangulation

    x1, x2 = _to_bearings(pts1, pts2, width, height, width2, height2)

    if logger:
        logger.info(f"Correspondences: {x1.shape[1]}  threshold={rc.threshold_deg:.4f} deg")

    kernel = EssentialKernelSpherical(x1, x2)
    rng = np.random.default_rng(rc.seed)

    timings = {}
    with timed(logger, "Robust essential estimation", timings):
        rres = _run_ransac(kernel, config, rng, logger)

    E = np.asarray(rres.model.matrix, dtype=np.float64)
    inl = rres.inliers

    with timed(logger, "Pose recovery", timings):
        tw = recover_pose_from_bearings(
            x1[:, inl], x2[:, inl], E,
            min_triang_angle_deg=tc.pose_min_triang_angle_deg,
            logger=logger,
        )

    R0 = np.eye(3)
    t0 = np.zeros((3, 1))
    X, keep_inl = triangulate_and_filter(
        x1[:, inl], x2[:, inl],
        R0, t0, tw.R, tw.t,
        max_angular_error_rad=np.deg2rad(tc.max_angular_error_deg),
        min_triang_angle_deg=tc.min_triang_angle_deg,
        max_distance=tc.max_distance,
        eps_w=tc.eps_w,
    )

    point_mask = np.zeros((x1.shape[1],), dtype=bool)
    point_mask[inl[keep_inl]] = True

    if logger:
        logger.info(f"Triangulated points kept: {X.shape[0]}/{inl.size} inliers")

    return SphericalPoseResult(
        E=E,
        R=tw.R,
        t=tw.t,
        points=X,
        point_mask=point_mask,
        inlier_mask=rres.inlier_mask,
        bearings1=x1,
        bearings2=x2,
        ransac=rres,
        two_view=tw,
        timings=timings,
        config=config,
    )


def _run_ransac(kernel, config: SphericalPoseConfig, rng, logger) -> RansacResult:
    rc = config.ransac
    return ransac(
        kernel,
        threshold=np.deg2rad(rc.threshold_deg),
        max_iterations=rc.max_iterations,
        min_iterations=rc.min_iterations,
        confidence=rc.confidence,
        refit=rc.refit,
        rng=rng,
        logger=logger,
    )


def triangulate_with_known_poses(
    pts1: np.ndarray,
    pts2: np.ndarray,
    width: float,
    height: float,
    R1: np.ndarray,
    t1: np.ndarray,
    R2: np.ndarray,
    t2: np.ndarray,
    config: Optional[SphericalPoseConfig] = None,
    width2: Optional[float] = None,
    height2: Optional[float] = None,
    logger=None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Triangulate pixel correspondences between two spherical cameras whose
    extrinsics (x_cam = R X + t) are already known. No robust estimation.

    Returns:
        X: (M,3) points passing the triangulation filters of config.triangulation
        keep: (N,) bool mask over the correspondences
    """
    config, logger = _prepare(config, width, height, logger)
    tc = config.triangulation

    x1, x2 = _to_bearings(pts1, pts2, width, height, width2, height2)

    with timed(logger, "Triangulation with known poses"):
        X, keep = triangulate_and_filter(
            x1, x2,
            np.asarray(R1, np.float64), np.asarray(t1, np.float64).reshape(3, 1),
            np.asarray(R2, np.float64), np.asarray(t2, np.float64).reshape(3, 1),
            max_angular_error_rad=np.deg2rad(tc.max_angular_error_deg),
            min_triang_angle_deg=tc.min_triang_angle_deg,
            max_distance=tc.max_distance,
            eps_w=tc.eps_w,
        )

    if logger:
        logger.info(f"Triangulated points kept: {X.shape[0]}/{x1.shape[1]} correspondences")
    return X, keep


def _prepare(config: Optional[SphericalPoseConfig], width, height, logger):
    config = get_default_config() if config is None else copy.deepcopy(config)
    if logger is None and config.verbose:
        logger = make_logger()
    config.apply_adaptive_params(width, height)
    return config, logger


def _to_bearings(pts1, pts2, width, height, width2, height2):
    x1 = planar_to_spherical(pts1, width, height)
    x2 = planar_to_spherical(
        pts2,
        width if width2 is None else width2,
        height if height2 is None else height2,
    )
    return x1, x2
