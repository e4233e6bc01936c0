"""
spherical_sfm/pipeline/__init__.py

Spherical two-view pipeline.

Usage:
    from spherical_sfm.pipeline import estimate_spherical_relative_pose, SphericalPoseConfig

    # Simple usage
    result = estimate_spherical_relative_pose(pts1, pts2, width=3600, height=1800)

    # With config
    config = SphericalPoseConfig()
    config.ransac.threshold_deg = 0.2
    result = estimate_spherical_relative_pose(pts1, pts2, 3600, 1800, config=config)
"""

from .config import (
    SphericalPoseConfig,
    RansacConfig,
    TriangulationConfig,
    compute_adaptive_params,
    get_default_config,
    get_noisy_config,
    load_config,
)

from .relative_pose import (
    SphericalPoseResult,
    estimate_spherical_relative_pose,
    triangulate_with_known_poses,
)

__all__ = [
    # Config
    "SphericalPoseConfig",
    "RansacConfig",
    "TriangulationConfig",
    "compute_adaptive_params",
    "get_default_config",
    "get_noisy_config",
    "load_config",
    # Entry points
    "SphericalPoseResult",
    "estimate_spherical_relative_pose",
    "triangulate_with_known_poses",
]
