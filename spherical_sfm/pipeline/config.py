"""
spherical_sfm/pipeline/config.py

All configuration dataclasses for the spherical two-view pipeline.
ALL default values live here - no hardcoded numbers elsewhere.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Union

from spherical_sfm.data_io.parsing import load_data


@dataclass
class RansacConfig:
    """Parameters for the robust essential matrix estimation."""
    threshold_deg: Optional[float] = None  # Angular inlier threshold (None = use adaptive)
    confidence: float = 0.999              # Probability of drawing one all-inlier sample
    max_iterations: int = 4096
    min_iterations: int = 50
    refit: bool = True                     # Re-solve on the consensus set
    seed: Optional[int] = 0                # None = non-deterministic sampling

    # Adaptive threshold: this many equirectangular pixels at the equator
    adaptive_px: float = 2.0
    adaptive_min_deg: float = 0.05


@dataclass
class TriangulationConfig:
    """Parameters for pose selection and point validation."""
    max_angular_error_deg: float = 1.0     # Max angle between bearing and reconstructed point
    min_triang_angle_deg: float = 1.0      # Minimum triangulation angle
    pose_min_triang_angle_deg: float = 0.0 # Angle gate for pose candidate voting
    max_distance: Optional[float] = None   # Bound on distance to first camera (baseline = 1)
    eps_w: float = 1e-12                   # Below this |w| a point is at infinity


@dataclass
class SphericalPoseConfig:
    """
    Master configuration for spherical relative pose estimation.

    Usage:
        # Default config
        config = SphericalPoseConfig()

        # Modify specific values
        config.ransac.threshold_deg = 0.2
        config.triangulation.min_triang_angle_deg = 2.0

        # From a YAML/JSON file
        config = load_config("pose.yaml")
    """
    ransac: RansacConfig = field(default_factory=RansacConfig)
    triangulation: TriangulationConfig = field(default_factory=TriangulationConfig)

    # Logging
    verbose: bool = True

    @classmethod
    def from_dict(cls, d: dict) -> "SphericalPoseConfig":
        """Create config from dictionary (e.g., loaded from YAML/JSON). Unknown keys raise TypeError."""
        d = dict(d or {})
        return cls(
            ransac=RansacConfig(**d.pop("ransac", {})),
            triangulation=TriangulationConfig(**d.pop("triangulation", {})),
            **d,
        )

    def to_dict(self) -> dict:
        """Convert config to dictionary (for saving to YAML/JSON)."""
        return asdict(self)

    def apply_adaptive_params(self, width: float, height: float) -> None:
        """
        Apply adaptive parameters based on panorama size.
        Only fills in None values - explicit values are preserved.
        """
        adaptive = compute_adaptive_params(width, height, self.ransac)

        if self.ransac.threshold_deg is None:
            self.ransac.threshold_deg = adaptive["threshold_deg"]


def compute_adaptive_params(width: float, height: float, ransac: Optional[RansacConfig] = None) -> dict:
    """
    Compute dataset-dependent thresholds based on panorama size.

    One equirectangular pixel spans 360/width degrees of longitude.
    """
    ransac = ransac or RansacConfig()
    deg_per_px = 360.0 / float(max(width, 2 * height))

    params = {}
    params["threshold_deg"] = max(ransac.adaptive_min_deg, ransac.adaptive_px * deg_per_px)
    return params


# ============================================================
# PRESET CONFIGURATIONS
# ============================================================

def get_default_config() -> SphericalPoseConfig:
    """Get default configuration."""
    return SphericalPoseConfig()


def get_noisy_config() -> SphericalPoseConfig:
    """Get configuration for low-quality matches (many outliers, loose keypoints)."""
    return SphericalPoseConfig(
        ransac=RansacConfig(
            confidence=0.9999,
            max_iterations=20000,
            min_iterations=200,
            adaptive_px=4.0,
        ),
        triangulation=TriangulationConfig(
            max_angular_error_deg=2.0,
            min_triang_angle_deg=2.0,
        ),
    )


def load_config(path: Union[str, Path]) -> SphericalPoseConfig:
    """Load a SphericalPoseConfig from a .json/.yaml file."""
    obj = load_data(path)
    if not isinstance(obj, dict):
        raise ValueError(f"Config file must contain a mapping, got {type(obj).__name__}: {path}")
    return SphericalPoseConfig.from_dict(obj)
