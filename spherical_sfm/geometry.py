# spherical_sfm/geometry.py
"""
Public geometry API.

Internals live in spherical_sfm/geometry_utils/.
Import from here in the rest of the codebase to avoid deep-path imports.
"""

from spherical_sfm.geometry_utils.spherical import (
    planar_to_spherical,
    spherical_to_planar,
    normalize_bearings,
    angular_distance,
)
from spherical_sfm.geometry_utils.epipolar import (
    essential_from_pose,
    encode_epipolar_equation,
    epipolar_residuals,
    AngularError,
)
from spherical_sfm.geometry_utils.essential import (
    Mat3Model,
    EightPointRelativePoseSolver,
    project_to_essential,
)
from spherical_sfm.geometry_utils.kernel import (
    PointFittingKernel,
    EssentialKernelSpherical,
)
from spherical_sfm.geometry_utils.projective import (
    projection_matrix,
    camera_center,
    nullspace,
    homogeneous_to_euclidean,
)
from spherical_sfm.geometry_utils.reprojection import project_to_bearings, reprojection_errors
from spherical_sfm.geometry_utils.triangulation import (
    triangulate_dlt_homogeneous,
    triangulate_dlt,
    triangulate_bearings,
    triangulate_and_filter,
    triangulation_angles_deg,
    spherical_cheirality_mask,
)
from spherical_sfm.geometry_utils.twoview import (
    recover_pose_from_bearings,
    decompose_essential,
    rotation_angle_deg,
    TwoViewResult,
)

__all__ = [
    "planar_to_spherical",
    "spherical_to_planar",
    "normalize_bearings",
    "angular_distance",
    "essential_from_pose",
    "encode_epipolar_equation",
    "epipolar_residuals",
    "AngularError",
    "Mat3Model",
    "EightPointRelativePoseSolver",
    "project_to_essential",
    "PointFittingKernel",
    "EssentialKernelSpherical",
    "projection_matrix",
    "camera_center",
    "nullspace",
    "homogeneous_to_euclidean",
    "project_to_bearings",
    "reprojection_errors",
    "triangulate_dlt_homogeneous",
    "triangulate_dlt",
    "triangulate_bearings",
    "triangulate_and_filter",
    "triangulation_angles_deg",
    "spherical_cheirality_mask",
    "recover_pose_from_bearings",
    "decompose_essential",
    "rotation_angle_deg",
    "TwoViewResult",
]
