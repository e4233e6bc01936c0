"""
scripts/run_spherical_pose.py

Relative pose + triangulation between two equirectangular panoramas
from a file of pixel correspondences.
"""

import argparse
import logging
from pathlib import Path

import numpy as np

from spherical_sfm.data_io.camera import read_pose, write_pose
from spherical_sfm.data_io.correspondences import read_correspondences
from spherical_sfm.data_io.images import image_size
from spherical_sfm.data_io.pointcloud_io import write_ply
from spherical_sfm.errors import EstimationError
from spherical_sfm.geometry import rotation_angle_deg
from spherical_sfm.pipeline import (
    SphericalPoseConfig,
    estimate_spherical_relative_pose,
    get_default_config,
    get_noisy_config,
    load_config,
    triangulate_with_known_poses,
)
from spherical_sfm.utils.logging_utils import make_logger


def build_config_from_args(args) -> SphericalPoseConfig:
    """
    Build SphericalPoseConfig from command line arguments.

    Starts with a config file or preset, then overrides with any
    explicitly provided arguments.
    """
    if args.config is not None:
        config = load_config(args.config)
    elif args.preset == "noisy":
        config = get_noisy_config()
    else:
        config = get_default_config()

    if args.threshold_deg is not None:
        config.ransac.threshold_deg = args.threshold_deg
    if args.max_iterations is not None:
        config.ransac.max_iterations = args.max_iterations
    if args.seed is not None:
        config.ransac.seed = args.seed
    if args.min_triang_angle_deg is not None:
        config.triangulation.min_triang_angle_deg = args.min_triang_angle_deg

    config.verbose = args.verbose or config.verbose
    return config


def resolve_sizes(args):
    """(width1, height1, width2, height2) from explicit sizes or the panorama files."""
    if args.image1 is not None:
        w1, h1 = image_size(args.image1)
    elif args.width is not None and args.height is not None:
        w1, h1 = args.width, args.height
    else:
        raise SystemExit("Provide --width/--height or --image1 (and optionally --image2).")

    if args.image2 is not None:
        w2, h2 = image_size(args.image2)
    else:
        w2, h2 = w1, h1
    return w1, h1, w2, h2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Spherical relative pose from equirectangular correspondences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Known panorama size
  python -m scripts.run_spherical_pose --matches Data/pair/matches.txt --width 3600 --height 1800

  # Read sizes from the panoramas and save outputs
  python -m scripts.run_spherical_pose --matches Data/pair/matches.txt \\
      --image1 Data/pair/a.jpg --image2 Data/pair/b.jpg --out_pose out/pose.json --out_ply out/points.ply

  # Known extrinsics: triangulate only, no pose estimation
  python -m scripts.run_spherical_pose --matches Data/pair/matches.txt --width 3600 --height 1800 \\
      --pose1 Data/pair/cam_a.yaml --pose2 Data/pair/cam_b.yaml --out_ply out/points.ply
        """
    )

    # =========================================================
    # INPUT
    # =========================================================
    parser.add_argument("--matches", type=str, required=True,
                        help="Correspondence file (x1 y1 x2 y2 per line, or JSON/YAML with pts1/pts2)")
    parser.add_argument("--width", type=int, default=None, help="Panorama width in pixels")
    parser.add_argument("--height", type=int, default=None, help="Panorama height in pixels")
    parser.add_argument("--image1", type=str, default=None, help="First panorama (size is read from it)")
    parser.add_argument("--image2", type=str, default=None, help="Second panorama (defaults to image1 size)")
    parser.add_argument("--pose1", type=str, default=None,
                        help="Known extrinsics of camera 1 (R/t, P or 12 numbers); needs --pose2")
    parser.add_argument("--pose2", type=str, default=None, help="Known extrinsics of camera 2")

    # =========================================================
    # CONFIG
    # =========================================================
    parser.add_argument("--config", type=str, default=None, help="YAML/JSON config file")
    parser.add_argument("--preset", type=str, default="default", choices=["default", "noisy"])
    parser.add_argument("--threshold_deg", type=float, default=None, help="Angular inlier threshold")
    parser.add_argument("--max_iterations", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--min_triang_angle_deg", type=float, default=None)

    # =========================================================
    # OUTPUT
    # =========================================================
    parser.add_argument("--out_pose", type=str, default=None, help="Write R, t, E to .json/.yaml")
    parser.add_argument("--out_ply", type=str, default=None, help="Write triangulated points to PLY")
    parser.add_argument("--verbose", action="store_true")
    return parser


def run_known_poses(args, config, logger, pts1, pts2, sizes) -> int:
    """Triangulate with the extrinsics read from --pose1/--pose2."""
    w1, h1, w2, h2 = sizes
    R1, t1 = read_pose(args.pose1)
    R2, t2 = read_pose(args.pose2)

    X, keep = triangulate_with_known_poses(
        pts1, pts2, w1, h1, R1, t1, R2, t2,
        config=config, width2=w2, height2=h2, logger=logger,
    )
    if not keep.any():
        logger.error("No correspondence survived triangulation with the given poses.")
        return 1

    if args.out_ply:
        write_ply(args.out_ply, X)
        logger.info(f"Points written to {Path(args.out_ply)}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = build_config_from_args(args)
    if args.verbose:
        level = logging.DEBUG
    elif config.verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logger = make_logger(level=level)

    if (args.pose1 is None) != (args.pose2 is None):
        raise SystemExit("--pose1 and --pose2 must be given together.")

    pts1, pts2 = read_correspondences(args.matches)
    w1, h1, w2, h2 = resolve_sizes(args)
    logger.info(f"Loaded {pts1.shape[1]} correspondences from {args.matches}")

    if args.pose1 is not None:
        return run_known_poses(args, config, logger, pts1, pts2, (w1, h1, w2, h2))

    try:
        result = estimate_spherical_relative_pose(
            pts1, pts2, w1, h1, config=config, width2=w2, height2=h2, logger=logger,
        )
    except EstimationError as e:
        logger.error(f"Estimation failed: {e}")
        return 1

    logger.info(f"Inliers: {int(result.inlier_mask.sum())}/{pts1.shape[1]}")
    logger.info(f"Rotation: {rotation_angle_deg(result.R):.3f} deg")
    logger.info(f"Translation direction: {np.round(result.t.ravel(), 4).tolist()}")

    if args.out_pose:
        write_pose(
            args.out_pose, result.R, result.t, E=result.E,
            extra={"n_inliers": int(result.inlier_mask.sum()), "n_points": int(result.points.shape[0])},
        )
        logger.info(f"Pose written to {Path(args.out_pose)}")

    if args.out_ply:
        write_ply(args.out_ply, result.points)
        logger.info(f"Points written to {Path(args.out_ply)}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
