from __future__ import annotations

from pathlib import Path
from typing import Tuple, Union

from cv2 import IMREAD_UNCHANGED, imread
import numpy as np


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load a single panorama with OpenCV, unchanged (BGR or grayscale).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    img = imread(str(path), IMREAD_UNCHANGED)
    if img is None:
        raise IOError(f"Failed to load image: {path}")
    return img


def image_size(path: Union[str, Path]) -> Tuple[int, int]:
    """
    (width, height) of an equirectangular panorama.

    A proper equirectangular image has width == 2 * height; other ratios
    are accepted, the projection just stretches accordingly.
    """
    h, w = load_image(path).shape[:2]
    return int(w), int(h)
