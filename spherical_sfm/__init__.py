"""
Relative pose and triangulation for spherical (equirectangular) cameras.
"""

__version__ = "0.1.0"
