from .ransac import RansacResult, ransac, required_iterations

__all__ = ["RansacResult", "ransac", "required_iterations"]
