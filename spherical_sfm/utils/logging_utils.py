import logging
import time
from contextlib import contextmanager
from typing import Dict, Optional

_FMT = "[%(levelname)s] %(message)s"


def make_logger(name: str = "spherical_sfm", level: int = logging.INFO, fmt: str = _FMT) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter(fmt))
        logger.addHandler(h)
    logger.setLevel(level)
    return logger


@contextmanager
def timed(logger: Optional[logging.Logger], msg: str, timings: Optional[Dict[str, float]] = None):
    """Log start/end of a stage; store its duration in timings[msg] when given."""
    t0 = time.perf_counter()
    if logger:
        logger.info(f"{msg} ...")
    yield
    dt = time.perf_counter() - t0
    if timings is not None:
        timings[msg] = dt
    if logger:
        logger.info(f"{msg} done in {dt:.3f}s")
