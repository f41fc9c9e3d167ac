"""Simple performance measurement for logging"""
import time
import tracemalloc
from contextlib import contextmanager

from .logger import setup_logger

logger = setup_logger(__name__)


@contextmanager
def measure(label: str):
    """
    Log the wall-clock duration of a block

    Peak Python memory is added when tracemalloc is tracing.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        if tracemalloc.is_tracing():
            _, peak = tracemalloc.get_traced_memory()
            logger.info(
                f"Performance [{label}]: {duration_ms:.2f}ms, "
                f"peak memory {peak / (1024 * 1024):.2f}MB"
            )
        else:
            logger.info(f"Performance [{label}]: {duration_ms:.2f}ms")
