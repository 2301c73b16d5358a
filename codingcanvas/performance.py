"""
Performance monitoring utilities for codingcanvas.

Canvas computations are synchronous and run inside a single request, so the
only instrumentation needed is a timer around each analysis that reports
operations slow enough to matter.

Classes:
    PerformanceMonitor: Timing context manager for analyses

Functions:
    monitored: Decorator running a function inside a PerformanceMonitor
    warn_if_large_clustering: Warn before clustering very large inputs

Example:
    Performance monitoring::

        from codingcanvas.performance import PerformanceMonitor

        with PerformanceMonitor("Clustering") as monitor:
            result = compute_clusters(codings, k=4)

        print(f"Operation took {monitor.elapsed_time:.2f} seconds")

.. codeauthor:: Coding Canvas contributors
"""

import time
import warnings
from functools import wraps
from typing import Callable, Optional

from .config import CONFIG
from .validation import PerformanceWarning


class PerformanceMonitor:
    """Monitor the wall-clock time of one operation."""

    def __init__(self, operation: str, threshold: Optional[float] = None):
        self.operation = operation
        self.threshold = (
            CONFIG.SLOW_OPERATION_SECONDS if threshold is None else threshold
        )
        self.start_time = None
        self.end_time = None

    @property
    def elapsed_time(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return end - self.start_time

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        elapsed = self.elapsed_time

        if elapsed > self.threshold:
            print(f"Performance: {self.operation} completed in {elapsed:.2f}s")


def monitored(operation: str) -> Callable:
    """Decorator to time a function with PerformanceMonitor."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            with PerformanceMonitor(operation):
                return func(*args, **kwargs)

        return wrapper

    return decorator


def warn_if_large_clustering(n_documents: int, vocabulary_size: int) -> None:
    """Clustering holds a dense documents x vocabulary matrix in memory."""
    if n_documents > CONFIG.LARGE_CLUSTERING_THRESHOLD:
        warnings.warn(
            f"Clustering {n_documents:,} codings over a vocabulary of "
            f"{vocabulary_size:,} terms. Consider narrowing questionIds "
            "to reduce memory use and run time.",
            PerformanceWarning,
        )
