"""
Configuration constants for codingcanvas.

.. codeauthor:: Coding Canvas contributors
"""

from dataclasses import dataclass
import re


@dataclass
class AnalysisConfig:
    """Configuration constants for canvas computations."""

    # Span search
    CONTEXT_WINDOW: int = 50
    CONTEXT_ELLIPSIS: str = "..."

    # Framework matrix
    MATRIX_EXCERPT_LIMIT: int = 5

    # Tokenizer
    MIN_TOKEN_LENGTH: int = 3

    # Word frequency
    DEFAULT_MAX_WORDS: int = 100

    # Clustering
    DEFAULT_K: int = 3
    KMEANS_RESTARTS: int = 3
    KMEANS_MAX_ITER: int = 50
    CLUSTER_SEGMENT_LIMIT: int = 20
    CLUSTER_KEYWORD_LIMIT: int = 5
    LARGE_CLUSTERING_THRESHOLD: int = 5000  # codings

    # Co-occurrence
    DEFAULT_MIN_OVERLAP: int = 1

    # Rounding
    PERCENT_DIGITS: int = 1
    STAT_DIGITS: int = 2

    # Research statistics
    K_ANONYMITY_THRESHOLD: int = 5
    HISTOGRAM_BINS: int = 5
    HISTOGRAM_MIN: float = 0.0
    HISTOGRAM_MAX: float = 5.0
    MIN_CORRELATION_SAMPLES: int = 3

    # Performance reporting
    SLOW_OPERATION_SECONDS: float = 5.0


@dataclass
class RegexPatterns:
    """Compiled regex patterns for text processing."""

    NON_TOKEN_CHARS = re.compile(r"[^a-z0-9\s'-]")
    WHITESPACE_RUN = re.compile(r"\s+")


# Global configuration instance
CONFIG = AnalysisConfig()
PATTERNS = RegexPatterns()
