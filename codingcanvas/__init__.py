"""
codingcanvas: qualitative coding and text analytics for research transcripts.

This package turns transcripts and researcher-drawn coded spans into search
hits, co-occurrence tables, framework matrices, coverage statistics, word
frequencies and thematic clusters. It also provides inter-rater reliability,
descriptive statistics and case sampling for the surrounding research work.
"""

# Core analysis functions
from .canvas_analysis import (
    search_transcripts,
    compute_cooccurrence,
    build_framework_matrix,
    compute_stats,
    compute_comparison,
    compute_word_frequency,
    compute_clusters,
    auto_code,
    run_node,
)

# Modular analyzers and processors
from .analyzers import (
    SpanSearchAnalyzer,
    CooccurrenceAnalyzer,
    FrameworkMatrixAnalyzer,
    CodingStatsAnalyzer,
    ComparisonAnalyzer,
    WordFrequencyAnalyzer,
    ClusterAnalyzer,
    AutoCoder,
)

from .processors import CanvasProcessor

# Records and node configurations
from .models import (
    Transcript,
    Question,
    Coding,
    Case,
    TagAssignment,
    CanvasData,
    SearchConfig,
    CooccurrenceConfig,
    MatrixConfig,
    StatsConfig,
    ComparisonConfig,
    WordCloudConfig,
    ClusterConfig,
    NodeConfig,
    ComputedNode,
)

# Research statistics
from .irr import calculate_irr, cohens_kappa, interpret_kappa
from .statistics import (
    correlation_matrix,
    descriptive_statistics,
    histogram,
    pearson_correlation,
)
from .sampling import (
    SamplingCase,
    maximum_variation,
    extreme_deviant,
    typical_cases,
    purposive_sampling,
    methodology_text,
)

# Text utilities
from .text_utils import tokenize, DEFAULT_STOP_WORDS

# Configuration
from .config import AnalysisConfig, RegexPatterns

# Performance utilities
from .performance import PerformanceMonitor

# Validation and error handling
from .validation import (
    # Exception classes
    CodingCanvasError,
    RecordValidationError,
    ParameterValidationError,
    UnknownNodeTypeError,
    ValidationWarning,
    PerformanceWarning,
    # Validation functions
    validate_choice_parameter,
    check_codings_against_transcripts,
)

# Package metadata
__version__ = "0.1.0"
__author__ = "Coding Canvas contributors"
__email__ = "codingcanvas@example.org"

# Public API - define what gets imported with "from codingcanvas import *"
__all__ = [
    # Core analysis functions
    "search_transcripts",
    "compute_cooccurrence",
    "build_framework_matrix",
    "compute_stats",
    "compute_comparison",
    "compute_word_frequency",
    "compute_clusters",
    "auto_code",
    "run_node",
    # Analyzers and processors
    "SpanSearchAnalyzer",
    "CooccurrenceAnalyzer",
    "FrameworkMatrixAnalyzer",
    "CodingStatsAnalyzer",
    "ComparisonAnalyzer",
    "WordFrequencyAnalyzer",
    "ClusterAnalyzer",
    "AutoCoder",
    "CanvasProcessor",
    # Records and node configurations
    "Transcript",
    "Question",
    "Coding",
    "Case",
    "TagAssignment",
    "CanvasData",
    "SearchConfig",
    "CooccurrenceConfig",
    "MatrixConfig",
    "StatsConfig",
    "ComparisonConfig",
    "WordCloudConfig",
    "ClusterConfig",
    "NodeConfig",
    "ComputedNode",
    # Research statistics
    "calculate_irr",
    "cohens_kappa",
    "interpret_kappa",
    "correlation_matrix",
    "descriptive_statistics",
    "histogram",
    "pearson_correlation",
    "SamplingCase",
    "maximum_variation",
    "extreme_deviant",
    "typical_cases",
    "purposive_sampling",
    "methodology_text",
    # Text utilities
    "tokenize",
    "DEFAULT_STOP_WORDS",
    # Configuration
    "AnalysisConfig",
    "RegexPatterns",
    # Performance utilities
    "PerformanceMonitor",
    # Validation and error handling
    "CodingCanvasError",
    "RecordValidationError",
    "ParameterValidationError",
    "UnknownNodeTypeError",
    "ValidationWarning",
    "PerformanceWarning",
    "validate_choice_parameter",
    "check_codings_against_transcripts",
]
