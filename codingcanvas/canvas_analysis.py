"""
Functions for analysing coded transcripts on a Coding Canvas.

This module provides the main API functions of the package as thin wrappers
around the analyzer classes. Each function takes plain records (or their
camelCase dict form) and returns a JSON-serializable result.

Main Functions:
    search_transcripts: Find keyword or regex matches with context
    compute_cooccurrence: Overlapping coded spans for question pairs
    build_framework_matrix: Case by question excerpt grid
    compute_stats: Coding counts and coverage per question or transcript
    compute_comparison: Per-transcript coding profiles
    compute_word_frequency: Token counts across coded spans
    compute_clusters: TF-IDF k-means themes over coded spans
    auto_code: Code every search match to a question
    run_node: Execute a computed node request

Example:
    Basic canvas workflow::

        import codingcanvas as cc

        transcripts = [
            {"id": "t1", "title": "Interview 1",
             "content": "We reduced waste across the supply chain."},
        ]
        codings = [
            {"id": "c1", "transcriptId": "t1", "questionId": "q1",
             "startOffset": 11, "endOffset": 16, "codedText": "waste"},
        ]

        hits = cc.search_transcripts(transcripts, "waste")
        words = cc.compute_word_frequency(codings)
        result = cc.run_node("stats", {"groupBy": "question"},
                             transcripts=transcripts, codings=codings)

.. codeauthor:: Coding Canvas contributors
"""

from typing import Any, Dict, Mapping, Optional, Sequence, Union

import numpy as np

from .analyzers import (
    AutoCoder,
    ClusterAnalyzer,
    CodingStatsAnalyzer,
    ComparisonAnalyzer,
    CooccurrenceAnalyzer,
    FrameworkMatrixAnalyzer,
    SpanSearchAnalyzer,
    WordFrequencyAnalyzer,
)
from .config import CONFIG
from .models import Case, CanvasData, Coding, Question, Transcript
from .processors import CanvasProcessor

# Initialize analyzer instances for use in wrapper functions
_search_analyzer = SpanSearchAnalyzer()
_cooccurrence_analyzer = CooccurrenceAnalyzer()
_matrix_analyzer = FrameworkMatrixAnalyzer()
_stats_analyzer = CodingStatsAnalyzer()
_comparison_analyzer = ComparisonAnalyzer()
_word_analyzer = WordFrequencyAnalyzer()
_cluster_analyzer = ClusterAnalyzer()
_auto_coder = AutoCoder(_search_analyzer)

Record = Union[Mapping[str, Any], Transcript, Question, Coding, Case]


def _as(kind, records: Optional[Sequence[Record]]) -> list:
    return [r if isinstance(r, kind) else kind.from_dict(r) for r in records or ()]


def search_transcripts(
    transcripts: Sequence[Record],
    pattern: str,
    mode: str = "keyword",
    transcript_ids: Optional[Sequence[str]] = None,
) -> Dict:
    """
    Search transcript text for a keyword or regular expression.

    Keyword mode matches the pattern literally; both modes ignore case.
    Every match carries up to 50 characters of surrounding context.

    Parameters
    ----------
    transcripts : sequence of Transcript or dict
        Transcripts to search.
    pattern : str
        Keyword or regular expression.
    mode : str
        'keyword' or 'regex'.
    transcript_ids : sequence of str, optional
        Restrict the search to these transcripts.

    Returns
    -------
    dict
        ``{"matches": [...], "skipped": [...]}``

    Raises
    ------
    ParameterValidationError
        If ``mode`` is not recognised.
    """
    return _search_analyzer.search(
        _as(Transcript, transcripts), pattern, mode, transcript_ids
    )


def compute_cooccurrence(
    codings: Sequence[Record],
    question_ids: Sequence[str],
    min_overlap: int = CONFIG.DEFAULT_MIN_OVERLAP,
) -> Dict:
    """
    Find overlapping coded spans for every pair of the given questions.

    Fewer than two questions yields ``{"pairs": []}``.
    """
    return _cooccurrence_analyzer.cooccurrence(
        _as(Coding, codings), question_ids, min_overlap
    )


def build_framework_matrix(
    transcripts: Sequence[Record],
    questions: Sequence[Record],
    codings: Sequence[Record],
    cases: Sequence[Record],
    question_ids: Optional[Sequence[str]] = None,
    case_ids: Optional[Sequence[str]] = None,
) -> Dict:
    """Build a case by question grid of coded excerpts."""
    return _matrix_analyzer.matrix(
        _as(Transcript, transcripts),
        _as(Question, questions),
        _as(Coding, codings),
        _as(Case, cases),
        question_ids,
        case_ids,
    )


def compute_stats(
    codings: Sequence[Record],
    questions: Sequence[Record],
    transcripts: Sequence[Record],
    group_by: str = "question",
    question_ids: Optional[Sequence[str]] = None,
) -> Dict:
    """
    Count codings and their share of the total per question or transcript.

    :param group_by: 'question' or 'transcript'
    """
    return _stats_analyzer.stats(
        _as(Coding, codings),
        _as(Question, questions),
        _as(Transcript, transcripts),
        group_by,
        question_ids,
    )


def compute_comparison(
    codings: Sequence[Record],
    transcripts: Sequence[Record],
    questions: Sequence[Record],
    transcript_ids: Optional[Sequence[str]] = None,
    question_ids: Optional[Sequence[str]] = None,
) -> Dict:
    return _comparison_analyzer.comparison(
        _as(Coding, codings),
        _as(Transcript, transcripts),
        _as(Question, questions),
        transcript_ids,
        question_ids,
    )


def compute_word_frequency(
    codings: Sequence[Record],
    question_id: Optional[str] = None,
    max_words: int = CONFIG.DEFAULT_MAX_WORDS,
    stop_words: Optional[Sequence[str]] = None,
) -> Dict:
    """
    Count words across coded spans, most frequent first.

    Parameters
    ----------
    codings : sequence of Coding or dict
        Coded spans to count.
    question_id : str, optional
        Only count spans coded to this question.
    max_words : int
        Maximum number of words to return.
    stop_words : sequence of str, optional
        Extra words to exclude on top of the built-in lists.

    Returns
    -------
    dict
        ``{"words": [{"text": str, "count": int}]}``
    """
    return _word_analyzer.word_frequency(
        _as(Coding, codings), question_id, max_words, stop_words
    )


def compute_clusters(
    codings: Sequence[Record],
    k: int = CONFIG.DEFAULT_K,
    question_ids: Optional[Sequence[str]] = None,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> Dict:
    """
    Group coded spans into themes with TF-IDF vectors and cosine k-means.

    Pass ``seed`` (or a ``numpy.random.Generator`` as ``rng``) for repeatable
    cluster assignments.
    """
    return _cluster_analyzer.cluster(
        _as(Coding, codings), k, question_ids, rng=rng, seed=seed
    )


def auto_code(
    transcripts: Sequence[Record],
    question_id: str,
    pattern: str,
    mode: str = "keyword",
    transcript_ids: Optional[Sequence[str]] = None,
) -> Dict:
    """
    Create a coding for every search match.

    The codings are returned, not stored.

    :return: ``{"created": int, "codings": [coding dicts]}``
    """
    return _auto_coder.auto_code(
        _as(Transcript, transcripts), question_id, pattern, mode, transcript_ids
    )


def run_node(
    node_type: str,
    config: Optional[Mapping[str, Any]] = None,
    transcripts: Sequence[Record] = (),
    questions: Sequence[Record] = (),
    codings: Sequence[Record] = (),
    cases: Sequence[Record] = (),
    rng: Optional[np.random.Generator] = None,
) -> Dict:
    """
    Execute a computed node request.

    :param node_type: One of search, cooccurrence, matrix, stats,
        comparison, wordcloud or cluster
    :param config: The node's camelCase configuration map
    :raises UnknownNodeTypeError: For any other node type
    """
    data = CanvasData(
        transcripts=tuple(_as(Transcript, transcripts)),
        questions=tuple(_as(Question, questions)),
        codings=tuple(_as(Coding, codings)),
        cases=tuple(_as(Case, cases)),
    )
    return CanvasProcessor(rng=rng).run_node(node_type, config, data)
