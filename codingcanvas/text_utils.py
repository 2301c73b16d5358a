"""
Misc. utility functions for canvas text processing.

.. codeauthor:: Coding Canvas contributors
"""

import math
from typing import AbstractSet, Iterable, List, Optional, Sequence

import polars as pl

from .config import CONFIG, PATTERNS
from .data import load_stop_words
from .models import Coding

ENGLISH_STOP_WORDS = load_stop_words("english")
DOMAIN_STOP_WORDS = load_stop_words("domain")
DEFAULT_STOP_WORDS = ENGLISH_STOP_WORDS | DOMAIN_STOP_WORDS

CODING_SCHEMA = {
    "coding_id": pl.String,
    "transcript_id": pl.String,
    "question_id": pl.String,
    "start_offset": pl.Int64,
    "end_offset": pl.Int64,
    "coded_text": pl.String,
}


def tokenize(
    text: str, stop_words: AbstractSet[str] = DEFAULT_STOP_WORDS
) -> List[str]:
    """
    Normalize text into content-bearing tokens.

    Lowercases, blanks out everything except letters, digits, whitespace,
    apostrophes and hyphens, splits on whitespace, then drops short tokens
    and stop words.

    :param text: Raw text, typically a coding's ``coded_text``
    :param stop_words: Words to exclude (already lowercase)
    :return: Tokens in text order
    """
    if not text:
        return []
    cleaned = PATTERNS.NON_TOKEN_CHARS.sub(" ", text.lower())
    return [
        token
        for token in PATTERNS.WHITESPACE_RUN.split(cleaned)
        if len(token) >= CONFIG.MIN_TOKEN_LENGTH and token not in stop_words
    ]


def round_half_up(value: float, digits: int = 0) -> float:
    """
    Round halves upward, matching the dashboard's
    ``Math.round(x * 10**d) / 10**d`` rather than Python's banker's rounding.
    """
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percent(part: float, whole: float, digits: int = CONFIG.PERCENT_DIGITS) -> float:
    """``part / whole * 100`` rounded, or 0 for an empty whole."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100, digits)


def select_ids(records: Sequence, ids: Optional[Sequence[str]]) -> list:
    """Keep records whose id is in ``ids``; an empty or missing filter keeps all."""
    if not ids:
        return list(records)
    wanted = set(ids)
    return [r for r in records if r.id in wanted]


def filter_codings_by_question(
    codings: Sequence[Coding], question_ids: Optional[Sequence[str]]
) -> List[Coding]:
    if not question_ids:
        return list(codings)
    wanted = set(question_ids)
    return [c for c in codings if c.question_id in wanted]


def codings_frame(codings: Iterable[Coding]) -> pl.DataFrame:
    """
    Tabulate codings for aggregation, keeping their supplied order.

    :param codings: Coding records
    :return: A polars DataFrame with a ``row`` index, the coding fields
        and the span ``length``
    """
    rows = [
        {
            "coding_id": c.id,
            "transcript_id": c.transcript_id,
            "question_id": c.question_id,
            "start_offset": c.start_offset,
            "end_offset": c.end_offset,
            "coded_text": c.coded_text,
        }
        for c in codings
    ]
    return (
        pl.DataFrame(rows, schema=CODING_SCHEMA)
        .with_row_index("row")
        .with_columns(
            pl.col("end_offset").sub(pl.col("start_offset")).alias("length")
        )
    )


def context_window(content: str, start: int, end: int) -> str:
    """
    Text surrounding ``content[start:end]``, marked with an ellipsis on each
    side that was cut off.
    """
    window = CONFIG.CONTEXT_WINDOW
    left = max(0, start - window)
    right = min(len(content), end + window)
    prefix = CONFIG.CONTEXT_ELLIPSIS if left > 0 else ""
    suffix = CONFIG.CONTEXT_ELLIPSIS if right < len(content) else ""
    return prefix + content[left:right] + suffix
