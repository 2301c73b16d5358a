"""
Descriptive statistics for research dashboards.

Small-sample and degenerate inputs return neutral values (0, or a suppressed
record) instead of raising; callers should check ``n`` before reading a
statistic as meaningful.

.. codeauthor:: Coding Canvas contributors
"""

import math
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .config import CONFIG
from .performance import monitored
from .text_utils import round_half_up
from .validation import validate_positive_int


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0
    return float(np.mean(values))


def median(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0
    return float(np.median(values))


def standard_deviation(values: Sequence[float]) -> float:
    """Sample standard deviation (n - 1 divisor); 0 for fewer than two values."""
    if len(values) < 2:
        return 0
    return float(np.std(values, ddof=1))


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson's r over the first ``min(len(x), len(y))`` pairs.

    :return: r, or 0 with fewer than three pairs or a constant series
    """
    n = min(len(x), len(y))
    if n < CONFIG.MIN_CORRELATION_SAMPLES:
        return 0

    dx = np.asarray(x[:n], dtype=float)
    dy = np.asarray(y[:n], dtype=float)
    dx = dx - dx.mean()
    dy = dy - dy.mean()

    denom = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))
    if denom == 0:
        return 0
    return float(np.sum(dx * dy) / denom)


@monitored("Correlation matrix")
def correlation_matrix(
    score_records: Sequence[Mapping[str, float]], domain_keys: Sequence[str]
) -> Dict[str, Dict[str, float]]:
    """
    Symmetric matrix of Pearson correlations between domains.

    :param score_records: One mapping of domain -> score per case; a missing
        domain counts as 0
    :param domain_keys: Domains to correlate, in output order
    :return: ``matrix[a][b]`` rounded to two decimals, with 1.0 on the diagonal
    """
    vectors = {
        key: [record.get(key, 0) or 0 for record in score_records]
        for key in domain_keys
    }
    matrix: Dict[str, Dict[str, float]] = {key: {} for key in domain_keys}
    for i, first in enumerate(domain_keys):
        matrix[first][first] = 1.0
        for second in domain_keys[i + 1:]:
            r = round_half_up(
                pearson_correlation(vectors[first], vectors[second]),
                CONFIG.STAT_DIGITS,
            )
            matrix[first][second] = r
            matrix[second][first] = r
    return matrix


def histogram(
    values: Sequence[float],
    bins: int = CONFIG.HISTOGRAM_BINS,
    min_value: float = CONFIG.HISTOGRAM_MIN,
    max_value: float = CONFIG.HISTOGRAM_MAX,
) -> List[Dict[str, float]]:
    """
    Count values into equal-width bins over ``[min_value, max_value]``.

    The last bin also takes values at (or above) ``max_value``, infinity
    included; values below ``min_value`` and NaN are ignored.

    :return: ``[{binStart, binEnd, count}]``
    """
    validate_positive_int("bins", bins, "in histogram")

    width = (max_value - min_value) / bins
    result = [
        {
            "binStart": round_half_up(min_value + i * width, CONFIG.STAT_DIGITS),
            "binEnd": round_half_up(min_value + (i + 1) * width, CONFIG.STAT_DIGITS),
            "count": 0,
        }
        for i in range(bins)
    ]

    if width <= 0:
        return result

    for value in values:
        if math.isnan(value):
            continue
        if value >= max_value:
            index = bins - 1
        else:
            index = min(int(np.floor((value - min_value) / width)), bins - 1)
        if index >= 0:
            result[index]["count"] += 1

    return result


def describe(values: Sequence[float]) -> Dict[str, float]:
    """n, mean, median and sd rounded to two decimals; min and max as given."""
    digits = CONFIG.STAT_DIGITS
    n = len(values)
    return {
        "n": n,
        "mean": round_half_up(mean(values), digits),
        "median": round_half_up(median(values), digits),
        "sd": round_half_up(standard_deviation(values), digits),
        "min": float(min(values)) if n else 0,
        "max": float(max(values)) if n else 0,
    }


def descriptive_statistics(
    scores_by_domain: Mapping[str, Sequence[float]],
    k_threshold: Optional[int] = None,
) -> List[Dict]:
    """
    Describe each domain's scores, suppressing small groups.

    A domain with fewer than ``k_threshold`` scores is reported with
    ``suppressed: True`` and null statistics so that individual cases cannot
    be singled out (k-anonymity). Pass ``k_threshold=0`` to disable
    suppression for trusted research access.

    :param scores_by_domain: Domain key -> scores, in output order
    :param k_threshold: Minimum group size; defaults to the configured value
    :return: ``[{domain, n, suppressed, mean, median, sd, min, max}]``
    """
    if k_threshold is None:
        k_threshold = CONFIG.K_ANONYMITY_THRESHOLD

    records = []
    for domain, scores in scores_by_domain.items():
        scores = list(scores)
        if len(scores) < k_threshold:
            records.append(
                {
                    "domain": domain,
                    "n": len(scores),
                    "suppressed": True,
                    "mean": None,
                    "median": None,
                    "sd": None,
                    "min": None,
                    "max": None,
                }
            )
        else:
            records.append({"domain": domain, "suppressed": False, **describe(scores)})
    return records


def score_records(
    scores_by_domain: Mapping[str, Sequence[float]],
) -> List[Dict[str, float]]:
    """
    Turn per-domain score vectors into per-case records for
    :func:`correlation_matrix`. Vectors are aligned by position; a shorter
    vector leaves its domain out of the later records.
    """
    n = max((len(v) for v in scores_by_domain.values()), default=0)
    records = []
    for i in range(n):
        records.append(
            {domain: v[i] for domain, v in scores_by_domain.items() if i < len(v)}
        )
    return records
