"""
Case selection strategies for qualitative follow-up research.

Each strategy takes scored cases and returns the selected ones together with
a human-readable justification, ready to be quoted in a methods section.

.. codeauthor:: Coding Canvas contributors
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from .validation import validate_choice_parameter, validate_positive_int

SAMPLING_METHODS = ("maximum_variation", "extreme_deviant", "typical", "purposive")


@dataclass(frozen=True)
class SamplingCase:
    assessment_id: str
    label: str
    overall_score: float
    domain_scores: Mapping[str, float] = field(default_factory=dict)
    context: str = ""

    def to_dict(self) -> Dict:
        return {
            "assessmentId": self.assessment_id,
            "label": self.label,
            "overallScore": self.overall_score,
            "domainScores": dict(self.domain_scores),
            "context": self.context,
        }


def _selected(case: SamplingCase, justification: str) -> Dict:
    return {**case.to_dict(), "justification": justification}


def euclidean_distance(
    a: Mapping[str, float], b: Mapping[str, float], keys: Sequence[str]
) -> float:
    """Distance over ``keys``; a missing domain counts as 0."""
    diff = np.array([(a.get(k) or 0) - (b.get(k) or 0) for k in keys], dtype=float)
    return float(np.sqrt(np.sum(diff * diff)))


def maximum_variation(
    cases: Sequence[SamplingCase], n: int, domain_keys: Sequence[str]
) -> List[Dict]:
    """
    Greedy maximum-variation sample.

    Anchors on the highest overall score, then repeatedly adds the case whose
    nearest already-selected case is furthest away in domain-score space.
    """
    validate_positive_int("n", n, "in maximum_variation", allow_zero=True)
    if len(cases) <= n:
        return [_selected(c, "All available cases selected") for c in cases]
    if n == 0:
        return []

    remaining = sorted(cases, key=lambda c: c.overall_score, reverse=True)
    first = remaining.pop(0)
    chosen = [first]
    selected = [
        _selected(first, "Highest overall score: initial anchor for maximum variation")
    ]

    while len(selected) < n and remaining:
        best_index, best_distance = 0, -1.0
        for i, candidate in enumerate(remaining):
            nearest = min(
                euclidean_distance(candidate.domain_scores, s.domain_scores, domain_keys)
                for s in chosen
            )
            if nearest > best_distance:
                best_index, best_distance = i, nearest

        picked = remaining.pop(best_index)
        chosen.append(picked)
        selected.append(
            _selected(
                picked,
                "Maximises distance from existing selections "
                f"(min Euclidean distance: {best_distance:.2f})",
            )
        )

    return selected


def extreme_deviant(cases: Sequence[SamplingCase], n: int) -> List[Dict]:
    """The ceil(n/2) lowest and floor(n/2) highest scoring cases."""
    validate_positive_int("n", n, "in extreme_deviant", allow_zero=True)
    ordered = sorted(cases, key=lambda c: c.overall_score)
    bottom = ordered[: (n + 1) // 2]
    top = ordered[max(0, len(ordered) - n // 2):] if n // 2 else []

    selected = [
        _selected(
            c,
            f"Low-scoring case (score: {c.overall_score:.2f}): bottom of distribution",
        )
        for c in bottom
    ] + [
        _selected(
            c,
            f"High-scoring case (score: {c.overall_score:.2f}): top of distribution",
        )
        for c in top
    ]
    return selected[:n]


def typical_cases(
    cases: Sequence[SamplingCase], n: int, domain_keys: Sequence[str]
) -> List[Dict]:
    """The n cases closest to the mean domain-score profile."""
    validate_positive_int("n", n, "in typical_cases", allow_zero=True)
    if not cases:
        return []

    centre = {
        key: float(np.mean([c.domain_scores.get(key) or 0 for c in cases]))
        for key in domain_keys
    }
    ranked = sorted(
        ((euclidean_distance(c.domain_scores, centre, domain_keys), c) for c in cases),
        key=lambda pair: pair[0],
    )
    return [
        _selected(c, f"Closest to mean score profile (distance: {distance:.2f})")
        for distance, c in ranked[:n]
    ]


def purposive_sampling(
    cases: Sequence[SamplingCase],
    n: int,
    criteria: Mapping[str, Optional[str]],
    case_attributes: Mapping[str, Mapping[str, str]],
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> List[Dict]:
    """
    Random sample from the cases matching every given criterion.

    :param criteria: Attribute -> required value (e.g. country, sector, size);
        empty values are ignored
    :param case_attributes: Assessment id -> that case's attributes
    :param rng: Random generator for the shuffle
    :param seed: Seed for a fresh generator when ``rng`` is not given
    """
    validate_positive_int("n", n, "in purposive_sampling", allow_zero=True)
    active = {k: v for k, v in criteria.items() if v}

    eligible = [
        c
        for c in cases
        if c.assessment_id in case_attributes
        and all(
            case_attributes[c.assessment_id].get(k) == v for k, v in active.items()
        )
    ]

    if rng is None:
        rng = np.random.default_rng(seed)
    order = rng.permutation(len(eligible))

    description = ", ".join(f"{k}={v}" for k, v in active.items())
    return [
        _selected(
            eligible[i],
            f"Randomly selected from cases matching criteria: {description}",
        )
        for i in order[:n]
    ]


def methodology_text(method: str, n: int, total_cases: int, n_domains: int = 8) -> str:
    """Methods-section paragraph describing how the sample was drawn."""
    validate_choice_parameter("method", method, SAMPLING_METHODS, "in methodology_text")

    if method == "maximum_variation":
        return (
            f"Maximum variation sampling was employed to select {n} cases from a "
            f"pool of {total_cases} completed assessments. Cases were iteratively "
            "selected to maximise Euclidean distance in the multi-dimensional score "
            f"space across all {n_domains} assessment domains, ensuring the sample "
            "captures the widest possible range of organisational profiles and "
            "performance levels (Patton, 2015)."
        )
    if method == "extreme_deviant":
        return (
            f"Extreme/deviant case sampling was used to identify {n} cases from "
            f"{total_cases} completed assessments. The sample comprises the "
            f"{(n + 1) // 2} lowest-scoring and {n // 2} highest-scoring "
            "organisations by overall assessment score, enabling analysis of "
            "factors differentiating high-performing organisations from those in "
            "earlier stages of development (Flyvbjerg, 2006)."
        )
    if method == "typical":
        return (
            f"Typical case sampling was applied to select {n} cases from "
            f"{total_cases} completed assessments. Cases closest to the mean score "
            "profile across all domains were selected using Euclidean distance, "
            'providing a sample representative of the "typical" organisation in '
            "the dataset (Patton, 2015)."
        )
    return (
        f"Purposive sampling was used to select {n} cases from {total_cases} "
        "completed assessments, filtered by specified criteria (country, sector, "
        "and/or organisation size). From the qualifying cases, a random subsample "
        "was drawn using Fisher-Yates shuffling to reduce selection bias within "
        "the purposive frame (Palinkas et al., 2015)."
    )
