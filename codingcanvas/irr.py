"""
Inter-rater reliability with Cohen's kappa.

Two raters tag the same responses; for every tag each rater either applied
it to a response or did not. Agreement is measured per tag with Cohen's
kappa on the resulting 2x2 table and summarised as the unweighted mean of
the per-tag kappas.

Example:
    Comparing two coders::

        from codingcanvas.irr import calculate_irr

        result = calculate_irr(
            ["r1", "r2", "r3"],
            {"r1": {"X"}, "r2": {"X"}},
            {"r1": {"X"}},
            ["X"],
        )
        print(result["overallKappa"], result["overallInterpretation"])

.. codeauthor:: Coding Canvas contributors
"""

import math
from typing import AbstractSet, Dict, Iterable, List, Mapping, Sequence, Set, Tuple

from .config import CONFIG
from .models import TagAssignment
from .performance import monitored
from .text_utils import round_half_up

KAPPA_BANDS = (
    (0.0, "Poor"),
    (0.21, "Slight"),
    (0.41, "Fair"),
    (0.61, "Moderate"),
    (0.81, "Substantial"),
)


def interpret_kappa(kappa: float) -> str:
    """Landis & Koch style label for a kappa value."""
    for upper, label in KAPPA_BANDS:
        if kappa < upper:
            return label
    return "Almost Perfect"


def cohens_kappa(
    rater1: Sequence[bool], rater2: Sequence[bool]
) -> Tuple[float, float, float]:
    """
    Cohen's kappa for paired binary decisions.

    :param rater1: First rater's decision per unit
    :param rater2: Second rater's decision per unit, aligned with ``rater1``
    :return: (observed agreement, chance agreement, kappa rounded to two
        decimals). With no units all three are 0; when chance agreement is
        total, kappa is 1.
    """
    n = len(rater1)
    if n == 0:
        return 0, 0, 0

    both_yes = only_first = only_second = both_no = 0
    for first, second in zip(rater1, rater2):
        if first and second:
            both_yes += 1
        elif first:
            only_first += 1
        elif second:
            only_second += 1
        else:
            both_no += 1

    observed = (both_yes + both_no) / n
    yes_first = (both_yes + only_first) / n
    yes_second = (both_yes + only_second) / n
    no_first = (only_second + both_no) / n
    no_second = (only_first + both_no) / n
    expected = yes_first * yes_second + no_first * no_second

    kappa = 1 if expected == 1 else (observed - expected) / (1 - expected)
    return observed, expected, round_half_up(kappa, CONFIG.STAT_DIGITS)


@monitored("Inter-rater reliability")
def calculate_irr(
    shared_response_ids: Sequence[str],
    rater1_tags: Mapping[str, AbstractSet[str]],
    rater2_tags: Mapping[str, AbstractSet[str]],
    all_tag_names: Sequence[str],
) -> Dict:
    """
    Per-tag and overall agreement between two raters.

    Args:
        shared_response_ids: Responses both raters coded.
        rater1_tags: Response id -> tags the first rater applied.
        rater2_tags: Response id -> tags the second rater applied.
        all_tag_names: Tag vocabulary to evaluate.

    Returns:
        A dict with ``overallKappa``, ``overallInterpretation``,
        ``percentageAgreement`` (integer percent of matching decisions across
        all tags and responses), ``totalSharedResponses`` and ``perTag``
        records (tagName, observed, expected, kappa, interpretation,
        rater1Count, rater2Count, bothCount, totalResponses).
    """
    digits = CONFIG.STAT_DIGITS
    per_tag = []
    total_agreed = 0
    total_decisions = 0

    for tag_name in all_tag_names:
        first = [tag_name in rater1_tags.get(rid, ()) for rid in shared_response_ids]
        second = [tag_name in rater2_tags.get(rid, ()) for rid in shared_response_ids]

        observed, expected, kappa = cohens_kappa(first, second)

        per_tag.append(
            {
                "tagName": tag_name,
                "observed": round_half_up(observed, digits),
                "expected": round_half_up(expected, digits),
                "kappa": kappa,
                "interpretation": interpret_kappa(kappa),
                "rater1Count": sum(first),
                "rater2Count": sum(second),
                "bothCount": sum(a and b for a, b in zip(first, second)),
                "totalResponses": len(shared_response_ids),
            }
        )

        total_agreed += sum(a == b for a, b in zip(first, second))
        total_decisions += len(shared_response_ids)

    percentage_agreement = (
        int(round_half_up(total_agreed / total_decisions * 100))
        if total_decisions > 0
        else 0
    )

    valid = [t["kappa"] for t in per_tag if not math.isnan(t["kappa"])]
    overall = round_half_up(sum(valid) / len(valid), digits) if valid else 0

    return {
        "overallKappa": overall,
        "overallInterpretation": interpret_kappa(overall),
        "percentageAgreement": percentage_agreement,
        "totalSharedResponses": len(shared_response_ids),
        "perTag": per_tag,
    }


def tag_sets_from_assignments(
    assignments: Iterable[TagAssignment], rater: str
) -> Dict[str, Set[str]]:
    """
    Collect one rater's applied tags per response.

    :param assignments: Tag decisions from any number of raters
    :param rater: The rater to collect
    :return: Response id -> set of applied tag names
    """
    tags: Dict[str, Set[str]] = {}
    for assignment in assignments:
        if assignment.rater != rater or not assignment.applied:
            continue
        tags.setdefault(assignment.response_id, set()).add(assignment.tag_name)
    return tags


def shared_responses(
    assignments: Iterable[TagAssignment], rater1: str, rater2: str
) -> List[str]:
    """Response ids both raters made decisions on, in first-seen order."""
    seen: Dict[str, Set[str]] = {}
    for assignment in assignments:
        seen.setdefault(assignment.response_id, set()).add(assignment.rater)
    return [rid for rid, raters in seen.items() if {rater1, rater2} <= raters]
