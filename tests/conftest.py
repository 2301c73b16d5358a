"""
Pytest configuration and shared fixtures for codingcanvas tests.

This module provides shared test fixtures, utilities, and hypothesis
strategies for the codingcanvas test suite.
"""

import pytest
from hypothesis import strategies as st

from codingcanvas.models import CanvasData, Case, Coding, Question, Transcript


TRANSCRIPT_ROWS = [
    {
        "id": "t1",
        "title": "Interview 1",
        "content": "We reduced waste across the supply chain. "
        "Staff training improved recycling rates.",
        "caseId": "case-a",
    },
    {
        "id": "t2",
        "title": "Interview 2",
        "content": "Training budgets were cut, so recycling slowed and waste grew.",
        "caseId": "case-b",
    },
    {
        "id": "t3",
        "title": "Field notes",
        "content": "Community volunteers sorted waste at the depot.",
    },
]


def coding_row(coding_id, transcript, question_id, text):
    """Build a coding dict whose offsets point at ``text`` in ``transcript``."""
    start = transcript["content"].index(text)
    return {
        "id": coding_id,
        "transcriptId": transcript["id"],
        "questionId": question_id,
        "startOffset": start,
        "endOffset": start + len(text),
        "codedText": text,
    }


def make_coding(coding_id, question_id, start, end, text=None, transcript_id="t1"):
    """Build a Coding directly from offsets."""
    return Coding(
        id=coding_id,
        transcript_id=transcript_id,
        question_id=question_id,
        start_offset=start,
        end_offset=end,
        coded_text=text if text is not None else "x" * (end - start),
    )


@pytest.fixture(scope="session")
def transcript_rows():
    return TRANSCRIPT_ROWS


@pytest.fixture(scope="session")
def question_rows():
    return [
        {"id": "q1", "text": "Waste reduction", "color": "#2e7d32"},
        {"id": "q2", "text": "Workforce", "color": "#1565c0"},
        {"id": "q3", "text": "Recycling", "color": "#f9a825"},
    ]


@pytest.fixture(scope="session")
def coding_rows():
    t1, t2, _ = TRANSCRIPT_ROWS
    return [
        coding_row("c1", t1, "q1", "waste across the supply chain"),
        coding_row("c2", t1, "q2", "supply chain. Staff training"),
        coding_row("c3", t2, "q1", "recycling slowed and waste grew"),
        coding_row("c4", t2, "q2", "Training budgets were cut"),
        coding_row("c5", t1, "q3", "recycling rates"),
    ]


@pytest.fixture(scope="session")
def case_rows():
    return [
        {"id": "case-a", "name": "Alpha Works", "attributes": {"country": "IE"}},
        {"id": "case-b", "name": "Beta Co-op", "attributes": {"country": "NL"}},
    ]


@pytest.fixture(scope="session")
def transcripts(transcript_rows):
    return [Transcript.from_dict(row) for row in transcript_rows]


@pytest.fixture(scope="session")
def questions(question_rows):
    return [Question.from_dict(row) for row in question_rows]


@pytest.fixture(scope="session")
def codings(coding_rows):
    return [Coding.from_dict(row) for row in coding_rows]


@pytest.fixture(scope="session")
def cases(case_rows):
    return [Case.from_dict(row) for row in case_rows]


@pytest.fixture(scope="session")
def canvas_data(transcript_rows, question_rows, coding_rows, case_rows):
    """The full sample canvas as loaded by a caller."""
    return CanvasData.from_dicts(
        transcripts=transcript_rows,
        questions=question_rows,
        codings=coding_rows,
        cases=case_rows,
    )


@pytest.fixture
def themed_codings():
    """Ten codings drawn from two unrelated themes."""
    texts = [
        "Waste recycling bins at every station",
        "Staff training and mentoring sessions",
        "Recycling waste streams into compost",
        "Mentoring staff through training plans",
        "Compost bins reduce landfill waste",
        "Training budgets fund staff mentoring",
        "Landfill waste dropped after recycling",
        "Peer mentoring supports staff training",
        "Recycling bins collected weekly",
        "Training days for new staff",
    ]
    return [
        make_coding(f"k{i}", "q1", 0, len(text), text) for i, text in enumerate(texts)
    ]


class FixedOrder:
    """Stand-in random generator replaying fixed permutations in turn."""

    def __init__(self, *orders):
        self.orders = [list(order) for order in orders]
        self.calls = 0

    def permutation(self, n):
        order = self.orders[self.calls % len(self.orders)]
        self.calls += 1
        assert len(order) == n
        return order


@pytest.fixture
def fixed_order():
    return FixedOrder


# Hypothesis strategies for property-based testing
ascii_text = st.text(
    alphabet=st.characters(min_codepoint=32, max_codepoint=126), max_size=200
)


@st.composite
def coding_strategy(draw, question_ids=("q1", "q2"), max_offset=60, max_length=25):
    """Generate lists of codings over a single transcript."""
    count = draw(st.integers(min_value=0, max_value=12))
    result = []
    for i in range(count):
        start = draw(st.integers(min_value=0, max_value=max_offset))
        length = draw(st.integers(min_value=1, max_value=max_length))
        question_id = draw(st.sampled_from(question_ids))
        result.append(make_coding(f"h{i}", question_id, start, start + length))
    return result
