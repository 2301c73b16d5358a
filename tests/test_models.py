"""
Tests for records, node configurations and validation helpers.
"""

import warnings

import pytest

from codingcanvas.config import CONFIG
from codingcanvas.data import load_stop_words
from codingcanvas.models import (
    CanvasData,
    ClusterConfig,
    Coding,
    ComputedNode,
    NodeConfig,
    SearchConfig,
    StatsConfig,
    Transcript,
    WordCloudConfig,
)
from codingcanvas.validation import (
    CodingCanvasError,
    ParameterValidationError,
    RecordValidationError,
    UnknownNodeTypeError,
    ValidationWarning,
    check_codings_against_transcripts,
    validate_positive_int,
)

from conftest import make_coding


class TestRecords:
    """Parsing camelCase records."""

    def test_coding_round_trip(self, coding_rows):
        coding = Coding.from_dict(coding_rows[0])

        assert coding.transcript_id == "t1"
        assert coding.span_length == len("waste across the supply chain")
        assert coding.to_dict() == coding_rows[0]

    def test_transcript_case_link(self, transcript_rows):
        assert Transcript.from_dict(transcript_rows[0]).case_id == "case-a"
        assert Transcript.from_dict(transcript_rows[2]).case_id is None

    def test_missing_field(self):
        with pytest.raises(RecordValidationError, match="transcriptId"):
            Coding.from_dict({"id": "c", "questionId": "q", "startOffset": 0})

    @pytest.mark.parametrize("start,end", [(5, 5), (6, 5), (-1, 4)])
    def test_empty_or_negative_spans(self, start, end):
        with pytest.raises(RecordValidationError):
            make_coding("bad", "q1", start, end, "text")

    def test_non_integer_offsets(self):
        with pytest.raises(RecordValidationError, match="non-integer"):
            Coding("c", "t", "q", "0", 4, "text")

    def test_canvas_data(self, canvas_data):
        assert len(canvas_data.transcripts) == 3
        assert len(canvas_data.codings) == 5
        assert canvas_data.cases[0].attributes == {"country": "IE"}

    def test_errors_share_a_base_class(self):
        assert issubclass(RecordValidationError, CodingCanvasError)
        assert issubclass(UnknownNodeTypeError, ParameterValidationError)


class TestNodeConfig:
    """Typed node configurations and their defaults."""

    def test_node_types(self):
        assert NodeConfig.node_types() == (
            "search",
            "cooccurrence",
            "matrix",
            "stats",
            "comparison",
            "wordcloud",
            "cluster",
        )

    def test_search_defaults(self):
        assert NodeConfig.from_dict("search", {}) == SearchConfig(pattern="", mode="keyword")
        assert NodeConfig.from_dict("search", None) == SearchConfig()

    def test_search_config(self):
        config = NodeConfig.from_dict(
            "search", {"pattern": "wa.te", "mode": "regex", "transcriptIds": ["t1"]}
        )
        assert config == SearchConfig("wa.te", "regex", ("t1",))

    def test_stats_defaults(self):
        assert NodeConfig.from_dict("stats", {}).group_by == "question"

    def test_falsy_limits_fall_back_to_defaults(self):
        wordcloud = NodeConfig.from_dict("wordcloud", {"maxWords": 0})
        cluster = NodeConfig.from_dict("cluster", {"k": None})

        assert wordcloud == WordCloudConfig(max_words=CONFIG.DEFAULT_MAX_WORDS)
        assert cluster == ClusterConfig(k=CONFIG.DEFAULT_K)

    def test_cooccurrence_defaults(self):
        config = NodeConfig.from_dict("cooccurrence", {"questionIds": ["q1", "q2"]})
        assert config.question_ids == ("q1", "q2")
        assert config.min_overlap == 1

    def test_wordcloud_stop_words(self):
        config = NodeConfig.from_dict(
            "wordcloud", {"questionId": "q1", "maxWords": 10, "stopWords": ["Staff"]}
        )
        assert config == WordCloudConfig("q1", 10, ("Staff",))

    def test_unknown_node_type(self):
        with pytest.raises(UnknownNodeTypeError, match="Unknown node type: pie"):
            NodeConfig.from_dict("pie", {})

    def test_suggestion_for_mistyped_node_type(self):
        with pytest.raises(UnknownNodeTypeError, match="Did you mean: cluster"):
            NodeConfig.from_dict("Cluster", {})

    def test_invalid_choices(self):
        with pytest.raises(ParameterValidationError):
            NodeConfig.from_dict("search", {"mode": "fuzzy"})
        with pytest.raises(ParameterValidationError):
            StatsConfig(group_by="case")


class TestComputedNode:
    def test_with_result_returns_a_copy(self):
        node = ComputedNode.from_dict(
            {"id": "n1", "nodeType": "stats", "config": {"groupBy": "transcript"}}
        )
        updated = node.with_result({"items": [], "total": 0})

        assert node.result is None
        assert updated.result == {"items": [], "total": 0}
        assert updated.typed_config() == StatsConfig(group_by="transcript")
        assert updated.to_dict() == {
            "id": "n1",
            "nodeType": "stats",
            "config": {"groupBy": "transcript"},
            "result": {"items": [], "total": 0},
        }


class TestValidation:
    def test_positive_int(self):
        validate_positive_int("k", 3)
        validate_positive_int("n", 0, allow_zero=True)

        for bad in (0, -1, 2.5, True, "3"):
            with pytest.raises(ParameterValidationError):
                validate_positive_int("k", bad)

    def test_consistent_codings_are_quiet(self, canvas_data):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert (
                check_codings_against_transcripts(
                    canvas_data.codings, canvas_data.transcripts
                )
                == 0
            )

    def test_drifted_coding_warns(self):
        transcripts = [Transcript("t1", "T", "We cut waste.")]
        codings = [make_coding("c", "q1", 7, 12, "water")]

        with pytest.warns(ValidationWarning, match="differs from the transcript"):
            assert check_codings_against_transcripts(codings, transcripts) == 1

    def test_overrunning_coding_warns(self):
        transcripts = [Transcript("t1", "T", "short")]
        codings = [make_coding("c", "q1", 2, 40)]

        with pytest.warns(ValidationWarning, match="ending past"):
            check_codings_against_transcripts(codings, transcripts)

    def test_dangling_transcript_is_ignored(self):
        codings = [make_coding("c", "q1", 0, 4, transcript_id="gone")]
        assert check_codings_against_transcripts(codings, []) == 0


class TestStopWords:
    def test_bundled_lists(self):
        english = load_stop_words("english")
        domain = load_stop_words("domain")

        assert {"the", "and", "would"} <= english
        assert {"describe", "organisation", "assessment"} <= domain
        assert not any(word.startswith("#") for word in english | domain)

    def test_unknown_list(self):
        with pytest.raises(KeyError):
            load_stop_words("klingon")


def test_empty_canvas():
    data = CanvasData()
    assert data.transcripts == data.codings == ()
