"""
Record types consumed and produced by the canvas computations.

Records are immutable value objects supplied by the caller, already scoped
to one canvas. ``from_dict`` accepts the storage layer's camelCase records and
``to_dict`` returns the same shape, so results can be serialized as-is.

Node configurations form a tagged union keyed by node type: each computed
node type has its own config class, and :meth:`NodeConfig.from_dict` picks
the variant and applies the defaults the canvas has always used.

.. codeauthor:: Coding Canvas contributors
"""

from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Dict, Mapping, Optional, Sequence, Tuple

from .config import CONFIG
from .validation import (
    RecordValidationError,
    validate_choice_parameter,
    validate_coding_offsets,
    validate_node_type,
)


def _require(record: Mapping[str, Any], key: str, kind: str) -> Any:
    try:
        return record[key]
    except KeyError:
        raise RecordValidationError(
            f"{kind} record is missing required field '{key}': {dict(record)}"
        ) from None


def _id_tuple(values: Optional[Sequence[str]]) -> Tuple[str, ...]:
    return tuple(values) if values else ()


@dataclass(frozen=True)
class Transcript:
    """Verbatim source text; offsets are character positions in ``content``."""

    id: str
    title: str
    content: str
    case_id: Optional[str] = None

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "Transcript":
        return cls(
            id=_require(record, "id", "Transcript"),
            title=record.get("title", ""),
            content=_require(record, "content", "Transcript") or "",
            case_id=record.get("caseId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "caseId": self.case_id,
        }


@dataclass(frozen=True)
class Question:
    """A coding category (a code), not a survey question."""

    id: str
    text: str
    color: str = ""

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "Question":
        return cls(
            id=_require(record, "id", "Question"),
            text=record.get("text", ""),
            color=record.get("color", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "color": self.color}


@dataclass(frozen=True)
class Coding:
    """
    A coded span: the characters ``[start_offset, end_offset)`` of one
    transcript assigned to one question.

    ``coded_text`` equals the transcript slice at creation time and may drift
    if the transcript is edited later.
    """

    id: str
    transcript_id: str
    question_id: str
    start_offset: int
    end_offset: int
    coded_text: str

    def __post_init__(self):
        validate_coding_offsets(self.id, self.start_offset, self.end_offset)

    @property
    def span_length(self) -> int:
        return self.end_offset - self.start_offset

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "Coding":
        return cls(
            id=_require(record, "id", "Coding"),
            transcript_id=_require(record, "transcriptId", "Coding"),
            question_id=_require(record, "questionId", "Coding"),
            start_offset=_require(record, "startOffset", "Coding"),
            end_offset=_require(record, "endOffset", "Coding"),
            coded_text=record.get("codedText", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "transcriptId": self.transcript_id,
            "questionId": self.question_id,
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
            "codedText": self.coded_text,
        }


@dataclass(frozen=True)
class Case:
    """A research case (typically an organisation) grouping transcripts."""

    id: str
    name: str
    attributes: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "Case":
        return cls(
            id=_require(record, "id", "Case"),
            name=record.get("name", ""),
            attributes=dict(record.get("attributes") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "attributes": dict(self.attributes)}


@dataclass(frozen=True)
class TagAssignment:
    """One rater's decision to apply (or not) a tag to a response."""

    rater: str
    response_id: str
    tag_name: str
    applied: bool = True

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "TagAssignment":
        return cls(
            rater=_require(record, "rater", "TagAssignment"),
            response_id=_require(record, "responseId", "TagAssignment"),
            tag_name=_require(record, "tagName", "TagAssignment"),
            applied=bool(record.get("applied", True)),
        )


@dataclass(frozen=True)
class CanvasData:
    """All records of one canvas, as loaded by the caller."""

    transcripts: Tuple[Transcript, ...] = ()
    questions: Tuple[Question, ...] = ()
    codings: Tuple[Coding, ...] = ()
    cases: Tuple[Case, ...] = ()

    @classmethod
    def from_dicts(
        cls,
        transcripts: Sequence[Mapping[str, Any]] = (),
        questions: Sequence[Mapping[str, Any]] = (),
        codings: Sequence[Mapping[str, Any]] = (),
        cases: Sequence[Mapping[str, Any]] = (),
    ) -> "CanvasData":
        return cls(
            transcripts=tuple(Transcript.from_dict(t) for t in transcripts),
            questions=tuple(Question.from_dict(q) for q in questions),
            codings=tuple(Coding.from_dict(c) for c in codings),
            cases=tuple(Case.from_dict(c) for c in cases),
        )


# ─── Node configurations ───


@dataclass(frozen=True)
class SearchConfig:
    NODE_TYPE: ClassVar[str] = "search"
    MODES: ClassVar[Tuple[str, ...]] = ("keyword", "regex")

    pattern: str = ""
    mode: str = "keyword"
    transcript_ids: Tuple[str, ...] = ()

    def __post_init__(self):
        validate_choice_parameter("mode", self.mode, self.MODES, "in search node")

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "SearchConfig":
        return cls(
            pattern=config.get("pattern") or "",
            mode=config.get("mode") or "keyword",
            transcript_ids=_id_tuple(config.get("transcriptIds")),
        )


@dataclass(frozen=True)
class CooccurrenceConfig:
    NODE_TYPE: ClassVar[str] = "cooccurrence"

    question_ids: Tuple[str, ...] = ()
    min_overlap: int = CONFIG.DEFAULT_MIN_OVERLAP

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "CooccurrenceConfig":
        min_overlap = config.get("minOverlap")
        return cls(
            question_ids=_id_tuple(config.get("questionIds")),
            min_overlap=CONFIG.DEFAULT_MIN_OVERLAP if min_overlap is None else min_overlap,
        )


@dataclass(frozen=True)
class MatrixConfig:
    NODE_TYPE: ClassVar[str] = "matrix"

    question_ids: Tuple[str, ...] = ()
    case_ids: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "MatrixConfig":
        return cls(
            question_ids=_id_tuple(config.get("questionIds")),
            case_ids=_id_tuple(config.get("caseIds")),
        )


@dataclass(frozen=True)
class StatsConfig:
    NODE_TYPE: ClassVar[str] = "stats"
    GROUPINGS: ClassVar[Tuple[str, ...]] = ("question", "transcript")

    group_by: str = "question"
    question_ids: Tuple[str, ...] = ()

    def __post_init__(self):
        validate_choice_parameter(
            "groupBy", self.group_by, self.GROUPINGS, "in stats node"
        )

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "StatsConfig":
        return cls(
            group_by=config.get("groupBy") or "question",
            question_ids=_id_tuple(config.get("questionIds")),
        )


@dataclass(frozen=True)
class ComparisonConfig:
    NODE_TYPE: ClassVar[str] = "comparison"

    transcript_ids: Tuple[str, ...] = ()
    question_ids: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "ComparisonConfig":
        return cls(
            transcript_ids=_id_tuple(config.get("transcriptIds")),
            question_ids=_id_tuple(config.get("questionIds")),
        )


@dataclass(frozen=True)
class WordCloudConfig:
    NODE_TYPE: ClassVar[str] = "wordcloud"

    question_id: Optional[str] = None
    max_words: int = CONFIG.DEFAULT_MAX_WORDS
    stop_words: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "WordCloudConfig":
        return cls(
            question_id=config.get("questionId") or None,
            max_words=config.get("maxWords") or CONFIG.DEFAULT_MAX_WORDS,
            stop_words=_id_tuple(config.get("stopWords")),
        )


@dataclass(frozen=True)
class ClusterConfig:
    NODE_TYPE: ClassVar[str] = "cluster"

    k: int = CONFIG.DEFAULT_K
    question_ids: Tuple[str, ...] = ()
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "ClusterConfig":
        return cls(
            k=config.get("k") or CONFIG.DEFAULT_K,
            question_ids=_id_tuple(config.get("questionIds")),
            seed=config.get("seed"),
        )


class NodeConfig:
    """Factory for the per-node-type configuration variants."""

    VARIANTS = {
        variant.NODE_TYPE: variant
        for variant in (
            SearchConfig,
            CooccurrenceConfig,
            MatrixConfig,
            StatsConfig,
            ComparisonConfig,
            WordCloudConfig,
            ClusterConfig,
        )
    }

    @classmethod
    def node_types(cls) -> Tuple[str, ...]:
        return tuple(cls.VARIANTS)

    @classmethod
    def from_dict(cls, node_type: str, config: Optional[Mapping[str, Any]] = None):
        """
        Build the typed configuration for a node.

        :param node_type: One of the supported node types
        :param config: The node's raw camelCase configuration map
        :return: The matching config dataclass
        """
        validate_node_type(node_type, cls.node_types())
        return cls.VARIANTS[node_type].from_dict(config or {})


@dataclass(frozen=True)
class ComputedNode:
    """
    A named computation on a canvas.

    ``result`` caches the last output; it is only refreshed when the caller
    re-runs the node, so it can be stale relative to the canvas data.
    """

    id: str
    node_type: str
    config: Mapping[str, Any] = field(default_factory=dict)
    result: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_dict(cls, record: Mapping[str, Any]) -> "ComputedNode":
        return cls(
            id=_require(record, "id", "ComputedNode"),
            node_type=_require(record, "nodeType", "ComputedNode"),
            config=dict(record.get("config") or {}),
            result=record.get("result"),
        )

    def typed_config(self):
        return NodeConfig.from_dict(self.node_type, self.config)

    def with_result(self, result: Mapping[str, Any]) -> "ComputedNode":
        return replace(self, result=result)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "nodeType": self.node_type,
            "config": dict(self.config),
            "result": self.result,
        }
