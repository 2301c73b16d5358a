"""
Computed node execution for Coding Canvas.

The processor takes a node request (a node type plus its raw configuration)
and the canvas records, resolves the typed configuration and runs the
matching analyzer. Loading records and persisting the returned result are
the caller's job.

Classes:
    CanvasProcessor: Dispatches computed nodes to analyzers

Example:
    Running a stored node::

        from codingcanvas.models import CanvasData, ComputedNode
        from codingcanvas.processors import CanvasProcessor

        data = CanvasData.from_dicts(transcripts=rows_t, codings=rows_c)
        node = ComputedNode.from_dict(stored_node)

        processor = CanvasProcessor()
        node = processor.run_computed_node(node, data)
        save(node.to_dict())

.. codeauthor:: Coding Canvas contributors
"""

from typing import Any, Dict, Mapping, Optional

import numpy as np

from .analyzers import (
    ClusterAnalyzer,
    CodingStatsAnalyzer,
    ComparisonAnalyzer,
    CooccurrenceAnalyzer,
    FrameworkMatrixAnalyzer,
    SpanSearchAnalyzer,
    WordFrequencyAnalyzer,
)
from .models import (
    CanvasData,
    ClusterConfig,
    ComparisonConfig,
    ComputedNode,
    CooccurrenceConfig,
    MatrixConfig,
    NodeConfig,
    SearchConfig,
    StatsConfig,
    WordCloudConfig,
)
from .validation import check_codings_against_transcripts


class CanvasProcessor:
    """
    Runs computed nodes against one canvas's records.

    Attributes:
        rng: Random generator handed to the clusterer when a cluster node
            has no seed of its own. None draws fresh entropy per run.
        check_drift: Warn when coded text no longer matches its transcript.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        check_drift: bool = True,
    ):
        self.rng = rng
        self.check_drift = check_drift
        self.search_analyzer = SpanSearchAnalyzer()
        self.cooccurrence_analyzer = CooccurrenceAnalyzer()
        self.matrix_analyzer = FrameworkMatrixAnalyzer()
        self.stats_analyzer = CodingStatsAnalyzer()
        self.comparison_analyzer = ComparisonAnalyzer()
        self.word_analyzer = WordFrequencyAnalyzer()
        self.cluster_analyzer = ClusterAnalyzer()

    def run(self, config, data: CanvasData) -> Dict[str, Any]:
        """
        Run a typed node configuration.

        :param config: One of the node config dataclasses
        :param data: The canvas records
        :return: The analysis result
        """
        if self.check_drift:
            check_codings_against_transcripts(
                data.codings, data.transcripts, f"in {config.NODE_TYPE} node"
            )

        if isinstance(config, SearchConfig):
            return self.search_analyzer.search(
                data.transcripts, config.pattern, config.mode, config.transcript_ids
            )
        if isinstance(config, CooccurrenceConfig):
            return self.cooccurrence_analyzer.cooccurrence(
                data.codings, config.question_ids, config.min_overlap
            )
        if isinstance(config, MatrixConfig):
            return self.matrix_analyzer.matrix(
                data.transcripts,
                data.questions,
                data.codings,
                data.cases,
                config.question_ids,
                config.case_ids,
            )
        if isinstance(config, StatsConfig):
            return self.stats_analyzer.stats(
                data.codings,
                data.questions,
                data.transcripts,
                config.group_by,
                config.question_ids,
            )
        if isinstance(config, ComparisonConfig):
            return self.comparison_analyzer.comparison(
                data.codings,
                data.transcripts,
                data.questions,
                config.transcript_ids,
                config.question_ids,
            )
        if isinstance(config, WordCloudConfig):
            return self.word_analyzer.word_frequency(
                data.codings, config.question_id, config.max_words, config.stop_words
            )
        if isinstance(config, ClusterConfig):
            return self.cluster_analyzer.cluster(
                data.codings,
                config.k,
                config.question_ids,
                rng=self.rng if config.seed is None else None,
                seed=config.seed,
            )
        raise TypeError(f"Unsupported node configuration: {type(config).__name__}")

    def run_node(
        self,
        node_type: str,
        config: Optional[Mapping[str, Any]],
        data: CanvasData,
    ) -> Dict[str, Any]:
        """
        Run a node request given as a node type and raw config map.

        :raises UnknownNodeTypeError: For node types with no analysis
        :raises ParameterValidationError: For invalid config values
        """
        return self.run(NodeConfig.from_dict(node_type, config), data)

    def run_computed_node(self, node: ComputedNode, data: CanvasData) -> ComputedNode:
        """Run a stored node and return a copy carrying the fresh result."""
        return node.with_result(self.run(node.typed_config(), data))
