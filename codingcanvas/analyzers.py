"""
Analyzer classes for Coding Canvas computed nodes.

This module provides one analyzer per computed node type. Each analyzer is
a pure transform: it takes the canvas records supplied by the caller and
returns a JSON-serializable dict, never touching storage and never keeping
state between calls.

Classes:
    SpanSearchAnalyzer: Keyword/regex search with context windows
    CooccurrenceAnalyzer: Overlapping coded spans across question pairs
    FrameworkMatrixAnalyzer: Cases x questions excerpt matrix
    CodingStatsAnalyzer: Counts, percentages and coverage per group
    ComparisonAnalyzer: Per-transcript coding profiles
    WordFrequencyAnalyzer: Token frequencies over coded text
    ClusterAnalyzer: TF-IDF vectors and cosine k-means clustering
    AutoCoder: Bulk coding of search matches

Example:
    Searching and clustering::

        from codingcanvas.analyzers import SpanSearchAnalyzer, ClusterAnalyzer
        from codingcanvas.models import CanvasData

        data = CanvasData.from_dicts(transcripts=..., codings=...)

        hits = SpanSearchAnalyzer().search(data.transcripts, "waste")
        print(len(hits["matches"]))

        clusters = ClusterAnalyzer().cluster(data.codings, k=4, seed=7)
        for cluster in clusters["clusters"]:
            print(cluster["label"], cluster["keywords"])

.. codeauthor:: Coding Canvas contributors
"""

import re
import uuid
from collections import Counter
from typing import (
    AbstractSet,
    Callable,
    Dict,
    Iterator,
    List,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
)

import numpy as np
import polars as pl
from scipy.sparse import csr_matrix, diags

from .config import CONFIG
from .models import Case, Coding, Question, SearchConfig, StatsConfig, Transcript
from .performance import PerformanceMonitor, warn_if_large_clustering
from .text_utils import (
    DEFAULT_STOP_WORDS,
    codings_frame,
    context_window,
    filter_codings_by_question,
    percent,
    select_ids,
    tokenize,
)
from .validation import validate_choice_parameter, validate_positive_int


class PatternOutcome(NamedTuple):
    """Result of compiling a search pattern: a regex, or the reason it failed."""

    regex: Optional[re.Pattern]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.regex is not None


class SpanSearchAnalyzer:
    """
    Finds literal or regex matches in transcript text.

    Matching is case-insensitive and covers every non-overlapping match.
    In keyword mode all regex metacharacters are taken literally. A regex
    that fails to compile makes the search skip that transcript: the skip is
    reported in the result's ``skipped`` list and the other transcripts are
    still searched.

    Example:
        Keyword search::

            analyzer = SpanSearchAnalyzer()
            result = analyzer.search(transcripts, "a.b", mode="keyword")
            # matches only the literal text "a.b"
    """

    @staticmethod
    def compile_pattern(pattern: str, mode: str) -> PatternOutcome:
        """Compile ``pattern`` for ``mode`` without raising."""
        source = pattern if mode == "regex" else re.escape(pattern)
        try:
            return PatternOutcome(re.compile(source, re.IGNORECASE))
        except re.error as e:
            return PatternOutcome(None, f"Invalid pattern: {e}")

    @staticmethod
    def scan(regex: re.Pattern, content: str) -> Iterator[re.Match]:
        """
        Yield successive matches of ``regex`` in ``content``.

        After a zero-length match the scan resumes one character further on.
        """
        position = 0
        while position <= len(content):
            match = regex.search(content, position)
            if match is None:
                return
            yield match
            position = match.end() if match.end() > match.start() else match.end() + 1

    def search(
        self,
        transcripts: Sequence[Transcript],
        pattern: str,
        mode: str = "keyword",
        transcript_ids: Optional[Sequence[str]] = None,
    ) -> Dict:
        """
        Search transcripts for a pattern.

        Args:
            transcripts: Transcript records to search.
            pattern: Keyword or regular expression.
            mode: 'keyword' for a literal search or 'regex'.
            transcript_ids: Restrict the search to these transcripts. Empty
                or None searches every transcript.

        Returns:
            A dict with ``matches`` (transcriptId, transcriptTitle, offset,
            matchText, context) and ``skipped`` (transcriptId, reason) for
            transcripts the pattern could not be applied to.
        """
        validate_choice_parameter("mode", mode, SearchConfig.MODES, "in search")

        matches = []
        skipped = []
        outcome = self.compile_pattern(pattern, mode)
        with PerformanceMonitor(f"Span search ({mode})"):
            for transcript in select_ids(transcripts, transcript_ids):
                if not outcome.ok:
                    skipped.append(
                        {"transcriptId": transcript.id, "reason": outcome.error}
                    )
                    continue

                content = transcript.content
                for match in self.scan(outcome.regex, content):
                    matches.append(
                        {
                            "transcriptId": transcript.id,
                            "transcriptTitle": transcript.title,
                            "offset": match.start(),
                            "matchText": match.group(0),
                            "context": context_window(
                                content, match.start(), match.end()
                            ),
                        }
                    )

        return {"matches": matches, "skipped": skipped}


class CooccurrenceAnalyzer:
    """
    Finds coded spans from two questions that overlap in the same transcript.

    Every unordered pair drawn from ``question_ids`` (in the order given) is
    checked. Two spans co-occur when their overlap covers at least
    ``min_overlap`` characters. The reported text is cut from the first
    question's coded text.
    """

    @staticmethod
    def _side(df: pl.DataFrame, question_id: str, suffix: str) -> pl.DataFrame:
        return df.filter(pl.col("question_id") == question_id).select(
            "transcript_id",
            "transcript_rank",
            pl.col("row").alias(f"row_{suffix}"),
            pl.col("start_offset").alias(f"start_{suffix}"),
            pl.col("end_offset").alias(f"end_{suffix}"),
            pl.col("coded_text").alias(f"text_{suffix}"),
        )

    def _pair_segments(
        self, df: pl.DataFrame, q_a: str, q_b: str, min_overlap: int
    ) -> List[Dict]:
        overlaps = (
            self._side(df, q_a, "a")
            .join(
                self._side(df, q_b, "b").drop("transcript_rank"),
                on="transcript_id",
                how="inner",
            )
            .with_columns(
                pl.max_horizontal("start_a", "start_b").alias("overlap_start"),
                pl.min_horizontal("end_a", "end_b").alias("overlap_end"),
            )
            .filter(
                pl.col("overlap_end").sub(pl.col("overlap_start")) >= min_overlap
            )
            .sort(["transcript_rank", "row_a", "row_b"])
        )

        segments = []
        for row in overlaps.iter_rows(named=True):
            start, end = row["overlap_start"], row["overlap_end"]
            segments.append(
                {
                    "transcriptId": row["transcript_id"],
                    "text": row["text_a"][
                        max(0, start - row["start_a"]):end - row["start_a"]
                    ],
                    "startOffset": start,
                    "endOffset": end,
                }
            )
        return segments

    def cooccurrence(
        self,
        codings: Sequence[Coding],
        question_ids: Sequence[str],
        min_overlap: int = CONFIG.DEFAULT_MIN_OVERLAP,
    ) -> Dict:
        """
        Compute co-occurring segments for each pair of questions.

        :param codings: Coding records
        :param question_ids: Questions to pair up; fewer than two gives no pairs
        :param min_overlap: Minimum overlap in characters
        :return: ``{"pairs": [{questionIds, segments, count}]}``
        """
        question_ids = list(question_ids or [])
        if len(question_ids) < 2:
            return {"pairs": []}

        with PerformanceMonitor("Co-occurrence"):
            df = (
                codings_frame(filter_codings_by_question(codings, question_ids))
                .with_columns(
                    pl.col("row").min().over("transcript_id").alias("transcript_rank")
                )
            )

            pairs = []
            for i, q_a in enumerate(question_ids):
                for q_b in question_ids[i + 1:]:
                    segments = self._pair_segments(df, q_a, q_b, min_overlap)
                    if segments:
                        pairs.append(
                            {
                                "questionIds": [q_a, q_b],
                                "segments": segments,
                                "count": len(segments),
                            }
                        )

        return {"pairs": pairs}


class FrameworkMatrixAnalyzer:
    """Cross-tabulates cases against questions into excerpt cells."""

    def matrix(
        self,
        transcripts: Sequence[Transcript],
        questions: Sequence[Question],
        codings: Sequence[Coding],
        cases: Sequence[Case],
        question_ids: Optional[Sequence[str]] = None,
        case_ids: Optional[Sequence[str]] = None,
    ) -> Dict:
        """
        Build a framework matrix.

        Each row is a case; its transcripts are those whose ``case_id``
        points at it. Each cell holds the first excerpts coded to the
        question in those transcripts (in coding order) and the uncapped
        count of such codings.

        :return: ``{"rows": [{caseId, caseName, cells: [...]}]}``
        """
        selected_questions = select_ids(questions, question_ids)
        selected_cases = select_ids(cases, case_ids)

        case_links = pl.DataFrame(
            [
                {"transcript_id": t.id, "case_id": t.case_id}
                for t in transcripts
                if t.case_id
            ],
            schema={"transcript_id": pl.String, "case_id": pl.String},
        )

        with PerformanceMonitor("Framework matrix"):
            cells = (
                codings_frame(codings)
                .join(case_links, on="transcript_id", how="inner")
                .sort("row")
                .group_by(["case_id", "question_id"], maintain_order=True)
                .agg(
                    pl.col("coded_text")
                    .head(CONFIG.MATRIX_EXCERPT_LIMIT)
                    .alias("excerpts"),
                    pl.len().alias("count"),
                )
            )
            lookup = {
                (row["case_id"], row["question_id"]): row
                for row in cells.iter_rows(named=True)
            }

            rows = []
            for case in selected_cases:
                row_cells = []
                for question in selected_questions:
                    cell = lookup.get((case.id, question.id))
                    row_cells.append(
                        {
                            "questionId": question.id,
                            "excerpts": list(cell["excerpts"]) if cell else [],
                            "count": cell["count"] if cell else 0,
                        }
                    )
                rows.append(
                    {"caseId": case.id, "caseName": case.name, "cells": row_cells}
                )

        return {"rows": rows}


class CodingStatsAnalyzer:
    """
    Counts, percentages and coverage ratios of codings.

    Percentages are shares of all (filtered) codings. Coverage is the share
    of transcript characters covered by coded spans; overlapping spans are
    counted once per coding, so coverage can exceed 100.
    """

    def stats(
        self,
        codings: Sequence[Coding],
        questions: Sequence[Question],
        transcripts: Sequence[Transcript],
        group_by: str = "question",
        question_ids: Optional[Sequence[str]] = None,
    ) -> Dict:
        """
        Summarise codings by question or by transcript.

        :param group_by: 'question' or 'transcript'
        :param question_ids: Only count codings of these questions
        :return: ``{"items": [{id, label, count, percentage, coverage}], "total"}``
        """
        validate_choice_parameter("groupBy", group_by, StatsConfig.GROUPINGS, "in stats")

        with PerformanceMonitor(f"Coding statistics ({group_by})"):
            df = codings_frame(filter_codings_by_question(codings, question_ids))
            total = df.height

            if group_by == "question":
                summary = self._summarize(df, "question_id")
                transcript_chars = sum(len(t.content) for t in transcripts)
                items = [
                    self._item(q.id, q.text, summary.get(q.id), total, transcript_chars)
                    for q in select_ids(questions, question_ids)
                ]
            else:
                summary = self._summarize(df, "transcript_id")
                items = [
                    self._item(t.id, t.title, summary.get(t.id), total, len(t.content))
                    for t in transcripts
                ]

        return {"items": items, "total": total}

    @staticmethod
    def _summarize(df: pl.DataFrame, key: str) -> Dict[str, Tuple[int, int]]:
        grouped = df.group_by(key).agg(
            pl.len().alias("count"), pl.col("length").sum().alias("chars")
        )
        return {row[key]: (row["count"], row["chars"]) for row in grouped.iter_rows(named=True)}

    @staticmethod
    def _item(item_id, label, summary, total, text_chars) -> Dict:
        count, chars = summary if summary else (0, 0)
        return {
            "id": item_id,
            "label": label,
            "count": count,
            "percentage": percent(count, total),
            "coverage": percent(chars, text_chars),
        }


class ComparisonAnalyzer:
    """Builds per-transcript coding profiles for side-by-side comparison."""

    def comparison(
        self,
        codings: Sequence[Coding],
        transcripts: Sequence[Transcript],
        questions: Sequence[Question],
        transcript_ids: Optional[Sequence[str]] = None,
        question_ids: Optional[Sequence[str]] = None,
    ) -> Dict:
        """
        Profile each selected transcript across the selected questions.

        An empty ``transcript_ids`` selects every transcript.

        :return: ``{"transcripts": [{id, title, profile: [{questionId, count, coverage}]}]}``
        """
        selected_questions = select_ids(questions, question_ids)

        with PerformanceMonitor("Transcript comparison"):
            grouped = codings_frame(codings).group_by(
                ["transcript_id", "question_id"]
            ).agg(pl.len().alias("count"), pl.col("length").sum().alias("chars"))
            lookup = {
                (row["transcript_id"], row["question_id"]): (row["count"], row["chars"])
                for row in grouped.iter_rows(named=True)
            }

            result = []
            for transcript in select_ids(transcripts, transcript_ids):
                profile = []
                for question in selected_questions:
                    count, chars = lookup.get((transcript.id, question.id), (0, 0))
                    profile.append(
                        {
                            "questionId": question.id,
                            "count": count,
                            "coverage": percent(chars, len(transcript.content)),
                        }
                    )
                result.append(
                    {"id": transcript.id, "title": transcript.title, "profile": profile}
                )

        return {"transcripts": result}


class WordFrequencyAnalyzer:
    """
    Token frequencies over coded text, for word clouds.

    Example:
        Top words for one question::

            analyzer = WordFrequencyAnalyzer()
            result = analyzer.word_frequency(
                codings, question_id="q1", max_words=25, custom_stop_words=["staff"]
            )
            # {"words": [{"text": "training", "count": 12}, ...]}
    """

    def __init__(self, stop_words: AbstractSet[str] = DEFAULT_STOP_WORDS):
        self.stop_words = frozenset(stop_words)

    def word_frequency(
        self,
        codings: Sequence[Coding],
        question_id: Optional[str] = None,
        max_words: int = CONFIG.DEFAULT_MAX_WORDS,
        custom_stop_words: Optional[Sequence[str]] = None,
    ) -> Dict:
        """
        Count tokens across coded spans.

        Ties keep the order in which words were first seen.

        :param question_id: Only count codings of this question
        :param max_words: Maximum number of words returned
        :param custom_stop_words: Extra words to exclude (case-insensitive)
        :return: ``{"words": [{text, count}]}``
        """
        validate_positive_int(
            "max_words", max_words, "in word frequency", allow_zero=True
        )

        stop_words = self.stop_words | {w.lower() for w in custom_stop_words or []}
        selected = [
            c for c in codings if question_id is None or c.question_id == question_id
        ]

        with PerformanceMonitor("Word frequency"):
            tokens = [
                token
                for coding in selected
                for token in tokenize(coding.coded_text, stop_words)
            ]
            words = (
                pl.DataFrame({"text": tokens}, schema={"text": pl.String})
                .group_by("text", maintain_order=True)
                .agg(pl.len().alias("count"))
                .sort("count", descending=True, maintain_order=True)
                .head(max_words)
            )

        return {"words": words.to_dicts()}


class ClusterAnalyzer:
    """
    Partitions coded spans into themes with TF-IDF and cosine k-means.

    Each coding's text becomes a TF-IDF vector (term frequency normalised by
    document length, smoothed IDF ``ln((N + 1) / (df + 1)) + 1``). K-means
    then maximises cosine similarity to the centroids, keeping the best of
    several random restarts. Pass ``rng`` or ``seed`` for reproducible
    clusters.
    """

    def __init__(
        self,
        stop_words: AbstractSet[str] = DEFAULT_STOP_WORDS,
        restarts: int = CONFIG.KMEANS_RESTARTS,
        max_iter: int = CONFIG.KMEANS_MAX_ITER,
    ):
        self.stop_words = frozenset(stop_words)
        self.restarts = restarts
        self.max_iter = max_iter

    @staticmethod
    def build_tfidf(documents: Sequence[Sequence[str]]) -> Tuple[np.ndarray, List[str]]:
        """
        Build TF-IDF document vectors.

        :param documents: Token lists, one per document
        :return: A dense (documents x vocabulary) weight array and the
            vocabulary in first-seen order
        """
        vocabulary: Dict[str, int] = {}
        rows, cols, counts = [], [], []
        for d, doc in enumerate(documents):
            for term, count in Counter(doc).items():
                rows.append(d)
                cols.append(vocabulary.setdefault(term, len(vocabulary)))
                counts.append(count)

        n_docs = len(documents)
        if not vocabulary:
            return np.zeros((n_docs, 0)), []

        dtm = csr_matrix(
            (np.asarray(counts, dtype=float), (rows, cols)),
            shape=(n_docs, len(vocabulary)),
        )
        doc_freq = np.asarray((dtm > 0).sum(axis=0)).ravel()
        idf = np.log((n_docs + 1) / (doc_freq + 1)) + 1
        lengths = np.array([len(doc) or 1 for doc in documents], dtype=float)

        weights = diags(1.0 / lengths) @ dtm @ diags(idf)
        return weights.toarray(), list(vocabulary)

    @staticmethod
    def _unit_rows(matrix: np.ndarray) -> np.ndarray:
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        return np.divide(matrix, norms, out=np.zeros_like(matrix), where=norms > 0)

    def _similarities(self, unit_vectors: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        return unit_vectors @ self._unit_rows(centroids).T

    def kmeans(
        self, vectors: np.ndarray, k: int, rng: np.random.Generator
    ) -> np.ndarray:
        """
        Cosine-similarity k-means with random restarts.

        Each restart seeds the centroids with ``min(k, n)`` distinct documents
        in shuffled order and runs Lloyd iterations until no assignment
        changes. A cluster left without members keeps its centroid. The
        restart with the highest mean point-to-centroid similarity wins.

        :return: Cluster label per document
        """
        n = len(vectors)
        if n == 0 or k <= 0:
            return np.array([], dtype=int)

        actual_k = min(k, n)
        unit = self._unit_rows(vectors)
        best_labels = np.zeros(n, dtype=int)
        best_score = -np.inf

        for _ in range(self.restarts):
            order = rng.permutation(n)
            centroids = vectors[order[:actual_k]].copy()
            labels = np.zeros(n, dtype=int)

            for _ in range(self.max_iter):
                assigned = np.argmax(self._similarities(unit, centroids), axis=1)
                changed = bool(np.any(assigned != labels))
                labels = assigned
                if not changed:
                    break
                for c in range(actual_k):
                    members = vectors[labels == c]
                    if len(members) > 0:
                        centroids[c] = members.mean(axis=0)

            sims = self._similarities(unit, centroids)
            score = sims[np.arange(n), labels].mean()
            if score > best_score:
                best_score = score
                best_labels = labels

        return best_labels

    def cluster(
        self,
        codings: Sequence[Coding],
        k: int = CONFIG.DEFAULT_K,
        question_ids: Optional[Sequence[str]] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ) -> Dict:
        """
        Cluster coded spans into themes.

        Args:
            codings: Coding records.
            k: Requested number of clusters; capped at the number of codings.
                ``k <= 0`` yields no clusters.
            question_ids: Only cluster codings of these questions.
            rng: Random generator used for centroid initialisation.
            seed: Seed for a fresh generator when ``rng`` is not given.

        Returns:
            ``{"clusters": [{id, label, segments: [{codingId, text}], keywords}]}``
            with clusters in order of their first member.
        """
        selected = filter_codings_by_question(codings, question_ids)
        if not selected or k <= 0:
            return {"clusters": []}

        if rng is None:
            rng = np.random.default_rng(seed)

        with PerformanceMonitor(f"Clustering (k={k})"):
            documents = [tokenize(c.coded_text, self.stop_words) for c in selected]
            vectors, vocabulary = self.build_tfidf(documents)
            warn_if_large_clustering(len(documents), len(vocabulary))
            labels = self.kmeans(vectors, k, rng)

            clusters = []
            for label in dict.fromkeys(labels.tolist()):
                members = np.flatnonzero(labels == label)
                mean_weights = vectors[members].mean(axis=0)
                top = np.argsort(-mean_weights, kind="stable")[: CONFIG.CLUSTER_KEYWORD_LIMIT]
                clusters.append(
                    {
                        "id": label,
                        "label": f"Cluster {label + 1}",
                        "segments": [
                            {"codingId": selected[i].id, "text": selected[i].coded_text}
                            for i in members[: CONFIG.CLUSTER_SEGMENT_LIMIT]
                        ],
                        "keywords": [
                            vocabulary[i] for i in top if mean_weights[i] > 0
                        ],
                    }
                )

        return {"clusters": clusters}


def _new_coding_id() -> str:
    return uuid.uuid4().hex


class AutoCoder:
    """
    Codes every search match as a new span of one question.

    The new codings are returned for the caller to persist; nothing is
    written here. Zero-length regex matches cannot form a span and are
    left uncoded.
    """

    def __init__(
        self,
        search_analyzer: Optional[SpanSearchAnalyzer] = None,
        id_factory: Callable[[], str] = _new_coding_id,
    ):
        self.search_analyzer = search_analyzer or SpanSearchAnalyzer()
        self.id_factory = id_factory

    def auto_code(
        self,
        transcripts: Sequence[Transcript],
        question_id: str,
        pattern: str,
        mode: str = "keyword",
        transcript_ids: Optional[Sequence[str]] = None,
    ) -> Dict:
        """
        Turn search matches into codings.

        :return: ``{"created": n, "codings": [coding dicts]}``
        """
        found = self.search_analyzer.search(transcripts, pattern, mode, transcript_ids)

        codings = [
            Coding(
                id=self.id_factory(),
                transcript_id=match["transcriptId"],
                question_id=question_id,
                start_offset=match["offset"],
                end_offset=match["offset"] + len(match["matchText"]),
                coded_text=match["matchText"],
            )
            for match in found["matches"]
            if match["matchText"]
        ]

        return {"created": len(codings), "codings": [c.to_dict() for c in codings]}
