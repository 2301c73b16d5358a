"""
Tests for TF-IDF vectors and cosine k-means clustering.
"""

import math
import warnings

import numpy as np
import pytest

import codingcanvas as cc
from codingcanvas.analyzers import ClusterAnalyzer
from codingcanvas.config import CONFIG
from codingcanvas.performance import warn_if_large_clustering
from codingcanvas.validation import PerformanceWarning

from conftest import make_coding


class TestTfIdf:
    """Vocabulary and weights."""

    def test_weights(self):
        vectors, vocabulary = ClusterAnalyzer.build_tfidf(
            [["waste", "bins"], ["waste"]]
        )

        assert vocabulary == ["waste", "bins"]
        assert vectors.shape == (2, 2)
        # "waste" is in every document: idf = ln(3 / 3) + 1 = 1
        assert vectors[0, 0] == pytest.approx(0.5)
        assert vectors[1, 0] == pytest.approx(1.0)
        assert vectors[0, 1] == pytest.approx(0.5 * (math.log(3 / 2) + 1))
        assert vectors[1, 1] == 0

    def test_vocabulary_keeps_first_seen_order(self):
        _, vocabulary = ClusterAnalyzer.build_tfidf(
            [["staff", "waste"], ["bins", "staff"]]
        )
        assert vocabulary == ["staff", "waste", "bins"]

    def test_repeated_terms(self):
        vectors, _ = ClusterAnalyzer.build_tfidf([["waste", "waste", "bins", "bins"]])
        assert vectors[0, 0] == pytest.approx(0.5)

    def test_empty_vocabulary(self):
        vectors, vocabulary = ClusterAnalyzer.build_tfidf([[], []])
        assert vocabulary == []
        assert vectors.shape == (2, 0)

    def test_weights_are_never_negative(self, themed_codings):
        analyzer = ClusterAnalyzer()
        documents = [cc.tokenize(c.coded_text) for c in themed_codings]
        vectors, _ = analyzer.build_tfidf(documents)
        assert (vectors >= 0).all()


class TestKMeans:
    """Cosine k-means with restarts."""

    def test_separates_disjoint_themes(self, fixed_order):
        vectors = np.array([[1.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 1.0]])
        labels = ClusterAnalyzer().kmeans(vectors, 2, fixed_order([0, 2, 1, 3]))
        assert labels.tolist() == [0, 0, 1, 1]

    def test_best_restart_wins(self, fixed_order):
        vectors = np.array([[1.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 1.0]])
        # The first and last restarts seed both centroids from one theme
        rng = fixed_order([0, 1, 2, 3], [0, 2, 1, 3], [1, 0, 3, 2])

        labels = ClusterAnalyzer().kmeans(vectors, 2, rng)

        assert rng.calls == CONFIG.KMEANS_RESTARTS
        assert labels.tolist() == [0, 0, 1, 1]

    def test_k_is_capped_at_document_count(self):
        vectors = np.eye(3)
        labels = ClusterAnalyzer().kmeans(vectors, 10, np.random.default_rng(1))
        assert sorted(labels.tolist()) == [0, 1, 2]

    def test_no_documents(self):
        labels = ClusterAnalyzer().kmeans(np.zeros((0, 4)), 3, np.random.default_rng())
        assert labels.tolist() == []


class TestCluster:
    """Cluster results."""

    def test_every_coding_in_exactly_one_cluster(self, themed_codings):
        result = cc.compute_clusters(themed_codings, k=3, seed=11)

        assert 1 <= len(result["clusters"]) <= 3
        ids = [s["codingId"] for c in result["clusters"] for s in c["segments"]]
        assert sorted(ids) == sorted(c.id for c in themed_codings)

    def test_seed_makes_clusters_repeatable(self, themed_codings):
        first = cc.compute_clusters(themed_codings, k=3, seed=5)
        second = cc.compute_clusters(themed_codings, k=3, seed=5)
        assert first == second

    def test_injected_generator(self, themed_codings):
        first = cc.compute_clusters(themed_codings, k=2, rng=np.random.default_rng(3))
        second = cc.compute_clusters(themed_codings, k=2, rng=np.random.default_rng(3))
        assert first == second

    def test_keywords_and_labels(self, fixed_order):
        codings = [
            make_coding("a1", "q1", 0, 20, "waste recycling bins"),
            make_coding("a2", "q1", 0, 20, "waste recycling bins"),
            make_coding("b1", "q1", 0, 24, "staff training mentoring"),
            make_coding("b2", "q1", 0, 24, "staff training mentoring"),
        ]
        result = ClusterAnalyzer().cluster(
            codings, k=2, rng=fixed_order([0, 2, 1, 3])
        )

        assert result["clusters"] == [
            {
                "id": 0,
                "label": "Cluster 1",
                "segments": [
                    {"codingId": "a1", "text": "waste recycling bins"},
                    {"codingId": "a2", "text": "waste recycling bins"},
                ],
                "keywords": ["waste", "recycling", "bins"],
            },
            {
                "id": 1,
                "label": "Cluster 2",
                "segments": [
                    {"codingId": "b1", "text": "staff training mentoring"},
                    {"codingId": "b2", "text": "staff training mentoring"},
                ],
                "keywords": ["staff", "training", "mentoring"],
            },
        ]

    def test_keyword_limit(self):
        codings = [
            make_coding("a", "q1", 0, 10, "alpha bravo charlie delta echo foxtrot golf")
        ]
        keywords = cc.compute_clusters(codings, k=1, seed=0)["clusters"][0]["keywords"]
        assert keywords == ["alpha", "bravo", "charlie", "delta", "echo"]

    def test_segment_limit(self):
        codings = [make_coding(f"c{i}", "q1", 0, 5, "waste") for i in range(25)]
        cluster = cc.compute_clusters(codings, k=1, seed=0)["clusters"][0]
        assert len(cluster["segments"]) == CONFIG.CLUSTER_SEGMENT_LIMIT

    def test_stop_word_only_codings_have_no_keywords(self):
        codings = [
            make_coding("a", "q1", 0, 10, "the and of"),
            make_coding("b", "q1", 0, 2, "it"),
        ]
        result = cc.compute_clusters(codings, k=2, seed=0)

        assert all(c["keywords"] == [] for c in result["clusters"])
        ids = [s["codingId"] for c in result["clusters"] for s in c["segments"]]
        assert sorted(ids) == ["a", "b"]

    def test_question_filter(self, codings):
        result = cc.compute_clusters(codings, k=2, question_ids=["q3"], seed=0)
        ids = [s["codingId"] for c in result["clusters"] for s in c["segments"]]
        assert ids == ["c5"]

    def test_empty_inputs(self, codings):
        assert cc.compute_clusters([], k=3) == {"clusters": []}
        assert cc.compute_clusters(codings, k=0) == {"clusters": []}
        assert cc.compute_clusters(codings, k=-2) == {"clusters": []}
        assert cc.compute_clusters(codings, question_ids=["missing"]) == {
            "clusters": []
        }


class TestLargeClusteringWarning:
    def test_warns_above_threshold(self):
        with pytest.warns(PerformanceWarning):
            warn_if_large_clustering(CONFIG.LARGE_CLUSTERING_THRESHOLD + 1, 100)

    def test_quiet_below_threshold(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            warn_if_large_clustering(10, 100)
