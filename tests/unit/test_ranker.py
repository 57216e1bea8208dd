"""Unit tests for cosine scoring and top-K ranking."""
import math

import numpy as np
import pytest

from harmony.memory.ranker import SimilarityRanker
from harmony.memory.store import Document
from tests.unit.test_utils import create_test_embedding


def _doc(vector, label="blob"):
    return Document.create(label, vector)


@pytest.fixture
def ranker():
    return SimilarityRanker()


@pytest.mark.unit
class TestScore:
    def test_self_similarity_is_one(self, ranker):
        v = create_test_embedding(seed=1)
        assert ranker.score(v, v) == pytest.approx(1.0, abs=1e-9)

    def test_opposite_vector_is_minus_one(self, ranker):
        v = create_test_embedding(seed=2)
        assert ranker.score(v, [-x for x in v]) == pytest.approx(-1.0, abs=1e-9)

    def test_zero_vector_scores_zero(self, ranker):
        v = create_test_embedding(seed=3)
        zero = [0.0] * len(v)
        assert ranker.score(v, zero) == 0.0
        assert ranker.score(zero, zero) == 0.0
        assert not math.isnan(ranker.score(zero, v))

    def test_orthogonal_vectors_score_zero(self, ranker):
        assert ranker.score([1.0, 0.0], [0.0, 3.0]) == 0.0

    def test_scale_invariant(self, ranker):
        a = [1.0, 2.0, 3.0]
        assert ranker.score(a, [10.0, 20.0, 30.0]) == pytest.approx(1.0)

    def test_length_mismatch_raises(self, ranker):
        with pytest.raises(ValueError):
            ranker.score([1.0, 2.0], [1.0, 2.0, 3.0])


@pytest.mark.unit
class TestRank:
    def test_returns_at_most_limit_in_non_increasing_order(self, ranker):
        query = create_test_embedding(seed=10)
        docs = [_doc(create_test_embedding(seed=i)) for i in range(25)]

        ranked = ranker.rank(query, docs, limit=7)

        assert len(ranked) == 7
        scores = [item.score for item in ranked]
        assert scores == sorted(scores, reverse=True)

    def test_best_match_first(self, ranker):
        query = [1.0, 0.0, 0.0]
        docs = [_doc([0.0, 1.0, 0.0], "b"), _doc([1.0, 0.1, 0.0], "a"), _doc([-1.0, 0.0, 0.0], "c")]

        ranked = ranker.rank(query, docs, limit=3)

        assert [item.document.encrypted_content for item in ranked] == ["a", "b", "c"]

    def test_ties_keep_insertion_order(self, ranker):
        docs = [_doc([1.0, 1.0], label) for label in ("first", "second", "third")]

        ranked = ranker.rank([2.0, 2.0], docs, limit=3)

        assert [item.document.encrypted_content for item in ranked] == ["first", "second", "third"]
        assert [item.position for item in ranked] == [0, 1, 2]

    def test_zero_magnitude_documents_rank_with_score_zero(self, ranker):
        docs = [_doc([0.0, 0.0], "empty"), _doc([-1.0, 0.0], "opposite")]

        ranked = ranker.rank([1.0, 0.0], docs, limit=2)

        assert [(i.document.encrypted_content, i.score) for i in ranked] == [
            ("empty", 0.0),
            ("opposite", -1.0),
        ]

    def test_limit_larger_than_corpus(self, ranker):
        docs = [_doc(create_test_embedding(seed=i)) for i in range(3)]
        assert len(ranker.rank(create_test_embedding(seed=99), docs, limit=10)) == 3

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_returns_nothing(self, ranker, limit):
        docs = [_doc(create_test_embedding(seed=1))]
        assert ranker.rank(create_test_embedding(seed=1), docs, limit=limit) == []

    def test_empty_corpus(self, ranker):
        assert ranker.rank(np.ones(4).tolist(), [], limit=3) == []
