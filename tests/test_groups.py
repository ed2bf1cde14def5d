"""
Test the contiguous group index and its grouped reductions.
"""

import pytest
import numpy as np

from pybife._core.groups import GroupIndex
from pybife._backends import get_backend
from pybife.exceptions import DegenerateGroup


IDS = np.array(["b", "b", "a", "a", "a", "c"])


class TestConstruction:
    """Index construction from id vectors."""

    def test_layout(self):
        groups = GroupIndex.from_ids(IDS)
        np.testing.assert_array_equal(groups.keys, ["b", "a", "c"])
        np.testing.assert_array_equal(groups.starts, [0, 2, 5])
        np.testing.assert_array_equal(groups.sizes, [2, 3, 1])
        np.testing.assert_array_equal(groups.codes, [0, 0, 1, 1, 1, 2])
        assert groups.n_groups == 3
        assert groups.n_obs == 6

    def test_numeric_ids(self):
        groups = GroupIndex.from_ids(np.array([7, 7, 7, 3, 3]))
        np.testing.assert_array_equal(groups.keys, [7, 3])
        np.testing.assert_array_equal(groups.sizes, [3, 2])

    def test_non_contiguous_rejected(self):
        with pytest.raises(ValueError, match="contiguous"):
            GroupIndex.from_ids(np.array([1, 1, 2, 1]))

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            GroupIndex.from_ids(np.array([]))

    def test_read_only(self):
        groups = GroupIndex.from_ids(IDS)
        with pytest.raises(ValueError):
            groups.codes[0] = 2


class TestReductions:
    """Grouped sums, means and demeaning."""

    def setup_method(self):
        np.random.seed(42)
        self.groups = GroupIndex.from_ids(IDS)
        self.v = np.random.randn(6)
        self.M = np.random.randn(6, 2)
        self.w = np.random.uniform(0.5, 2.0, 6)

    def test_sum_vector(self):
        expected = [self.v[:2].sum(), self.v[2:5].sum(), self.v[5]]
        np.testing.assert_allclose(self.groups.sum(self.v), expected, rtol=1e-14)

    def test_sum_matrix(self):
        expected = np.vstack([self.M[:2].sum(0), self.M[2:5].sum(0), self.M[5]])
        np.testing.assert_allclose(self.groups.sum(self.M), expected, rtol=1e-14)

    def test_expand(self):
        np.testing.assert_array_equal(
            self.groups.expand(np.array([1.0, 2.0, 3.0])),
            [1.0, 1.0, 2.0, 2.0, 2.0, 3.0]
        )

    def test_weighted_mean(self):
        w, v = self.w, self.v
        expected = [
            np.average(v[:2], weights=w[:2]),
            np.average(v[2:5], weights=w[2:5]),
            v[5],
        ]
        np.testing.assert_allclose(self.groups.weighted_mean(v, w), expected, rtol=1e-12)

    def test_demean_removes_weighted_means(self):
        M_tilde = self.groups.demean(self.M, self.w)
        weighted = self.groups.sum(M_tilde * self.w[:, np.newaxis])
        np.testing.assert_allclose(weighted, 0.0, atol=1e-12)

    def test_backend_reductions_match(self):
        backend = get_backend("cpu")
        np.testing.assert_allclose(
            self.groups.weighted_mean(self.M, self.w, backend),
            self.groups.weighted_mean(self.M, self.w),
            rtol=1e-14
        )


def test_require_min_size():
    groups = GroupIndex.from_ids(IDS)
    groups.require_min_size(1)
    with pytest.raises(DegenerateGroup, match="'c'"):
        groups.require_min_size(2)
