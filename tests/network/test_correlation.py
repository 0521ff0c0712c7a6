"""
Tests for correlation, covariance, partial correlation and dependency
matrices.
"""

import numpy as np
import polars as pl
import pytest
from scipy.stats import spearmanr

from psychNet.common.exceptions import InvalidInputError, InvalidParameterError
from psychNet.network.correlation import (
    correlation_matrix,
    covariance_matrix,
    dependency_matrix,
    partial_correlations,
)


class TestCorrelationMatrix:
    """Test Pearson and Spearman item correlations."""

    def setup_method(self):
        rng = np.random.default_rng(42)
        latent = rng.normal(size=(300, 1))
        self.data = latent + rng.normal(size=(300, 5))

    def test_pearson_matches_numpy(self):
        corr = correlation_matrix(self.data)
        np.testing.assert_allclose(corr, np.corrcoef(self.data, rowvar=False), atol=1e-12)
        np.testing.assert_array_equal(np.diag(corr), np.ones(5))
        np.testing.assert_array_equal(corr, corr.T)

    def test_spearman_matches_scipy(self):
        corr = correlation_matrix(self.data, method="spearman")
        expected = spearmanr(self.data)[0]
        np.testing.assert_allclose(corr, expected, atol=1e-12)

    def test_dataframe_input(self):
        df = pl.DataFrame({f"item{i}": self.data[:, i] for i in range(5)})
        np.testing.assert_allclose(correlation_matrix(df), correlation_matrix(self.data))

    def test_zero_variance_item(self):
        self.data[:, 2] = 3.0
        with pytest.raises(InvalidInputError, match="zero variance"):
            correlation_matrix(self.data)

    def test_invalid_method(self):
        with pytest.raises(InvalidParameterError, match="method"):
            correlation_matrix(self.data, method="kendall")

    def test_covariance(self):
        cov = covariance_matrix(self.data)
        np.testing.assert_allclose(cov, np.cov(self.data, rowvar=False, ddof=1))
        np.testing.assert_array_equal(cov, cov.T)


class TestPartialCorrelations:
    """Test conversion of precision matrices to partial correlations."""

    def test_known_values(self):
        precision = np.array([
            [2.0, -1.0, 0.0],
            [-1.0, 2.0, -0.5],
            [0.0, -0.5, 1.0],
        ])
        partial = partial_correlations(precision)

        assert partial[0, 1] == pytest.approx(0.5)
        assert partial[1, 2] == pytest.approx(0.5 / np.sqrt(2.0))
        assert partial[0, 2] == 0.0
        np.testing.assert_array_equal(np.diag(partial), np.zeros(3))

    def test_non_positive_diagonal(self):
        with pytest.raises(InvalidInputError, match="positive diagonal"):
            partial_correlations(np.array([[1.0, 0.1], [0.1, 0.0]]))


class TestDependencyMatrix:
    """Test the directed dependency matrix."""

    def setup_method(self):
        rng = np.random.default_rng(7)
        latent = rng.normal(size=(400, 1))
        self.data = latent * np.array([1.0, 0.8, 0.5, 0.3]) + rng.normal(size=(400, 4))

    def test_shape_and_diagonal(self):
        dependency = dependency_matrix(self.data)
        assert dependency.shape == (4, 4)
        np.testing.assert_array_equal(np.diag(dependency), np.zeros(4))
        assert np.all(np.isfinite(dependency))
        assert not np.allclose(dependency, dependency.T)

    def test_three_items_match_direct_formula(self):
        data = self.data[:, :3]
        r = np.corrcoef(data, rowvar=False)
        dependency = dependency_matrix(data)

        for i, j, k in [(0, 1, 2), (1, 0, 2), (2, 1, 0), (0, 2, 1)]:
            partial = (r[i, k] - r[i, j] * r[k, j]) / np.sqrt((1 - r[i, j] ** 2) * (1 - r[k, j] ** 2))
            assert dependency[i, j] == pytest.approx(r[i, k] - partial)

    def test_too_few_items(self):
        with pytest.raises(InvalidInputError, match="at least three items"):
            dependency_matrix(self.data[:, :2])

    def test_perfect_correlation(self):
        self.data[:, 3] = 2.0 * self.data[:, 0] + 1.0
        with pytest.raises(InvalidInputError, match="perfect correlation"):
            dependency_matrix(self.data)
