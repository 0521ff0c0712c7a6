"""
Tests for input validation functions.

Covers matrices, observation tables, partitions and item labels, for both
valid input (normalized copies returned) and invalid input
(``InvalidInputError`` raised).
"""

import numpy as np
import polars as pl
import pytest

from psychNet.common.exceptions import InvalidInputError
from psychNet.common.validators import (
    validate_square_matrix,
    validate_observations,
    validate_partition,
    validate_labels,
    unique_labels,
)


class TestValidateSquareMatrix:
    """Test validation of correlation-like matrices."""

    def setup_method(self):
        self.corr = np.array([
            [1.0, 0.3, 0.2],
            [0.3, 1.0, 0.5],
            [0.2, 0.5, 1.0],
        ])

    def test_valid_matrix_returns_float_copy(self):
        result = validate_square_matrix(self.corr.tolist())
        assert result.dtype == np.float64
        np.testing.assert_array_equal(result, self.corr)

        result[0, 0] = 5.0
        assert self.corr[0, 0] == 1.0

    def test_not_square(self):
        with pytest.raises(InvalidInputError, match="must be square"):
            validate_square_matrix(np.ones((3, 4)))

    def test_not_two_dimensional(self):
        with pytest.raises(InvalidInputError, match="2-dimensional"):
            validate_square_matrix(np.ones(4))

    def test_empty(self):
        with pytest.raises(InvalidInputError, match="empty"):
            validate_square_matrix(np.zeros((0, 0)))

    def test_non_finite(self):
        self.corr[0, 1] = np.nan
        with pytest.raises(InvalidInputError, match="NaN or infinite"):
            validate_square_matrix(self.corr)

    def test_non_numeric(self):
        with pytest.raises(InvalidInputError, match="numeric"):
            validate_square_matrix([["a", "b"], ["c", "d"]])

    def test_asymmetric(self):
        self.corr[0, 1] = 0.9
        with pytest.raises(InvalidInputError, match="symmetric") as exc_info:
            validate_square_matrix(self.corr, name="covariance")
        assert exc_info.value.field == "covariance"
        assert exc_info.value.details["max_asymmetry"] == pytest.approx(0.6)

    def test_asymmetric_allowed(self):
        self.corr[0, 1] = 0.9
        result = validate_square_matrix(self.corr, symmetric=False)
        assert result[0, 1] == 0.9

    def test_within_tolerance(self):
        self.corr[0, 1] += 1e-10
        validate_square_matrix(self.corr)


class TestValidateObservations:
    """Test validation of subjects x items tables."""

    def test_numpy_input(self):
        data, labels = validate_observations(np.arange(12).reshape(4, 3))
        assert data.shape == (4, 3)
        assert data.dtype == np.float64
        assert labels == ("0", "1", "2")

    def test_list_input(self):
        data, labels = validate_observations([[1, 2], [3, 4], [5, 7]])
        assert data.shape == (3, 2)
        assert labels == ("0", "1")

    def test_dataframe_labels(self):
        df = pl.DataFrame({"Act1": [1, 2, 3], "Act2": [2.0, 1.0, 3.0]})
        data, labels = validate_observations(df)
        assert labels == ("Act1", "Act2")
        np.testing.assert_array_equal(data[:, 1], [2.0, 1.0, 3.0])

    def test_ragged_rows(self):
        with pytest.raises(InvalidInputError, match="same length"):
            validate_observations([[1, 2, 3], [4, 5]])

    def test_missing_values_array(self):
        with pytest.raises(InvalidInputError, match="missing values"):
            validate_observations([[1.0, np.nan], [2.0, 3.0]])

    def test_missing_values_dataframe(self):
        df = pl.DataFrame({"a": [1.0, None, 3.0], "b": [1.0, 2.0, 3.0]})
        with pytest.raises(InvalidInputError, match="missing values"):
            validate_observations(df)

    def test_non_numeric_dataframe(self):
        df = pl.DataFrame({"a": ["x", "y"], "b": [1, 2]})
        with pytest.raises(InvalidInputError, match="numeric"):
            validate_observations(df)

    def test_non_numeric_list(self):
        with pytest.raises(InvalidInputError, match="numeric"):
            validate_observations([["x", 1], ["y", 2]])

    def test_single_subject(self):
        with pytest.raises(InvalidInputError, match="at least two subjects"):
            validate_observations([[1.0, 2.0, 3.0]])

    def test_infinite(self):
        with pytest.raises(InvalidInputError, match="infinite"):
            validate_observations([[1.0, np.inf], [2.0, 3.0]])


class TestValidatePartition:
    """Test normalization of community partitions."""

    def test_sequence(self):
        assert validate_partition(["a", "b", "a"], 3) == ("a", "b", "a")

    def test_numpy_sequence(self):
        assert validate_partition(np.array([2, 2, 7]), 3) == (2, 2, 7)

    def test_mapping(self):
        assert validate_partition({2: "x", 0: "y", 1: "x"}, 3) == ("y", "x", "x")

    def test_mapping_missing_node(self):
        with pytest.raises(InvalidInputError, match="does not assign"):
            validate_partition({0: "a", 1: "b"}, 3)

    def test_mapping_unknown_node(self):
        with pytest.raises(InvalidInputError, match="unknown nodes"):
            validate_partition({0: "a", 1: "b", 2: "a", 5: "c"}, 3)

    def test_length_mismatch(self):
        with pytest.raises(InvalidInputError, match="2 labels but the graph has 3"):
            validate_partition(["a", "b"], 3)

    def test_none_label(self):
        with pytest.raises(InvalidInputError, match="must not be None"):
            validate_partition(["a", None, "b"], 3)

    def test_unique_labels_first_appearance(self):
        assert unique_labels(["c", "a", "c", "b", "a"]) == ["c", "a", "b"]


class TestValidateLabels:
    """Test item label normalization."""

    def test_default_labels(self):
        assert validate_labels(None, 3) == ("0", "1", "2")

    def test_labels_become_strings(self):
        assert validate_labels([10, 20], 2) == ("10", "20")

    def test_wrong_length(self):
        with pytest.raises(InvalidInputError, match="Expected 3 labels"):
            validate_labels(["a", "b"], 3)

    def test_duplicates(self):
        with pytest.raises(InvalidInputError, match="unique"):
            validate_labels(["a", "a"], 2)
