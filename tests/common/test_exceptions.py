"""
Tests for the psychNet exception hierarchy.

Checks inheritance, message rendering of details and context, and the
parameter validation helpers.
"""

import pytest

from psychNet.common.exceptions import (
    NetworkAnalysisError,
    ValidationError,
    InvalidInputError,
    GraphConstructionError,
    InsufficientNodesError,
    ConfigurationError,
    InvalidParameterError,
    ComputationError,
    SingularSubmatrixError,
    validate_parameter,
    require_positive,
)


class TestNetworkAnalysisError:
    """Test the base NetworkAnalysisError class."""

    def test_basic_error(self):
        error = NetworkAnalysisError("Test error")
        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.details == {}
        assert error.context == {}
        assert error.cause is None

    def test_error_with_details_and_context(self):
        error = NetworkAnalysisError(
            "Failed",
            details={"rows": 10, "columns": 9},
            context={"operation": "build_tmfg"}
        )
        message = str(error)
        assert "rows=10" in message
        assert "columns=9" in message
        assert "operation=build_tmfg" in message

    def test_long_details_are_summarized(self):
        error = NetworkAnalysisError("Failed", details={"items": list(range(100))})
        assert "<list with 100 items>" in str(error)

    def test_cause_is_chained(self):
        original = ValueError("Original problem")
        error = NetworkAnalysisError("Wrapped", cause=original)
        assert error.cause is original
        assert error.__cause__ is original

    def test_add_context_chains(self):
        error = NetworkAnalysisError("Failed")
        result = error.add_context(operation="rsp_betweenness", beta=0.01)
        assert result is error
        assert error.context == {"operation": "rsp_betweenness", "beta": 0.01}

    def test_debug_info(self):
        error = NetworkAnalysisError("Failed", details={"a": 1}, cause=KeyError("k"))
        info = error.get_debug_info()
        assert info["exception_type"] == "NetworkAnalysisError"
        assert info["message"] == "Failed"
        assert info["details"] == {"a": 1}
        assert "k" in info["cause"]


class TestHierarchy:
    """Test that the named failure modes sit under the right bases."""

    @pytest.mark.parametrize("error_class, base", [
        (InvalidInputError, ValidationError),
        (InsufficientNodesError, GraphConstructionError),
        (SingularSubmatrixError, ComputationError),
        (InvalidParameterError, ConfigurationError),
    ])
    def test_inheritance(self, error_class, base):
        assert issubclass(error_class, base)
        assert issubclass(error_class, NetworkAnalysisError)

    def test_catch_all_with_base(self):
        with pytest.raises(NetworkAnalysisError):
            raise InvalidInputError("bad", field="matrix")


class TestSpecificErrors:
    """Test the structured fields of each subclass."""

    def test_validation_message_with_field(self):
        error = InvalidInputError("Matrix must be square", field="matrix")
        assert str(error).startswith("Validation error in field 'matrix': Matrix must be square")
        assert error.field == "matrix"

    def test_validation_message_without_field(self):
        error = ValidationError("bad input", expected="a square matrix")
        assert str(error).startswith("Validation error: bad input")
        assert error.details["expected"] == "a square matrix"

    def test_insufficient_nodes(self):
        error = InsufficientNodesError(
            "Too few nodes", required=9, algorithm="tmfg", node_count=5
        )
        assert error.required == 9
        assert error.details["required_nodes"] == 9
        assert error.context["algorithm"] == "tmfg"
        assert error.context["node_count"] == 5

    def test_configuration_lists_valid_options(self):
        error = InvalidParameterError(
            "Unknown seed", parameter="seed", value="random", valid_options=["greedy", "exact"]
        )
        assert "Valid options for 'seed': ['greedy', 'exact']" in str(error)
        assert error.details["invalid_value"] == "random"

    def test_singular_submatrix(self):
        error = SingularSubmatrixError(
            "Singular block", nodes=[3, 1, 2], block_type="separator", operation="build_precision"
        )
        assert error.nodes == (3, 1, 2)
        assert error.block_type == "separator"
        assert error.error_type == "numerical"
        assert error.details["nodes"] == [3, 1, 2]
        assert error.context["operation"] == "build_precision"

    def test_computation_resource_info(self):
        error = ComputationError("Overflow", error_type="overflow", resource_info={"nodes": 48})
        assert error.details["nodes"] == 48
        assert error.context["error_type"] == "overflow"


class TestValidationHelpers:
    """Test validate_parameter and require_positive."""

    def test_validate_parameter_accepts(self):
        validate_parameter("greedy", ["greedy", "exact"], "seed")

    def test_validate_parameter_rejects(self):
        with pytest.raises(InvalidParameterError, match="Invalid value for parameter 'seed'"):
            validate_parameter("random", ["greedy", "exact"], "seed", "build_tmfg")

    def test_require_positive(self):
        require_positive(0.01, "beta")
        require_positive(0, "beta", allow_zero=True)

    @pytest.mark.parametrize("value", [0, -1.5])
    def test_require_positive_rejects(self, value):
        with pytest.raises(InvalidParameterError, match="must be positive"):
            require_positive(value, "beta")

    def test_require_positive_rejects_negative_with_zero_allowed(self):
        with pytest.raises(InvalidParameterError, match="non-negative"):
            require_positive(-1, "beta", allow_zero=True)

    @pytest.mark.parametrize("value", [None, float("nan")])
    def test_require_positive_rejects_missing(self, value):
        with pytest.raises(InvalidParameterError, match="must be a number"):
            require_positive(value, "beta")
