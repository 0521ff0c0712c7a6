"""
Exception hierarchy for the psychNet library.

Every failure raised by a public operation derives from
``NetworkAnalysisError`` so callers can catch library errors with a single
clause, while the concrete subclasses name the failure mode:

- ``InvalidInputError``: malformed matrices, observations or partitions
- ``InsufficientNodesError``: graph too small for the construction algorithm
- ``SingularSubmatrixError``: non-invertible clique/separator block
- ``InvalidParameterError``: out-of-range tuning parameter

Errors carry structured ``details`` and ``context`` dictionaries that are
rendered into the message and remain available for programmatic handling.
"""

from typing import Dict, Any, Optional, List, Sequence, Union
import traceback


class NetworkAnalysisError(Exception):
    """
    Base exception for all psychNet errors.

    Parameters
    ----------
    message : str
        Human-readable error message
    details : Dict[str, Any], optional
        Structured information about the failing input
    cause : Exception, optional
        Underlying exception, chained as ``__cause__``
    context : Dict[str, Any], optional
        Information about the operation that failed

    Examples
    --------
    >>> raise NetworkAnalysisError("Precision estimation failed")
    >>> raise NetworkAnalysisError(
    ...     "Matrix is not square",
    ...     details={"rows": 10, "columns": 9}
    ... )
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ) -> None:
        self.message = message
        self.details = details or {}
        self.cause = cause
        self.context = context or {}

        full_message = message

        if self.details:
            detail_parts = []
            for key, value in self.details.items():
                if isinstance(value, (list, tuple, dict)) and len(str(value)) > 100:
                    detail_parts.append(f"{key}=<{type(value).__name__} with {len(value)} items>")
                else:
                    detail_parts.append(f"{key}={value}")
            full_message += f" (Details: {', '.join(detail_parts)})"

        if self.context:
            context_parts = [f"{k}={v}" for k, v in self.context.items()]
            full_message += f" (Context: {', '.join(context_parts)})"

        super().__init__(full_message)

        if cause is not None:
            self.__cause__ = cause

    def add_context(self, **kwargs: Any) -> 'NetworkAnalysisError':
        """
        Attach additional context to the exception.

        Returns
        -------
        NetworkAnalysisError
            Self, for method chaining

        Examples
        --------
        >>> error = NetworkAnalysisError("Failed")
        >>> error.add_context(operation="build_tmfg", step="seed")
        """
        self.context.update(kwargs)
        return self

    def get_debug_info(self) -> Dict[str, Any]:
        """Return all available error information as a dictionary."""
        return {
            "exception_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "traceback": traceback.format_exc() if self.__traceback__ else None
        }


class ValidationError(NetworkAnalysisError):
    """
    Exception raised when input data fails validation.

    Parameters
    ----------
    message : str
        What was wrong with the input
    field : str, optional
        Name of the offending argument (e.g. "matrix", "partition")
    value : Any, optional
        The offending value
    expected : str, optional
        Description of what was expected
    details : Dict[str, Any], optional
        Additional details about the failure
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> None:
        self.field = field
        self.value = value
        self.expected = expected

        enhanced_details = dict(details or {})
        if value is not None:
            enhanced_details["invalid_value"] = value
        if expected is not None:
            enhanced_details["expected"] = expected

        if field:
            enhanced_message = f"Validation error in field '{field}': {message}"
        else:
            enhanced_message = f"Validation error: {message}"

        super().__init__(enhanced_message, details=enhanced_details, **kwargs)


class InvalidInputError(ValidationError):
    """
    Malformed input: non-square or non-symmetric matrix, ragged or missing
    observations, partitions that do not cover the graph, or dimension
    mismatches between related inputs.

    Examples
    --------
    >>> raise InvalidInputError(
    ...     "Matrix must be symmetric",
    ...     field="matrix",
    ...     details={"max_asymmetry": 0.2}
    ... )
    """


class GraphConstructionError(NetworkAnalysisError):
    """
    Exception raised while building a graph.

    Parameters
    ----------
    message : str
        Description of the construction error
    algorithm : str, optional
        Construction algorithm in use (e.g. "tmfg")
    node_count : int, optional
        Number of nodes involved
    edge_count : int, optional
        Number of edges involved
    """

    def __init__(
        self,
        message: str,
        algorithm: Optional[str] = None,
        node_count: Optional[int] = None,
        edge_count: Optional[int] = None,
        **kwargs
    ) -> None:
        self.algorithm = algorithm
        self.node_count = node_count
        self.edge_count = edge_count

        context = dict(kwargs.pop("context", None) or {})
        if algorithm:
            context["algorithm"] = algorithm
        if node_count is not None:
            context["node_count"] = node_count
        if edge_count is not None:
            context["edge_count"] = edge_count

        super().__init__(message, context=context, **kwargs)


class InsufficientNodesError(GraphConstructionError):
    """
    The graph has too few nodes for the requested construction.

    Parameters
    ----------
    message : str
        Description of the failure
    required : int, optional
        Minimum number of nodes the algorithm needs
    """

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        **kwargs
    ) -> None:
        self.required = required
        details = dict(kwargs.pop("details", None) or {})
        if required is not None:
            details["required_nodes"] = required
        super().__init__(message, details=details, **kwargs)


class ConfigurationError(NetworkAnalysisError):
    """
    Exception raised for invalid parameter values or combinations.

    Parameters
    ----------
    message : str
        Description of the configuration error
    parameter : str, optional
        Name of the problematic parameter
    value : Any, optional
        The invalid parameter value
    valid_options : List[Any], optional
        Accepted values for the parameter
    function : str, optional
        Name of the function where the error occurred
    """

    def __init__(
        self,
        message: str,
        parameter: Optional[str] = None,
        value: Optional[Any] = None,
        valid_options: Optional[List[Any]] = None,
        function: Optional[str] = None,
        **kwargs
    ) -> None:
        self.parameter = parameter
        self.value = value
        self.valid_options = valid_options
        self.function = function

        details = dict(kwargs.pop("details", None) or {})
        if parameter:
            details["parameter"] = parameter
        if value is not None:
            details["invalid_value"] = value
        if valid_options:
            details["valid_options"] = valid_options
        if function:
            details["function"] = function

        enhanced_message = message
        if parameter and valid_options:
            enhanced_message += f". Valid options for '{parameter}': {valid_options}"

        super().__init__(enhanced_message, details=details, **kwargs)


class InvalidParameterError(ConfigurationError):
    """
    A tuning parameter is out of range, e.g. ``beta <= 0`` for randomized
    shortest paths or ``weighted=True`` on a graph without edge weights.
    """


class ComputationError(NetworkAnalysisError):
    """
    Exception raised when a numerical operation fails.

    Parameters
    ----------
    message : str
        Description of the computational error
    operation : str, optional
        The operation that failed (e.g. "clique_inversion")
    error_type : str, optional
        Kind of failure (e.g. "numerical", "overflow")
    resource_info : Dict[str, Any], optional
        Problem size information (nodes, edges)
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        error_type: Optional[str] = None,
        resource_info: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> None:
        self.operation = operation
        self.error_type = error_type
        self.resource_info = resource_info or {}

        context = dict(kwargs.pop("context", None) or {})
        if operation:
            context["operation"] = operation
        if error_type:
            context["error_type"] = error_type

        details = dict(kwargs.pop("details", None) or {})
        details.update(self.resource_info)

        super().__init__(message, details=details, context=context, **kwargs)


class SingularSubmatrixError(ComputationError):
    """
    A clique or separator covariance block could not be inverted.

    Parameters
    ----------
    message : str
        Description of the failure
    nodes : Sequence[int], optional
        Indices of the block that failed to invert
    block_type : str, optional
        "clique" or "separator"
    """

    def __init__(
        self,
        message: str,
        nodes: Optional[Sequence[int]] = None,
        block_type: Optional[str] = None,
        **kwargs
    ) -> None:
        self.nodes = tuple(int(v) for v in nodes) if nodes is not None else None
        self.block_type = block_type

        details = dict(kwargs.pop("details", None) or {})
        if self.nodes is not None:
            details["nodes"] = list(self.nodes)
        if block_type:
            details["block_type"] = block_type

        kwargs.setdefault("error_type", "numerical")
        super().__init__(message, details=details, **kwargs)


def validate_parameter(
    value: Any,
    valid_options: List[Any],
    parameter_name: str,
    function_name: Optional[str] = None
) -> None:
    """
    Check that ``value`` is one of ``valid_options``.

    Raises
    ------
    InvalidParameterError
        If value is not in valid_options
    """
    if value not in valid_options:
        raise InvalidParameterError(
            f"Invalid value for parameter '{parameter_name}': {value}",
            parameter=parameter_name,
            value=value,
            valid_options=list(valid_options),
            function=function_name
        )


def require_positive(
    value: Union[int, float],
    parameter_name: str,
    allow_zero: bool = False
) -> None:
    """
    Check that a numeric parameter is positive (or non-negative).

    Raises
    ------
    InvalidParameterError
        If value is not positive (or negative when allow_zero=True)
    """
    if value is None or value != value:
        raise InvalidParameterError(
            f"Parameter '{parameter_name}' must be a number, got {value}",
            parameter=parameter_name
        )
    if allow_zero and value < 0:
        raise InvalidParameterError(
            f"Parameter '{parameter_name}' must be non-negative, got {value}",
            parameter=parameter_name,
            value=value
        )
    elif not allow_zero and value <= 0:
        raise InvalidParameterError(
            f"Parameter '{parameter_name}' must be positive, got {value}",
            parameter=parameter_name,
            value=value
        )
