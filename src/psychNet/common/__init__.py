"""
Shared utilities: exceptions, input validation, logging and configuration.
"""

from .exceptions import (
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
from .config import AnalysisConfig, get_config
from .logging_config import setup_logging, get_logger

__all__ = [
    "NetworkAnalysisError",
    "ValidationError",
    "InvalidInputError",
    "GraphConstructionError",
    "InsufficientNodesError",
    "ConfigurationError",
    "InvalidParameterError",
    "ComputationError",
    "SingularSubmatrixError",
    "validate_parameter",
    "require_positive",
    "AnalysisConfig",
    "get_config",
    "setup_logging",
    "get_logger",
]
