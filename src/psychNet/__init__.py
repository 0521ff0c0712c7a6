"""
psychNet - Psychometric network analysis core.

Builds sparse item networks from correlation data and derives node- and
community-level statistics from them.

Modules:
    common: Exceptions, validation, logging and configuration
    network: TMFG construction, LoGo precision estimation, centrality and
        network-adjusted community scores
"""

__version__ = "0.1.0"

from psychNet.common.exceptions import (
    NetworkAnalysisError,
    InvalidInputError,
    InsufficientNodesError,
    SingularSubmatrixError,
    InvalidParameterError,
)
from psychNet.network import (
    Graph,
    correlation_matrix,
    covariance_matrix,
    build_tmfg,
    build_precision,
    standard_betweenness,
    rsp_betweenness,
    detect_communities,
    community_closeness,
    aggregate_scores,
)

__all__ = [
    "NetworkAnalysisError",
    "InvalidInputError",
    "InsufficientNodesError",
    "SingularSubmatrixError",
    "InvalidParameterError",
    "Graph",
    "correlation_matrix",
    "covariance_matrix",
    "build_tmfg",
    "build_precision",
    "standard_betweenness",
    "rsp_betweenness",
    "detect_communities",
    "community_closeness",
    "aggregate_scores",
]
