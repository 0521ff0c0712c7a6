"""
Network construction and analysis.

Correlation matrices feed the TMFG builder; the TMFG topology and the
covariance feed the LoGo precision estimator; centrality and community
statistics run on any ``Graph``.
"""

from psychNet.network.graph import Graph, distance_transform
from psychNet.network.correlation import (
    correlation_matrix,
    covariance_matrix,
    dependency_matrix,
    partial_correlations,
)
from psychNet.network.tmfg import (
    SeedStrategy,
    GreedySeed,
    ExactSeed,
    build_tmfg,
)
from psychNet.network.logo import (
    build_precision,
    junction_tree,
    logo_network,
    precision_graph,
)
from psychNet.network.centrality import (
    standard_betweenness,
    rsp_betweenness,
    randomized_shortest_paths_betweenness,
    closeness,
    centrality_table,
)
from psychNet.network.communities import (
    NetworkScores,
    detect_communities,
    community_closeness,
    community_weights,
    aggregate_scores,
)
from psychNet.network.comparison import (
    rmse,
    compare_to_latent,
    compare_centralities,
    scale_to_inventory,
)

__all__ = [
    "Graph",
    "distance_transform",
    "correlation_matrix",
    "covariance_matrix",
    "dependency_matrix",
    "partial_correlations",
    "SeedStrategy",
    "GreedySeed",
    "ExactSeed",
    "build_tmfg",
    "build_precision",
    "junction_tree",
    "logo_network",
    "precision_graph",
    "standard_betweenness",
    "rsp_betweenness",
    "randomized_shortest_paths_betweenness",
    "closeness",
    "centrality_table",
    "NetworkScores",
    "detect_communities",
    "community_closeness",
    "community_weights",
    "aggregate_scores",
    "rmse",
    "compare_to_latent",
    "compare_centralities",
    "scale_to_inventory",
]
