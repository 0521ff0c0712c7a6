"""
Local-Global (LoGo) sparse inverse covariance estimation.

For a decomposable (chordal) graphical model the maximum-likelihood
precision matrix has the closed form (Barfuss et al., 2016)::

    J = sum_C  [inv(S[C, C])]  -  sum_S  [inv(S[S, S])]

where ``C`` runs over the maximal cliques and ``S`` over the separators of
the junction tree, and ``[.]`` embeds a block into an n x n zero matrix. A
TMFG is chordal and records its cliques (tetrahedra) and separators
(insertion triangles) while it is built. Other topologies are decomposed by
maximum cardinality search, which also verifies chordality.
"""

from itertools import combinations
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np
import scipy.linalg as la

from psychNet.common.config import get_config
from psychNet.common.exceptions import (
    InvalidInputError,
    SingularSubmatrixError,
)
from psychNet.common.logging_config import get_logger, log_function_entry, LoggingTimer
from psychNet.common.validators import (
    ObservationInput,
    validate_observations,
    validate_square_matrix,
)
from psychNet.network.correlation import (
    correlation_matrix,
    covariance_matrix,
    partial_correlations,
)
from psychNet.network.graph import Graph
from psychNet.network.tmfg import SeedStrategy, build_tmfg

logger = get_logger(__name__)


def junction_tree(graph: Graph) -> Tuple[List[np.ndarray], List[np.ndarray]]:
    """
    Maximal cliques and separators of a chordal graph as index arrays.

    Uses the decomposition recorded on the graph when present; otherwise
    runs maximum cardinality search.

    Raises
    ------
    InvalidInputError
        If the graph is not chordal
    """
    if graph.cliques:
        cliques = [np.array(c, dtype=int) for c in graph.cliques]
        separators = [np.array(s, dtype=int) for s in graph.separators]
        return cliques, separators
    return _decompose_chordal(graph)


def _mcs_order(graph: Graph) -> List[int]:
    n = graph.n_nodes
    weight = np.zeros(n, dtype=int)
    numbered = np.zeros(n, dtype=bool)
    order = []
    for _ in range(n):
        # argmax picks the lowest index among equally weighted nodes
        v = int(np.argmax(np.where(numbered, -1, weight)))
        order.append(v)
        numbered[v] = True
        for u, _ in graph.neighbors(v):
            if not numbered[u]:
                weight[u] += 1
    return order


def _decompose_chordal(graph: Graph) -> Tuple[List[np.ndarray], List[np.ndarray]]:
    order = _mcs_order(graph)
    position = {v: i for i, v in enumerate(order)}

    cliques: List[List[int]] = []
    separators: List[List[int]] = []
    current: Optional[List[int]] = None
    prev_card = -1

    for i, v in enumerate(order):
        earlier = [u for u, _ in graph.neighbors(v) if position[u] < i]
        for x, y in combinations(earlier, 2):
            if not graph.has_edge(x, y):
                raise InvalidInputError(
                    "Topology is not chordal; LoGo requires a decomposable graph",
                    field="topology",
                    details={"node": v, "missing_edge": (x, y)}
                )

        card = len(earlier)
        if card <= prev_card or current is None:
            if current is not None:
                cliques.append(current)
            current = earlier + [v]
            if card > 0:
                separators.append(earlier)
        else:
            current.append(v)
        prev_card = card

    if current is not None:
        cliques.append(current)

    return (
        [np.array(sorted(c), dtype=int) for c in cliques],
        [np.array(sorted(s), dtype=int) for s in separators],
    )


def _inverse_block(
    covariance: np.ndarray,
    nodes: np.ndarray,
    block_type: str,
    condition_limit: float
) -> np.ndarray:
    block = covariance[np.ix_(nodes, nodes)]
    condition = np.linalg.cond(block)
    if not np.isfinite(condition) or condition > condition_limit:
        raise SingularSubmatrixError(
            f"Covariance {block_type} block is singular (condition number {condition:.3g})",
            nodes=nodes,
            block_type=block_type,
            operation="build_precision"
        )
    try:
        return la.inv(block)
    except la.LinAlgError as e:
        raise SingularSubmatrixError(
            f"Covariance {block_type} block could not be inverted",
            nodes=nodes,
            block_type=block_type,
            operation="build_precision",
            cause=e
        )


def build_precision(covariance: Any, topology: Graph) -> np.ndarray:
    """
    Sparse precision matrix constrained to a chordal topology.

    Parameters
    ----------
    covariance : array-like, shape (n, n)
        Covariance (or correlation) matrix
    topology : Graph
        Chordal graph over the same n items, typically from ``build_tmfg``

    Returns
    -------
    np.ndarray
        Read-only symmetric precision matrix. Entries outside the topology's
        edges and the diagonal are exactly zero.

    Raises
    ------
    InvalidInputError
        If the covariance is malformed, its size differs from the topology,
        a variance is not positive, or the topology is not chordal
    SingularSubmatrixError
        If a clique or separator block is singular; regularize the
        covariance and retry

    Examples
    --------
    >>> tmfg = build_tmfg(correlation_matrix(responses))
    >>> precision = build_precision(covariance_matrix(responses), tmfg)
    """
    log_function_entry("build_precision", n_nodes=topology.n_nodes, n_edges=topology.n_edges)
    config = get_config()
    cov = validate_square_matrix(
        covariance, name="covariance", tolerance=config.symmetry_tolerance
    )
    n = cov.shape[0]
    if n != topology.n_nodes:
        raise InvalidInputError(
            f"Covariance has {n} items but the topology has {topology.n_nodes} nodes",
            field="covariance"
        )
    if np.any(np.diag(cov) <= 0):
        raise InvalidInputError(
            "Covariance diagonal must be positive",
            field="covariance",
            details={"non_positive": int(np.sum(np.diag(cov) <= 0))}
        )

    cliques, separators = junction_tree(topology)

    with LoggingTimer("build_precision", {"nodes": n, "cliques": len(cliques)}):
        precision = np.zeros((n, n))
        for nodes in cliques:
            precision[np.ix_(nodes, nodes)] += _inverse_block(
                cov, nodes, "clique", config.condition_limit
            )
        for nodes in separators:
            precision[np.ix_(nodes, nodes)] -= _inverse_block(
                cov, nodes, "separator", config.condition_limit
            )

        support = np.eye(n, dtype=bool)
        for u, v in topology.edges:
            support[u, v] = support[v, u] = True
        precision[~support] = 0.0
        precision = (precision + precision.T) / 2.0

    precision.setflags(write=False)
    logger.info("LoGo precision estimated: %d nodes, %d cliques, %d separators",
                n, len(cliques), len(separators))
    return precision


def precision_graph(
    precision: np.ndarray,
    labels: Optional[Sequence[Any]] = None,
    partial: bool = True
) -> Graph:
    """
    Graph of the non-zero off-diagonal entries of a precision matrix.

    With ``partial=True`` edges are weighted by partial correlations,
    otherwise by the raw precision entries.
    """
    weights = partial_correlations(precision) if partial else np.array(precision, dtype=float)
    if not partial:
        np.fill_diagonal(weights, 0.0)
    return Graph.from_adjacency(weights, labels=labels)


def logo_network(
    observations: ObservationInput,
    partial: bool = True,
    seed: Union[str, SeedStrategy, None] = None
) -> Tuple[Graph, np.ndarray]:
    """
    TMFG + LoGo network from raw responses.

    The TMFG is filtered from the item correlations; the precision is then
    estimated from the sample covariance on that topology.

    Returns
    -------
    graph : Graph
        Partial-correlation network (precision entries if ``partial=False``)
    precision : np.ndarray
        Read-only LoGo precision matrix
    """
    _, labels = validate_observations(observations)
    tmfg = build_tmfg(correlation_matrix(observations), labels=labels, seed=seed)
    precision = build_precision(covariance_matrix(observations), tmfg)
    return precision_graph(precision, labels=labels, partial=partial), precision
