"""
Node centrality for weighted psychometric networks.

Provides shortest-path betweenness (Brandes, 2001), randomized shortest
paths betweenness (Kivimäki et al., 2016) and closeness. Edge weights are
associations, so path lengths use the shared transform ``1 / |w|`` from
``psychNet.network.graph``. This keeps the two betweenness measures on the
same scale: both count unordered node pairs, and RSP betweenness tends to
shortest-path betweenness as ``beta`` grows.
"""

from concurrent.futures import ProcessPoolExecutor, as_completed
from heapq import heappop, heappush
from itertools import count
import multiprocessing
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl
import scipy.linalg as la

from psychNet.common.config import get_config
from psychNet.common.exceptions import (
    ComputationError,
    InvalidInputError,
    InvalidParameterError,
    require_positive,
)
from psychNet.common.logging_config import get_logger, log_function_entry, LoggingTimer
from psychNet.network.graph import Graph, distance_transform

logger = get_logger(__name__)

AVAILABLE_METRICS = ["degree", "strength", "betweenness", "rsp_betweenness", "closeness"]

DEFAULT_BETA = 0.01

Adjacency = Tuple[Tuple[Tuple[int, float], ...], ...]


def _distance_lists(graph: Graph) -> Adjacency:
    """Neighbour lists with ``1/|w|`` lengths; zero-weight edges dropped."""
    return tuple(
        tuple((v, 1.0 / abs(w)) for v, w in graph.neighbors(u) if w != 0)
        for u in range(graph.n_nodes)
    )


def _resolve_jobs(n_jobs: Optional[int]) -> int:
    if n_jobs is None:
        n_jobs = get_config().n_jobs
    if n_jobs == 0 or n_jobs < -1:
        raise InvalidParameterError(
            f"n_jobs must be -1 or a positive integer, got {n_jobs}",
            parameter="n_jobs",
            value=n_jobs
        )
    return multiprocessing.cpu_count() if n_jobs == -1 else n_jobs


def _brandes_partial(
    adjacency: Adjacency,
    sources: Sequence[int],
    tie_tolerance: float
) -> np.ndarray:
    """
    Betweenness contributions of paths starting at ``sources``.

    Counts ordered (source, target) pairs; the caller halves the total for
    undirected graphs. Must not depend on module state so it can run in a
    worker process.
    """
    n = len(adjacency)
    partial = np.zeros(n)

    for s in sources:
        stack: List[int] = []
        preds: List[List[int]] = [[] for _ in range(n)]
        sigma = np.zeros(n)
        sigma[s] = 1.0
        settled: Dict[int, float] = {}
        seen = {s: 0.0}
        counter = count()
        queue = [(0.0, next(counter), s, s)]

        while queue:
            dist, _, pred, v = heappop(queue)
            if v in settled:
                continue
            if v != s:
                sigma[v] += sigma[pred]
            stack.append(v)
            settled[v] = dist

            for w, length in adjacency[v]:
                candidate = dist + length
                if w in settled:
                    continue
                slack = tie_tolerance * max(1.0, candidate)
                if w not in seen or candidate < seen[w] - slack:
                    seen[w] = candidate
                    heappush(queue, (candidate, next(counter), v, w))
                    sigma[w] = 0.0
                    preds[w] = [v]
                elif abs(candidate - seen[w]) <= slack:
                    # equally short path: split credit
                    sigma[w] += sigma[v]
                    preds[w].append(v)

        delta = np.zeros(n)
        while stack:
            w = stack.pop()
            coeff = (1.0 + delta[w]) / sigma[w]
            for v in preds[w]:
                delta[v] += sigma[v] * coeff
            if w != s:
                partial[w] += delta[w]

    return partial


def standard_betweenness(graph: Graph, n_jobs: Optional[int] = None) -> np.ndarray:
    """
    Weighted shortest-path betweenness centrality.

    For every unordered pair (s, t) the fraction of shortest s-t paths
    through each intermediate node is summed. Path lengths are ``1/|w|``;
    lengths equal within the configured relative tie tolerance count as
    ties and share credit.

    Parameters
    ----------
    graph : Graph
        Weighted graph
    n_jobs : int, optional
        Worker processes; 1 runs sequentially, -1 uses all cores. Defaults
        to the configured value.

    Returns
    -------
    np.ndarray
        Read-only, non-negative, unnormalized betweenness per node

    Examples
    --------
    >>> path = Graph.from_adjacency(path_adjacency)
    >>> standard_betweenness(path)
    array([0., 3., 4., 3., 0.])

    Notes
    -----
    Time O(n * m log n). Sources are split into independent chunks whose
    partial vectors are summed in chunk order, so results do not depend on
    the number of workers.
    """
    log_function_entry("standard_betweenness", n_nodes=graph.n_nodes, n_jobs=n_jobs)
    workers = _resolve_jobs(n_jobs)
    config = get_config()
    n = graph.n_nodes
    if n == 0:
        return _freeze(np.zeros(0))

    adjacency = _distance_lists(graph)
    chunks = [list(c) for c in np.array_split(np.arange(n), min(n, max(1, workers) * 4)) if len(c)]

    with LoggingTimer("standard_betweenness", {"nodes": n, "edges": graph.n_edges, "workers": workers}):
        if workers == 1:
            partials = [_brandes_partial(adjacency, c, config.tie_tolerance) for c in chunks]
        else:
            partials = _run_parallel(adjacency, chunks, config.tie_tolerance, workers)

        total = np.sum(partials, axis=0) / 2.0

    return _freeze(np.clip(total, 0.0, None))


def _run_parallel(
    adjacency: Adjacency,
    chunks: List[List[int]],
    tie_tolerance: float,
    workers: int
) -> List[np.ndarray]:
    logger.debug("Computing betweenness over %d chunks with %d workers", len(chunks), workers)
    results: Dict[int, np.ndarray] = {}

    with ProcessPoolExecutor(max_workers=min(workers, len(chunks))) as executor:
        future_to_chunk = {
            executor.submit(_brandes_partial, adjacency, chunk, tie_tolerance): index
            for index, chunk in enumerate(chunks)
        }
        for future in as_completed(future_to_chunk):
            index = future_to_chunk[future]
            try:
                results[index] = future.result()
            except Exception as e:
                raise ComputationError(
                    f"Betweenness worker failed: {e}",
                    operation="standard_betweenness_parallel",
                    error_type="computation",
                    cause=e
                )

    return [results[i] for i in range(len(chunks))]


def rsp_betweenness(graph: Graph, beta: float = DEFAULT_BETA) -> np.ndarray:
    """
    Randomized shortest paths (RSP) betweenness centrality.

    Walkers from s to t follow a Boltzmann distribution over all paths:
    ``P(path) ∝ P_ref(path) * exp(-beta * cost(path))`` with reference
    transitions ``P_ref = D^-1 |A|`` and edge costs ``1/|w|``. Small ``beta``
    approaches random-walk betweenness; large ``beta`` approaches
    shortest-path betweenness.

    Parameters
    ----------
    graph : Graph
        Connected weighted graph
    beta : float, default 0.01
        Inverse temperature, must be positive

    Returns
    -------
    np.ndarray
        Read-only, non-negative expected passages per node, summed over
        unordered pairs and excluding the walk's own endpoints

    Raises
    ------
    InvalidParameterError
        If beta is not positive
    InvalidInputError
        If the graph is disconnected or has an isolated node
    ComputationError
        If beta is so large that the fundamental matrix underflows

    Notes
    -----
    With ``W = P_ref ∘ exp(-beta C)`` and fundamental matrix
    ``Z = (I - W)^-1``, the expected number of visits to i on s-t walks is
    ``(z_si / z_st - z_ti / z_tt) z_it``. Summing over all s, t gives::

        bet = diag(Z (Z^÷ - n Diag(Z^÷))^T Z)

    where ``Z^÷`` is the elementwise reciprocal. Every walk visits its
    source at least once, so ``n - 1`` is subtracted, and the ordered-pair
    total is halved. ``I - W`` is factorized once per call.
    """
    log_function_entry("rsp_betweenness", n_nodes=graph.n_nodes, beta=beta)
    require_positive(beta, "beta")
    n = graph.n_nodes
    if n < 2:
        return _freeze(np.zeros(n))

    affinity = np.abs(graph.adjacency())
    strength = affinity.sum(axis=1)
    if np.any(strength == 0):
        raise InvalidInputError(
            "RSP betweenness is undefined for isolated nodes",
            field="graph",
            details={"isolated": np.flatnonzero(strength == 0).tolist()[:10]}
        )
    if not graph.is_connected():
        raise InvalidInputError("RSP betweenness requires a connected graph", field="graph")

    with LoggingTimer("rsp_betweenness", {"nodes": n, "beta": beta}):
        p_ref = affinity / strength[:, None]
        costs = distance_transform(affinity)
        transitions = p_ref * np.exp(-beta * costs)

        identity = np.eye(n)
        try:
            factor = la.lu_factor(identity - transitions)
            fundamental = la.lu_solve(factor, identity)
        except (la.LinAlgError, ValueError) as e:
            raise ComputationError(
                f"Could not factorize the RSP transition operator: {e}",
                operation="rsp_betweenness",
                error_type="numerical",
                cause=e
            )

        if not np.all(np.isfinite(fundamental)) or np.any(fundamental <= 0):
            raise ComputationError(
                f"Fundamental matrix underflowed for beta={beta}; use a smaller beta",
                operation="rsp_betweenness",
                error_type="underflow",
                resource_info={"nodes": n}
            )

        # near-underflow entries overflow here; reported below
        with np.errstate(over="ignore", invalid="ignore"):
            reciprocal = 1.0 / fundamental
            centered = reciprocal - n * np.diag(np.diag(reciprocal))
            left = fundamental @ centered.T
            passages = np.einsum("ij,ji->i", left, fundamental)

        if not np.all(np.isfinite(passages)):
            raise ComputationError(
                f"RSP betweenness is not finite for beta={beta}",
                operation="rsp_betweenness",
                error_type="overflow"
            )

        values = (passages - (n - 1)) / 2.0

    return _freeze(np.clip(values, 0.0, None))


randomized_shortest_paths_betweenness = rsp_betweenness


def closeness(graph: Graph, weighted: bool = True) -> np.ndarray:
    """
    Closeness centrality over the full graph.

    ``c(v) = r / sum_u d(v, u)`` where the sum runs over the ``r`` nodes
    reachable from v; for a connected graph ``r = n - 1``. Distances are
    ``1/|w|`` when ``weighted`` and hop counts otherwise. Isolated nodes get 0.
    """
    distances = graph.distances(weighted=weighted)
    n = graph.n_nodes
    result = np.zeros(n)
    for v in range(n):
        row = np.delete(distances[v], v)
        reachable = row[np.isfinite(row)]
        total = reachable.sum()
        if reachable.size and total > 0:
            result[v] = reachable.size / total
    return _freeze(result)


def centrality_table(
    graph: Graph,
    metrics: Sequence[str] = ("strength", "betweenness", "rsp_betweenness", "closeness"),
    beta: float = DEFAULT_BETA,
    n_jobs: Optional[int] = None
) -> pl.DataFrame:
    """
    Several centrality measures as a DataFrame.

    Returns
    -------
    pl.DataFrame
        ``node_id`` (item label) plus one ``{metric}_centrality`` column per
        metric, rows in node order

    Raises
    ------
    InvalidParameterError
        If a metric name is unknown or the list is empty
    """
    log_function_entry("centrality_table", n_nodes=graph.n_nodes, metrics=list(metrics))
    if not metrics:
        raise InvalidParameterError("At least one centrality metric must be specified",
                                    parameter="metrics")
    invalid = [m for m in metrics if m not in AVAILABLE_METRICS]
    if invalid:
        raise InvalidParameterError(
            f"Invalid centrality metrics: {invalid}",
            parameter="metrics",
            valid_options=AVAILABLE_METRICS
        )

    data = {"node_id": list(graph.labels)}
    for metric in metrics:
        if metric == "degree":
            values = graph.degree()
        elif metric == "strength":
            values = graph.strength()
        elif metric == "betweenness":
            values = standard_betweenness(graph, n_jobs=n_jobs)
        elif metric == "rsp_betweenness":
            values = rsp_betweenness(graph, beta=beta)
        else:
            values = closeness(graph, weighted=graph.weighted)
        data[f"{metric}_centrality"] = np.asarray(values, dtype=float).tolist()

    return pl.DataFrame(data)


def _freeze(values: np.ndarray) -> np.ndarray:
    values = np.ascontiguousarray(values, dtype=float)
    values.setflags(write=False)
    return values
