"""
Immutable weighted graph used throughout psychNet.

Nodes are the items ``0..n-1``; edges are stored once per unordered pair as
``(i, j) -> weight`` with ``i < j``. TMFG graphs also carry their junction
tree (maximal cliques and separators) so the LoGo estimator can reuse it.

Correlation weights are similarities. Wherever a path length is needed the
single distance transform ``d = 1 / |w|`` is applied (see
``distance_transform``), so shortest-path and randomized-shortest-path
measures stay comparable.
"""

from dataclasses import dataclass
from functools import cached_property
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import networkit as nk
import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import connected_components, shortest_path

from psychNet.common.exceptions import InvalidInputError, InvalidParameterError
from psychNet.common.validators import validate_square_matrix, validate_labels

Edge = Tuple[int, int]
NodeSet = Tuple[int, ...]


def distance_transform(weights: np.ndarray) -> np.ndarray:
    """
    Convert similarity weights to path lengths: ``1 / |w|``.

    Zero weights map to ``inf`` (no path through the edge).
    """
    weights = np.abs(np.asarray(weights, dtype=float))
    with np.errstate(divide="ignore"):
        return np.where(weights > 0, 1.0 / weights, np.inf)


def label_tuple(labels: Optional[Sequence[Any]]) -> Tuple[Any, ...]:
    """Labels as a tuple; empty when not given."""
    return tuple(labels) if labels is not None else ()


@dataclass(frozen=True)
class Graph:
    """
    Sparse, undirected, weighted graph over item indices.

    Attributes
    ----------
    n_nodes : int
        Number of nodes
    edges : Mapping[Tuple[int, int], float]
        Read-only edge map keyed by ``(i, j)`` with ``i < j``
    labels : Tuple[str, ...]
        Item label per node
    weighted : bool
        False for topology-only graphs whose weights are all 1.0
    cliques : Tuple[Tuple[int, ...], ...]
        Maximal cliques of the junction tree, if known
    separators : Tuple[Tuple[int, ...], ...]
        Separators of the junction tree, if known
    """

    n_nodes: int
    edges: Mapping[Edge, float]
    labels: Tuple[str, ...] = ()
    weighted: bool = True
    cliques: Tuple[NodeSet, ...] = ()
    separators: Tuple[NodeSet, ...] = ()

    def __post_init__(self) -> None:
        if self.n_nodes < 0:
            raise InvalidInputError("Number of nodes must be non-negative", field="n_nodes")

        edges: Dict[Edge, float] = {}
        for (u, v), w in self.edges.items():
            u, v = int(u), int(v)
            if u == v:
                raise InvalidInputError(f"Self-loop on node {u} is not allowed", field="edges")
            if not (0 <= u < self.n_nodes and 0 <= v < self.n_nodes):
                raise InvalidInputError(
                    f"Edge ({u}, {v}) references a node outside 0..{self.n_nodes - 1}",
                    field="edges"
                )
            w = float(w)
            if not np.isfinite(w):
                raise InvalidInputError(
                    f"Edge ({u}, {v}) has invalid weight {w}",
                    field="edges"
                )
            key = (u, v) if u < v else (v, u)
            if key in edges:
                raise InvalidInputError(f"Duplicate edge {key}", field="edges")
            edges[key] = w

        object.__setattr__(self, "edges", MappingProxyType(dict(sorted(edges.items()))))
        labels = self.labels if len(self.labels) else None
        object.__setattr__(self, "labels", validate_labels(labels, self.n_nodes))
        object.__setattr__(self, "cliques", tuple(tuple(int(v) for v in c) for c in self.cliques))
        object.__setattr__(self, "separators", tuple(tuple(int(v) for v in s) for s in self.separators))

    def __hash__(self) -> int:
        return hash((self.n_nodes, tuple(self.edges.items()), self.labels, self.weighted))

    @classmethod
    def from_adjacency(
        cls,
        matrix: Any,
        labels: Optional[Sequence[Any]] = None,
        weighted: bool = True
    ) -> "Graph":
        """
        Build a graph from a symmetric adjacency matrix.

        Every non-zero off-diagonal entry becomes an edge. With
        ``weighted=False`` the entries only define the topology.

        Examples
        --------
        >>> g = Graph.from_adjacency([[0, 0.5], [0.5, 0]])
        >>> g.n_edges
        1
        """
        array = validate_square_matrix(matrix, name="adjacency")
        rows, cols = np.nonzero(np.triu(array, k=1))
        edges = {
            (int(i), int(j)): (float(array[i, j]) if weighted else 1.0)
            for i, j in zip(rows, cols)
        }
        return cls(array.shape[0], edges, labels=label_tuple(labels), weighted=weighted)

    @classmethod
    def from_edges(
        cls,
        n_nodes: int,
        pairs: Iterable[Edge],
        labels: Optional[Sequence[Any]] = None
    ) -> "Graph":
        """Build an unweighted graph from node pairs."""
        edges = {(int(u), int(v)): 1.0 for u, v in pairs}
        return cls(n_nodes, edges, labels=label_tuple(labels), weighted=False)

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    def weight(self, u: int, v: int) -> float:
        """Weight of edge (u, v); 0.0 if absent."""
        key = (u, v) if u < v else (v, u)
        return self.edges.get(key, 0.0)

    def has_edge(self, u: int, v: int) -> bool:
        key = (u, v) if u < v else (v, u)
        return key in self.edges

    def edge_list(self) -> List[Tuple[int, int, float]]:
        return [(u, v, w) for (u, v), w in self.edges.items()]

    @cached_property
    def _neighbors(self) -> Tuple[Tuple[Tuple[int, float], ...], ...]:
        lists: List[List[Tuple[int, float]]] = [[] for _ in range(self.n_nodes)]
        for (u, v), w in self.edges.items():
            lists[u].append((v, w))
            lists[v].append((u, w))
        return tuple(tuple(sorted(nbrs)) for nbrs in lists)

    def neighbors(self, node: int) -> Tuple[Tuple[int, float], ...]:
        """``(neighbor, weight)`` pairs of a node, sorted by neighbor."""
        return self._neighbors[node]

    def degree(self) -> np.ndarray:
        return np.array([len(nbrs) for nbrs in self._neighbors], dtype=float)

    def strength(self) -> np.ndarray:
        """Sum of absolute incident edge weights per node."""
        return np.abs(self.adjacency()).sum(axis=1)

    def adjacency(self) -> np.ndarray:
        """Dense symmetric adjacency matrix (a fresh copy)."""
        matrix = np.zeros((self.n_nodes, self.n_nodes))
        for (u, v), w in self.edges.items():
            matrix[u, v] = w
            matrix[v, u] = w
        return matrix

    def to_sparse(self, values: str = "weight") -> sp.csr_matrix:
        """
        Symmetric sparse matrix of the graph.

        Parameters
        ----------
        values : {"weight", "distance", "hops"}
            Entries to store: raw weights, ``1/|w|`` path lengths, or 1.0
        """
        if values not in ("weight", "distance", "hops"):
            raise InvalidParameterError(
                f"Unknown sparse value type: {values}",
                parameter="values",
                value=values,
                valid_options=["weight", "distance", "hops"]
            )
        if not self.edges:
            return sp.csr_matrix((self.n_nodes, self.n_nodes))

        keys = np.array(list(self.edges.keys()), dtype=int)
        weights = np.fromiter(self.edges.values(), dtype=float, count=len(self.edges))
        if values == "distance":
            # zero-weight edges carry no path
            keep = weights != 0
            keys, weights = keys[keep], weights[keep]
            data = distance_transform(weights)
        elif values == "hops":
            data = np.ones_like(weights)
        else:
            data = weights

        rows = np.concatenate([keys[:, 0], keys[:, 1]])
        cols = np.concatenate([keys[:, 1], keys[:, 0]])
        return sp.csr_matrix(
            (np.concatenate([data, data]), (rows, cols)),
            shape=(self.n_nodes, self.n_nodes)
        )

    def distances(self, weighted: bool = True) -> np.ndarray:
        """
        All-pairs shortest path lengths.

        Uses ``1/|w|`` edge lengths when ``weighted`` and hop counts
        otherwise. Unreachable pairs are ``inf``.
        """
        values = "distance" if weighted else "hops"
        return shortest_path(self.to_sparse(values), method="D", directed=False)

    def is_connected(self) -> bool:
        if self.n_nodes <= 1:
            return True
        n_components, _ = connected_components(self.to_sparse("hops"), directed=False)
        return n_components == 1

    def subgraph(self, nodes: Sequence[int]) -> "Graph":
        """
        Induced subgraph, with nodes renumbered in the given order.

        The junction tree is not carried over.
        """
        nodes = [int(v) for v in nodes]
        index = {v: i for i, v in enumerate(nodes)}
        if len(index) != len(nodes):
            raise InvalidInputError("Subgraph nodes must be unique", field="nodes")
        edges = {
            (index[u], index[v]): w
            for (u, v), w in self.edges.items()
            if u in index and v in index
        }
        labels = tuple(self.labels[v] for v in nodes)
        return Graph(len(nodes), edges, labels=labels, weighted=self.weighted)

    def to_networkit(self, absolute: bool = False) -> nk.Graph:
        """
        Export to an undirected, weighted ``networkit.Graph`` with the same
        node ids, for use with networkit algorithms and writers.

        With ``absolute`` the edge weights are ``|w|``, as modularity-based
        algorithms expect non-negative weights.
        """
        graph = nk.Graph(self.n_nodes, weighted=True, directed=False)
        for (u, v), w in self.edges.items():
            graph.addEdge(u, v, abs(w) if absolute else w)
        return graph
