"""
Tests for the immutable Graph value object and the distance transform.
"""

import dataclasses

import networkit as nk
import numpy as np
import pytest

from psychNet.common.exceptions import InvalidInputError, InvalidParameterError
from psychNet.network.graph import Graph, distance_transform


class TestDistanceTransform:
    """Test the shared similarity-to-length transform."""

    def test_inverse_absolute_weight(self):
        np.testing.assert_allclose(distance_transform([0.5, -0.25, 2.0]), [2.0, 4.0, 0.5])

    def test_zero_weight_is_unreachable(self):
        assert np.isinf(distance_transform([0.0])[0])


class TestGraphConstruction:
    """Test construction, validation and immutability."""

    def setup_method(self):
        self.adjacency = np.array([
            [0.0, 0.5, 0.0, -0.2],
            [0.5, 0.0, 0.4, 0.0],
            [0.0, 0.4, 0.0, 0.3],
            [-0.2, 0.0, 0.3, 0.0],
        ])

    def test_from_adjacency(self):
        graph = Graph.from_adjacency(self.adjacency, labels=["a", "b", "c", "d"])

        assert graph.n_nodes == 4
        assert graph.n_edges == 4
        assert list(graph.edges) == [(0, 1), (0, 3), (1, 2), (2, 3)]
        assert graph.weight(3, 0) == -0.2
        assert graph.weight(0, 2) == 0.0
        assert graph.labels == ("a", "b", "c", "d")
        assert graph.weighted

    def test_from_adjacency_unweighted(self):
        graph = Graph.from_adjacency(self.adjacency, weighted=False)
        assert not graph.weighted
        assert set(graph.edges.values()) == {1.0}

    def test_from_edges(self):
        graph = Graph.from_edges(3, [(1, 0), (2, 1)])
        assert list(graph.edges) == [(0, 1), (1, 2)]
        assert not graph.weighted
        assert graph.labels == ("0", "1", "2")

    def test_edges_are_read_only(self):
        graph = Graph.from_adjacency(self.adjacency)
        with pytest.raises(TypeError):
            graph.edges[(0, 2)] = 1.0

    def test_graph_is_frozen(self):
        graph = Graph.from_adjacency(self.adjacency)
        with pytest.raises(dataclasses.FrozenInstanceError):
            graph.n_nodes = 10

    def test_hashable(self):
        graph = Graph.from_adjacency(self.adjacency)
        same = Graph.from_adjacency(self.adjacency.copy())

        assert graph == same
        assert hash(graph) == hash(same)
        assert len({graph, same}) == 1
        assert graph != Graph.from_adjacency(self.adjacency, weighted=False)

    def test_self_loop_rejected(self):
        with pytest.raises(InvalidInputError, match="Self-loop"):
            Graph(3, {(1, 1): 0.5})

    def test_out_of_range_rejected(self):
        with pytest.raises(InvalidInputError, match="outside"):
            Graph(3, {(0, 3): 0.5})

    def test_duplicate_rejected(self):
        with pytest.raises(InvalidInputError, match="Duplicate"):
            Graph(3, {(0, 1): 0.5, (1, 0): 0.2})

    def test_non_finite_weight_rejected(self):
        with pytest.raises(InvalidInputError, match="invalid weight"):
            Graph(3, {(0, 1): np.nan})

    def test_zero_weight_allowed(self):
        graph = Graph(3, {(0, 1): 0.0, (1, 2): 0.5})
        assert graph.n_edges == 2
        assert graph.has_edge(0, 1)

    def test_label_count_mismatch(self):
        with pytest.raises(InvalidInputError, match="Expected 4 labels"):
            Graph.from_adjacency(self.adjacency, labels=["a", "b"])


class TestGraphViews:
    """Test neighbour access, matrices, paths and exports."""

    def setup_method(self):
        # path 0 - 1 - 2 - 3 with weight 0.5 (length 2) plus an isolated node 4
        self.path = Graph(5, {(0, 1): 0.5, (1, 2): 0.5, (2, 3): -0.5})

    def test_neighbors_sorted(self):
        assert self.path.neighbors(1) == ((0, 0.5), (2, 0.5))
        assert self.path.neighbors(4) == ()

    def test_degree_and_strength(self):
        np.testing.assert_array_equal(self.path.degree(), [1, 2, 2, 1, 0])
        np.testing.assert_allclose(self.path.strength(), [0.5, 1.0, 1.0, 0.5, 0.0])

    def test_adjacency_is_symmetric_copy(self):
        matrix = self.path.adjacency()
        np.testing.assert_array_equal(matrix, matrix.T)
        assert matrix[2, 3] == -0.5
        matrix[0, 1] = 9.0
        assert self.path.weight(0, 1) == 0.5

    def test_sparse_values(self):
        np.testing.assert_allclose(self.path.to_sparse("distance").toarray()[2, 3], 2.0)
        np.testing.assert_allclose(self.path.to_sparse("hops").toarray()[2, 3], 1.0)
        np.testing.assert_allclose(self.path.to_sparse().toarray()[3, 2], -0.5)

    def test_sparse_distance_skips_zero_weights(self):
        graph = Graph(3, {(0, 1): 0.0, (1, 2): 0.5})
        assert graph.to_sparse("distance").nnz == 2
        assert np.isinf(graph.distances()[0, 2])
        assert graph.distances(weighted=False)[0, 2] == 2

    def test_invalid_sparse_values(self):
        with pytest.raises(InvalidParameterError, match="Unknown sparse value type"):
            self.path.to_sparse("similarity")

    def test_distances(self):
        distances = self.path.distances()
        assert distances[0, 3] == pytest.approx(6.0)
        assert self.path.distances(weighted=False)[0, 3] == 3
        assert np.isinf(distances[0, 4])

    def test_connectivity(self):
        assert not self.path.is_connected()
        assert self.path.subgraph([0, 1, 2, 3]).is_connected()

    def test_subgraph_renumbers(self):
        labelled = Graph(self.path.n_nodes, self.path.edges, labels=list("abcde"))
        sub = labelled.subgraph([3, 2, 0])

        assert sub.n_nodes == 3
        assert sub.labels == ("d", "c", "a")
        assert dict(sub.edges) == {(0, 1): -0.5}
        assert sub.cliques == ()

    def test_subgraph_rejects_duplicates(self):
        with pytest.raises(InvalidInputError, match="unique"):
            self.path.subgraph([0, 0, 1])

    def test_to_networkit(self):
        nk_graph = self.path.to_networkit()

        assert nk_graph.numberOfNodes() == 5
        assert nk_graph.numberOfEdges() == 3
        assert nk_graph.isWeighted()
        assert nk_graph.weight(2, 3) == -0.5

        components = nk.components.ConnectedComponents(nk_graph)
        components.run()
        assert components.numberOfComponents() == 2

    def test_to_networkit_absolute(self):
        nk_graph = self.path.to_networkit(absolute=True)
        assert nk_graph.weight(2, 3) == 0.5
