import libpysal
import numpy as np
import pytest

from .. import graph
from ..exceptions import ConfigurationError

GRID3 = [(i, j) for i in range(3) for j in range(3)]
SQUARE = [(0, 0), (1, 0), (0, 1), (1, 1)]


class TestDistanceBand:
    def setup_method(self):
        rng = np.random.default_rng(10)
        self.points = rng.uniform(0, 10, size=(60, 2))

    @pytest.mark.parametrize("max_dist", [0.5, 1.5, 3.0, 20.0])
    def test_symmetric(self, max_dist):
        g = graph.distance_band(self.points, max_dist)
        assert g.is_symmetric()
        for i in range(g.n):
            for j in g[i]:
                assert i in g[j]

    def test_no_self_neighbors(self):
        g = graph.distance_band(self.points, 20.0)
        for i, nb in enumerate(g):
            assert i not in nb
        np.testing.assert_array_equal(g.cardinalities, np.full(60, 59))

    def test_rook_grid_matches_lattice(self):
        g = graph.distance_band(GRID3, 1.0)
        w = libpysal.weights.util.lat2W(3, 3)
        for i in range(9):
            assert set(g[i]) == set(w.neighbors[i])

    def test_closed_interval_with_lower_bound(self):
        g = graph.distance_band([(0, 0), (1, 0), (2, 0), (3, 0)], 2.0, min_dist=1.5)
        assert g[0] == (2,)
        assert g[1] == (3,)
        assert g[2] == (0,)
        assert g[3] == (1,)

    def test_coincident_points_are_neighbors(self):
        g = graph.distance_band([(0, 0), (0, 0), (5, 5)], 0.0)
        assert g[0] == (1,)
        assert g[1] == (0,)
        assert g[2] == ()

    def test_all_islands_warns(self):
        with pytest.warns(UserWarning, match="no unit has a neighbour"):
            g = graph.distance_band(GRID3, 0.5)
        assert g.n_islands == 9
        assert g.islands.all()

    @pytest.mark.parametrize(
        "rule",
        [
            graph.DistanceBand(1.0, min_dist=2.0),
            graph.DistanceBand(-1.0),
            graph.DistanceBand(np.nan),
            graph.DistanceBand(1.0, min_dist=-0.5),
        ],
    )
    def test_configuration_errors(self, rule):
        with pytest.raises(ConfigurationError):
            rule.build(GRID3)

    def test_rule_is_recorded(self):
        rule = graph.DistanceBand(1.0)
        assert rule.build(GRID3).rule == rule


class TestKNearest:
    def test_k_neighbors_each(self):
        rng = np.random.default_rng(2)
        g = graph.knn(rng.normal(size=(30, 2)), 4)
        np.testing.assert_array_equal(g.cardinalities, np.full(30, 4))
        for i, nb in enumerate(g):
            assert i not in nb

    def test_ties_broken_by_lowest_index(self):
        g = graph.knn(SQUARE, 1)
        assert g[0] == (1,)
        assert g[1] == (0,)
        assert g[2] == (0,)
        assert g[3] == (1,)

    def test_coincident_points_are_not_self(self):
        g = graph.knn([(0, 0), (0, 0), (1, 0)], 1)
        assert g[0] == (1,)
        assert g[1] == (0,)
        assert g[2] == (0,)

    def test_may_be_asymmetric(self):
        g = graph.knn([(0, 0), (1, 0), (3, 0)], 1)
        assert g[2] == (1,)
        assert 2 not in g[1]
        assert not g.is_symmetric()

    def test_largest_k(self):
        g = graph.knn(SQUARE, 3)
        assert g.is_symmetric()
        assert g[0] == (1, 2, 3)

    @pytest.mark.parametrize("k", [4, 5, 0, -1, 2.5, True])
    def test_configuration_errors(self, k):
        with pytest.raises(ConfigurationError):
            graph.knn(SQUARE, k)


class TestNeighborGraph:
    def test_from_adjacency_mapping(self):
        g = graph.NeighborGraph.from_adjacency({0: [1], 1: [0]}, n=3)
        assert g.n == 3
        assert g[2] == ()
        np.testing.assert_array_equal(g.islands, [False, False, True])

    def test_from_adjacency_sequence(self):
        g = graph.NeighborGraph.from_adjacency([[2, 1], [0], [0]])
        assert g[0] == (1, 2)

    def test_self_neighbor_rejected(self):
        with pytest.raises(ConfigurationError):
            graph.NeighborGraph([(0, 1), (0,)])

    def test_out_of_range_rejected(self):
        with pytest.raises(ConfigurationError):
            graph.NeighborGraph([(1,), (5,)])

    def test_sparse_and_W(self):
        g = graph.distance_band(GRID3, 1.0)
        a = g.sparse
        assert a.shape == (9, 9)
        assert a.sum() == 24
        w = g.to_W()
        assert w.n == 9
        assert w.cardinalities == {i: len(g[i]) for i in range(9)}

    def test_new_rule_builds_new_graph(self):
        g1 = graph.distance_band(GRID3, 1.0)
        g2 = graph.distance_band(GRID3, 1.5)
        assert g1 != g2
        assert g1 == graph.distance_band(GRID3, 1.0)
        assert g1.cardinalities[4] == 4
        assert g2.cardinalities[4] == 8
