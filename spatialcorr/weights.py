"""
Spatial weights derived from neighbour graphs
"""

__all__ = ["WeightsMatrix", "TRANSFORMATIONS", "weight_sums"]

import warnings
from types import MappingProxyType

import numpy as np
from libpysal.weights import W
from scipy import sparse

from .exceptions import ConfigurationError
from .graph import NeighborGraph

TRANSFORMATIONS = ("r", "b")


def _check_transformation(transformation):
    transformation = str(transformation).lower()
    if transformation not in TRANSFORMATIONS:
        raise ConfigurationError(
            f"transformation={transformation!r} is not one of {TRANSFORMATIONS}"
        )
    return transformation


def weight_sums(matrix):
    """S0, S1 and S2 of a sparse weights matrix

    .. math::

        S_0 = \\sum_i \\sum_j w_{ij} \\quad
        S_1 = \\frac{1}{2} \\sum_i \\sum_j (w_{ij} + w_{ji})^2 \\quad
        S_2 = \\sum_i (w_{i.} + w_{.i})^2
    """
    s0 = float(matrix.sum())
    t = matrix + matrix.T
    s1 = float(0.5 * t.multiply(t).sum())
    row_sums = np.asarray(matrix.sum(axis=1)).flatten()
    col_sums = np.asarray(matrix.sum(axis=0)).flatten()
    s2 = float(((row_sums + col_sums) ** 2).sum())
    return s0, s1, s2


class WeightsMatrix:
    """Spatial weights over a neighbour graph

    Parameters
    ----------
    graph          : NeighborGraph
                     adjacency between units
    transformation : {'r', 'b'}
                     "r" (default) row-standardizes: each of the m neighbours
                     of a unit gets weight 1/m. "b" keeps binary weights.

    Attributes
    ----------
    graph    : NeighborGraph
               the graph the weights were derived from
    sparse   : scipy.sparse.csr_matrix
               (n, n) weights, read-only by convention
    row_sums : array
               sum of the weights of each unit; 1 for every unit with
               neighbours under row standardization, 0 for islands
    islands  : array
               boolean mask of weightless units (all-zero rows)
    s0       : float
               sum of all weights
    s1       : float
               0.5 * sum_ij (w_ij + w_ji) ** 2
    s2       : float
               sum_i (w_i. + w_.i) ** 2

    Examples
    --------
    >>> from spatialcorr.graph import NeighborGraph
    >>> g = NeighborGraph([(1, 2), (0,), (0,), ()])
    >>> w = WeightsMatrix(g)
    >>> w.weights(0)
    mappingproxy({1: 0.5, 2: 0.5})
    >>> w.row_sums
    array([1., 1., 1., 0.])
    """

    def __init__(self, graph, transformation="r"):
        if not isinstance(graph, NeighborGraph):
            graph = NeighborGraph(graph)
        transformation = _check_transformation(transformation)
        self.graph = graph
        self.transformation = transformation

        binary = graph.sparse
        if transformation == "r":
            card = graph.cardinalities.astype(float)
            scale = np.zeros_like(card)
            scale[card > 0] = 1.0 / card[card > 0]
            matrix = sparse.diags(scale) @ binary
        else:
            matrix = binary
        self._sparse = sparse.csr_matrix(matrix)
        self._sparse.sort_indices()

        row_sums = np.asarray(self._sparse.sum(axis=1)).flatten()
        row_sums.setflags(write=False)
        self._row_sums = row_sums
        self.__moments()

    def __moments(self):
        self.s0, self.s1, self.s2 = weight_sums(self._sparse)

    @property
    def n(self):
        return self.graph.n

    def __len__(self):
        return self.n

    @property
    def sparse(self):
        return self._sparse

    @property
    def row_sums(self):
        return self._row_sums

    @property
    def islands(self):
        return self.graph.islands

    @property
    def n_islands(self):
        return self.graph.n_islands

    def weights(self, i):
        """Mapping of neighbour index to weight for unit ``i``."""
        start, stop = self._sparse.indptr[i], self._sparse.indptr[i + 1]
        cols = self._sparse.indices[start:stop]
        vals = self._sparse.data[start:stop]
        return MappingProxyType({int(j): float(v) for j, v in zip(cols, vals)})

    def lag(self, y):
        """Spatial lag ``W @ y``."""
        y = np.asarray(y, dtype=float)
        if y.shape[0] != self.n:
            raise ValueError(f"y has {y.shape[0]} values but weights cover {self.n}")
        return self._sparse @ y

    def restrict(self, mask):
        """Weights among the units selected by ``mask``

        Parameters
        ----------
        mask : array
               boolean mask of units to keep

        Returns
        -------
        scipy.sparse.csr_matrix
            (m, m) sub-matrix over the selected units

        Notes
        -----
        Dropping units that are neighbours of kept units removes weight from
        the kept rows. This cannot happen for islands of a distance band or
        a k-nearest graph, only for hand-built asymmetric graphs, and it is
        reported with a warning.
        """
        mask = np.asarray(mask, dtype=bool)
        sub = self._sparse[mask][:, mask].tocsr()
        kept_sums = np.asarray(sub.sum(axis=1)).flatten()
        lost = ~np.isclose(kept_sums, self._row_sums[mask])
        if lost.any():
            dropped = np.flatnonzero(mask)[lost]
            warnings.warn(
                f"units {dropped.tolist()} lose weight to neighbours outside the "
                "selection; their rows no longer sum to the original totals",
                UserWarning,
                stacklevel=2,
            )
        return sub

    def to_W(self):  # noqa: N802
        """Export as a ``libpysal.weights.W`` with the same weights."""
        neighbors = {}
        weights = {}
        for i in range(self.n):
            w_i = self.weights(i)
            neighbors[i] = list(w_i.keys())
            weights[i] = list(w_i.values())
        return W(neighbors, weights, silence_warnings=True)

    def __repr__(self):
        return (
            f"WeightsMatrix(n={self.n}, transformation={self.transformation!r}, "
            f"islands={self.n_islands})"
        )
