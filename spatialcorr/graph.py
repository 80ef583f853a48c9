"""
Neighbour graphs over representative points
"""

__all__ = ["NeighborGraph", "DistanceBand", "KNearest", "distance_band", "knn"]

import numbers
import warnings

import numpy as np
from libpysal.weights import W
from scipy import sparse
from scipy.spatial import distance

from .exceptions import ConfigurationError
from .points import PointSet


def _as_points(points):
    if isinstance(points, PointSet):
        return points
    return PointSet(points)


def _distances(points):
    """Dense Euclidean distance matrix, exactly symmetric with a zero diagonal."""
    if points.n < 2:
        return np.zeros((points.n, points.n))
    return distance.squareform(distance.pdist(points.coords, "euclidean"))


class NeighborGraph:
    """Adjacency between spatial units

    Parameters
    ----------
    neighbors : sequence of iterables
                neighbours of each unit, index-aligned with the units
    rule      : DistanceBand | KNearest | None
                the rule that produced the graph, if any

    Attributes
    ----------
    n             : int
                    number of units
    cardinalities : array
                    number of neighbours of each unit
    islands       : array
                    boolean mask of units without neighbours

    Notes
    -----
    A graph is never modified after construction; a different rule always
    builds a new graph.
    """

    def __init__(self, neighbors, rule=None):
        neighbors = tuple(tuple(sorted({int(j) for j in nb})) for nb in neighbors)
        n = len(neighbors)
        for i, nb in enumerate(neighbors):
            if i in nb:
                raise ConfigurationError(f"unit {i} lists itself as a neighbour")
            if nb and (nb[0] < 0 or nb[-1] >= n):
                raise ConfigurationError(
                    f"unit {i} has neighbour indices outside 0..{n - 1}"
                )
        self._neighbors = neighbors
        self.rule = rule
        cardinalities = np.array([len(nb) for nb in neighbors], dtype=np.int64)
        cardinalities.setflags(write=False)
        self._cardinalities = cardinalities

    @classmethod
    def from_adjacency(cls, adjacency, n=None):
        """Build a graph from a mapping ``{i: [j, ...]}`` or a sequence of lists

        Units missing from a mapping get no neighbours; ``n`` defaults to the
        largest index seen plus one.
        """
        if isinstance(adjacency, dict):
            keys = [int(k) for k in adjacency]
            if n is None:
                seen = keys + [int(j) for nb in adjacency.values() for j in nb]
                n = max(seen) + 1 if seen else 0
            if any(k < 0 or k >= n for k in keys):
                raise ConfigurationError(f"adjacency keys must lie in 0..{n - 1}")
            neighbors = [adjacency.get(i, ()) for i in range(n)]
        else:
            neighbors = list(adjacency)
            if n is not None and n != len(neighbors):
                raise ConfigurationError(
                    f"adjacency has {len(neighbors)} rows but n={n}"
                )
        return cls(neighbors)

    @property
    def n(self):
        return len(self._neighbors)

    def __len__(self):
        return self.n

    def __getitem__(self, i):
        return self._neighbors[i]

    def neighbors(self, i):
        return self._neighbors[i]

    def __iter__(self):
        return iter(self._neighbors)

    @property
    def cardinalities(self):
        return self._cardinalities

    @property
    def islands(self):
        return self._cardinalities == 0

    @property
    def n_islands(self):
        return int(self.islands.sum())

    def is_symmetric(self):
        """True if ``j`` in N(i) exactly when ``i`` in N(j)."""
        a = self.sparse
        return (a != a.T).nnz == 0

    @property
    def sparse(self):
        """Binary adjacency as a csr matrix."""
        rows = np.repeat(np.arange(self.n), self._cardinalities)
        cols = np.fromiter(
            (j for nb in self._neighbors for j in nb),
            dtype=np.int64,
            count=int(self._cardinalities.sum()),
        )
        data = np.ones(len(cols), dtype=float)
        return sparse.csr_matrix((data, (rows, cols)), shape=(self.n, self.n))

    def to_W(self):  # noqa: N802
        """Export as a binary ``libpysal.weights.W``."""
        neighbors = {i: list(nb) for i, nb in enumerate(self._neighbors)}
        weights = {i: [1.0] * len(nb) for i, nb in enumerate(self._neighbors)}
        return W(neighbors, weights, silence_warnings=True)

    def __eq__(self, other):
        if not isinstance(other, NeighborGraph):
            return NotImplemented
        return self._neighbors == other._neighbors

    def __hash__(self):
        return hash(self._neighbors)

    def __repr__(self):
        return (
            f"NeighborGraph(n={self.n}, links={int(self._cardinalities.sum())}, "
            f"islands={self.n_islands}, rule={self.rule!r})"
        )


class DistanceBand:
    """Neighbours within a closed distance interval

    Parameters
    ----------
    max_dist : float
               upper bound of the band (inclusive)
    min_dist : float
               lower bound of the band (inclusive), by default 0

    Examples
    --------
    >>> g = DistanceBand(1.5).build([(0, 0), (1, 0), (0, 1), (5, 5)])
    >>> g[0], g[3]
    ((1, 2), ())
    """

    def __init__(self, max_dist, min_dist=0.0):
        self.max_dist = max_dist
        self.min_dist = min_dist

    def validate(self, n=None):
        for name, value in (("min_dist", self.min_dist), ("max_dist", self.max_dist)):
            if not isinstance(value, numbers.Real) or not np.isfinite(value):
                raise ConfigurationError(f"{name} must be a finite number, got {value!r}")
            if value < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {value!r}")
        if self.min_dist > self.max_dist:
            raise ConfigurationError(
                f"min_dist ({self.min_dist}) is larger than max_dist ({self.max_dist})"
            )

    def build(self, points):
        points = _as_points(points)
        self.validate(points.n)
        d = _distances(points)
        within = (d >= self.min_dist) & (d <= self.max_dist)
        np.fill_diagonal(within, False)
        neighbors = [np.flatnonzero(row) for row in within]
        graph = NeighborGraph(neighbors, rule=self)
        if points.n and graph.n_islands == points.n:
            warnings.warn(
                f"no unit has a neighbour within [{self.min_dist}, {self.max_dist}]",
                UserWarning,
                stacklevel=2,
            )
        return graph

    def __eq__(self, other):
        if not isinstance(other, DistanceBand):
            return NotImplemented
        return (self.min_dist, self.max_dist) == (other.min_dist, other.max_dist)

    def __hash__(self):
        return hash(("band", self.min_dist, self.max_dist))

    def __repr__(self):
        return f"DistanceBand(max_dist={self.max_dist!r}, min_dist={self.min_dist!r})"


class KNearest:
    """The ``k`` nearest other units

    Ties in distance are broken by the lower unit index. A unit is never its
    own neighbour, but a distinct unit at the same location is.

    Parameters
    ----------
    k : int
        number of neighbours, ``1 <= k < n``
    """

    def __init__(self, k):
        self.k = k

    def validate(self, n=None):
        if isinstance(self.k, bool) or not isinstance(self.k, numbers.Integral):
            raise ConfigurationError(f"k must be an integer, got {self.k!r}")
        if self.k < 1:
            raise ConfigurationError(f"k must be at least 1, got {self.k}")
        if n is not None and self.k >= n:
            raise ConfigurationError(
                f"k={self.k} needs at least {self.k + 1} units, only {n} available"
            )

    def build(self, points):
        points = _as_points(points)
        self.validate(points.n)
        k = int(self.k)
        d = _distances(points)
        np.fill_diagonal(d, np.inf)
        order = np.argsort(d, axis=1, kind="stable")[:, :k]
        return NeighborGraph(order, rule=self)

    def __eq__(self, other):
        if not isinstance(other, KNearest):
            return NotImplemented
        return self.k == other.k

    def __hash__(self):
        return hash(("knn", self.k))

    def __repr__(self):
        return f"KNearest(k={self.k!r})"


def distance_band(points, max_dist, min_dist=0.0):
    """Distance-band graph, see :class:`DistanceBand`."""
    return DistanceBand(max_dist, min_dist=min_dist).build(points)


def knn(points, k):
    """k-nearest-neighbour graph, see :class:`KNearest`."""
    return KNearest(k).build(points)
