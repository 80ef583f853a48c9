"""
Representative points for areal units
"""

__all__ = ["PointSet", "centroids", "min_threshold_distance"]

import geopandas as gpd
import numpy as np
from libpysal.weights import min_threshold_distance as _min_threshold


class PointSet:
    """Ordered, read-only set of representative points

    Parameters
    ----------
    coords : array
             (n, 2) coordinates, one row per spatial unit. The order is the
             order of the units and is never changed downstream.

    Attributes
    ----------
    coords : array
             read-only (n, 2) float array
    n      : int
             number of points

    Examples
    --------
    >>> pts = PointSet([(0, 0), (1, 0), (0, 1)])
    >>> len(pts)
    3
    >>> pts[1]
    array([1., 0.])
    """

    def __init__(self, coords):
        coords = np.array(coords, dtype=float)
        if coords.ndim != 2 or coords.shape[1] != 2:
            raise ValueError(
                f"coordinates must be an (n, 2) array, received shape {coords.shape}"
            )
        if not np.isfinite(coords).all():
            bad = np.flatnonzero(~np.isfinite(coords).all(axis=1))
            raise ValueError(f"non-finite coordinates for units {bad.tolist()}")
        coords.setflags(write=False)
        self._coords = coords

    @property
    def coords(self):
        return self._coords

    @property
    def n(self):
        return self._coords.shape[0]

    def __len__(self):
        return self.n

    def __getitem__(self, i):
        return self._coords[i]

    def __iter__(self):
        return iter(self._coords)

    def __repr__(self):
        return f"PointSet(n={self.n})"

    @classmethod
    def from_geometry(cls, geometry):
        """Build a point set from a GeoSeries or GeoDataFrame (centroids)."""
        return centroids(geometry)


def centroids(geometry):
    """Reduce areal units to their centroids

    Parameters
    ----------
    geometry : geopandas.GeoSeries | geopandas.GeoDataFrame
               valid polygon (or point) geometries, one per unit

    Returns
    -------
    PointSet
        centroids aligned with the input rows

    Notes
    -----
    Geometries are expected to be valid; repair them first with
    ``GeoSeries.make_valid`` (``UnitTable.from_geodataframe`` does this by
    default). Point geometries are returned unchanged.
    """
    if isinstance(geometry, gpd.GeoDataFrame):
        geometry = geometry.geometry
    elif not isinstance(geometry, gpd.GeoSeries):
        geometry = gpd.GeoSeries(geometry)

    if geometry.isna().any() or geometry.is_empty.any():
        bad = np.flatnonzero((geometry.isna() | geometry.is_empty).values)
        raise ValueError(f"units {bad.tolist()} have empty geometries")

    if (geometry.geom_type == "Point").all():
        points = geometry
    else:
        points = geometry.centroid
    return PointSet(np.column_stack([points.x.values, points.y.values]))


def min_threshold_distance(points):
    """Smallest distance band that leaves no unit without a neighbour

    Parameters
    ----------
    points : PointSet | array
             representative points

    Returns
    -------
    float
        maximum over all units of the distance to the nearest other unit
    """
    if not isinstance(points, PointSet):
        points = PointSet(points)
    if points.n < 2:
        raise ValueError("at least two points are needed for a threshold distance")
    return float(_min_threshold(points.coords))
