"""
Spatial units and the attribute table they live in
"""

__all__ = ["SpatialUnit", "UnitTable"]

import warnings
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple

import geopandas as gpd
import numpy as np
import pandas as pd

from .exceptions import UnknownAttribute
from .points import PointSet, centroids


class SpatialUnit(NamedTuple):
    """One areal unit: its stable index, its geometry and its attributes."""

    index: int
    geometry: Any
    attributes: Mapping[str, Any]

    def __getitem__(self, key):
        if isinstance(key, str):
            try:
                return self.attributes[key]
            except KeyError:
                raise UnknownAttribute(
                    f"unit {self.index} has no attribute {key!r}"
                ) from None
        return tuple.__getitem__(self, key)


class UnitTable:
    """Immutable table of spatial units

    Parameters
    ----------
    attributes : pandas.DataFrame | dict
                 named attribute columns, one row per unit
    geometry   : geopandas.GeoSeries, optional
                 unit geometries aligned with the attribute rows
    points     : PointSet | array, optional
                 representative points; by default the centroids of
                 ``geometry``, taken once when the table is built. Empty
                 geometries raise ``ValueError`` here.

    Notes
    -----
    Units are identified by their position ``0 .. n-1``; the original index
    of the input frame is dropped. Derived attributes (log price, local
    statistics, labels) are appended through :meth:`with_attribute` and
    :meth:`with_columns`, which return a new table and never overwrite an
    existing column.

    Examples
    --------
    >>> t = UnitTable({"price": [100, 200]}, points=[(0, 0), (1, 0)])
    >>> t.attribute("price")
    array([100., 200.])
    >>> t = t.with_log("price")
    >>> t.columns
    ('price', 'log_price')
    """

    def __init__(self, attributes, geometry=None, points=None):
        frame = pd.DataFrame(attributes).reset_index(drop=True)
        if geometry is not None:
            geometry = gpd.GeoSeries(geometry).reset_index(drop=True)
            if len(geometry) != len(frame):
                raise ValueError(
                    f"geometry has {len(geometry)} rows but attributes have "
                    f"{len(frame)}"
                )
        if points is not None and not isinstance(points, PointSet):
            points = PointSet(points)
        elif points is None and geometry is not None:
            points = centroids(geometry)
        if points is not None and points.n != len(frame):
            raise ValueError(
                f"points have {points.n} rows but attributes have {len(frame)}"
            )
        self._frame = frame
        self._geometry = geometry
        self._points = points

    @classmethod
    def from_geodataframe(cls, gdf, columns=None, repair=True):
        """Load units from a GeoDataFrame

        Parameters
        ----------
        gdf     : geopandas.GeoDataFrame
                  polygon layer with attribute columns
        columns : list of str, optional
                  attribute columns to keep, by default every non-geometry
                  column
        repair  : bool
                  if True (default) invalid geometries are made valid before
                  centroids are taken
        """
        geometry = gdf.geometry
        if repair:
            invalid = ~geometry.is_valid
            if invalid.any():
                warnings.warn(
                    f"repairing {int(invalid.sum())} invalid geometries",
                    UserWarning,
                    stacklevel=2,
                )
                geometry = geometry.make_valid()
        if columns is None:
            columns = [c for c in gdf.columns if c != gdf.geometry.name]
        return cls(pd.DataFrame(gdf[list(columns)]), geometry=geometry)

    @property
    def n(self):
        return len(self._frame)

    def __len__(self):
        return self.n

    @property
    def columns(self):
        return tuple(self._frame.columns)

    @property
    def geometry(self):
        return self._geometry

    def __contains__(self, name):
        return name in self._frame.columns

    def attribute(self, name):
        """Values of a numeric attribute as a read-only float array."""
        if name not in self._frame.columns:
            raise UnknownAttribute(
                f"unknown attribute {name!r}; available: {list(self.columns)}"
            )
        values = np.asarray(self._frame[name], dtype=float).copy()
        values.setflags(write=False)
        return values

    def points(self):
        """Representative points of the units, aligned with the rows."""
        if self._points is None:
            raise ValueError("table has neither geometry nor points")
        return self._points

    def with_attribute(self, name, values):
        """Return a new table with ``values`` appended as column ``name``."""
        return self.with_columns({name: values})

    def with_columns(self, columns):
        """Return a new table with several derived columns appended

        Parameters
        ----------
        columns : mapping | pandas.DataFrame
                  new column names and values aligned with the units
        """
        new = pd.DataFrame(columns)
        clash = [c for c in new.columns if c in self._frame.columns]
        if clash:
            raise ValueError(f"columns {clash} already exist and cannot be replaced")
        if len(new) != self.n:
            raise ValueError(
                f"derived columns have {len(new)} rows, table has {self.n}"
            )
        frame = pd.concat([self._frame, new.reset_index(drop=True)], axis=1)
        return UnitTable(frame, geometry=self._geometry, points=self._points)

    def with_log(self, name, new_name=None):
        """Append the natural logarithm of a strictly positive attribute."""
        values = self.attribute(name)
        if (values <= 0).any():
            raise ValueError(f"attribute {name!r} has non-positive values")
        return self.with_attribute(new_name or f"log_{name}", np.log(values))

    def units(self):
        for i, row in enumerate(self._frame.to_dict("records")):
            geom = None if self._geometry is None else self._geometry.iloc[i]
            yield SpatialUnit(i, geom, MappingProxyType(row))

    def __iter__(self):
        return self.units()

    def __getitem__(self, i):
        if not -self.n <= i < self.n:
            raise IndexError(f"unit index {i} out of range for {self.n} units")
        i = i % self.n
        geom = None if self._geometry is None else self._geometry.iloc[i]
        return SpatialUnit(
            i, geom, MappingProxyType(self._frame.iloc[i].to_dict())
        )

    def to_frame(self):
        """Copy of the table as a (Geo)DataFrame."""
        frame = self._frame.copy()
        if self._geometry is None:
            return frame
        return gpd.GeoDataFrame(frame, geometry=self._geometry.values,
                                crs=self._geometry.crs)

    def __repr__(self):
        return f"UnitTable(n={self.n}, columns={list(self.columns)})"
