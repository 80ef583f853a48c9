__version__ = "0.1.0"
# spatialcorr --- spatial autocorrelation of areal data
#
# Neighbour graphs, spatial weights, global and local Moran's I and hot/cold
# spot labels for polygon datasets. __version__ must stay on the first line,
# setup.py reads it from there.

from . import functions  # noqa F401
from .classify import classify_hotspots, cluster_labels, hotspot_labels  # noqa F401
from .exceptions import (  # noqa F401
    ConfigurationError,
    DegenerateAttribute,
    InsufficientData,
    SpatialcorrError,
    UnknownAttribute,
)
from .graph import DistanceBand, KNearest, NeighborGraph, distance_band, knn  # noqa F401
from .moran import AutocorrelationResult, Moran, Moran_Local  # noqa F401
from .pipeline import Analysis, analyze, attach  # noqa F401
from .points import PointSet, centroids, min_threshold_distance  # noqa F401
from .significance import calculate_significance  # noqa F401
from .sweep import sweep  # noqa F401
from .units import SpatialUnit, UnitTable  # noqa F401
from .weights import WeightsMatrix  # noqa F401
