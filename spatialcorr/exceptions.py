"""
Exceptions raised by spatialcorr

Configuration problems, datasets with too few connected units and
attributes without variation are reported with distinct types, so that a
loop comparing several neighbour rules can skip the offending rule and keep
going. They subclass the builtin exceptions that :mod:`esda`-style callers
already catch.
"""

__all__ = [
    "SpatialcorrError",
    "ConfigurationError",
    "InsufficientData",
    "DegenerateAttribute",
    "UnknownAttribute",
]


class SpatialcorrError(Exception):
    """Base class for all spatialcorr errors."""


class ConfigurationError(SpatialcorrError, ValueError):
    """Invalid neighbour rule, transformation or significance level."""


class InsufficientData(SpatialcorrError, ValueError):
    """Fewer than two units have a neighbour under the chosen rule."""


class DegenerateAttribute(SpatialcorrError, ValueError):
    """The attribute has zero variance over the units with neighbours."""


class UnknownAttribute(SpatialcorrError, KeyError):
    """An attribute name that the unit table does not carry."""

    def __str__(self):
        # KeyError quotes its argument; keep the message readable
        return str(self.args[0]) if self.args else ""
