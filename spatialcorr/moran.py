"""
Moran's I Spatial Autocorrelation Statistics

"""

__all__ = ["Moran", "Moran_Local", "AutocorrelationResult", "PERMUTATIONS"]

import numbers
from typing import NamedTuple
from warnings import warn

import numpy as np
import pandas as pd
import scipy.stats as stats

from .classify import ALPHA, cluster_labels, hotspot_labels
from .crand import crand as _crand
from .exceptions import ConfigurationError, DegenerateAttribute, InsufficientData
from .graph import NeighborGraph
from .significance import calculate_significance
from .weights import WeightsMatrix, weight_sums

PERMUTATIONS = 0

# variances at or below this are treated as zero
_VARIANCE_FLOOR = np.finfo(float).eps


def _check_permutations(permutations):
    if (
        isinstance(permutations, bool)
        or not isinstance(permutations, numbers.Integral)
        or permutations < 0
    ):
        raise ConfigurationError(
            f"permutations must be a non-negative integer, got {permutations!r}"
        )


class AutocorrelationResult(NamedTuple):
    """Global statistic with its reference moments and inference."""

    I: float  # noqa: E741
    EI: float
    VI: float
    z: float
    p: float


def _weights(w, transformation):
    """Helper to get a WeightsMatrix with the requested transformation"""
    if isinstance(w, WeightsMatrix):
        if w.transformation == str(transformation).lower():
            return w
        w = w.graph
    if not isinstance(w, NeighborGraph):
        w = NeighborGraph(w)
    return WeightsMatrix(w, transformation=transformation)


def _eligible(y, w):
    """Split y into the units with neighbours and validate them.

    Returns y as floats, the mask of units with neighbours, the deviations
    of their values from their own mean, and the weights restricted to them.
    """
    y = np.asarray(y, dtype=float).flatten()
    if y.shape[0] != w.n:
        raise ValueError(f"y has {y.shape[0]} values but the weights cover {w.n} units")
    mask = ~w.islands
    n = int(mask.sum())
    if n < 2:
        raise InsufficientData(
            f"{n} of {w.n} units have a neighbour; at least 2 are required"
        )
    ye = y[mask]
    if not np.isfinite(ye).all():
        bad = np.flatnonzero(mask)[~np.isfinite(ye)]
        raise ValueError(f"attribute has non-finite values for units {bad.tolist()}")
    z = ye - ye.mean()
    z2ss = (z * z).sum()
    if np.ptp(ye) == 0 or z2ss <= n * (_VARIANCE_FLOOR * np.abs(ye).max()) ** 2:
        raise DegenerateAttribute(
            "attribute has zero variance over the units with neighbours"
        )
    return y, mask, z, w.restrict(mask)


def _expand(values, mask, fill=np.nan):
    """Scatter values computed on eligible units back to all units"""
    values = np.asarray(values)
    out = np.full(mask.shape + values.shape[1:], fill, dtype=float)
    out[mask] = values
    return out


def _normal_inference(stat, expectation, variance, two_tailed=True):
    """Standard error, z-value and normal p-value; nan when variance is zero"""
    if not np.isfinite(variance) or variance <= _VARIANCE_FLOOR:
        warn(
            "reference variance of the statistic is zero or undefined; "
            "z-value and p-value are not defined",
            RuntimeWarning,
            stacklevel=3,
        )
        se = max(variance, 0.0) ** (1 / 2.0) if np.isfinite(variance) else np.nan
        return se, np.nan, np.nan
    se = variance ** (1 / 2.0)
    z = (stat - expectation) / se
    if z > 0:
        p = stats.norm.sf(z)
    else:
        p = stats.norm.cdf(z)
    if two_tailed:
        p *= 2.0
    return se, z, p


class Moran:
    """Moran's I Global Autocorrelation Statistic

    Parameters
    ----------

    y               : array
                      variable measured across n spatial units
    w               : WeightsMatrix | NeighborGraph
                      spatial weights (or the graph to derive them from)
                      aligned with y
    transformation  : {'r', 'b'}
                      weights transformation, default is row-standardized "r";
                      "b" is binary. A WeightsMatrix with another
                      transformation is re-derived from its graph.
    two_tailed      : boolean
                      If True (default) analytical p-values for Moran are two
                      tailed, otherwise if False, they are one-tailed.
    permutations    : int
                      number of random permutations for calculation of
                      pseudo-p_values, by default 0 (analytical inference only)
    seed            : None/int
                      seed for the permutations

    Attributes
    ----------
    y            : array
                   original variable
    w            : WeightsMatrix
                   weights used
    islands      : array
                   boolean mask of units without neighbours; they are
                   excluded from the mean, the numerator and the denominator
    n            : int
                   number of units with at least one neighbour
    z            : array
                   zero-mean, unit standard deviation normalized y
                   (nan for islands)
    I            : float
                   value of Moran's I
    EI           : float
                   expected value under both assumptions, -1/(n-1)
    VI_norm      : float
                   variance of I under normality assumption
    seI_norm     : float
                   standard deviation of I under normality assumption
    z_norm       : float
                   z-value of I under normality assumption
    p_norm       : float
                   p-value of I under normality assumption
    VI_rand      : float
                   variance of I under randomization assumption
    seI_rand     : float
                   standard deviation of I under randomization assumption
    z_rand       : float
                   z-value of I under randomization assumption
    p_rand       : float
                   p-value of I under randomization assumption
    two_tailed   : boolean
                   If True p_norm and p_rand are two-tailed, otherwise they
                   are one-tailed.
    sim          : array
                   (if permutations>0)
                   vector of I values for permuted samples
    p_sim        : float
                   (if permutations>0)
                   p-value based on permutations (one-tailed)
                   null: spatial randomness
                   alternative: the observed I is extreme if
                   it is either extremely greater or extremely lower
                   than the values obtained based on permutations
    EI_sim       : float
                   (if permutations>0)
                   average value of I from permutations
    VI_sim       : float
                   (if permutations>0)
                   variance of I from permutations
    seI_sim      : float
                   (if permutations>0)
                   standard deviation of I under permutations.
    z_sim        : float
                   (if permutations>0)
                   standardized I based on permutations
    p_z_sim      : float
                   (if permutations>0)
                   p-value based on standard normal approximation from
                   permutations

    Raises
    ------
    InsufficientData
        fewer than two units have a neighbour
    DegenerateAttribute
        y does not vary over the units with neighbours

    Notes
    -----
    With :math:`z_i = y_i - \\bar{y}` over the n units that have neighbours,

    .. math::

        I = \\frac{n}{S_0} \\frac{\\sum_i \\sum_j w_{ij} z_i z_j}{\\sum_i z_i^2}

    Under row standardization :math:`S_0 = n`. Technical details and
    derivations of the moments can be found in Cliff and Ord (1981).

    When every permutation of y gives the same I (for example on a complete
    graph) the variance is zero and ``z_rand`` and ``p_rand`` are ``nan``.

    Examples
    --------
    >>> from spatialcorr.graph import distance_band
    >>> grid = [(i, j) for i in range(3) for j in range(3)]
    >>> w = WeightsMatrix(distance_band(grid, 1.0))
    >>> mi = Moran(np.arange(1, 10), w)
    >>> round(mi.I, 4)
    0.5556
    >>> mi.EI
    -0.125
    """

    def __init__(
        self,
        y,
        w,
        transformation="r",
        two_tailed=True,
        permutations=PERMUTATIONS,
        seed=None,
    ):
        _check_permutations(permutations)
        w = _weights(w, transformation)
        self.w = w
        self.y, self.mask, z, self._w = _eligible(y, w)
        self.islands = ~self.mask
        self.permutations = permutations
        self.two_tailed = two_tailed
        self.__moments(z)
        self.I = self.__calc(z)  # noqa: E741
        self.seI_norm, self.z_norm, self.p_norm = _normal_inference(
            self.I, self.EI, self.VI_norm, two_tailed
        )
        self.seI_rand, self.z_rand, self.p_rand = _normal_inference(
            self.I, self.EI, self.VI_rand, two_tailed
        )

        self.sim = self.p_sim = None
        if permutations:
            rng = np.random.default_rng(seed)
            sim = [self.__calc(rng.permutation(z)) for i in range(permutations)]
            self.sim = sim = np.array(sim)
            self.p_sim = calculate_significance(self.I, sim, alternative="directed")
            self.EI_sim = sim.sum() / permutations
            self.seI_sim = sim.std()
            self.VI_sim = self.seI_sim**2
            if self.seI_sim > 0:
                self.z_sim = (self.I - self.EI_sim) / self.seI_sim
                if self.z_sim > 0:
                    self.p_z_sim = stats.norm.sf(self.z_sim)
                else:
                    self.p_z_sim = stats.norm.cdf(self.z_sim)
            else:
                self.z_sim = self.p_z_sim = np.nan

        # provide .z attribute that is znormalized
        self.z = _expand(z / z.std(), self.mask)

    def __moments(self, z):
        self.n = n = len(z)
        self.z2ss = (z * z).sum()
        self.EI = -1.0 / (n - 1)
        n2 = n * n
        s0, s1, s2 = weight_sums(self._w)
        self.s0, self.s1, self.s2 = s0, s1, s2
        s02 = s0 * s0
        v_num = n2 * s1 - n * s2 + 3 * s02
        v_den = (n - 1) * (n + 1) * s02
        self.VI_norm = v_num / v_den - (1.0 / (n - 1)) ** 2

        # variance under randomization
        if n < 4:
            warn(
                f"variance under randomization needs at least 4 units with "
                f"neighbours, {n} available",
                RuntimeWarning,
                stacklevel=3,
            )
            self.VI_rand = np.nan
            return
        xd4 = z**4
        xd2 = z**2
        k_num = xd4.sum() / n
        k_den = (xd2.sum() / n) ** 2
        k = k_num / k_den
        EI = self.EI  # noqa: N806
        A = n * ((n2 - 3 * n + 3) * s1 - n * s2 + 3 * s02)  # noqa: N806
        B = k * ((n2 - n) * s1 - 2 * n * s2 + 6 * s02)  # noqa: N806
        VIR = (A - B) / ((n - 1) * (n - 2) * (n - 3) * s02) - EI * EI  # noqa: N806
        self.VI_rand = VIR

    def __calc(self, z):
        zl = self._w @ z
        inum = (z * zl).sum()
        return self.n / self.s0 * inum / self.z2ss

    @property
    def _statistic(self):
        """More consistent hidden attribute to access the statistic"""
        return self.I

    def result(self):
        """Immutable summary under the randomization assumption."""
        return AutocorrelationResult(
            float(self.I),
            float(self.EI),
            float(self.VI_rand),
            float(self.z_rand),
            float(self.p_rand),
        )

    def __repr__(self):
        return f"Moran(I={self.I:.6g}, p_rand={self.p_rand:.6g}, n={self.n})"


class Moran_Local:  # noqa: N801
    """Local Moran Statistics.


    Parameters
    ----------
    y : array
        (n,1), attribute array
    w : WeightsMatrix | NeighborGraph
        spatial weights (or the graph to derive them from) aligned with y
    transformation : {'r', 'b'}
        weights transformation, default is row-standardized "r"; "b" is
        binary.
    permutations : int
        number of random permutations for calculation of pseudo
        p_values, by default 0 (analytical inference only)
    geoda_quads : boolean
        (default=False)
        If True use GeoDa scheme: HH=1, LL=2, LH=3, HL=4
        If False use PySAL Scheme: HH=1, LH=2, LL=3, HL=4
    keep_simulations : Boolean
        (default=True)
        If True, the entire matrix of replications under the null
        is stored in memory and accessible; otherwise, replications
        are not saved
    seed : None/int
        Seed to ensure reproducibility of conditional randomizations.

    Attributes
    ----------

    y : array
        original variable
    w : WeightsMatrix
        weights used
    defined : array
        boolean mask of units with at least one neighbour. Every per-unit
        attribute below is nan where ``defined`` is False.
    n : int
        number of units with at least one neighbour
    z : array
        zero-mean, unit standard deviation normalized y
    Is : array
        local Moran's I values
    q : array
        values indicate quandrant location 1 HH,  2 LH,  3 LL,  4 HL,
        0 for undefined units
    EI : array
        analytical expectation of Is under total permutation,
        from Anselin (1995). Equal to -w_i/(n-1).
    VI : array
        analytical variance of Is under total permutation,
        from Anselin (1995) in the form of Sokal et al. (1998, A4).
    EIc : array
        analytical expectation of Is under conditional permutation,
        Sokal et al. (1998, A7). Varies strongly by site, since it
        conditions on z_i.
    VIc : array
        analytical variance of Is under conditional permutation,
        Sokal et al. (1998, A8).
    z_rand : array
        standardized Is under total permutation
    p_rand : array
        two-tailed p-values of z_rand from the standard normal
    sim : array (permutations by n)
        (if permutations>0)
        I values for permuted samples
    p_sim : array
        (if permutations>0)
        p-values based on conditional permutations (one-sided)
        null: spatial randomness
        alternative: the observed Ii is further away or extreme
        from the median of simulated values. It is either extremely
        high or extremely low in the distribution of simulated Is.
    EI_sim : array
        (if permutations>0)
        average values of local Is from permutations
    VI_sim : array
        (if permutations>0)
        variance of Is from permutations
    seI_sim : array
        (if permutations>0)
        standard deviations of Is under permutations.
    z_sim : arrray
        (if permutations>0)
        standardized Is based on permutations
    p_z_sim : array
        (if permutations>0)
        p-values based on standard normal approximation from
        permutations (one-sided)
        for two-sided tests, these values should be multiplied by 2

    Notes
    -----

    With :math:`m_2 = \\sum_i z_i^2 / n` over the units with neighbours,

    .. math::

        I_i = \\frac{z_i}{m_2} \\sum_j w_{ij} z_j

    so that :math:`\\sum_i I_i = S_0 I`, which is :math:`n I` for
    row-standardized weights without islands. For technical details see
    Anselin (1995).

    Examples
    --------
    >>> from spatialcorr.graph import distance_band
    >>> grid = [(i, j) for i in range(3) for j in range(3)]
    >>> lm = Moran_Local(np.arange(1, 10), distance_band(grid, 1.0))
    >>> np.round(lm.Is, 2)
    array([1.2, 0.9, 0.3, 0.1, 0. , 0.1, 0.3, 0.9, 1.2])
    >>> lm.q
    array([3, 3, 3, 3, 3, 1, 1, 1, 1])
    """

    def __init__(
        self,
        y,
        w,
        transformation="r",
        permutations=PERMUTATIONS,
        geoda_quads=False,
        keep_simulations=True,
        seed=None,
    ):
        _check_permutations(permutations)
        w = _weights(w, transformation)
        self.w = w
        self.y, mask, z, self._w = _eligible(y, w)
        self.defined = mask
        self.n = n = len(z)
        self.n_1 = n - 1
        self.permutations = permutations
        self.m2 = (z * z).sum() / n
        self._zl = self._w @ z
        self.Is = _expand(self.__calc(z, self._zl), mask)
        self.z = _expand(z / self.m2 ** (1 / 2.0), mask)
        self.geoda_quads = geoda_quads
        quads = [1, 2, 3, 4]
        if geoda_quads:
            quads = [1, 3, 2, 4]
        self.quads = quads
        self.__quads(z)
        self.__moments(z)
        self.__inference()

        self.sim = self.rlisas = self.p_sim = self.p_z_sim = None
        if permutations:
            p_sim, rlisas = _crand(
                z,
                self._w,
                self.Is[mask],
                permutations,
                scaling=1.0 / self.m2,
                seed=seed,
                keep=keep_simulations,
            )
            self.p_sim = _expand(p_sim, mask)
            if keep_simulations:
                self.rlisas = _expand(rlisas, mask)
                self.sim = sim = np.transpose(self.rlisas)
                self.EI_sim = sim.mean(axis=0)
                self.seI_sim = sim.std(axis=0)
                self.VI_sim = self.seI_sim * self.seI_sim
                with np.errstate(divide="ignore", invalid="ignore"):
                    self.z_sim = (self.Is - self.EI_sim) / self.seI_sim
                    self.z_sim[~(self.seI_sim > 0)] = np.nan
                self.p_z_sim = stats.norm.sf(np.abs(self.z_sim))
            else:
                self.EI_sim = np.nan
                self.seI_sim = np.nan
                self.VI_sim = np.nan
                self.z_sim = np.nan
                self.p_z_sim = None

    def __calc(self, z, zl):
        return z * zl / self.m2

    def __quads(self, z):
        zl = self._zl
        zp = z > 0
        lp = zl > 0
        pp = zp * lp
        np_ = (1 - zp) * lp
        nn = (1 - zp) * (1 - lp)
        pn = zp * (1 - lp)

        q0, q1, q2, q3 = self.quads
        q = np.zeros(self.defined.shape, dtype=int)
        q[self.defined] = (q0 * pp) + (q1 * np_) + (q2 * nn) + (q3 * pn)
        self.q = q

    def __moments(self, z):
        W = self._w  # noqa: N806
        n = self.n
        m2 = self.m2
        wi = np.asarray(W.sum(axis=1)).flatten()
        wi2 = np.asarray(W.multiply(W).sum(axis=1)).flatten()
        mask = self.defined
        if n < 3:
            warn(
                f"local moments need at least 3 units with neighbours, {n} available",
                RuntimeWarning,
                stacklevel=3,
            )
            self.EI = _expand(-wi / (n - 1), mask)
            self.EIc = _expand(-(z**2 * wi) / ((n - 1) * m2), mask)
            self.VI = self.VIc = _expand(np.full(n, np.nan), mask)
            return

        # ---------------------------------------------------------
        # Conditional randomization null, Sokal 1998, Eqs. A7 & A8
        # assume that division is as written, so that
        # a - b / (n - 1) means a - (b / (n-1))
        # ---------------------------------------------------------
        expectation = -(z**2 * wi) / ((n - 1) * m2)
        var_term1 = (z / m2) ** 2
        var_term2 = n / (n - 2)
        var_term3 = wi2 - (wi**2 / (n - 1))
        var_term4 = m2 - (z**2 / (n - 1))
        variance = var_term1 * var_term2 * var_term3 * var_term4

        self.EIc = _expand(expectation, mask)
        self.VIc = _expand(variance, mask)

        # ---------------------------------------------------------
        # Total randomization null, Sokal 1998, Eqs. A3 & A4*
        # ---------------------------------------------------------
        m4 = (z**4).sum() / n
        b2 = m4 / m2**2

        n1 = n - 1
        VI = wi2 * (n - b2) / n1  # noqa: N806
        VI += (wi**2 - wi2) * (2 * b2 - n) / (n1 * (n - 2))  # noqa: N806
        VI -= (-wi / n1) ** 2  # noqa: N806
        self.EI = _expand(-wi / n1, mask)
        self.VI = _expand(VI, mask)

    def __inference(self):
        VI = self.VI  # noqa: N806
        with np.errstate(divide="ignore", invalid="ignore"):
            z_rand = (self.Is - self.EI) / np.sqrt(VI)
        degenerate = self.defined & ~(VI > _VARIANCE_FLOOR)
        if degenerate.any():
            warn(
                f"units {np.flatnonzero(degenerate).tolist()} have zero or undefined "
                "reference variance; their z-values and p-values are not defined",
                RuntimeWarning,
                stacklevel=3,
            )
        z_rand[~(VI > _VARIANCE_FLOOR)] = np.nan
        self.z_rand = z_rand
        self.p_rand = 2.0 * stats.norm.sf(np.abs(z_rand))

    @property
    def _statistic(self):
        """More consistent hidden attribute to access the statistic."""
        return self.Is

    def get_hotspot_labels(self, alpha=ALPHA, pvalue="rand"):
        """Hotspot/Coldspot/NotSignificant/Undefined label for each unit.

        Parameters
        ----------
        alpha : float, optional
            significance level, by default 0.05
        pvalue : {'rand', 'sim', 'z_sim'}
            p-value used for the decision, by default the analytical one
        """
        return hotspot_labels(self, alpha=alpha, pvalue=pvalue)

    def get_cluster_labels(self, crit_value=ALPHA, pvalue="rand"):
        """Return LISA cluster labels for each observation.

        Parameters
        ----------
        crit_value : float, optional
            crititical significance value for statistical inference, by default 0.05

        Returns
        -------
        numpy.array
            an array of cluster labels aligned with the input data used to conduct the
            local Moran analysis
        """
        return cluster_labels(self, crit_value, pvalue=pvalue)

    def to_frame(self, alpha=ALPHA, pvalue="rand"):
        """Per-unit results as a DataFrame aligned with the input units."""
        df = pd.DataFrame(
            {
                "Is": self.Is,
                "EI": self.EI,
                "VI": self.VI,
                "z_rand": self.z_rand,
                "p_rand": self.p_rand,
            }
        )
        if self.p_sim is not None:
            df["p_sim"] = self.p_sim
        df["quadrant"] = self.q
        df["label"] = self.get_hotspot_labels(alpha, pvalue=pvalue)
        df["defined"] = self.defined
        return df
