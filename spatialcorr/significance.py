import numpy as np

ALTERNATIVES = ("two-sided", "folded", "greater", "lesser", "directed")


def calculate_significance(test_stat, reference_distribution, alternative="two-sided"):
    """
    Calculate a pseudo p-value from a reference distribution.

    Pseudo-p values are calculated using the formula (M + 1) / (R + 1). Where R is
    the number of simulations and M is the number of times that the simulated value
    was equal to, or more extreme than the observed test statistic.

    Parameters
    ----------
    test_stat: float or numpy.ndarray
        The observed test statistic, or a vector of observed test statistics
    reference_distribution: numpy.ndarray
        Simulated test statistics, shaped (n_samples, permutations) for a vector
        of statistics or (permutations,) for a single one.
    alternative: string
        One of 'two-sided', 'lesser', 'greater', 'folded', or 'directed'.
        - 'two-sided': the observed statistic is in either tail of the reference
          distribution.
        - 'folded': the observed statistic is extreme in the reference distribution
          folded about its mean.
        - 'lesser': the observed statistic is small relative to the reference.
        - 'greater': the observed statistic is large relative to the reference.
        - 'directed': the tail is picked from the observed statistic. The p-value
          is half of the two-sided one and uniformly too small; kept only to
          reproduce published pseudo p-values.

    Returns
    -------
    float or numpy.ndarray
        one pseudo p-value per observed statistic. Rows whose statistic is
        ``nan`` (undefined units) get ``nan``.
    """
    if alternative not in ALTERNATIVES:
        raise ValueError(
            f"alternative='{alternative}' provided, but is not"
            f" one of the supported options: {ALTERNATIVES}"
        )
    reference_distribution = np.atleast_2d(np.asarray(reference_distribution, dtype=float))
    n_samples, p_permutations = reference_distribution.shape
    test_stat = np.asarray(test_stat, dtype=float).reshape(n_samples, 1)
    with np.errstate(invalid="ignore"):
        result = _permutation_significance(
            test_stat, reference_distribution, p_permutations, alternative
        )
    result[np.isnan(test_stat[:, 0])] = np.nan
    if result.size == 1:
        return result.item()
    return result


def _permutation_significance(test_stat, reference_distribution, p_permutations,
                              alternative):
    if alternative == "directed":
        larger = (reference_distribution >= test_stat).sum(axis=1)
        low_extreme = (p_permutations - larger) < larger
        larger[low_extreme] = p_permutations - larger[low_extreme]
        return (larger + 1.0) / (p_permutations + 1.0)
    if alternative == "lesser":
        return ((reference_distribution <= test_stat).sum(axis=1) + 1.0) / (
            p_permutations + 1.0
        )
    if alternative == "greater":
        return ((reference_distribution >= test_stat).sum(axis=1) + 1.0) / (
            p_permutations + 1.0
        )
    if alternative == "two-sided":
        # percentile at which each observed statistic sits, mirrored to the
        # other tail; count draws outside (p, 1-p)
        percentile = (reference_distribution <= test_stat).mean(axis=1) * 100
        p_low = np.minimum(percentile, 100 - percentile)
        lows = np.array(
            [np.percentile(r, p) for r, p in zip(reference_distribution, p_low)]
        )
        highs = np.array(
            [np.percentile(r, 100 - p) for r, p in zip(reference_distribution, p_low)]
        )
        n_outside = (reference_distribution <= lows[:, None]).sum(axis=1)
        n_outside += (reference_distribution >= highs[:, None]).sum(axis=1)
        return (n_outside + 1.0) / (p_permutations + 1.0)
    # folded
    means = reference_distribution.mean(axis=1, keepdims=True)
    folded_test_stat = np.abs(test_stat - means)
    folded_reference = np.abs(reference_distribution - means)
    return ((folded_reference >= folded_test_stat).sum(axis=1) + 1.0) / (
        p_permutations + 1.0
    )
