"""
Association matrices for item-level psychometric data.

Computes the dense inputs the network builders consume: Pearson or Spearman
correlations, sample covariances, the asymmetric dependency matrix used for
dependency networks, and partial correlations from a precision matrix.
"""

from typing import Tuple

import numpy as np
from scipy.stats import rankdata

from psychNet.common.exceptions import InvalidInputError, validate_parameter
from psychNet.common.logging_config import get_logger, log_function_entry, LoggingTimer
from psychNet.common.validators import (
    ObservationInput,
    validate_observations,
    validate_square_matrix,
)

logger = get_logger(__name__)

AVAILABLE_METHODS = ["pearson", "spearman"]


def _checked_data(observations: ObservationInput) -> Tuple[np.ndarray, Tuple[str, ...]]:
    data, labels = validate_observations(observations)
    constant = np.flatnonzero(np.ptp(data, axis=0) == 0)
    if constant.size:
        raise InvalidInputError(
            f"{constant.size} item(s) have zero variance",
            field="observations",
            details={"items": [labels[i] for i in constant[:10]]}
        )
    return data, labels


def correlation_matrix(
    observations: ObservationInput,
    method: str = "pearson"
) -> np.ndarray:
    """
    Item correlation matrix.

    Parameters
    ----------
    observations : np.ndarray, pl.DataFrame or sequence of rows
        Subjects x items responses without missing values
    method : {"pearson", "spearman"}, default "pearson"
        Spearman correlates average ranks (ties share the mean rank)

    Returns
    -------
    np.ndarray
        Symmetric (n_items, n_items) matrix with a unit diagonal

    Raises
    ------
    InvalidInputError
        If observations are malformed or an item has zero variance
    InvalidParameterError
        If the method is unknown
    """
    validate_parameter(method, AVAILABLE_METHODS, "method", "correlation_matrix")
    data, _ = _checked_data(observations)

    if method == "spearman":
        data = np.apply_along_axis(rankdata, 0, data)

    corr = np.corrcoef(data, rowvar=False)
    corr = (corr + corr.T) / 2.0
    np.fill_diagonal(corr, 1.0)
    return np.clip(corr, -1.0, 1.0)


def covariance_matrix(observations: ObservationInput) -> np.ndarray:
    """Sample covariance matrix (ddof=1) of the items."""
    data, _ = _checked_data(observations)
    cov = np.cov(data, rowvar=False, ddof=1)
    return (cov + cov.T) / 2.0


def partial_correlations(precision: np.ndarray) -> np.ndarray:
    """
    Partial correlations implied by a precision matrix.

    ``rho_ij = -P_ij / sqrt(P_ii * P_jj)`` with a zero diagonal. Zero
    precision entries stay exactly zero.

    Raises
    ------
    InvalidInputError
        If any diagonal element is not positive
    """
    precision = validate_square_matrix(precision, name="precision", tolerance=1e-6)
    diag = np.diag(precision)
    if np.any(diag <= 0):
        raise InvalidInputError(
            "Precision matrix must have a positive diagonal",
            field="precision",
            details={"non_positive": int(np.sum(diag <= 0))}
        )
    scale = np.sqrt(diag)
    partial = -precision / np.outer(scale, scale)
    partial = (partial + partial.T) / 2.0
    np.fill_diagonal(partial, 0.0)
    partial[precision == 0] = 0.0
    return partial


def dependency_matrix(observations: ObservationInput) -> np.ndarray:
    """
    Directed dependency matrix of Kenett et al. (2010).

    ``D[i, j]`` is the average influence of item ``j`` on the correlations of
    item ``i`` with every other item ``k``::

        D[i, j] = mean_k ( r_ik - r_ik.j ),   k not in {i, j}

    where ``r_ik.j`` is the partial correlation of ``i`` and ``k`` given ``j``.
    The result is asymmetric with a zero diagonal.

    Raises
    ------
    InvalidInputError
        If fewer than three items are supplied or an item is perfectly
        correlated with another
    """
    log_function_entry("dependency_matrix")
    r = correlation_matrix(observations)
    n = r.shape[0]
    if n < 3:
        raise InvalidInputError(
            "Dependency matrix needs at least three items",
            field="observations",
            details={"n_items": n}
        )

    off_diag = r - np.eye(n)
    if np.any(np.isclose(np.abs(off_diag), 1.0)):
        raise InvalidInputError(
            "Items with perfect correlation have undefined partial correlations",
            field="observations"
        )

    dependency = np.zeros((n, n))
    # terms involving j itself divide by zero and are discarded
    with LoggingTimer("dependency_matrix", {"items": n}), \
            np.errstate(divide="ignore", invalid="ignore"):
        for j in range(n):
            rj = r[:, j]
            denom = np.sqrt(1.0 - rj ** 2)
            # r_ik.j for every (i, k) pair, controlling for j
            partial = (r - np.outer(rj, rj)) / np.outer(denom, denom)
            diff = r - partial
            mask = np.ones((n, n), dtype=bool)
            mask[:, j] = False
            np.fill_diagonal(mask, False)
            sums = np.where(mask, diff, 0.0).sum(axis=1)
            dependency[:, j] = sums / (n - 2)
        np.fill_diagonal(dependency, 0.0)

    logger.debug("Dependency matrix computed for %d items", n)
    return dependency
