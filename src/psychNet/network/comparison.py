"""
Agreement statistics between network-derived and external quantities.

Used to compare network scores with an externally fitted latent variable,
two centrality measures with each other, and community structure with
scale-to-inventory correlations.
"""

from typing import Any, Dict

import numpy as np
from scipy import stats

from psychNet.common.exceptions import InvalidInputError
from psychNet.common.logging_config import get_logger
from psychNet.common.validators import (
    ObservationInput,
    PartitionInput,
    unique_labels,
    validate_observations,
    validate_partition,
)

logger = get_logger(__name__)


def _paired(a: Any, b: Any, name: str = "values") -> tuple:
    x = np.asarray(a, dtype=float).ravel()
    y = np.asarray(b, dtype=float).ravel()
    if x.shape != y.shape:
        raise InvalidInputError(
            f"Vectors must have the same length, got {x.size} and {y.size}",
            field=name
        )
    if x.size < 2:
        raise InvalidInputError("At least two values are needed", field=name)
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise InvalidInputError("Vectors contain NaN or infinite values", field=name)
    return x, y


def _require_variance(x: np.ndarray, y: np.ndarray, name: str) -> None:
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        raise InvalidInputError(
            "Correlation is undefined for a constant vector",
            field=name
        )


def rmse(a: Any, b: Any) -> float:
    """Root mean squared difference of two equal-length vectors."""
    x, y = _paired(a, b)
    return float(np.sqrt(np.mean((x - y) ** 2)))


def _correlations(x: np.ndarray, y: np.ndarray) -> Dict[str, float]:
    return {
        "pearson": float(stats.pearsonr(x, y)[0]),
        "spearman": float(stats.spearmanr(x, y)[0]),
        "kendall": float(stats.kendalltau(x, y)[0]),
    }


def compare_to_latent(scores: Any, latent: Any) -> Dict[str, float]:
    """
    Agreement of per-subject scores with an external latent variable.

    The latent vector is standardized (sample SD) before the RMSE so that
    standardized network scores and raw factor scores are on one scale.

    Returns
    -------
    Dict[str, float]
        ``pearson``, ``spearman``, ``kendall`` and ``rmse``
    """
    x, y = _paired(scores, latent, name="latent")
    _require_variance(x, y, "latent")
    result = _correlations(x, y)
    result["rmse"] = rmse(x, (y - y.mean()) / y.std(ddof=1))
    logger.debug("Latent comparison: %s", result)
    return result


def compare_centralities(a: Any, b: Any) -> Dict[str, float]:
    """
    Pearson, Spearman and Kendall correlations between two centrality
    vectors over the same nodes.
    """
    x, y = _paired(a, b, name="centrality")
    _require_variance(x, y, "centrality")
    return _correlations(x, y)


def scale_to_inventory(
    observations: ObservationInput,
    partition: PartitionInput
) -> Dict[Any, float]:
    """
    Scale-to-inventory correlation of each community.

    For every community, correlates the subjects' mean response over the
    community's items with their mean response over all remaining items.

    Raises
    ------
    InvalidInputError
        If a community contains every item, leaving nothing to correlate with
    """
    data, _ = validate_observations(observations)
    labels = validate_partition(partition, data.shape[1])

    result = {}
    for community in unique_labels(labels):
        inside = np.array([label == community for label in labels])
        if inside.all():
            raise InvalidInputError(
                f"Community '{community}' covers every item",
                field="partition"
            )
        scale = data[:, inside].mean(axis=1)
        rest = data[:, ~inside].mean(axis=1)
        _require_variance(scale, rest, "observations")
        result[community] = float(np.corrcoef(scale, rest)[0, 1])
    return result
