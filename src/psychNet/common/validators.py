"""
Input validation utilities for psychNet.

Each public operation validates its inputs up front through these helpers,
so malformed data fails with ``InvalidInputError`` before any computation
starts. Validators return normalized copies (float arrays, label tuples)
that the caller can use without further checks.
"""

from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import polars as pl

from psychNet.common.exceptions import InvalidInputError

ObservationInput = Union[np.ndarray, pl.DataFrame, Sequence[Sequence[float]]]
PartitionInput = Union[Mapping[int, Any], Sequence[Any], np.ndarray]


def validate_square_matrix(
    matrix: Any,
    name: str = "matrix",
    symmetric: bool = True,
    tolerance: float = 1e-8
) -> np.ndarray:
    """
    Validate a correlation, covariance or dependency matrix.

    Parameters
    ----------
    matrix : array-like
        Candidate matrix
    name : str, default "matrix"
        Argument name used in error messages
    symmetric : bool, default True
        Require ``|M - M.T| <= tolerance`` elementwise
    tolerance : float, default 1e-8
        Absolute symmetry tolerance

    Returns
    -------
    np.ndarray
        A float64 copy of the matrix

    Raises
    ------
    InvalidInputError
        If the matrix is not 2-D, not square, contains non-finite values or
        is asymmetric when symmetry is required

    Examples
    --------
    >>> validate_square_matrix([[1.0, 0.3], [0.3, 1.0]]).shape
    (2, 2)
    """
    try:
        array = np.array(matrix, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(
            "Matrix must contain numeric values",
            field=name,
            cause=e
        )

    if array.ndim != 2:
        raise InvalidInputError(
            f"Matrix must be 2-dimensional, got {array.ndim} dimension(s)",
            field=name,
            details={"shape": array.shape}
        )
    if array.shape[0] != array.shape[1]:
        raise InvalidInputError(
            "Matrix must be square",
            field=name,
            details={"rows": array.shape[0], "columns": array.shape[1]}
        )
    if array.shape[0] == 0:
        raise InvalidInputError("Matrix is empty", field=name)
    if not np.all(np.isfinite(array)):
        raise InvalidInputError(
            "Matrix contains NaN or infinite values",
            field=name,
            details={"non_finite": int(np.sum(~np.isfinite(array)))}
        )

    if symmetric:
        asymmetry = float(np.max(np.abs(array - array.T)))
        if asymmetry > tolerance:
            raise InvalidInputError(
                "Matrix must be symmetric",
                field=name,
                details={"max_asymmetry": asymmetry, "tolerance": tolerance}
            )

    return array


def validate_observations(
    observations: ObservationInput,
    name: str = "observations"
) -> Tuple[np.ndarray, Tuple[str, ...]]:
    """
    Validate a subjects x items observation table.

    Parameters
    ----------
    observations : np.ndarray, pl.DataFrame or sequence of rows
        Raw responses. DataFrame column names become item labels; other
        inputs are labelled ``"0"``, ``"1"``, ...

    Returns
    -------
    data : np.ndarray
        Float64 array of shape (n_subjects, n_items)
    labels : Tuple[str, ...]
        Item labels

    Raises
    ------
    InvalidInputError
        If rows are ragged, values are missing or non-numeric, or fewer than
        two subjects are present
    """
    if isinstance(observations, pl.DataFrame):
        non_numeric = [c for c, dtype in zip(observations.columns, observations.dtypes)
                       if not dtype.is_numeric()]
        if non_numeric:
            raise InvalidInputError(
                f"Observation columns must be numeric: {non_numeric}",
                field=name
            )
        null_count = sum(observations[c].null_count() for c in observations.columns)
        if null_count:
            raise InvalidInputError(
                f"Observations contain {null_count} missing values",
                field=name,
                details={"null_count": null_count}
            )
        labels = tuple(str(c) for c in observations.columns)
        data = observations.to_numpy().astype(float)
    else:
        if not isinstance(observations, np.ndarray):
            row_lengths = {len(row) for row in observations}
            if len(row_lengths) > 1:
                raise InvalidInputError(
                    "All observation rows must have the same length",
                    field=name,
                    details={"row_lengths": sorted(row_lengths)}
                )
        try:
            data = np.array(observations, dtype=float)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(
                "Observations must be numeric",
                field=name,
                cause=e
            )
        labels = None

    if data.ndim != 2:
        raise InvalidInputError(
            f"Observations must be 2-dimensional, got {data.ndim} dimension(s)",
            field=name
        )
    if data.shape[0] < 2 or data.shape[1] < 1:
        raise InvalidInputError(
            "Observations need at least two subjects and one item",
            field=name,
            details={"shape": data.shape}
        )
    if np.isnan(data).any():
        raise InvalidInputError(
            f"Observations contain {int(np.isnan(data).sum())} missing values",
            field=name
        )
    if not np.all(np.isfinite(data)):
        raise InvalidInputError("Observations contain infinite values", field=name)

    if labels is None:
        labels = tuple(str(i) for i in range(data.shape[1]))

    return data, labels


def validate_partition(
    partition: PartitionInput,
    n_nodes: int,
    name: str = "partition"
) -> Tuple[Any, ...]:
    """
    Normalize a community partition to one label per node.

    Parameters
    ----------
    partition : mapping or sequence
        Either ``{node_index: label}`` covering every node, or a sequence of
        ``n_nodes`` labels in node order
    n_nodes : int
        Number of nodes in the graph

    Returns
    -------
    Tuple[Any, ...]
        Labels indexed by node

    Raises
    ------
    InvalidInputError
        If a node is missing, an unknown node is labelled, a label is None
        or the length does not match
    """
    if isinstance(partition, Mapping):
        unknown = [k for k in partition if not _is_node_index(k, n_nodes)]
        if unknown:
            raise InvalidInputError(
                f"Partition references unknown nodes: {unknown[:10]}",
                field=name,
                details={"n_nodes": n_nodes}
            )
        missing = [i for i in range(n_nodes) if i not in partition]
        if missing:
            raise InvalidInputError(
                f"Partition does not assign a community to {len(missing)} node(s)",
                field=name,
                details={"missing": missing[:10]}
            )
        labels = tuple(partition[i] for i in range(n_nodes))
    else:
        labels = tuple(partition.tolist() if isinstance(partition, np.ndarray) else partition)
        if len(labels) != n_nodes:
            raise InvalidInputError(
                f"Partition has {len(labels)} labels but the graph has {n_nodes} nodes",
                field=name
            )

    if any(label is None for label in labels):
        raise InvalidInputError("Partition labels must not be None", field=name)
    return labels


def unique_labels(labels: Sequence[Any]) -> List[Any]:
    """Community labels in order of first appearance."""
    seen = {}
    for label in labels:
        seen.setdefault(label, None)
    return list(seen)


def _is_node_index(key: Any, n_nodes: int) -> bool:
    return isinstance(key, (int, np.integer)) and not isinstance(key, bool) and 0 <= key < n_nodes


def validate_labels(labels: Optional[Sequence[Any]], n_nodes: int) -> Tuple[str, ...]:
    """Return item labels as strings, defaulting to node indices."""
    if labels is None:
        return tuple(str(i) for i in range(n_nodes))
    labels = tuple(str(label) for label in labels)
    if len(labels) != n_nodes:
        raise InvalidInputError(
            f"Expected {n_nodes} labels, got {len(labels)}",
            field="labels"
        )
    if len(set(labels)) != n_nodes:
        raise InvalidInputError("Labels must be unique", field="labels")
    return labels
