"""
Analysis defaults for psychNet.

Defaults live in a frozen ``AnalysisConfig``; ``get_config()`` applies
overrides from ``PSYNET_*`` environment variables. Functions take an explicit
argument first and only fall back to the configuration when it is ``None``.
"""

import os
from dataclasses import dataclass, replace
from typing import Callable, Dict, Any

from psychNet.common.exceptions import InvalidParameterError

ENV_N_JOBS = "PSYNET_N_JOBS"
ENV_SEED_STRATEGY = "PSYNET_SEED_STRATEGY"
ENV_SYMMETRY_TOL = "PSYNET_SYMMETRY_TOL"
ENV_TIE_TOL = "PSYNET_TIE_TOL"
ENV_CONDITION_LIMIT = "PSYNET_CONDITION_LIMIT"


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Library-wide numerical and execution defaults.

    Attributes
    ----------
    n_jobs : int
        Worker processes for betweenness (1 = sequential, -1 = all cores)
    seed_strategy : str
        TMFG seed selection ("greedy" or "exact")
    symmetry_tolerance : float
        Maximum absolute asymmetry accepted for correlation/covariance input
    tie_tolerance : float
        Relative tolerance under which two path lengths count as equal
    condition_limit : float
        Largest condition number accepted for a clique/separator block
    """

    n_jobs: int = 1
    seed_strategy: str = "greedy"
    symmetry_tolerance: float = 1e-8
    tie_tolerance: float = 1e-9
    condition_limit: float = 1e12


_ENV_FIELDS: Dict[str, tuple] = {
    ENV_N_JOBS: ("n_jobs", int),
    ENV_SEED_STRATEGY: ("seed_strategy", str),
    ENV_SYMMETRY_TOL: ("symmetry_tolerance", float),
    ENV_TIE_TOL: ("tie_tolerance", float),
    ENV_CONDITION_LIMIT: ("condition_limit", float),
}


def get_config(**overrides: Any) -> AnalysisConfig:
    """
    Build the effective configuration.

    Precedence: keyword overrides, then environment variables, then the
    dataclass defaults.

    Raises
    ------
    InvalidParameterError
        If an environment variable cannot be parsed or a value is out of range

    Examples
    --------
    >>> get_config(n_jobs=4).n_jobs
    4
    """
    values: Dict[str, Any] = {}
    for env_var, (field_name, parser) in _ENV_FIELDS.items():
        raw = os.getenv(env_var)
        if raw is None or raw.strip() == "":
            continue
        values[field_name] = _parse(raw.strip(), parser, env_var)

    values.update({k: v for k, v in overrides.items() if v is not None})
    config = replace(AnalysisConfig(), **values)
    _check(config)
    return config


def _parse(raw: str, parser: Callable, name: str) -> Any:
    try:
        return parser(raw)
    except ValueError as e:
        raise InvalidParameterError(
            f"Cannot parse environment variable {name}={raw!r}",
            parameter=name,
            value=raw,
            cause=e
        )


def _check(config: AnalysisConfig) -> None:
    if config.n_jobs == 0 or config.n_jobs < -1:
        raise InvalidParameterError(
            f"n_jobs must be -1 or a positive integer, got {config.n_jobs}",
            parameter="n_jobs",
            value=config.n_jobs
        )
    for name in ("symmetry_tolerance", "tie_tolerance", "condition_limit"):
        value = getattr(config, name)
        if not value > 0:
            raise InvalidParameterError(
                f"{name} must be positive, got {value}",
                parameter=name,
                value=value
            )
