"""
Tests for analysis configuration and environment overrides.
"""

import os
from unittest.mock import patch

import pytest

from psychNet.common.config import (
    AnalysisConfig,
    get_config,
    ENV_N_JOBS,
    ENV_SEED_STRATEGY,
    ENV_TIE_TOL,
    ENV_CONDITION_LIMIT,
)
from psychNet.common.exceptions import InvalidParameterError


class TestGetConfig:
    """Test default values, precedence and validation."""

    def setup_method(self):
        self.clean_env = {k: v for k, v in os.environ.items() if not k.startswith("PSYNET_")}

    def test_defaults(self):
        with patch.dict(os.environ, self.clean_env, clear=True):
            config = get_config()
        assert config == AnalysisConfig()
        assert config.n_jobs == 1
        assert config.seed_strategy == "greedy"
        assert config.tie_tolerance == 1e-9

    def test_environment_overrides(self):
        env = dict(self.clean_env, **{
            ENV_N_JOBS: "4",
            ENV_SEED_STRATEGY: "exact",
            ENV_TIE_TOL: "1e-6",
        })
        with patch.dict(os.environ, env, clear=True):
            config = get_config()
        assert config.n_jobs == 4
        assert config.seed_strategy == "exact"
        assert config.tie_tolerance == 1e-6

    def test_keyword_overrides_win(self):
        env = dict(self.clean_env, **{ENV_N_JOBS: "4"})
        with patch.dict(os.environ, env, clear=True):
            config = get_config(n_jobs=2)
        assert config.n_jobs == 2

    def test_config_is_frozen(self):
        config = AnalysisConfig()
        with pytest.raises(Exception):
            config.n_jobs = 8

    def test_unparseable_environment(self):
        env = dict(self.clean_env, **{ENV_N_JOBS: "many"})
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(InvalidParameterError, match="Cannot parse"):
                get_config()

    @pytest.mark.parametrize("n_jobs", [0, -2])
    def test_invalid_n_jobs(self, n_jobs):
        with patch.dict(os.environ, self.clean_env, clear=True):
            with pytest.raises(InvalidParameterError, match="n_jobs"):
                get_config(n_jobs=n_jobs)

    def test_non_positive_tolerance(self):
        env = dict(self.clean_env, **{ENV_CONDITION_LIMIT: "0"})
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(InvalidParameterError, match="condition_limit"):
                get_config()
