"""Tests for the solver configuration and the logging helpers."""

import logging

import pytest

from pyfemsolve.solvers.config import SolverConfig
from pyfemsolve.utils.log import (
    ENV_LOG_LEVEL,
    get_log_level_from_env,
    setup_logging,
)


class TestSolverConfig:
    def test_defaults(self):
        config = SolverConfig()
        assert config.is_linear_system is False
        assert config.min_iterations == 1
        assert config.max_iterations == 10
        assert config.convergence_tolerance == 5.0e-5
        assert config.error_if_no_convergence is True
        assert config.linear_system_solver == "direct"
        assert config.check_boundary_convergence is False
        assert config.overconstraint_handler == "strict"
        assert config.field_assembly_posthook is None
        assert config.boundary_assembly_posthook is None

    @pytest.mark.parametrize(
        "options",
        [
            {"min_iterations": 0},
            {"min_iterations": 5, "max_iterations": 4},
            {"convergence_tolerance": -1.0},
        ],
    )
    def test_validation(self, options):
        with pytest.raises(ValueError):
            SolverConfig(**options)

    def test_from_dict(self):
        config = SolverConfig.from_dict({"max_iterations": 25, "linear_system_solver": "iterative"})
        assert config.max_iterations == 25
        assert config.linear_system_solver == "iterative"

    def test_from_dict_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown solver options"):
            SolverConfig.from_dict({"max_iter": 25})


class TestLogging:
    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv(ENV_LOG_LEVEL, "debug")
        assert get_log_level_from_env() == logging.DEBUG

    def test_numeric_level(self, monkeypatch):
        monkeypatch.setenv(ENV_LOG_LEVEL, "30")
        assert get_log_level_from_env() == logging.WARNING

    def test_default_level(self, monkeypatch):
        monkeypatch.delenv(ENV_LOG_LEVEL, raising=False)
        assert get_log_level_from_env() == logging.INFO
        assert get_log_level_from_env("ERROR") == logging.ERROR

    def test_invalid_value_falls_back(self, monkeypatch):
        monkeypatch.setenv(ENV_LOG_LEVEL, "chatty")
        assert get_log_level_from_env() == logging.INFO

    def test_setup_logging(self):
        root = logging.getLogger()
        previous = root.level
        handler_levels = [(h, h.level) for h in root.handlers]
        try:
            setup_logging("WARNING")
            assert root.level == logging.WARNING
        finally:
            root.setLevel(previous)
            for handler, level in handler_levels:
                handler.setLevel(level)
