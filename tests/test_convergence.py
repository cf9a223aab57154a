"""Tests for the convergence check."""

import logging

import numpy as np

from pyfemsolve.boundaries.dirichlet import DirichletProblem
from pyfemsolve.physics.matrix import MatrixProblem
from pyfemsolve.solvers.convergence import (
    boundary_problem_converged,
    field_problem_converged,
    has_converged,
)
from pyfemsolve.solvers.nonlinear import Solver


def _field(u, change):
    p = MatrixProblem("field", np.eye(2), np.zeros(2))
    p.assembly.u = np.asarray(u, dtype=float)
    p.assembly.u_norm_change = change
    return p


def _boundary(la, change):
    p = DirichletProblem("bc", dofs=[0], values=0.0)
    p.assembly.la = np.asarray(la, dtype=float)
    p.assembly.la_norm_change = change
    return p


class TestFieldConvergence:
    def test_below_tolerance(self):
        assert field_problem_converged(_field([1.0, 1.0], 1e-6), tol=5e-5)

    def test_above_tolerance(self):
        assert not field_problem_converged(_field([1.0, 1.0], 1e-3), tol=5e-5)

    def test_zero_solution(self):
        assert field_problem_converged(_field([0.0, 0.0], np.inf), tol=5e-5)


class TestBoundaryConvergence:
    def test_relative_change(self):
        assert not boundary_problem_converged(_boundary([2.0], 1.0), tol=1e-3)
        assert boundary_problem_converged(_boundary([2.0], 1e-6), tol=1e-3)

    def test_zero_multipliers(self):
        assert boundary_problem_converged(_boundary([0.0], 0.0), tol=1e-3)
        assert not boundary_problem_converged(_boundary([0.0], 1e-3), tol=1e-3)


class TestHasConverged:
    def test_all_field_problems_required(self):
        solver = Solver(problems=[_field([1.0, 1.0], 1e-8), _field([1.0, 1.0], 1.0)])
        assert not has_converged(solver)

    def test_boundary_check_is_opt_in(self):
        solver = Solver(problems=[_field([1.0, 1.0], 0.0), _boundary([2.0], 1.0)])
        assert has_converged(solver)
        assert not has_converged(solver, check_boundary_convergence=True)

    def test_boundary_check_from_config(self):
        solver = Solver(
            problems=[_field([1.0, 1.0], 0.0), _boundary([2.0], 1.0)],
            check_boundary_convergence=True,
        )
        assert not has_converged(solver)

    def test_linear_system_flag(self):
        solver = Solver(problems=[_field([1.0, 1.0], 1.0)], is_linear_system=True)
        assert has_converged(solver)


class TestConvergenceLog:
    def test_field_problem_report(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="pyfemsolve.solvers.convergence"):
            field_problem_converged(_field([3.0, 4.0], 1e-6), tol=5e-5)
        (record,) = caplog.records
        message = record.getMessage()
        assert record.levelno == logging.DEBUG
        assert "'field'" in message
        assert "norm=5.000000e+00" in message
        assert "norm change=1.000000e-06" in message
        assert "converged=True" in message

    def test_boundary_problem_report(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="pyfemsolve.solvers.convergence"):
            boundary_problem_converged(_boundary([2.0], 1.0), tol=1e-3)
        (record,) = caplog.records
        message = record.getMessage()
        assert "multiplier norm=2.000000e+00" in message
        assert "converged=False" in message

    def test_has_converged_reports_each_field_problem(self, caplog):
        solver = Solver(problems=[_field([1.0, 1.0], 1e-8), _field([1.0, 1.0], 1.0)])
        with caplog.at_level(logging.DEBUG, logger="pyfemsolve.solvers.convergence"):
            has_converged(solver)
        verdicts = [r.getMessage().rsplit("=", 1)[-1] for r in caplog.records]
        assert verdicts == ["True", "False"]
