"""Nonlinear iteration controller.

:class:`Solver` owns the problems and the global iteration state and
runs the fixed-point loop::

    initialize problems
    for iteration in 1 .. max_iterations:
        reassemble every problem
        merge field + boundary assemblies, solve the linear system
        push (u, la) back into the problems
        stop if converged and iteration >= min_iterations

Example::

    solver = Solver("bar", max_iterations=20)
    solver.add(NonlinearDiffusion1D("bar", x, k0=1.0, beta=0.5, source=1.0))
    solver.add(DirichletProblem("ends", dofs=[0, 10], values=0.0))
    solver.solve()
"""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum
from typing import Any, Iterable

import numpy as np

from pyfemsolve.errors import NonlinearConvergenceFailure
from pyfemsolve.problems.base import Problem, as_problem_list
from pyfemsolve.solvers.config import SolverConfig
from pyfemsolve.solvers.convergence import has_converged
from pyfemsolve.solvers.linear import solve_linear_system

logger = logging.getLogger(__name__)


class SolverState(str, Enum):
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class Solver:
    """Nonlinear solver for a set of field and boundary problems.

    Args:
        name: Descriptive name.
        time: Current time passed to the problem hooks.
        config: Solver options; defaults to :class:`SolverConfig()`.
        problems: Problems to register immediately.
        **options: Overrides of individual :class:`SolverConfig` fields.

    Attributes:
        iteration: Iteration counter of the current/last solve.
        norms: ``(norm(u), norm(la))`` of every completed iteration of
            the current/last solve.
        ndofs: Global system dimension, set by the field assembly.
        u: Last primal solution (global).
        la: Last dual solution (global, length ``ndofs``).  Multipliers of
            unconstrained dofs are zero rather than absent.
        state: :class:`SolverState` of the current/last solve.
    """

    def __init__(
        self,
        name: str = "default solver",
        time: float = 0.0,
        config: SolverConfig | None = None,
        problems: Iterable[Problem] = (),
        **options: Any,
    ) -> None:
        self.name = name
        self.time = float(time)
        base = config if config is not None else SolverConfig()
        self.config = dataclasses.replace(base, **options) if options else base
        self.problems: list[Problem] = []
        self.iteration = 0
        self.norms: list[tuple[float, float]] = []
        self.ndofs = 0
        self.u = np.zeros(0)
        self.la = np.zeros(0)
        self.state = SolverState.INITIALIZING
        for problem in as_problem_list(problems):
            self.add(problem)

    # ------------------------------------------------------------------
    # Problem registry
    # ------------------------------------------------------------------

    def add(self, problem: Problem) -> None:
        """Register a problem.  Problems are merged in registration order."""
        if not isinstance(problem, Problem):
            raise TypeError(f"Expected a Problem, got {type(problem).__name__}.")
        if self.state is SolverState.ITERATING:
            raise RuntimeError("Cannot add problems while the solver is iterating.")
        self.problems.append(problem)

    def get_field_problems(self) -> list[Problem]:
        return [p for p in self.problems if p.is_field_problem]

    def get_boundary_problems(self) -> list[Problem]:
        return [p for p in self.problems if p.is_boundary_problem]

    def get_dirichlet_problems(self) -> list[Problem]:
        return [p for p in self.problems if p.is_dirichlet_problem]

    def get_mortar_problems(self) -> list[Problem]:
        return [p for p in self.problems if p.is_mortar_problem]

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def solve(self) -> bool:
        """Run the nonlinear iteration.

        Returns:
            True if converged; False if the iteration budget was
            exhausted and ``error_if_no_convergence`` is off.

        Raises:
            NonlinearConvergenceFailure: If the budget was exhausted and
                ``error_if_no_convergence`` is on.
        """
        config = self.config
        self.state = SolverState.INITIALIZING
        self.iteration = 0
        self.norms = []

        try:
            # 1. initialize each problem so that we can start nonlinear iterations
            for problem in self.problems:
                problem.initialize(self.time)

            self.state = SolverState.ITERATING
            for iteration in range(1, config.max_iterations + 1):
                self.iteration = iteration
                if self._iterate():
                    self.state = SolverState.CONVERGED
                    return True
        except Exception:
            self.state = SolverState.FAILED
            raise

        # 3. did not converge
        self.state = SolverState.EXHAUSTED
        if config.error_if_no_convergence:
            self.state = SolverState.FAILED
            raise NonlinearConvergenceFailure(self)
        logger.warning(
            "%s: no convergence in %d iterations, keeping the last iterate",
            self.name, config.max_iterations,
        )
        return False

    __call__ = solve

    def _iterate(self) -> bool:
        """Run one nonlinear iteration; return True when done."""
        logger.info("Starting nonlinear iteration #%d", self.iteration)

        # 2.1 update linearized assemblies
        for problem in self.problems:
            problem.assembly.changed = True  # force reassembly
            problem.assemble(self.time)

        # 2.2 solve linearized system
        u, la = solve_linear_system(self)
        self.u, self.la = u, la
        self.norms.append((float(np.linalg.norm(u)), float(np.linalg.norm(la))))

        # 2.3 update solution back to elements
        for problem in self.problems:
            u_new, la_new = problem.update_assembly(u, la)
            problem.update_elements(u_new, la_new)

        # 2.4 check convergence
        if not has_converged(self):
            return False
        logger.info("Converged in %d iterations.", self.iteration)
        if self.iteration < self.config.min_iterations:
            logger.info(
                "Converged but continuing (min_iterations=%d)",
                self.config.min_iterations,
            )
            return False
        return True

    def solve_steps(self, stepper: Iterable[tuple[float, float]]) -> list[bool]:
        """Solve at a fixed sequence of times.

        Each ``(t, dt)`` of *stepper* (e.g. a
        :class:`~pyfemsolve.time.stepper.Stepper`) sets :attr:`time` and
        runs :meth:`solve`, continuing from the previous solution.

        Returns:
            Convergence verdict of every step.
        """
        results = []
        for t, dt in stepper:
            self.time = float(t)
            logger.info("%s: time %g (dt=%g)", self.name, t, dt)
            results.append(self.solve())
        return results

    def __repr__(self) -> str:
        return (
            f"Solver(name={self.name!r}, n_problems={len(self.problems)}, "
            f"state={self.state.value})"
        )
