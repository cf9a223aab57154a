"""Exception hierarchy.

Classes
-------
SolverError
    Base class for every error raised by the solver layer.
StructuralError
    The global system cannot be built (e.g. boundary merge before
    field merge, indices outside the global system).
OverconstraintError
    A degree of freedom is constrained by several boundary problems in
    a way the active overconstraint handler cannot reconcile.
LinearSolverError
    The linear system backend failed.
SingularSystemError
    The restricted saddle-point system is singular.
NonlinearConvergenceFailure
    The nonlinear iteration budget was exhausted.
"""

from __future__ import annotations

from typing import Any, Sequence


class SolverError(Exception):
    """Base class for solver errors."""


class StructuralError(SolverError):
    """Invalid structure of the global system."""


class OverconstraintError(SolverError):
    """Conflicting constraints on the same degrees of freedom.

    Attributes:
        problem: The boundary problem being merged when the conflict
            was detected.
        dofs: Sorted global dof indices involved in the conflict.
    """

    def __init__(
        self,
        message: str,
        problem: Any = None,
        dofs: Sequence[int] = (),
    ) -> None:
        super().__init__(message)
        self.problem = problem
        self.dofs = [int(d) for d in dofs]


class LinearSolverError(SolverError):
    """Failure inside a linear system backend."""


class SingularSystemError(LinearSolverError):
    """The restricted linear system is singular or ill-conditioned."""


class NonlinearConvergenceFailure(SolverError):
    """Nonlinear iteration did not converge within the iteration budget.

    Attributes:
        solver: The :class:`~pyfemsolve.solvers.nonlinear.Solver` at the
            point of failure.
    """

    def __init__(self, solver: Any) -> None:
        self.solver = solver
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        solver = self.solver
        max_iters = solver.config.max_iterations
        msg = (
            f"nonlinear iteration of {solver.name!r} did not converge "
            f"in {max_iters} iterations!"
        )
        if solver.norms:
            u_norm, la_norm = solver.norms[-1]
            msg += (
                f" (last iteration {solver.iteration}: "
                f"norm(u)={u_norm:.6e}, norm(la)={la_norm:.6e})"
            )
        return msg
