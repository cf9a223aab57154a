"""Solver configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping


@dataclass
class SolverConfig:
    """Tunable options of the nonlinear solver.

    Args:
        is_linear_system: Assume one-step convergence.
        min_iterations: Minimum number of nonlinear iterations, even if
            the convergence criteria are met earlier.
        max_iterations: Maximum number of nonlinear iterations.
        convergence_tolerance: Tolerance on the solution norm change.
        error_if_no_convergence: Raise
            :class:`~pyfemsolve.errors.NonlinearConvergenceFailure` when
            the iteration budget is exhausted.
        linear_system_solver: Key of the linear solver backend.
        check_boundary_convergence: Also require multiplier convergence
            of boundary problems.
        overconstraint_handler: Default overconstraint policy, a name or
            a callable.
        field_assembly_posthook: Optional ``f(solver, K, f)`` called
            after the field assembly.
        boundary_assembly_posthook: Optional
            ``f(solver, K, C1, C2, D, f, g)`` called after the boundary
            assembly.

    Example::

        config = SolverConfig(max_iterations=20, convergence_tolerance=1e-8)
        solver = Solver("bar", config=config)
    """

    is_linear_system: bool = False
    min_iterations: int = 1
    max_iterations: int = 10
    convergence_tolerance: float = 5.0e-5
    error_if_no_convergence: bool = True
    linear_system_solver: str = "direct"
    check_boundary_convergence: bool = False
    overconstraint_handler: str | Callable[..., None] = "strict"
    field_assembly_posthook: Callable[..., None] | None = None
    boundary_assembly_posthook: Callable[..., None] | None = None

    def __post_init__(self) -> None:
        if self.min_iterations < 1:
            raise ValueError(f"min_iterations must be >= 1, got {self.min_iterations}.")
        if self.max_iterations < self.min_iterations:
            raise ValueError(
                f"max_iterations ({self.max_iterations}) must be >= "
                f"min_iterations ({self.min_iterations})."
            )
        if self.convergence_tolerance < 0.0:
            raise ValueError(
                f"convergence_tolerance must be >= 0, got {self.convergence_tolerance}."
            )

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> "SolverConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(options) - known
        if unknown:
            raise ValueError(f"Unknown solver options: {sorted(unknown)}")
        return cls(**dict(options))
