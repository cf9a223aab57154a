"""Fixed-value (Dirichlet / essential) constraint problem.

Each constrained dof ``d`` contributes one constraint row::

    du_d - eps * la_d = value_d - u_d

with ``C1 = C2 = I`` on the constrained rows and ``D = -eps I``.  With
the default ``eps = 0`` the value is enforced exactly; ``eps > 0`` gives
a perturbed-Lagrangian (weak) enforcement.
"""

from __future__ import annotations

from typing import Callable

import numpy as np
from numpy.typing import ArrayLike

from pyfemsolve.problems.base import BoundaryKind, BoundaryProblem


class DirichletProblem(BoundaryProblem):
    """Prescribe values on a set of global dofs.

    Args:
        name: Problem name.
        dofs: Global dofs to constrain.  Must be unique.
        values: Prescribed value, a scalar, an array matching *dofs*, or
            a callable ``f(time)`` returning either.
        dimension: Degrees of freedom per node.
        stabilization: Perturbation ``eps >= 0`` placed on ``D``.
        overconstraint_handler: Handler used when these dofs are
            already constrained by an earlier boundary problem.

    Example::

        fixed = DirichletProblem("left end", dofs=[0], values=0.0)
        ramp = DirichletProblem("right end", dofs=[10], values=lambda t: 0.1 * t)
    """

    boundary_kind = BoundaryKind.DIRICHLET

    def __init__(
        self,
        name: str,
        dofs: ArrayLike,
        values: float | ArrayLike | Callable = 0.0,
        dimension: int = 1,
        stabilization: float = 0.0,
        overconstraint_handler: str | Callable | None = None,
    ) -> None:
        super().__init__(name, dofs, dimension, overconstraint_handler)
        if np.unique(self.dofs).size != self.dofs.size:
            raise ValueError(f"Dirichlet problem {name!r} has duplicate dofs.")
        if stabilization < 0.0:
            raise ValueError(f"stabilization must be >= 0, got {stabilization}.")
        self.values = values
        self.stabilization = float(stabilization)
        if not callable(values):
            self.prescribed(0.0)

    def prescribed(self, time: float) -> np.ndarray:
        """Evaluate the prescribed values at *time*."""
        value = self.values(time) if callable(self.values) else self.values
        arr = np.asarray(value, dtype=float)
        if arr.ndim == 0:
            return np.full(self.n_dofs, float(arr))
        arr = arr.ravel()
        if arr.size != self.n_dofs:
            raise ValueError(
                f"Expected {self.n_dofs} prescribed values, got {arr.size}."
            )
        return arr

    def assemble_elements(self, time: float) -> None:
        assembly = self.assembly
        assembly.C1.add(self.dofs, self.dofs, 1.0)
        assembly.C2.add(self.dofs, self.dofs, 1.0)
        if self.stabilization > 0.0:
            assembly.D.add(self.dofs, self.dofs, -self.stabilization)
        assembly.g.add_vector(self.dofs, self.prescribed(time) - self.u)

    def __repr__(self) -> str:
        return f"DirichletProblem(name={self.name!r}, dofs={self.dofs.tolist()})"
