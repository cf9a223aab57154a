"""Linear system solution of the global saddle-point system.

The field and boundary assemblies are combined into::

    [ K + Kb   C1^T ] [ u  ]   [ f + fb ]
    [ C2       D    ] [ la ] = [ g      ]

Rows (and columns) without any nonzero entry, i.e. dofs not referenced
by any problem and multipliers of unconstrained dofs, are removed
before the backend is called and left at zero in the solution.

Backends are selected by name through :data:`LINEAR_SOLVERS`.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Union

import numpy as np
from scipy import sparse
from scipy.sparse import linalg as spla

from pyfemsolve.assembly.boundary import get_boundary_assembly
from pyfemsolve.assembly.field import get_field_assembly
from pyfemsolve.errors import LinearSolverError, SingularSystemError
from pyfemsolve.sparse.coo import get_nonzero_rows

logger = logging.getLogger(__name__)


class LinearSolver(ABC):
    """Abstract linear system backend."""

    name: str

    @abstractmethod
    def solve(
        self,
        A: sparse.spmatrix,
        b: np.ndarray,
        nz: np.ndarray,
    ) -> np.ndarray:
        """Solve ``A[nz, nz] x[nz] = b[nz]``.

        Args:
            A: Full system matrix.
            b: Full right-hand side.
            nz: Indices of the rows/columns taking part in the solve.

        Returns:
            Full-length solution, zero outside *nz*.
        """

    @staticmethod
    def restrict(
        A: sparse.spmatrix,
        b: np.ndarray,
        nz: np.ndarray,
    ) -> tuple[sparse.csc_matrix, np.ndarray]:
        A = sparse.csr_matrix(A)
        return A[nz, :][:, nz].tocsc(), np.asarray(b, dtype=float)[nz]

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DirectLinearSolver(LinearSolver):
    """Sparse LU factorisation (SuperLU)."""

    name = "direct"

    def solve(self, A, b, nz):
        x = np.zeros(len(b))
        if nz.size == 0:
            return x
        A_nz, b_nz = self.restrict(A, b, nz)
        try:
            lu = spla.splu(A_nz)
        except RuntimeError as exc:
            raise SingularSystemError(
                f"LU factorisation of the {A_nz.shape[0]}x{A_nz.shape[1]} "
                f"system failed: {exc}"
            ) from exc
        x_nz = lu.solve(b_nz)
        if not np.all(np.isfinite(x_nz)):
            raise SingularSystemError("LU solve produced non-finite values.")
        x[nz] = x_nz
        return x


class IterativeLinearSolver(LinearSolver):
    """GMRES with an incomplete-LU preconditioner.

    Args:
        rtol: Relative residual tolerance.
        maxiter: Maximum number of restart cycles.
        restart: Krylov subspace size between restarts.
        drop_tol: Drop tolerance of the incomplete LU.
        fill_factor: Fill factor of the incomplete LU.
    """

    name = "iterative"

    def __init__(
        self,
        rtol: float = 1e-10,
        maxiter: int | None = None,
        restart: int | None = None,
        drop_tol: float = 1e-5,
        fill_factor: float = 10.0,
    ) -> None:
        self.rtol = rtol
        self.maxiter = maxiter
        self.restart = restart
        self.drop_tol = drop_tol
        self.fill_factor = fill_factor

    def _preconditioner(self, A_nz: sparse.csc_matrix) -> spla.LinearOperator | None:
        try:
            ilu = spla.spilu(A_nz, drop_tol=self.drop_tol, fill_factor=self.fill_factor)
        except RuntimeError as exc:
            logger.warning("ILU preconditioner failed (%s); running plain GMRES", exc)
            return None
        return spla.LinearOperator(A_nz.shape, ilu.solve)

    def solve(self, A, b, nz):
        x = np.zeros(len(b))
        if nz.size == 0:
            return x
        A_nz, b_nz = self.restrict(A, b, nz)
        M = self._preconditioner(A_nz)
        x_nz, info = spla.gmres(
            A_nz,
            b_nz,
            rtol=self.rtol,
            atol=0.0,
            restart=self.restart,
            maxiter=self.maxiter,
            M=M,
        )
        if info < 0:
            raise SingularSystemError(f"GMRES breakdown (info={info}).")
        if info > 0:
            res = np.linalg.norm(b_nz - A_nz @ x_nz)
            raise LinearSolverError(
                f"GMRES did not converge in {info} iterations "
                f"(residual {res:.3e})."
            )
        x[nz] = x_nz
        return x


LINEAR_SOLVERS: dict[str, Callable[[], LinearSolver]] = {
    "direct": DirectLinearSolver,
    "DirectLinearSolver": DirectLinearSolver,
    "iterative": IterativeLinearSolver,
    "IterativeLinearSolver": IterativeLinearSolver,
}


def register_linear_solver(name: str, factory: Callable[[], LinearSolver]) -> None:
    """Make a linear solver backend selectable by *name*."""
    LINEAR_SOLVERS[name] = factory


def get_linear_solver(key: Union[str, LinearSolver]) -> LinearSolver:
    """Resolve a backend key (or pass through a backend instance).

    Raises:
        ValueError: For an unknown key.
    """
    if isinstance(key, LinearSolver):
        return key
    try:
        factory = LINEAR_SOLVERS[key]
    except KeyError:
        raise ValueError(
            f"Unknown linear system solver {key!r} "
            f"(expected one of {sorted(LINEAR_SOLVERS)})."
        ) from None
    return factory()


def assemble_global_system(
    solver: Any,
) -> tuple[sparse.csr_matrix, np.ndarray]:
    """Build the combined saddle-point matrix and right-hand side."""
    K, f = get_field_assembly(solver)
    Kb, C1, C2, D, fb, g = get_boundary_assembly(solver)
    A = sparse.bmat([[K + Kb, C1.T], [C2, D]], format="csr")
    b = np.concatenate([f + fb, g])
    return A, b


def solve_linear_system(solver: Any) -> tuple[np.ndarray, np.ndarray]:
    """Assemble and solve the linearised system of *solver*.

    Args:
        solver: A :class:`~pyfemsolve.solvers.nonlinear.Solver` whose
            problems are assembled for the current iteration.

    Returns:
        Tuple ``(u, la)`` of full-length primal and dual solutions.
    """
    backend = get_linear_solver(solver.config.linear_system_solver)
    logger.info(
        "solving linear system of %d problems with %s",
        len(solver.problems), backend.name,
    )
    t0 = time.perf_counter()

    A, b = assemble_global_system(solver)
    nz = get_nonzero_rows(A)
    x = backend.solve(A, b, nz)

    ndofs = solver.ndofs
    u = x[:ndofs]
    la = x[ndofs:]
    logger.info(
        "%s: solved %d equations in %.4f seconds. norm = %.6e",
        backend.name, nz.size, time.perf_counter() - t0, np.linalg.norm(u),
    )
    return u, la
