"""Problem contract shared by field and boundary problems.

Classes
-------
ProblemKind
    Field equation or boundary/constraint equation.
BoundaryKind
    Closed set of boundary problem sub-kinds.
FieldAssembly
    Local ``{K, f}`` of a field problem plus solution bookkeeping.
BoundaryAssembly
    Local ``{K, C1, C2, D, f, g}`` of a boundary problem.
Problem
    Abstract problem with the lifecycle hooks the solver drives.
FieldProblem
    Base for field equations.
BoundaryProblem
    Base for boundary/constraint equations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import numpy as np
from numpy.typing import ArrayLike

from pyfemsolve.sparse.coo import SparseCOO


class ProblemKind(str, Enum):
    FIELD = "field"
    BOUNDARY = "boundary"


class BoundaryKind(str, Enum):
    GENERIC = "generic"
    DIRICHLET = "dirichlet"
    CONTACT = "contact"
    MORTAR = "mortar"


@dataclass
class FieldAssembly:
    """Local assembly of a field problem.

    All matrices are in global dof indices.

    Attributes:
        K: Stiffness (tangent) matrix.
        f: Load (negative residual) vector.
        u: Current local solution.
        u_prev: Local solution before the last update.
        u_norm_change: ``norm(u - u_prev)`` of the last update.
        changed: Forces reassembly on the next :meth:`Problem.assemble`.
    """

    K: SparseCOO = field(default_factory=SparseCOO)
    f: SparseCOO = field(default_factory=SparseCOO)
    u: np.ndarray = field(default_factory=lambda: np.zeros(0))
    u_prev: np.ndarray = field(default_factory=lambda: np.zeros(0))
    u_norm_change: float = np.inf
    changed: bool = True

    def clear(self) -> None:
        self.K.clear()
        self.f.clear()


@dataclass
class BoundaryAssembly:
    """Local assembly of a boundary/constraint problem.

    The constraint equations read ``C2 u + D la = g`` and couple back
    into the field equations through ``C1^T la``.

    Attributes:
        K: Additional stiffness contribution.
        C1: Constraint-to-primal coupling.
        C2: Primal-to-constraint coupling.
        D: Constraint-to-constraint coupling.
        f: Additional load.
        g: Constraint right-hand side.
        u, u_prev: Primal values on the constrained dofs.
        la, la_prev: Multipliers on the constrained dofs.
        u_norm_change, la_norm_change: Change norms of the last update.
        changed: Forces reassembly.
    """

    K: SparseCOO = field(default_factory=SparseCOO)
    C1: SparseCOO = field(default_factory=SparseCOO)
    C2: SparseCOO = field(default_factory=SparseCOO)
    D: SparseCOO = field(default_factory=SparseCOO)
    f: SparseCOO = field(default_factory=SparseCOO)
    g: SparseCOO = field(default_factory=SparseCOO)
    u: np.ndarray = field(default_factory=lambda: np.zeros(0))
    u_prev: np.ndarray = field(default_factory=lambda: np.zeros(0))
    la: np.ndarray = field(default_factory=lambda: np.zeros(0))
    la_prev: np.ndarray = field(default_factory=lambda: np.zeros(0))
    u_norm_change: float = np.inf
    la_norm_change: float = np.inf
    changed: bool = True

    def clear(self) -> None:
        for block in (self.K, self.C1, self.C2, self.D, self.f, self.g):
            block.clear()


class Problem(ABC):
    """Abstract problem driven by the nonlinear solver.

    A problem owns its :attr:`assembly` and its element state.  The
    solver only touches them through the lifecycle hooks
    :meth:`initialize`, :meth:`assemble`, :meth:`update_assembly` and
    :meth:`update_elements`.

    Attributes:
        name: Descriptive name.
        kind: :class:`ProblemKind` of the problem.
        dimension: Degrees of freedom per node.
        dofs: Global dof indices owned by the problem; the order defines
            the local numbering of :attr:`u` and :attr:`la`.
        overconstraint_handler: Optional per-problem handler (name or
            callable) used when this problem's constraints overlap
            previously merged ones.
    """

    kind: ProblemKind
    boundary_kind: BoundaryKind | None = None

    def __init__(
        self,
        name: str,
        dofs: ArrayLike,
        dimension: int = 1,
        overconstraint_handler: str | Callable | None = None,
    ) -> None:
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}.")
        self.name = name
        self.dimension = int(dimension)
        self.dofs = np.asarray(dofs, dtype=np.int64).ravel()
        if self.dofs.size and self.dofs.min() < 0:
            raise ValueError("Global dof indices must be non-negative.")
        self.overconstraint_handler = overconstraint_handler
        self.u: np.ndarray | None = None
        self.la: np.ndarray | None = None

    # ------------------------------------------------------------------
    # Capability queries
    # ------------------------------------------------------------------

    @property
    def is_field_problem(self) -> bool:
        return self.kind is ProblemKind.FIELD

    @property
    def is_boundary_problem(self) -> bool:
        return self.kind is ProblemKind.BOUNDARY

    @property
    def is_dirichlet_problem(self) -> bool:
        return self.boundary_kind is BoundaryKind.DIRICHLET

    @property
    def is_mortar_problem(self) -> bool:
        return self.boundary_kind in (BoundaryKind.MORTAR, BoundaryKind.CONTACT)

    @property
    def n_dofs(self) -> int:
        return int(self.dofs.size)

    @property
    def multiplier_dofs(self) -> np.ndarray:
        """Global indices of the multipliers returned by :meth:`update_assembly`."""
        return self.dofs

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, time: float) -> None:
        """Prepare the problem for nonlinear iterations at *time*.

        Allocates zero element state on the first call; later calls keep
        the state so consecutive solves continue from the last iterate.
        """
        if self.u is None:
            self.u = np.zeros(self.n_dofs)
        if self.la is None:
            self.la = np.zeros(self.multiplier_dofs.size)
        if self.assembly.u.size != self.n_dofs:
            self.assembly.u = self.u.copy()
            self.assembly.u_prev = self.u.copy()

    def assemble(self, time: float) -> None:
        """Rebuild the local assembly if it is marked as changed."""
        if not self.assembly.changed:
            return
        self.assembly.clear()
        self.assemble_elements(time)
        self.assembly.changed = False

    @abstractmethod
    def assemble_elements(self, time: float) -> None:
        """Fill :attr:`assembly` from the current element state.

        Args:
            time: Current solver time.
        """

    @abstractmethod
    def update_assembly(
        self,
        u: np.ndarray,
        la: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Push a global solution into the assembly bookkeeping.

        Args:
            u: Global primal solution of the last linear solve.
            la: Global dual (multiplier) solution.

        Returns:
            ``(local_u, local_la)`` for :meth:`update_elements`.
        """

    def update_elements(self, u: np.ndarray, la: np.ndarray) -> None:
        """Store the local solution as the new element state."""
        self.u = np.array(u, dtype=float)
        self.la = np.array(la, dtype=float)

    def find_nodes_by_dofs(self, dofs: ArrayLike) -> np.ndarray:
        """Map global dof indices to sorted unique node ids."""
        d = np.asarray(dofs, dtype=np.int64)
        return np.unique(d // self.dimension)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, "
            f"n_dofs={self.n_dofs})"
        )


class FieldProblem(Problem):
    """Field equation contributing ``{K, f}``.

    The linear system is solved for the increment of the field, so
    :meth:`update_assembly` accumulates ``u[dofs]`` onto the current
    local solution.
    """

    kind = ProblemKind.FIELD

    def __init__(
        self,
        name: str,
        dofs: ArrayLike,
        dimension: int = 1,
    ) -> None:
        super().__init__(name, dofs, dimension)
        self.assembly = FieldAssembly()

    def update_assembly(
        self,
        u: np.ndarray,
        la: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        assembly = self.assembly
        du = np.asarray(u, dtype=float)[self.dofs]
        assembly.u_prev = assembly.u.copy()
        assembly.u = assembly.u_prev + du
        assembly.u_norm_change = float(np.linalg.norm(assembly.u - assembly.u_prev))
        return assembly.u.copy(), np.asarray(la, dtype=float)[self.multiplier_dofs]


class BoundaryProblem(Problem):
    """Boundary/constraint equation contributing ``{K, C1, C2, D, f, g}``.

    Primal increments on the constrained dofs are accumulated the same
    way field problems do it; multipliers are total values.
    """

    kind = ProblemKind.BOUNDARY
    boundary_kind = BoundaryKind.GENERIC

    def __init__(
        self,
        name: str,
        dofs: ArrayLike,
        dimension: int = 1,
        overconstraint_handler: str | Callable | None = None,
        constraint_dofs: ArrayLike | None = None,
    ) -> None:
        super().__init__(name, dofs, dimension, overconstraint_handler)
        if constraint_dofs is None:
            self.constraint_dofs = self.dofs
        else:
            self.constraint_dofs = np.asarray(constraint_dofs, dtype=np.int64).ravel()
        self.assembly = BoundaryAssembly()

    @property
    def multiplier_dofs(self) -> np.ndarray:
        return self.constraint_dofs

    def initialize(self, time: float) -> None:
        super().initialize(time)
        if self.assembly.la.size != self.multiplier_dofs.size:
            self.assembly.la = self.la.copy()
            self.assembly.la_prev = self.la.copy()

    def update_assembly(
        self,
        u: np.ndarray,
        la: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        assembly = self.assembly
        du = np.asarray(u, dtype=float)[self.dofs]
        assembly.u_prev = assembly.u.copy()
        assembly.u = assembly.u_prev + du
        assembly.u_norm_change = float(np.linalg.norm(du))

        assembly.la_prev = assembly.la.copy()
        assembly.la = np.asarray(la, dtype=float)[self.multiplier_dofs].copy()
        assembly.la_norm_change = float(np.linalg.norm(assembly.la - assembly.la_prev))
        return assembly.u.copy(), assembly.la.copy()


def as_problem_list(problems: Any) -> list[Problem]:
    """Validate and return *problems* as a list."""
    items = list(problems)
    for p in items:
        if not isinstance(p, Problem):
            raise TypeError(f"Expected a Problem, got {type(p).__name__}.")
    return items
