"""Tie (mortar-type) coupling between pairs of dofs.

Each pair ``(slave, master)`` contributes the constraint::

    u_slave - u_master = gap

on the constraint row of the slave dof.  Typical use: gluing two field
problems that were meshed independently and share an interface node.
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np
from numpy.typing import ArrayLike

from pyfemsolve.problems.base import BoundaryKind, BoundaryProblem


class TieProblem(BoundaryProblem):
    """Couple slave dofs to master dofs.

    Args:
        name: Problem name.
        pairs: Sequence of ``(slave, master)`` global dof pairs.  Slave
            dofs must be unique and must differ from their master.
        gap: Prescribed offset, scalar or one value per pair.
        dimension: Degrees of freedom per node.
        overconstraint_handler: Handler for slave dofs that are already
            constrained by an earlier boundary problem.
    """

    boundary_kind = BoundaryKind.MORTAR

    def __init__(
        self,
        name: str,
        pairs: Sequence[tuple[int, int]],
        gap: float | ArrayLike = 0.0,
        dimension: int = 1,
        overconstraint_handler: str | Callable | None = None,
    ) -> None:
        pairs_arr = np.asarray(pairs, dtype=np.int64).reshape(-1, 2)
        slaves, masters = pairs_arr[:, 0], pairs_arr[:, 1]
        if np.unique(slaves).size != slaves.size:
            raise ValueError(f"Tie problem {name!r} has duplicate slave dofs.")
        if np.any(slaves == masters):
            raise ValueError(f"Tie problem {name!r} ties a dof to itself.")
        dofs = list(dict.fromkeys(np.concatenate([slaves, masters]).tolist()))
        super().__init__(
            name,
            dofs,
            dimension,
            overconstraint_handler,
            constraint_dofs=slaves,
        )
        self.slaves = slaves
        self.masters = masters
        self.gap = np.broadcast_to(np.asarray(gap, dtype=float), slaves.shape).copy()
        position = {int(d): i for i, d in enumerate(self.dofs)}
        self._slave_local = np.array([position[int(s)] for s in slaves], dtype=np.int64)
        self._master_local = np.array([position[int(m)] for m in masters], dtype=np.int64)

    def assemble_elements(self, time: float) -> None:
        assembly = self.assembly
        rows = np.repeat(self.slaves, 2)
        cols = np.column_stack([self.slaves, self.masters]).ravel()
        vals = np.tile([1.0, -1.0], self.slaves.size)
        assembly.C1.add(rows, cols, vals)
        assembly.C2.add(rows, cols, vals)
        opening = self.u[self._slave_local] - self.u[self._master_local]
        assembly.g.add_vector(self.slaves, self.gap - opening)

    def __repr__(self) -> str:
        return f"TieProblem(name={self.name!r}, n_pairs={self.slaves.size})"
