"""Field assembly: sum all field problems into one global ``{K, f}``."""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
from scipy import sparse

from pyfemsolve.sparse.coo import SparseCOO

logger = logging.getLogger(__name__)


def get_field_assembly(solver: Any) -> tuple[sparse.csr_matrix, np.ndarray]:
    """Return one combined field assembly for the solver's field problems.

    Local contributions are summed at matching global dofs, so several
    field problems may share nodes (additive overlap only).  Sets
    ``solver.ndofs`` to cover the merged stiffness matrix and every dof
    owned by a field problem, so a dof without stiffness is kept in the
    system (and later left at zero by the linear solve).

    Args:
        solver: A :class:`~pyfemsolve.solvers.nonlinear.Solver`.

    Returns:
        Tuple ``(K, f)`` with ``K`` of shape ``(ndofs, ndofs)`` and
        ``f`` of shape ``(ndofs,)``.

    Raises:
        StructuralError: If a load entry lies outside the system.
    """
    problems = solver.get_field_problems()
    K_coo = SparseCOO()
    f_coo = SparseCOO()
    for problem in problems:
        K_coo.extend(problem.assembly.K)
        f_coo.extend(problem.assembly.f)

    ndofs = K_coo.max_index + 1
    for problem in problems:
        if problem.n_dofs:
            ndofs = max(ndofs, int(problem.dofs.max()) + 1)
    K = K_coo.to_csr((ndofs, ndofs))
    solver.ndofs = ndofs
    f = f_coo.to_array(solver.ndofs)
    logger.debug(
        "Field assembly: %d problems, ndofs=%d, nnz=%d",
        len(problems), solver.ndofs, K.nnz,
    )

    posthook = solver.config.field_assembly_posthook
    if posthook is not None:
        posthook(solver, K, f)

    return K, f
