"""Boundary assembly: merge constraint problems and resolve overconstraints.

When a dof is constrained by more than one boundary problem (typically
at corner nodes and crosspoints) the conflict is handed to an
overconstraint handler, see :mod:`pyfemsolve.assembly.overconstraint`.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
from scipy import sparse

from pyfemsolve.assembly.overconstraint import (
    ConstraintBlocks,
    OverconstraintContext,
    get_overconstraint_handler,
)
from pyfemsolve.errors import OverconstraintError, StructuralError
from pyfemsolve.sparse.coo import get_nonzero_rows

logger = logging.getLogger(__name__)


def _check_resolved(
    problem: Any,
    dofs: np.ndarray,
    accumulated: ConstraintBlocks,
    incoming: ConstraintBlocks,
) -> None:
    """Every overconstrained dof must end up constrained by exactly one side."""
    on_acc = np.isin(dofs, accumulated.constrained_dofs())
    on_inc = np.isin(dofs, incoming.constrained_dofs())
    duplicated = dofs[on_acc & on_inc]
    lost = dofs[~on_acc & ~on_inc]
    if duplicated.size:
        raise OverconstraintError(
            f"Problem {problem.name!r}: dofs {duplicated.tolist()} are still "
            f"constrained twice after overconstraint handling.",
            problem=problem,
            dofs=duplicated,
        )
    if lost.size:
        raise OverconstraintError(
            f"Problem {problem.name!r}: overconstraint handling removed every "
            f"constraint on dofs {lost.tolist()}.",
            problem=problem,
            dofs=lost,
        )


def get_boundary_assembly(
    solver: Any,
) -> tuple[
    sparse.csr_matrix,
    sparse.csr_matrix,
    sparse.csr_matrix,
    sparse.csr_matrix,
    np.ndarray,
    np.ndarray,
]:
    """Return one combined boundary assembly for the boundary problems.

    Problems are merged in registration order.  Before adding a
    problem, the dofs it constrains are intersected with the dofs
    constrained so far; a non-empty intersection is passed to the
    problem's overconstraint handler (or the solver default).

    Args:
        solver: A :class:`~pyfemsolve.solvers.nonlinear.Solver` whose
            ``ndofs`` was set by the field assembly.

    Returns:
        Tuple ``(K, C1, C2, D, f, g)``; matrices are ``(ndofs, ndofs)``,
        vectors ``(ndofs,)``.

    Raises:
        StructuralError: If ``ndofs`` is not established or a local
            block does not fit in the global system.
        OverconstraintError: If a conflict cannot be reconciled.
    """
    ndofs = solver.ndofs
    if ndofs == 0:
        raise StructuralError(
            "Boundary assembly requires ndofs from the field assembly "
            "(no field problems assembled?)."
        )
    shape = (ndofs, ndofs)

    K = sparse.csr_matrix(shape)
    f = np.zeros(ndofs)
    acc = ConstraintBlocks(
        C1=sparse.csr_matrix(shape),
        C2=sparse.csr_matrix(shape),
        D=sparse.csr_matrix(shape),
        g=np.zeros(ndofs),
    )

    for problem in solver.get_boundary_problems():
        assembly = problem.assembly
        K_ = assembly.K.to_csr(shape)
        f_ = assembly.f.to_array(ndofs)
        new = ConstraintBlocks(
            C1=assembly.C1.to_csr(shape),
            C2=assembly.C2.to_csr(shape),
            D=assembly.D.to_csr(shape),
            g=assembly.g.to_array(ndofs),
        )

        # check for overconstraint situation and handle it if possible
        already_constrained = acc.constrained_dofs()
        new_constraints = new.constrained_dofs()
        overconstrained_dofs = np.intersect1d(already_constrained, new_constraints)
        if overconstrained_dofs.size:
            context = OverconstraintContext(
                problem=problem,
                nodes=problem.find_nodes_by_dofs(overconstrained_dofs),
                dofs=overconstrained_dofs,
            )
            choice = problem.overconstraint_handler or solver.config.overconstraint_handler
            handler = get_overconstraint_handler(choice)
            logger.info(
                "Problem %r overconstrains dofs %s (nodes %s), handler %r",
                problem.name, overconstrained_dofs.tolist(),
                context.nodes.tolist(), handler,
            )
            handler(context, acc, new)
            _check_resolved(problem, overconstrained_dofs, acc, new)

        K = K + K_
        f = f + f_
        acc.C1 = acc.C1 + new.C1
        acc.C2 = acc.C2 + new.C2
        acc.D = acc.D + new.D
        acc.g = acc.g + new.g

    K, C1, C2, D = (sparse.csr_matrix(A) for A in (K, acc.C1, acc.C2, acc.D))
    logger.debug(
        "Boundary assembly: %d constrained dofs",
        get_nonzero_rows(C2).size,
    )

    posthook = solver.config.boundary_assembly_posthook
    if posthook is not None:
        posthook(solver, K, C1, C2, D, f, acc.g)

    return K, C1, C2, D, f, acc.g
