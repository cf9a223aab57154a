"""Overconstraint handlers.

When a boundary problem constrains a dof that an earlier boundary
problem already constrains, the boundary merger hands both sides of
the conflict to a handler.  A handler receives an
:class:`OverconstraintContext` and two :class:`ConstraintBlocks`
(accumulated and incoming) and mutates the blocks in place so that each
affected dof keeps exactly one constraint row.

Built-in policies
-----------------
strict
    Drop redundant incoming rows; raise on contradictions.
first
    First writer wins: always drop the incoming rows.
last
    Last writer wins: always drop the accumulated rows.
average
    Merge proportional rows by averaging their right-hand sides.

Constraint rows are compared after scaling each row by its coefficient
on the constrained dof itself (or by its largest entry when that
coefficient is zero).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Union

import numpy as np
from numpy.typing import ArrayLike
from scipy import sparse

from pyfemsolve.errors import OverconstraintError
from pyfemsolve.sparse.coo import get_nonzero_rows

logger = logging.getLogger(__name__)

DEFAULT_RTOL = 1e-10


@dataclass
class ConstraintBlocks:
    """Mutable view of the constraint part ``{C1, C2, D, g}`` of a system."""

    C1: sparse.csr_matrix
    C2: sparse.csr_matrix
    D: sparse.csr_matrix
    g: np.ndarray

    def constrained_dofs(self) -> np.ndarray:
        """Dofs with a nonzero constraint row in ``C2``."""
        return get_nonzero_rows(self.C2)

    def drop_rows(self, dofs: ArrayLike) -> None:
        """Remove the constraints on *dofs*.

        Zeroes the rows of ``C1``, ``C2``, ``D`` and ``g`` and the
        columns of ``D`` belonging to the dropped multipliers.
        """
        dofs = np.asarray(dofs, dtype=np.int64)
        mask = np.ones(self.C2.shape[0])
        mask[dofs] = 0.0
        M = sparse.diags(mask)
        self.C1 = _pruned(M @ self.C1)
        self.C2 = _pruned(M @ self.C2)
        self.D = _pruned(M @ self.D @ M)
        self.g = self.g.copy()
        self.g[dofs] = 0.0


@dataclass(frozen=True)
class OverconstraintContext:
    """What the handler needs to know about a conflict.

    Attributes:
        problem: The boundary problem being merged.
        nodes: Node ids owning the overconstrained dofs.
        dofs: Sorted overconstrained global dofs.
    """

    problem: Any
    nodes: np.ndarray
    dofs: np.ndarray


@dataclass(frozen=True)
class ConstraintComparison:
    """Outcome of comparing two constraint rows on the same dof."""

    dof: int
    same_row: bool
    same_rhs: bool
    g_accumulated: float
    g_incoming: float

    @property
    def redundant(self) -> bool:
        return self.same_row and self.same_rhs


def _pruned(A: Any) -> sparse.csr_matrix:
    A = sparse.csr_matrix(A)
    A.eliminate_zeros()
    return A


def _row_scale(row: sparse.csr_matrix, dof: int) -> float:
    diag = float(row[0, dof])
    if diag != 0.0:
        return diag
    if row.nnz == 0:
        return 1.0
    return float(row.data[np.argmax(np.abs(row.data))])


def _normalized(blocks: ConstraintBlocks, dof: int) -> tuple[Any, Any, float]:
    c2 = _pruned(blocks.C2.getrow(dof))
    d = _pruned(blocks.D.getrow(dof))
    scale = _row_scale(c2, dof)
    return c2 / scale, d / scale, float(blocks.g[dof]) / scale


def _max_abs(A: Any) -> float:
    A = sparse.csr_matrix(A)
    if A.nnz == 0:
        return 0.0
    return float(np.abs(A.data).max())


def compare_constraints(
    accumulated: ConstraintBlocks,
    incoming: ConstraintBlocks,
    dof: int,
    rtol: float = DEFAULT_RTOL,
) -> ConstraintComparison:
    """Compare the normalised constraint rows of both sides on *dof*."""
    c2_a, d_a, g_a = _normalized(accumulated, dof)
    c2_i, d_i, g_i = _normalized(incoming, dof)
    ref = max(1.0, _max_abs(c2_a), _max_abs(d_a))
    same_row = (
        _max_abs(c2_a - c2_i) <= rtol * ref
        and _max_abs(d_a - d_i) <= rtol * ref
    )
    same_rhs = abs(g_a - g_i) <= rtol * max(1.0, abs(g_a), abs(g_i))
    return ConstraintComparison(
        dof=int(dof),
        same_row=same_row,
        same_rhs=same_rhs,
        g_accumulated=g_a,
        g_incoming=g_i,
    )


class OverconstraintHandler(ABC):
    """Abstract overconstraint policy.

    Any plain callable with the signature of :meth:`resolve` can be
    used instead of a subclass.
    """

    name: str

    @abstractmethod
    def resolve(
        self,
        context: OverconstraintContext,
        accumulated: ConstraintBlocks,
        incoming: ConstraintBlocks,
    ) -> None:
        """Reconcile the constraints on ``context.dofs`` in place.

        Raises:
            OverconstraintError: If the conflict cannot be reconciled.
        """

    def __call__(
        self,
        context: OverconstraintContext,
        accumulated: ConstraintBlocks,
        incoming: ConstraintBlocks,
    ) -> None:
        self.resolve(context, accumulated, incoming)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class StrictHandler(OverconstraintHandler):
    """Accept only redundant constraints.

    Args:
        rtol: Relative tolerance of the row comparison.
    """

    name = "strict"

    def __init__(self, rtol: float = DEFAULT_RTOL) -> None:
        self.rtol = rtol

    def resolve(self, context, accumulated, incoming) -> None:
        for dof in context.dofs:
            cmp = compare_constraints(accumulated, incoming, dof, self.rtol)
            if not cmp.same_row:
                raise OverconstraintError(
                    f"Problem {context.problem.name!r}: dof {cmp.dof} is already "
                    f"constrained by an incompatible constraint equation.",
                    problem=context.problem,
                    dofs=context.dofs,
                )
            if not cmp.same_rhs:
                raise OverconstraintError(
                    f"Problem {context.problem.name!r}: dof {cmp.dof} is already "
                    f"constrained to {cmp.g_accumulated:g}, cannot also "
                    f"constrain it to {cmp.g_incoming:g}.",
                    problem=context.problem,
                    dofs=context.dofs,
                )
        logger.debug(
            "Problem %r: dropped %d redundant constraints on dofs %s",
            context.problem.name, len(context.dofs), context.dofs.tolist(),
        )
        incoming.drop_rows(context.dofs)


class FirstWriterWins(OverconstraintHandler):
    """Keep the earlier constraint and drop the incoming one."""

    name = "first"

    def __init__(self, rtol: float = DEFAULT_RTOL) -> None:
        self.rtol = rtol

    def resolve(self, context, accumulated, incoming) -> None:
        for dof in context.dofs:
            cmp = compare_constraints(accumulated, incoming, dof, self.rtol)
            if not cmp.redundant:
                logger.warning(
                    "Problem %r: constraint on dof %d ignored, keeping the "
                    "earlier constraint (g=%g instead of %g)",
                    context.problem.name, cmp.dof,
                    cmp.g_accumulated, cmp.g_incoming,
                )
        incoming.drop_rows(context.dofs)


class LastWriterWins(OverconstraintHandler):
    """Replace the earlier constraint by the incoming one."""

    name = "last"

    def __init__(self, rtol: float = DEFAULT_RTOL) -> None:
        self.rtol = rtol

    def resolve(self, context, accumulated, incoming) -> None:
        for dof in context.dofs:
            cmp = compare_constraints(accumulated, incoming, dof, self.rtol)
            if not cmp.redundant:
                logger.warning(
                    "Problem %r: constraint on dof %d replaces the earlier "
                    "constraint (g=%g instead of %g)",
                    context.problem.name, cmp.dof,
                    cmp.g_incoming, cmp.g_accumulated,
                )
        accumulated.drop_rows(context.dofs)


class AveragingHandler(OverconstraintHandler):
    """Merge proportional constraints by averaging their right-hand sides.

    The accumulated row is kept with ``g`` replaced by the mean of both
    normalised right-hand sides.  With more than two problems on the
    same dof the average is taken pairwise in registration order.
    """

    name = "average"

    def __init__(self, rtol: float = DEFAULT_RTOL) -> None:
        self.rtol = rtol

    def resolve(self, context, accumulated, incoming) -> None:
        g = accumulated.g.copy()
        for dof in context.dofs:
            cmp = compare_constraints(accumulated, incoming, dof, self.rtol)
            if not cmp.same_row:
                raise OverconstraintError(
                    f"Problem {context.problem.name!r}: cannot average "
                    f"non-proportional constraints on dof {cmp.dof}.",
                    problem=context.problem,
                    dofs=context.dofs,
                )
            scale = _row_scale(_pruned(accumulated.C2.getrow(dof)), dof)
            g[dof] = 0.5 * (cmp.g_accumulated + cmp.g_incoming) * scale
        accumulated.g = g
        incoming.drop_rows(context.dofs)


HandlerLike = Union[str, OverconstraintHandler, Callable[..., None]]

OVERCONSTRAINT_HANDLERS: dict[str, Callable[[], Any]] = {
    "strict": StrictHandler,
    "first": FirstWriterWins,
    "last": LastWriterWins,
    "average": AveragingHandler,
}


def register_overconstraint_handler(name: str, factory: Callable[[], Any]) -> None:
    """Make a handler selectable by *name*."""
    OVERCONSTRAINT_HANDLERS[name] = factory


def get_overconstraint_handler(handler: HandlerLike) -> Callable[..., None]:
    """Resolve a handler name or callable.

    Raises:
        ValueError: For an unknown handler name.
    """
    if isinstance(handler, str):
        try:
            factory = OVERCONSTRAINT_HANDLERS[handler]
        except KeyError:
            raise ValueError(
                f"Unknown overconstraint handler {handler!r} "
                f"(expected one of {sorted(OVERCONSTRAINT_HANDLERS)})."
            ) from None
        return factory()
    if callable(handler):
        return handler
    raise TypeError(f"Invalid overconstraint handler: {handler!r}")
