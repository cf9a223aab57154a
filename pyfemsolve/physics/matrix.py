"""Linear field problem defined directly by its matrices."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike
from scipy import sparse

from pyfemsolve.problems.base import FieldProblem


class MatrixProblem(FieldProblem):
    """Field problem ``K u = f`` with fixed, user-supplied matrices.

    The problem is assembled in residual form, i.e. the load is
    ``f - K u`` evaluated at the current state, so the linear solve
    yields the increment of *u*.

    Args:
        name: Problem name.
        K: Local stiffness, dense or sparse, shape ``(n, n)``.
        f: Local load, shape ``(n,)``.
        dofs: Global dof index of each local dof.  Defaults to
            ``0 .. n-1``.
        dimension: Degrees of freedom per node.
    """

    def __init__(
        self,
        name: str,
        K: ArrayLike | sparse.spmatrix,
        f: ArrayLike,
        dofs: ArrayLike | None = None,
        dimension: int = 1,
    ) -> None:
        K = sparse.csr_matrix(K, dtype=float)
        f = np.asarray(f, dtype=float).ravel()
        n = K.shape[0]
        if K.shape != (n, n):
            raise ValueError(f"K must be square, got shape {K.shape}.")
        if f.shape != (n,):
            raise ValueError(f"f shape {f.shape} does not match K dimension {n}.")
        if dofs is None:
            dofs = np.arange(n)
        super().__init__(name, dofs, dimension)
        if self.n_dofs != n:
            raise ValueError(f"Expected {n} dofs, got {self.n_dofs}.")
        self.K = K
        self.f = f

    def residual(self, u: np.ndarray | None = None) -> np.ndarray:
        """Return the local out-of-balance load ``f - K u``."""
        if u is None:
            u = self.u if self.u is not None else np.zeros(self.n_dofs)
        return self.f - self.K @ u

    def assemble_elements(self, time: float) -> None:
        Kc = self.K.tocoo()
        self.assembly.K.add(self.dofs[Kc.row], self.dofs[Kc.col], Kc.data)
        self.assembly.f.add_vector(self.dofs, self.residual())
