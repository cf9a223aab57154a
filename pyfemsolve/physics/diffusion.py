"""Steady 1-D diffusion with solution-dependent conductivity.

Governing equation::

    -d/dx ( k(u) du/dx ) = q,      k(u) = k0 (1 + beta u)

Discretised with 2-node linear elements.  The conductivity of each
element is evaluated at the element mid-point value, and the consistent
Newton tangent is assembled, so the nonlinear iteration converges
quadratically.  With ``beta = 0`` the problem is linear.
"""

from __future__ import annotations

from typing import Callable, Iterator

import numpy as np
from numpy.typing import ArrayLike

from pyfemsolve.problems.base import FieldProblem

_B = np.array([[1.0, -1.0], [-1.0, 1.0]])


class NonlinearDiffusion1D(FieldProblem):
    """Nonlinear diffusion (heat conduction, seepage) along a line.

    Args:
        name: Problem name.
        coordinates: Strictly increasing node coordinates, shape ``(n,)``.
        k0: Reference conductivity.
        beta: Linear sensitivity of the conductivity to *u*.
        source: Uniform source term *q*, a scalar or a callable of time
            (quasi-static load stepping).
        dofs: Global dof of each node.  Defaults to ``0 .. n-1``.
    """

    def __init__(
        self,
        name: str,
        coordinates: ArrayLike,
        k0: float = 1.0,
        beta: float = 0.0,
        source: float | Callable[[float], float] = 0.0,
        dofs: ArrayLike | None = None,
    ) -> None:
        x = np.asarray(coordinates, dtype=float).ravel()
        if x.size < 2:
            raise ValueError("At least two nodes are required.")
        if np.any(np.diff(x) <= 0.0):
            raise ValueError("coordinates must be strictly increasing.")
        if k0 <= 0.0:
            raise ValueError(f"k0 must be positive, got {k0}.")
        if dofs is None:
            dofs = np.arange(x.size)
        super().__init__(name, dofs)
        if self.n_dofs != x.size:
            raise ValueError(f"Expected {x.size} dofs, got {self.n_dofs}.")
        self.coordinates = x
        self.k0 = float(k0)
        self.beta = float(beta)
        self.source = source

    @property
    def n_elements(self) -> int:
        return self.coordinates.size - 1

    @property
    def is_linear(self) -> bool:
        return self.beta == 0.0

    def conductivity(self, u: ArrayLike) -> np.ndarray:
        """Evaluate ``k(u)``."""
        return self.k0 * (1.0 + self.beta * np.asarray(u, dtype=float))

    def source_at(self, time: float) -> float:
        if callable(self.source):
            return float(self.source(time))
        return float(self.source)

    def _elements(
        self,
        u: np.ndarray,
        time: float,
    ) -> Iterator[tuple[np.ndarray, np.ndarray, np.ndarray]]:
        """Yield ``(local_idx, K_tangent, f_local)`` per element."""
        x = self.coordinates
        q = self.source_at(time)
        for e in range(self.n_elements):
            idx = np.array([e, e + 1])
            h = x[e + 1] - x[e]
            u_e = u[idx]
            k = float(self.conductivity(u_e.mean()))
            Bu = _B @ u_e / h

            r_int = k * Bu
            # d r_int / d u_e, with dk/du_e = 0.5 * k0 * beta for both nodes
            K_t = k * _B / h + 0.5 * self.k0 * self.beta * np.outer(Bu, [1.0, 1.0])
            f_ext = 0.5 * q * h * np.ones(2)
            yield idx, K_t, f_ext - r_int

    def residual(self, u: np.ndarray | None = None, time: float = 0.0) -> np.ndarray:
        """Return the local out-of-balance load ``f_ext - r_int(u)``."""
        if u is None:
            u = self.u if self.u is not None else np.zeros(self.n_dofs)
        res = np.zeros(self.n_dofs)
        for idx, _, f_e in self._elements(np.asarray(u, dtype=float), time):
            res[idx] += f_e
        return res

    def assemble_elements(self, time: float) -> None:
        assembly = self.assembly
        for idx, K_t, f_e in self._elements(self.u, time):
            gdofs = self.dofs[idx]
            assembly.K.add(gdofs, gdofs, K_t)
            assembly.f.add_vector(gdofs, f_e)

    def __repr__(self) -> str:
        return (
            f"NonlinearDiffusion1D(name={self.name!r}, "
            f"n_elements={self.n_elements}, k0={self.k0}, beta={self.beta})"
        )
