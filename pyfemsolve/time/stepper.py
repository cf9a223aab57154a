"""Load and time step sequences for repeated nonlinear solves.

Quasi-static problems are usually loaded incrementally: each step moves
the solver time (the load parameter seen by callable sources and
prescribed values) a bit further and solves from the previous
equilibrium.  :class:`Stepper` produces that sequence for
:meth:`~pyfemsolve.solvers.nonlinear.Solver.solve_steps`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

import numpy as np

_EPS = 1e-12


@dataclass
class Stepper:
    """Equal load steps from ``t_start`` to ``t_end``.

    The last step is shortened so that the sequence ends exactly at
    ``t_end``.  Step times are computed from the step index, so no
    round-off accumulates over many steps.

    Args:
        t_end: Final load parameter (time).
        dt: Step size.
        t_start: Initial load parameter.  Defaults to 0.

    Example::

        # load factors 0.25, 0.5, 0.75, 1.0
        solver.solve_steps(Stepper(t_end=1.0, dt=0.25))
    """

    t_end: float
    dt: float
    t_start: float = 0.0

    def __post_init__(self) -> None:
        if self.dt <= 0.0:
            raise ValueError(f"dt must be positive, got {self.dt}.")
        if self.t_end < self.t_start:
            raise ValueError(
                f"t_end ({self.t_end}) must not precede t_start ({self.t_start})."
            )

    @property
    def n_steps(self) -> int:
        return int(np.ceil((self.t_end - self.t_start) / self.dt - _EPS))

    @property
    def step_times(self) -> np.ndarray:
        """End time of every step."""
        k = np.arange(1, self.n_steps + 1)
        return np.minimum(self.t_start + k * self.dt, self.t_end)

    @property
    def times(self) -> np.ndarray:
        """Start time followed by :attr:`step_times`."""
        return np.concatenate([[self.t_start], self.step_times])

    @property
    def load_factors(self) -> np.ndarray:
        """Step times scaled to ``(0, 1]``."""
        span = self.t_end - self.t_start
        if span == 0.0:
            return np.zeros(0)
        return (self.step_times - self.t_start) / span

    def __iter__(self) -> Iterator[tuple[float, float]]:
        """Yield ``(t, dt)`` of every step."""
        times = self.times
        for t_prev, t in zip(times[:-1], times[1:]):
            yield float(t), float(t - t_prev)

    def __len__(self) -> int:
        return self.n_steps
