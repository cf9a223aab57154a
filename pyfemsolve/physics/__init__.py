"""Physics: field problems (governing equations over the domain)."""

from pyfemsolve.physics.matrix import MatrixProblem
from pyfemsolve.physics.diffusion import NonlinearDiffusion1D

__all__ = [
    "MatrixProblem",
    "NonlinearDiffusion1D",
]
