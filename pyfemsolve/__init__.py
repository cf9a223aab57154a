"""
pyfemsolve: Nonlinear solution of coupled multi-physics finite-element
models.

Subpackages
-----------
sparse
    Coordinate-format assembly accumulators.
problems
    Problem contract (field and boundary problems, local assemblies).
physics
    Field problems.
boundaries
    Boundary and constraint problems.
assembly
    Global field/boundary merging and overconstraint handling.
solvers
    Nonlinear iteration control, linear system backends, convergence.
time
    Fixed time stepping.
visualization
    Convergence plots.
utils
    Logging helpers.
"""

from pyfemsolve import (
    sparse,
    problems,
    physics,
    boundaries,
    assembly,
    solvers,
    time,
    visualization,
    utils,
)
from pyfemsolve.errors import (
    LinearSolverError,
    NonlinearConvergenceFailure,
    OverconstraintError,
    SingularSystemError,
    SolverError,
    StructuralError,
)
from pyfemsolve.solvers import Solver, SolverConfig

__version__ = "0.1.0"

__all__ = [
    "sparse",
    "problems",
    "physics",
    "boundaries",
    "assembly",
    "solvers",
    "time",
    "visualization",
    "utils",
    "LinearSolverError",
    "NonlinearConvergenceFailure",
    "OverconstraintError",
    "SingularSystemError",
    "SolverError",
    "StructuralError",
    "Solver",
    "SolverConfig",
]
