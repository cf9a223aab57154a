"""Assembly: global field/boundary merging and overconstraint handling."""

from pyfemsolve.assembly.field import get_field_assembly
from pyfemsolve.assembly.boundary import get_boundary_assembly
from pyfemsolve.assembly.overconstraint import (
    OVERCONSTRAINT_HANDLERS,
    AveragingHandler,
    ConstraintBlocks,
    FirstWriterWins,
    LastWriterWins,
    OverconstraintContext,
    OverconstraintHandler,
    StrictHandler,
    get_overconstraint_handler,
    register_overconstraint_handler,
)

__all__ = [
    "get_field_assembly",
    "get_boundary_assembly",
    "OVERCONSTRAINT_HANDLERS",
    "AveragingHandler",
    "ConstraintBlocks",
    "FirstWriterWins",
    "LastWriterWins",
    "OverconstraintContext",
    "OverconstraintHandler",
    "StrictHandler",
    "get_overconstraint_handler",
    "register_overconstraint_handler",
]
