"""Sparse: coordinate-format assembly accumulators."""

from pyfemsolve.sparse.coo import SparseCOO, get_nonzero_rows

__all__ = [
    "SparseCOO",
    "get_nonzero_rows",
]
