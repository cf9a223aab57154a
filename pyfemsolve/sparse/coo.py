"""Coordinate-format (triplet) sparse accumulator.

Every problem assembles its local contribution into :class:`SparseCOO`
objects, and the global merge steps append those into fresh
accumulators.  Appending is O(1) amortised; duplicate ``(row, col)``
entries are summed once, when the accumulator is converted to
compressed form.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import ArrayLike
from scipy import sparse

from pyfemsolve.errors import StructuralError


class SparseCOO:
    """Append-only arena of ``(row, col, value)`` triplets.

    Blocks are stored as they arrive and concatenated on conversion, so
    repeated :meth:`add` calls never copy previously stored data.

    Example::

        K = SparseCOO()
        K.add([0, 1], [0, 1], [[2.0, -1.0], [-1.0, 2.0]])
        K.add(1, 1, 3.0)
        K.to_csr().toarray()   # [[2, -1], [-1, 5]]
    """

    def __init__(self) -> None:
        self._rows: list[np.ndarray] = []
        self._cols: list[np.ndarray] = []
        self._vals: list[np.ndarray] = []
        self._size = 0

    def add(self, rows: ArrayLike, cols: ArrayLike, values: ArrayLike) -> None:
        """Append entries.

        If *values* is 2-D with shape ``(len(rows), len(cols))`` it is
        treated as a dense local block scattered to ``rows x cols``.
        Otherwise *rows*, *cols* and *values* are broadcast against each
        other entry by entry.

        Args:
            rows: Row indices.
            cols: Column indices.
            values: Entry values or a dense local block.
        """
        r = np.atleast_1d(np.asarray(rows, dtype=np.int64))
        c = np.atleast_1d(np.asarray(cols, dtype=np.int64))
        v = np.asarray(values, dtype=float)

        if v.ndim == 2 and r.ndim == 1 and c.ndim == 1 and v.shape == (len(r), len(c)):
            r = np.repeat(r, len(c))
            c = np.tile(c, v.shape[0])
            v = v.ravel()
        else:
            r, c, v = np.broadcast_arrays(r, c, v)
            r, c, v = r.ravel(), c.ravel(), v.ravel()

        if r.size == 0:
            return
        if r.min() < 0 or c.min() < 0:
            raise ValueError("Sparse indices must be non-negative.")

        self._rows.append(r.copy())
        self._cols.append(c.copy())
        self._vals.append(v.copy())
        self._size += r.size

    def add_vector(self, rows: ArrayLike, values: ArrayLike) -> None:
        """Append entries to column 0 (vector accumulators)."""
        self.add(rows, 0, values)

    def extend(self, other: "SparseCOO") -> None:
        """Append every entry of *other*."""
        for r, c, v in zip(other._rows, other._cols, other._vals):
            self._rows.append(r)
            self._cols.append(c)
            self._vals.append(v)
        self._size += len(other)

    def triplets(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return concatenated ``(rows, cols, values)`` arrays."""
        if not self._rows:
            return (
                np.zeros(0, dtype=np.int64),
                np.zeros(0, dtype=np.int64),
                np.zeros(0, dtype=float),
            )
        return (
            np.concatenate(self._rows),
            np.concatenate(self._cols),
            np.concatenate(self._vals),
        )

    @property
    def max_index(self) -> int:
        """Largest row or column index stored, ``-1`` when empty."""
        if not self._rows:
            return -1
        return int(max(max(r.max(), c.max()) for r, c in zip(self._rows, self._cols)))

    def to_csr(self, shape: tuple[int, int] | None = None) -> sparse.csr_matrix:
        """Convert to CSR, summing duplicate entries.

        Args:
            shape: Target shape.  If omitted the result is square with
                side ``max_index + 1``.

        Returns:
            CSR matrix with sorted indices and no duplicates.

        Raises:
            StructuralError: If stored indices do not fit in *shape*.
        """
        rows, cols, vals = self.triplets()
        if shape is None:
            n = self.max_index + 1
            shape = (n, n)
        n_rows, n_cols = int(shape[0]), int(shape[1])
        if rows.size and (rows.max() >= n_rows or cols.max() >= n_cols):
            raise StructuralError(
                f"Entry at ({rows.max()}, {cols.max()}) does not fit in a "
                f"{n_rows}x{n_cols} system."
            )
        A = sparse.csr_matrix((vals, (rows, cols)), shape=(n_rows, n_cols))
        A.sum_duplicates()
        return A

    def to_array(self, n: int) -> np.ndarray:
        """Convert a vector accumulator to a dense array of length *n*.

        Raises:
            StructuralError: If an entry lies outside ``[0, n)`` or a
                column other than 0 is used.
        """
        rows, cols, vals = self.triplets()
        if rows.size == 0:
            return np.zeros(n)
        if np.any(cols != 0):
            raise StructuralError("Vector accumulator has entries outside column 0.")
        if rows.max() >= n:
            raise StructuralError(
                f"Vector entry at row {rows.max()} does not fit in length {n}."
            )
        return np.bincount(rows, weights=vals, minlength=n).astype(float)

    def empty(self) -> bool:
        """True if no entries are stored."""
        return self._size == 0

    def clear(self) -> None:
        """Drop all entries."""
        self._rows.clear()
        self._cols.clear()
        self._vals.clear()
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"SparseCOO(n_entries={self._size})"


def get_nonzero_rows(A: Any) -> np.ndarray:
    """Return the sorted indices of rows holding a nonzero value.

    Explicitly stored zeros do not count.

    Args:
        A: Sparse matrix or dense 2-D array.

    Returns:
        Integer array of row indices.
    """
    M = sparse.csr_matrix(A, copy=True)
    M.eliminate_zeros()
    return np.flatnonzero(np.diff(M.indptr))
