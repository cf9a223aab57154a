"""Tests for the sparse module."""

import numpy as np
import pytest
from scipy import sparse

from pyfemsolve.errors import StructuralError
from pyfemsolve.sparse.coo import SparseCOO, get_nonzero_rows


class TestSparseCOO:
    def test_dense_block(self):
        K = SparseCOO()
        K.add([0, 1], [0, 1], [[2.0, -1.0], [-1.0, 2.0]])
        K.add(1, 1, 3.0)
        np.testing.assert_allclose(K.to_csr().toarray(), [[2.0, -1.0], [-1.0, 5.0]])
        assert len(K) == 5

    def test_entrywise_broadcast(self):
        K = SparseCOO()
        K.add([0, 2], [0, 2], 1.0)
        A = K.to_csr().toarray()
        np.testing.assert_allclose(A, np.diag([1.0, 0.0, 1.0]))

    def test_duplicates_summed_once(self):
        K = SparseCOO()
        for _ in range(3):
            K.add(1, 0, 0.5)
        A = K.to_csr()
        assert A.nnz == 1
        assert A[1, 0] == pytest.approx(1.5)

    def test_shape_inferred_from_max_index(self):
        K = SparseCOO()
        K.add(0, 4, 1.0)
        assert K.max_index == 4
        assert K.to_csr().shape == (5, 5)

    def test_explicit_shape(self):
        K = SparseCOO()
        K.add(1, 1, 1.0)
        assert K.to_csr((6, 6)).shape == (6, 6)

    def test_shape_too_small(self):
        K = SparseCOO()
        K.add(5, 5, 1.0)
        with pytest.raises(StructuralError):
            K.to_csr((4, 4))

    def test_empty(self):
        K = SparseCOO()
        assert K.empty()
        assert K.max_index == -1
        assert K.to_csr().shape == (0, 0)
        np.testing.assert_allclose(K.to_array(3), np.zeros(3))

    def test_negative_index(self):
        K = SparseCOO()
        with pytest.raises(ValueError):
            K.add(-1, 0, 1.0)

    def test_vector(self):
        f = SparseCOO()
        f.add_vector([0, 2, 0], [1.0, 2.0, 3.0])
        np.testing.assert_allclose(f.to_array(3), [4.0, 0.0, 2.0])
        with pytest.raises(StructuralError):
            f.to_array(2)

    def test_vector_rejects_matrix_entries(self):
        f = SparseCOO()
        f.add(0, 1, 1.0)
        with pytest.raises(StructuralError):
            f.to_array(2)

    def test_extend_and_clear(self):
        a = SparseCOO()
        a.add(0, 0, 1.0)
        b = SparseCOO()
        b.add(0, 0, 2.0)
        b.add(1, 1, 1.0)
        a.extend(b)
        assert len(a) == 3
        np.testing.assert_allclose(a.to_csr().toarray(), [[3.0, 0.0], [0.0, 1.0]])
        a.clear()
        assert a.empty()
        # b is untouched by clearing a
        assert len(b) == 2

    def test_add_copies_input(self):
        rows = np.array([0, 1])
        K = SparseCOO()
        K.add(rows, rows, 1.0)
        rows[:] = 7
        assert K.max_index == 1


class TestNonzeroRows:
    def test_skips_explicit_zeros(self):
        A = sparse.csr_matrix(
            (np.array([0.0, 1.0]), (np.array([0, 2]), np.array([0, 2]))),
            shape=(3, 3),
        )
        np.testing.assert_array_equal(get_nonzero_rows(A), [2])

    def test_dense_input(self):
        A = np.array([[0.0, 0.0], [0.0, 3.0]])
        np.testing.assert_array_equal(get_nonzero_rows(A), [1])

    def test_does_not_modify_input(self):
        A = sparse.csr_matrix(
            (np.array([0.0]), (np.array([0]), np.array([0]))),
            shape=(1, 1),
        )
        get_nonzero_rows(A)
        assert A.nnz == 1
