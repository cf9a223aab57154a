"""Tests for overconstraint detection and the built-in handlers."""

import numpy as np
import pytest

from pyfemsolve.assembly.boundary import get_boundary_assembly
from pyfemsolve.assembly.field import get_field_assembly
from pyfemsolve.assembly.overconstraint import (
    OVERCONSTRAINT_HANDLERS,
    AveragingHandler,
    ConstraintBlocks,
    FirstWriterWins,
    LastWriterWins,
    StrictHandler,
    compare_constraints,
    get_overconstraint_handler,
    register_overconstraint_handler,
)
from pyfemsolve.boundaries.dirichlet import DirichletProblem
from pyfemsolve.boundaries.tie import TieProblem
from pyfemsolve.errors import OverconstraintError
from pyfemsolve.physics.matrix import MatrixProblem
from pyfemsolve.problems.base import BoundaryProblem
from pyfemsolve.solvers.nonlinear import Solver


class _ScaledConstraint(BoundaryProblem):
    """Constraint ``scale * u_dof = scale * value``."""

    def __init__(self, name, dof, value, scale):
        super().__init__(name, [dof])
        self.value = value
        self.scale = scale

    def assemble_elements(self, time):
        d = self.dofs
        self.assembly.C1.add(d, d, self.scale)
        self.assembly.C2.add(d, d, self.scale)
        self.assembly.g.add_vector(d, self.scale * (self.value - self.u))


def _merge(*boundary_problems, n=6, **options):
    field = MatrixProblem("field", np.eye(n), np.zeros(n))
    solver = Solver("test", problems=(field,) + boundary_problems, **options)
    for problem in solver.problems:
        problem.initialize(solver.time)
        problem.assemble(solver.time)
    get_field_assembly(solver)
    return get_boundary_assembly(solver)


def _spring_chain(n):
    K = np.zeros((n, n))
    for e in range(n - 1):
        K[e:e + 2, e:e + 2] += [[1.0, -1.0], [-1.0, 1.0]]
    return K


class TestDetection:
    def test_consistent_duplicate_is_merged(self):
        a = DirichletProblem("a", dofs=[5], values=1.0)
        b = DirichletProblem("b", dofs=[5], values=1.0)
        _, C1, C2, D, _, g = _merge(a, b)
        row = C2.getrow(5)
        assert row.nnz == 1
        assert row[0, 5] == pytest.approx(1.0)
        assert C1[5, 5] == pytest.approx(1.0)
        assert g[5] == pytest.approx(1.0)

    def test_scaled_constraint_is_redundant(self):
        a = DirichletProblem("a", dofs=[5], values=1.0)
        b = _ScaledConstraint("b", dof=5, value=1.0, scale=2.0)
        _, _, C2, _, _, g = _merge(a, b)
        assert C2[5, 5] == pytest.approx(1.0)
        assert g[5] == pytest.approx(1.0)

    def test_no_overlap_no_handler_call(self):
        calls = []

        def handler(context, accumulated, incoming):
            calls.append(context)

        a = DirichletProblem("a", dofs=[0], values=1.0)
        b = DirichletProblem("b", dofs=[5], values=1.0)
        _merge(a, b, overconstraint_handler=handler)
        assert calls == []


class TestHandlers:
    def test_strict_rejects_contradiction(self):
        a = DirichletProblem("a", dofs=[5], values=1.0)
        b = DirichletProblem("b", dofs=[5], values=2.0)
        with pytest.raises(OverconstraintError) as excinfo:
            _merge(a, b)
        assert excinfo.value.dofs == [5]
        assert excinfo.value.problem is b

    @pytest.mark.parametrize(
        "handler, expected",
        [("first", 1.0), ("last", 2.0), ("average", 1.5)],
    )
    def test_contradiction_policies(self, handler, expected):
        a = DirichletProblem("a", dofs=[5], values=1.0)
        b = DirichletProblem("b", dofs=[5], values=2.0)
        _, _, C2, _, _, g = _merge(a, b, overconstraint_handler=handler)
        assert C2.getrow(5).nnz == 1
        assert C2[5, 5] == pytest.approx(1.0)
        assert g[5] == pytest.approx(expected)

    def test_per_problem_handler_overrides_config(self):
        a = DirichletProblem("a", dofs=[5], values=1.0)
        b = DirichletProblem("b", dofs=[5], values=2.0, overconstraint_handler="last")
        _, _, _, _, _, g = _merge(a, b, overconstraint_handler="strict")
        assert g[5] == pytest.approx(2.0)

    def test_strict_rejects_different_rows(self):
        bc = DirichletProblem("bc", dofs=[4, 5], values=0.0)
        tie = TieProblem("tie", pairs=[(5, 3)])
        with pytest.raises(OverconstraintError):
            _merge(bc, tie)

    def test_first_keeps_dirichlet_row(self):
        bc = DirichletProblem("bc", dofs=[4, 5], values=0.0)
        tie = TieProblem("tie", pairs=[(5, 3)], overconstraint_handler="first")
        _, _, C2, _, _, _ = _merge(bc, tie)
        np.testing.assert_allclose(C2.getrow(5).toarray().ravel(), np.eye(6)[5])
        np.testing.assert_allclose(C2.getrow(4).toarray().ravel(), np.eye(6)[4])

    def test_last_keeps_tie_row(self):
        bc = DirichletProblem("bc", dofs=[4, 5], values=0.0)
        tie = TieProblem("tie", pairs=[(5, 3)], overconstraint_handler="last")
        _, C1, C2, _, _, g = _merge(bc, tie)
        expected = np.zeros(6)
        expected[5] = 1.0
        expected[3] = -1.0
        np.testing.assert_allclose(C2.getrow(5).toarray().ravel(), expected)
        np.testing.assert_allclose(C1.getrow(5).toarray().ravel(), expected)
        np.testing.assert_allclose(C2.getrow(4).toarray().ravel(), np.eye(6)[4])
        assert g[5] == pytest.approx(0.0)

    def test_average_rejects_different_rows(self):
        bc = DirichletProblem("bc", dofs=[5], values=0.0)
        tie = TieProblem("tie", pairs=[(5, 3)], overconstraint_handler="average")
        with pytest.raises(OverconstraintError):
            _merge(bc, tie)

    def test_unresolved_duplicate_raises(self):
        def do_nothing(context, accumulated, incoming):
            pass

        a = DirichletProblem("a", dofs=[5], values=1.0)
        b = DirichletProblem("b", dofs=[5], values=1.0, overconstraint_handler=do_nothing)
        with pytest.raises(OverconstraintError, match="constrained twice"):
            _merge(a, b)

    def test_lost_constraint_raises(self):
        def drop_both(context, accumulated, incoming):
            accumulated.drop_rows(context.dofs)
            incoming.drop_rows(context.dofs)

        a = DirichletProblem("a", dofs=[5], values=1.0)
        b = DirichletProblem("b", dofs=[5], values=1.0, overconstraint_handler=drop_both)
        with pytest.raises(OverconstraintError, match="removed every"):
            _merge(a, b)

    def test_custom_handler_receives_context(self):
        seen = []

        def keep_first(context, accumulated, incoming):
            seen.append(context)
            incoming.drop_rows(context.dofs)

        a = DirichletProblem("a", dofs=[2, 3, 4, 5], values=0.0, dimension=2)
        b = DirichletProblem(
            "b", dofs=[3, 5], values=0.0, dimension=2,
            overconstraint_handler=keep_first,
        )
        _merge(a, b)
        assert len(seen) == 1
        context = seen[0]
        assert context.problem is b
        np.testing.assert_array_equal(context.dofs, [3, 5])
        np.testing.assert_array_equal(context.nodes, [1, 2])


class TestRegistry:
    def test_builtin_names(self):
        assert isinstance(get_overconstraint_handler("strict"), StrictHandler)
        assert isinstance(get_overconstraint_handler("first"), FirstWriterWins)
        assert isinstance(get_overconstraint_handler("last"), LastWriterWins)
        assert isinstance(get_overconstraint_handler("average"), AveragingHandler)

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown overconstraint handler"):
            get_overconstraint_handler("nope")

    def test_invalid_handler(self):
        with pytest.raises(TypeError):
            get_overconstraint_handler(42)

    def test_callable_passthrough(self):
        def handler(context, accumulated, incoming):
            pass

        assert get_overconstraint_handler(handler) is handler

    def test_register(self, monkeypatch):
        monkeypatch.setitem(OVERCONSTRAINT_HANDLERS, "dummy", LastWriterWins)
        assert isinstance(get_overconstraint_handler("dummy"), LastWriterWins)

    def test_register_function(self, monkeypatch):
        monkeypatch.setattr(
            "pyfemsolve.assembly.overconstraint.OVERCONSTRAINT_HANDLERS",
            dict(OVERCONSTRAINT_HANDLERS),
        )
        register_overconstraint_handler("keep-last", LastWriterWins)
        assert isinstance(get_overconstraint_handler("keep-last"), LastWriterWins)


class TestCompareConstraints:
    def _blocks(self, row, g):
        from scipy import sparse

        C2 = sparse.csr_matrix(np.vstack([row, np.zeros(2)]))
        return ConstraintBlocks(
            C1=C2.copy(),
            C2=C2,
            D=sparse.csr_matrix((2, 2)),
            g=np.array([g, 0.0]),
        )

    def test_proportional_rows(self):
        a = self._blocks([1.0, -1.0], 0.5)
        b = self._blocks([-3.0, 3.0], -1.5)
        cmp = compare_constraints(a, b, 0)
        assert cmp.same_row
        assert cmp.same_rhs
        assert cmp.redundant

    def test_different_rhs(self):
        a = self._blocks([2.0, 0.0], 2.0)
        b = self._blocks([1.0, 0.0], 2.0)
        cmp = compare_constraints(a, b, 0)
        assert cmp.same_row
        assert not cmp.same_rhs
        assert cmp.g_accumulated == pytest.approx(1.0)
        assert cmp.g_incoming == pytest.approx(2.0)

    def test_drop_rows(self):
        a = self._blocks([1.0, -1.0], 0.5)
        a.drop_rows([0])
        assert a.C2.nnz == 0
        assert a.C1.nnz == 0
        assert a.g[0] == 0.0
        assert a.constrained_dofs().size == 0


class TestCornerSolve:
    def _chain(self):
        return MatrixProblem("bar", _spring_chain(3), np.zeros(3))

    def test_redundant_corner(self):
        left = DirichletProblem("left", dofs=[0], values=0.0)
        ends = DirichletProblem("ends", dofs=[0, 2], values=[0.0, 1.0])
        solver = Solver(
            "corner", problems=[self._chain(), left, ends], is_linear_system=True
        )
        assert solver.solve()
        np.testing.assert_allclose(solver.u, [0.0, 0.5, 1.0], atol=1e-12)

    def test_averaged_corner(self):
        a = DirichletProblem("a", dofs=[0], values=0.0)
        b = DirichletProblem("b", dofs=[0], values=1.0)
        right = DirichletProblem("right", dofs=[2], values=1.0)
        solver = Solver(
            "corner",
            problems=[self._chain(), a, b, right],
            is_linear_system=True,
            overconstraint_handler="average",
        )
        assert solver.solve()
        np.testing.assert_allclose(solver.u, [0.5, 0.75, 1.0], atol=1e-12)
