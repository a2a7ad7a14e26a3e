import unittest
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from tapegraph import (
    BroadcastOp,
    Graph,
    GraphOwnershipError,
    InvalidBroadcastPattern,
    ShapeMismatch,
    TapeMachine,
    broadcast_add,
    broadcast_binary,
    broadcast_div,
    broadcast_mul,
    broadcast_pow,
    broadcast_sub,
)


@dataclass
class BroadcastCase:
    name: str
    a: np.ndarray
    b: np.ndarray
    left: Optional[Sequence[int]]
    right: Optional[Sequence[int]]
    expected: Optional[Sequence[float]] = None
    err: bool = False


def _arr(shape, data) -> np.ndarray:
    return np.asarray(data, dtype=np.float64).reshape(shape)


MAT = _arr((2, 2), [1, 2, 3, 4])

BROADCAST_ADD_CASES = [
    BroadcastCase("vec-mat", _arr((2,), [100, 200]), MAT, [1], None, [101, 102, 203, 204]),
    BroadcastCase("mat-vec", MAT, _arr((2,), [100, 200]), None, [1], [101, 102, 203, 204]),
    BroadcastCase("rowvec-mat", _arr((2, 1), [100, 200]), MAT, [1], None, [101, 102, 203, 204]),
    BroadcastCase("mat-rowvec", MAT, _arr((2, 1), [100, 200]), None, [1], [101, 102, 203, 204]),
    BroadcastCase("colvec-mat", _arr((1, 2), [100, 200]), MAT, [0], None, [101, 202, 103, 204]),
    BroadcastCase("mat-colvec", MAT, _arr((1, 2), [100, 200]), None, [0], [101, 202, 103, 204]),
    BroadcastCase(
        "vec-mat- wrong left pattern axis", _arr((2,), [100, 200]), MAT, [0], None, err=True
    ),
    BroadcastCase("rowvec-mat: wrong axis", _arr((2, 1), [100, 200]), MAT, [2], None, err=True),
    BroadcastCase(
        "impossible mat-mat",
        _arr((2, 4), [1, 2, 3, 4, 5, 6, 7, 8]),
        _arr((1, 2), [100, 200]),
        None,
        [0, 1],
        err=True,
    ),
]

BROADCAST_MUL_CASES = [
    BroadcastCase("vec-mat", _arr((2,), [10, 20]), MAT, [1], None, [10, 20, 60, 80]),
    BroadcastCase("mat-vec", MAT, _arr((2,), [10, 20]), None, [1], [10, 20, 60, 80]),
    BroadcastCase("rowvec-mat", _arr((2, 1), [10, 20]), MAT, [1], None, [10, 20, 60, 80]),
    BroadcastCase("mat-rowvec", MAT, _arr((2, 1), [10, 20]), None, [1], [10, 20, 60, 80]),
    BroadcastCase("colvec-mat", _arr((1, 2), [10, 20]), MAT, [0], None, [10, 40, 30, 80]),
    BroadcastCase("mat-colvec", MAT, _arr((1, 2), [10, 20]), None, [0], [10, 40, 30, 80]),
    BroadcastCase(
        "vec-mat- wrong left pattern axis", _arr((2,), [10, 20]), MAT, [0], None, err=True
    ),
    BroadcastCase("rowvec-mat: wrong axis", _arr((2, 1), [10, 20]), MAT, [2], None, err=True),
    BroadcastCase(
        "impossible mat-mat",
        _arr((2, 4), [1, 2, 3, 4, 5, 6, 7, 8]),
        _arr((1, 2), [10, 20]),
        None,
        [0, 1],
        err=True,
    ),
]


class _BroadcastTableMixin:
    def _run_table(self, op, cases) -> None:
        for i, case in enumerate(cases):
            with self.subTest(name=case.name, index=i):
                g = Graph()
                a = g.add_leaf(case.a, name="a")
                b = g.add_leaf(case.b, name="b")

                if case.err:
                    with self.assertRaises((InvalidBroadcastPattern, ShapeMismatch)):
                        op(a, b, case.left, case.right)
                    self.assertEqual(len(g), 2)
                    continue

                c = op(a, b, case.left, case.right)
                with TapeMachine(g) as machine:
                    machine.run_all()
                np.testing.assert_array_equal(
                    c.value.flat(), np.asarray(case.expected, dtype=np.float64)
                )


class TestBroadcastAdd(unittest.TestCase, _BroadcastTableMixin):
    def test_broadcast_add_table(self):
        self._run_table(broadcast_add, BROADCAST_ADD_CASES)

    def test_vec_mat_result_shape_and_layout(self):
        g = Graph()
        a = g.add_leaf([100.0, 200.0])
        b = g.add_leaf([[1.0, 2.0], [3.0, 4.0]])
        c = broadcast_add(a, b, left_axes=[1])
        self.assertEqual(c.shape, (2, 2))
        with TapeMachine(g) as machine:
            machine.run_all()
        self.assertEqual(c.value.tolist(), [[101.0, 102.0], [203.0, 204.0]])

    def test_wrong_axis_is_pattern_error(self):
        g = Graph()
        a = g.add_leaf([100.0, 200.0])
        b = g.add_leaf([[1.0, 2.0], [3.0, 4.0]])
        with self.assertRaises(InvalidBroadcastPattern) as cm:
            broadcast_add(a, b, left_axes=[0])
        self.assertEqual(cm.exception.side, "left")
        self.assertEqual(cm.exception.axis, 0)

    def test_out_of_range_axis_is_pattern_error(self):
        g = Graph()
        a = g.add_leaf(np.ones((2, 1)))
        b = g.add_leaf(np.ones((2, 2)))
        with self.assertRaises(InvalidBroadcastPattern):
            broadcast_add(a, b, left_axes=[2])

    def test_incompatible_shapes_raise_shape_mismatch(self):
        g = Graph()
        a = g.add_leaf(np.ones((2, 3)))
        b = g.add_leaf(np.ones((2, 4)))
        with self.assertRaises(ShapeMismatch):
            broadcast_add(a, b)
        self.assertEqual(len(g), 2)

    def test_no_hints_same_shape(self):
        g = Graph()
        a = g.add_leaf(np.arange(6.0).reshape(2, 3))
        b = g.add_leaf(np.ones((2, 3)))
        c = broadcast_add(a, b, name="c")
        self.assertEqual(c.name, "c")
        with TapeMachine(g) as machine:
            machine.run_all()
        np.testing.assert_array_equal(c.value.to_numpy(), np.arange(6.0).reshape(2, 3) + 1)

    def test_vec_3tensor(self):
        g = Graph()
        v = np.array([1.0, 2.0])
        t = np.arange(12.0).reshape(2, 3, 2)
        a = g.add_leaf(v)
        b = g.add_leaf(t)
        c = broadcast_add(a, b, left_axes=[1, 2])
        self.assertEqual(c.shape, (2, 3, 2))
        with TapeMachine(g) as machine:
            machine.run_all()
        np.testing.assert_array_equal(c.value.to_numpy(), t + v[:, None, None])

    def test_mat_3tensor(self):
        g = Graph()
        m = np.array([[1.0, 2.0], [3.0, 4.0]])
        t = np.arange(8.0).reshape(2, 2, 2)
        a = g.add_leaf(t)
        b = g.add_leaf(m)
        c = broadcast_add(a, b, right_axes=[2])
        with TapeMachine(g) as machine:
            machine.run_all()
        np.testing.assert_array_equal(c.value.to_numpy(), t + m[:, :, None])

    def test_implicit_leading_padding_without_hints(self):
        g = Graph()
        v = np.array([10.0, 20.0, 30.0])
        m = np.arange(6.0).reshape(2, 3)
        c = broadcast_add(g.add_leaf(m), g.add_leaf(v))
        with TapeMachine(g) as machine:
            machine.run_all()
        np.testing.assert_array_equal(c.value.to_numpy(), m + v)


class TestBroadcastMul(unittest.TestCase, _BroadcastTableMixin):
    def test_broadcast_mul_table(self):
        self._run_table(broadcast_mul, BROADCAST_MUL_CASES)


class TestOtherBroadcastOperators(unittest.TestCase):
    def _eval(self, op, a, b, left=None, right=None) -> np.ndarray:
        g = Graph()
        c = op(g.add_leaf(a), g.add_leaf(b), left, right)
        with TapeMachine(g) as machine:
            machine.run_all()
        return c.value.to_numpy()

    def test_sub(self):
        out = self._eval(broadcast_sub, MAT, np.array([1.0, 2.0]), None, [1])
        np.testing.assert_array_equal(out, [[0.0, 1.0], [1.0, 2.0]])

    def test_div(self):
        out = self._eval(broadcast_div, MAT, np.array([[1.0, 2.0]]), None, [0])
        np.testing.assert_array_equal(out, [[1.0, 1.0], [3.0, 2.0]])

    def test_pow(self):
        out = self._eval(broadcast_pow, MAT, np.array([[2.0], [1.0]]), None, [1])
        np.testing.assert_array_equal(out, [[1.0, 4.0], [3.0, 4.0]])

    def test_integer_operands_keep_dtype(self):
        g = Graph()
        a = g.add_leaf(np.array([1, 2], dtype=np.int64))
        b = g.add_leaf(np.array([[1, 2], [3, 4]], dtype=np.int64))
        c = broadcast_mul(a, b, left_axes=[1])
        with TapeMachine(g) as machine:
            machine.run_all()
        self.assertEqual(c.value.dtype, np.int64)
        self.assertEqual(c.value.tolist(), [[1, 2], [6, 8]])


class TestBroadcastOpApplication(unittest.TestCase):
    def test_apply_with_explicit_graph(self):
        g = Graph()
        a = g.add_leaf(np.ones((2, 1)))
        b = g.add_leaf(np.ones((2, 3)))
        op = BroadcastOp("add", [1], None)
        c = op.apply(g, a, b)
        self.assertIs(c.op, op)
        self.assertEqual(c.operands, (a, b))
        self.assertEqual(c.shape, (2, 3))
        self.assertIsNone(c.value)
        self.assertEqual(op.plan.output_shape, (2, 3))

    def test_failed_application_leaves_graph_unmodified(self):
        g = Graph()
        a = g.add_leaf(np.ones((2, 4)))
        b = g.add_leaf(np.ones((1, 2)))
        before = g.nodes
        with self.assertRaises(InvalidBroadcastPattern):
            broadcast_add(a, b, None, [0, 1])
        self.assertEqual(g.nodes, before)
        self.assertEqual(g.consumers(a), [])

    def test_operator_instance_cannot_be_reused(self):
        g = Graph()
        a = g.add_leaf([1.0])
        b = g.add_leaf([2.0])
        op = BroadcastOp("add")
        op.apply(g, a, b)
        with self.assertRaises(RuntimeError):
            op.apply(g, a, b)

    def test_cross_graph_operands_rejected(self):
        g1, g2 = Graph(), Graph()
        a = g1.add_leaf([1.0])
        b = g2.add_leaf([2.0])
        with self.assertRaises(GraphOwnershipError):
            broadcast_add(a, b)
        self.assertEqual(len(g1), 1)

    def test_unknown_operator(self):
        with self.assertRaises(ValueError):
            BroadcastOp("does-not-exist")

    def test_execute_without_plan(self):
        from tapegraph import Tensor

        op = BroadcastOp("add")
        with self.assertRaises(RuntimeError):
            op.execute([Tensor.from_numpy([1.0]), Tensor.from_numpy([1.0])])


class TestBroadcastOpRegistry(unittest.TestCase):
    def tearDown(self) -> None:
        BroadcastOp.OPERATORS.pop("test_maximum", None)

    def test_builtin_operators_registered(self):
        for name in ("add", "sub", "mul", "div", "pow"):
            self.assertIn(name, BroadcastOp.available())
            self.assertEqual(BroadcastOp.get(name).arity, 2)

    def test_register_custom_operator(self):
        @BroadcastOp.register_operator("test_maximum")
        def maximum(x, y):
            return np.maximum(x, y)

        g = Graph()
        a = g.add_leaf([[5.0], [0.0]])
        b = g.add_leaf([[1.0, 7.0], [3.0, -1.0]])
        c = broadcast_binary("test_maximum", a, b, left_axes=[1])
        with TapeMachine(g) as machine:
            machine.run_all()
        self.assertEqual(c.value.tolist(), [[5.0, 7.0], [3.0, 0.0]])
        self.assertEqual(c.op.name, "test_maximum")

    def test_duplicate_registration_rejected(self):
        with self.assertRaises(ValueError):
            BroadcastOp.register_operator("add")(np.add)

    def test_overwrite_registration(self):
        BroadcastOp.register_operator("test_maximum")(np.maximum)
        BroadcastOp.register_operator("test_maximum", overwrite=True)(np.fmax)
        self.assertIs(BroadcastOp.get("test_maximum").fn, np.fmax)

    def test_non_binary_arity_rejected(self):
        with self.assertRaises(ValueError):
            BroadcastOp.register_operator("test_maximum", arity=3)

    def test_empty_name_rejected(self):
        with self.assertRaises(ValueError):
            BroadcastOp.register_operator("")


if __name__ == "__main__":
    unittest.main()
