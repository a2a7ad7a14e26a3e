"""
Registry-backed binary broadcast operators.

This module defines `BroadcastOp`, the operator attached to nodes produced by
broadcast-aware binary elementwise operations, together with its registry of
combining functions.

Design
------
- Combining functions are registered by name via a decorator-based registry
  (`BroadcastOp.register_operator`). Each record carries the operator name,
  its arity (always 2 for broadcast operators), and the combining function.
- `BroadcastOp.apply` resolves the broadcast plan from the operands' static
  shapes at graph-construction time. Resolution failures are raised
  unchanged and leave the graph untouched.
- `BroadcastOp.execute` is invoked by the tape machine. It expands both
  operands with stride-0 views and applies the combining function.

Usage example
-------------
Registering an operator:

    @BroadcastOp.register_operator("maximum")
    def maximum(x, y):
        return np.maximum(x, y)

Applying it:

    c = broadcast_binary("maximum", a, b, left_axes=[1])

Notes
-----
Combining functions receive NumPy arrays (stride-0 views of the output
shape) and must behave elementwise, like a NumPy ufunc.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, Iterable, Optional, Sequence, Tuple

import numpy as np

from ...domain._operator import Operator
from ...domain._shape import Shape
from ..broadcast._expand import CombineFn, combine
from ..broadcast._resolver import BroadcastPlan, resolve_broadcast
from ..graph._graph import Graph
from ..graph._node import Node
from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperatorRecord:
    """
    Registry entry: operator identity, arity, and combining function.
    """

    name: str
    arity: int
    fn: CombineFn


class BroadcastOp(Operator):
    """
    Broadcast-aware binary elementwise operator.

    Parameters
    ----------
    op_name : str
        Name of a registered combining function.
    left_axes, right_axes : Optional[Iterable[int]]
        Declared broadcast axes of the left / right operand.

    Raises
    ------
    ValueError
        If `op_name` is not registered.

    Notes
    -----
    One instance is attached to exactly one node; the resolved plan is cached
    on the instance by `infer_shape`.
    """

    OPERATORS: ClassVar[Dict[str, OperatorRecord]] = {}

    def __init__(
        self,
        op_name: str,
        left_axes: Optional[Iterable[int]] = None,
        right_axes: Optional[Iterable[int]] = None,
    ) -> None:
        try:
            self._record = self.OPERATORS[op_name]
        except KeyError as e:
            available = ", ".join(sorted(self.OPERATORS)) or "<none>"
            raise ValueError(
                f"Unsupported broadcast operator: {op_name!r}. "
                f"Available: {available}"
            ) from e
        self._left_axes = None if left_axes is None else tuple(left_axes)
        self._right_axes = None if right_axes is None else tuple(right_axes)
        self._plan: Optional[BroadcastPlan] = None

    # ---------------------------------------------------------------------
    # Registry
    # ---------------------------------------------------------------------
    @classmethod
    def register_operator(
        cls, name: str, *, arity: int = 2, overwrite: bool = False
    ) -> Callable[[CombineFn], CombineFn]:
        """
        Decorator to register a combining function under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the operator later.
        arity:
            Number of operands. Broadcast operators are binary, so any value
            other than 2 is rejected.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Operator name must be a non-empty string")
        if arity != 2:
            raise ValueError(
                f"Broadcast operators are binary; got arity={arity} for {name!r}"
            )

        def decorator(func: CombineFn) -> CombineFn:
            if not callable(func):
                raise TypeError(f"Combining function for {name!r} must be callable")
            if not overwrite and name in cls.OPERATORS:
                raise ValueError(f"Operator already registered: {name!r}")
            cls.OPERATORS[name] = OperatorRecord(name=name, arity=arity, fn=func)
            return func

        return decorator

    @classmethod
    def available(cls) -> Tuple[str, ...]:
        """Return registered operator names (sorted)."""
        return tuple(sorted(cls.OPERATORS))

    @classmethod
    def get(cls, name: str) -> OperatorRecord:
        """Get a registered operator record by name."""
        return cls.OPERATORS[name]

    # ---------------------------------------------------------------------
    # Operator interface
    # ---------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self._record.name

    @property
    def arity(self) -> int:
        return self._record.arity

    @property
    def plan(self) -> Optional[BroadcastPlan]:
        return self._plan

    def infer_shape(self, *shapes: Shape) -> Shape:
        """
        Resolve the broadcast plan for the operand shapes.

        Raises
        ------
        InvalidBroadcastPattern, ShapeMismatch
            Propagated unchanged from the resolver.
        """
        shape_a, shape_b = shapes
        plan = resolve_broadcast(
            shape_a, shape_b, self._left_axes, self._right_axes
        ).unwrap()
        self._plan = plan
        return plan.output_shape

    def execute(self, inputs: Sequence[Tensor]) -> Tensor:
        """
        Combine two operand values elementwise under the resolved plan.

        Raises
        ------
        RuntimeError
            If the plan has not been resolved.
        TypeError
            If the operand dtypes differ.
        ValueError
            If an operand value no longer has the shape the plan was resolved
            for.
        """
        if self._plan is None:
            raise RuntimeError(f"{self!r} has no resolved broadcast plan")
        a, b = inputs
        if a.dtype != b.dtype:
            raise TypeError(f"dtype mismatch: {a.dtype} vs {b.dtype}")
        out = combine(self._record.fn, np.asarray(a), np.asarray(b), self._plan)
        return Tensor._wrap(out)

    def __repr__(self) -> str:
        return (
            f"BroadcastOp({self.name!r}, left={self._left_axes}, "
            f"right={self._right_axes})"
        )

    # ---------------------------------------------------------------------
    # Graph application
    # ---------------------------------------------------------------------
    def apply(
        self,
        graph: Graph,
        a: Node,
        b: Node,
        name: Optional[str] = None,
    ) -> Node:
        """
        Add a node applying this operator to `a` and `b`.

        The broadcast plan is resolved before the graph is touched, so a
        failure leaves `graph` unmodified.

        Returns
        -------
        Node
            The new, unexecuted op node.

        Raises
        ------
        GraphOwnershipError
            If `a` or `b` belongs to another graph.
        InvalidBroadcastPattern, ShapeMismatch
            If the operands cannot be broadcast under the declared axes.
        """
        graph.check_owns(a)
        graph.check_owns(b)
        if self._plan is not None:
            raise RuntimeError(f"{self!r} is already attached to a node")
        shape = self.infer_shape(a.shape, b.shape)
        return graph.add_op_node(self, (a, b), shape, name=name)


def broadcast_binary(
    op_name: str,
    a: Node,
    b: Node,
    left_axes: Optional[Iterable[int]] = None,
    right_axes: Optional[Iterable[int]] = None,
    *,
    name: Optional[str] = None,
) -> Node:
    """
    Apply the registered broadcast operator `op_name` to two nodes of the
    same graph.

    Parameters
    ----------
    op_name : str
        Registered operator name (see `BroadcastOp.available()`).
    a, b : Node
        Left and right operands; the result is added to `a.graph`.
    left_axes, right_axes : Optional[Iterable[int]]
        Declared broadcast axes (output-axis indices) of each operand.
    name : Optional[str], optional
        Label of the result node.

    Returns
    -------
    Node
        The new op node.
    """
    op = BroadcastOp(op_name, left_axes, right_axes)
    try:
        return op.apply(a.graph, a, b, name=name)
    except ValueError as e:
        logger.debug("broadcast %s rejected: %s", op_name, e)
        raise


def broadcast_add(a, b, left_axes=None, right_axes=None, *, name=None) -> Node:
    """Elementwise ``a + b`` with declared broadcast axes."""
    return broadcast_binary("add", a, b, left_axes, right_axes, name=name)


def broadcast_sub(a, b, left_axes=None, right_axes=None, *, name=None) -> Node:
    """Elementwise ``a - b`` with declared broadcast axes."""
    return broadcast_binary("sub", a, b, left_axes, right_axes, name=name)


def broadcast_mul(a, b, left_axes=None, right_axes=None, *, name=None) -> Node:
    """Elementwise (Hadamard) ``a * b`` with declared broadcast axes."""
    return broadcast_binary("mul", a, b, left_axes, right_axes, name=name)


def broadcast_div(a, b, left_axes=None, right_axes=None, *, name=None) -> Node:
    """Elementwise ``a / b`` with declared broadcast axes."""
    return broadcast_binary("div", a, b, left_axes, right_axes, name=name)


def broadcast_pow(a, b, left_axes=None, right_axes=None, *, name=None) -> Node:
    """Elementwise ``a ** b`` with declared broadcast axes."""
    return broadcast_binary("pow", a, b, left_axes, right_axes, name=name)


# Built-in combining functions
BroadcastOp.register_operator("add")(np.add)
BroadcastOp.register_operator("sub")(np.subtract)
BroadcastOp.register_operator("mul")(np.multiply)
BroadcastOp.register_operator("div")(np.true_divide)
BroadcastOp.register_operator("pow")(np.power)
