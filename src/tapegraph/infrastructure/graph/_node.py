"""
Graph vertex implementation.

A `Node` is owned by exactly one `Graph`. Leaf nodes wrap externally supplied
values and have no operator; op nodes carry an `Operator`, references to
their operand nodes, and a value slot populated by the tape machine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Tuple

from ...domain._operator import Operator
from ...domain._shape import Shape
from ..tensor._tensor import Tensor

if TYPE_CHECKING:
    from ._graph import Graph


class Node:
    """
    A vertex of a computation graph.

    Parameters
    ----------
    graph : Graph
        Owning graph.
    node_id : int
        Id unique within `graph`.
    shape : tuple[int, ...]
        Static shape known at construction time.
    op : Optional[Operator], optional
        Operator for op nodes, ``None`` for leaves.
    operands : tuple[Node, ...], optional
        Operand nodes (op nodes only).
    name : Optional[str], optional
        Human-readable label.
    value : Optional[Tensor], optional
        Initial value (leaves only).

    Notes
    -----
    Nodes are created through `Graph.add_leaf` and operator application; do
    not construct them directly.
    """

    __slots__ = ("_graph", "_id", "_shape", "_op", "_operands", "_name", "_value")

    def __init__(
        self,
        graph: "Graph",
        node_id: int,
        shape: Shape,
        *,
        op: Optional[Operator] = None,
        operands: Tuple["Node", ...] = (),
        name: Optional[str] = None,
        value: Optional[Tensor] = None,
    ) -> None:
        self._graph = graph
        self._id = node_id
        self._shape = shape
        self._op = op
        self._operands = tuple(operands)
        self._name = name
        self._value = value

    @property
    def id(self) -> int:
        return self._id

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def graph(self) -> "Graph":
        return self._graph

    @property
    def op(self) -> Optional[Operator]:
        return self._op

    @property
    def operands(self) -> Tuple["Node", ...]:
        return self._operands

    @property
    def shape(self) -> Shape:
        """Static shape, fixed at construction."""
        return self._shape

    @property
    def is_leaf(self) -> bool:
        return self._op is None

    @property
    def value(self) -> Optional[Tensor]:
        """
        The node's current value.

        Returns
        -------
        Optional[Tensor]
            For leaves, the bound input value. For op nodes, the value written
            by the last successful execution of this node, or ``None``.
        """
        return self._value

    @property
    def dtype(self) -> Any:
        return None if self._value is None else self._value.dtype

    def _set_value(self, value: Optional[Tensor]) -> None:
        self._value = value

    def __repr__(self) -> str:
        label = self._op.name if self._op is not None else "leaf"
        name = f", name={self._name!r}" if self._name else ""
        return f"Node(id={self._id}{name}, op={label}, shape={self._shape})"
