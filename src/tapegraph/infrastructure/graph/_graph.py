"""
Computation graph bookkeeping.

The `Graph` owns its nodes in creation order and records the consumer
(reverse operand) edges needed for topological ordering. Nodes are added
either as leaves wrapping input values or as the side effect of operator
application. Every operand must already exist when a node is added, so the
operand relation is acyclic by construction; `topological_order` still
reports a cycle with `CyclicGraphError`.
"""

from __future__ import annotations

import heapq
import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ...domain._errors import CyclicGraphError, GraphOwnershipError, ShapeMismatch
from ...domain._operator import Operator
from ...domain._shape import Shape, normalize_shape
from ..tensor._tensor import Tensor
from ._node import Node

logger = logging.getLogger(__name__)


def _as_tensor(value: Any) -> Tensor:
    if isinstance(value, Tensor):
        return value
    return Tensor.from_numpy(value)


class Graph:
    """
    An owned collection of nodes plus adjacency bookkeeping.

    Examples
    --------
    >>> g = Graph()
    >>> a = g.add_leaf([1.0, 2.0], name="a")
    >>> a.shape
    (2,)
    """

    def __init__(self) -> None:
        self._nodes: List[Node] = []
        self._consumers: Dict[int, List[Node]] = {}

    # ---------------------------------------------------------------------
    # Node creation
    # ---------------------------------------------------------------------
    def add_leaf(self, value: Any, name: Optional[str] = None) -> Node:
        """
        Wrap an externally supplied value as a leaf node.

        Parameters
        ----------
        value : Tensor or array-like
            Input value. Array-likes are converted with `Tensor.from_numpy`.
        name : Optional[str], optional
            Human-readable label.

        Returns
        -------
        Node
            The new leaf node, already holding `value`.
        """
        t = _as_tensor(value)
        node = Node(self, len(self._nodes), t.shape, name=name, value=t)
        self._register(node)
        return node

    def add_op_node(
        self,
        op: Operator,
        operands: Sequence[Node],
        shape: Shape,
        name: Optional[str] = None,
    ) -> Node:
        """
        Register a new op node whose operands already belong to this graph.

        Parameters
        ----------
        op : Operator
            Operator computing the node's value.
        operands : Sequence[Node]
            Operand nodes; their count must equal `op.arity`.
        shape : tuple[int, ...]
            Static output shape.
        name : Optional[str], optional
            Human-readable label.

        Returns
        -------
        Node
            The new op node (value unset).

        Raises
        ------
        ValueError
            If the operand count does not match the operator arity.
        GraphOwnershipError
            If an operand belongs to another graph.
        """
        operands = tuple(operands)
        if len(operands) != op.arity:
            raise ValueError(
                f"Operator {op.name!r} expects {op.arity} operand(s), got {len(operands)}"
            )
        for o in operands:
            self.check_owns(o)
        node = Node(
            self,
            len(self._nodes),
            normalize_shape(shape),
            op=op,
            operands=operands,
            name=name,
        )
        self._register(node)
        logger.debug("Added %r with operands %s", node, [o.id for o in operands])
        return node

    def _register(self, node: Node) -> None:
        self._nodes.append(node)
        self._consumers[node.id] = []
        for o in node.operands:
            self._consumers[o.id].append(node)

    # ---------------------------------------------------------------------
    # Queries
    # ---------------------------------------------------------------------
    @property
    def nodes(self) -> tuple:
        """All nodes in creation order."""
        return tuple(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(tuple(self._nodes))

    def __contains__(self, node: object) -> bool:
        return (
            isinstance(node, Node)
            and node.graph is self
            and node.id < len(self._nodes)
            and self._nodes[node.id] is node
        )

    def check_owns(self, node: Node) -> None:
        """
        Raise `GraphOwnershipError` unless `node` belongs to this graph.
        """
        if node not in self:
            raise GraphOwnershipError(node)

    def leaves(self) -> List[Node]:
        return [n for n in self._nodes if n.is_leaf]

    def roots(self) -> List[Node]:
        """Nodes that no other node consumes (the graph's outputs)."""
        return [n for n in self._nodes if not self._consumers[n.id]]

    def consumers(self, node: Node) -> List[Node]:
        self.check_owns(node)
        return list(self._consumers[node.id])

    def node_by_name(self, name: str) -> Node:
        """
        Return the first node labelled `name`.

        Raises
        ------
        KeyError
            If no node carries that name.
        """
        for n in self._nodes:
            if n.name == name:
                return n
        raise KeyError(name)

    # ---------------------------------------------------------------------
    # Value slots
    # ---------------------------------------------------------------------
    def let(self, node: Node, value: Any) -> None:
        """
        Rebind the value of a leaf node.

        The new value must keep the leaf's static shape and dtype, since
        consumers resolved their broadcast plans against them. On failure
        the leaf keeps its current value.

        Raises
        ------
        ShapeMismatch
            If the value's shape differs from ``node.shape``.
        ValueError
            If `node` is an op node, or the value's dtype differs from the
            leaf's.
        GraphOwnershipError
            If `node` belongs to another graph.
        """
        self.check_owns(node)
        if not node.is_leaf:
            raise ValueError(f"Only leaf nodes can be rebound, got {node!r}")
        t = _as_tensor(value)
        if t.shape != node.shape:
            raise ShapeMismatch(
                node.shape, t.shape, detail=f"cannot rebind {node!r}"
            )
        if node.value is not None and t.dtype != node.dtype:
            raise ValueError(
                f"Cannot rebind {node!r}: dtype {t.dtype} differs from {node.dtype}"
            )
        node._set_value(t)

    def reset(self) -> None:
        """Clear the value slot of every op node."""
        for n in self._nodes:
            if not n.is_leaf:
                n._set_value(None)

    # ---------------------------------------------------------------------
    # Ordering
    # ---------------------------------------------------------------------
    def topological_order(self) -> List[Node]:
        """
        Order the nodes so that every node follows all of its operands.

        Independent nodes keep their creation order.

        Returns
        -------
        list[Node]
            All nodes of the graph.

        Raises
        ------
        CyclicGraphError
            If the operand relation contains a cycle.
        """
        pending = {n.id: len(set(o.id for o in n.operands)) for n in self._nodes}
        ready = [i for i, k in pending.items() if k == 0]
        heapq.heapify(ready)

        order: List[Node] = []
        while ready:
            nid = heapq.heappop(ready)
            node = self._nodes[nid]
            order.append(node)
            for c in {c.id for c in self._consumers[nid]}:
                pending[c] -= 1
                if pending[c] == 0:
                    heapq.heappush(ready, c)

        if len(order) != len(self._nodes):
            done = {n.id for n in order}
            raise CyclicGraphError([i for i in pending if i not in done])
        return order

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self._nodes)})"
