"""
tapegraph: a computation-graph engine for broadcast-aware tensor arithmetic.

Build a `Graph`, wrap inputs as leaf nodes, apply broadcast operators, and
execute the graph with a `TapeMachine`:

    g = Graph()
    a = g.add_leaf([100.0, 200.0], name="a")
    b = g.add_leaf([[1.0, 2.0], [3.0, 4.0]], name="b")
    c = broadcast_add(a, b, left_axes=[1])
    with TapeMachine(g) as machine:
        machine.run_all()
    c.value.tolist()  # [[101.0, 102.0], [203.0, 204.0]]
"""

from .domain._errors import (
    CyclicGraphError,
    ExecutionError,
    GraphOwnershipError,
    InvalidBroadcastPattern,
    MachineStateError,
    NonFiniteValueError,
    ShapeMismatch,
    TapeGraphError,
)
from .domain._operator import Operator
from .domain._shape import BroadcastPattern
from .infrastructure._logging import configure_logging
from .infrastructure.broadcast import (
    BroadcastPlan,
    BroadcastResult,
    ExpandPlan,
    resolve_broadcast,
)
from .infrastructure.graph import Graph, Node
from .infrastructure.ops import (
    BroadcastOp,
    broadcast_add,
    broadcast_binary,
    broadcast_div,
    broadcast_mul,
    broadcast_pow,
    broadcast_sub,
)
from .infrastructure.tensor import Tensor
from .infrastructure.vm import MachineOptions, MachineState, TapeMachine

__version__ = "0.1.0"

__all__ = [
    "CyclicGraphError",
    "ExecutionError",
    "GraphOwnershipError",
    "InvalidBroadcastPattern",
    "MachineStateError",
    "NonFiniteValueError",
    "ShapeMismatch",
    "TapeGraphError",
    "Operator",
    "BroadcastPattern",
    "configure_logging",
    "BroadcastPlan",
    "BroadcastResult",
    "ExpandPlan",
    "resolve_broadcast",
    "Graph",
    "Node",
    "BroadcastOp",
    "broadcast_add",
    "broadcast_binary",
    "broadcast_div",
    "broadcast_mul",
    "broadcast_pow",
    "broadcast_sub",
    "Tensor",
    "MachineOptions",
    "MachineState",
    "TapeMachine",
]
