"""
Graph-construction and execution exceptions for tapegraph.

This module defines the error taxonomy used across the broadcast resolver,
operator application, graph bookkeeping, and tape execution. Each error
carries structured attributes describing the violated condition so callers
can distinguish "bad axis hint" from "incompatible shapes" from "runtime
failure" without parsing messages.

All errors derive from :class:`TapeGraphError`. Construction-time errors
additionally derive from `ValueError`; execution and usage errors derive
from `RuntimeError`.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class TapeGraphError(Exception):
    """Base class for every error raised by tapegraph."""


class InvalidBroadcastPattern(TapeGraphError, ValueError):
    """
    Raised when a declared broadcast axis cannot be honoured.

    A declared axis is invalid when it is out of range for the output rank,
    or when it does not name a position that is eligible for broadcasting on
    the declaring side (the operand's dimension there is neither a rank-gap
    position nor a real size-1 dimension).

    Attributes
    ----------
    side : str
        Which operand declared the axis (``"left"`` or ``"right"``).
    axis : Any
        The offending axis value as supplied by the caller.
    reason : str
        Human-readable description of the violated condition.
    """

    def __init__(self, side: str, axis: Any, reason: str) -> None:
        """
        Initialize the InvalidBroadcastPattern error.

        Parameters
        ----------
        side : str
            ``"left"`` or ``"right"``.
        axis : Any
            The offending axis value.
        reason : str
            Description of why the axis is rejected.
        """
        super().__init__(f"Invalid {side} broadcast axis {axis!r}: {reason}")
        self.side = side
        self.axis = axis
        self.reason = reason


class ShapeMismatch(TapeGraphError, ValueError):
    """
    Raised when two aligned operand dimensions disagree and neither side is
    licensed to broadcast.

    Attributes
    ----------
    shape_a : tuple[int, ...]
        Shape of the left operand.
    shape_b : tuple[int, ...]
        Shape of the right operand.
    axis : Optional[int]
        Aligned output axis at which the disagreement was found.
    """

    def __init__(
        self,
        shape_a: Sequence[int],
        shape_b: Sequence[int],
        axis: Optional[int] = None,
        detail: str = "",
    ) -> None:
        """
        Initialize the ShapeMismatch error.

        Parameters
        ----------
        shape_a : Sequence[int]
            Left operand shape.
        shape_b : Sequence[int]
            Right operand shape.
        axis : Optional[int], optional
            Aligned axis where the sizes disagree.
        detail : str, optional
            Extra explanation appended to the message.
        """
        msg = f"Shape mismatch: {tuple(shape_a)} vs {tuple(shape_b)}"
        if axis is not None:
            msg += f" at axis {axis}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)
        self.shape_a = tuple(shape_a)
        self.shape_b = tuple(shape_b)
        self.axis = axis


class CyclicGraphError(TapeGraphError, RuntimeError):
    """
    Raised when a topological order of the graph cannot be completed.

    Attributes
    ----------
    node_ids : tuple[int, ...]
        Ids of the nodes that could not be ordered.
    """

    def __init__(self, node_ids: Sequence[int]) -> None:
        super().__init__(
            f"Graph contains a cycle through node(s) {sorted(node_ids)}."
        )
        self.node_ids = tuple(node_ids)


class ExecutionError(TapeGraphError, RuntimeError):
    """
    Raised when an instruction fails while a tape machine runs.

    The underlying cause (if any) is chained via ``__cause__``.

    Attributes
    ----------
    node : Any
        The node whose instruction failed.
    """

    def __init__(self, node: Any, message: str) -> None:
        super().__init__(f"Execution of {node!r} failed: {message}")
        self.node = node


class NonFiniteValueError(ExecutionError):
    """
    Raised when NaN or Inf watching is enabled and a node produces a
    non-finite value.

    Attributes
    ----------
    kind : str
        ``"nan"`` or ``"inf"``.
    """

    def __init__(self, node: Any, kind: str) -> None:
        super().__init__(node, f"produced a value containing {kind.upper()}")
        self.kind = kind


class MachineStateError(TapeGraphError, RuntimeError):
    """
    Raised when a tape machine operation is invoked in a state that does not
    permit it (e.g. running after ``close()``).

    Attributes
    ----------
    op : str
        Name of the attempted operation.
    state : Any
        Machine state at the time of the call.
    """

    def __init__(self, op: str, state: Any) -> None:
        super().__init__(f"Cannot {op} a tape machine in state {state!s}.")
        self.op = op
        self.state = state


class GraphOwnershipError(TapeGraphError, ValueError):
    """
    Raised when a node is used with a graph that does not own it.
    """

    def __init__(self, node: Any) -> None:
        super().__init__(f"{node!r} does not belong to this graph.")
        self.node = node
