"""
Tape machine: linearized execution of a computation graph.

A `TapeMachine` compiles a `Graph` into a dependency-respecting list of
instructions (the "tape") and executes it, writing each op node's result
into the node's value slot.

Lifecycle
---------
The machine is a small state machine::

    BUILT --compile--> COMPILED --run_all--> RUNNING --> DONE
      ^                                        |
      +------------- (execution error) --------+

    any state --close--> CLOSED

State-specific behavior of `compile`, `run_all`, `reset` and `close` is
registered as control paths (see `create_path_builder`) keyed by
`TapeMachine.state`. Calling an operation in a state with no registered path
raises `MachineStateError`.

Resources
---------
The tape and the register file are the machine's working buffers. The
register file holds the values produced during the current run, keyed by
node id; instructions read their operands from it, so a run only sees values
loaded or computed by that run. `close()` releases them and must run exactly once
per machine, on every exit path; use the machine as a context manager or
call `close()` in a ``finally`` block.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from ...domain._errors import (
    ExecutionError,
    MachineStateError,
    NonFiniteValueError,
)
from ...domain.utils._control_path import create_path_builder
from ..graph._graph import Graph
from ..tensor._tensor import Tensor
from ._instructions import Instruction, compile_node
from ._options import MachineOptions

logger = logging.getLogger(__name__)


class MachineState(Enum):
    """Lifecycle states of a `TapeMachine`."""

    BUILT = "built"
    COMPILED = "compiled"
    RUNNING = "running"
    DONE = "done"
    CLOSED = "closed"

    def __str__(self) -> str:
        return self.value


machine_control_path = create_path_builder("state")


def _usage_error(method: Callable[..., Any], state: Any) -> MachineStateError:
    return MachineStateError(method.__name__, state)


class TapeMachine:
    """
    Executes a graph through a compiled instruction tape.

    Parameters
    ----------
    graph : Graph
        Graph to execute. The machine does not own the graph; it only writes
        op node value slots.
    options : Optional[MachineOptions], optional
        Run options (NaN/Inf watching, tracing, logger).

    Examples
    --------
    >>> g = Graph()
    >>> a = g.add_leaf([100.0, 200.0], name="a")
    >>> b = g.add_leaf([[1.0, 2.0], [3.0, 4.0]], name="b")
    >>> c = broadcast_add(a, b, left_axes=[1])
    >>> with TapeMachine(g) as m:
    ...     m.run_all()
    >>> c.value.tolist()
    [[101.0, 102.0], [203.0, 204.0]]
    """

    def __init__(self, graph: Graph, options: Optional[MachineOptions] = None) -> None:
        if not isinstance(graph, Graph):
            raise TypeError(f"TapeMachine expects a Graph, got {type(graph)!r}")
        self._graph = graph
        self._options = options or MachineOptions()
        self._log = self._options.logger or logger
        self._tape: List[Instruction] = []
        self._registers: Dict[int, Tensor] = {}
        self._executed = 0
        self._state = MachineState.BUILT

    # ---------------------------------------------------------------------
    # Introspection
    # ---------------------------------------------------------------------
    @property
    def state(self) -> MachineState:
        return self._state

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def options(self) -> MachineOptions:
        return self._options

    @property
    def instructions(self) -> Tuple[Instruction, ...]:
        """The compiled tape (empty before compilation and after close)."""
        return tuple(self._tape)

    @property
    def executed(self) -> int:
        """Number of instructions completed by the last run."""
        return self._executed

    # ---------------------------------------------------------------------
    # State-dispatched operations (control paths registered below)
    # ---------------------------------------------------------------------
    def compile(self) -> None:
        """
        Linearize the graph into the instruction tape.

        Raises
        ------
        CyclicGraphError
            If the graph cannot be topologically ordered.
        MachineStateError
            If the machine is running or closed.
        """
        ...

    def run_all(self) -> None:
        """
        Execute every instruction of the tape, in order.

        Compiles first when the machine has not been compiled. Re-running a
        finished machine recomputes every op node from the current leaf
        values.

        Raises
        ------
        ExecutionError
            On the first failing instruction. The remaining instructions are
            not executed, values written earlier are kept, and the machine
            returns to BUILT so that a retry recompiles.
        CyclicGraphError
            If implicit compilation fails.
        MachineStateError
            If the machine is running or closed.
        """
        ...

    def reset(self) -> None:
        """
        Clear computed op node values and the register file, keeping the tape.

        Raises
        ------
        MachineStateError
            If the machine is running or closed.
        """
        ...

    def close(self) -> None:
        """
        Release the machine's working buffers and move to CLOSED.

        Closing an already closed machine does nothing.
        """
        ...

    # ---------------------------------------------------------------------
    # Scoped use
    # ---------------------------------------------------------------------
    def __enter__(self) -> "TapeMachine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"TapeMachine(state={self._state}, instructions={len(self._tape)}, "
            f"graph={self._graph!r})"
        )

    # ---------------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------------
    def _check_finite(self, instr: Instruction, out: Tensor) -> None:
        opts = self._options
        if not (opts.watch_nan or opts.watch_inf):
            return
        arr = np.asarray(out)
        if not np.issubdtype(arr.dtype, np.inexact):
            return
        if opts.watch_nan and np.isnan(arr).any():
            raise NonFiniteValueError(instr.node, "nan")
        if opts.watch_inf and np.isinf(arr).any():
            raise NonFiniteValueError(instr.node, "inf")

    def _abort(self, index: int, instr: Instruction, exc: BaseException) -> None:
        self._log.error(
            "Instruction %d/%d (%s) failed: %s", index + 1, len(self._tape), instr, exc
        )
        self._tape = []
        self._registers.clear()
        self._state = MachineState.BUILT


# -------------------------------------------------------------------------
# compile
# -------------------------------------------------------------------------
@machine_control_path(TapeMachine, TapeMachine.compile, MachineState.BUILT, _usage_error)
@machine_control_path(TapeMachine, TapeMachine.compile, MachineState.COMPILED)
@machine_control_path(TapeMachine, TapeMachine.compile, MachineState.DONE)
def _compile(self: TapeMachine) -> None:
    order = self._graph.topological_order()
    self._tape = [compile_node(n) for n in order]
    self._registers.clear()
    self._executed = 0
    self._state = MachineState.COMPILED
    self._log.debug("Compiled %d instruction(s) for %r", len(self._tape), self._graph)


# -------------------------------------------------------------------------
# run_all
# -------------------------------------------------------------------------
def _run_tape(self: TapeMachine) -> None:
    self._state = MachineState.RUNNING
    self._executed = 0
    self._registers.clear()
    trace = self._options.trace
    for index, instr in enumerate(self._tape):
        if trace:
            self._log.debug("exec %d: %s", index, instr)
        try:
            out = instr.run(self._registers)
            if not instr.node.is_leaf:
                self._check_finite(instr, out)
        except ExecutionError as exc:
            self._abort(index, instr, exc)
            raise
        except Exception as exc:
            self._abort(index, instr, exc)
            raise ExecutionError(instr.node, str(exc)) from exc
        self._registers[instr.node.id] = out
        if not instr.node.is_leaf:
            instr.node._set_value(out)
        self._executed += 1
    self._state = MachineState.DONE
    self._log.debug("Executed %d instruction(s)", self._executed)


@machine_control_path(TapeMachine, TapeMachine.run_all, MachineState.BUILT, _usage_error)
def _run_all_built(self: TapeMachine) -> None:
    self.compile()
    _run_tape(self)


@machine_control_path(TapeMachine, TapeMachine.run_all, MachineState.COMPILED)
@machine_control_path(TapeMachine, TapeMachine.run_all, MachineState.DONE)
def _run_all_compiled(self: TapeMachine) -> None:
    _run_tape(self)


# -------------------------------------------------------------------------
# reset
# -------------------------------------------------------------------------
@machine_control_path(TapeMachine, TapeMachine.reset, MachineState.BUILT, _usage_error)
@machine_control_path(TapeMachine, TapeMachine.reset, MachineState.COMPILED)
@machine_control_path(TapeMachine, TapeMachine.reset, MachineState.DONE)
def _reset(self: TapeMachine) -> None:
    self._graph.reset()
    self._registers.clear()
    self._executed = 0
    if self._state is MachineState.DONE:
        self._state = MachineState.COMPILED


# -------------------------------------------------------------------------
# close
# -------------------------------------------------------------------------
@machine_control_path(TapeMachine, TapeMachine.close, MachineState.BUILT)
@machine_control_path(TapeMachine, TapeMachine.close, MachineState.COMPILED)
@machine_control_path(TapeMachine, TapeMachine.close, MachineState.RUNNING)
@machine_control_path(TapeMachine, TapeMachine.close, MachineState.DONE)
def _close(self: TapeMachine) -> None:
    self._tape = []
    self._registers.clear()
    self._state = MachineState.CLOSED
    self._log.debug("Closed %r", self)


@machine_control_path(TapeMachine, TapeMachine.close, MachineState.CLOSED)
def _close_closed(self: TapeMachine) -> None:
    return None
