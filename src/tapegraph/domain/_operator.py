"""
Graph operator interface definitions.

This module defines the abstract base class for operators attached to
non-leaf graph nodes. An operator is identified by a name, has a fixed
arity, infers its output shape at graph-construction time, and computes its
output value at execution time from already-computed operand values.

The tape machine only relies on this interface; it never inspects concrete
operator classes.
"""

from abc import ABC, abstractmethod
from typing import Sequence, Tuple

from ._value import IValue


class Operator(ABC):
    """
    Abstract base class for graph operators.

    Subclasses describe one operation and must provide:

    - `name`: a stable identifier used in node labels and logs,
    - `arity`: the exact number of operands,
    - `infer_shape`: static output-shape inference (construction time),
    - `execute`: numeric evaluation (execution time).

    Notes
    -----
    - Operators are attached to exactly one node. Per-application state (for
      example a resolved broadcast plan) may therefore be stored on the
      operator instance.
    - `execute` must not mutate its inputs; it returns a new value.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Stable operator identifier (e.g. ``"add"``)."""
        ...

    @property
    @abstractmethod
    def arity(self) -> int:
        """Exact number of operands the operator consumes."""
        ...

    @abstractmethod
    def infer_shape(self, *shapes: Tuple[int, ...]) -> Tuple[int, ...]:
        """
        Infer the output shape from the operands' static shapes.

        Parameters
        ----------
        *shapes : tuple[int, ...]
            Operand shapes, one per operand.

        Returns
        -------
        tuple[int, ...]
            The output shape.

        Raises
        ------
        ValueError
            If the operand shapes are incompatible with the operator.
        """
        ...

    @abstractmethod
    def execute(self, inputs: Sequence[IValue]) -> IValue:
        """
        Compute the output value from the operand values.

        Parameters
        ----------
        inputs : Sequence[IValue]
            Operand values, in operand order.

        Returns
        -------
        IValue
            A newly allocated output value.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
