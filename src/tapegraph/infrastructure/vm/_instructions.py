"""
Tape instructions.

A compiled tape is a list of instructions in topological order. Each
instruction reads its inputs from the machine's register file (per-run
values keyed by node id) and returns the value it produces; storing that
value in the registers and in the node's value slot is the machine's job.

Leaf nodes compile to `LoadLeaf`, which loads the bound input value; op
nodes compile to `ExecuteOp`, which evaluates the node's operator on the
operands' register values.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping

from ..graph._node import Node
from ..tensor._tensor import Tensor

Registers = Mapping[int, Tensor]


@dataclass(frozen=True)
class Instruction(ABC):
    """One step of a tape: produce the value of `node`."""

    node: Node

    @abstractmethod
    def run(self, registers: Registers) -> Tensor:
        ...

    def __str__(self) -> str:
        return f"{type(self).__name__} {self.node!r}"


@dataclass(frozen=True)
class LoadLeaf(Instruction):
    """Load the input value bound to a leaf node."""

    def run(self, registers: Registers) -> Tensor:
        value = self.node.value
        if value is None:
            raise ValueError(f"leaf {self.node!r} has no bound value")
        return value


@dataclass(frozen=True)
class ExecuteOp(Instruction):
    """Evaluate an op node from its operands' register values."""

    def run(self, registers: Registers) -> Tensor:
        inputs = []
        for operand in self.node.operands:
            value = registers.get(operand.id)
            if value is None:
                raise ValueError(f"operand {operand!r} has not been computed")
            inputs.append(value)
        out = self.node.op.execute(inputs)
        if out.shape != self.node.shape:
            raise ValueError(
                f"operator produced shape {out.shape}, expected {self.node.shape}"
            )
        return out


def compile_node(node: Node) -> Instruction:
    return LoadLeaf(node) if node.is_leaf else ExecuteOp(node)
