from ._options import MachineOptions
from ._instructions import ExecuteOp, Instruction, LoadLeaf
from ._tape_machine import MachineState, TapeMachine

__all__ = [
    MachineOptions.__name__,
    ExecuteOp.__name__,
    Instruction.__name__,
    LoadLeaf.__name__,
    MachineState.__name__,
    TapeMachine.__name__,
]
