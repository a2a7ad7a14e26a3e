"""
Broadcast-aware binary operators.

Importing this package registers the built-in combining functions
(``add``, ``sub``, ``mul``, ``div``, ``pow``) in the `BroadcastOp` registry.
"""

from ._broadcast_ops import (
    BroadcastOp,
    OperatorRecord,
    broadcast_add,
    broadcast_binary,
    broadcast_div,
    broadcast_mul,
    broadcast_pow,
    broadcast_sub,
)

__all__ = [
    BroadcastOp.__name__,
    OperatorRecord.__name__,
    broadcast_add.__name__,
    broadcast_binary.__name__,
    broadcast_div.__name__,
    broadcast_mul.__name__,
    broadcast_pow.__name__,
    broadcast_sub.__name__,
]
