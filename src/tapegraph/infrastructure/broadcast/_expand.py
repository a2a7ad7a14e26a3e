"""
CPU stride-0 expansion kernels for broadcast binary operators.

`expand_view` turns an operand array into a read-only view of the output
shape without copying data: every broadcast axis gets a stride of 0, so the
operand's single element along that axis is reused for every output
position. `combine` applies a combining function to two such views.
"""

from __future__ import annotations

from typing import Callable

import numpy as np
from numpy.lib.stride_tricks import as_strided

from ._resolver import BroadcastPlan, ExpandPlan

CombineFn = Callable[[np.ndarray, np.ndarray], np.ndarray]


def expand_view(arr: np.ndarray, plan: ExpandPlan, output_shape) -> np.ndarray:
    """
    Build a stride-0 view of `arr` over `output_shape`.

    Parameters
    ----------
    arr : np.ndarray
        Operand data of shape `plan.shape`.
    plan : ExpandPlan
        Expansion plan of the operand.
    output_shape : tuple[int, ...]
        Target shape.

    Returns
    -------
    np.ndarray
        Read-only view of shape `output_shape`.

    Raises
    ------
    ValueError
        If `arr` does not have the shape the plan was resolved for.
    """
    if tuple(arr.shape) != plan.shape:
        raise ValueError(
            f"Operand has shape {tuple(arr.shape)}, expected {plan.shape}"
        )
    aligned = np.ascontiguousarray(arr).reshape(plan.aligned_shape)
    broadcast = set(plan.broadcast_axes)
    strides = tuple(
        0 if i in broadcast else s for i, s in enumerate(aligned.strides)
    )
    return as_strided(aligned, shape=tuple(output_shape), strides=strides, writeable=False)


def combine(fn: CombineFn, a: np.ndarray, b: np.ndarray, plan: BroadcastPlan) -> np.ndarray:
    """
    Apply `fn` elementwise to two operands expanded per `plan`.

    Returns
    -------
    np.ndarray
        A new C-contiguous array of shape `plan.output_shape`.
    """
    va = expand_view(a, plan.left, plan.output_shape)
    vb = expand_view(b, plan.right, plan.output_shape)
    out = np.asarray(fn(va, vb))
    if out.shape != plan.output_shape:
        out = np.broadcast_to(out, plan.output_shape)
    return np.array(out, copy=True, order="C")
