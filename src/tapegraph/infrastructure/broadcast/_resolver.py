"""
Broadcast resolution for binary elementwise operators.

This module decides, given two operand shapes and optional explicit axis
hints, how the operands are aligned and which of their dimensions are
virtually expanded (stride-0 repetition) to reach a common output shape.

Rules
-----
- Ranks are aligned against ``max_rank = max(rank_a, rank_b)``.
- A lower-rank operand without axis hints is right-aligned: the rank gap is
  the leading positions (standard trailing-dimension alignment).
- A lower-rank operand *with* axis hints keeps its real dimensions in the
  leading positions; the rank gap becomes the trailing positions, i.e. the
  operand is extended with new trailing dimensions which the hints name.
- A real size-1 dimension is broadcast only when its axis is declared.
  An undeclared size-1 dimension is an ordinary dimension and must match.
- Every declared axis must be ``< max_rank`` and must name a rank-gap
  position or a real size-1 dimension of the declaring side.

The public entry point, `resolve_broadcast`, is pure and never raises for
shape or pattern problems: it returns a `BroadcastResult` tagged either with
a `BroadcastPlan` or with the error instance describing the violation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple, Union

from ...domain._errors import InvalidBroadcastPattern, ShapeMismatch
from ...domain._shape import BroadcastPattern, Shape, normalize_shape

BroadcastError = Union[InvalidBroadcastPattern, ShapeMismatch]


@dataclass(frozen=True)
class ExpandPlan:
    """
    How one operand is virtually expanded to the output shape.

    Attributes
    ----------
    shape : tuple[int, ...]
        The operand's own shape.
    aligned_shape : tuple[int, ...]
        The operand's shape at output rank; rank-gap positions hold 1.
    padded_axes : tuple[int, ...]
        Output axes that are rank-gap positions for this operand.
    broadcast_axes : tuple[int, ...]
        Output axes on which the operand is stride-0 expanded (rank-gap
        positions plus declared size-1 dimensions).
    strides : tuple[int, ...]
        Element strides of the aligned operand over the output shape, with 0
        on every broadcast axis.
    """

    shape: Shape
    aligned_shape: Shape
    padded_axes: Tuple[int, ...]
    broadcast_axes: Tuple[int, ...]
    strides: Tuple[int, ...] = field(default=())

    def source_index(self, coord: Tuple[int, ...]) -> int:
        """
        Map an output coordinate to a flat index into the operand buffer.

        The coordinate component is zeroed on every broadcast axis.
        """
        return sum(c * s for c, s in zip(coord, self.strides))


@dataclass(frozen=True)
class BroadcastPlan:
    """
    Successful broadcast resolution.

    Attributes
    ----------
    output_shape : tuple[int, ...]
        Unified output shape.
    left : ExpandPlan
        Expansion of the left operand.
    right : ExpandPlan
        Expansion of the right operand.
    pattern : BroadcastPattern
        The normalized axis hints the plan was resolved with.
    """

    output_shape: Shape
    left: ExpandPlan
    right: ExpandPlan
    pattern: BroadcastPattern


@dataclass(frozen=True)
class BroadcastResult:
    """
    Tagged outcome of `resolve_broadcast`: either a plan or an error.
    """

    plan: Optional[BroadcastPlan] = None
    error: Optional[BroadcastError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> BroadcastPlan:
        """
        Return the plan, or raise the carried error unchanged.

        Raises
        ------
        InvalidBroadcastPattern, ShapeMismatch
            If resolution failed.
        """
        if self.error is not None:
            raise self.error
        assert self.plan is not None
        return self.plan


def _row_major_strides(shape: Shape) -> Tuple[int, ...]:
    strides = [0] * len(shape)
    step = 1
    for i in range(len(shape) - 1, -1, -1):
        strides[i] = step
        step *= max(shape[i], 1)
    return tuple(strides)


def _align(
    shape: Shape,
    declared: Tuple[int, ...],
    max_rank: int,
) -> Tuple[Shape, Tuple[int, ...]]:
    """
    Align `shape` to `max_rank`, returning the aligned shape and the rank-gap
    axes.
    """
    gap = max_rank - len(shape)
    if gap == 0:
        return shape, ()
    if declared:
        padded = tuple(range(len(shape), max_rank))
        return shape + (1,) * gap, padded
    padded = tuple(range(gap))
    return (1,) * gap + shape, padded


def _check_declared(
    side: str,
    declared: Tuple[int, ...],
    aligned: Shape,
    padded: Tuple[int, ...],
) -> Optional[InvalidBroadcastPattern]:
    for axis in declared:
        if axis in padded:
            continue
        if aligned[axis] != 1:
            return InvalidBroadcastPattern(
                side,
                axis,
                f"the {side} operand has size {aligned[axis]} on this axis; "
                "only size-1 or rank-gap dimensions can be broadcast",
            )
    return None


def resolve_broadcast(
    shape_a: Iterable[int],
    shape_b: Iterable[int],
    left_axes: Optional[Iterable[int]] = None,
    right_axes: Optional[Iterable[int]] = None,
) -> BroadcastResult:
    """
    Resolve how two operand shapes broadcast against each other.

    Parameters
    ----------
    shape_a : Iterable[int]
        Shape of the left operand.
    shape_b : Iterable[int]
        Shape of the right operand.
    left_axes : Optional[Iterable[int]], optional
        Output axes on which the left operand is declared broadcastable.
    right_axes : Optional[Iterable[int]], optional
        Output axes on which the right operand is declared broadcastable.

    Returns
    -------
    BroadcastResult
        A success carrying a `BroadcastPlan`, or a failure carrying an
        `InvalidBroadcastPattern` or `ShapeMismatch` instance.

    Raises
    ------
    ValueError
        Only if a shape itself is malformed (negative or non-integer sizes).

    Examples
    --------
    >>> resolve_broadcast((2,), (2, 2), left_axes=[1]).unwrap().output_shape
    (2, 2)
    >>> resolve_broadcast((2,), (2, 2), left_axes=[0]).ok
    False
    """
    a = normalize_shape(shape_a)
    b = normalize_shape(shape_b)
    try:
        pattern = BroadcastPattern.of(left_axes, right_axes)
    except InvalidBroadcastPattern as e:
        return BroadcastResult(error=e)

    max_rank = max(len(a), len(b))
    aligned_a, padded_a = _align(a, pattern.left, max_rank)
    aligned_b, padded_b = _align(b, pattern.right, max_rank)

    # Range checks on both sides come first so an out-of-range axis is always
    # reported as a pattern error.
    for side, declared in (("left", pattern.left), ("right", pattern.right)):
        for axis in declared:
            if axis >= max_rank:
                return BroadcastResult(
                    error=InvalidBroadcastPattern(
                        side, axis, f"axis is out of range for output rank {max_rank}"
                    )
                )

    err = _check_declared("left", pattern.left, aligned_a, padded_a)
    if err is None:
        err = _check_declared("right", pattern.right, aligned_b, padded_b)
    if err is not None:
        return BroadcastResult(error=err)

    expand_a = set(padded_a) | set(pattern.left)
    expand_b = set(padded_b) | set(pattern.right)

    out = []
    for i in range(max_rank):
        da, db = aligned_a[i], aligned_b[i]
        ea, eb = i in expand_a, i in expand_b
        if ea and eb:
            out.append(1)
        elif ea:
            out.append(db)
        elif eb:
            out.append(da)
        elif da == db:
            out.append(da)
        else:
            detail = ""
            if 1 in (da, db):
                detail = "size-1 dimension is not declared as a broadcast axis"
            return BroadcastResult(error=ShapeMismatch(a, b, axis=i, detail=detail))

    def _plan(shape: Shape, aligned: Shape, padded, expand) -> ExpandPlan:
        base = _row_major_strides(aligned)
        strides = tuple(0 if i in expand else s for i, s in enumerate(base))
        return ExpandPlan(
            shape=shape,
            aligned_shape=aligned,
            padded_axes=tuple(padded),
            broadcast_axes=tuple(sorted(expand)),
            strides=strides,
        )

    plan = BroadcastPlan(
        output_shape=tuple(out),
        left=_plan(a, aligned_a, padded_a, expand_a),
        right=_plan(b, aligned_b, padded_b, expand_b),
        pattern=pattern,
    )
    return BroadcastResult(plan=plan)
