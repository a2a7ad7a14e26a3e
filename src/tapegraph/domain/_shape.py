"""
Shape and broadcast-pattern value types.

`Shape` is a plain tuple of non-negative dimension sizes. A
`BroadcastPattern` pairs the axis hints declared for the left and right
operands of a binary broadcast operator. Axis hints are byte-sized, 0-based
indices into the *output* shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from ._errors import InvalidBroadcastPattern

Shape = Tuple[int, ...]

MAX_AXIS = 255


def normalize_shape(shape: Iterable[int]) -> Shape:
    """
    Validate and normalize a shape-like iterable into a `Shape`.

    Parameters
    ----------
    shape : Iterable[int]
        Dimension sizes.

    Returns
    -------
    Shape
        Tuple of Python ints.

    Raises
    ------
    ValueError
        If any dimension is negative or not an integer.
    """
    out = []
    for d in shape:
        if isinstance(d, bool) or not hasattr(d, "__index__"):
            raise ValueError(f"Shape dimensions must be integers, got {d!r}")
        d = int(d)
        if d < 0:
            raise ValueError(f"Shape dimensions must be non-negative, got {d}")
        out.append(d)
    return tuple(out)


def _normalize_axes(side: str, axes: Optional[Iterable[int]]) -> Tuple[int, ...]:
    if axes is None:
        return ()
    if isinstance(axes, (bytes, bytearray)):
        axes = list(axes)
    seen = []
    for a in axes:
        if isinstance(a, bool) or not hasattr(a, "__index__"):
            raise InvalidBroadcastPattern(side, a, "axis must be an integer")
        a = int(a)
        if a < 0 or a > MAX_AXIS:
            raise InvalidBroadcastPattern(
                side, a, f"axis must be within [0, {MAX_AXIS}]"
            )
        if a not in seen:
            seen.append(a)
    return tuple(sorted(seen))


@dataclass(frozen=True)
class BroadcastPattern:
    """
    Declared broadcast axes for both operands of a binary operator.

    Attributes
    ----------
    left : tuple[int, ...]
        Sorted, de-duplicated output axes on which the left operand is
        broadcast.
    right : tuple[int, ...]
        Sorted, de-duplicated output axes on which the right operand is
        broadcast.
    """

    left: Tuple[int, ...] = ()
    right: Tuple[int, ...] = ()

    @classmethod
    def of(
        cls,
        left: Optional[Iterable[int]] = None,
        right: Optional[Iterable[int]] = None,
    ) -> "BroadcastPattern":
        """
        Build a pattern from raw axis lists (``None`` means no hints).

        Raises
        ------
        InvalidBroadcastPattern
            If an axis is not a byte-sized non-negative integer.
        """
        return cls(_normalize_axes("left", left), _normalize_axes("right", right))

    def side(self, name: str) -> Tuple[int, ...]:
        return self.left if name == "left" else self.right

    def is_empty(self) -> bool:
        return not self.left and not self.right
