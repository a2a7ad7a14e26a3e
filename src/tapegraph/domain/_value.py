"""
Tensor value interface definitions.

This module defines the domain-level interface for the values that flow
through a computation graph, using structural typing. The interface captures
only what the graph and tape machine need from a tensor backend:

- a shape query,
- flat-buffer element reads,
- an empty-buffer constructor for a given shape.

Concrete backends (the NumPy-backed `Tensor` in the infrastructure layer)
satisfy this protocol without inheriting from it.
"""

from __future__ import annotations

from typing import Any, Protocol, Tuple, runtime_checkable


@runtime_checkable
class IValue(Protocol):
    """
    Tensor value interface.

    An `IValue` is an immutable N-dimensional array with a shape and a
    contiguous, row-major backing buffer of homogeneous numeric elements.
    """

    @property
    def shape(self) -> Tuple[int, ...]:
        """
        Return the shape of the value.

        Returns
        -------
        tuple[int, ...]
            Ordered, non-negative dimension sizes.
        """
        ...

    @property
    def dtype(self) -> Any:
        """
        Return the element type of the backing buffer.
        """
        ...

    def numel(self) -> int:
        """
        Return the number of elements in the backing buffer.

        Returns
        -------
        int
            ``prod(shape)``, or 0 if any dimension is 0.
        """
        ...

    def item_at(self, index: int) -> Any:
        """
        Read one element of the backing buffer by flat (row-major) index.

        Parameters
        ----------
        index : int
            Flat index in ``[0, numel())``.

        Raises
        ------
        IndexError
            If `index` is out of range.
        """
        ...

    @classmethod
    def empty(cls, shape: Tuple[int, ...], dtype: Any = ...) -> "IValue":
        """
        Construct a value of `shape` with an allocated, zero-filled buffer.
        """
        ...
