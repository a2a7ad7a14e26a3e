"""
Concrete tensor value implementation (NumPy backend).

This module provides `Tensor`, the concrete value type stored in graph node
value slots. It satisfies the domain-level `IValue` protocol and is backed by
a C-contiguous NumPy array.

Design notes
------------
- Tensors are immutable once constructed: the backing array is copied on
  construction and marked read-only. Operators produce new tensors rather
  than mutating their operands.
- The buffer is always row-major (C order), so the flat index of an element
  is its row-major position and `item_at` reads it directly.
- Default dtype is float64.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional, Tuple

import numpy as np

from ...domain._shape import Shape, normalize_shape

DEFAULT_DTYPE = np.float64


class Tensor:
    """
    Immutable N-dimensional numeric value (NumPy CPU backend).

    Parameters
    ----------
    shape : tuple[int, ...]
        Tensor shape. Every dimension must be non-negative.
    data : array-like, optional
        Backing values. Either already shaped as `shape` or a flat buffer of
        ``prod(shape)`` elements. If omitted, the tensor is zero-filled.
    dtype : np.dtype, optional
        Element dtype. Defaults to the dtype of `data`, or float64.

    Raises
    ------
    ValueError
        If `shape` is invalid or `data` does not hold ``prod(shape)`` elements.

    Notes
    -----
    - `_data` is a read-only, C-contiguous ndarray of shape `shape`.
    - Equality (`==`) is not overloaded; compare with `to_numpy()`.
    """

    __slots__ = ("_shape", "_data")

    def __init__(
        self,
        shape: Tuple[int, ...],
        data: Any = None,
        *,
        dtype: Any = None,
    ) -> None:
        shape = normalize_shape(shape)
        if data is None:
            arr = np.zeros(shape, dtype=DEFAULT_DTYPE if dtype is None else dtype)
        else:
            arr = np.array(data, dtype=dtype, copy=True, order="C")
            if arr.shape != shape:
                if arr.ndim != 1:
                    raise ValueError(
                        f"Backing of shape {arr.shape} does not match shape {shape}; "
                        "pass an array of that shape or a flat buffer"
                    )
                if arr.size != int(np.prod(shape, dtype=np.int64)):
                    raise ValueError(
                        f"Backing of {arr.size} element(s) cannot fill shape {shape}"
                    )
                arr = arr.reshape(shape)
        arr = np.ascontiguousarray(arr)
        arr.flags.writeable = False
        self._shape: Shape = shape
        self._data: np.ndarray = arr

    # ---------------------------------------------------------------------
    # Construction helpers
    # ---------------------------------------------------------------------
    @classmethod
    def from_numpy(cls, arr: Any, *, dtype: Any = None) -> "Tensor":
        """
        Build a tensor from an array-like object, preserving its shape.

        Parameters
        ----------
        arr : Any
            Array-like accepted by `np.asarray` (lists, scalars, ndarrays).
        dtype : np.dtype, optional
            Target dtype. Defaults to the array's own dtype.

        Returns
        -------
        Tensor
            A new tensor holding a copy of `arr`.
        """
        arr_nd = np.asarray(arr, dtype=dtype)
        return cls(arr_nd.shape, arr_nd)

    @classmethod
    def empty(cls, shape: Tuple[int, ...], dtype: Any = DEFAULT_DTYPE) -> "Tensor":
        """
        Construct a tensor of `shape` with an allocated buffer.

        The buffer is zero-initialized so that an "empty" tensor never exposes
        uninitialized memory.
        """
        return cls(shape, dtype=dtype)

    zeros = empty

    @classmethod
    def _wrap(cls, arr: np.ndarray) -> "Tensor":
        """
        Adopt a freshly computed ndarray without an extra copy.

        The caller must not keep a writeable reference to `arr`.
        """
        t = cls.__new__(cls)
        arr = np.ascontiguousarray(arr)
        arr.flags.writeable = False
        t._shape = tuple(int(d) for d in arr.shape)
        t._data = arr
        return t

    # ---------------------------------------------------------------------
    # Shape / metadata
    # ---------------------------------------------------------------------
    @property
    def shape(self) -> Shape:
        """
        Return the tensor shape.

        Returns
        -------
        tuple[int, ...]
            The tensor's shape.
        """
        return self._shape

    @property
    def dtype(self) -> np.dtype:
        """Element dtype of the backing buffer."""
        return self._data.dtype

    @property
    def ndim(self) -> int:
        return len(self._shape)

    def numel(self) -> int:
        """
        Return the total number of elements in the tensor.

        Returns
        -------
        int
            Product of all dimensions in the tensor shape.
        """
        n = 1
        for d in self._shape:
            n *= d
        return n

    # ---------------------------------------------------------------------
    # Element access
    # ---------------------------------------------------------------------
    def item_at(self, index: int) -> Any:
        """
        Read one element by flat, row-major index.

        Parameters
        ----------
        index : int
            Flat index in ``[0, numel())``.

        Returns
        -------
        Any
            The element as a Python scalar.

        Raises
        ------
        IndexError
            If `index` is out of range.
        """
        n = self.numel()
        if not 0 <= index < n:
            raise IndexError(f"Flat index {index} out of range for {n} element(s)")
        return self._data.reshape(-1)[index].item()

    def flat(self) -> np.ndarray:
        """Return a read-only 1-D view of the backing buffer."""
        return self._data.reshape(-1)

    def to_numpy(self) -> np.ndarray:
        """
        Return a writeable copy of the tensor data.

        Returns
        -------
        np.ndarray
            Array of shape `shape` and dtype `dtype`.
        """
        return self._data.copy()

    def tolist(self) -> Any:
        return self._data.tolist()

    def __iter__(self) -> Iterator[Any]:
        return iter(self.flat().tolist())

    def __len__(self) -> int:
        if not self._shape:
            raise TypeError("len() of a 0-d tensor")
        return self._shape[0]

    def __array__(self, dtype: Optional[Any] = None, copy: Optional[bool] = None) -> np.ndarray:
        if dtype is None:
            return self._data.copy() if copy else self._data
        return self._data.astype(dtype)

    def __repr__(self) -> str:
        """
        Return a human-readable string representation of the tensor.
        """
        return f"Tensor(shape={self._shape}, dtype={self._data.dtype})"
