from ._tensor import Tensor, DEFAULT_DTYPE

__all__ = [
    Tensor.__name__,
    "DEFAULT_DTYPE",
]
