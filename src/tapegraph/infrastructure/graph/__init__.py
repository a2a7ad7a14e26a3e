from ._node import Node
from ._graph import Graph

__all__ = [
    Node.__name__,
    Graph.__name__,
]
