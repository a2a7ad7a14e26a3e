"""
Broadcast resolution and stride-0 expansion.
"""

from ._resolver import (
    BroadcastPlan,
    BroadcastResult,
    ExpandPlan,
    resolve_broadcast,
)
from ._expand import combine, expand_view

__all__ = [
    BroadcastPlan.__name__,
    BroadcastResult.__name__,
    ExpandPlan.__name__,
    resolve_broadcast.__name__,
    combine.__name__,
    expand_view.__name__,
]
