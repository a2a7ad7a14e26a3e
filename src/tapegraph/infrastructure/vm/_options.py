"""
Tape machine configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MachineOptions:
    """
    Options controlling a `TapeMachine` run.

    Attributes
    ----------
    watch_nan : bool
        Fail with `NonFiniteValueError` when an op node produces NaN.
    watch_inf : bool
        Fail with `NonFiniteValueError` when an op node produces +/-Inf.
    trace : bool
        Log every executed instruction at DEBUG level.
    logger : Optional[logging.Logger]
        Logger used by the machine. Defaults to the module logger of
        `tapegraph.infrastructure.vm._tape_machine`.
    """

    watch_nan: bool = False
    watch_inf: bool = False
    trace: bool = False
    logger: Optional[logging.Logger] = None
