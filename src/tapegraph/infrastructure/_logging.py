"""
Logging setup helper.

Library modules only create module-level loggers; handlers are configured by
the application, optionally through `configure_logging`.
"""

import logging
import sys
from typing import Optional, TextIO


def configure_logging(level: int = logging.INFO, stream: Optional[TextIO] = None) -> None:
    """
    Configure the root logger.

    Uses the format "timestamp - logger name - level - message" and attaches a
    StreamHandler writing to `stream` (stdout by default). Existing root
    handlers are replaced.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(stream or sys.stdout)],
        force=True,
    )
