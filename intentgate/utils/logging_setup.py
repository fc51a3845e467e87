import logging
import sys
from typing import Union

_CONFIGURED = False


def setup_logging(level: Union[int, str] = logging.INFO):
    """
    Configure logging idempotently.
    Safe to call multiple times.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    root = logging.getLogger()
    if root.handlers:
        # Someone else owns the handlers; leave them alone
        _CONFIGURED = True
        return

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    _CONFIGURED = True
