# logging_utils.py
# Log handler wiring. Components take a logger argument; this only decides
# where records from the swarm_relay logger tree end up.

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "swarm_relay"


def configure_logging(level: str | int = "INFO", console: Console | None = None) -> logging.Logger:
    """Attach a RichHandler to the swarm_relay logger. Safe to call repeatedly."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        handler = RichHandler(console=console, rich_tracebacks=True, show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
