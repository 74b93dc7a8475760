"""
Logging setup for the coachauth CLI.

The library only creates module loggers; applications configure handlers.
"""

import logging

from rich.logging import RichHandler


def configure_logging(debug: bool = False) -> None:
    """Send coachauth logs to the terminal through rich."""
    level = logging.DEBUG if debug else logging.INFO
    handler = RichHandler(rich_tracebacks=True, show_path=debug)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    root = logging.getLogger("coachauth")
    root.handlers = [handler]
    root.setLevel(level)
    root.propagate = False

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
