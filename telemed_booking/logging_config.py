"""Logging setup shared by the server, the client and the console app."""

import logging

from rich.logging import RichHandler


def setup_logging(log_level: str = "INFO") -> None:
    """Route stdlib logging through rich."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(name)s - %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
