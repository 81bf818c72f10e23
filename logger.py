"""Logging helpers shared by the solver modules and the CLI."""

import logging
from typing import Optional


def configure_logging(level: int = logging.INFO) -> None:
    """Route solver and CLI records to stderr.

    The solver reports its start, periodic search progress and the final
    outcome at INFO; unsolved puzzles come through as WARNING. ``main`` maps
    its ``--log-level`` flag onto ``level``. Calling this again replaces the
    previous handler rather than stacking a second one.
    """
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a namespaced logger, configuring defaults if needed."""
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name or "zip_solver")
