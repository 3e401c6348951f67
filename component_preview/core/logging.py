"""
Logging helpers for Component Preview.

All modules log through ``get_logger(__name__)`` so that a single handler on
the package logger controls the output of the whole engine.
"""

import logging

from rich.logging import RichHandler

ROOT_LOGGER_NAME = "component_preview"

_configured_handler: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    """Return a logger namespaced under the package root logger."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: str | int = "WARNING", rich_output: bool = True) -> logging.Logger:
    """
    Install a single handler on the package root logger.

    Calling this again replaces the previous handler instead of stacking a
    second one.

    Args:
        level: Logging level name or number
        rich_output: Render records with rich; plain stream output otherwise

    Returns:
        The package root logger
    """
    global _configured_handler

    root = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    if _configured_handler is not None:
        root.removeHandler(_configured_handler)

    if rich_output:
        handler: logging.Handler = RichHandler(show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root.addHandler(handler)
    root.setLevel(level)
    root.propagate = False
    _configured_handler = handler
    return root
