"""Shared logging helpers for regwatch."""

from __future__ import annotations

import logging

from .errors import ConfigurationError


def resolve_log_level(value: int | str) -> int:
    """Translate ``"debug"``/``"INFO"``/``10`` style values into a logging level."""

    if isinstance(value, int):
        return value
    level = logging.getLevelNamesMapping().get(value.strip().upper())
    if level is None:
        raise ConfigurationError(f"Unknown log level: {value!r}")
    return level


def configure_logging(*, level: int | str = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with a terse CLI-friendly format.

    Pass ``force=True`` to reconfigure during tests or when the CLI overrides the
    level after argument parsing.
    """

    logging.basicConfig(
        level=resolve_log_level(level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
