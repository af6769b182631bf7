"""Logging configuration for the CLI. Library modules never add handlers."""

import logging
from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO", verbose: bool = False, console: Console | None = None) -> None:
    """Route all log records through a RichHandler on stderr."""
    resolved = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
        markup=False,
    )
    logging.basicConfig(level=resolved, format="%(message)s", datefmt="[%X]", handlers=[handler], force=True)

    # Provider SDK loggers are chatty at INFO
    for noisy in ("LiteLLM", "litellm", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING if not verbose else logging.INFO)
