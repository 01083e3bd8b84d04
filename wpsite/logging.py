"""
Logging for wpsite.

Example:
    from wpsite.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Creating database")
    logger.warning("Hosts entry already present")
    logger.error("Apache reload failed", exc_info=True)
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

WPSITE_THEME = Theme({
    "log.time": "dim cyan",
    "log.level.debug": "dim blue",
    "log.level.info": "green",
    "log.level.warning": "yellow",
    "log.level.error": "bold red",
    "log.level.critical": "bold white on red",
    "wpsite.success": "bold green",
    "wpsite.step": "bold blue",
    "wpsite.action.create": "green",
    "wpsite.action.delete": "red",
    "wpsite.action.skip": "yellow",
    "wpsite.danger": "bold red",
})

# Status output goes to stderr so stdout stays clean for reports
console = Console(theme=WPSITE_THEME, stderr=True)

_initialized = False


def setup_logging(
    level: str = "INFO",
    show_time: bool = True,
    show_path: bool = False,
    rich_tracebacks: bool = True,
) -> None:
    """
    Initialize wpsite logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        show_time: Show timestamps in log output
        show_path: Show file path in log output
        rich_tracebacks: Use rich formatting for tracebacks

    Note:
        Subsequent calls only adjust the level, so the CLI can raise
        verbosity after the first logger has been requested.
    """
    global _initialized

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if _initialized:
        logging.getLogger().setLevel(numeric_level)
        return

    handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=rich_tracebacks,
        markup=False,
        tracebacks_show_locals=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logging.basicConfig(
        level=numeric_level,
        handlers=[handler],
        force=True,
    )

    # The MySQL driver logs connection arguments at debug level
    logging.getLogger("mysql.connector").setLevel(logging.WARNING)

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a given module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if not _initialized:
        setup_logging()

    return logging.getLogger(name)


class SiteLogger:
    """
    wpsite-specific logger.

    Wraps the standard logger with helpers for step progress and
    resource actions.
    """

    def __init__(self, name: str):
        self.logger = get_logger(name)
        self.console = console

    def debug(self, message: str, *args, **kwargs) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs) -> None:
        self.logger.error(message, *args, **kwargs)

    def success(self, message: str) -> None:
        """Print a success line."""
        self.console.print(f"[wpsite.success]✓[/wpsite.success] {escape(message)}")

    def step(self, index: int, total: int, name: str) -> None:
        """
        Announce a provisioning step.

        Args:
            index: 1-based step number
            total: Number of steps in the sequence
            name: Step name
        """
        self.console.print(
            f"[wpsite.step][{index}/{total}][/wpsite.step] {escape(name)}"
        )

    def action(self, action: str, target: str, details: Optional[str] = None) -> None:
        """
        Log a resource action (create/delete/skip).

        Args:
            action: Action type
            target: Resource description
            details: Optional details about the action
        """
        symbols = {
            "create": "+",
            "delete": "-",
            "skip": "~",
        }
        symbol = symbols.get(action.lower(), "•")
        style = f"wpsite.action.{action.lower()}"
        if action.lower() not in symbols:
            style = "default"

        msg = f"[{style}]{symbol}[/{style}] {escape(target)}"
        if details:
            msg += f" [dim]({escape(details)})[/dim]"

        self.console.print(msg)

    def warning_banner(self, title: str, lines: Optional[list] = None) -> None:
        """
        Print a framed warning, used before destructive operations.

        Args:
            title: Banner title
            lines: Body lines
        """
        separator = "-" * 70
        self.console.print(f"[wpsite.danger]{separator}[/wpsite.danger]")
        self.console.print(f"[wpsite.danger]{escape(title)}[/wpsite.danger]")
        self.console.print(f"[wpsite.danger]{separator}[/wpsite.danger]")
        for line in lines or []:
            self.console.print(escape(line))
        self.console.print(f"[wpsite.danger]{separator}[/wpsite.danger]")


def get_site_logger(name: str) -> SiteLogger:
    """
    Get a SiteLogger instance for the given module.

    Example:
        logger = get_site_logger(__name__)
        logger.success("Site created")
        logger.action("create", "/var/www/html/demo")
    """
    return SiteLogger(name)
