"""Banner-style progress output for trampoline runs."""

import os
import sys
from datetime import UTC, datetime


# Global color state
_color_enabled = None  # None = auto-detect, True = force on, False = force off

BANNER = "=" * 64


def set_color_enabled(enabled: bool | None) -> None:
    """
    Set global color output preference.

    Parameters
    ----------
    enabled : bool or None
        True to enable colors, False to disable, None to auto-detect.
    """
    global _color_enabled
    _color_enabled = enabled


# ANSI color codes
class Colors:
    """
    ANSI color codes for terminal output.

    Only the colors used by the banner helpers are defined.
    """

    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"


def supports_color() -> bool:
    """
    Check whether banners should be colored.

    CI log viewers render ANSI colors without a TTY, so the decision is based
    on ``TERM`` rather than on ``isatty``.

    Returns
    -------
    bool
        True if ``TERM`` is set to something other than ``dumb`` and
        ``NO_COLOR`` is not set, unless overridden by :func:`set_color_enabled`.
    """
    if _color_enabled is not None:
        return _color_enabled

    term = os.environ.get("TERM", "")
    return bool(term) and term != "dumb" and not os.environ.get("NO_COLOR")


def colorize(text: str, color: str) -> str:
    """
    Colorize text if colors are enabled.

    Parameters
    ----------
    text : str
        Text to colorize.
    color : str
        ANSI color code from the Colors class.

    Returns
    -------
    str
        Colorized text if supported, plain text otherwise.
    """
    if supports_color() and color:
        return f"{color}{text}{Colors.RESET}"
    return text


def timestamp() -> str:
    """Return the current UTC time in RFC-3339 form, e.g. ``2026-01-02T03:04:05Z``."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _banner(message: str, color: str) -> None:
    print(BANNER)
    print(colorize(f"{timestamp()}: {message}", color))
    print(BANNER, flush=True)


def log(message: str) -> None:
    """
    Print a timestamped banner without color.

    Parameters
    ----------
    message : str
        Message to display.
    """
    _banner(message, "")


def log_green(message: str) -> None:
    """
    Print a timestamped banner in green, for finished steps.

    Parameters
    ----------
    message : str
        Message to display.
    """
    _banner(message, Colors.GREEN)


def log_yellow(message: str) -> None:
    """
    Print a timestamped banner in yellow, for steps being started.

    Parameters
    ----------
    message : str
        Message to display.
    """
    _banner(message, Colors.YELLOW)


def log_red(message: str) -> None:
    """
    Print a timestamped banner in red, for failures.

    Parameters
    ----------
    message : str
        Message to display.
    """
    _banner(message, Colors.RED)


def error(message: str) -> None:
    """
    Print error message with red X symbol to stderr.

    Parameters
    ----------
    message : str
        Error message to display.
    """
    symbol = colorize("✗", Colors.RED)
    print(f"{symbol} {message}", file=sys.stderr)


def info(message: str) -> None:
    """
    Print informational message with indentation.

    Parameters
    ----------
    message : str
        Informational message to display.
    """
    print(f"  {message}")
