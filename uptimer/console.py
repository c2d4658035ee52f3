"""Console output helpers: ANSI colors, colored log lines, window hiding."""

import logging
import sys

RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
RESET = "\033[0m"

_LEVEL_COLORS = {
    logging.CRITICAL: RED,
    logging.ERROR: RED,
    logging.WARNING: YELLOW,
    logging.INFO: GREEN,
}


def colorize(text: str, color: str, enabled: bool = True) -> str:
    """Wrap text in an ANSI color sequence when enabled."""
    if not enabled:
        return text
    return f"{color}{text}{RESET}"


class ColorFormatter(logging.Formatter):
    """Formatter that colors the message by level (errors red, warnings yellow, info green)."""

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_color: bool = True) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno)
        if color is None:
            return line
        return colorize(line, color, self.use_color)


def supports_color(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def hide_console_window(platform: str | None = None) -> bool:
    """Hide the console window on Windows.

    Returns:
        True if a window was hidden, False on other platforms or without a console.
    """
    if (platform or sys.platform) != "win32":
        return False

    import ctypes

    hwnd = ctypes.windll.kernel32.GetConsoleWindow()
    if not hwnd:
        return False
    ctypes.windll.user32.ShowWindow(hwnd, 0)  # SW_HIDE
    return True
