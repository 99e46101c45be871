"""Terminal helpers: ANSI colors and scoped raw mode."""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO

from start_wizard.config import settings

logger = logging.getLogger(__name__)

CLEAR_SCREEN = "\x1b[2J\x1b[0;0H"


# ANSI color codes
class Color:
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[31m'
    GREEN = '\033[32m'


def color_enabled(stream: Optional[TextIO] = None) -> bool:
    """Colors are used only when the stream is a TTY and settings allow it."""
    stream = stream or sys.stdout
    try:
        return settings.color and stream.isatty()
    except (AttributeError, ValueError):
        return False


def colorize(text: str, color: str, enabled: Optional[bool] = None) -> str:
    if enabled is None:
        enabled = color_enabled()
    if not enabled:
        return text
    return f"{color}{text}{Color.RESET}"


@contextmanager
def raw_mode(stream: Optional[TextIO] = None) -> Iterator[int]:
    """Put the terminal behind *stream* into raw mode for the duration of the block.

    The previous terminal attributes are restored on every exit path,
    including exceptions and Ctrl+C, so a crash never leaves the shell raw.
    Yields the file descriptor to read keys from.
    """
    import termios
    import tty

    stream = stream or sys.stdin
    fd = stream.fileno()
    previous = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        yield fd
    finally:
        try:
            termios.tcsetattr(fd, termios.TCSADRAIN, previous)
        except termios.error as e:
            logger.debug("Could not restore terminal attributes: %s", e)
