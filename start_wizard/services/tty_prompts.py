"""Terminal prompts: arrow-key select, yes/no confirm, and validated text input.

Every prompt is async. The select prompt reads raw keys in a worker thread
(Ctrl+C arrives there as a key, not a signal); line prompts read stdin on the
event loop so a Ctrl+C cancels them without waiting on a blocked thread.
"""

import asyncio
import codecs
import logging
import os
import sys
from typing import Callable, Iterable, Iterator, NamedTuple, Optional, TextIO

from start_wizard.exceptions import InvalidInputError, PromptUnavailableError
from start_wizard.utils.terminal import CLEAR_SCREEN, raw_mode

logger = logging.getLogger(__name__)

DEFAULT_SELECT_HINT = 'Use ↑/↓ and Enter.'

KEY_READ_SIZE = 64
LINE_READ_SIZE = 4096

# Normalized key names produced by read_keys()
KEY_UP = 'up'
KEY_DOWN = 'down'
KEY_ENTER = 'enter'
KEY_INTERRUPT = 'interrupt'

_KEY_MAP = {
    '\x1b[A': KEY_UP,
    '\x1bOA': KEY_UP,
    'k': KEY_UP,
    '\x1b[B': KEY_DOWN,
    '\x1bOB': KEY_DOWN,
    'j': KEY_DOWN,
    '\r': KEY_ENTER,
    '\n': KEY_ENTER,
    '\x03': KEY_INTERRUPT,
}

_MAX_KEY_LENGTH = max(len(sequence) for sequence in _KEY_MAP)


class SelectOption(NamedTuple):
    id: str
    label: str


def is_interactive() -> bool:
    """True when both stdin and stdout are attached to a terminal."""
    try:
        return sys.stdin.isatty() and sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


# ============================================================================
# Select
# ============================================================================

def render_select(
    title: str,
    options: list[SelectOption],
    selected_index: int,
    hint: Optional[str] = None,
) -> str:
    lines = [title, '']
    for i, option in enumerate(options):
        prefix = '❯' if i == selected_index else ' '
        lines.append(f'{prefix} {option.label}')
    if hint:
        lines.append('')
        lines.append(hint)
    return '\n'.join(lines)


def run_select(
    options: list[SelectOption],
    keys: Iterable[str],
    default_index: int = 0,
    on_change: Optional[Callable[[int], None]] = None,
) -> Optional[SelectOption]:
    """Drive the select state machine from a stream of normalized key names.

    Returns the chosen option, or None on interrupt or when keys run out.
    """
    selected = default_index if 0 <= default_index < len(options) else 0
    for key in keys:
        if key == KEY_UP:
            selected = (selected - 1) % len(options)
        elif key == KEY_DOWN:
            selected = (selected + 1) % len(options)
        elif key == KEY_ENTER:
            return options[selected]
        elif key == KEY_INTERRUPT:
            return None
        else:
            continue
        if on_change:
            on_change(selected)
    return None


def split_keys(chunk: str) -> Iterator[str]:
    """Split one read's worth of input into key names.

    Several keys can arrive in a single read (typed ahead, held arrow keys),
    so the longest known sequence is matched first at each position. Anything
    unknown is yielded one character at a time.
    """
    i = 0
    while i < len(chunk):
        for size in range(min(_MAX_KEY_LENGTH, len(chunk) - i), 0, -1):
            key = _KEY_MAP.get(chunk[i:i + size])
            if key is not None:
                yield key
                i += size
                break
        else:
            yield chunk[i]
            i += 1


def read_keys(fd: int) -> Iterator[str]:
    """Yield normalized key names read from a raw-mode file descriptor."""
    decoder = codecs.getincrementaldecoder('utf-8')(errors='ignore')
    while True:
        data = os.read(fd, KEY_READ_SIZE)
        if not data:
            return
        yield from split_keys(decoder.decode(data))


def _select_blocking(
    title: str,
    options: list[SelectOption],
    default_index: int,
    hint: Optional[str],
) -> Optional[SelectOption]:
    start = default_index if 0 <= default_index < len(options) else 0

    def redraw(selected: int) -> None:
        # Raw mode disables output post-processing, so emit CRLF explicitly.
        text = render_select(title, options, selected, hint).replace('\n', '\r\n')
        sys.stdout.write(f'{CLEAR_SCREEN}{text}\r\n')
        sys.stdout.flush()

    with raw_mode(sys.stdin) as fd:
        redraw(start)
        return run_select(options, read_keys(fd), default_index=start, on_change=redraw)


async def select_prompt(
    title: str,
    options: list[SelectOption],
    default_index: int = 0,
    hint: Optional[str] = DEFAULT_SELECT_HINT,
) -> Optional[SelectOption]:
    """Arrow-key single choice. Requires a TTY; returns None on Ctrl+C."""
    if not is_interactive():
        raise PromptUnavailableError(f'Cannot prompt without a TTY: {title}')
    if len(options) < 2:
        raise ValueError('select_prompt requires at least 2 options.')
    return await asyncio.to_thread(_select_blocking, title, list(options), default_index, hint)


# ============================================================================
# Line input
# ============================================================================

async def read_line(prompt: str, stdin: Optional[TextIO] = None) -> str:
    """Write *prompt* and read one line from *stdin* on the event loop.

    The read never blocks a worker thread, so cancelling the awaiting task
    (Ctrl+C under asyncio.run) unwinds immediately. Raises EOFError when
    the input is closed.
    """
    stdin = stdin or sys.stdin
    sys.stdout.write(prompt)
    sys.stdout.flush()

    loop = asyncio.get_running_loop()
    fd = stdin.fileno()
    future: asyncio.Future[bytes] = loop.create_future()

    def _on_readable() -> None:
        try:
            data = os.read(fd, LINE_READ_SIZE)
        except OSError as e:
            if not future.done():
                future.set_exception(e)
            return
        if not future.done():
            future.set_result(data)

    loop.add_reader(fd, _on_readable)
    try:
        data = await future
    finally:
        loop.remove_reader(fd)
    if not data:
        raise EOFError
    return data.decode('utf-8', errors='ignore').rstrip('\r\n')


# ============================================================================
# Confirm
# ============================================================================

def parse_confirm_answer(answer: str, default_value: bool) -> bool:
    trimmed = answer.strip().lower()
    if not trimmed:
        return default_value
    return trimmed in ('y', 'yes')


async def confirm_prompt(question: str, default_value: bool = True) -> bool:
    """Yes/no question. Without a TTY the default is returned unasked."""
    if not is_interactive():
        logger.debug("No TTY; answering %r with default %s", question, default_value)
        return default_value
    suffix = '(Y/n)' if default_value else '(y/N)'
    try:
        answer = await read_line(f'{question} {suffix} ')
    except EOFError:
        return default_value
    return parse_confirm_answer(answer, default_value)


# ============================================================================
# Input
# ============================================================================

Validator = Callable[[str], None]


def _check(value: str, validate: Optional[Validator]) -> None:
    if validate is None:
        return
    try:
        validate(value)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e


async def input_prompt(
    question: str,
    default_value: str = '',
    validate: Optional[Validator] = None,
) -> str:
    """Free-text input with an optional validator that raises ValueError.

    Interactively, invalid answers are reported and asked again. Without a
    TTY, or once input is closed, the default is validated once and an
    invalid default is fatal.
    """
    if not is_interactive():
        _check(default_value, validate)
        return default_value

    while True:
        try:
            answer = await read_line(f'{question} ')
        except EOFError:
            _check(default_value, validate)
            return default_value
        value = answer.strip() or default_value
        if validate is None:
            return value
        try:
            validate(value)
        except ValueError as e:
            print(f'  {e}')
            continue
        return value
