"""Port and process utilities.

Read-only OS queries (who listens on a port, what is that process), the
escalating process terminator, and the TCP liveness prober. None of the
OS-facing helpers raise: missing tooling or a vanished process is a normal
negative result.
"""

import asyncio
import logging
import os
import signal
import subprocess
from enum import Enum
from typing import Iterable, Optional

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_delay, wait_fixed

from start_wizard.config import settings
from start_wizard.models.ports import Listener, PortConflict

logger = logging.getLogger(__name__)

UNKNOWN_COMMAND = "(unknown)"

# Escalation order for terminate_pid.
TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGKILL)

# Per-attempt timeout used while polling in wait_for_port_open.
POLL_ATTEMPT_TIMEOUT_MS = 500


# ============================================================================
# Process Inspector
# ============================================================================

def _run_quiet(cmd: list[str]) -> str:
    """Run *cmd* and return its stripped stdout, or '' on any failure."""
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=settings.command_timeout_s,
        )
    except FileNotFoundError:
        logger.debug("%s is not available", cmd[0])
        return ""
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug("%s failed: %s", cmd[0], e)
        return ""
    if result.returncode != 0:
        return ""
    return result.stdout.strip()


def listening_pids(port: int) -> list[int]:
    """Return the PIDs with a TCP socket listening on *port*.

    Uses lsof. When lsof is missing or exits non-zero (which it also does
    when nothing matches) the port is reported as having no listeners.
    """
    out = _run_quiet(['lsof', '-nP', '-t', f'-iTCP:{port}', '-sTCP:LISTEN'])
    if not out:
        return []
    pids: list[int] = []
    for token in out.split():
        try:
            pid = int(token)
        except ValueError:
            continue
        if pid not in pids:
            pids.append(pid)
    return pids


def describe_pid(pid: int) -> str:
    """Best-effort command line for *pid*: full command, short name, or '(unknown)'."""
    return (
        _run_quiet(['ps', '-o', 'command=', '-p', str(pid)])
        or _run_quiet(['ps', '-o', 'comm=', '-p', str(pid)])
        or UNKNOWN_COMMAND
    )


def inspect_listeners(port: int) -> list[Listener]:
    """Fresh listener snapshot for *port*; never cached."""
    return [Listener(pid=pid, command=describe_pid(pid)) for pid in listening_pids(port)]


# ============================================================================
# Process Terminator
# ============================================================================

class TerminationState(str, Enum):
    PENDING = "pending"
    SIGNAL_SENT = "signal_sent"
    CONFIRMED_GONE = "confirmed_gone"
    KILLED = "killed"
    SKIPPED = "skipped"


def terminate_pid(pid: int, dry_run: bool = False) -> TerminationState:
    """Send SIGINT, SIGTERM, then SIGKILL to *pid*.

    Stops early once the process is confirmed gone (ProcessLookupError) and
    returns after the kill signal. Failures on earlier signals are tolerated.
    Never raises.
    """
    if dry_run:
        return TerminationState.SKIPPED

    state = TerminationState.PENDING
    for sig in TERMINATION_SIGNALS:
        try:
            os.kill(pid, sig)
        except ProcessLookupError:
            logger.debug("pid %s is gone (before %s)", pid, sig.name)
            return TerminationState.CONFIRMED_GONE
        except OSError as e:
            # e.g. PermissionError; the next signal may still work
            logger.debug("Sending %s to pid %s failed: %s", sig.name, pid, e)
            continue
        if sig == signal.SIGKILL:
            return TerminationState.KILLED
        state = TerminationState.SIGNAL_SENT
    return state


# ============================================================================
# Port Liveness Prober
# ============================================================================

async def is_port_open(
    port: int,
    host: Optional[str] = None,
    timeout_ms: Optional[int] = None,
) -> bool:
    """Return True if a TCP connection to host:port succeeds within the timeout."""
    host = host or settings.probe_host
    timeout_ms = timeout_ms if timeout_ms is not None else settings.probe_timeout_ms
    writer = None
    try:
        _, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout_ms / 1000,
        )
        return True
    except (asyncio.TimeoutError, OSError):
        return False
    finally:
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass


def _give_up(retry_state: RetryCallState) -> bool:
    logger.debug("Port did not open after %d attempts", retry_state.attempt_number)
    return False


async def wait_for_port_open(
    port: int,
    host: Optional[str] = None,
    timeout_ms: Optional[int] = None,
    interval_ms: Optional[int] = None,
) -> bool:
    """Poll is_port_open every *interval_ms* until it succeeds or *timeout_ms* elapses."""
    timeout_ms = timeout_ms if timeout_ms is not None else settings.wait_timeout_ms
    interval_ms = interval_ms if interval_ms is not None else settings.wait_interval_ms

    retrying = AsyncRetrying(
        stop=stop_after_delay(timeout_ms / 1000),
        wait=wait_fixed(interval_ms / 1000),
        retry=retry_if_result(lambda is_open: not is_open),
        retry_error_callback=_give_up,
    )
    return await retrying(is_port_open, port, host=host, timeout_ms=POLL_ATTEMPT_TIMEOUT_MS)


# ============================================================================
# Formatting
# ============================================================================

def format_port_conflicts(conflicts: Iterable[PortConflict]) -> str:
    """Human-readable summary printed before conflicts are resolved."""
    lines = ['Port conflicts detected:']
    for conflict in conflicts:
        lines.append(f'- {conflict.port} ({conflict.desired_service}) is in use by:')
        for listener in conflict.listeners:
            lines.append(f'    pid {listener.pid}: {listener.command}')
    return '\n'.join(lines)
