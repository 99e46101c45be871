"""Port conflict collection and resolution.

Conflicts are resolved strictly one at a time. Any abort raises RunAborted
and unwinds the whole run; processes already killed stay dead.
"""

import asyncio
import logging
from typing import Any, Iterable, MutableMapping

from start_wizard.config import settings
from start_wizard.core import ports
from start_wizard.exceptions import PortStillInUseError, RunAborted
from start_wizard.models.ports import PortBinding, PortConflict
from start_wizard.services import tty_prompts
from start_wizard.services.tty_prompts import SelectOption

logger = logging.getLogger(__name__)

ACTION_KILL = 'kill'
ACTION_CHANGE = 'change'
ACTION_ABORT = 'abort'


async def collect_port_conflicts(port_plan: Iterable[PortBinding]) -> list[PortConflict]:
    """Return a conflict for every binding that has live listeners, in plan order."""
    conflicts: list[PortConflict] = []
    for binding in port_plan:
        listeners = await asyncio.to_thread(ports.inspect_listeners, binding.port)
        if not listeners:
            continue
        conflicts.append(PortConflict(
            port=binding.port,
            desired_service=binding.desired_service,
            flexible=binding.flexible,
            option_name=binding.option_name,
            listeners=listeners,
        ))
    logger.debug("Collected %d conflict(s) for ports %s",
                 len(conflicts), [c.port for c in conflicts])
    return conflicts


def _validate_port(value: str) -> None:
    try:
        port = int(value, 10)
    except ValueError:
        raise ValueError('Port must be a positive number.') from None
    if port <= 0:
        raise ValueError('Port must be a positive number.')


def _action_options(conflict: PortConflict) -> list[SelectOption]:
    options = [SelectOption(ACTION_KILL, 'Kill processes on this port')]
    if conflict.flexible:
        options.append(SelectOption(ACTION_CHANGE, 'Choose a different port'))
    options.append(SelectOption(ACTION_ABORT, 'Abort'))
    return options


async def _choose_new_port(conflict: PortConflict) -> None:
    # The replacement port is not checked for listeners here.
    answer = await tty_prompts.input_prompt(
        f'Enter a new port for {conflict.desired_service}:',
        default_value=str(conflict.port + 1),
        validate=_validate_port,
    )
    conflict.new_port = int(answer, 10)
    logger.info("Port %s for %s reassigned to %s",
                conflict.port, conflict.desired_service, conflict.new_port)


async def _kill_listeners(conflict: PortConflict, kill: bool, yes: bool) -> None:
    if not kill and not yes:
        ok = await tty_prompts.confirm_prompt(
            f'Kill {len(conflict.listeners)} process(es) listening on {conflict.port}?',
            default_value=False,
        )
        if not ok:
            raise RunAborted('Aborted (user declined to kill processes).')

    for listener in conflict.listeners:
        state = ports.terminate_pid(listener.pid)
        logger.info("pid %s on port %s: %s", listener.pid, conflict.port, state.value)

    if settings.kill_settle_ms:
        await asyncio.sleep(settings.kill_settle_ms / 1000)

    # Signals are asynchronous and best-effort; always re-inspect.
    remaining = await asyncio.to_thread(ports.listening_pids, conflict.port)
    if remaining:
        raise PortStillInUseError(conflict.port)


async def resolve_port_conflicts_interactively(
    conflicts: list[PortConflict],
    kill: bool,
    yes: bool,
) -> None:
    """Resolve each conflict by killing, reassigning (flexible only) or aborting.

    With ``kill`` set every conflict is killed without a choice prompt; that
    requires a TTY or ``yes``. Reassigned ports are written to
    ``conflict.new_port``.
    """
    if not conflicts:
        return

    if kill and not yes and not tty_prompts.is_interactive():
        raise RunAborted('--kill in non-interactive mode requires --yes')

    print(ports.format_port_conflicts(conflicts))
    print('')

    for conflict in conflicts:
        if kill:
            action = ACTION_KILL
        else:
            choice = await tty_prompts.select_prompt(
                f'Port {conflict.port} is in use. Action for {conflict.desired_service}?',
                _action_options(conflict),
            )
            action = choice.id if choice else ACTION_ABORT

        if action == ACTION_ABORT:
            raise RunAborted('Aborted due to port conflict.')
        if action == ACTION_CHANGE:
            await _choose_new_port(conflict)
            continue
        await _kill_listeners(conflict, kill=kill, yes=yes)


def apply_reassigned_ports(
    conflicts: Iterable[PortConflict],
    options: MutableMapping[str, Any],
) -> dict[str, int]:
    """Write each reassigned port into *options* under its binding's option name."""
    applied: dict[str, int] = {}
    for conflict in conflicts:
        if conflict.new_port is not None and conflict.option_name:
            options[conflict.option_name] = conflict.new_port
            applied[conflict.option_name] = conflict.new_port
    return applied
