"""Local stack coordination.

Decides whether the shared local backend stack is reused, restarted or
started fresh, and clears stray listeners on the stack's own ports before
the stack's start routine runs. Product-level conflicts must already be
resolved when handle_local_stack is called: once the stack starts it writes
background output that would corrupt any prompt still on screen.
"""

import inspect
import logging
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, Field

from start_wizard.config import settings
from start_wizard.core import ports
from start_wizard.core.port_conflicts import (
    collect_port_conflicts,
    resolve_port_conflicts_interactively,
)
from start_wizard.exceptions import RunAborted, StackNotReadyError
from start_wizard.models.ports import PortBinding
from start_wizard.models.wizard import RunContext, WizardConfig
from start_wizard.services import tty_prompts
from start_wizard.services.tty_prompts import SelectOption

logger = logging.getLogger(__name__)


class StackDecision(str, Enum):
    NOT_CHECKED = "not_checked"
    REUSE = "reuse"
    RESTART = "restart"
    FRESH_START = "fresh_start"
    DONE = "done"


class LocalStackOutcome(BaseModel):
    """Ports owned by the stack, the branch taken, and where the state machine stopped.

    ``state`` is DONE once the coordinator engaged and finished; it stays
    NOT_CHECKED when the stack does not apply to the run.
    """
    ignore_ports: set[int] = Field(default_factory=set)
    decision: StackDecision = StackDecision.NOT_CHECKED
    state: StackDecision = StackDecision.NOT_CHECKED


def _done(ignore_ports: set[int], decision: StackDecision) -> LocalStackOutcome:
    logger.debug("Local stack: %s -> %s", decision.value, StackDecision.DONE.value)
    return LocalStackOutcome(ignore_ports=ignore_ports, decision=decision, state=StackDecision.DONE)


async def call_hook(hook: Callable[..., Any], ctx: RunContext) -> Any:
    """Call a config routine that may be sync or async."""
    result = hook(ctx)
    if inspect.isawaitable(result):
        result = await result
    return result


async def any_port_open(bindings: list[PortBinding]) -> bool:
    for binding in bindings:
        if await ports.is_port_open(binding.port, timeout_ms=settings.stack_probe_timeout_ms):
            return True
    return False


async def _clear_stack_ports(stack_ports: list[PortBinding], ctx: RunContext) -> None:
    conflicts = await collect_port_conflicts(stack_ports)
    await resolve_port_conflicts_interactively(
        conflicts,
        kill=ctx.args.kill,
        yes=ctx.args.yes,
    )


async def _start_stack(config: WizardConfig, ctx: RunContext, stack_ports: list[PortBinding]) -> None:
    local_stack = config.local_stack
    logger.info("Starting local stack")
    await call_hook(local_stack.start, ctx)

    if not local_stack.wait_until_ready:
        return
    not_open = []
    for binding in stack_ports:
        if not await ports.wait_for_port_open(binding.port, timeout_ms=settings.stack_ready_timeout_ms):
            not_open.append(binding.port)
    if not_open:
        raise StackNotReadyError(not_open, settings.stack_ready_timeout_ms)


async def _choose_reuse_or_restart() -> StackDecision:
    choice = await tty_prompts.select_prompt(
        'Local backend services detected (ports in use). What do you want to do?',
        [
            SelectOption(StackDecision.REUSE.value, 'Reuse running local services'),
            SelectOption(
                StackDecision.RESTART.value,
                'Restart them (stop existing listeners, then start fresh)',
            ),
        ],
        default_index=0,
    )
    if not choice:
        raise RunAborted('Aborted.')
    return StackDecision(choice.id)


async def handle_local_stack(
    config: WizardConfig,
    ctx: RunContext,
    stack_ports: list[PortBinding],
) -> LocalStackOutcome:
    """Bring the local stack to a usable state for a local-mode run.

    Returns the stack-owned ports so callers never treat them as product
    conflicts. Without a TTY a running stack is always reused.
    """
    local_stack = config.local_stack
    if ctx.mode != 'local' or local_stack is None or local_stack.start is None:
        return LocalStackOutcome()

    ignore_ports = {binding.port for binding in stack_ports}

    if await any_port_open(stack_ports):
        if not tty_prompts.is_interactive():
            logger.info("Local stack already running; reusing (non-interactive)")
            return _done(ignore_ports, StackDecision.REUSE)

        decision = await _choose_reuse_or_restart()
        if decision == StackDecision.REUSE:
            return _done(ignore_ports, decision)

        if local_stack.stop is not None:
            logger.info("Stopping local stack")
            await call_hook(local_stack.stop, ctx)
        # Listeners that survived stop are resolved before anything starts logging.
        await _clear_stack_ports(stack_ports, ctx)
        await _start_stack(config, ctx, stack_ports)
        return _done(ignore_ports, StackDecision.RESTART)

    should_start = ctx.args.yes or await tty_prompts.confirm_prompt(
        'No local backend detected. Start required local services now?',
        default_value=True,
    )
    if not should_start:
        raise RunAborted('Aborted (local backend not started).')

    # A stale process on a stack port must not pass for a running stack.
    await _clear_stack_ports(stack_ports, ctx)
    await _start_stack(config, ctx, stack_ports)
    return _done(ignore_ports, StackDecision.FRESH_START)
