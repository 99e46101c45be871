"""
start-wizard - interactive product launcher for monorepos

Picks a product and backend mode, resolves port conflicts against already
running processes, brings up the shared local stack when running in local
mode, then hands off to the product's start routine.

Usage:
    start-wizard                                   # Interactive product + mode selection
    start-wizard --product web --mode dev          # Skip the selection prompts
    start-wizard --product web --mode local --yes  # Accept all yes/no prompts
    start-wizard --kill --yes                      # Kill conflicting listeners without asking
    start-wizard --product web --mode prod --allow-prod
    start-wizard --product web -- --turbo          # Args after -- go to the product

Environment Variables:
    - START_WIZARD_LOG_LEVEL: debug|info|warning (default: warning)
    - START_WIZARD_PROBE_TIMEOUT_MS, START_WIZARD_KILL_SETTLE_MS, ...: see config.py
"""

import asyncio
import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional

from start_wizard.config import settings
from start_wizard.core import config_loader
from start_wizard.core.local_stack import call_hook, handle_local_stack
from start_wizard.core.options import (
    fill_option_defaults_and_prompts,
    parse_option_tokens,
    validate_port_plan,
)
from start_wizard.core.port_conflicts import (
    apply_reassigned_ports,
    collect_port_conflicts,
    resolve_port_conflicts_interactively,
)
from start_wizard.core.prod_guard import enforce_prod_guard
from start_wizard.exceptions import CommandError, ConfigError, RunAborted, StartWizardError
from start_wizard.models.ports import PortBinding
from start_wizard.models.wizard import RUN_MODES, Product, RunArgs, RunContext, WizardConfig
from start_wizard.services import tty_prompts
from start_wizard.services.install import ensure_install
from start_wizard.utils.cli_args import parse_common_cli_args
from start_wizard.utils.terminal import Color, color_enabled, colorize

logger = logging.getLogger(__name__)

# Index of "dev" in the default mode list.
DEFAULT_MODE_INDEX = 1

HELP_TEXT = f"""
Usage:
  start-wizard

Common flags:
  --product <id>
  --mode local|dev|prod
  --install | --no-install
  --kill                           Auto-kill conflicting listeners on required ports
  --yes, -y                        Accept prompts automatically (required with --kill for non-interactive)
  --allow-prod                     Required for non-interactive prod mode
  --config <path>                  Path to start-wizard config (default: find {settings.config_filename} upwards)
  -h, --help

Pass-through:
  start-wizard -- --any-args-after-double-dash
"""


def print_help() -> None:
    print(HELP_TEXT)


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def require_mode(value: Optional[str]) -> str:
    if value in RUN_MODES:
        return value
    raise ConfigError(f'Invalid mode "{value}". Expected local|dev|prod.')


async def select_product(config: WizardConfig, product_arg: Optional[str]) -> Product:
    available = ', '.join(config.product_ids)
    if product_arg:
        product = config.find_product(product_arg)
        if product is None:
            raise ConfigError(f'Unknown product "{product_arg}". Available: {available}')
        return product

    if not tty_prompts.is_interactive():
        raise ConfigError(f'Missing --product in non-interactive mode. Available: {available}')

    choice = await tty_prompts.select_prompt(
        'Which product do you want to start?',
        [tty_prompts.SelectOption(p.id, p.label) for p in config.products],
        default_index=0,
    )
    if not choice:
        raise RunAborted('Aborted.')
    product = config.find_product(choice.id)
    if product is None:
        raise ConfigError('Selected product not found.')
    return product


async def select_mode(config: WizardConfig, mode_arg: Optional[str]) -> str:
    if mode_arg:
        return require_mode(mode_arg)

    if not tty_prompts.is_interactive():
        raise ConfigError('Missing --mode in non-interactive mode (local|dev|prod).')

    choice = await tty_prompts.select_prompt(
        'Which backend mode?',
        [tty_prompts.SelectOption(m.id, m.label) for m in config.modes],
        default_index=DEFAULT_MODE_INDEX,
    )
    if not choice:
        raise RunAborted('Aborted.')
    return require_mode(choice.id)


async def evaluate_port_plan(plan_fn, ctx: RunContext) -> list[PortBinding]:
    if plan_fn is None:
        return []
    return validate_port_plan(await call_hook(plan_fn, ctx))


def print_start_banner(ctx: RunContext) -> None:
    print('')
    print(colorize('Starting…', Color.GREEN + Color.BOLD))
    print(f'  repo_root={ctx.repo_root}')
    print(f'  product={ctx.product_id}')
    print(f'  mode={ctx.mode}')
    print('')


async def run_start_wizard(argv: list[str], cwd: Path) -> None:
    """Run one wizard session: select, resolve conflicts, start the stack, hand off."""
    parsed = parse_common_cli_args(argv)
    if parsed.help:
        print_help()
        return

    location = config_loader.find_config_path(cwd, parsed.config_path)
    config = config_loader.load_config(location.config_path)

    product = await select_product(config, parsed.product)
    mode = await select_mode(config, parsed.mode)

    allow_prod = await enforce_prod_guard(mode, allow_prod=parsed.allow_prod, yes=parsed.yes)

    await ensure_install(location.repo_root, install_choice=parsed.install, yes=parsed.yes)

    option_values = parse_option_tokens(product.options, parsed.remaining)
    options = await fill_option_defaults_and_prompts(product.options, option_values, product.id)

    ctx = RunContext(
        repo_root=location.repo_root,
        product_id=product.id,
        mode=mode,
        args=RunArgs(
            yes=parsed.yes,
            kill=parsed.kill,
            allow_prod=allow_prod,
            install=parsed.install,
            raw_argv=list(argv),
        ),
        options=options,
        pass_through_args=parsed.pass_through_args,
    )

    stack_ports: list[PortBinding] = []
    if ctx.mode == 'local' and config.local_stack is not None:
        stack_ports = await evaluate_port_plan(config.local_stack.ports, ctx)
    stack_owned = {binding.port for binding in stack_ports}

    # Product conflicts are resolved before the local stack starts; its
    # background output would otherwise corrupt the prompts.
    product_plan = [
        binding for binding in await evaluate_port_plan(product.port_plan, ctx)
        if binding.port not in stack_owned
    ]
    product_conflicts = await collect_port_conflicts(product_plan)
    await resolve_port_conflicts_interactively(
        product_conflicts,
        kill=parsed.kill,
        yes=parsed.yes,
    )
    applied = apply_reassigned_ports(product_conflicts, ctx.options)
    if applied:
        logger.info("Reassigned ports applied to options: %s", applied)

    outcome = await handle_local_stack(config, ctx, stack_ports)
    logger.debug("Local stack decision: %s", outcome.decision.value)

    print_start_banner(ctx)
    result = await call_hook(product.start, ctx)
    if isinstance(result, subprocess.Popen):
        # Product spawned a dev server; stay attached until it exits.
        returncode = await asyncio.to_thread(result.wait)
        if returncode != 0:
            raise CommandError(list(map(str, result.args)), returncode)


def main() -> None:
    """Console entry point."""
    setup_logging()
    try:
        asyncio.run(run_start_wizard(sys.argv[1:], Path.cwd()))
    except StartWizardError as e:
        print(colorize(f'\n❌ start-wizard failed: {e}\n', Color.RED, enabled=color_enabled(sys.stderr)),
              file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == '__main__':
    main()
