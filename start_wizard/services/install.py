"""Dependency install prompt."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from start_wizard.services import tty_prompts
from start_wizard.services.runner import run_command_or_throw

logger = logging.getLogger(__name__)


def has_node_modules(repo_root: Path) -> bool:
    return (repo_root / 'node_modules').exists()


async def ensure_install(repo_root: Path, install_choice: Optional[bool], yes: bool) -> bool:
    """Run `npm ci` when asked to, or when dependencies are missing and the user agrees.

    - install_choice False: never install.
    - node_modules present and install_choice unset: nothing to do.
    - install_choice True: install without asking.
    - otherwise ask (auto-accepted with --yes).

    Returns True when the install ran.
    """
    if install_choice is False:
        logger.info('Skipping npm ci (--no-install)')
        return False

    has_deps = has_node_modules(repo_root)
    if has_deps and install_choice is not True:
        logger.debug('node_modules present in %s; not installing', repo_root)
        return False

    should_install = install_choice is True or yes or await tty_prompts.confirm_prompt(
        'Re-run npm ci?' if has_deps else 'Run npm ci now?',
        default_value=True,
    )
    if not should_install:
        logger.info('npm ci declined')
        return False

    logger.info('Running npm ci in %s (forced=%s)', repo_root, install_choice is True)
    print('\nRunning npm ci...\n')
    await asyncio.to_thread(run_command_or_throw, 'npm', ['ci'], cwd=repo_root)
    return True
