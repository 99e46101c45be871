"""Foreground command execution."""

import logging
import os
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Union

from start_wizard.exceptions import CommandError

logger = logging.getLogger(__name__)


def run_command_or_throw(
    command: str,
    args: list[str],
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    """Run a command with inherited stdio; raise CommandError on a non-zero exit."""
    cmd = [command, *args]
    logger.debug("Running %s (cwd=%s)", cmd, cwd)
    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            env=dict(env) if env is not None else os.environ.copy(),
        )
    except FileNotFoundError as e:
        raise CommandError(cmd, None) from e
    if result.returncode != 0:
        raise CommandError(cmd, result.returncode)
