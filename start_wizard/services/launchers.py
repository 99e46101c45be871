"""Dev-server spawn helpers for product start routines.

These only shell out to the product's own dev server; supervising the
spawned process is left to the caller.
"""

import os
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Union

PathLike = Union[str, Path]


def node_env(project_dir: PathLike, env: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Copy of *env* (default os.environ) with node_modules/.bin first on PATH."""
    result = dict(env if env is not None else os.environ)
    bin_dir = str(Path(project_dir) / 'node_modules' / '.bin')
    path = result.get('PATH', '')
    if bin_dir not in path.split(os.pathsep):
        result['PATH'] = f'{bin_dir}{os.pathsep}{path}' if path else bin_dir
    return result


def spawn_next_dev(
    project_dir: PathLike,
    port: Optional[int] = None,
    env: Optional[Mapping[str, str]] = None,
    extra_args: Optional[list[str]] = None,
) -> subprocess.Popen:
    args = ['next', 'dev']
    if port:
        args += ['-p', str(port)]
    args += extra_args or []
    return subprocess.Popen(
        ['npx', '--no-install', *args],
        cwd=str(project_dir),
        env=node_env(project_dir, env),
    )


def spawn_expo_start(
    project_dir: PathLike,
    env: Optional[Mapping[str, str]] = None,
    dev_client: bool = False,
    go: bool = False,
    extra_args: Optional[list[str]] = None,
) -> subprocess.Popen:
    flags = []
    if dev_client:
        flags.append('--dev-client')
    if go:
        flags.append('--go')
    return subprocess.Popen(
        ['npx', '--no-install', 'expo', 'start', *flags, *(extra_args or [])],
        cwd=str(project_dir),
        env=node_env(project_dir, env),
    )
