"""Locating, importing and validating a repo's start_wizard_config.py."""

import importlib.util
import logging
import uuid
from pathlib import Path
from typing import Any, NamedTuple, Optional

from pydantic import ValidationError

from start_wizard.config import settings
from start_wizard.exceptions import ConfigError
from start_wizard.models.wizard import WizardConfig

logger = logging.getLogger(__name__)

CONFIG_ATTRIBUTE = 'config'


class ConfigLocation(NamedTuple):
    repo_root: Path
    config_path: Path


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        loc = '.'.join(str(p) for p in detail['loc'])
        parts.append(f"{loc}: {detail['msg']}" if loc else detail['msg'])
    return '; '.join(parts)


def define_config(raw: Any) -> WizardConfig:
    """Validate a config mapping (or an existing WizardConfig) and apply defaults.

    Usage in a repo's start_wizard_config.py:

        from start_wizard.core.config_loader import define_config
        config = define_config({"products": [...]})
    """
    if isinstance(raw, WizardConfig):
        return raw
    if not isinstance(raw, dict):
        raise ConfigError('Config must be a mapping.')
    try:
        return WizardConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f'Invalid start-wizard config: {_format_validation_error(e)}') from e


def find_upwards(start_dir: Path, filename: str) -> Optional[Path]:
    directory = start_dir.resolve()
    while True:
        candidate = directory / filename
        if candidate.exists():
            return candidate
        if directory.parent == directory:
            return None
        directory = directory.parent


def find_config_path(cwd: Path, config_path_arg: Optional[str] = None) -> ConfigLocation:
    """Resolve --config relative to *cwd*, or search upwards for the default file."""
    if config_path_arg:
        resolved = Path(config_path_arg)
        if not resolved.is_absolute():
            resolved = (cwd / resolved).resolve()
        if not resolved.exists():
            raise ConfigError(f'Config file not found: {resolved}')
        return ConfigLocation(repo_root=resolved.parent, config_path=resolved)

    found = find_upwards(cwd, settings.config_filename)
    if found is None:
        raise ConfigError(
            f'Unable to find {settings.config_filename}. '
            f'Run from your repo root or pass --config <path>.'
        )
    return ConfigLocation(repo_root=found.parent, config_path=found)


def load_config(config_path: Path) -> WizardConfig:
    """Import *config_path* as a fresh module and validate its ``config`` attribute."""
    module_name = f'_start_wizard_config_{uuid.uuid4().hex}'
    spec = importlib.util.spec_from_file_location(module_name, config_path)
    if spec is None or spec.loader is None:
        raise ConfigError(f'Cannot load config file: {config_path}')
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(f'Error while loading {config_path}: {e}') from e

    if not hasattr(module, CONFIG_ATTRIBUTE):
        raise ConfigError(f'{config_path} must define a module-level `{CONFIG_ATTRIBUTE}`.')
    logger.debug("Loaded config from %s", config_path)
    return define_config(getattr(module, CONFIG_ATTRIBUTE))
