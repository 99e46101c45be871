"""Product option parsing, defaults and prompts, and port plan validation."""

import argparse
import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from start_wizard.exceptions import ConfigError, RunAborted
from start_wizard.models.ports import PortBinding
from start_wizard.models.wizard import (
    BooleanOption,
    NumberOption,
    OptionSpec,
    SelectOptionSpec,
    StringOption,
)
from start_wizard.services import tty_prompts
from start_wizard.utils.cli_args import WizardArgumentParser

logger = logging.getLogger(__name__)

_TRUE_VALUES = ('true', '1')
_FALSE_VALUES = ('false', '0')


# ============================================================================
# Flag parsing
# ============================================================================

def _parse_bool(value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE_VALUES:
        return True
    if v in _FALSE_VALUES:
        return False
    raise argparse.ArgumentTypeError(f'invalid boolean: "{value}"')


def _parse_int(value: str) -> int:
    try:
        return int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f'invalid number: "{value}"') from None


def build_option_parser(specs: Iterable[OptionSpec]) -> WizardArgumentParser:
    parser = WizardArgumentParser(prog='start-wizard', add_help=False, allow_abbrev=False)
    try:
        for spec in specs:
            if not spec.flag:
                continue
            flag = f'--{spec.flag}'
            if isinstance(spec, BooleanOption):
                parser.add_argument(flag, dest=spec.name, nargs='?', const=True,
                                    type=_parse_bool, default=argparse.SUPPRESS)
                parser.add_argument(f'--no-{spec.flag}', dest=spec.name, action='store_const',
                                    const=False, default=argparse.SUPPRESS)
            elif isinstance(spec, NumberOption):
                parser.add_argument(flag, dest=spec.name, type=_parse_int, default=argparse.SUPPRESS)
            else:
                parser.add_argument(flag, dest=spec.name, type=str, default=argparse.SUPPRESS)
    except argparse.ArgumentError as e:
        raise ConfigError(f'Conflicting option flags: {e}') from e
    return parser


def parse_option_tokens(specs: Optional[list[OptionSpec]], tokens: list[str]) -> dict[str, Any]:
    """Parse product-specific flags; any token no option claims is an error."""
    if not specs:
        if tokens:
            raise ConfigError(f'Unknown args: {" ".join(tokens)}')
        return {}

    namespace, unknown = build_option_parser(specs).parse_known_args(tokens)
    if unknown:
        raise ConfigError(f'Unknown args: {" ".join(unknown)}')
    return vars(namespace)


# ============================================================================
# Defaults and prompts
# ============================================================================

def _required_validator(required: bool):
    def validate(value: str) -> None:
        if required and not value.strip():
            raise ValueError('Value is required.')
    return validate


def _number_validator(spec: NumberOption):
    def validate(value: str) -> None:
        if spec.required and not value.strip():
            raise ValueError('Value is required.')
        try:
            n = int(value, 10)
        except ValueError:
            raise ValueError('Must be a positive number.') from None
        if n <= 0:
            raise ValueError('Must be a positive number.')
        if spec.min is not None and n < spec.min:
            raise ValueError(f'Must be >= {spec.min}.')
        if spec.max is not None and n > spec.max:
            raise ValueError(f'Must be <= {spec.max}.')
    return validate


async def _fill_boolean(spec: BooleanOption) -> bool:
    default = spec.default_value if spec.default_value is not None else False
    if spec.prompt is None:
        return default
    if spec.prompt.default_value is not None:
        default = spec.prompt.default_value
    return await tty_prompts.confirm_prompt(spec.prompt.question, default_value=default)


def _select_default_id(spec: SelectOptionSpec) -> str:
    if spec.default_id:
        return spec.default_id
    index = spec.prompt.default_index if spec.prompt and spec.prompt.default_index is not None else 0
    if 0 <= index < len(spec.options):
        return spec.options[index].id
    return spec.options[0].id


async def _fill_select(spec: SelectOptionSpec) -> str:
    default_id = _select_default_id(spec)
    if not tty_prompts.is_interactive():
        return default_id

    ids = [o.id for o in spec.options]
    if spec.prompt and spec.prompt.default_index is not None:
        default_index = spec.prompt.default_index
    else:
        default_index = ids.index(default_id) if default_id in ids else 0
    choice = await tty_prompts.select_prompt(
        spec.prompt.title if spec.prompt else f'{spec.name}?',
        [tty_prompts.SelectOption(o.id, o.label) for o in spec.options],
        default_index=default_index,
    )
    if not choice:
        raise RunAborted('Aborted.')
    return choice.id


async def _fill_string(spec: StringOption, product_id: str) -> str:
    if spec.prompt and spec.prompt.default_value is not None:
        default = spec.prompt.default_value
    else:
        default = spec.default_value or ''
    missing = spec.required and not default.strip()

    if not tty_prompts.is_interactive() or spec.prompt is None:
        if missing:
            raise ConfigError(f'Missing required option: {product_id}.{spec.name}')
        return default
    return await tty_prompts.input_prompt(
        spec.prompt.question,
        default_value=default,
        validate=_required_validator(spec.required),
    )


async def _fill_number(spec: NumberOption, product_id: str) -> Optional[int]:
    if spec.prompt and spec.prompt.default_value is not None:
        default = spec.prompt.default_value
    elif spec.default_value is not None:
        default = str(spec.default_value)
    else:
        default = ''

    if not tty_prompts.is_interactive() or spec.prompt is None:
        if not default.strip():
            if spec.required:
                raise ConfigError(f'Missing required option: {product_id}.{spec.name}')
            return None
        try:
            n = int(default, 10)
        except ValueError:
            n = 0
        if n <= 0:
            raise ConfigError(f'Invalid number default for {product_id}.{spec.name}')
        return n

    entered = await tty_prompts.input_prompt(
        spec.prompt.question,
        default_value=default,
        validate=_number_validator(spec),
    )
    return int(entered, 10)


def _check_values(specs: list[OptionSpec], values: dict[str, Any], product_id: str) -> None:
    for spec in specs:
        value = values.get(spec.name)
        if value is None:
            continue
        if isinstance(spec, SelectOptionSpec):
            allowed = [o.id for o in spec.options]
            if str(value) not in allowed:
                raise ConfigError(
                    f'Invalid value for {product_id}.{spec.name}: "{value}". '
                    f'Allowed: {", ".join(allowed)}'
                )
        elif isinstance(spec, NumberOption):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f'Invalid number for {product_id}.{spec.name}')
            if spec.min is not None and value < spec.min:
                raise ConfigError(f'{product_id}.{spec.name} must be >= {spec.min}')
            if spec.max is not None and value > spec.max:
                raise ConfigError(f'{product_id}.{spec.name} must be <= {spec.max}')


async def fill_option_defaults_and_prompts(
    specs: Optional[list[OptionSpec]],
    values: dict[str, Any],
    product_id: str,
) -> dict[str, Any]:
    """Fill every option not given on the command line, then check bounds and choices."""
    if not specs:
        return values

    for spec in specs:
        if values.get(spec.name) is not None:
            continue
        if isinstance(spec, BooleanOption):
            values[spec.name] = await _fill_boolean(spec)
        elif isinstance(spec, SelectOptionSpec):
            values[spec.name] = await _fill_select(spec)
        elif isinstance(spec, StringOption):
            values[spec.name] = await _fill_string(spec, product_id)
        elif isinstance(spec, NumberOption):
            number = await _fill_number(spec, product_id)
            if number is not None:
                values[spec.name] = number

    _check_values(specs, values, product_id)
    return values


# ============================================================================
# Port plans
# ============================================================================

def validate_port_plan(plan: Any) -> list[PortBinding]:
    """Coerce a port plan returned by a config routine into PortBindings."""
    if plan is None:
        return []
    if not isinstance(plan, (list, tuple)):
        raise ConfigError('port_plan must return a list.')

    bindings: list[PortBinding] = []
    for i, entry in enumerate(plan):
        if isinstance(entry, PortBinding):
            bindings.append(entry)
            continue
        if not isinstance(entry, dict):
            raise ConfigError(f'port_plan[{i}] must be a mapping.')
        try:
            bindings.append(PortBinding.model_validate(entry))
        except ValidationError as e:
            fields = ', '.join('.'.join(str(p) for p in d['loc']) for d in e.errors())
            raise ConfigError(f'port_plan[{i}] is invalid ({fields}).') from e
    return bindings
