"""Common command-line flags shared by every product."""

import argparse
from dataclasses import dataclass, field
from typing import NoReturn, Optional

from start_wizard.exceptions import ConfigError


class WizardArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises ConfigError instead of exiting the process."""

    def error(self, message: str) -> NoReturn:
        raise ConfigError(message)


@dataclass
class CommonCliArgs:
    help: bool = False
    yes: bool = False
    kill: bool = False
    allow_prod: bool = False
    install: Optional[bool] = None
    product: Optional[str] = None
    mode: Optional[str] = None
    config_path: Optional[str] = None
    # Tokens before `--` that are not common flags, for product options.
    remaining: list[str] = field(default_factory=list)
    # Tokens after `--`, handed to the product verbatim.
    pass_through_args: list[str] = field(default_factory=list)


def create_argument_parser() -> WizardArgumentParser:
    parser = WizardArgumentParser(prog='start-wizard', add_help=False, allow_abbrev=False)
    # fmt: off
    parser.add_argument('-h', '--help', action='store_true')
    parser.add_argument('--yes', '-y', action='store_true', help='Accept prompts automatically')
    parser.add_argument('--kill', action='store_true', help='Auto-kill conflicting listeners on required ports')
    parser.add_argument('--allow-prod', dest='allow_prod', action='store_true', help='Required for non-interactive prod mode')
    parser.add_argument('--install', dest='install', action='store_const', const=True, default=None)
    parser.add_argument('--no-install', dest='install', action='store_const', const=False)
    parser.add_argument('--product', type=str, default=None)
    parser.add_argument('--mode', type=str, default=None)
    parser.add_argument('--config', dest='config_path', type=str, default=None)
    # fmt: on
    return parser


def parse_common_cli_args(argv: list[str]) -> CommonCliArgs:
    """Split argv on `--` and parse the common flags before it."""
    if '--' in argv:
        sep = argv.index('--')
        before, pass_through = argv[:sep], argv[sep + 1:]
    else:
        before, pass_through = list(argv), []

    args, remaining = create_argument_parser().parse_known_args(before)
    return CommonCliArgs(
        help=args.help,
        yes=args.yes,
        kill=args.kill,
        allow_prod=args.allow_prod,
        install=args.install,
        product=args.product,
        mode=args.mode,
        config_path=args.config_path,
        remaining=remaining,
        pass_through_args=pass_through,
    )
