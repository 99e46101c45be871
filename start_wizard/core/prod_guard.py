"""Production guardrails."""

from start_wizard.exceptions import RunAborted
from start_wizard.services import tty_prompts


async def enforce_prod_guard(mode: str, allow_prod: bool, yes: bool) -> bool:
    """Refuse or confirm runs against production services.

    Non-interactive prod runs need --allow-prod. Interactive prod runs are
    confirmed unless --allow-prod or --yes was given. Returns the effective
    allow_prod value.
    """
    if mode != 'prod':
        return allow_prod

    if not tty_prompts.is_interactive():
        if not allow_prod:
            raise RunAborted(
                'Refusing to run in prod mode without --allow-prod in non-interactive mode.'
            )
        return True

    if allow_prod or yes:
        return True

    ok = await tty_prompts.confirm_prompt(
        'Prod mode will hit production services. Continue?',
        default_value=False,
    )
    if not ok:
        raise RunAborted('Aborted (prod mode not confirmed).')
    return True
