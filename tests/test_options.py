"""Tests for product option parsing, defaults/prompts and port plan validation."""

from unittest.mock import AsyncMock, patch

import pytest
from pydantic import TypeAdapter

from start_wizard.core.options import (
    fill_option_defaults_and_prompts,
    parse_option_tokens,
    validate_port_plan,
)
from start_wizard.exceptions import ConfigError, RunAborted
from start_wizard.models.ports import PortBinding
from start_wizard.models.wizard import OptionSpec, SelectOptionSpec
from start_wizard.services.tty_prompts import SelectOption

_specs_adapter = TypeAdapter(list[OptionSpec])


def _specs(*raw):
    return _specs_adapter.validate_python(list(raw))


PORT = {"kind": "number", "name": "port", "flag": "port", "default_value": 3000, "min": 1024}
TURBO = {"kind": "boolean", "name": "turbo", "flag": "turbo"}
TARGET = {
    "kind": "select", "name": "target", "flag": "target",
    "options": [{"id": "ios", "label": "iOS"}, {"id": "android", "label": "Android"}],
}
API_URL = {"kind": "string", "name": "api_url", "flag": "api-url", "default_value": "http://localhost"}


# ============================================================================
# parse_option_tokens
# ============================================================================

class TestParseOptionTokens:

    def test_no_specs_no_tokens(self):
        assert parse_option_tokens([], []) == {}

    def test_no_specs_with_tokens(self):
        with pytest.raises(ConfigError, match="Unknown args: --x 1"):
            parse_option_tokens(None, ["--x", "1"])

    def test_parses_each_kind(self):
        values = parse_option_tokens(
            _specs(PORT, TURBO, TARGET, API_URL),
            ["--port", "3001", "--turbo", "--target", "ios", "--api-url=http://x"],
        )
        assert values == {"port": 3001, "turbo": True, "target": "ios", "api_url": "http://x"}

    def test_absent_flags_are_omitted(self):
        assert parse_option_tokens(_specs(PORT, TURBO), []) == {}

    @pytest.mark.parametrize("tokens,expected", [
        (["--turbo=false"], False),
        (["--turbo", "0"], False),
        (["--turbo=1"], True),
        (["--no-turbo"], False),
    ])
    def test_boolean_forms(self, tokens, expected):
        assert parse_option_tokens(_specs(TURBO), tokens) == {"turbo": expected}

    def test_invalid_number(self):
        with pytest.raises(ConfigError, match="invalid number"):
            parse_option_tokens(_specs(PORT), ["--port", "abc"])

    def test_unknown_token(self):
        with pytest.raises(ConfigError, match="Unknown args: --nope"):
            parse_option_tokens(_specs(PORT), ["--nope"])

    def test_options_without_flag_are_not_parsed(self):
        spec = {"kind": "string", "name": "secret"}
        with pytest.raises(ConfigError, match="Unknown args: --secret x"):
            parse_option_tokens(_specs(spec), ["--secret", "x"])


# ============================================================================
# fill_option_defaults_and_prompts
# ============================================================================

class TestFillDefaultsNonInteractive:

    async def test_defaults_applied(self, no_tty):
        values = await fill_option_defaults_and_prompts(
            _specs(PORT, TURBO, TARGET, API_URL), {}, "web",
        )
        assert values == {"port": 3000, "turbo": False, "target": "ios", "api_url": "http://localhost"}

    async def test_cli_values_win(self, no_tty):
        values = await fill_option_defaults_and_prompts(
            _specs(PORT, TARGET), {"port": 4000, "target": "android"}, "web",
        )
        assert values == {"port": 4000, "target": "android"}

    async def test_select_default_id(self, no_tty):
        spec = dict(TARGET, default_id="android")
        assert await fill_option_defaults_and_prompts(_specs(spec), {}, "web") == {"target": "android"}

    async def test_missing_required_string(self, no_tty):
        spec = {"kind": "string", "name": "token", "required": True}
        with pytest.raises(ConfigError, match="Missing required option: web.token"):
            await fill_option_defaults_and_prompts(_specs(spec), {}, "web")

    async def test_optional_number_without_default_is_left_out(self, no_tty):
        spec = {"kind": "number", "name": "workers"}
        assert await fill_option_defaults_and_prompts(_specs(spec), {}, "web") == {}

    async def test_number_below_min(self, no_tty):
        with pytest.raises(ConfigError, match="web.port must be >= 1024"):
            await fill_option_defaults_and_prompts(_specs(PORT), {"port": 80}, "web")

    async def test_select_value_not_allowed(self, no_tty):
        with pytest.raises(ConfigError, match='Invalid value for web.target: "web"'):
            await fill_option_defaults_and_prompts(_specs(TARGET), {"target": "web"}, "web")


class TestFillDefaultsInteractive:

    async def test_boolean_prompt(self, tty):
        spec = dict(TURBO, prompt={"question": "Use turbo?", "default_value": True})
        confirm_mock = AsyncMock(return_value=False)
        with patch("start_wizard.services.tty_prompts.confirm_prompt", confirm_mock):
            values = await fill_option_defaults_and_prompts(_specs(spec), {}, "web")
        assert values == {"turbo": False}
        assert confirm_mock.call_args.kwargs["default_value"] is True

    async def test_select_prompt(self, tty):
        select_mock = AsyncMock(return_value=SelectOption("android", "Android"))
        with patch("start_wizard.services.tty_prompts.select_prompt", select_mock):
            values = await fill_option_defaults_and_prompts(_specs(TARGET), {}, "web")
        assert values == {"target": "android"}
        assert select_mock.call_args[0][0] == "target?"

    async def test_select_cancel_aborts(self, tty):
        with patch("start_wizard.services.tty_prompts.select_prompt", AsyncMock(return_value=None)):
            with pytest.raises(RunAborted):
                await fill_option_defaults_and_prompts(_specs(TARGET), {}, "web")

    async def test_number_prompt(self, tty):
        spec = dict(PORT, prompt={"question": "Port?"})
        input_mock = AsyncMock(return_value="5000")
        with patch("start_wizard.services.tty_prompts.input_prompt", input_mock):
            values = await fill_option_defaults_and_prompts(_specs(spec), {}, "web")
        assert values == {"port": 5000}
        assert input_mock.call_args.kwargs["default_value"] == "3000"

    async def test_number_prompt_validator(self, tty):
        spec = dict(PORT, prompt={"question": "Port?"}, max=9000)
        input_mock = AsyncMock(return_value="5000")
        with patch("start_wizard.services.tty_prompts.input_prompt", input_mock):
            await fill_option_defaults_and_prompts(_specs(spec), {}, "web")
        validate = input_mock.call_args.kwargs["validate"]
        validate("2000")
        for bad, message in [("abc", "positive"), ("80", ">= 1024"), ("9001", "<= 9000")]:
            with pytest.raises(ValueError, match=message):
                validate(bad)

    async def test_string_without_prompt_uses_default(self, tty):
        input_mock = AsyncMock()
        with patch("start_wizard.services.tty_prompts.input_prompt", input_mock):
            values = await fill_option_defaults_and_prompts(_specs(API_URL), {}, "web")
        assert values == {"api_url": "http://localhost"}
        input_mock.assert_not_called()


# ============================================================================
# validate_port_plan
# ============================================================================

class TestValidatePortPlan:

    def test_none_is_empty(self):
        assert validate_port_plan(None) == []

    def test_accepts_aliases_and_names(self):
        bindings = validate_port_plan([
            {"port": 3000, "desiredService": "web", "flexible": True, "optionName": "port"},
            {"port": 9099, "desired_service": "auth"},
            PortBinding(port=8080, desired_service="firestore"),
        ])
        assert [b.port for b in bindings] == [3000, 9099, 8080]
        assert bindings[0].option_name == "port"
        assert bindings[1].flexible is False

    def test_rejects_non_list(self):
        with pytest.raises(ConfigError, match="port_plan must return a list."):
            validate_port_plan({"port": 3000})

    def test_rejects_non_mapping_entry(self):
        with pytest.raises(ConfigError, match=r"port_plan\[1\] must be a mapping."):
            validate_port_plan([{"port": 3000, "desiredService": "web"}, 3001])

    @pytest.mark.parametrize("entry", [
        {"port": 0, "desiredService": "web"},
        {"port": 3000},
        {"port": 3000, "desiredService": "   "},
    ])
    def test_rejects_invalid_entry(self, entry):
        with pytest.raises(ConfigError, match=r"port_plan\[0\] is invalid"):
            validate_port_plan([entry])


def test_select_spec_is_distinct_from_menu_choice():
    spec = _specs(TARGET)[0]
    assert isinstance(spec, SelectOptionSpec)
    assert not isinstance(spec, SelectOption)
    assert [o.id for o in spec.options] == ["ios", "android"]
