"""
Pydantic models for the wizard config (products, modes, local stack) and the run context.
"""

from pathlib import Path
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

RunMode = Literal["local", "dev", "prod"]
RUN_MODES: tuple[str, ...] = ("local", "dev", "prod")

_ID_PATTERN = r"^[a-z][a-z0-9-]*$"
_FLAG_PATTERN = r"^[a-z0-9][a-z0-9-]*$"


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------

class ModeSpec(_ConfigModel):
    """A selectable backend mode and its label."""
    id: RunMode
    label: str = Field(..., min_length=1)


DEFAULT_MODES = [
    ModeSpec(id="local", label="local (local API + emulators)"),
    ModeSpec(id="dev", label="dev (cloud dev backend)"),
    ModeSpec(id="prod", label="prod (cloud prod backend)"),
]


# ---------------------------------------------------------------------------
# Product options
# ---------------------------------------------------------------------------

class TextPromptSpec(_ConfigModel):
    question: str = Field(..., min_length=1)
    default_value: Optional[str] = None


class BooleanPromptSpec(_ConfigModel):
    question: str = Field(..., min_length=1)
    default_value: Optional[bool] = None


class SelectPromptSpec(_ConfigModel):
    title: str = Field(..., min_length=1)
    default_index: Optional[int] = None


class SelectChoice(_ConfigModel):
    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)


class _OptionBase(_ConfigModel):
    # Key in RunContext.options; unique within a product.
    name: str = Field(..., min_length=1)
    # CLI flag without leading dashes, e.g. "port" for --port.
    flag: Optional[str] = Field(default=None, pattern=_FLAG_PATTERN)
    description: Optional[str] = None


class StringOption(_OptionBase):
    kind: Literal["string"]
    default_value: Optional[str] = None
    required: bool = False
    prompt: Optional[TextPromptSpec] = None


class NumberOption(_OptionBase):
    kind: Literal["number"]
    default_value: Optional[int] = None
    required: bool = False
    min: Optional[int] = None
    max: Optional[int] = None
    prompt: Optional[TextPromptSpec] = None


class BooleanOption(_OptionBase):
    kind: Literal["boolean"]
    default_value: Optional[bool] = None
    prompt: Optional[BooleanPromptSpec] = None


class SelectOptionSpec(_OptionBase):
    kind: Literal["select"]
    options: list[SelectChoice] = Field(..., min_length=2)
    default_id: Optional[str] = None
    prompt: Optional[SelectPromptSpec] = None

    @field_validator("options")
    @classmethod
    def _unique_ids(cls, options: list[SelectChoice]) -> list[SelectChoice]:
        seen: set[str] = set()
        for choice in options:
            if choice.id in seen:
                raise ValueError(f"duplicate option id: {choice.id}")
            seen.add(choice.id)
        return options


OptionSpec = Annotated[
    Union[StringOption, NumberOption, BooleanOption, SelectOptionSpec],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Products and local stack
# ---------------------------------------------------------------------------

class Product(_ConfigModel):
    """A startable application in the monorepo."""
    id: str = Field(..., pattern=_ID_PATTERN)
    label: str = Field(..., min_length=1)
    options: list[OptionSpec] = Field(default_factory=list)
    # port_plan(ctx) -> list of PortBinding (or dicts); omitted means no port checks.
    port_plan: Optional[Callable[..., Any]] = None
    # start(ctx), sync or async; must raise on failure.
    start: Callable[..., Any]

    @model_validator(mode="after")
    def _unique_option_names_and_flags(self) -> "Product":
        names: set[str] = set()
        flags: set[str] = set()
        for opt in self.options:
            if opt.name in names:
                raise ValueError(f'Duplicate option name "{opt.name}" in product "{self.id}".')
            names.add(opt.name)
            if opt.flag:
                if opt.flag in flags:
                    raise ValueError(f'Duplicate option flag "{opt.flag}" in product "{self.id}".')
                flags.add(opt.flag)
        return self


class LocalStack(_ConfigModel):
    """Shared local backend stack controls, used only in local mode."""
    start: Optional[Callable[..., Any]] = None
    stop: Optional[Callable[..., Any]] = None
    ports: Optional[Callable[..., Any]] = None
    # Wait for every stack port to accept connections after start.
    wait_until_ready: bool = False


class WizardConfig(_ConfigModel):
    """A repo's start-wizard configuration."""
    version: Literal[1] = 1
    products: list[Product] = Field(..., min_length=1)
    modes: list[ModeSpec] = Field(default_factory=lambda: list(DEFAULT_MODES))
    local_stack: Optional[LocalStack] = None

    @field_validator("version", mode="before")
    @classmethod
    def _default_version(cls, value: Any) -> Any:
        return 1 if value is None else value

    @field_validator("modes", mode="before")
    @classmethod
    def _default_modes(cls, value: Any) -> Any:
        return list(DEFAULT_MODES) if value is None else value

    @field_validator("modes")
    @classmethod
    def _unique_modes(cls, modes: list[ModeSpec]) -> list[ModeSpec]:
        if not modes:
            raise ValueError("modes must be a non-empty list")
        seen: set[str] = set()
        for mode in modes:
            if mode.id in seen:
                raise ValueError(f"Duplicate mode id: {mode.id}")
            seen.add(mode.id)
        return modes

    def find_product(self, product_id: str) -> Optional[Product]:
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    @property
    def product_ids(self) -> list[str]:
        return [p.id for p in self.products]


# ---------------------------------------------------------------------------
# Run context
# ---------------------------------------------------------------------------

class RunArgs(BaseModel):
    """Common CLI flags for the current run."""
    yes: bool = False
    kill: bool = False
    allow_prod: bool = False
    install: Optional[bool] = None
    raw_argv: list[str] = Field(default_factory=list)


class RunContext(BaseModel):
    """Context passed to port plans, local stack routines and product start."""
    repo_root: Path
    product_id: str
    mode: RunMode
    args: RunArgs = Field(default_factory=RunArgs)
    # Product option values; reassigned ports are written back here.
    options: dict[str, Any] = Field(default_factory=dict)
    pass_through_args: list[str] = Field(default_factory=list)
