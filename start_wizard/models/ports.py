"""
Pydantic models for port plans and the conflicts detected against them.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator


class PortBinding(BaseModel):
    """A declared desire to use a specific port for a named service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    port: PositiveInt
    desired_service: str = Field(..., alias="desiredService", min_length=1)
    # A flexible binding may be moved to another port by the user.
    flexible: bool = False
    # Product option that receives the replacement port, if any.
    option_name: Optional[str] = Field(default=None, alias="optionName")

    @field_validator("desired_service")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("desired_service must be a non-empty string")
        return value


class Listener(BaseModel):
    """A process currently listening on a port."""

    pid: int
    command: str


class PortConflict(BaseModel):
    """A port binding with at least one live listener.

    ``new_port`` is set at most once by the resolver when the user picks a
    different port; assignment is validated so it can only be a positive int.
    """

    model_config = ConfigDict(validate_assignment=True)

    port: PositiveInt
    desired_service: str
    flexible: bool = False
    option_name: Optional[str] = None
    listeners: list[Listener] = Field(default_factory=list)
    new_port: Optional[PositiveInt] = None
