"""Immutable command-bot attributes.

Attributes is the configuration record consulted by the trigger
gates, the chain parser and the dispatcher. It is created once per
bot and never mutated afterwards.
"""

from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

# Grammar symbol fields, all of which must be a single character.
SYMBOL_FIELDS = (
    "previous",
    "chain_delimiter",
    "chain_args_delim",
    "sub_chain_start",
    "sub_chain_end",
    "quote_start",
    "quote_end",
)


class Attributes(BaseModel):
    """Behavioural switches and grammar symbols of a command bot."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    advanced_functionality: bool = Field(
        default=False, description="Enable chains, sub-chains and quoting"
    )
    help_command: Optional[Union[str, Tuple[str, ...]]] = Field(
        default="help", description="Help command name or aliases, None to disable"
    )
    command_doesnt_exist_message: Optional[str] = Field(
        default=None, description="Template with %command%, None for silence"
    )
    no_permission_message: Optional[str] = Field(
        default=None, description="Sent when a capability check raises NoPermission"
    )
    spaces_allowed: bool = Field(
        default=False, description="Tolerate whitespace between prefix and command"
    )
    parse_self: bool = Field(
        default=False, description="Process messages sent by the bot's own account"
    )

    previous: str = "~"
    chain_delimiter: str = ">"
    chain_args_delim: str = ":"
    sub_chain_start: str = "["
    sub_chain_end: str = "]"
    quote_start: str = '"'
    quote_end: str = '"'

    max_chain_depth: int = Field(default=32, ge=1)

    @field_validator(*SYMBOL_FIELDS)
    @classmethod
    def _single_character(cls, value: str, info) -> str:
        if len(value) != 1:
            raise ValueError(
                f"{info.field_name} must be exactly one character, got {value!r}"
            )
        return value

    @field_validator("help_command", mode="before")
    @classmethod
    def _normalize_help_command(cls, value: Any) -> Any:
        if value is False:
            return None
        if isinstance(value, list):
            return tuple(value)
        return value

    @property
    def help_command_names(self) -> Tuple[str, ...]:
        """All names the help command answers to (empty when disabled)."""
        if self.help_command is None:
            return ()
        if isinstance(self.help_command, str):
            return (self.help_command,)
        return self.help_command

    @classmethod
    def from_options(cls, **options: Any) -> "Attributes":
        """Build attributes from loose keyword options.

        Options set to None fall back to their defaults, except the two
        message templates where None means "no message". Validation
        failures are re-raised as ConfigurationError.
        """
        nullable = {"command_doesnt_exist_message", "no_permission_message"}
        cleaned = {
            k: v for k, v in options.items() if v is not None or k in nullable
        }
        try:
            return cls(**cleaned)
        except ValidationError as e:
            errors = e.errors()
            setting = ".".join(str(p) for p in errors[0]["loc"]) if errors else None
            raise ConfigurationError(
                f"Invalid bot attributes: {errors[0]['msg'] if errors else e}",
                setting_name=setting,
            ) from e
