"""Configuration management for parley."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_UNEXPECTED_ERROR_TEMPLATE = (
    "An error occurred while running the command: `{error_name}: {error_message}`\n"
    "You shouldn't ever receive an error like this.\n"
    "Please contact {owner}{invite_suffix}"
)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="PARLEY_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Operator contact shown in unexpected error replies
    owner_name: str | None = Field(None, description="Display name of the bot operator")
    invite: str | None = Field(None, description="Invite link to the operator's support server")

    # Reply templates
    guild_only_template: str = Field(
        default="The `{command}` command must be used in a server channel.",
        description="Reply when a guild-only command is used in a private context",
    )
    permission_template: str = Field(
        default="You do not have permission to use the `{command}` command.",
        description="Reply when the permission check fails",
    )
    unexpected_error_template: str = Field(
        default=DEFAULT_UNEXPECTED_ERROR_TEMPLATE,
        description="Reply when command logic raises an unexpected error",
    )

    # Responses
    split_max_length: int = Field(default=2000, gt=0, description="Maximum length of one split message")
    edit_cache_size: int = Field(default=256, ge=0, description="Invocations kept for re-running on message edit")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    def render_unexpected_error(self, error: BaseException, owner: str | None = None) -> str:
        """Render the incident reply for ``error``.

        ``owner`` overrides ``owner_name``, e.g. with an already escaped name.
        """
        owner = owner or self.owner_name or "the bot owner"
        invite_suffix = f" in this server: {self.invite}" if self.invite else "."
        return self.unexpected_error_template.format(
            error_name=type(error).__name__,
            error_message=str(error),
            owner=owner,
            invite_suffix=invite_suffix,
            invite=self.invite or "",
        )


def get_settings() -> Settings:
    """Get application settings from the environment and ``.env``."""
    return Settings()
