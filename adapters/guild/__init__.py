"""Guild tenant provisioning adapter."""

from .guild_adapter import (
    GuildAdapter,
    GuildAPIError,
    GuildError,
    GuildOrganization,
    guild_adapter,
)

__all__ = [
    "GuildAdapter",
    "GuildAPIError",
    "GuildError",
    "GuildOrganization",
    "guild_adapter",
]
