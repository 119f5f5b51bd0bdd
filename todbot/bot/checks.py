"""
todbot.bot.checks — Permission checks
======================================

Moderation is open to members with the Administrator permission or one of
the ``privileged_role_ids`` from ``config.yaml``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import discord
from discord import app_commands

if TYPE_CHECKING:
    from todbot.bot.core import TodBot


def has_privileged_role(
    member: discord.abc.User | None, privileged_role_ids: Iterable[int],
) -> bool:
    """True if *member* may moderate.  Plain users (DMs) never may."""
    if not isinstance(member, discord.Member):
        return False
    if member.guild_permissions.administrator:
        return True
    allowed = {role_id for role_id in privileged_role_ids if role_id}
    return any(role.id in allowed for role in member.roles)


def is_privileged():
    """App-command check wrapping :func:`has_privileged_role`."""
    async def predicate(interaction: discord.Interaction) -> bool:
        bot: TodBot = interaction.client  # type: ignore[assignment]
        return has_privileged_role(interaction.user, bot.cfg.privileged_role_ids)
    return app_commands.check(predicate)
