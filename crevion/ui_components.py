"""UI Components - Discord Views and Selects

Contains the Discord UI components (buttons, selects, views) for the bot.
"""
import discord

from .config import logger, INFO_COLOR
from .errors import AIUnavailable
from .formatting import error_embed, make_embed, success_embed

CHALLENGE_HINT_ID = "crevion:challenge_hint"
DIFFICULTY_PREFIXES = ("🟢", "🟡", "🔴")

HELP_CATEGORIES = {
    "general": ("🌍 General", "Commands everyone can use"),
    "creativity": ("🎨 Creativity", "Commands for helpers and creators"),
    "moderation": ("🛡️ Moderation", "Auto replies, auto line and announcements"),
    "admin": ("⚙️ Admin", "Server level configuration"),
    "owner": ("👑 Owner", "Bot configuration and permissions"),
}

# ============================================================================
# CHALLENGES
# ============================================================================

class ChallengeView(discord.ui.View):
    """Buttons under a daily challenge post.

    The hint button is persistent (registered with ``bot.add_view`` on
    startup) so it keeps working on old posts after a restart.
    """

    def __init__(self, services, url: str = None):
        super().__init__(timeout=None)
        self.services = services
        if url:
            self.add_item(discord.ui.Button(label="Solve on LeetCode", emoji="🔗", style=discord.ButtonStyle.link, url=url))

    @discord.ui.button(label="Get AI Hint", emoji="🤖", style=discord.ButtonStyle.primary, custom_id=CHALLENGE_HINT_ID)
    async def hint_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer(ephemeral=True)

        if not self.services.ai.is_available:
            await interaction.followup.send("❌ AI not configured", ephemeral=True)
            return

        embed = interaction.message.embeds[0] if interaction.message and interaction.message.embeds else None
        title = (embed.title or "") if embed else ""
        for prefix in DIFFICULTY_PREFIXES:
            title = title.replace(prefix, "")
        description = (embed.description or "") if embed else ""

        try:
            reply = await self.services.ai.hint(title.strip(), description)
        except AIUnavailable as e:
            logger.error(f"AI hint error: {e}")
            await interaction.followup.send("❌ Failed to generate hint.", ephemeral=True)
            return

        hint_embed = discord.Embed(title="🤖 AI Hint", description=reply.text[:4000], color=INFO_COLOR)
        hint_embed.set_footer(text=f"Powered by {reply.provider} • Keep thinking! 💪")
        await interaction.followup.send(embed=hint_embed, ephemeral=True)

# ============================================================================
# AI ASSISTANT
# ============================================================================

class AIReplyView(discord.ui.View):
    """Lets the asker wipe their conversation history."""

    def __init__(self, services, user_id: int):
        super().__init__(timeout=600)  # 10 minute timeout
        self.services = services
        self.user_id = user_id

    @discord.ui.button(label="New Conversation", emoji="🧹", style=discord.ButtonStyle.secondary)
    async def clear_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        if interaction.user.id != self.user_id:
            await interaction.response.send_message("❌ This isn't your conversation.", ephemeral=True)
            return
        self.services.ai.clear(self.user_id)
        button.disabled = True
        await interaction.response.edit_message(view=self)
        await interaction.followup.send("🧹 Conversation cleared.", ephemeral=True)

# ============================================================================
# PERMISSIONS
# ============================================================================

class ConfirmResetView(discord.ui.View):
    """Two-step confirmation for /permissions reset."""

    def __init__(self, services, author_id: int):
        super().__init__(timeout=60)
        self.services = services
        self.author_id = author_id

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.author_id:
            await interaction.response.send_message("❌ Only the person who ran the command can confirm.", ephemeral=True)
            return False
        return True

    @discord.ui.button(label="Reset", emoji="♻️", style=discord.ButtonStyle.danger)
    async def confirm(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.services.permissions.reset_to_defaults()
        logger.info(f"♻️ Permissions reset by {interaction.user} ({interaction.user.id})")
        self.stop()
        await interaction.response.edit_message(
            embed=success_embed("Permissions Reset", "Roles, overrides and line access were restored. Owners were kept."),
            view=None,
        )

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.stop()
        await interaction.response.edit_message(embed=error_embed("Reset Cancelled"), view=None)

# ============================================================================
# HELP
# ============================================================================

def help_category_embed(category: str, names) -> discord.Embed:
    title, description = HELP_CATEGORIES[category]
    embed = make_embed(title, description)
    embed.add_field(name="Commands", value="\n".join(f"`/{n}`" for n in names) or "*None*", inline=False)
    return embed


class HelpSelect(discord.ui.Select):
    def __init__(self, categories: dict):
        self.categories = categories
        options = [
            discord.SelectOption(label=HELP_CATEGORIES[key][0], description=HELP_CATEGORIES[key][1], value=key)
            for key in HELP_CATEGORIES
            if categories.get(key)
        ]
        super().__init__(placeholder="Choose a category...", options=options)

    async def callback(self, interaction: discord.Interaction):
        category = self.values[0]
        await interaction.response.edit_message(embed=help_category_embed(category, self.categories[category]))


class HelpView(discord.ui.View):
    """Category picker limited to the categories the member can use."""

    def __init__(self, categories: dict):
        super().__init__(timeout=180)
        if categories:
            self.add_item(HelpSelect(categories))

