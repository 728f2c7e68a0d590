"""Daily challenge scheduler & forum poster"""
import discord
from discord.ext import tasks

from .challenges import (
    Challenge,
    DIFFICULTY_COLORS,
    DIFFICULTY_EMOJIS,
    fetch_daily_challenge,
    is_post_window,
    local_now,
    select_forum_tags,
)
from .config import logger, EMBED_COLOR, EMBED_FOOTER
from .ui_components import ChallengeView


def create_challenge_embed(challenge: Challenge) -> discord.Embed:
    embed = discord.Embed(
        title=f"{DIFFICULTY_EMOJIS.get(challenge.difficulty, '🧩')} {challenge.title}",
        description=challenge.statement,
        color=DIFFICULTY_COLORS.get(challenge.difficulty, EMBED_COLOR),
        url=challenge.url,
    )
    embed.add_field(name="📊 Difficulty", value=challenge.difficulty, inline=True)
    embed.add_field(name="💻 Language", value=challenge.language, inline=True)
    if challenge.topics:
        embed.add_field(name="🏷️ Topics", value=", ".join(challenge.topics), inline=True)
    if challenge.examples:
        examples = "\n\n".join(f"```\n{e}\n```" for e in challenge.examples)
        embed.add_field(name="💡 Examples", value=examples[:1000], inline=False)
    if challenge.hints:
        embed.add_field(name="🧭 Hints", value="\n".join(f"• {h}" for h in challenge.hints)[:1000], inline=False)
    embed.set_footer(text=f"{EMBED_FOOTER} | Daily Challenge")
    return embed


class ChallengeScheduler:
    """Checks every few minutes and posts once during the posting hour."""

    def __init__(self, bot, services):
        self.bot = bot
        self.services = services

    def start(self):
        if not self.check_schedule.is_running():
            self.check_schedule.start()
            logger.info("⏰ Daily challenge scheduler started")

    def stop(self):
        self.check_schedule.cancel()

    @tasks.loop(minutes=5)
    async def check_schedule(self):
        try:
            if not await self.services.settings.is_enabled("problem_solving"):
                return
            now = local_now()
            if not is_post_window(now):
                return
            if await self.services.challenges.posted_on(now.date().isoformat()):
                return
            await self.post_daily_challenge()
        except Exception as e:
            logger.error(f"Error in challenge scheduler: {e}", exc_info=True)

    @check_schedule.before_loop
    async def before_check_schedule(self):
        await self.bot.wait_until_ready()

    async def get_forum(self):
        channel_id = await self.services.settings.get_channel("problem_solving")
        if not channel_id:
            return None
        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            channel = await self.bot.fetch_channel(int(channel_id))
        if not isinstance(channel, discord.ForumChannel):
            logger.error(f"❌ Challenge channel {channel_id} is not a forum channel")
            return None
        return channel

    async def post_daily_challenge(self, force: bool = False):
        """Post today's challenge. Returns the thread, or None if skipped."""
        date_key = local_now().date().isoformat()
        if not force and await self.services.challenges.posted_on(date_key):
            logger.info(f"Challenge for {date_key} already posted")
            return None

        forum = await self.get_forum()
        if forum is None:
            logger.error("❌ Forum channel not found")
            return None

        challenge = await fetch_daily_challenge()
        logger.info(f"✅ Got challenge: {challenge.title} ({challenge.difficulty})")

        tags = select_forum_tags(forum.available_tags, challenge)
        if not tags:
            logger.warning("⚠️ No matching forum tags for today's challenge")

        thread_with_message = await forum.create_thread(
            name=challenge.thread_name,
            embed=create_challenge_embed(challenge),
            view=ChallengeView(self.services, challenge.url),
            applied_tags=tags,
            auto_archive_duration=1440,
        )
        thread = thread_with_message.thread

        await self.services.challenges.record(date_key, challenge, thread.id)
        logger.info(f"✅ Posted daily challenge: {challenge.title}")
        return thread
