"""Configuration and initialization for Crévion

Loads settings from:
1. Environment variables (.env)
2. config.toml file
3. Default values

This module should be imported first by all other modules.
"""
import logging
import os
import warnings
from pathlib import Path
from typing import Dict, List

import discord
import toml
from dotenv import load_dotenv
from google import genai

from .security import RateLimiter

# Suppress aiohttp unclosed client session warnings on shutdown
warnings.filterwarnings("ignore", message="Unclosed client session", category=ResourceWarning)

# ============================================================================
# ENVIRONMENT & CONFIG LOADING
# ============================================================================

load_dotenv()
BOT_TOKEN = os.getenv("BOT_TOKEN")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
REMOVE_BG_API_KEY = os.getenv("REMOVE_BG_API_KEY")

CONFIG_FILE = Path(os.getenv("CONFIG_PATH", "config.toml"))
config = toml.load(CONFIG_FILE) if CONFIG_FILE.exists() else {}

# ============================================================================
# CONFIGURATION PARSING HELPERS
# ============================================================================

def parse_id_list(env_var_name: str, config_key: str) -> List[str]:
    """Parse comma-separated ID list from env var or config file.

    Discord IDs are kept as strings so they compare equal to what the
    JSON documents store.
    """
    env_value = os.getenv(env_var_name)
    if env_value is not None:
        # Parse env var: "123,456,789" or "[]" for empty
        env_value = env_value.strip()
        if env_value == "[]" or env_value == "":
            return []
        return [x.strip() for x in env_value.split(",") if x.strip()]
    return [str(x) for x in config.get(config_key, [])]


def parse_channel_id(env_var_name: str, config_key: str) -> str:
    """Single channel ID from env var or the [channels] table, '' if unset."""
    env_value = os.getenv(env_var_name)
    if env_value:
        return env_value.strip()
    value = config.get("channels", {}).get(config_key)
    return str(value) if value else ""


def parse_role_table(table: dict) -> Dict[str, List[str]]:
    """Normalise a [permissions.roles] table to {level_name: [role_id, ...]}."""
    roles = {}
    for level_name, role_ids in table.items():
        if isinstance(role_ids, list):
            roles[str(level_name).lower()] = [str(r) for r in role_ids]
    return roles

# ============================================================================
# DISCORD CONFIGURATION
# ============================================================================

BOT_NAME = config.get("BOT_NAME", "Crévion")
BOT_VERSION = "2.0.0"
DEFAULT_PREFIX = os.getenv("BOT_PREFIX") or config.get("PREFIX", "-")
DEFAULT_STATUS = config.get("STATUS", "idle")
BOT_OWNER_IDS = parse_id_list("BOT_OWNER_IDS", "OWNER_IDS")

EMBED_COLOR = 0x370080
SUCCESS_COLOR = 0x57F287
ERROR_COLOR = 0xED4245
WARNING_COLOR = 0xFEE75C
INFO_COLOR = 0x4A90E2
EMBED_FOOTER = config.get("EMBED_FOOTER", "Crévion Community")

# ============================================================================
# STORAGE CONFIGURATION
# ============================================================================

DATA_DIR = Path(os.getenv("DATA_DIR") or config.get("DATA_DIR", "data"))
STORAGE_TIMEOUT = float(os.getenv("STORAGE_TIMEOUT", config.get("STORAGE_TIMEOUT", 5.0)))

# Roles restored by a permission reset; owners are never part of this
DEFAULT_ROLES = parse_role_table(config.get("permissions", {}).get("roles", {}))

# ============================================================================
# FEATURE CHANNELS
# ============================================================================

DEFAULT_CHANNELS = {
    "ai_assistant": parse_channel_id("AI_CHANNEL_ID", "ai_assistant"),
    "color_extractor": parse_channel_id("COLOR_CHANNEL_ID", "color_extractor"),
    "background_remover": parse_channel_id("BACKGROUND_CHANNEL_ID", "background_remover"),
    "problem_solving": parse_channel_id("CHALLENGE_CHANNEL_ID", "problem_solving"),
    "log": parse_channel_id("LOG_CHANNEL_ID", "log"),
}

# Voice channel joined on startup
DEFAULT_VOICE_CHANNEL = parse_channel_id("VOICE_CHANNEL_ID", "default_voice")

DEFAULT_FEATURES = {
    "ai_assistant": True,
    "color_extractor": True,
    "background_remover": True,
    "problem_solving": True,
    "auto_replies": True,
    "auto_line": True,
}
DEFAULT_FEATURES.update(config.get("features", {}))

# ============================================================================
# DAILY CHALLENGE CONFIGURATION
# ============================================================================

CHALLENGE_TIMEZONE = os.getenv("CHALLENGE_TIMEZONE") or config.get("CHALLENGE_TIMEZONE", "Africa/Cairo")
CHALLENGE_HOUR = int(os.getenv("CHALLENGE_HOUR", config.get("CHALLENGE_HOUR", 12)))

# ============================================================================
# GEMINI AI CONFIGURATION
# ============================================================================

GEMINI_PRIMARY_MODEL = os.getenv("GEMINI_PRIMARY_MODEL") or config.get("GEMINI_PRIMARY_MODEL", "gemini-2.5-flash")

# Fallback models - support both env var (comma-separated) and config.toml (list)
fallback_env = os.getenv("GEMINI_FALLBACK_MODELS")
if fallback_env:
    GEMINI_FALLBACK_MODELS = [m.strip() for m in fallback_env.split(",")]
else:
    GEMINI_FALLBACK_MODELS = config.get("GEMINI_FALLBACK_MODELS", [
        "gemini-2.5-flash",
        "gemini-2.5-flash-lite",
        "gemini-flash-latest",
    ])

GEMINI_MAX_RETRIES = int(os.getenv("GEMINI_MAX_RETRIES", config.get("GEMINI_MAX_RETRIES", 3)))
GEMINI_RETRY_DELAY = float(os.getenv("GEMINI_RETRY_DELAY", config.get("GEMINI_RETRY_DELAY", 1.0)))

gemini_client = None
if GEMINI_API_KEY:
    gemini_client = genai.Client(
        api_key=GEMINI_API_KEY,
    )

# ============================================================================
# CLAUDE AI CONFIGURATION
# ============================================================================

CLAUDE_PRIMARY_MODEL = os.getenv("CLAUDE_PRIMARY_MODEL") or config.get("CLAUDE_PRIMARY_MODEL", "claude-3-5-haiku-20241022")

claude_client = None
if ANTHROPIC_API_KEY:
    from anthropic import AsyncAnthropic
    claude_client = AsyncAnthropic(
        api_key=ANTHROPIC_API_KEY,
    )

# ============================================================================
# LLM PROVIDER SELECTION
# ============================================================================

AVAILABLE_PROVIDERS = []
if gemini_client:
    AVAILABLE_PROVIDERS.append("gemini")
if claude_client:
    AVAILABLE_PROVIDERS.append("claude")

provider_priority_env = os.getenv("LLM_PROVIDER_PRIORITY")
if provider_priority_env:
    LLM_PROVIDER_PRIORITY = [p.strip() for p in provider_priority_env.split(",")]
else:
    LLM_PROVIDER_PRIORITY = config.get("LLM_PROVIDER_PRIORITY", ["gemini", "claude"])

LLM_PROVIDER_PRIORITY = [p for p in LLM_PROVIDER_PRIORITY if p in AVAILABLE_PROVIDERS]

AI_MAX_HISTORY_TURNS = int(config.get("AI_MAX_HISTORY_TURNS", 10))

# ============================================================================
# LOGGING SETUP
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("Crevion")

if AVAILABLE_PROVIDERS:
    logger.info("🤖 Available LLM providers: %s", ", ".join(AVAILABLE_PROVIDERS))
    logger.info("📋 Provider priority: %s", " → ".join(LLM_PROVIDER_PRIORITY))
else:
    logger.warning("⚠️ No LLM providers available! Set GEMINI_API_KEY or ANTHROPIC_API_KEY.")

if not REMOVE_BG_API_KEY:
    logger.info("ℹ️ REMOVE_BG_API_KEY not set. Background removal will be disabled.")

# ============================================================================
# RATE LIMITERS
# ============================================================================

ai_rate_limiter = RateLimiter(max_requests=3, window_seconds=30)
image_rate_limiter = RateLimiter(max_requests=2, window_seconds=60)

# ============================================================================
# DISCORD BOT INTENTS
# ============================================================================

intents = discord.Intents.default()
intents.message_content = True
intents.members = True
intents.guilds = True
