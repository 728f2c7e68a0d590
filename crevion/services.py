"""Shared services handed to event handlers and command modules"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .ai_providers import AIAssistant
from .autoreply import AutoReplyBook
from .bot_settings import BotSettings
from .challenges import ChallengeHistory
from .checks import CommandRegistry
from .config import DATA_DIR
from .line import AutoLineChannels
from .permission_manager import PermissionManager
from .storage import DocumentStore, JsonDocumentStore


@dataclass
class Services:
    store: DocumentStore
    permissions: PermissionManager
    settings: BotSettings
    autoreplies: AutoReplyBook
    autolines: AutoLineChannels
    challenges: ChallengeHistory
    ai: AIAssistant
    registry: CommandRegistry = field(default_factory=CommandRegistry)
    # Set by register_events once the bot exists
    scheduler: Any = None
    voice: Any = None


def build_services(store: Optional[DocumentStore] = None, data_dir: Path = DATA_DIR, ai: Optional[AIAssistant] = None, **permission_kwargs) -> Services:
    """Wire every service to one document store (JSON files by default)."""
    if store is None:
        store = JsonDocumentStore(data_dir)
    return Services(
        store=store,
        permissions=PermissionManager(store, **permission_kwargs),
        settings=BotSettings(store),
        autoreplies=AutoReplyBook(store),
        autolines=AutoLineChannels(store),
        challenges=ChallengeHistory(store),
        ai=ai or AIAssistant(),
    )
