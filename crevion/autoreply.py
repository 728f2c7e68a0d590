"""Auto Reply System - Trigger phrases with canned responses

Stored as the ``autoreplies`` document keyed by lower-cased trigger.
"""
from __future__ import annotations

import time
from typing import Optional

from .config import logger
from .storage import DocumentStore

AUTOREPLIES_DOCUMENT = "autoreplies"
MAX_AUTOREPLIES = 100


def find_match(replies: dict, content: str) -> Optional[str]:
    """Key of the first reply whose trigger matches ``content``.

    Exact replies need the whole message to equal the trigger; the rest
    match anywhere in the message. Both comparisons ignore case.
    """
    content = content.strip().lower()
    if not content:
        return None
    for key, data in replies.items():
        if data.get("exact"):
            if content == key:
                return key
        elif key in content:
            return key
    return None


class AutoReplyBook:
    """Add, remove and match auto replies."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def all(self) -> dict:
        return await self.store.load(AUTOREPLIES_DOCUMENT)

    async def add(self, trigger: str, response: str, mention: bool = False, reply: bool = True, exact: bool = False) -> bool:
        """Create or replace a reply. Returns True if it replaced an existing one."""
        trigger = trigger.strip()
        key = trigger.lower()
        if not key:
            raise ValueError("Trigger cannot be empty")

        def mutate(doc: dict) -> bool:
            replaced = key in doc
            if not replaced and len(doc) >= MAX_AUTOREPLIES:
                raise ValueError(f"Auto reply limit reached ({MAX_AUTOREPLIES})")
            doc[key] = {
                "trigger": trigger,
                "response": response,
                "mention": mention,
                "reply": reply,
                "exact": exact,
                "created_at": time.time(),
                "uses": doc.get(key, {}).get("uses", 0),
            }
            return replaced

        replaced = await self.store.update(AUTOREPLIES_DOCUMENT, mutate)
        logger.info(f"Auto reply {'updated' if replaced else 'added'}: {trigger[:50]}")
        return replaced

    async def remove(self, trigger: str) -> bool:
        key = trigger.strip().lower()

        def mutate(doc: dict) -> bool:
            return doc.pop(key, None) is not None

        return await self.store.update(AUTOREPLIES_DOCUMENT, mutate)

    async def match(self, content: str) -> Optional[dict]:
        """Matching reply for a message, with its use counter bumped."""
        replies = await self.all()
        if find_match(replies, content) is None:
            return None

        def mutate(doc: dict) -> Optional[dict]:
            # Re-match against the locked document in case it changed
            key = find_match(doc, content)
            if key is None:
                return None
            doc[key]["uses"] = doc[key].get("uses", 0) + 1
            return dict(doc[key])

        return await self.store.update(AUTOREPLIES_DOCUMENT, mutate)

    async def clear(self) -> int:
        def mutate(doc: dict) -> int:
            count = len(doc)
            doc.clear()
            return count

        return await self.store.update(AUTOREPLIES_DOCUMENT, mutate)
