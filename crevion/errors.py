"""Error types shared by the permission core and the bot features.

Every error carries a ``kind`` so command handlers can pick a message
without string matching.
"""
from __future__ import annotations


class CrevionError(Exception):
    """Base error for recoverable bot failures."""

    kind = "error"
    user_message = "❌ Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class ConfigUnavailable(CrevionError):
    """A stored document could not be read or written."""

    kind = "config_unavailable"
    user_message = "❌ Bot configuration is unavailable right now. Please try again later."


class InvalidLevel(CrevionError):
    """A permission level could not be parsed."""

    kind = "invalid_level"

    def __init__(self, value):
        self.value = value
        super().__init__(f"❌ `{value}` is not a valid permission level.")


class LastOwnerRemoval(CrevionError):
    """Removing this owner would leave the bot without any owner."""

    kind = "last_owner_removal"
    user_message = "❌ Cannot remove the last owner. Add another owner first."


class LineFetchError(CrevionError):
    """The configured line image could not be downloaded."""

    kind = "line_fetch"

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"Line fetch failed ({reason}) {detail}".strip())


class RemoveBgError(CrevionError):
    """The remove.bg API rejected a request."""

    kind = "remove_bg"

    def __init__(self, status: int):
        self.status = status
        if status == 402:
            message = "API quota exceeded. Please try again later."
        elif status == 400:
            message = "Invalid image format. Please use PNG, JPG, or WebP."
        else:
            message = "Failed to remove background. Please try again with a different image."
        super().__init__(message)


class AIUnavailable(CrevionError):
    """No AI provider is configured or every provider failed."""

    kind = "ai_unavailable"
    user_message = "❌ The AI assistant is not available right now."
