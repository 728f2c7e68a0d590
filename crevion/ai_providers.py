"""AI Providers - Gemini & Claude Integration

Handles communication with Gemini and Claude AI APIs for:
- The AI assistant channel and /ai command
- Daily challenge hints
"""
import asyncio
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List

from google.genai import types

from .config import (
    logger,
    gemini_client,
    claude_client,
    GEMINI_PRIMARY_MODEL,
    GEMINI_FALLBACK_MODELS,
    GEMINI_MAX_RETRIES,
    GEMINI_RETRY_DELAY,
    CLAUDE_PRIMARY_MODEL,
    LLM_PROVIDER_PRIORITY,
    AI_MAX_HISTORY_TURNS,
)
from .errors import AIUnavailable

DISCORD_MESSAGE_LIMIT = 2000

SYSTEM_PROMPTS = {
    "general": (
        "You are Crévion, the assistant of a community of Arab creators, designers and developers. "
        "Answer in the language the user writes in. Be accurate and concise."
    ),
    "code": (
        "You are Crévion, an expert programming assistant. Explain code clearly, point out bugs, "
        "and show corrected snippets in fenced code blocks. Answer in the language the user writes in."
    ),
    "hint": (
        "You are a helpful coding mentor. Give a subtle hint that moves the user forward "
        "without revealing the full solution or any code that solves the problem."
    ),
}

CODE_MARKERS = ("```", "def ", "function ", "class ", "error", "traceback", "exception", "console.log", "import ")


@dataclass
class AIReply:
    text: str
    provider: str


def detect_task(message: str) -> str:
    """Pick a system prompt for a free-form message."""
    lowered = message.lower()
    if any(marker in lowered for marker in CODE_MARKERS):
        return "code"
    return "general"


def split_message(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """Split text into Discord-sized chunks, preferring line breaks."""
    chunks = []
    while len(text) > limit:
        cut = text.rfind("\n", 0, limit)
        if cut <= 0:
            cut = limit
        chunks.append(text[:cut])
        text = text[cut:].lstrip("\n")
    if text:
        chunks.append(text)
    return chunks

# ============================================================================
# GEMINI API
# ============================================================================

async def call_gemini_with_retry(api_call_factory, max_retries: int = None, base_delay: float = None, fallback_models: list = None):
    """Call Gemini API with exponential backoff retry for 503 errors and model fallbacks.

    Args:
        api_call_factory: Callable that takes a model name and returns an async callable for the API call
        max_retries: Maximum number of retry attempts per model (defaults to config value)
        base_delay: Base delay in seconds (doubles with each retry, defaults to config value)
        fallback_models: List of model names to try as fallbacks (defaults to config value)

    Returns:
        API response

    Raises:
        Exception: If all retries and fallbacks fail

    """
    if max_retries is None:
        max_retries = GEMINI_MAX_RETRIES
    if base_delay is None:
        base_delay = GEMINI_RETRY_DELAY
    if fallback_models is None:
        fallback_models = [GEMINI_PRIMARY_MODEL] + [m for m in GEMINI_FALLBACK_MODELS if m != GEMINI_PRIMARY_MODEL]

    last_error = None

    for model_idx, model_name in enumerate(fallback_models):
        if model_idx > 0:
            logger.info(f"Trying fallback model: {model_name}")

        for attempt in range(max_retries):
            try:
                api_call = api_call_factory(model_name)
                return await api_call()
            except Exception as e:
                last_error = e
                error_str = str(e).lower()

                is_service_error = any(keyword in error_str for keyword in [
                    "503", "service unavailable", "overloaded", "rate limit", "429",
                ])

                if is_service_error:
                    if attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning(f"Gemini error with {model_name} (attempt {attempt + 1}/{max_retries}), retrying in {delay}s...")
                        await asyncio.sleep(delay)
                        continue
                    if model_idx < len(fallback_models) - 1:
                        logger.warning(f"Model {model_name} failed after {max_retries} attempts, trying fallback...")
                        break
                    logger.error("All Gemini models failed after retries")
                else:
                    # Not a service error, don't retry
                    raise

    raise last_error


async def generate_with_gemini(system_prompt: str, history: List[dict], message: str) -> str:
    if not gemini_client:
        raise AIUnavailable("Gemini API not initialized - set GEMINI_API_KEY")

    contents = [
        types.Content(
            role="model" if turn["role"] == "assistant" else "user",
            parts=[types.Part(text=turn["content"])],
        )
        for turn in history
    ]
    contents.append(types.Content(role="user", parts=[types.Part(text=message)]))

    def make_call_factory(model_name):
        async def make_call():
            return await gemini_client.aio.models.generate_content(
                model=model_name,
                contents=contents,
                config=types.GenerateContentConfig(system_instruction=system_prompt),
            )
        return make_call

    response = await call_gemini_with_retry(make_call_factory)
    return response.text

# ============================================================================
# CLAUDE API
# ============================================================================

async def generate_with_claude(system_prompt: str, history: List[dict], message: str, model: str = None) -> str:
    if not claude_client:
        raise AIUnavailable("Claude API not initialized - set ANTHROPIC_API_KEY")

    if model is None:
        model = CLAUDE_PRIMARY_MODEL

    messages = [{"role": turn["role"], "content": turn["content"]} for turn in history]
    messages.append({"role": "user", "content": message})

    response = await claude_client.messages.create(
        model=model,
        max_tokens=1024,
        system=system_prompt,
        messages=messages,
    )

    if response.content and len(response.content) > 0:
        return response.content[0].text
    return ""


PROVIDERS = {
    "gemini": generate_with_gemini,
    "claude": generate_with_claude,
}

# ============================================================================
# ASSISTANT
# ============================================================================

class AIAssistant:
    """Per-user conversations over whichever providers are configured."""

    def __init__(self, providers: List[str] = None, max_turns: int = AI_MAX_HISTORY_TURNS):
        self.providers = list(LLM_PROVIDER_PRIORITY if providers is None else providers)
        self.max_turns = max_turns
        self.conversations: Dict[int, List[dict]] = defaultdict(list)

    @property
    def is_available(self) -> bool:
        return bool(self.providers)

    async def complete(self, system_prompt: str, history: List[dict], message: str) -> AIReply:
        """Try each provider in priority order."""
        if not self.providers:
            raise AIUnavailable()

        last_error = None
        for provider in self.providers:
            try:
                text = await PROVIDERS[provider](system_prompt, history, message)
                if text:
                    return AIReply(text=text, provider=provider)
            except Exception as e:
                last_error = e
                logger.warning(f"{provider} failed: {e}")

        logger.error("All AI providers failed: %s", last_error)
        raise AIUnavailable("❌ The AI assistant could not answer right now. Please try again.")

    async def ask(self, user_id: int, message: str, task: str = None) -> AIReply:
        """Answer ``message`` keeping the user's conversation history."""
        task = task or detect_task(message)
        history = self.conversations[user_id]
        reply = await self.complete(SYSTEM_PROMPTS[task], history, message)

        history.append({"role": "user", "content": message})
        history.append({"role": "assistant", "content": reply.text})
        # Keep the last N exchanges (two entries each)
        del history[:-self.max_turns * 2]
        return reply

    async def hint(self, title: str, description: str) -> AIReply:
        prompt = f"Give me a subtle hint for this problem:\n\n{title}\n\n{description}"
        return await self.complete(SYSTEM_PROMPTS["hint"], [], prompt)

    def clear(self, user_id: int) -> bool:
        return self.conversations.pop(user_id, None) is not None

    def history_length(self, user_id: int) -> int:
        return len(self.conversations.get(user_id, [])) // 2
