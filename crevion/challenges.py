"""Daily Coding Challenge - LeetCode problem of the day

Fetches LeetCode's daily question, formats it, and posts it once per day
as a forum thread. Posted dates are tracked in the ``challenges``
document so a restart never posts twice.
"""
from __future__ import annotations

import html
import random
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

import aiohttp

from .config import logger, CHALLENGE_HOUR, CHALLENGE_TIMEZONE
from .storage import DocumentStore

CHALLENGES_DOCUMENT = "challenges"
LEETCODE_API = "https://leetcode.com/graphql"
LEETCODE_TIMEOUT = 10
POST_WINDOW_MINUTES = 15
MAX_HISTORY = 60
MAX_FORUM_TAGS = 5

DAILY_QUESTION_QUERY = """
query questionOfToday {
  activeDailyCodingChallengeQuestion {
    date
    link
    question {
      title
      titleSlug
      difficulty
      content
      topicTags { name }
      codeSnippets { lang }
    }
  }
}
"""

PREFERRED_LANGUAGES = ("Python", "Python3", "JavaScript", "Java")

DIFFICULTY_COLORS = {"Easy": 0x57F287, "Medium": 0xFEE75C, "Hard": 0xED4245}
DIFFICULTY_EMOJIS = {"Easy": "🟢", "Medium": "🟡", "Hard": "🔴"}

# ============================================================================
# PROBLEM MODEL
# ============================================================================

@dataclass
class Challenge:
    title: str
    difficulty: str
    language: str
    statement: str
    url: str
    topics: List[str] = field(default_factory=list)
    examples: List[str] = field(default_factory=list)
    hints: List[str] = field(default_factory=list)

    @property
    def thread_name(self) -> str:
        return f"🧩 {self.title} [{self.difficulty}]"[:100]


FALLBACK_CHALLENGES = [
    Challenge(
        title="Two Sum",
        difficulty="Easy",
        language="JavaScript",
        statement="Given an array of integers nums and an integer target, return indices of the two numbers such that they add up to target.",
        url="https://leetcode.com/problems/two-sum/",
        topics=["Arrays", "Hash Table"],
        examples=["Input: nums = [2,7,11,15], target = 9\nOutput: [0,1]"],
        hints=["Use a hash map for O(n) solution"],
    ),
    Challenge(
        title="Reverse Linked List",
        difficulty="Easy",
        language="Python",
        statement="Given the head of a singly linked list, reverse the list, and return the reversed list.",
        url="https://leetcode.com/problems/reverse-linked-list/",
        topics=["Linked List", "Recursion"],
        examples=["Input: head = [1,2,3,4,5]\nOutput: [5,4,3,2,1]"],
        hints=["Use iterative or recursive approach"],
    ),
]

# ============================================================================
# LEETCODE PARSING
# ============================================================================

def clean_html(content: str) -> str:
    """Strip tags and entities from LeetCode's HTML problem body."""
    text = re.sub(r"<[^>]*>", " ", content or "")
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def extract_examples(content: str, limit: int = 2) -> List[str]:
    """Plain-text bodies of the first ``<pre>`` example blocks."""
    examples = []
    for block in re.findall(r"<pre>(.*?)</pre>", content or "", flags=re.S)[:limit]:
        text = html.unescape(re.sub(r"<[^>]*>", "", block)).strip()
        if text:
            examples.append(text)
    return examples


def pick_language(snippets: List[dict]) -> str:
    languages = {s.get("lang") for s in snippets or []}
    for language in PREFERRED_LANGUAGES:
        if language in languages:
            return "Python" if language == "Python3" else language
    return "JavaScript"


def parse_daily_question(payload: dict) -> Optional[Challenge]:
    """Build a Challenge from the GraphQL response, None if it has no question."""
    daily = (payload.get("data") or {}).get("activeDailyCodingChallengeQuestion")
    if not daily or not daily.get("question"):
        return None

    question = daily["question"]
    content = question.get("content") or ""
    statement = clean_html(content.split("<strong class=\"example\">")[0])
    if len(statement) > 500:
        statement = statement[:500] + "..."

    return Challenge(
        title=question["title"],
        difficulty=question.get("difficulty", "Medium"),
        language=pick_language(question.get("codeSnippets")),
        statement=statement,
        url=f"https://leetcode.com{daily.get('link') or '/problems/' + question.get('titleSlug', '') + '/'}",
        topics=[t["name"] for t in question.get("topicTags") or []][:3],
        examples=extract_examples(content),
    )


async def fetch_daily_challenge() -> Challenge:
    """LeetCode's daily question, or a built-in problem if that fails."""
    try:
        timeout = aiohttp.ClientTimeout(total=LEETCODE_TIMEOUT)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(LEETCODE_API, json={"query": DAILY_QUESTION_QUERY}) as response:
                if response.status != 200:
                    raise aiohttp.ClientResponseError(
                        response.request_info, response.history, status=response.status,
                    )
                challenge = parse_daily_question(await response.json())
                if challenge:
                    return challenge
                logger.warning("LeetCode returned no daily question, using fallback")
    except Exception as e:
        logger.error(f"LeetCode API error: {e}")

    return random.choice(FALLBACK_CHALLENGES)


def select_forum_tags(available_tags, challenge: Challenge) -> list:
    """Forum tags matching difficulty, language and topics (max five)."""
    selected = []

    def add(tag):
        if tag is not None and tag not in selected and len(selected) < MAX_FORUM_TAGS:
            selected.append(tag)

    by_name = {tag.name.lower(): tag for tag in available_tags}
    add(by_name.get(challenge.difficulty.lower()))
    add(by_name.get(challenge.language.lower()))
    for topic in challenge.topics:
        topic = topic.lower()
        add(next((tag for tag in available_tags if topic in tag.name.lower()), None))
    return selected

# ============================================================================
# SCHEDULING
# ============================================================================

def local_now(tz_name: str = CHALLENGE_TIMEZONE) -> datetime:
    return datetime.now(ZoneInfo(tz_name))


def is_post_window(now: datetime, hour: int = CHALLENGE_HOUR) -> bool:
    """True during the first minutes of the posting hour."""
    return now.hour == hour and now.minute < POST_WINDOW_MINUTES


class ChallengeHistory:
    """Dates (local to the challenge timezone) that already got a post."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def posts(self) -> List[dict]:
        return (await self.store.load(CHALLENGES_DOCUMENT)).get("posts", [])

    async def posted_on(self, date_key: str) -> bool:
        return any(p.get("date") == date_key for p in await self.posts())

    async def last_post(self) -> Optional[dict]:
        posts = await self.posts()
        return posts[-1] if posts else None

    async def record(self, date_key: str, challenge: Challenge, thread_id) -> bool:
        """Record a post. Returns False if the date already had one."""
        def mutate(doc: dict) -> bool:
            posts = doc.setdefault("posts", [])
            if any(p.get("date") == date_key for p in posts):
                return False
            posts.append({
                "date": date_key,
                "title": challenge.title,
                "difficulty": challenge.difficulty,
                "language": challenge.language,
                "url": challenge.url,
                "thread_id": str(thread_id) if thread_id else None,
                "posted_at": time.time(),
            })
            del posts[:-MAX_HISTORY]
            return True

        return await self.store.update(CHALLENGES_DOCUMENT, mutate)
