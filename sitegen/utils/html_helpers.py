"""
HTML extraction, fencing and naming utilities.
"""

import json
import re
from typing import Any, Optional

DEFAULT_TITLE = "Website Project"
TITLE_WORD_LIMIT = 6

# Opening fence: a line of 3+ backticks followed by an optional info string
_FENCE_OPEN = re.compile(r'^(?P<fence>`{3,})[ \t]*(?P<info>[^\n`]*)\n', re.MULTILINE)

# Inline fences some models emit without line breaks
_LOOSE_HTML_FENCE = re.compile(r'```html\s*([\s\S]*?)\s*```', re.IGNORECASE)
_LOOSE_ANY_FENCE = re.compile(r'```\s*([\s\S]*?)\s*```')

_BACKTICK_RUN = re.compile(r'`+')


def _closing_fence(length: int):
    return re.compile(r'(?:^|\n)`{%d,}[ \t]*(?=\n|$)' % length)


def _find_fenced_block(text: str, info: Optional[str] = None) -> Optional[str]:
    """
    Return the body of the first complete fenced block.

    Args:
        text: Text that may contain fenced blocks
        info: Required info string (e.g. "html"); None accepts any block

    Returns:
        str or None: Block body, byte-for-byte, or None if no block matches
    """
    for opening in _FENCE_OPEN.finditer(text):
        if info is not None and opening.group("info").strip().lower() != info:
            continue

        rest = text[opening.end():]
        closing = _closing_fence(len(opening.group("fence"))).search(rest)
        if closing:
            return rest[:closing.start()]

    return None


def extract_html(text: str) -> str:
    """
    Extract raw HTML from a model response.

    Handles:
    - ```html ... ``` blocks (preferred)
    - ``` ... ``` blocks with any or no info string
    - no fence at all: the whole response is treated as HTML

    Args:
        text: Stored AI response

    Returns:
        str: HTML document
    """
    if not text:
        return ""

    body = _find_fenced_block(text, info="html")
    if body is not None:
        return body

    body = _find_fenced_block(text)
    if body is not None:
        return body

    match = _LOOSE_HTML_FENCE.search(text)
    if match:
        return match.group(1).strip()

    match = _LOOSE_ANY_FENCE.search(text)
    if match:
        return match.group(1).strip()

    return text.strip()


def wrap_in_fenced_block(html: str, info: str = "html") -> str:
    """
    Wrap HTML in a fenced block that extract_html() reverses exactly.

    The fence is one backtick longer than the longest backtick run inside
    the HTML, so no line of the document can close it early.

    Args:
        html: HTML document
        info: Info string for the opening fence

    Returns:
        str: Fenced block
    """
    longest_run = max((len(run) for run in _BACKTICK_RUN.findall(html)), default=0)
    fence = "`" * max(3, longest_run + 1)
    return f"{fence}{info}\n{html}\n{fence}"


def safe_json_parse(text: str, default: Any = None) -> Any:
    """
    Safely parse JSON with fallback.

    Args:
        text: JSON string
        default: Default value if parsing fails

    Returns:
        Parsed JSON or default value
    """
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return default


def _message_text(message: dict) -> str:
    """Concatenate the text of a chat message (plain content or parts)."""
    content = message.get("content")
    if isinstance(content, str):
        return content

    parts = message.get("parts")
    if not isinstance(parts, list):
        parts = content if isinstance(content, list) else []

    texts = []
    for part in parts:
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            texts.append(part["text"])
        elif isinstance(part, str):
            texts.append(part)
    return " ".join(texts)


def prompt_text(user_prompt: str) -> str:
    """
    Recover the user's first request from a stored prompt.

    Stored prompts are either raw text or a JSON array of chat messages.

    Args:
        user_prompt: Value of the generation's user_prompt column

    Returns:
        str: Text of the first user message, or the prompt itself
    """
    parsed = safe_json_parse(user_prompt)
    if isinstance(parsed, list):
        for message in parsed:
            if isinstance(message, dict) and message.get("role") == "user":
                return _message_text(message)
        return ""
    return user_prompt or ""


def generate_title(user_prompt: str) -> str:
    """
    Derive a conversation title from its first prompt.

    Non-alphanumeric characters are dropped and the first six words kept.

    Args:
        user_prompt: Raw prompt or serialized message array

    Returns:
        str: Title, or "Website Project" when nothing usable remains
    """
    text = prompt_text(user_prompt)
    cleaned = re.sub(r'[^\w\s]|_', '', text)
    words = cleaned.split()[:TITLE_WORD_LIMIT]
    return " ".join(words) if words else DEFAULT_TITLE


def slugify_site_name(name: str, max_length: int = 63) -> str:
    """
    Turn a user-supplied name into a valid hosting subdomain.

    Args:
        name: Requested site name
        max_length: Maximum subdomain length

    Returns:
        str: Lowercase name of letters, digits and single hyphens (may be empty)
    """
    slug = re.sub(r'[^a-z0-9]+', '-', (name or "").lower())
    return slug.strip('-')[:max_length].strip('-')


def download_filename(generation_id: str) -> str:
    """Filename offered for a downloaded site."""
    return f"website-{generation_id}.html"
