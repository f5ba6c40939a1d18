"""
Input sanitization helpers applied before anything is persisted.

Every function accepts arbitrary input and returns a clean value; non-string
input becomes an empty string (or the default for numbers) instead of raising.
"""

import math
import re
import unicodedata

from markupsafe import Markup, escape

_SCRIPT_BLOCKS = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_LINE_ENDINGS = re.compile(r"\r\n|\r")
_WHITESPACE = re.compile(r"\s+")

_EMOJI = re.compile(
    "[\U0001F300-\U0001F9FF]|[\u2600-\u26FF]|[\u2700-\u27BF]|[\U0001F600-\U0001F64F]|[\U0001F680-\U0001F6FF]"
)


def sanitize_text(value, max_length: int = 500) -> str:
    """Text-only output: HTML removed, control characters dropped, trimmed."""
    if not isinstance(value, str):
        return ""

    text = _SCRIPT_BLOCKS.sub("", value)
    # striptags collapses runs of whitespace and unescapes entities, so strip
    # line by line and escape the result again
    lines = [str(escape(Markup(line).striptags())) if "<" in line or "&" in line else line
             for line in _LINE_ENDINGS.sub("\n", text).split("\n")]
    text = "\n".join(lines)[:max_length]
    text = _JS_PROTOCOL.sub("", text)
    text = _CONTROL_CHARS.sub("", text)
    return text.strip()


def sanitize_strict_text(value, max_length: int = 100) -> str:
    """Letters from any script, digits, whitespace and basic punctuation only."""
    if not isinstance(value, str):
        return ""
    text = value[:max_length]
    text = "".join(ch for ch in text if ch.isalpha() or ch in "0123456789',.-" or ch.isspace())
    return _WHITESPACE.sub(" ", text).strip()


def sanitize_slug(value, max_length: int = 50) -> str:
    """Lowercase ASCII alphanumerics and single hyphens."""
    if not isinstance(value, str):
        return ""
    text = unicodedata.normalize("NFD", value)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = text[:max_length].lower()
    text = re.sub(r"[^a-z0-9-]", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-").strip()


def sanitize_emoji(value) -> str:
    """First emoji found in the input, or an empty string."""
    if not isinstance(value, str):
        return ""
    match = _EMOJI.search(value)
    return match.group(0) if match else ""


def sanitize_number(value, minimum: float, maximum: float, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return default
    return int(max(minimum, min(maximum, math.floor(value))))


def sanitize_key(value, max_length: int = 100) -> str:
    if not isinstance(value, str):
        return ""
    return re.sub(r"[^a-zA-Z0-9_-]", "", value[:max_length]).strip()
