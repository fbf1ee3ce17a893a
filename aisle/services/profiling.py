"""
Communication profile. Picks up how the couple writes so later replies can match it.
"""

import re
from typing import Optional

_EMOJI_RE = re.compile("[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF]")
_SWEAR_RE = re.compile(r"\b(damn|hell|shit|fuck|crap|ass|bullshit|dammit)\b", re.IGNORECASE)

SHORT_MESSAGE_WORDS = 10
LONG_MESSAGE_WORDS = 50


def message_length_bucket(message: str) -> str:
    words = len(message.split())
    if words < SHORT_MESSAGE_WORDS:
        return "short"
    if words > LONG_MESSAGE_WORDS:
        return "long"
    return "medium"


def analyze_user_message(message: str, existing: Optional[dict] = None) -> dict:
    """
    Kernel updates for one user message.

    uses_emojis / uses_swearing only ever flip to True. message_length
    follows the latest message.
    """
    existing = existing or {}
    updates: dict = {"message_length": message_length_bucket(message)}

    if not existing.get("uses_emojis") and _EMOJI_RE.search(message):
        updates["uses_emojis"] = True
    if not existing.get("uses_swearing") and _SWEAR_RE.search(message):
        updates["uses_swearing"] = True

    if existing.get("message_length") == updates["message_length"]:
        del updates["message_length"]
    return updates
