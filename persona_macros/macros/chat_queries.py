"""Read-only lookups over the chat history used by the built-in macros."""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from persona_macros.utils.hashing import get_string_hash

from .context import ChatMessage
from .timefmt import humanize_duration, parse_timestamp

logger = logging.getLogger(__name__)

CHAT_ID_HASH_KEY = "chat_id_hash"
MAIN_CHAT_KEY = "main_chat"


def get_last_message_id(
    chat: List[ChatMessage],
    exclude_swipe_in_progress: bool = True,
    filter: Optional[Callable[[ChatMessage], bool]] = None
) -> Optional[int]:
    """
    Return the index of the last message in the chat.

    Args:
        chat: Message history
        exclude_swipe_in_progress: Skip a message whose selected swipe is still
            being generated (swipe_id points past the finished swipes)
        filter: Only consider messages this predicate accepts

    Returns:
        Message index, or None if no message matches
    """
    for i in range(len(chat) - 1, -1, -1):
        message = chat[i]

        if (exclude_swipe_in_progress and message.swipes is not None
                and message.swipe_id is not None
                and message.swipe_id >= len(message.swipes)):
            continue

        if filter is None or filter(message):
            return i

    return None


def _message_text(chat: List[ChatMessage], index: Optional[int]) -> str:
    if index is None:
        return ""
    return chat[index].mes or ""


def get_last_message(chat: List[ChatMessage]) -> str:
    return _message_text(chat, get_last_message_id(chat))


def get_last_user_message(chat: List[ChatMessage]) -> str:
    index = get_last_message_id(chat, filter=lambda m: m.is_user and not m.is_system)
    return _message_text(chat, index)


def get_last_char_message(chat: List[ChatMessage]) -> str:
    index = get_last_message_id(chat, filter=lambda m: not m.is_user and not m.is_system)
    return _message_text(chat, index)


def get_last_swipe_id(chat: List[ChatMessage]) -> Optional[int]:
    """Number of swipes on the last message, counting one still in progress."""
    index = get_last_message_id(chat, exclude_swipe_in_progress=False)
    if index is None or chat[index].swipes is None:
        return None
    return len(chat[index].swipes)


def get_current_swipe_id(chat: List[ChatMessage]) -> Optional[int]:
    """1-based index of the selected swipe on the last message."""
    index = get_last_message_id(chat, exclude_swipe_in_progress=False)
    if index is None or chat[index].swipe_id is None:
        return None
    return chat[index].swipe_id + 1


def find_idle_reference_message(chat: List[ChatMessage]) -> Optional[ChatMessage]:
    """
    Pick the user message the idle timer counts from.

    Scans backwards skipping system messages. The newest non-system message is
    passed over; the first user message after that is the reference.
    """
    take_next = False
    for message in reversed(chat):
        if message.is_system:
            continue
        if message.is_user and take_next:
            return message
        take_next = True
    return None


def get_time_since_last_message(chat: List[ChatMessage], now: datetime) -> str:
    """Humanized time since the idle reference message, or "just now"."""
    message = find_idle_reference_message(chat)
    if message is None or not message.send_date:
        return "just now"

    sent = parse_timestamp(message.send_date)
    if sent is None:
        logger.debug(f"Unreadable send_date on idle reference message: {message.send_date!r}")
        return "just now"

    try:
        elapsed = (now - sent).total_seconds()
    except (ValueError, OverflowError, OSError) as e:
        logger.debug(f"Cannot measure idle time from {message.send_date!r}: {e}")
        return "just now"

    return humanize_duration(elapsed)


def get_chat_id_hash(chat_metadata: Dict[str, Any], chat_id: Optional[str]) -> int:
    """
    Return the hashed id of the current chat, caching it in the metadata.

    The main chat id (set on branches) takes priority over the current chat id,
    so branches and renamed chat files keep the same picks.
    """
    cached = chat_metadata.get(CHAT_ID_HASH_KEY)
    if cached:
        return cached

    source_id = chat_metadata.get(MAIN_CHAT_KEY)
    if source_id is None:
        source_id = chat_id

    chat_id_hash = get_string_hash(source_id)
    chat_metadata[CHAT_ID_HASH_KEY] = chat_id_hash
    return chat_id_hash
