"""
Built-in macro passes.

Each function scans the text for one family of macros and returns the
rewritten text. Replacements are produced by callables so that substituted
values are inserted literally (no backreference expansion).
"""

import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from persona_macros.utils.hashing import create_rng, get_string_hash, RandomSource

from . import chat_queries
from .context import Escape, MacroContext, identity
from .registry import as_macro_value, sanitize_value
from .timefmt import at_utc_offset, format_moment, humanize_duration, parse_timestamp

logger = logging.getLogger(__name__)


LEGACY_TAGS = [
    (re.compile(r'<USER>', re.IGNORECASE), "user"),
    (re.compile(r'<BOT>', re.IGNORECASE), "char"),
    (re.compile(r'<CHAR>', re.IGNORECASE), "char"),
    (re.compile(r'<CHARIFNOTGROUP>', re.IGNORECASE), "group"),
    (re.compile(r'<GROUP>', re.IGNORECASE), "group"),
]

ROLL_PATTERN = re.compile(r'\{\{roll[ :]([^}]+)\}\}', re.IGNORECASE)
RANDOM_PATTERN = re.compile(r'\{\{random\s?::?([^}]+)\}\}', re.IGNORECASE)
PICK_PATTERN = re.compile(r'\{\{pick\s?::?([^}]+)\}\}', re.IGNORECASE)
NEWLINE_PATTERN = re.compile(r'\{\{newline\}\}', re.IGNORECASE)
TRIM_PATTERN = re.compile(r'(?:\r?\n)*\{\{trim\}\}(?:\r?\n)*', re.IGNORECASE)
NOOP_PATTERN = re.compile(r'\{\{noop\}\}', re.IGNORECASE)
INPUT_PATTERN = re.compile(r'\{\{input\}\}', re.IGNORECASE)
REVERSE_PATTERN = re.compile(r'\{\{reverse:(.+?)\}\}', re.IGNORECASE)
COMMENT_PATTERN = re.compile(r'\{\{//([\s\S]*?)\}\}', re.MULTILINE)
DATETIMEFORMAT_PATTERN = re.compile(r'\{\{datetimeformat +([^}]*)\}\}', re.IGNORECASE)
IDLE_DURATION_PATTERN = re.compile(r'\{\{idle_duration\}\}', re.IGNORECASE)
TIME_UTC_PATTERN = re.compile(r'\{\{time_UTC([-+]\d+)\}\}', re.IGNORECASE)
TIME_DIFF_PATTERN = re.compile(r'\{\{timeDiff::(.*?)::(.*?)\}\}', re.IGNORECASE)
BANNED_PATTERN = re.compile(r'\{\{banned "(.*?)"\}\}', re.IGNORECASE)

_ESCAPED_COMMA = re.compile(r'\\,')
_COMMA_PLACEHOLDER = "##�COMMA�##"


def _macro_pattern(name: str) -> re.Pattern:
    return re.compile(r'\{\{' + re.escape(name) + r'\}\}', re.IGNORECASE)


def replace_legacy_tags(content: str, env: Dict[str, Any], escape: Escape) -> str:
    """Replace <USER>, <BOT>, <CHAR>, <CHARIFNOTGROUP> and <GROUP>."""
    for pattern, key in LEGACY_TAGS:
        if not pattern.search(content):
            continue
        value = escape(sanitize_value(as_macro_value(env.get(key)).invoke()))
        content = pattern.sub(lambda m: value, content)
    return content


def dice_roll_replace(content: str, dice, invalid_roll_placeholder: str = "", escape: Escape = None) -> str:
    """
    Replace {{roll:formula}} / {{roll formula}} with a rolled total.

    A bare number N rolls 1dN. Invalid formulas become the placeholder.
    """
    escape = escape or identity

    def roll(match: re.Match) -> str:
        formula = match.group(1).strip()

        if formula.isdigit():
            formula = f"1d{formula}"

        if not dice.validate(formula):
            logger.debug(f"Invalid roll formula: {formula}")
            return invalid_roll_placeholder

        result = dice.roll(formula)
        return escape(str(result.total))

    return ROLL_PATTERN.sub(roll, content)


def parse_pick_list(list_string: str) -> List[str]:
    """
    Split a {{random}} / {{pick}} argument into items.

    Double colons take priority and items are kept verbatim. Otherwise the
    list is comma separated, items are trimmed, and ``\\,`` is a literal comma.
    """
    if "::" in list_string:
        return list_string.split("::")

    protected = _ESCAPED_COMMA.sub(_COMMA_PLACEHOLDER, list_string)
    return [item.strip().replace(_COMMA_PLACEHOLDER, ",") for item in protected.split(",")]


def _choose(items: List[str], rng: RandomSource) -> str:
    return items[int(rng() * len(items))]


def random_replace(content: str, empty_list_placeholder: str = "", escape: Escape = None) -> str:
    """Replace {{random::a::b}} with an item drawn from system entropy."""
    escape = escape or identity

    def pick_random(match: re.Match) -> str:
        items = parse_pick_list(match.group(1))
        if not items:
            return empty_list_placeholder
        rng = create_rng(entropy=True)
        return escape(_choose(items, rng))

    return RANDOM_PATTERN.sub(pick_random, content)


def _utf16_offset(text: str, index: int) -> int:
    """Position of index in UTF-16 code units, as the browser client counts it."""
    return len(text[:index].encode("utf-16-le", errors="surrogatepass")) // 2


def pick_replace(
    content: str,
    raw_content: str,
    chat_id_hash: int,
    empty_list_placeholder: str = "",
    escape: Escape = None
) -> str:
    """
    Replace {{pick::a::b}} with an item chosen reproducibly.

    The seed combines the chat-id hash, a hash of the unsubstituted template
    and the directive's offset in that template, counted in UTF-16 code units.
    The same chat and the same template always pick the same items.

    Each directive is paired, in order, with the template occurrences of the
    same text. Occurrences inside {{// }} comments are skipped since the
    comment pass deletes them. A directive with no template occurrence was
    inserted by an earlier pass and uses its offset in the current text.
    """
    escape = escape or identity
    raw_content_hash = get_string_hash(raw_content)

    comment_spans = [m.span() for m in COMMENT_PATTERN.finditer(raw_content)]
    raw_offsets: Dict[str, List[int]] = {}
    for raw_match in PICK_PATTERN.finditer(raw_content):
        start = raw_match.start()
        if any(begin <= start < end for begin, end in comment_spans):
            continue
        raw_offsets.setdefault(raw_match.group(0), []).append(start)

    def template_offset(match: re.Match) -> Optional[int]:
        candidates = raw_offsets.get(match.group(0))
        if not candidates:
            return None
        return candidates.pop(0)

    def pick_seeded(match: re.Match) -> str:
        raw_start = template_offset(match)

        items = parse_pick_list(match.group(1))
        if not items:
            return empty_list_placeholder

        if raw_start is not None:
            offset = _utf16_offset(raw_content, raw_start)
        else:
            offset = _utf16_offset(content, match.start())

        seed = get_string_hash(f"{chat_id_hash}-{raw_content_hash}-{offset}")
        rng = create_rng(seed)
        return escape(_choose(items, rng))

    return PICK_PATTERN.sub(pick_seeded, content)


def replace_env_macros(content: str, env: Dict[str, Any], nonce: str, escape: Escape) -> str:
    """Replace {{key}} for every environment entry, case-insensitively."""
    for key in list(env.keys()):
        if not isinstance(key, str):
            continue

        macro = as_macro_value(env[key])
        content = _macro_pattern(key).sub(
            lambda m, macro=macro: escape(sanitize_value(macro.invoke(nonce))),
            content
        )
    return content


def _optional(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def replace_chat_macros(content: str, context: MacroContext, max_context_size: int, escape: Escape) -> str:
    """Replace the read-only chat state macros and {{reverse:...}}."""
    chat = context.chat

    replacements: List[tuple[str, Callable[[], str]]] = [
        ("maxPrompt", lambda: str(max_context_size)),
        ("lastMessage", lambda: chat_queries.get_last_message(chat)),
        ("lastMessageId", lambda: _optional(chat_queries.get_last_message_id(chat))),
        ("lastUserMessage", lambda: chat_queries.get_last_user_message(chat)),
        ("lastCharMessage", lambda: chat_queries.get_last_char_message(chat)),
        ("firstIncludedMessageId", lambda: _optional(context.first_included_message_id)),
        ("lastSwipeId", lambda: _optional(chat_queries.get_last_swipe_id(chat))),
        ("currentSwipeId", lambda: _optional(chat_queries.get_current_swipe_id(chat))),
    ]

    for name, compute in replacements:
        content = _macro_pattern(name).sub(lambda m, compute=compute: escape(compute()), content)

    return REVERSE_PATTERN.sub(lambda m: escape(m.group(1)[::-1]), content)


def strip_comments(content: str) -> str:
    """Delete {{// ...}} comments, including multi-line ones."""
    return COMMENT_PATTERN.sub("", content)


def replace_time_macros(content: str, now: datetime, formats, escape: Escape) -> str:
    """Replace {{time}}, {{date}}, {{weekday}}, {{isotime}}, {{isodate}} and {{datetimeformat ...}}."""
    for name in ("time", "date", "weekday", "isotime", "isodate"):
        fmt = getattr(formats, name)
        content = _macro_pattern(name).sub(lambda m, fmt=fmt: escape(format_moment(now, fmt)), content)

    return DATETIMEFORMAT_PATTERN.sub(lambda m: escape(format_moment(now, m.group(1))), content)


def replace_idle_duration(content: str, chat, now: datetime) -> str:
    """Replace {{idle_duration}}; the phrase is generated here, so it is not escaped."""
    if not IDLE_DURATION_PATTERN.search(content):
        return content
    phrase = chat_queries.get_time_since_last_message(chat, now)
    return IDLE_DURATION_PATTERN.sub(lambda m: phrase, content)


def time_utc_replace(content: str, now: datetime, time_format: str, escape: Escape) -> str:
    """Replace {{time_UTC+N}} with the current time at a fixed UTC offset."""

    def shifted(match: re.Match) -> str:
        offset = int(match.group(1))
        moved = at_utc_offset(now, offset)
        if moved is None:
            logger.debug(f"UTC offset out of range: {match.group(1)}")
            return ""
        return escape(format_moment(moved, time_format))

    return TIME_UTC_PATTERN.sub(shifted, content)


def time_diff_replace(content: str, escape: Escape) -> str:
    """
    Replace {{timeDiff::a::b}} with the humanized difference a - b.

    Works with any timestamp dateutil understands, including the output of
    the {{date}} and {{time}} macros.
    """

    def diff(match: re.Match) -> str:
        time1 = parse_timestamp(match.group(1))
        time2 = parse_timestamp(match.group(2))

        if time1 is None or time2 is None:
            logger.debug(f"Invalid timeDiff arguments: {match.group(0)}")
            return escape("Invalid date")

        try:
            seconds = (time1 - time2).total_seconds()
        except (ValueError, OverflowError, OSError) as e:
            logger.debug(f"Invalid timeDiff arguments {match.group(0)}: {e}")
            return escape("Invalid date")

        return escape(humanize_duration(seconds, with_suffix=True))

    return TIME_DIFF_PATTERN.sub(diff, content)


def banned_words_replace(content: str, on_banned_word: Optional[Callable[[str], None]] = None) -> str:
    """
    Remove {{banned "word"}} directives.

    When a callback is given, each captured word is handed to it so the
    generation backend can add it to its ban list.
    """
    if not content:
        return ""

    if on_banned_word is not None:
        for match in BANNED_PATTERN.finditer(content):
            logger.info(f"Found banned words in macros: {match.group(1)}")
            on_banned_word(match.group(1))

    return BANNED_PATTERN.sub("", content)
