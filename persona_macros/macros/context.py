"""
Evaluation context.

Everything the macro engine needs to know about the surrounding chat is passed
in explicitly through a MacroContext: the message history, the persisted chat
metadata, UI state (pending input, context size, active backend) and the
collaborator passes supplied by other subsystems.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

Escape = Callable[[str], str]
InstructPass = Callable[[str, Dict[str, Any], Escape], str]
VariablePass = Callable[[str, Escape], str]


def identity(value: str) -> str:
    return value


def local_now() -> datetime:
    """Current local time, timezone-aware."""
    return datetime.now().astimezone()


@dataclass
class ChatMessage:
    """A single chat message as read by the macro engine."""
    mes: str = ""
    is_user: bool = False
    is_system: bool = False
    name: str = ""
    send_date: Any = None
    swipes: Optional[List[str]] = None
    swipe_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatMessage":
        """Build a message from a persisted chat record."""
        swipes = data.get("swipes")
        swipe_id = data.get("swipe_id")
        return cls(
            mes=data.get("mes") or "",
            is_user=bool(data.get("is_user", False)),
            is_system=bool(data.get("is_system", False)),
            name=data.get("name") or "",
            send_date=data.get("send_date"),
            swipes=list(swipes) if swipes is not None else None,
            swipe_id=int(swipe_id) if swipe_id is not None else None,
        )


@dataclass
class MacroContext:
    """
    Chat and UI state for one evaluation call.

    chat_metadata is written to: the chat-id hash is cached there the first
    time a {{pick}} macro needs it, so callers should persist the mapping
    with the chat.
    """
    chat: List[ChatMessage] = field(default_factory=list)
    chat_metadata: Dict[str, Any] = field(default_factory=dict)
    chat_id: Optional[str] = None
    input_text: str = ""
    max_context_size: Optional[int] = None
    main_api: Optional[str] = None
    first_included_message_id: Optional[int] = None
    instruct_pass: Optional[InstructPass] = None
    variable_pass: Optional[VariablePass] = None
    on_banned_word: Optional[Callable[[str], None]] = None
    clock: Callable[[], datetime] = local_now

    def now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is None:
            now = now.astimezone()
        return now
