import enum
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple


class ChatSource(enum.Enum):
    ME = "me"
    SOMEONE_ELSE = "them"


@dataclass(frozen=True)
class ChatMessage:
    source: ChatSource
    message: str
    url: Optional[str] = None

    def render(self) -> str:
        return f"{self.source.value}: {self.message}"


@dataclass
class ChatLog:
    """Append-only chat history, numbered in arrival order."""
    on_message: Optional[Callable[[ChatMessage], None]] = None
    next_id: int = 0
    log: List[Tuple[int, ChatMessage]] = field(default_factory=list)

    def add(self, message: ChatMessage):
        self.log.append((self.next_id, message))
        self.next_id += 1
        if self.on_message:
            self.on_message(message)

    def messages(self) -> List[ChatMessage]:
        return [message for _, message in self.log]
