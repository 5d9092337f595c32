"""Per-conversation session state.

A session owns the section store and pending event buffer its tool handlers
write to, plus a registry bound to them. Turns on one session run one at a
time: a second request for the same conversation waits until the running
turn's stream has finished. Sessions live until they are ended; nothing is
persisted here.
"""

import asyncio
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from sage_engine.chains.chat_tools import ToolContext, ToolRegistry, build_tool_registry
from sage_engine.core.chat_stream import ChatStreamConfig, generate_chat_stream
from sage_engine.core.logging import get_logger
from sage_engine.core.schemas_propagation import ContentSection

logger = get_logger(__name__)


@dataclass
class ChatSession:
    conversation_id: str
    context: ToolContext = field(default_factory=ToolContext)
    registry: ToolRegistry | None = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    turn_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        if self.registry is None:
            self.registry = build_tool_registry(self.context)

    @property
    def busy(self) -> bool:
        return self.turn_lock.locked()

    async def stream_turn(
        self,
        config: ChatStreamConfig,
        client: Any = None,
        sections: dict[str, list[ContentSection]] | None = None,
    ) -> AsyncGenerator[str, None]:
        """
        Run one chat turn on this session and yield its SSE lines.

        The cancel flag is reset and ``sections`` seeded only once the turn
        holds the session, so a queued request cannot un-cancel or overwrite
        a turn that is still running.
        """
        if self.busy:
            logger.info(f"Turn queued for {self.conversation_id}: another turn is running")

        async with self.turn_lock:
            self.cancel_event.clear()

            if sections:
                for scene_arc_id, scene_sections in sections.items():
                    self.context.sections.seed(scene_arc_id, scene_sections)
                logger.info(f"Seeded {len(sections)} scene(s) for {self.conversation_id}")

            async for chunk in generate_chat_stream(
                config,
                self.registry,
                self.context.events,
                client=client,
                cancel_event=self.cancel_event,
            ):
                yield chunk


class SessionRegistry:
    """Conversation id -> ChatSession, held on the application state."""

    def __init__(self) -> None:
        self._sessions: dict[str, ChatSession] = {}

    def get(self, conversation_id: str) -> ChatSession | None:
        return self._sessions.get(conversation_id)

    def get_or_create(self, conversation_id: str) -> ChatSession:
        session = self._sessions.get(conversation_id)
        if session is None:
            session = ChatSession(conversation_id=conversation_id)
            self._sessions[conversation_id] = session
            logger.info(f"Created session {conversation_id}")
        return session

    def discard(self, conversation_id: str) -> ChatSession | None:
        """Forget a session. Its running turn, if any, is cancelled."""
        session = self._sessions.pop(conversation_id, None)
        if session is not None:
            session.cancel_event.set()
            logger.info(f"Ended session {conversation_id}")
        return session

    def __len__(self) -> int:
        return len(self._sessions)
