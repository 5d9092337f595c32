"""Chat streaming API endpoints."""

from typing import Any, Dict, List
from uuid import uuid4

from anthropic import AsyncAnthropic
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from sage_engine.core.chat_stream import ChatStreamConfig
from sage_engine.core.config import get_settings
from sage_engine.core.logging import get_logger
from sage_engine.core.schemas_propagation import ContentSection
from sage_engine.core.sessions import SessionRegistry

logger = get_logger(__name__)

router = APIRouter()


class ChatMessage(BaseModel):
    """A single chat message."""

    role: str  # 'user' or 'assistant'
    content: str


class ChatRequest(BaseModel):
    """Request to continue a scene authoring conversation."""

    message: str
    conversation_id: str | None = None
    conversation_history: List[ChatMessage] = []
    system_prompt: str = ""
    # scene_arc_id -> sections restored from persistence before this turn
    sections: Dict[str, List[ContentSection]] | None = None


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_anthropic_client() -> AsyncAnthropic:
    """Build the streaming client from settings."""
    settings = get_settings()
    return AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)


@router.post("/chat")
async def chat_with_assistant(
    request: ChatRequest,
    sessions: SessionRegistry = Depends(get_sessions),
    client: Any = Depends(get_anthropic_client),
) -> StreamingResponse:
    """
    Chat with the scene assistant using streaming responses.

    Args:
        request: Chat request with message, history and optional section seed

    Returns:
        StreamingResponse with Server-Sent Events
    """
    settings = get_settings()

    conversation_id = request.conversation_id or str(uuid4())
    session = sessions.get_or_create(conversation_id)

    config = ChatStreamConfig(
        conversation_id=conversation_id,
        message=request.message,
        conversation_history=[msg.model_dump() for msg in request.conversation_history],
        system_prompt=request.system_prompt,
        anthropic_api_key=settings.ANTHROPIC_API_KEY,
        chat_model=settings.CHAT_MODEL,
        chat_response_buffer=settings.CHAT_MAX_TOKENS,
        max_tool_turns=settings.MAX_TOOL_TURNS,
        max_retries=settings.STREAM_MAX_RETRIES,
        retry_initial_delay=settings.STREAM_RETRY_INITIAL_DELAY,
        tool_result_event_max_chars=settings.TOOL_RESULT_EVENT_MAX_CHARS,
    )

    return StreamingResponse(
        session.stream_turn(config, client=client, sections=request.sections),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.post("/chat/{conversation_id}/cancel")
async def cancel_chat(
    conversation_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
) -> Dict[str, Any]:
    """Stop the conversation's running turn before its next tool call."""
    session = sessions.get(conversation_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Conversation not found")

    session.cancel_event.set()
    logger.info(f"Cancel requested for {conversation_id}")
    return {"conversation_id": conversation_id, "cancelled": True}


@router.delete("/chat/{conversation_id}")
async def end_chat(
    conversation_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
) -> Dict[str, Any]:
    """End a conversation and release its sections and pending events."""
    if sessions.discard(conversation_id) is None:
        raise HTTPException(status_code=404, detail="Conversation not found")

    return {"conversation_id": conversation_id, "ended": True}


@router.get("/chat/{conversation_id}/sections/{scene_arc_id}")
async def get_scene_sections(
    conversation_id: str,
    scene_arc_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
) -> Dict[str, Any]:
    """Current content of every section written for a scene."""
    session = sessions.get(conversation_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Conversation not found")

    sections = session.context.sections.get_all(scene_arc_id)
    return {
        "conversation_id": conversation_id,
        "scene_arc_id": scene_arc_id,
        "sections": [section.model_dump() for section in sections],
    }
