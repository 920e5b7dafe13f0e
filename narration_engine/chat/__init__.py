"""Chat channel: transcript types, context bundle, and session controller."""

from narration_engine.chat.models import ChatMessage, ChatRole, ToolCallRecord, ToolCallStatus
from narration_engine.chat.context import (
    ChatRequest,
    SimulationContext,
    build_simulation_context,
)
from narration_engine.chat.suggestions import SuggestedPrompt, suggest_prompts
from narration_engine.chat.controller import ChatSessionController

__all__ = [
    "ChatMessage",
    "ChatRole",
    "ToolCallRecord",
    "ToolCallStatus",
    "ChatRequest",
    "SimulationContext",
    "build_simulation_context",
    "SuggestedPrompt",
    "suggest_prompts",
    "ChatSessionController",
]
