"""Conversation context, summaries and the per-turn engine."""

from leadline.services.conversation.context import ContextBuilder
from leadline.services.conversation.engine import ConversationEngine, TurnResult
from leadline.services.conversation.summary import determine_phase, extract_interests, generate_summary

__all__ = [
    "ContextBuilder",
    "ConversationEngine",
    "TurnResult",
    "determine_phase",
    "extract_interests",
    "generate_summary",
]
