"""Response generation."""

from leadline.services.response.actions import ACTION_RULES, ActionInputs, ActionRule, select_action
from leadline.services.response.generator import (
    ResponseGenerator,
    classify_urgency,
    parse_action_marker,
)
from leadline.services.response.intents import infer_intent

__all__ = [
    "ACTION_RULES",
    "ActionInputs",
    "ActionRule",
    "ResponseGenerator",
    "classify_urgency",
    "infer_intent",
    "parse_action_marker",
    "select_action",
]
