"""Suggested next-step selection.

When the model does not name an action itself, ACTION_RULES is evaluated
top to bottom and the first rule whose predicate holds decides. A matching
rule may still decide on no action.
"""

import re
from dataclasses import dataclass
from typing import Callable

# Action labels
VIEW_PLANS = "View Plans"
GET_STARTED = "Get Started"
TALK_TO_TEAM = "Talk to Team"
SEE_DEMO = "See Demo"
BOOK_DEMO = "Book Demo"
LEARN_MORE = "Learn More"

SHORT_REPLY_WORDS = 40
PRICING_REPLY_WORDS = 30

ACKNOWLEDGEMENT = re.compile(
    r"^(thanks|thank you|ok|okay|got it|sounds good|great|awesome|perfect|cool|nice|alright|sure|yes|yep|yeah)[!.]*$"
)
GREETING = re.compile(r"^(hi|hello|hey|hii+|good\s*(morning|evening|afternoon))[\s!.]*$")

PRICE_FIGURE = re.compile(
    r"[₹$€£]\s?\d[\d,]*(?:\.\d+)?"
    r"|\b(?:rs\.?|inr|usd)\s?\d[\d,]*(?:\.\d+)?"
    r"|\b\d[\d,]*(?:\.\d+)?\s*(?:rupees?|dollars?|/month|per month)",
    re.IGNORECASE,
)

PRICING_TOPIC = re.compile(r"price|pricing|cost|how much|\bplans?\b|\bfees?\b|charge|subscription|₹|\$")
SETUP_REQUEST = re.compile(r"set ?up|deploy|get started|getting started|onboard|install|integrat|sign ?up")
HUMAN_REQUEST = re.compile(
    r"\bhuman\b|real person|talk to (?:someone|a person|your team|the team|sales)"
    r"|speak (?:to|with) (?:someone|a person|an agent|sales|your team)"
    r"|representative|call me|contact (?:sales|your team)"
)
FEATURE_QUESTION = re.compile(r"how does|how do|what can|features?|capabilit|how it works|what does|can it|does it")

OFFERS_TO_ELABORATE = re.compile(
    r"(?:want|like) to (?:know|hear|learn) more|happy to (?:explain|share|walk)|more details"
    r"|learn more|tell you more|explain (?:more|further)|dive deeper"
)
INVITES_DEMO = re.compile(r"\bdemo\b|see it (?:live|in action)|show you|walk you through")
INVITES_VIEWING = re.compile(r"take a look|have a look|see (?:it|how|what)|check (?:it )?out|\bview\b")


@dataclass(frozen=True)
class ActionInputs:
    """Everything the rules look at, normalized once."""

    message: str
    reply: str
    has_booking: bool = False
    is_returning: bool = False
    previous_reply: str | None = None

    @property
    def message_text(self) -> str:
        return self.message.strip().lower()

    @property
    def reply_text(self) -> str:
        return self.reply.strip().lower()

    @property
    def reply_words(self) -> int:
        return len(self.reply.split())


def count_price_figures(text: str | None) -> int:
    """Number of distinct price figures mentioned in a text."""
    if not text:
        return 0
    return len({re.sub(r"\s+", "", match).lower() for match in PRICE_FIGURE.findall(text)})


def poses_question(reply: str) -> bool:
    return reply.rstrip().endswith("?")


@dataclass(frozen=True)
class ActionRule:
    """One row of the decision table."""

    name: str
    applies: Callable[[ActionInputs], bool]
    choose: Callable[[ActionInputs], str | None]


def _none(_: ActionInputs) -> None:
    return None


def _constant(label: str) -> Callable[[ActionInputs], str]:
    return lambda _: label


def _booked_choice(inputs: ActionInputs) -> str | None:
    if inputs.reply_words <= SHORT_REPLY_WORDS and OFFERS_TO_ELABORATE.search(inputs.reply_text):
        return LEARN_MORE
    return None


def _returning_choice(inputs: ActionInputs) -> str | None:
    return BOOK_DEMO if INVITES_DEMO.search(inputs.reply_text) else None


def _new_caller_choice(inputs: ActionInputs) -> str:
    if GREETING.match(inputs.message_text):
        return LEARN_MORE
    if FEATURE_QUESTION.search(inputs.message_text) and inputs.reply_words <= SHORT_REPLY_WORDS:
        return SEE_DEMO
    if INVITES_VIEWING.search(inputs.reply_text):
        return BOOK_DEMO
    return LEARN_MORE


ACTION_RULES: list[ActionRule] = [
    ActionRule(
        "acknowledgement",
        lambda i: bool(ACKNOWLEDGEMENT.match(i.message_text)),
        _none,
    ),
    ActionRule(
        "prices_already_stated",
        lambda i: count_price_figures(i.reply) >= 2 or count_price_figures(i.previous_reply) >= 2,
        _none,
    ),
    ActionRule(
        "booked_long_reply",
        lambda i: i.has_booking and i.reply_words > SHORT_REPLY_WORDS,
        _none,
    ),
    ActionRule(
        "reply_asks_question",
        lambda i: poses_question(i.reply),
        _none,
    ),
    ActionRule(
        "pricing_question",
        lambda i: bool(PRICING_TOPIC.search(i.message_text)) and i.reply_words < PRICING_REPLY_WORDS,
        _constant(VIEW_PLANS),
    ),
    ActionRule(
        "setup_request",
        lambda i: bool(SETUP_REQUEST.search(i.message_text)),
        _constant(GET_STARTED),
    ),
    ActionRule(
        "human_request",
        lambda i: bool(HUMAN_REQUEST.search(i.message_text)),
        _constant(TALK_TO_TEAM),
    ),
    ActionRule("booked_caller", lambda i: i.has_booking, _booked_choice),
    ActionRule("returning_caller", lambda i: i.is_returning, _returning_choice),
    ActionRule("new_caller", lambda i: not i.is_returning, _new_caller_choice),
    ActionRule("default", lambda i: True, _none),
]


def select_action(
    inputs: ActionInputs,
    rules: list[ActionRule] = ACTION_RULES,
) -> tuple[str | None, str]:
    """Evaluate the rules in order.

    Returns:
        (action label or None, name of the rule that decided)
    """
    for rule in rules:
        if rule.applies(inputs):
            return rule.choose(inputs), rule.name
    return None, "default"
