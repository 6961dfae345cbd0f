"""Local, rule-based conversation digests: interests, phase and summary."""

import re

from leadline.models import ConversationPhase, SenderRole, TranscriptEntry

NEW_CUSTOMER_SUMMARY = "New customer, no previous conversation."

INTEREST_KEYWORDS = ("property", "properties", "sqft", "budget", "location", "area", "rent")
INTEREST_WINDOW = 20
MAX_INTERESTS = 5

SUMMARY_WINDOW = 10
MAX_SUMMARY_LENGTH = 300

# Customer topics, in reporting priority
TOPIC_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("Booking/scheduling", re.compile(r"book|schedule|appointment|call|demo|meeting|tomorrow|today|time")),
    ("Pricing inquiry", re.compile(r"price|cost|pricing|how much|₹|rupee|fee|charge")),
    ("Product inquiry", re.compile(r"what|how|explain|tell me|information|details|features|about")),
]

PRICE_PATTERNS = [
    re.compile(r"₹\s*[\d,]+"),
    re.compile(r"\d+[\d,]*\s*rupee", re.IGNORECASE),
    re.compile(r"\d+[\d,]*\s*/month", re.IGNORECASE),
    re.compile(r"\d+[\d,]*\s*per month", re.IGNORECASE),
    re.compile(r"starts? at\s*[₹\d,]+", re.IGNORECASE),
]

DEMO_BOOKED = re.compile(
    r"(?:demo|call).*?(?:booked|scheduled|you've got).*?(?:tomorrow|today).*?at\s*\d+\s*(?:pm|am)",
    re.IGNORECASE,
)
TIME_MENTION = re.compile(r"(?:tomorrow|today).*?at\s*\d+\s*(?:pm|am)", re.IGNORECASE)
BOOKED_FOR = re.compile(r"(?:booked|scheduled).*?for.*?(?:tomorrow|today)", re.IGNORECASE)

_SENTENCE_END = re.compile(r"[.!?]")


def extract_interests(entries: list[TranscriptEntry]) -> list[str]:
    """Capture text around domain keywords as customer interests.

    Args:
        entries: Transcript entries, newest first

    Returns:
        Up to five distinct lowercase fragments
    """
    interests: list[str] = []
    for entry in entries:
        content = (entry.content or "").lower()
        for keyword in INTEREST_KEYWORDS:
            index = content.find(keyword)
            if index == -1:
                continue
            start = max(0, index - INTEREST_WINDOW)
            fragment = content[start:index + len(keyword) + INTEREST_WINDOW]
            if fragment and fragment not in interests:
                interests.append(fragment)
    return interests[:MAX_INTERESTS]


def determine_phase(message_count: int) -> ConversationPhase:
    """Coarse conversation stage from how many messages we've exchanged."""
    if message_count == 0:
        return ConversationPhase.DISCOVERY_ENTRY
    if message_count < 3:
        return ConversationPhase.DISCOVERY
    if message_count < 8:
        return ConversationPhase.EVALUATION
    return ConversationPhase.CLOSING


def _booking_point(content: str) -> str | None:
    match = DEMO_BOOKED.search(content)
    if match:
        return f"Demo call booked: {match.group(0).strip()}"

    match = TIME_MENTION.search(content)
    if match:
        lowered = content.lower()
        if "demo" in lowered or "call" in lowered:
            return f"Demo call scheduled: {match.group(0)}"
        return f"Scheduled: {match.group(0)}"

    match = BOOKED_FOR.search(content)
    if match:
        return f"Booking: {match.group(0)}"
    return None


def _price_point(content: str) -> str | None:
    for pattern in PRICE_PATTERNS:
        match = pattern.search(content)
        if match:
            return f"Pricing: {match.group(0).strip()}"
    return None


def _truncate(text: str, limit: int) -> str:
    return text[:limit].strip() + "..." if len(text) > limit else text


def generate_summary(entries: list[TranscriptEntry]) -> str:
    """Summarize recent conversation by pattern matching.

    Bookings confirmed by the agent come first, then quoted prices, then the
    topics the customer asked about. Without any of those the latest
    customer message stands in for the summary.

    Args:
        entries: Transcript entries, newest first

    Returns:
        Summary of at most 300 characters (plus ellipsis)
    """
    if not entries:
        return NEW_CUSTOMER_SUMMARY

    recent = entries[:SUMMARY_WINDOW]
    customer = [e for e in recent if e.sender == SenderRole.CUSTOMER]
    agent = [e for e in recent if e.sender == SenderRole.AGENT]

    booking: str | None = None
    price: str | None = None
    for entry in agent:
        booking = booking or _booking_point(entry.content)
        price = price or _price_point(entry.content)

    topics: list[str] = []
    for entry in customer:
        content = entry.content.lower()
        for topic, pattern in TOPIC_PATTERNS:
            if topic not in topics and pattern.search(content):
                topics.append(topic)
    topics.sort(key=[name for name, _ in TOPIC_PATTERNS].index)

    parts = [point for point in (booking, price) if point]
    if topics:
        parts.append(f"Customer inquired about: {', '.join(topics)}")

    if parts:
        return _truncate(". ".join(parts), MAX_SUMMARY_LENGTH)

    if customer:
        latest = customer[0].content.strip()
        if 0 < len(latest) < 150:
            return latest
        if latest:
            first_sentence = _SENTENCE_END.split(latest)[0].strip()
            return first_sentence[:100] + "..." if len(first_sentence) > 100 else first_sentence

    count = len(entries)
    return f"{count} message{'s' if count != 1 else ''} exchanged."
