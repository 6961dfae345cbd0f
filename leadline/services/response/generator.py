"""Reply generation: knowledge lookup, completion call and action choice."""

import re

import structlog

from leadline.models import (
    ConversationContext,
    GeneratedResponse,
    NextAction,
    ResponseShape,
    Urgency,
)
from leadline.services.knowledge.retriever import KnowledgeBase, KnowledgeSnippet, format_snippets
from leadline.services.llm.provider import LLMProvider
from leadline.services.response.actions import ActionInputs, select_action
from leadline.services.response.prompt import build_system_prompt, identity_clarification

logger = structlog.get_logger()

# Messages answered without a knowledge lookup
FAST_PATH = re.compile(
    r"^(hi|hello|hey|hii+|good\s*(morning|evening|afternoon)|thanks|thank you|ok|okay|bye)[\s!.]*$",
    re.IGNORECASE,
)
ACTION_MARKER = re.compile(r"→\s*BUTTON:\s*(.+)", re.IGNORECASE)

URGENT_WORDS = re.compile(r"urgent|asap|immediately|emergency")
HIGH_WORDS = re.compile(r"important|soon|today|quickly")


def identity_question_pattern(product_name: str) -> re.Pattern[str]:
    name = re.escape(product_name.lower())
    return re.compile(
        rf"what\s+is\s+{name}|tell\s+me\s+about\s+{name}|explain\s+{name}|{name}\s+is|{name}\s+does",
        re.IGNORECASE,
    )


def parse_action_marker(raw: str) -> tuple[str, str | None]:
    """Split the model's raw text into visible text and its action marker.

    Every marker is removed from the text; when the model wrote several the
    last one wins.

    Returns:
        (visible text, action label or None)
    """
    labels = [match.strip().strip("[]").strip() for match in ACTION_MARKER.findall(raw)]
    text = ACTION_MARKER.sub("", raw)
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    label = next((label for label in reversed(labels) if label), None)
    return text, label


def classify_urgency(*texts: str) -> Urgency:
    combined = " ".join(texts).lower()
    if URGENT_WORDS.search(combined):
        return Urgency.URGENT
    if HIGH_WORDS.search(combined):
        return Urgency.HIGH
    return Urgency.NORMAL


class ResponseGenerator:
    """Drafts the reply for one turn.

    Handles:
    - Knowledge lookup (skipped for greetings and acknowledgements)
    - Completion call with customer context and transcript
    - Action marker parsing with the rule table as fallback
    """

    def __init__(
        self,
        llm: LLMProvider,
        knowledge: KnowledgeBase,
        product_name: str = "PROXe",
        knowledge_limit: int = 2,
    ) -> None:
        self.llm = llm
        self.knowledge = knowledge
        self.product_name = product_name
        self.knowledge_limit = knowledge_limit
        self._identity_question = identity_question_pattern(product_name)

    async def build_knowledge_block(self, message: str, context: ConversationContext) -> str:
        """Knowledge section of the system prompt for this message."""
        if FAST_PATH.match(message.strip()):
            return ""

        snippets: list[KnowledgeSnippet] = []
        try:
            snippets = await self.knowledge.search(message, context.tenant, limit=self.knowledge_limit)
        except Exception as e:
            logger.warning("Knowledge search failed", error=str(e), lead_id=context.lead_id)

        block = format_snippets(snippets)
        if not snippets and self._identity_question.search(message):
            block = f"{block}\n\n{identity_clarification(self.product_name)}"
        return block

    async def generate(
        self,
        context: ConversationContext,
        message: str,
        history: list[dict[str, str]] | None = None,
    ) -> GeneratedResponse:
        """Generate the reply for a customer message.

        Args:
            context: Context for this turn
            message: Latest customer message
            history: Prior transcript, oldest first (defaults to context.history)

        Returns:
            GeneratedResponse

        Raises:
            UpstreamError: If the completion call fails
        """
        knowledge = await self.build_knowledge_block(message, context)
        system_prompt = build_system_prompt(self.product_name, knowledge, context.customer_note)

        messages = list(context.history if history is None else history)
        messages.append({"role": "user", "content": message})

        llm_response = await self.llm.complete(messages=messages, system_prompt=system_prompt)

        text, action = parse_action_marker(llm_response.content)
        source = "marker" if action else None
        if action is None:
            action, source = select_action(
                ActionInputs(
                    message=message,
                    reply=text,
                    has_booking=context.has_booking,
                    is_returning=context.is_returning,
                    previous_reply=context.last_agent_message,
                )
            )

        actions = [action] if action else []
        response = GeneratedResponse(
            text=text,
            shape=ResponseShape.TEXT_WITH_BUTTONS if actions else ResponseShape.TEXT_ONLY,
            actions=actions,
            urgency=classify_urgency(message, text),
            next_action=NextAction.WAIT_FOR_RESPONSE if actions else NextAction.CONTINUE_CONVERSATION,
            model=llm_response.model,
            tokens_input=llm_response.tokens_input,
            tokens_output=llm_response.tokens_output,
            latency_ms=llm_response.latency_ms,
            action_source=source,
        )

        logger.info(
            "Generated response",
            lead_id=context.lead_id,
            shape=response.shape.value,
            action=action,
            decided_by=source,
            latency_ms=round(llm_response.latency_ms, 2),
        )
        return response
