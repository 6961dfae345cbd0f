"""Knowledge-base retrieval."""

from leadline.services.knowledge.retriever import (
    NO_KNOWLEDGE,
    KeywordKnowledgeBase,
    KnowledgeBase,
    KnowledgeSnippet,
    format_snippets,
    load_snippets,
)

__all__ = [
    "NO_KNOWLEDGE",
    "KeywordKnowledgeBase",
    "KnowledgeBase",
    "KnowledgeSnippet",
    "format_snippets",
    "load_snippets",
]
