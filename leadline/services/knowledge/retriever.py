"""Keyword knowledge-base retrieval."""

import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import uuid4

import structlog

from leadline.models import Tenant

logger = structlog.get_logger()

NO_KNOWLEDGE = "No relevant information found in knowledge base."

_WORD = re.compile(r"[a-z0-9₹]+")

# Too common to say anything about relevance
STOP_WORDS = {
    "a", "an", "and", "are", "be", "can", "do", "does", "for", "how", "i",
    "in", "is", "it", "me", "my", "of", "on", "or", "the", "to", "what",
    "you", "your", "we", "with", "about", "tell",
}


@dataclass
class KnowledgeSnippet:
    """One knowledge-base entry."""

    tenant: Tenant
    question: str | None = None
    answer: str | None = None
    content: str | None = None
    category: str | None = None
    id: str = field(default_factory=lambda: str(uuid4()))
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def searchable_text(self) -> str:
        return " ".join(p for p in (self.question, self.answer, self.content, self.category) if p)


def format_snippets(snippets: list[KnowledgeSnippet]) -> str:
    """Render snippets as a prompt block."""
    if not snippets:
        return NO_KNOWLEDGE

    blocks = []
    for snippet in snippets:
        category = f"[{snippet.category}] " if snippet.category else ""
        if snippet.question and snippet.answer:
            blocks.append(f"{category}Q: {snippet.question}\nA: {snippet.answer}")
        else:
            blocks.append(f"{category}{snippet.content or snippet.answer or snippet.question or ''}")
    return "\n\n".join(blocks)


def _terms(text: str) -> set[str]:
    return {word for word in _WORD.findall(text.lower()) if word not in STOP_WORDS and len(word) > 1}


class KnowledgeBase(ABC):
    """Knowledge snippet retrieval interface."""

    @abstractmethod
    async def search(self, query: str, tenant: Tenant, limit: int = 2) -> list[KnowledgeSnippet]:
        """Find the snippets most relevant to a query."""
        ...

    @abstractmethod
    async def add(self, snippet: KnowledgeSnippet) -> KnowledgeSnippet:
        """Add a snippet."""
        ...


class KeywordKnowledgeBase(KnowledgeBase):
    """Tenant-isolated knowledge base ranked by query-term overlap."""

    def __init__(self, snippets: list[KnowledgeSnippet] | None = None) -> None:
        self._snippets: list[KnowledgeSnippet] = list(snippets or [])

    async def add(self, snippet: KnowledgeSnippet) -> KnowledgeSnippet:
        self._snippets.append(snippet)
        return snippet

    async def search(self, query: str, tenant: Tenant, limit: int = 2) -> list[KnowledgeSnippet]:
        """Rank snippets by how many query terms they contain.

        Question matches count double since they are the closest paraphrase
        of what a customer asks.
        """
        query_terms = _terms(query)
        if not query_terms:
            return []

        scored: list[tuple[int, int, KnowledgeSnippet]] = []
        for position, snippet in enumerate(self._snippets):
            if snippet.tenant != tenant:
                continue
            score = len(query_terms & _terms(snippet.searchable_text))
            score += len(query_terms & _terms(snippet.question or ""))
            if score:
                scored.append((score, -position, snippet))

        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
        results = [snippet for _, _, snippet in scored[:limit]]

        logger.debug("Knowledge search", tenant=tenant.value, results=len(results))
        return results

    def __len__(self) -> int:
        return len(self._snippets)


def load_snippets(path: str | Path, default_tenant: Tenant = Tenant.PROXE) -> list[KnowledgeSnippet]:
    """Read snippets from a JSON list.

    Expected format:
    [
        {"question": "...", "answer": "...", "category": "...", "tenant": "proxe"},
        {"content": "...", "category": "..."},
        ...
    ]
    Entries with no text are skipped.
    """
    with open(path, encoding="utf-8") as f:
        raw_entries = json.load(f)

    snippets = []
    for raw in raw_entries:
        snippet = KnowledgeSnippet(
            tenant=Tenant(raw.get("tenant") or default_tenant),
            question=raw.get("question"),
            answer=raw.get("answer"),
            content=raw.get("content"),
            category=raw.get("category"),
            metadata=raw.get("metadata") or {},
        )
        if snippet.question or snippet.answer or snippet.content:
            snippets.append(snippet)

    logger.info("Loaded knowledge snippets", path=str(path), count=len(snippets))
    return snippets
