"""Tests for knowledge retrieval and loading."""

import json

import pytest

from leadline.models import Tenant
from leadline.services.knowledge import KeywordKnowledgeBase, KnowledgeSnippet, format_snippets, load_snippets


@pytest.mark.asyncio
async def test_search_ranks_question_matches_first(knowledge):
    results = await knowledge.search("how much does proxe cost", Tenant.PROXE)

    assert results[0].category == "pricing"
    assert len(results) == 2


@pytest.mark.asyncio
async def test_search_is_tenant_isolated(knowledge):
    results = await knowledge.search("pricing cost", Tenant.WINDCHASERS, limit=5)
    assert [r.tenant for r in results] == [Tenant.WINDCHASERS]


@pytest.mark.asyncio
async def test_stop_word_query_matches_nothing(knowledge):
    assert await knowledge.search("what is it", Tenant.PROXE) == []


@pytest.mark.asyncio
async def test_add():
    base = KeywordKnowledgeBase()
    await base.add(KnowledgeSnippet(tenant=Tenant.PROXE, content="Voice agents answer calls."))

    assert len(base) == 1
    assert (await base.search("voice", Tenant.PROXE))[0].content == "Voice agents answer calls."


def test_format_snippets():
    block = format_snippets([
        KnowledgeSnippet(tenant=Tenant.PROXE, category="pricing", question="Cost?", answer="₹4,999"),
        KnowledgeSnippet(tenant=Tenant.PROXE, content="Works on WhatsApp."),
    ])
    assert block == "[pricing] Q: Cost?\nA: ₹4,999\n\nWorks on WhatsApp."


def test_load_snippets_skips_entries_without_text(tmp_path):
    path = tmp_path / "knowledge.json"
    path.write_text(json.dumps([
        {"category": "faq", "question": "What is PROXe?", "answer": "An AI operating system."},
        {"content": "Pilot training", "tenant": "windchasers"},
        {"category": "empty"},
        {"metadata": {"source": "nowhere"}},
    ]), encoding="utf-8")

    snippets = load_snippets(path)

    assert [s.tenant for s in snippets] == [Tenant.PROXE, Tenant.WINDCHASERS]
    assert snippets[0].answer == "An AI operating system."
    assert snippets[1].content == "Pilot training"
    assert "empty" not in [s.category for s in snippets]
    assert all(s.metadata.get("source") != "nowhere" for s in snippets)


def test_container_loads_knowledge_file(tmp_path, settings, storage, llm, channel):
    from leadline.services.container import build_container

    path = tmp_path / "knowledge.json"
    path.write_text(json.dumps([{"content": "Setup takes minutes."}]), encoding="utf-8")
    settings.knowledge_file = str(path)

    container = build_container(settings, storage=storage, llm=llm, channel=channel)

    assert len(container.knowledge) == 1
