"""Pytest configuration and fixtures."""

import json

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from leadline.api.main import create_app
from leadline.core.config import Settings
from leadline.models import Tenant
from leadline.services.channels.whatsapp import WhatsAppCloudAdapter, compute_signature
from leadline.services.container import build_container
from leadline.services.knowledge.retriever import KeywordKnowledgeBase, KnowledgeSnippet
from leadline.services.llm.provider import LLMProvider, LLMResponse
from leadline.storage.memory import InMemoryStorage

APP_SECRET = "test-app-secret"
VERIFY_TOKEN = "test-verify-token"


class FakeLLM(LLMProvider):
    """Completion provider returning canned replies in order."""

    def __init__(self, replies: list[str] | None = None) -> None:
        super().__init__(model="fake/model")
        self.replies = list(replies or ["Hi there! Welcome to PROXe."])
        self.calls: list[dict] = []
        self.error: Exception | None = None

    async def complete(self, messages, system_prompt=None, temperature=None, max_tokens=None, **kwargs):
        self.calls.append({"messages": messages, "system_prompt": system_prompt})
        if self.error:
            raise self.error
        content = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return LLMResponse(content=content, model=self.model, tokens_input=12, tokens_output=8, latency_ms=5.0)


class GraphRecorder:
    """Captures outbound Graph API requests."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"error": {"message": "rejected"}})
        return httpx.Response(200, json={"messages": [{"id": f"wamid.{len(self.requests)}"}]})

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def sign():
    """Signs a webhook body the way the provider does."""
    return lambda body: compute_signature(body, APP_SECRET)


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    return Settings(
        _env_file=None,
        app_env="development",
        whatsapp_access_token="test-token",
        whatsapp_phone_number_id="1234567890",
        whatsapp_app_secret=APP_SECRET,
        whatsapp_verify_token=VERIFY_TOKEN,
        anthropic_api_key="test-key",
        storage_backend="memory",
    )


@pytest.fixture
def storage():
    """Create in-memory storage for tests."""
    return InMemoryStorage()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def graph():
    return GraphRecorder()


@pytest.fixture
def channel(graph):
    return WhatsAppCloudAdapter(
        access_token="test-token",
        phone_number_id="1234567890",
        app_secret=APP_SECRET,
        verify_token=VERIFY_TOKEN,
        transport=httpx.MockTransport(graph.handler),
    )


@pytest.fixture
def knowledge():
    return KeywordKnowledgeBase([
        KnowledgeSnippet(
            tenant=Tenant.PROXE,
            category="pricing",
            question="How much does PROXe cost?",
            answer="Starter is ₹4,999/month and Growth is ₹9,999/month.",
        ),
        KnowledgeSnippet(
            tenant=Tenant.PROXE,
            category="integration",
            content="PROXe connects to WhatsApp, website chat and voice in minutes.",
        ),
        KnowledgeSnippet(
            tenant=Tenant.WINDCHASERS,
            category="pricing",
            question="How much does pilot training cost?",
            answer="Contact the academy for current fees.",
        ),
    ])


@pytest.fixture
def container(settings, storage, llm, knowledge, channel):
    return build_container(settings, storage=storage, llm=llm, knowledge=knowledge, channel=channel)


@pytest.fixture
def app(container):
    """Create test application."""
    return create_app(container)


@pytest_asyncio.fixture
async def client(app):
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
