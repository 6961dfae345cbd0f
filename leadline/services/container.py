"""Construction of every long-lived client the application needs."""

from dataclasses import dataclass

import structlog

from leadline.core.config import Settings
from leadline.core.diagnostics import RecentErrors
from leadline.models import Tenant
from leadline.services.analytics.recorder import AnalyticsRecorder
from leadline.services.channels.base import ChannelAdapter
from leadline.services.channels.whatsapp import WhatsAppCloudAdapter
from leadline.services.conversation.context import ContextBuilder
from leadline.services.conversation.engine import ConversationEngine
from leadline.services.dispatcher import WebhookDispatcher
from leadline.services.identity.resolver import IdentityResolver
from leadline.services.knowledge.retriever import KeywordKnowledgeBase, KnowledgeBase, load_snippets
from leadline.services.llm.provider import LLMProvider
from leadline.services.response.generator import ResponseGenerator
from leadline.services.response.intents import ButtonActionHandler
from leadline.services.scheduling.booking import BookingService
from leadline.services.sessions.store import ChannelSessionStore
from leadline.services.training.exporter import TrainingExporter
from leadline.services.transcript.log import TranscriptLog
from leadline.storage.base import StorageBackend
from leadline.storage.memory import InMemoryStorage

logger = structlog.get_logger()


@dataclass
class ServiceContainer:
    """Application-wide services, built once per app."""

    settings: Settings
    storage: StorageBackend
    llm: LLMProvider
    knowledge: KnowledgeBase
    channel: ChannelAdapter
    errors: RecentErrors
    identity: IdentityResolver
    sessions: ChannelSessionStore
    transcript: TranscriptLog
    contexts: ContextBuilder
    generator: ResponseGenerator
    analytics: AnalyticsRecorder
    engine: ConversationEngine
    dispatcher: WebhookDispatcher
    booking: BookingService
    buttons: ButtonActionHandler
    training: TrainingExporter

    async def close(self) -> None:
        """Finish background work and release network clients."""
        await self.dispatcher.drain(timeout=self.settings.llm_timeout_seconds)
        await self.channel.close()


def build_storage(settings: Settings) -> StorageBackend:
    """Storage backend selected by settings."""
    if settings.storage_backend == "firestore":
        from leadline.storage.firestore import FirestoreStorage

        return FirestoreStorage(project_id=settings.gcp_project_id)
    return InMemoryStorage()


def build_container(
    settings: Settings,
    storage: StorageBackend | None = None,
    llm: LLMProvider | None = None,
    knowledge: KnowledgeBase | None = None,
    channel: ChannelAdapter | None = None,
) -> ServiceContainer:
    """Build every service from settings.

    Args:
        settings: Application settings
        storage, llm, knowledge, channel: Prebuilt clients to use instead

    Raises:
        ConfigurationError: If production settings are incomplete
    """
    settings.validate_for_startup()

    if storage is None:
        storage = build_storage(settings)
    if llm is None:
        llm = LLMProvider(
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout_seconds=settings.llm_timeout_seconds,
        )
    if knowledge is None:
        snippets = []
        if settings.knowledge_file:
            snippets = load_snippets(settings.knowledge_file, Tenant(settings.default_tenant))
        knowledge = KeywordKnowledgeBase(snippets)
    if channel is None:
        channel = WhatsAppCloudAdapter(
            access_token=settings.whatsapp_access_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            app_secret=settings.whatsapp_app_secret,
            verify_token=settings.whatsapp_verify_token,
            api_version=settings.whatsapp_api_version,
            graph_url=settings.whatsapp_graph_url,
            timeout_seconds=settings.whatsapp_timeout_seconds,
            tenant=Tenant(settings.default_tenant),
        )
    errors = RecentErrors(limit=settings.recent_errors_limit)

    identity = IdentityResolver(storage, match_digits=settings.phone_match_digits)
    sessions = ChannelSessionStore(storage)
    transcript = TranscriptLog(storage, window=settings.transcript_window)
    contexts = ContextBuilder(identity, sessions, transcript, history_window=settings.history_window)
    generator = ResponseGenerator(
        llm,
        knowledge,
        product_name=settings.product_name,
        knowledge_limit=settings.knowledge_limit,
    )
    analytics = AnalyticsRecorder(transcript, identity)
    engine = ConversationEngine(
        contexts,
        sessions,
        transcript,
        generator,
        analytics,
        channel=channel,
        catalog_id=settings.whatsapp_catalog_id,
    )
    booking = BookingService(settings.booking_base_url)

    logger.info(
        "Services initialized",
        storage=type(storage).__name__,
        model=settings.llm_model,
    )

    return ServiceContainer(
        settings=settings,
        storage=storage,
        llm=llm,
        knowledge=knowledge,
        channel=channel,
        errors=errors,
        identity=identity,
        sessions=sessions,
        transcript=transcript,
        contexts=contexts,
        generator=generator,
        analytics=analytics,
        engine=engine,
        dispatcher=WebhookDispatcher(engine, errors),
        booking=booking,
        buttons=ButtonActionHandler(identity, transcript, knowledge, booking),
        training=TrainingExporter(storage),
    )
