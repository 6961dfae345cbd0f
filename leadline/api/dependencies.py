"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Request

from leadline.core.config import Settings
from leadline.core.diagnostics import RecentErrors
from leadline.services.channels.base import ChannelAdapter
from leadline.services.container import ServiceContainer
from leadline.services.conversation.engine import ConversationEngine
from leadline.services.dispatcher import WebhookDispatcher
from leadline.storage.base import StorageBackend


def get_container(request: Request) -> ServiceContainer:
    """Services built for this app in create_app()."""
    return request.app.state.container


ContainerDep = Annotated[ServiceContainer, Depends(get_container)]


def get_settings_dep(container: ContainerDep) -> Settings:
    return container.settings


def get_storage(container: ContainerDep) -> StorageBackend:
    return container.storage


def get_engine(container: ContainerDep) -> ConversationEngine:
    return container.engine


def get_channel(container: ContainerDep) -> ChannelAdapter:
    return container.channel


def get_dispatcher(container: ContainerDep) -> WebhookDispatcher:
    return container.dispatcher


def get_errors(container: ContainerDep) -> RecentErrors:
    return container.errors


# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings_dep)]
StorageDep = Annotated[StorageBackend, Depends(get_storage)]
EngineDep = Annotated[ConversationEngine, Depends(get_engine)]
ChannelDep = Annotated[ChannelAdapter, Depends(get_channel)]
DispatcherDep = Annotated[WebhookDispatcher, Depends(get_dispatcher)]
ErrorsDep = Annotated[RecentErrors, Depends(get_errors)]
