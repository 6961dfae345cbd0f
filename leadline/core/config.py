"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from leadline.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # WhatsApp Cloud API
    whatsapp_access_token: str = ""
    whatsapp_phone_number_id: str = ""
    whatsapp_app_secret: str = ""
    whatsapp_verify_token: str = ""
    whatsapp_api_version: str = "v21.0"
    whatsapp_graph_url: str = "https://graph.facebook.com"
    whatsapp_timeout_seconds: float = 10.0
    whatsapp_catalog_id: str = ""
    # The synchronous API returns the payload to the caller, who usually sends it
    deliver_sync_replies: bool = False

    # LLM Providers
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # LiteLLM
    llm_model: str = "anthropic/claude-3-5-haiku-20241022"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 768
    llm_timeout_seconds: float = 30.0

    # Storage
    storage_backend: Literal["memory", "firestore"] = "memory"
    gcp_project_id: str = ""

    # Conversation settings
    default_tenant: Literal["proxe", "windchasers"] = "proxe"
    product_name: str = "PROXe"
    transcript_window: int = Field(default=20, ge=1)
    history_window: int = Field(default=10, ge=1)
    knowledge_limit: int = Field(default=2, ge=1)
    # JSON file of knowledge snippets loaded at startup
    knowledge_file: str = ""
    # Suffix length used for phone deduplication (see DESIGN.md)
    phone_match_digits: int = Field(default=10, ge=7, le=15)

    # Scheduling
    booking_base_url: str = "https://proxe.ai/book"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    # Diagnostics
    recent_errors_limit: int = 50

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def llm_api_key(self) -> str:
        """API key matching the configured model's provider."""
        if self.llm_model.startswith(("openai/", "gpt-")):
            return self.openai_api_key
        return self.anthropic_api_key

    def missing_required(self) -> list[str]:
        """Names of settings that must be present outside development."""
        required = {
            "whatsapp_app_secret": self.whatsapp_app_secret,
            "whatsapp_verify_token": self.whatsapp_verify_token,
            "whatsapp_access_token": self.whatsapp_access_token,
            "whatsapp_phone_number_id": self.whatsapp_phone_number_id,
            "llm_api_key": self.llm_api_key,
        }
        if self.storage_backend == "firestore":
            required["gcp_project_id"] = self.gcp_project_id
        return [name for name, value in required.items() if not value]

    def validate_for_startup(self) -> None:
        """Fail fast when production is missing required configuration.

        Raises:
            ConfigurationError: If any required value is empty in production
        """
        missing = self.missing_required()
        if missing and self.is_production:
            raise ConfigurationError(
                "Missing required configuration",
                details={"missing": missing},
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
