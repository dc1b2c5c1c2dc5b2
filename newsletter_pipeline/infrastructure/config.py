"""Configuration management for the newsletter send pipeline."""

from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from newsletter_pipeline.models.newsletter import Recipient

PLACEHOLDER_VALUES = {
    "your-loops-api-key",
    "your-transactional-email-id",
}


class ApplicationConfig(BaseSettings):
    """Application configuration with environment variable support."""

    # Workspace store
    notion_api_key: str = Field(
        default="",
        description="Notion integration token"
    )
    notion_version: str = Field(
        default="2022-06-28",
        description="Notion-Version header sent with every request"
    )
    notion_base_url: str = Field(
        default="https://api.notion.com/v1",
        description="Notion REST API base URL"
    )
    notion_newsletter_db_id: str = Field(
        default="",
        description="Database holding newsletter pages"
    )
    notion_contacts_db_id: str = Field(
        default="",
        description="Database holding newsletter contacts"
    )

    # Email delivery
    loops_api_key: str = Field(
        default="",
        description="Loops API key for transactional email"
    )
    loops_transactional_id: str = Field(
        default="",
        description="Loops transactional email template identifier"
    )
    loops_base_url: str = Field(
        default="https://app.loops.so/api/v1",
        description="Loops REST API base URL"
    )
    send_delay_ms: int = Field(
        default=100,
        description="Pause between consecutive sends in milliseconds"
    )

    # Recipients
    test_recipient_email: str = Field(
        default="newsletter-test@example.com",
        description="Address used for test sends and as the fallback recipient"
    )
    test_recipient_name: str = Field(
        default="Team",
        description="First name used for the test recipient"
    )
    require_subscribed: bool = Field(
        default=True,
        description="Only contacts with the Subscribed checkbox receive full sends"
    )

    # Status values
    status_draft: str = Field(default="Draft", description="Resting draft status")
    status_test_trigger: str = Field(default="Test", description="Status that triggers a test send")
    status_ready_trigger: str = Field(default="Ready", description="Status that triggers a full send")
    status_sent: str = Field(default="Sent", description="Terminal status after a full send")

    # Rendering
    include_toc: bool = Field(
        default=True,
        description="Prepend a table of contents built from level-1 headings"
    )
    skip_sections: List[str] = Field(
        default_factory=lambda: ["Collateral Checklist", "Review Questions"],
        description="Level-2 headings that end the customer-facing content"
    )

    # Image rehosting
    supabase_url: str = Field(
        default="",
        description="Supabase project URL for permanent image storage"
    )
    supabase_service_key: str = Field(
        default="",
        description="Supabase service role key"
    )
    supabase_bucket: str = Field(
        default="newsletter-images",
        description="Storage bucket for rehosted images"
    )

    # Webhook
    webhook_secret: str = Field(
        default="",
        description="Shared secret expected in the x-webhook-secret header"
    )
    host: str = Field(default="0.0.0.0", description="Webhook server bind address")
    port: int = Field(default=8000, description="Webhook server port")

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="structured",
        description="Log format: structured or text"
    )
    log_file: bool = Field(
        default=False,
        description="Also write logs to logs/newsletter.log"
    )

    # Performance
    request_timeout: int = Field(
        default=30,
        description="HTTP request timeout in seconds"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @field_validator("send_delay_ms")
    @classmethod
    def validate_send_delay(cls, v):
        """Validate inter-send delay."""
        if v < 0:
            raise ValueError("send_delay_ms must not be negative")
        return v

    @property
    def send_delay_seconds(self) -> float:
        return self.send_delay_ms / 1000

    @property
    def test_recipient(self) -> Recipient:
        """The fixed recipient used for test sends and fallbacks."""
        return Recipient(email=self.test_recipient_email, first_name=self.test_recipient_name)

    @property
    def is_email_configured(self) -> bool:
        """Check whether the email API has real credentials."""
        return bool(
            self.loops_api_key
            and self.loops_transactional_id
            and self.loops_api_key not in PLACEHOLDER_VALUES
            and self.loops_transactional_id not in PLACEHOLDER_VALUES
        )

    @property
    def is_image_storage_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)

    class Config:
        env_prefix = "NEWSLETTER_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


def load_config() -> ApplicationConfig:
    """Load application configuration from environment and files."""
    return ApplicationConfig()


def get_package_root() -> Path:
    """Get the package directory."""
    return Path(__file__).parent.parent


def get_templates_dir() -> Path:
    """Get the templates directory."""
    return get_package_root() / "templates"


def get_logs_dir() -> Path:
    """Get the logs directory."""
    logs_dir = Path.cwd() / "logs"
    logs_dir.mkdir(exist_ok=True)
    return logs_dir
