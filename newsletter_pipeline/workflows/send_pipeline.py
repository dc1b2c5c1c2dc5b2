"""Composition of the status-driven send pipeline."""

from dataclasses import dataclass
from typing import Optional

from newsletter_pipeline.infrastructure.api_clients import (
    ImageStorageClient,
    LoopsClient,
    NotionAPIClient,
)
from newsletter_pipeline.infrastructure.config import ApplicationConfig
from newsletter_pipeline.infrastructure.error_handling import ConfigurationError
from newsletter_pipeline.infrastructure.logging import get_logger
from newsletter_pipeline.services.delivery import DeliveryDispatcher
from newsletter_pipeline.services.html_generator import ContentOptions
from newsletter_pipeline.services.newsletter_store import NewsletterStore
from newsletter_pipeline.services.recipients import RecipientResolver
from newsletter_pipeline.services.status_machine import StatusMachine, StatusValues

logger = get_logger(__name__)


@dataclass
class SendPipeline:
    """Every collaborator of the send pipeline, constructed once."""

    config: ApplicationConfig
    store: NewsletterStore
    resolver: RecipientResolver
    dispatcher: DeliveryDispatcher
    status_machine: StatusMachine
    content_options: ContentOptions
    image_storage: Optional[ImageStorageClient] = None


def create_send_pipeline(config: ApplicationConfig) -> SendPipeline:
    """Build the send pipeline from configuration.

    Raises:
        ConfigurationError: If the workspace store is not configured
    """
    if not config.notion_api_key:
        raise ConfigurationError("NEWSLETTER_NOTION_API_KEY is not set")

    notion = NotionAPIClient(
        api_key=config.notion_api_key,
        notion_version=config.notion_version,
        base_url=config.notion_base_url,
        timeout=config.request_timeout,
    )
    store = NewsletterStore(
        notion,
        newsletter_db_id=config.notion_newsletter_db_id,
        contacts_db_id=config.notion_contacts_db_id,
        require_subscribed=config.require_subscribed,
    )

    loops = LoopsClient(
        api_key=config.loops_api_key,
        transactional_id=config.loops_transactional_id,
        base_url=config.loops_base_url,
        timeout=config.request_timeout,
        configured=config.is_email_configured,
    )

    image_storage = None
    if config.is_image_storage_configured:
        image_storage = ImageStorageClient(
            supabase_url=config.supabase_url,
            service_key=config.supabase_service_key,
            bucket=config.supabase_bucket,
            timeout=config.request_timeout,
        )

    content_options = ContentOptions(
        include_toc=config.include_toc,
        upload_image=image_storage.upload_image if image_storage else None,
        skip_sections=tuple(config.skip_sections),
    )

    resolver = RecipientResolver(store, config.test_recipient)
    dispatcher = DeliveryDispatcher(loops, send_delay_seconds=config.send_delay_seconds)
    status_machine = StatusMachine(
        store,
        resolver,
        dispatcher,
        content_options=content_options,
        statuses=StatusValues(
            draft=config.status_draft,
            test_trigger=config.status_test_trigger,
            ready_trigger=config.status_ready_trigger,
            sent=config.status_sent,
        ),
    )

    logger.info(
        "Send pipeline created",
        email_configured=config.is_email_configured,
        image_rehosting=image_storage is not None,
    )

    return SendPipeline(
        config=config,
        store=store,
        resolver=resolver,
        dispatcher=dispatcher,
        status_machine=status_machine,
        content_options=content_options,
        image_storage=image_storage,
    )
