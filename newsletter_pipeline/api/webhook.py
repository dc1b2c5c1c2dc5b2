"""Newsletter status webhook.

The workspace's automation posts here when a newsletter's status changes.
Payload shapes vary between automation setups, so the page id and status are
looked up in every location seen so far.

Endpoint: POST /api/newsletter-status
Header:   x-webhook-secret: <NEWSLETTER_WEBHOOK_SECRET>
Body:     {"pageId": "...", "status": "Ready"}
"""

from __future__ import annotations

import hmac
import json
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from newsletter_pipeline.infrastructure.config import ApplicationConfig
from newsletter_pipeline.infrastructure.logging import get_logger
from newsletter_pipeline.services.status_machine import StatusAction
from newsletter_pipeline.workflows.send_pipeline import SendPipeline, create_send_pipeline

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, x-webhook-secret",
}


class StatusWebhookResponse(BaseModel):
    """JSON envelope returned to the automation caller."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    sent: Optional[int] = None
    failed: Optional[int] = None


def _respond(status_code: int, **fields: Any) -> JSONResponse:
    body = StatusWebhookResponse(**fields)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _nested(body: Any, *keys: str) -> Any:
    value = body
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def extract_page_id(body: Any) -> Optional[str]:
    """Find the page id in any of the known payload shapes."""
    for path in (("pageId",), ("data", "id"), ("id",), ("page", "id"), ("pageID",)):
        value = _nested(body, *path)
        if value:
            return str(value)
    return None


def extract_status(body: Any) -> Optional[str]:
    """Find the status in any of the known payload shapes."""
    for path in (
        ("status",),
        ("data", "properties", "Status", "status", "name"),
        ("properties", "Status", "status", "name"),
    ):
        value = _nested(body, *path)
        if value and isinstance(value, str):
            return value
    return None


def secret_matches(provided: Optional[str], expected: str) -> bool:
    if not expected:
        return True
    return hmac.compare_digest((provided or "").encode("utf-8"), expected.encode("utf-8"))


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        return {}


@router.api_route("/api/newsletter-status", methods=ALL_METHODS)
async def newsletter_status(request: Request) -> Response:
    """Handle a newsletter status change."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    if request.method != "POST":
        return _respond(400, success=False, error="Method not allowed. Use POST.")

    config: ApplicationConfig = request.app.state.config
    pipeline: SendPipeline = request.app.state.pipeline

    if not secret_matches(request.headers.get("x-webhook-secret"), config.webhook_secret):
        logger.warning("Rejected webhook with invalid secret")
        return _respond(400, success=False, error="Invalid webhook secret")

    body = await _read_body(request)
    page_id = extract_page_id(body)
    if not page_id:
        logger.warning("Webhook body has no page id", keys=sorted(body) if isinstance(body, dict) else None)
        return _respond(400, success=False, error="Missing pageId")

    # Payloads without a status come from automations that only fire on the
    # full-send transition.
    status = extract_status(body) or config.status_ready_trigger

    logger.info("Status change received", document_id=page_id, status=status)
    outcome = await pipeline.status_machine.handle(page_id, status)

    if outcome.action == StatusAction.FAILED:
        return _respond(500, success=False, error=outcome.error)

    return _respond(
        200,
        success=True,
        message=outcome.message,
        sent=outcome.sent,
        failed=outcome.failed,
    )


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


def create_app(
    config: Optional[ApplicationConfig] = None,
    pipeline: Optional[SendPipeline] = None,
) -> FastAPI:
    """Create the webhook application with its pipeline wired in."""
    config = config or ApplicationConfig()
    app = FastAPI(title="Newsletter Send Pipeline")
    app.state.config = config
    app.state.pipeline = pipeline or create_send_pipeline(config)
    app.include_router(router)
    return app
