from fastapi import APIRouter, Request, Depends
from app.utils.dependencies import get_entity_store
from app.services.clerk_webhook_services import ClerkWebhookService
from app.models.clerk_webhook_models import ClerkWebhookEvent
from app.configs.app_settings import settings
from app.custom_error import WebhookError, ServerError
from app.stores.entity_store import EntityStore
from svix.webhooks import Webhook, WebhookVerificationError
import logging

logger = logging.getLogger(__name__)

clerk_webhook_router = APIRouter(prefix="/clerk", tags=["Webhooks"])


async def get_clerk_webhook_service(entity_store: EntityStore = Depends(get_entity_store)) -> ClerkWebhookService:
    """Dependency to get ClerkWebhookService instance"""
    return ClerkWebhookService(entity_store)


@clerk_webhook_router.post("/webhooks")
async def clerk_webhook(request: Request, webhook_service: ClerkWebhookService = Depends(get_clerk_webhook_service)):
    """Handle Clerk webhook events"""
    if not settings.CLERK_WEBHOOK_SECRET:
        logger.error("CLERK_WEBHOOK_SECRET is not configured, rejecting webhook")
        raise ServerError("Webhook receiver is not configured")

    try:
        # Get the raw body and headers
        body = await request.body()
        headers = request.headers

        # Verify the webhook signature
        webhook = Webhook(settings.CLERK_WEBHOOK_SECRET)

        try:
            # This will raise an exception if verification fails
            payload = webhook.verify(body, headers)

        except WebhookVerificationError as e:
            logger.error(f"Webhook verification failed: {str(e)}")
            raise WebhookError("Invalid webhook signature")

        # Parse the event
        event = ClerkWebhookEvent(**payload)

        # Handle different event types
        if event.type in ("user.created", "user.updated"):
            await webhook_service.handle_user_upserted(event)
        elif event.type == "user.deleted":
            await webhook_service.handle_user_deleted(event)
        else:
            logger.info(f"Unhandled webhook event type: {event.type}")

        return {"status": "success"}

    except Exception as e:
        logger.error(f"Webhook processing error: {str(e)}")
        if isinstance(e, WebhookError):
            raise e
        raise WebhookError("Webhook processing failed")
