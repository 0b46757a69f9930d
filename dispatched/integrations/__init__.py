"""Outbound webhook transports."""
from .base import DeliveryResult, WebhookTransport, webhook_headers
from .webhook import AiohttpWebhookTransport

__all__ = ["DeliveryResult", "WebhookTransport", "webhook_headers", "AiohttpWebhookTransport"]
