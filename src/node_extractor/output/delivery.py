"""Webhook delivery of result artifacts."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from node_extractor.errors import DeliveryFailed

logger = logging.getLogger(__name__)


async def deliver(path: Path, url: str, timeout: float = 30.0) -> int:
    """
    POST a JSON artifact to a webhook.

    Args:
        path: JSON file to send
        url: Webhook URL
        timeout: Request timeout in seconds

    Returns:
        HTTP status code of the webhook response

    Raises:
        DeliveryFailed: File unreadable, transport error or non-2xx status
    """
    try:
        body = path.read_bytes()
    except OSError as e:
        raise DeliveryFailed(f"Could not read {path}: {e}") from e

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                url,
                content=body,
                headers={"Content-Type": "application/json"},
            )
    except httpx.HTTPError as e:
        raise DeliveryFailed(f"Webhook request failed: {e}") from e

    if not response.is_success:
        raise DeliveryFailed(f"Webhook returned {response.status_code}")

    logger.info("Delivered %s to webhook (%d)", path.name, response.status_code)
    return response.status_code
