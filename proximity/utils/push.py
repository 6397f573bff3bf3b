import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("push")


async def send_push_notification(
    push_url: str,
    payload: Dict[str, Any],
    push_token: Optional[str] = None,
    *,
    timeout: float = 10.0,
) -> int:
    """POST a notification payload to a push webhook.

    Returns the HTTP status code. Raises httpx errors on transport failures
    and non-2xx responses.
    """
    if not push_url:
        raise ValueError("push_url is required")

    # Prepare headers with authentication
    headers = {"Content-Type": "application/json"}
    if push_token:
        headers["Authorization"] = f"Bearer {push_token}"

    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.post(push_url, json=payload, headers=headers)
        resp.raise_for_status()
        logger.info("Push sent (%s)", resp.status_code)
        return resp.status_code


def notification_payload(
    identifier: str,
    body: str,
    *,
    sound: bool = True,
    badge: Optional[int] = None,
) -> Dict[str, Any]:
    """Build the JSON body for a system notification."""
    payload: Dict[str, Any] = {
        "identifier": identifier,
        "body": str(body),
        "sound": "default" if sound else None,
    }
    if badge is not None:
        payload["badge"] = int(badge)
    return payload
