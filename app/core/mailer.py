import logging
from typing import Optional

import httpx

from app.core.config import MAIL_API_KEY, MAIL_API_URL, MAIL_FROM, MAIL_TIMEOUT

logger = logging.getLogger(__name__)


async def send_email(
    to: str,
    subject: str,
    html: str,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    Send an e-mail through the mail relay HTTP API.

    Args:
        to: Recipient address
        subject: Subject line
        html: HTML body
        client: Optional shared client (a short-lived one is created otherwise)

    Returns:
        bool: True if the relay accepted the message, False otherwise
    """
    if not MAIL_API_URL:
        logger.warning("MAIL_API_URL is not set. Cannot send e-mail.")
        return False

    payload = {"from": MAIL_FROM, "to": [to], "subject": subject, "html": html}
    headers = {"Authorization": f"Bearer {MAIL_API_KEY}"} if MAIL_API_KEY else {}

    try:
        if client is None:
            async with httpx.AsyncClient() as own_client:
                response = await own_client.post(
                    MAIL_API_URL, json=payload, headers=headers, timeout=MAIL_TIMEOUT
                )
        else:
            response = await client.post(
                MAIL_API_URL, json=payload, headers=headers, timeout=MAIL_TIMEOUT
            )
    except httpx.HTTPError as e:
        logger.error(f"Error sending e-mail to {to}: {str(e)}")
        return False

    if response.is_success:
        return True

    logger.error(
        f"Mail relay rejected message to {to}: {response.status_code} {response.text}"
    )
    return False
