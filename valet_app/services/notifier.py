# valet_app/services/notifier.py
"""
Notifier — delivers one-time codes to a phone number through an HTTP SMS gateway.

Optional: with SMS_GATEWAY_URL unset the code is only logged. Delivery failures are
logged and swallowed; the code is still returned to the caller, so a broken gateway
never blocks login or pickup.
"""

import httpx
from valet_app.config import settings
from valet_app.utils.logger import get_logger

logger = get_logger(__name__)


def is_configured() -> bool:
    return bool(settings.SMS_GATEWAY_URL)


async def send_code(phone: str, code: str, purpose: str) -> bool:
    """
    Push a code to the gateway. Returns True if the gateway accepted it.
    `purpose` is "login" or "pickup" and is forwarded so the gateway can pick a template.
    """
    if not is_configured():
        logger.debug(f"[NOTIFY] No SMS gateway configured — {purpose} code for {phone} not sent")
        return False

    headers = {}
    if settings.SMS_GATEWAY_TOKEN:
        headers["Authorization"] = f"Bearer {settings.SMS_GATEWAY_TOKEN}"

    try:
        async with httpx.AsyncClient(timeout=settings.NOTIFIER_TIMEOUT_SECONDS) as client:
            response = await client.post(
                settings.SMS_GATEWAY_URL,
                json={"phone": phone, "code": code, "purpose": purpose},
                headers=headers,
            )
        if response.status_code >= 400:
            logger.warning(f"[NOTIFY] Gateway returned HTTP {response.status_code} for {phone}")
            return False
        logger.info(f"[NOTIFY] {purpose} code sent to {phone}")
        return True
    except httpx.HTTPError as e:
        logger.error(f"[NOTIFY] Failed to reach SMS gateway for {phone}: {e}")
        return False
