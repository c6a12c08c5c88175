# recruitbot/connectors/whatsapp.py
import re
import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from recruitbot.connectors.base import BaseConnector
from recruitbot.core.config import settings

logger = logging.getLogger("whatsapp.client")

GRAPH_API_URL = "https://graph.facebook.com/v19.0"
COUNTRY_CODE = "51"


def to_wa_id(phone: str) -> str:
    """Local 9-digit mobiles get the Peruvian country code."""
    digits = re.sub(r"\D", "", phone)
    if len(digits) == 9:
        digits = COUNTRY_CODE + digits
    return digits


class WhatsAppClient(BaseConnector):
    """
    WhatsApp Cloud API sender. Without a token every message is only
    logged (simulation mode), which is what local runs and tests use.
    """

    def __init__(self, token: Optional[str] = None, phone_number_id: Optional[str] = None,
                 http_client: Optional[httpx.AsyncClient] = None):
        self.token = token if token is not None else settings.WHATSAPP_TOKEN
        self.phone_number_id = phone_number_id if phone_number_id is not None else settings.WHATSAPP_PHONE_NUMBER_ID
        self._http_client = http_client

    @property
    def simulated(self) -> bool:
        return not (self.token and self.phone_number_id)

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self):
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True
    )
    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        resp = await self.http_client.post(
            f"{GRAPH_API_URL}/{self.phone_number_id}/messages",
            json=payload,
            headers={"Authorization": f"Bearer {self.token}"},
        )
        resp.raise_for_status()
        return resp.json()

    async def send_message(self, phone: str, text: str) -> Dict[str, Any]:
        wa_id = to_wa_id(phone)
        if self.simulated:
            logger.info(f"📱 [SIMULATED] WhatsApp to {wa_id}: {text[:80]}")
            return {"simulated": True, "to": wa_id}

        data = await self._post({
            "messaging_product": "whatsapp",
            "to": wa_id,
            "type": "text",
            "text": {"body": text},
        })
        logger.info(f"📤 WhatsApp message sent to {wa_id}")
        return data
