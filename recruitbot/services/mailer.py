# recruitbot/services/mailer.py
import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from recruitbot.core.config import settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class Mailer:
    """Transactional e-mail through the Resend HTTP API. Without an API key mails are only logged."""

    def __init__(self, api_key: Optional[str] = None, sender: Optional[str] = None,
                 http_client: Optional[httpx.AsyncClient] = None):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.sender = sender or settings.alerts.email_from
        self._http_client = http_client

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
            RESEND_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        resp.raise_for_status()
        return resp.json()

    async def send(self, to: str, subject: str, html: str) -> Dict[str, Any]:
        if not self.api_key:
            logger.info(f"📧 [MOCK EMAIL] To: {to} | {subject}")
            return {"simulated": True, "to": to}

        data = await self._post({"from": self.sender, "to": [to], "subject": subject, "html": html})
        logger.info(f"✅ E-mail sent to {to} (id={data.get('id')})")
        return data
