import asyncio
import logging
from typing import List, Optional

import httpx

from campus_booking.core.config import settings

logger = logging.getLogger(__name__)


class LineMessagingService:
    """Push and reply calls against the LINE Messaging API."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = settings.LINE_API_URL.rstrip("/")
        self.transport = transport

    @property
    def headers(self) -> dict:
        return {
            "Authorization": f"Bearer {settings.LINE_CHANNEL_ACCESS_TOKEN}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def recipients() -> List[str]:
        """Configured push targets, blanks dropped, duplicates collapsed in order."""
        return list(dict.fromkeys(g.strip() for g in settings.LINE_GROUP_IDS if g and g.strip()))

    async def _post(self, client: httpx.AsyncClient, path: str, payload: dict) -> bool:
        try:
            response = await client.post(f"{self.api_url}/{path}", headers=self.headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Failed to call LINE API ({path}): {e!r}")
            return False

        if response.is_success:
            return True
        logger.error(f"LINE API Error {response.status_code} ({path}): {response.text}")
        return False

    async def push(self, message: str) -> int:
        """Push `message` to every recipient; returns how many deliveries succeeded."""
        if not settings.LINE_CHANNEL_ACCESS_TOKEN:
            logger.warning("LINE channel access token is not configured; push skipped")
            return 0

        targets = self.recipients()
        if not targets:
            logger.warning("No LINE recipients configured; push skipped")
            return 0

        async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
            results = await asyncio.gather(*[
                self._post(client, "push", {"to": target, "messages": [{"type": "text", "text": message}]})
                for target in targets
            ])

        delivered = sum(1 for ok in results if ok)
        logger.info(f"LINE push delivered to {delivered}/{len(targets)} recipient(s)")
        return delivered

    async def reply(self, reply_token: str, text: str) -> bool:
        if not settings.LINE_CHANNEL_ACCESS_TOKEN or not reply_token:
            return False
        async with httpx.AsyncClient(timeout=10.0, transport=self.transport) as client:
            return await self._post(client, "reply", {
                "replyToken": reply_token,
                "messages": [{"type": "text", "text": text}],
            })


line_service = LineMessagingService()
