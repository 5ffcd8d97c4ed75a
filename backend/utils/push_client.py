# backend/utils/push_client.py
import re
import httpx
import logging
from typing import List, Optional
from config import settings

logger = logging.getLogger(__name__)

# The gateway accepts at most this many messages per request
PUSH_CHUNK_SIZE = 100

_UUID_TOKEN = re.compile(r"^[a-z\d]{8}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{4}-[a-z\d]{12}$", re.IGNORECASE)


def is_expo_push_token(token) -> bool:
    if not isinstance(token, str) or not token:
        return False
    if (token.startswith("ExponentPushToken[") or token.startswith("ExpoPushToken[")) and token.endswith("]"):
        return True
    return bool(_UUID_TOKEN.match(token))


def chunk_messages(messages: List[dict], size: int = PUSH_CHUNK_SIZE) -> List[List[dict]]:
    return [messages[i:i + size] for i in range(0, len(messages), size)]


class ExpoPushClient:
    def __init__(self, push_url: str = None, access_token: Optional[str] = None,
                 timeout: float = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        # Gateway configuration; transport is swapped in tests
        self.push_url = push_url or settings.EXPO_PUSH_URL
        self.access_token = access_token if access_token is not None else settings.EXPO_ACCESS_TOKEN
        self.timeout = timeout or settings.PUSH_TIMEOUT_SECONDS
        self.transport = transport

    def _headers(self) -> dict:
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def send_chunk(self, client: httpx.AsyncClient, chunk: List[dict]) -> List[dict]:
        # Submit one chunk and return its push tickets
        try:
            response = await client.post(self.push_url, json=chunk, headers=self._headers())
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Expo push send error: %s", e.response.text)
            raise
        except httpx.RequestError as e:
            logger.error("Expo push send error: %s", e)
            raise

        tickets = body.get("data") if isinstance(body, dict) else None
        if isinstance(tickets, dict):
            tickets = [tickets]
        if not isinstance(tickets, list):
            logger.error("Unexpected push gateway reply: %s", body)
            return []
        malformed = [t for t in tickets if not isinstance(t, dict)]
        if malformed:
            logger.error("Dropping %d malformed push tickets: %s", len(malformed), malformed)
        return [t for t in tickets if isinstance(t, dict)]

    async def send(self, messages: List[dict]) -> List[dict]:
        """Sends messages in chunks. A failed chunk is logged and skipped."""
        chunks = chunk_messages(messages)
        tickets: List[dict] = []
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for i, chunk in enumerate(chunks, start=1):
                try:
                    tickets.extend(await self.send_chunk(client, chunk))
                except (httpx.RequestError, httpx.HTTPStatusError, ValueError) as e:
                    logger.error("Error sending push chunk %d/%d: %s", i, len(chunks), e)
        return tickets


push_client = ExpoPushClient()


def get_push_client() -> ExpoPushClient:
    return push_client
