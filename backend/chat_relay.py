"""
Chat assistant relay

Forwards user messages to the configured chat webhook (n8n chat trigger
protocol) and returns the assistant's reply.
"""
import uuid
from typing import Optional, Dict, Any

import httpx
from loguru import logger

from config import settings


class ChatNotConfiguredError(Exception):
    """No webhook URL configured"""


class ChatRelayError(Exception):
    """The webhook failed or returned an unusable response"""


class ChatRelay:
    """Thin async client for the chat webhook"""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url if webhook_url is not None else settings.CHAT_WEBHOOK_URL
        self.timeout = timeout if timeout is not None else settings.CHAT_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    async def send(self, message: str, session_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Send one message.

        Returns:
            {"reply": str, "session_id": str}
        """
        if not self.is_configured:
            raise ChatNotConfiguredError("Chat webhook is not configured")

        session_id = session_id or f"chat-session-{uuid.uuid4().hex}"
        payload = {
            "action": "sendMessage",
            "sessionId": session_id,
            "chatInput": message,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Chat webhook request failed: {e}")
            raise ChatRelayError(str(e)) from e
        except ValueError as e:
            logger.error(f"Chat webhook returned invalid JSON: {e}")
            raise ChatRelayError("Invalid response from chat webhook") from e

        if isinstance(data, list) and data:
            data = data[0]
        reply = (data.get("output") or data.get("text")) if isinstance(data, dict) else None
        if not isinstance(reply, str):
            raise ChatRelayError("Chat webhook response has no reply text")

        logger.debug(f"Chat reply for {session_id}: {len(reply)} chars")
        return {"reply": reply, "session_id": session_id}


# Global instance
chat_relay = ChatRelay()
