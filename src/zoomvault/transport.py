"""
Chat transport: the Telegram Bot API over HTTP
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import requests

from zoomvault.exceptions import TransportError

POLL_TIMEOUT = 30


@dataclass(frozen=True)
class InboundMessage:
    chat_id: int
    sender_id: int | None
    username: str | None
    text: str

    @classmethod
    def from_update(cls, update: dict[str, Any]) -> InboundMessage | None:
        """Build from a getUpdates entry; None for anything that is not a text message"""
        message = update.get("message")
        if not isinstance(message, dict):
            return None
        text = message.get("text")
        chat = message.get("chat") or {}
        if not isinstance(text, str) or "id" not in chat:
            return None
        sender = message.get("from") or {}
        sender_id = sender.get("id")
        return cls(
            chat_id=int(chat["id"]),
            sender_id=int(sender_id) if sender_id is not None else None,
            username=sender.get("username"),
            text=text,
        )


class ChatTransport(ABC):
    """Outbound half of a chat connection"""

    @abstractmethod
    async def send_message(self, chat_id: int, text: str, markdown: bool = False) -> None: ...

    @abstractmethod
    async def send_document(
        self,
        chat_id: int,
        document: Path | str,
        caption: str | None = None,
        markdown: bool = False,
    ) -> str | None:
        """
        Send a file

        Args:
            chat_id: Destination chat
            document: Local file to upload, or a remote handle from an earlier send
            caption: Optional caption

        Returns:
            Remote handle of the sent document, if the transport returned one
        """


class TelegramTransport(ChatTransport):
    """Telegram Bot API client (blocking requests run on worker threads)"""

    def __init__(
        self,
        bot_token: str,
        *,
        api_url: str = "https://api.telegram.org",
        timeout: int = POLL_TIMEOUT + 10,
    ):
        self.bot_token = bot_token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.logger = logging.getLogger(__name__)

    def __repr__(self) -> str:
        return f"TelegramTransport(api_url={self.api_url!r}, token_set={bool(self.bot_token)})"

    def _method_url(self, method: str) -> str:
        return f"{self.api_url}/bot{self.bot_token}/{method}"

    def _request(
        self,
        method: str,
        payload: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        try:
            if files:
                response = self.session.post(
                    self._method_url(method), data=payload, files=files, timeout=self.timeout
                )
            else:
                response = self.session.post(
                    self._method_url(method), json=payload or {}, timeout=self.timeout
                )
            data = response.json()
        except requests.exceptions.RequestException as e:
            # Exception text can contain the request URL, which embeds the token
            message = str(e).replace(self.bot_token, "[REDACTED]")
            raise TransportError(f"Telegram {method} request failed", details=message) from e
        except ValueError as e:
            raise TransportError(
                f"Telegram {method} returned invalid JSON",
                details=f"HTTP {response.status_code}",
            ) from e

        if not data.get("ok"):
            description = data.get("description", f"HTTP {response.status_code}")
            raise TransportError(f"Telegram {method} failed: {description}")
        return data.get("result")

    def _send_document_sync(
        self, chat_id: int, document: Path | str, caption: str | None, markdown: bool
    ) -> str | None:
        payload: dict[str, Any] = {"chat_id": chat_id}
        if caption:
            payload["caption"] = caption
        if markdown:
            payload["parse_mode"] = "Markdown"

        if isinstance(document, Path):
            with open(document, "rb") as f:
                files = {"document": (document.name, f)}
                result = self._request("sendDocument", payload, files=files)
        else:
            payload["document"] = document
            result = self._request("sendDocument", payload)

        sent = (result or {}).get("document") or {}
        return sent.get("file_id")

    async def send_message(self, chat_id: int, text: str, markdown: bool = False) -> None:
        payload: dict[str, Any] = {"chat_id": chat_id, "text": text}
        if markdown:
            payload["parse_mode"] = "Markdown"
        await asyncio.to_thread(self._request, "sendMessage", payload)

    async def send_document(
        self,
        chat_id: int,
        document: Path | str,
        caption: str | None = None,
        markdown: bool = False,
    ) -> str | None:
        return await asyncio.to_thread(
            self._send_document_sync, chat_id, document, caption, markdown
        )

    async def get_updates(self, offset: int, timeout: int = POLL_TIMEOUT) -> list[dict[str, Any]]:
        """Long-poll for new updates after ``offset``"""
        result = await asyncio.to_thread(
            self._request,
            "getUpdates",
            {"offset": offset, "timeout": timeout, "allowed_updates": ["message"]},
        )
        return list(result or [])
