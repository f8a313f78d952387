"""
Delivery of completed recordings back to a chat
"""

import asyncio
import logging
from pathlib import Path

from zoomvault.exceptions import DeliveryError
from zoomvault.models import Recording
from zoomvault.store import RecordStore
from zoomvault.transport import ChatTransport

DEFAULT_LIMIT_BYTES = 50 * 1024 * 1024  # Telegram bot upload limit

_MARKDOWN_SPECIAL = ("\\", "_", "*", "`", "[")


def escape_markdown(text: str) -> str:
    """Escape characters that Telegram's legacy Markdown treats as markup"""
    for char in _MARKDOWN_SPECIAL:
        text = text.replace(char, f"\\{char}")
    return text


class DeliveryService:
    """Send a recording's artifact to a chat.

    A stored remote handle is preferred over re-uploading the local file.
    Files over the size limit are announced by name instead of sent. Send
    failures are reported to the chat and never touch the recording status.
    """

    def __init__(
        self,
        transport: ChatTransport,
        store: RecordStore,
        size_limit_bytes: int = DEFAULT_LIMIT_BYTES,
    ) -> None:
        self.transport = transport
        self.store = store
        self.size_limit_bytes = size_limit_bytes
        self.logger = logging.getLogger(__name__)

    async def deliver(self, chat_id: int, record: Recording) -> None:
        try:
            if record.file_id:
                await self.transport.send_document(chat_id, record.file_id)
            elif record.file_path:
                await self._send_file(chat_id, Path(record.file_path), record.title)
            else:
                self.logger.warning(f"Recording {record.id} has no artifact to deliver")
        except Exception as e:
            self.logger.error(f"Error sending recording {record.id} to chat {chat_id}: {e}")
            await self._report_failure(chat_id, e)

    async def _send_file(self, chat_id: int, file_path: Path, title: str) -> None:
        try:
            stat = await asyncio.to_thread(file_path.stat)
        except OSError as e:
            raise DeliveryError(f"File not found: {file_path.name}", details=str(e)) from e
        size_mb = stat.st_size / (1024 * 1024)
        heading = f"📁 *{escape_markdown(title)}*"

        if stat.st_size > self.size_limit_bytes:
            self.logger.info(f"{file_path.name} is {size_mb:.1f}MB, over the delivery limit")
            await self.transport.send_message(
                chat_id,
                f"{heading}\n\n"
                f"⚠️ File too large for Telegram ({size_mb:.1f}MB)\n"
                f"File saved locally: {escape_markdown(file_path.name)}",
                markdown=True,
            )
            return

        file_id = await self.transport.send_document(
            chat_id, file_path, caption=heading, markdown=True
        )
        if file_id and await self.store.set_file_id(file_path, file_id):
            self.logger.debug(f"Stored remote handle for {file_path.name}")

    async def _report_failure(self, chat_id: int, error: Exception) -> None:
        try:
            await self.transport.send_message(chat_id, f"❌ Error sending file: {error}")
        except Exception as e:
            self.logger.error(f"Could not report delivery failure to chat {chat_id}: {e}")
