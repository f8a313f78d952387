"""
Chat search and listing over stored recordings
"""

import logging
from typing import assert_never

from zoomvault.delivery import DeliveryService, escape_markdown
from zoomvault.models import Recording, RecordingStatus
from zoomvault.store import RecordStore
from zoomvault.transport import ChatTransport

SEARCH_LIMIT = 10
RECENT_LIMIT = 5


def status_icon(status: RecordingStatus) -> str:
    match status:
        case RecordingStatus.PENDING:
            return "🕒"
        case RecordingStatus.DOWNLOADING:
            return "⬇️"
        case RecordingStatus.COMPLETED:
            return "✅"
        case RecordingStatus.FAILED:
            return "❌"
        case _:
            assert_never(status)


def format_summary(record: Recording) -> str:
    return (
        f"📁 *{escape_markdown(record.title)}*\n"
        f"📅 {escape_markdown(record.date)}\n"
        f"📊 Status: {status_icon(record.status)} {record.status.value}\n"
    )


class CatalogueQuery:
    """Read-only queries, newest first.

    ``search`` and ``list_recent`` return plain lists and let StoreError
    propagate; the ``respond_*`` methods turn results into chat messages and
    keep "no results" distinct from a failed query.
    """

    def __init__(
        self,
        store: RecordStore,
        transport: ChatTransport,
        delivery: DeliveryService,
    ) -> None:
        self.store = store
        self.transport = transport
        self.delivery = delivery
        self.logger = logging.getLogger(__name__)

    async def search(self, text: str, limit: int = SEARCH_LIMIT) -> list[Recording]:
        """Title substring search (case-insensitive); blank queries match nothing"""
        return await self.store.search(text, limit=limit)

    async def list_recent(self, limit: int = RECENT_LIMIT) -> list[Recording]:
        return await self.store.list_recent(limit=limit)

    async def respond_search(self, chat_id: int, text: str) -> list[Recording]:
        """Send search results to a chat, then deliver every available artifact"""
        try:
            records = await self.search(text)
        except Exception as e:
            self.logger.error(f"Search for {text!r} failed: {e}")
            await self.transport.send_message(chat_id, "❌ Error searching recordings")
            return []

        if not records:
            await self.transport.send_message(chat_id, f'🔍 No recordings found for "{text}"')
            return []

        lines = [f'🔍 *Search Results for "{escape_markdown(text)}":*\n']
        lines.extend(format_summary(record) for record in records)
        await self.transport.send_message(chat_id, "\n".join(lines), markdown=True)

        for record in records:
            if record.has_artifact:
                await self.delivery.deliver(chat_id, record)
        return records

    async def respond_list(self, chat_id: int) -> list[Recording]:
        """Send a summary of the most recent recordings (no files)"""
        try:
            records = await self.list_recent()
        except Exception as e:
            self.logger.error(f"Listing recordings failed: {e}")
            await self.transport.send_message(chat_id, "❌ Error listing recordings")
            return []

        if not records:
            await self.transport.send_message(chat_id, "📂 No recordings found")
            return []

        lines = ["📂 *Recent Recordings:*\n"]
        lines.extend(format_summary(record) for record in records)
        await self.transport.send_message(chat_id, "\n".join(lines), markdown=True)
        return records
