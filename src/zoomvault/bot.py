"""
Chat surface: command routing, link ingestion and the polling loop
"""

from __future__ import annotations

import asyncio
import logging
import re

from zoomvault.access import AccessGate
from zoomvault.catalogue import CatalogueQuery
from zoomvault.downloader import DownloadOrchestrator
from zoomvault.models import Recording
from zoomvault.parser import LinkParser
from zoomvault.store import RecordStore
from zoomvault.transport import InboundMessage, TelegramTransport

WELCOME_TEXT = """🎓 *Zoom Recordings Bot*

Send me a Zoom recording link with its passcode and I'll download and store it for you!

*Commands:*
/search [query] - Search for recordings
/list - Show recent recordings
/help - Show this help message

*For uploaders:* Just paste the Zoom share link with details"""

HELP_TEXT = """*How to use:*

📤 *Upload (authorized users only):*
Just paste your Zoom recording details like:
```
Weekly Lecture
Date: May 27, 2025 05:35 AM
Duration: 00:59:54
https://us06web.zoom.us/rec/share/...
Passcode: 1I?N7@?L
```

🔍 *Search:*
/search grammar
/search may 2025

📋 *List recent:*
/list

The bot will automatically download and store recordings for easy access!"""

_COMMAND = re.compile(r"^/(?P<name>[A-Za-z_]+)(?:@\w+)?(?:\s+(?P<args>.*))?$", re.DOTALL)


class ChatBot:
    """Route inbound chat messages to the catalogue, admin commands or ingestion"""

    def __init__(
        self,
        transport: TelegramTransport,
        store: RecordStore,
        gate: AccessGate,
        parser: LinkParser,
        orchestrator: DownloadOrchestrator,
        catalogue: CatalogueQuery,
    ) -> None:
        self.transport = transport
        self.store = store
        self.gate = gate
        self.parser = parser
        self.orchestrator = orchestrator
        self.catalogue = catalogue
        self.logger = logging.getLogger(__name__)
        self._handlers: set[asyncio.Task[None]] = set()

    async def handle(self, message: InboundMessage) -> None:
        """Handle one message; failures are logged and reported, never raised"""
        try:
            text = message.text.strip()
            if not text.startswith("/"):
                await self.ingest(message)
                return
            match = _COMMAND.match(text)
            if match:
                await self._dispatch_command(
                    message, match.group("name").lower(), (match.group("args") or "").strip()
                )
            else:
                self.logger.debug(f"Ignoring malformed command in chat {message.chat_id}")
        except Exception as e:
            self.logger.exception(f"Error handling message in chat {message.chat_id}: {e}")
            try:
                await self.transport.send_message(message.chat_id, "❌ Something went wrong")
            except Exception as send_error:
                self.logger.error(f"Could not report error to chat {message.chat_id}: {send_error}")

    async def _dispatch_command(self, message: InboundMessage, name: str, args: str) -> None:
        chat_id = message.chat_id
        if name == "start":
            if message.sender_id is not None:
                await self.gate.register(message.sender_id, message.username)
            await self.transport.send_message(chat_id, WELCOME_TEXT, markdown=True)
        elif name == "help":
            await self.transport.send_message(chat_id, HELP_TEXT, markdown=True)
        elif name == "search":
            if not args:
                await self.transport.send_message(chat_id, "Please provide a search query!")
                return
            await self.catalogue.respond_search(chat_id, args)
        elif name == "list":
            await self.catalogue.respond_list(chat_id)
        elif name == "adduploader":
            await self._add_uploader(message, args)
        else:
            self.logger.debug(f"Ignoring unknown command /{name}")

    async def _add_uploader(self, message: InboundMessage, args: str) -> None:
        if not self.gate.is_admin(message.sender_id):
            await self.transport.send_message(message.chat_id, "❌ Unauthorized")
            return
        if not args.isdigit():
            await self.transport.send_message(message.chat_id, "Usage: /adduploader <telegram_id>")
            return
        target = int(args)
        await self.gate.grant(target)
        await self.transport.send_message(
            message.chat_id, f"✅ User {target} can now upload recordings"
        )

    async def ingest(self, message: InboundMessage) -> Recording | None:
        """
        Turn a share message from an authorized sender into a recording

        Unauthorized senders and messages that are not share links are
        dropped without a reply.

        Returns:
            The created recording, or None when the message was dropped
        """
        if message.sender_id is None:
            return None
        if not await self.gate.is_authorized(message.sender_id):
            return None

        descriptor = self.parser.parse(message.text)
        if descriptor is None:
            return None

        try:
            record = await self.store.create_recording(descriptor, message.sender_id)
        except Exception as e:
            self.logger.error(f"Error processing Zoom link from {message.sender_id}: {e}")
            await self.transport.send_message(message.chat_id, "❌ Error processing the Zoom link")
            return None

        self.orchestrator.submit(record, message.chat_id)
        return record

    def dispatch(self, message: InboundMessage) -> asyncio.Task[None]:
        """Handle a message in its own task"""
        task = asyncio.create_task(self.handle(message))
        self._handlers.add(task)
        task.add_done_callback(self._handlers.discard)
        return task

    async def run_polling(self, poll_timeout: int = 30, retry_delay: float = 2.0) -> None:
        """Long-poll for updates forever"""
        await self.gate.load()
        self.logger.info("Bot started, polling for updates")
        offset = 0
        while True:
            try:
                updates = await self.transport.get_updates(offset, timeout=poll_timeout)
            except Exception as e:
                self.logger.warning(f"Poll error, retrying in {retry_delay:.0f}s: {e}")
                await asyncio.sleep(retry_delay)
                continue

            for update in updates:
                offset = max(offset, int(update.get("update_id", 0)) + 1)
                message = InboundMessage.from_update(update)
                if message is not None:
                    self.dispatch(message)
