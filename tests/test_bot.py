"""
Tests for chat routing, ingestion and admin commands
"""

import asyncio
from unittest.mock import Mock

import pytest

from zoomvault.access import AccessGate
from zoomvault.bot import HELP_TEXT, WELCOME_TEXT, ChatBot
from zoomvault.catalogue import CatalogueQuery
from zoomvault.delivery import DeliveryService
from zoomvault.downloader import DownloadOrchestrator
from zoomvault.exceptions import StoreError
from zoomvault.models import RecordingStatus
from zoomvault.parser import LinkParser
from zoomvault.transport import InboundMessage

from .helpers import SHARE_MESSAGE, FakeTransport, TrackingStore, fake_downloader

ADMIN = 1
UPLOADER = 42
STRANGER = 99
CHAT = 500


@pytest.fixture
def store(tmp_path):
    store = TrackingStore(tmp_path / "zoom.db")
    store.initialize()
    return store


@pytest.fixture
def transport():
    return FakeTransport(file_id="handle-1")


@pytest.fixture
def gate(store):
    config = Mock()
    config.is_admin = lambda principal_id: principal_id == ADMIN
    return AccessGate(store, config)


@pytest.fixture
def orchestrator():
    return Mock(spec=DownloadOrchestrator)


@pytest.fixture
def bot(store, transport, gate, orchestrator):
    delivery = DeliveryService(transport, store)
    return ChatBot(
        transport=transport,
        store=store,
        gate=gate,
        parser=LinkParser(),
        orchestrator=orchestrator,
        catalogue=CatalogueQuery(store, transport, delivery),
    )


def _message(text, sender_id=UPLOADER, username="alice"):
    return InboundMessage(chat_id=CHAT, sender_id=sender_id, username=username, text=text)


def _grant(store, principal_id=UPLOADER):
    asyncio.run(store.set_can_upload(principal_id, True))


class TestIngest:
    def test_authorized_share_message_creates_pending_record(self, bot, store, orchestrator):
        _grant(store)
        record = asyncio.run(bot.ingest(_message(SHARE_MESSAGE)))

        assert record is not None
        assert record.status is RecordingStatus.PENDING
        assert record.title == "Math Class"
        assert record.uploaded_by == UPLOADER
        orchestrator.submit.assert_called_once_with(record, CHAT)

    def test_unauthorized_sender_is_ignored(self, bot, store, transport, orchestrator):
        """Not an uploader: no record, no reply"""
        asyncio.run(bot.handle(_message(SHARE_MESSAGE, sender_id=STRANGER)))

        assert asyncio.run(store.list_recordings()) == []
        assert transport.messages == []
        orchestrator.submit.assert_not_called()

    def test_admin_needs_a_grant_to_upload(self, bot, store, orchestrator):
        assert asyncio.run(bot.ingest(_message(SHARE_MESSAGE, sender_id=ADMIN))) is None
        orchestrator.submit.assert_not_called()

    @pytest.mark.parametrize(
        "text",
        [
            "hello there",
            "Math Class\nhttps://zoom.us/rec/share/xyz",
            "Math Class\nPasscode: ab12",
        ],
    )
    def test_non_share_messages_are_ignored(self, bot, store, transport, text):
        _grant(store)
        asyncio.run(bot.handle(_message(text)))
        assert asyncio.run(store.list_recordings()) == []
        assert transport.messages == []

    @pytest.mark.parametrize(
        "text",
        [
            "/ Math Class\nhttps://zoom.us/rec/share/xyz\nPasscode: ab12",
            "/search-x Math\nhttps://zoom.us/rec/share/xyz\nPasscode: ab12",
        ],
    )
    def test_malformed_commands_are_not_ingested(self, bot, store, transport, orchestrator, text):
        """Text starting with a slash is never treated as a share message"""
        _grant(store)
        asyncio.run(bot.handle(_message(text)))

        assert asyncio.run(store.list_recordings()) == []
        assert transport.messages == []
        orchestrator.submit.assert_not_called()

    def test_message_without_sender_is_ignored(self, bot, store):
        _grant(store)
        assert asyncio.run(bot.ingest(_message(SHARE_MESSAGE, sender_id=None))) is None

    def test_store_failure_is_reported(self, bot, store, transport, orchestrator, monkeypatch):
        _grant(store)

        async def broken(*args, **kwargs):
            raise StoreError("Database operation failed")

        monkeypatch.setattr(store, "create_recording", broken)
        assert asyncio.run(bot.ingest(_message(SHARE_MESSAGE))) is None
        assert transport.texts == ["❌ Error processing the Zoom link"]
        orchestrator.submit.assert_not_called()

    def test_share_message_runs_to_completion(self, store, transport, gate, tmp_path, monkeypatch):
        """End to end with a faked downloader: pending, downloading, completed, delivered"""
        monkeypatch.setattr("zoomvault.downloader.shutil.which", lambda name: f"/usr/bin/{name}")
        fake_exec, calls = fake_downloader(size=2048)
        monkeypatch.setattr("zoomvault.downloader.asyncio.create_subprocess_exec", fake_exec)
        _grant(store)

        delivery = DeliveryService(transport, store)
        orchestrator = DownloadOrchestrator(store, transport, delivery, tmp_path / "downloads")
        bot = ChatBot(
            transport=transport,
            store=store,
            gate=gate,
            parser=LinkParser(),
            orchestrator=orchestrator,
            catalogue=CatalogueQuery(store, transport, delivery),
        )

        async def scenario():
            record = await bot.ingest(_message(SHARE_MESSAGE))
            await orchestrator.wait_all()
            return await store.get_recording(record.id)

        record = asyncio.run(scenario())
        assert store.history == [
            RecordingStatus.PENDING,
            RecordingStatus.DOWNLOADING,
            RecordingStatus.COMPLETED,
        ]
        assert record.file_path.endswith("Math_Class_1.mp4")
        assert record.file_id == "handle-1"
        assert transport.texts == ["🔍 Zoom link detected! Downloading recording..."]
        assert len(transport.documents) == 1
        assert len(calls) == 1


class TestCommands:
    def test_start_registers_sender(self, bot, store, transport):
        asyncio.run(bot.handle(_message("/start", sender_id=STRANGER, username="bob")))

        principal = asyncio.run(store.get_principal(STRANGER))
        assert principal.username == "bob"
        assert principal.can_upload is False
        assert transport.messages == [(CHAT, WELCOME_TEXT, True)]

    def test_start_keeps_existing_grant(self, bot, store):
        _grant(store)
        asyncio.run(bot.handle(_message("/start")))
        assert asyncio.run(store.get_principal(UPLOADER)).can_upload is True

    def test_help(self, bot, transport):
        asyncio.run(bot.handle(_message("/help")))
        assert transport.messages == [(CHAT, HELP_TEXT, True)]

    def test_command_with_bot_suffix(self, bot, transport):
        asyncio.run(bot.handle(_message("/help@ZoomVaultBot")))
        assert transport.texts == [HELP_TEXT]

    def test_search_without_query(self, bot, transport):
        asyncio.run(bot.handle(_message("/search   ")))
        assert transport.texts == ["Please provide a search query!"]

    def test_search_is_open_to_everyone(self, bot, store, transport):
        asyncio.run(store.create_recording(LinkParser().parse(SHARE_MESSAGE), UPLOADER))
        asyncio.run(bot.handle(_message("/search math", sender_id=STRANGER)))
        assert len(transport.messages) == 1
        assert "Math Class" in transport.texts[0]

    def test_list(self, bot, transport):
        asyncio.run(bot.handle(_message("/list", sender_id=STRANGER)))
        assert transport.texts == ["📂 No recordings found"]

    def test_unknown_command_is_ignored(self, bot, transport):
        asyncio.run(bot.handle(_message("/dance")))
        assert transport.messages == []


class TestAddUploader:
    def test_admin_grants_upload(self, bot, store, gate, transport):
        asyncio.run(bot.handle(_message(f"/adduploader {UPLOADER}", sender_id=ADMIN)))

        assert transport.texts == [f"✅ User {UPLOADER} can now upload recordings"]
        assert asyncio.run(store.get_principal(UPLOADER)).can_upload is True
        assert asyncio.run(gate.is_authorized(UPLOADER)) is True

    def test_grant_takes_effect_after_a_denial(self, bot, store, gate):
        """A cached denial is dropped once the grant is stored"""
        assert asyncio.run(gate.is_authorized(UPLOADER)) is False
        asyncio.run(bot.handle(_message(f"/adduploader {UPLOADER}", sender_id=ADMIN)))
        assert asyncio.run(gate.is_authorized(UPLOADER)) is True

    def test_non_admin_is_rejected(self, bot, store, transport):
        asyncio.run(bot.handle(_message(f"/adduploader {STRANGER}", sender_id=UPLOADER)))

        assert transport.texts == ["❌ Unauthorized"]
        assert asyncio.run(store.get_principal(STRANGER)) is None

    @pytest.mark.parametrize("args", ["", "abc", "-5", "12 34"])
    def test_bad_argument_shows_usage(self, bot, transport, args):
        asyncio.run(bot.handle(_message(f"/adduploader {args}", sender_id=ADMIN)))
        assert transport.texts == ["Usage: /adduploader <telegram_id>"]


def test_handler_errors_are_reported(bot, transport, monkeypatch):
    async def broken(chat_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(bot.catalogue, "respond_list", broken)
    asyncio.run(bot.handle(_message("/list")))
    assert transport.texts == ["❌ Something went wrong"]


class TestInboundMessage:
    def test_from_text_update(self):
        update = {
            "update_id": 10,
            "message": {
                "chat": {"id": -100},
                "from": {"id": 42, "username": "alice"},
                "text": "/list",
            },
        }
        message = InboundMessage.from_update(update)
        assert message == InboundMessage(chat_id=-100, sender_id=42, username="alice", text="/list")

    @pytest.mark.parametrize(
        "update",
        [
            {"update_id": 1},
            {"update_id": 2, "edited_message": {"chat": {"id": 1}, "text": "hi"}},
            {"update_id": 3, "message": {"chat": {"id": 1}, "photo": []}},
            {"update_id": 4, "message": {"text": "hi"}},
        ],
    )
    def test_non_text_updates_are_skipped(self, update):
        assert InboundMessage.from_update(update) is None

    def test_missing_sender(self):
        message = InboundMessage.from_update({"message": {"chat": {"id": 5}, "text": "hi"}})
        assert message.sender_id is None
        assert message.username is None
