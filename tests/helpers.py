"""Shared fakes for chat and store tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, Mock

from zoomvault.models import LinkDescriptor, RecordingStatus
from zoomvault.store import RecordStore
from zoomvault.transport import ChatTransport

SHARE_MESSAGE = (
    "Math Class\n"
    "Date: June 1, 2025\n"
    "https://zoom.us/rec/share/xyz\n"
    "Passcode: ab12"
)


class FakeTransport(ChatTransport):
    """Records every outbound call instead of talking to Telegram."""

    def __init__(self, file_id: str | None = "remote-file-1", fail_documents: bool = False):
        self.file_id = file_id
        self.fail_documents = fail_documents
        self.messages: list[tuple[int, str, bool]] = []
        self.documents: list[tuple[int, Path | str, str | None]] = []

    async def send_message(self, chat_id: int, text: str, markdown: bool = False) -> None:
        self.messages.append((chat_id, text, markdown))

    async def send_document(
        self,
        chat_id: int,
        document: Path | str,
        caption: str | None = None,
        markdown: bool = False,
    ) -> str | None:
        if self.fail_documents:
            raise RuntimeError("upload rejected")
        self.documents.append((chat_id, document, caption))
        return self.file_id if isinstance(document, Path) else document

    @property
    def texts(self) -> list[str]:
        return [text for _, text, _ in self.messages]


def make_store(tmp_path: Path) -> RecordStore:
    store = RecordStore(tmp_path / "test.db")
    store.initialize()
    return store


def make_descriptor(title: str = "Math Class") -> LinkDescriptor:
    return LinkDescriptor(
        title=title,
        date="June 1, 2025",
        url="https://zoom.us/rec/share/xyz",
        passcode="ab12",
    )


def write_file(path: Path, size: int) -> Path:
    """Create a sparse file of the given size."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.truncate(size)
    return path


class TrackingStore(RecordStore):
    """Records every status a recording passes through"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.history: list[RecordingStatus] = []

    async def create_recording(self, descriptor, uploaded_by):
        record = await super().create_recording(descriptor, uploaded_by)
        self.history.append(record.status)
        return record

    async def mark_downloading(self, record_id):
        record = await super().mark_downloading(record_id)
        self.history.append(record.status)
        return record

    async def mark_completed(self, record_id, file_path):
        record = await super().mark_completed(record_id, file_path)
        self.history.append(record.status)
        return record

    async def mark_failed(self, record_id):
        record = await super().mark_failed(record_id)
        self.history.append(record.status)
        return record


def fake_downloader(returncode=0, size=1024, ext="mp4", stderr=b""):
    """Stand-in for asyncio.create_subprocess_exec that mimics yt-dlp"""
    calls: list[tuple[str, ...]] = []

    async def _exec(*cmd, **kwargs):
        calls.append(cmd)
        template = cmd[cmd.index("-o") + 1]
        if returncode == 0 and size is not None:
            write_file(Path(template.replace("%(ext)s", ext)), size)
        process = Mock()
        process.returncode = returncode
        process.communicate = AsyncMock(return_value=(b"", stderr))
        return process

    return _exec, calls
