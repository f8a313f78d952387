"""
Download lifecycle: drives one recording from pending to completed or failed
using an external downloader (yt-dlp by default)
"""

from __future__ import annotations

import asyncio
import logging
import re
import shutil
from pathlib import Path

from zoomvault.delivery import DeliveryService
from zoomvault.exceptions import (
    ArtifactNotFoundError,
    DownloaderNotFoundError,
    DownloadFailedError,
)
from zoomvault.models import Recording
from zoomvault.store import RecordStore
from zoomvault.transport import ChatTransport

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")
_STDERR_TAIL = 2000


def sanitize_title(title: str) -> str:
    """Replace every non-alphanumeric character with an underscore"""
    return _UNSAFE_CHARS.sub("_", title)


def output_prefix(record: Recording) -> str:
    """Filesystem-safe stem unique to this recording"""
    return f"{sanitize_title(record.title)}_{record.id}"


def build_command(executable: str, passcode: str, output_path: Path, url: str) -> list[str]:
    """Argument vector for the downloader; the extension is left to the downloader"""
    return [executable, "--video-password", passcode, "-o", f"{output_path}.%(ext)s", url]


class DownloadOrchestrator:
    """Own the lifecycle of each submitted recording.

    One task per recording: it is the only writer of that recording's
    status and file path, so no locking is needed. Every outcome ends in
    exactly one chat notification after the initial "downloading" one.
    """

    def __init__(
        self,
        store: RecordStore,
        transport: ChatTransport,
        delivery: DeliveryService,
        downloads_dir: Path,
        executable: str = "yt-dlp",
    ) -> None:
        self.store = store
        self.transport = transport
        self.delivery = delivery
        self.downloads_dir = Path(downloads_dir)
        self.executable = executable
        self.logger = logging.getLogger(__name__)
        self._tasks: dict[int, asyncio.Task[None]] = {}
        self._executable_path: str | None = None

    @property
    def active(self) -> dict[int, asyncio.Task[None]]:
        """Running lifecycle tasks keyed by recording id"""
        return dict(self._tasks)

    def submit(self, record: Recording, chat_id: int) -> asyncio.Task[None]:
        """Start the lifecycle of a freshly created recording and return its task"""
        task = asyncio.create_task(self.run(record, chat_id), name=f"download-{record.id}")
        self._tasks[record.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(record.id, None))
        return task

    async def wait_all(self) -> None:
        """Wait for every running lifecycle to finish"""
        if self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def run(self, record: Recording, chat_id: int) -> None:
        """Run the full lifecycle; never raises"""
        try:
            record = await self.store.mark_downloading(record.id)
            await self._notify(chat_id, "🔍 Zoom link detected! Downloading recording...")
        except Exception as e:
            self.logger.error(f"Could not start download for recording {record.id}: {e}")
            await self._notify(chat_id, "❌ Error processing the Zoom link")
            return

        try:
            artifact = await self.download(record)
        except Exception as e:
            await self._fail(record, chat_id, e)
            return

        try:
            record = await self.store.mark_completed(record.id, artifact)
        except Exception as e:
            self.logger.error(f"Could not record completion of recording {record.id}: {e}")
            await self._fail(record, chat_id, e)
            return

        self.logger.info(f"Recording {record.id} completed: {artifact.name}")
        await self.delivery.deliver(chat_id, record)

    async def download(self, record: Recording) -> Path:
        """
        Run the downloader for a recording and locate its output

        Returns:
            Path of the downloaded artifact

        Raises:
            DownloaderNotFoundError: Executable missing
            DownloadFailedError: Non-zero exit
            ArtifactNotFoundError: Clean exit but no matching file
        """
        await asyncio.to_thread(self.downloads_dir.mkdir, parents=True, exist_ok=True)
        prefix = output_prefix(record)
        output_path = self.downloads_dir / prefix
        cmd = build_command(
            self._resolve_executable(), record.passcode, output_path, record.zoom_url
        )
        self.logger.info(f"Downloading recording {record.id} to {prefix}.*")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise DownloadFailedError(f"Could not start {self.executable}: {e}") from e

        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            details = (stderr or stdout or b"").decode(errors="replace")[-_STDERR_TAIL:]
            message = f"{self.executable} exited with code {process.returncode}"
            if details.strip():
                message += f": {details.strip()}"
            raise DownloadFailedError(message, details=details)

        artifact = await asyncio.to_thread(self.find_artifact, prefix)
        if artifact is None:
            raise ArtifactNotFoundError(
                "Downloaded file not found",
                details=f"No file named {prefix}.* in {self.downloads_dir}",
            )
        return artifact

    def find_artifact(self, prefix: str) -> Path | None:
        """First file in the downloads directory named ``<prefix>.<ext>``"""
        stem = f"{prefix}."
        for name in sorted(p.name for p in self.downloads_dir.iterdir()):
            if name.startswith(stem):
                return self.downloads_dir / name
        return None

    def _resolve_executable(self) -> str:
        if self._executable_path is None:
            self._executable_path = shutil.which(self.executable)
        if self._executable_path is None:
            raise DownloaderNotFoundError(
                f"{self.executable} not found in PATH. Install it or set DOWNLOADER_PATH."
            )
        return self._executable_path

    async def _fail(self, record: Recording, chat_id: int, error: Exception) -> None:
        self.logger.error(f"Download of recording {record.id} failed: {error}")
        try:
            await self.store.mark_failed(record.id)
        except Exception as e:
            self.logger.error(f"Could not mark recording {record.id} as failed: {e}")
        await self._notify(chat_id, f"❌ Download failed: {error}")

    async def _notify(self, chat_id: int, text: str) -> None:
        try:
            await self.transport.send_message(chat_id, text)
        except Exception as e:
            self.logger.error(f"Could not notify chat {chat_id}: {e}")
