"""
Data model: principals, parsed share links and stored recordings
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, assert_never


class RecordingStatus(str, Enum):
    """Download lifecycle of a recording.

    pending -> downloading -> completed | failed. Terminal states have no
    outgoing transitions.
    """

    PENDING = "pending"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return not self.allowed_next()

    def allowed_next(self) -> frozenset[RecordingStatus]:
        """Statuses reachable in one step from this one"""
        match self:
            case RecordingStatus.PENDING:
                return frozenset({RecordingStatus.DOWNLOADING})
            case RecordingStatus.DOWNLOADING:
                return frozenset({RecordingStatus.COMPLETED, RecordingStatus.FAILED})
            case RecordingStatus.COMPLETED | RecordingStatus.FAILED:
                return frozenset()
            case _:
                assert_never(self)

    def can_transition_to(self, target: RecordingStatus) -> bool:
        return target in self.allowed_next()

    def predecessors(self) -> frozenset[RecordingStatus]:
        """Statuses from which this one may be entered"""
        return frozenset(s for s in RecordingStatus if s.can_transition_to(self))


@dataclass(frozen=True)
class Principal:
    telegram_id: int
    username: str | None
    can_upload: bool
    created_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Principal:
        return cls(
            telegram_id=int(row["telegram_id"]),
            username=row["username"],
            can_upload=row["can_upload"] == "yes",
            created_at=row["created_at"],
        )


@dataclass(frozen=True)
class LinkDescriptor:
    """Fields extracted from a share message"""

    title: str
    date: str
    url: str
    passcode: str

    def to_dict(self) -> dict[str, str]:
        return {"title": self.title, "date": self.date, "url": self.url, "passcode": self.passcode}


@dataclass(frozen=True)
class Recording:
    id: int
    title: str
    date: str
    zoom_url: str
    passcode: str
    uploaded_by: int
    status: RecordingStatus
    created_at: str
    file_path: str | None = None
    file_id: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Recording:
        return cls(
            id=int(row["id"]),
            title=row["title"],
            date=row["date"],
            zoom_url=row["zoom_url"],
            passcode=row["passcode"],
            uploaded_by=int(row["uploaded_by"]),
            status=RecordingStatus(row["status"]),
            created_at=row["created_at"],
            file_path=row["file_path"],
            file_id=row["file_id"],
        )

    @property
    def has_artifact(self) -> bool:
        return self.status is RecordingStatus.COMPLETED and bool(self.file_path or self.file_id)

    @property
    def filename(self) -> str | None:
        return Path(self.file_path).name if self.file_path else None

    def to_dict(self, include_passcode: bool = False) -> dict[str, Any]:
        """Serialize for JSON output (HTTP and CLI)"""
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "zoom_url": self.zoom_url,
            "file_path": self.file_path,
            "file_id": self.file_id,
            "uploaded_by": self.uploaded_by,
            "status": self.status.value,
            "created_at": self.created_at,
        }
        if include_passcode:
            data["passcode"] = self.passcode
        return data
