"""
Tests for chat search and listing
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from zoomvault.catalogue import CatalogueQuery, format_summary, status_icon
from zoomvault.delivery import DeliveryService
from zoomvault.exceptions import StoreError
from zoomvault.models import RecordingStatus

from .helpers import FakeTransport, make_descriptor, make_store, write_file


@pytest.fixture
def store(tmp_path):
    return make_store(tmp_path)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def catalogue(store, transport):
    return CatalogueQuery(store, transport, DeliveryService(transport, store))


def _completed_with_handle(store, tmp_path, title="Math Class", handle="handle-9"):
    artifact = write_file(tmp_path / f"{title}.mp4", 1024)
    record = asyncio.run(store.create_recording(make_descriptor(title), 42))
    asyncio.run(store.mark_downloading(record.id))
    asyncio.run(store.mark_completed(record.id, artifact))
    if handle:
        asyncio.run(store.set_file_id(artifact, handle))
    return asyncio.run(store.get_recording(record.id))


def test_search_delivers_via_stored_handle(catalogue, store, transport, tmp_path):
    """A completed recording with a handle is resent without re-uploading"""
    record = _completed_with_handle(store, tmp_path)

    results = asyncio.run(catalogue.respond_search(100, "math"))

    assert [r.id for r in results] == [record.id]
    assert len(transport.messages) == 1
    summary = transport.messages[0][1]
    assert 'Search Results for "math"' in summary
    assert "Math Class" in summary
    assert "completed" in summary
    assert transport.documents == [(100, "handle-9", None)]


def test_search_skips_unfinished_records(catalogue, store, transport):
    asyncio.run(store.create_recording(make_descriptor("Math pending"), 1))

    results = asyncio.run(catalogue.respond_search(100, "Math"))

    assert len(results) == 1
    assert transport.documents == []


def test_search_without_handle_uploads_local_file(catalogue, store, transport, tmp_path):
    record = _completed_with_handle(store, tmp_path, handle=None)

    asyncio.run(catalogue.respond_search(5, "Math"))

    assert transport.documents[0][1] == tmp_path / "Math Class.mp4"
    assert asyncio.run(store.get_recording(record.id)).file_id == transport.file_id


@pytest.mark.parametrize("query", ["", "nothing like it"])
def test_search_no_results(catalogue, store, transport, query):
    asyncio.run(store.create_recording(make_descriptor(), 1))

    assert asyncio.run(catalogue.search(query)) == []
    assert asyncio.run(catalogue.respond_search(5, query)) == []
    assert transport.texts == [f'🔍 No recordings found for "{query}"']


def test_search_error_is_distinct_from_no_results(transport):
    store = Mock()
    store.search = AsyncMock(side_effect=StoreError("boom"))
    catalogue = CatalogueQuery(store, transport, Mock())

    assert asyncio.run(catalogue.respond_search(5, "math")) == []
    assert transport.texts == ["❌ Error searching recordings"]


def test_search_is_limited_to_ten(catalogue, store):
    for i in range(15):
        asyncio.run(store.create_recording(make_descriptor(f"Lesson {i}"), 1))
    assert len(asyncio.run(catalogue.search("Lesson"))) == 10


def test_list_recent_is_summary_only(catalogue, store, transport, tmp_path):
    _completed_with_handle(store, tmp_path)
    for i in range(6):
        asyncio.run(store.create_recording(make_descriptor(f"Lesson {i}"), 1))

    results = asyncio.run(catalogue.respond_list(5))

    assert [r.title for r in results] == [f"Lesson {i}" for i in range(5, 0, -1)]
    assert len(transport.messages) == 1
    assert "Recent Recordings" in transport.messages[0][1]
    assert transport.documents == []


def test_list_empty_and_error(transport, store, catalogue):
    assert asyncio.run(catalogue.respond_list(5)) == []
    assert transport.texts == ["📂 No recordings found"]

    broken = Mock()
    broken.list_recent = AsyncMock(side_effect=StoreError("boom"))
    failing = CatalogueQuery(broken, transport, Mock())
    asyncio.run(failing.respond_list(5))
    assert transport.texts[-1] == "❌ Error listing recordings"


def test_summary_escapes_markdown():
    record = Mock(title="Week_1 *notes*", date="June 1", status=RecordingStatus.FAILED)
    text = format_summary(record)
    assert "Week\\_1 \\*notes\\*" in text
    assert "❌ failed" in text


def test_every_status_has_an_icon():
    assert all(status_icon(status) for status in RecordingStatus)
