"""Shared fixtures: temp DuckDB and a scripted fake chain reader."""

import tempfile
from pathlib import Path

import pytest

from predindex.errors import TransientChainError
from predindex.models import EventPage, ObjectSnapshot
from predindex.storage.db import get_connection, init_schema

ADDR = "0x" + "ab" * 32
OTHER_ADDR = "0x" + "cd" * 32


@pytest.fixture
def db_path():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    yield path
    path.unlink(missing_ok=True)
    Path(str(path) + ".wal").unlink(missing_ok=True)
    Path(tmp).rmdir()


@pytest.fixture
def temp_db(db_path):
    conn = get_connection(db_path)
    init_schema(conn)
    yield conn
    conn.close()


class FakeChainReader:
    """In-memory ChainReader: objects by id, event pages in order, optional failures."""

    def __init__(self, objects=None, pages=None, fail_objects=False, fail_page_at=None):
        self.objects: dict[str, ObjectSnapshot] = dict(objects or {})
        self.pages: list[EventPage] = list(pages or [])
        self.fail_objects = fail_objects
        self.fail_page_at = fail_page_at
        self.object_calls: list[str] = []
        self.event_calls: list[dict | None] = []

    async def get_object(self, object_id):
        self.object_calls.append(object_id)
        if self.fail_objects:
            raise TransientChainError("node unavailable")
        if object_id not in self.objects:
            raise TransientChainError(f"unknown object {object_id}")
        return self.objects[object_id]

    async def query_events(self, module_filter, cursor=None, ascending=True):
        self.event_calls.append(cursor)
        index = 0 if cursor is None else int(cursor["page"])
        if self.fail_page_at is not None and index == self.fail_page_at:
            raise TransientChainError("query_events failed")
        if index >= len(self.pages):
            return EventPage()
        return self.pages[index]

    async def get_gas_price(self):
        return 1000


@pytest.fixture
def fake_reader_cls():
    return FakeChainReader
