from __future__ import annotations
from typing import Optional

from app.schemas.outcome import DispatchRecord, PipelineOutcome


class FakeFetcher:
    def __init__(self, content: bytes = b"data", ok: bool = True):
        self.content = content
        self.ok = ok
        self.calls: list[str] = []

    async def fetch(self, url: str) -> tuple[bytes, bool]:
        self.calls.append(url)
        return (self.content, True) if self.ok else (b"", False)


class FakeArchiver:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.objects: dict[str, bytes] = {}
        self.calls: list[tuple[str, bytes]] = []

    async def store(self, key: str, content: bytes) -> bool:
        self.calls.append((key, content))
        if self.ok:
            self.objects[key] = content
        return self.ok


class FakeNotifier:
    def __init__(self, dispatch_id: str = "<msg-1@mg>", ok: bool = True):
        self.dispatch_id = dispatch_id
        self.ok = ok
        self.sent: list[tuple[str, PipelineOutcome, str, str]] = []

    async def send(self, recipient, outcome, submission_url, assignment_name):
        self.sent.append((recipient, outcome, submission_url, assignment_name))
        return (self.dispatch_id, True) if self.ok else ("", False)


class FakeRecorder:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.records: list[tuple[Optional[str], str, PipelineOutcome, str]] = []

    async def record(self, dispatch_id, recipient, outcome, timestamp) -> bool:
        self.records.append((dispatch_id, recipient, outcome, timestamp))
        return self.ok


class FakeDispatchRepo:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.rows: list[dict] = []

    async def insert_dispatch(self, record: DispatchRecord) -> None:
        if self.fail:
            raise ConnectionError("db non raggiungibile")
        self.rows.append(record.as_row())
