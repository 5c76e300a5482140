import asyncio
from datetime import datetime, timezone
from typing import List, Optional

import pytest

from budget_insights.db.records import RecordStoreAdapter
from budget_insights.db.store import MemoryRecordStore
from budget_insights.models.transaction import Transaction
from budget_insights.utils.reasoning import ChunkStream, ReasoningService, ReasoningSession, Turn


def make_tx(id, category, amount, occurred_at, owner_id="owner-1", title=None):
    return Transaction(
        id=id,
        owner_id=owner_id,
        title=title or f"{category} {id}",
        category=category,
        amount=amount,
        occurred_at=occurred_at,
    )


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class FakeStream(ChunkStream):
    def __init__(self, chunks: List[str], error: Optional[Exception] = None, hang: bool = False):
        self.chunks = list(chunks)
        self.error = error
        self.hang = hang
        self.cancelled = False

    async def next(self):
        if self.chunks:
            return self.chunks.pop(0)
        if self.hang:
            await asyncio.sleep(10)
        if self.error is not None:
            raise self.error
        return None

    async def cancel(self):
        self.cancelled = True


class FakeSession(ReasoningSession):
    def __init__(self, service):
        self.service = service

    async def send_message(self, text):
        self.service.messages.append(text)
        return self.service.next_stream()


class FakeReasoningService(ReasoningService):
    """Records every session it starts; hands out one stream per message."""

    def __init__(self, chunks=("Spend ", "less ", "on food."), error=None, hang=False):
        self.chunks = list(chunks)
        self.error = error
        self.hang = hang
        self.sessions = []
        self.messages = []
        self.streams = []

    def start_session(self, system_prompt: str, prior_turns: List[Turn]):
        self.sessions.append((system_prompt, prior_turns))
        return FakeSession(self)

    def next_stream(self):
        stream = FakeStream(self.chunks, error=self.error, hang=self.hang)
        self.streams.append(stream)
        return stream


@pytest.fixture
def store():
    return MemoryRecordStore()


@pytest.fixture
def records(store):
    return RecordStoreAdapter(store, tz=timezone.utc)
