"""In-process test doubles for the remote server and view."""

import asyncio
from dataclasses import replace
from typing import List, Optional, Tuple

from quotesync.api_clients import BaseRemoteClient, APIConnectionError
from quotesync.core import QuoteView
from quotesync.store import Record, RecordOrigin


def remote(text: str, category: str) -> Record:
    return Record(text=text, category=category, origin=RecordOrigin.REMOTE)


class FakeRemoteClient(BaseRemoteClient):
    """Remote client serving a fixed list of quotes.

    Set ``gate`` to an ``asyncio.Event`` to hold fetches until it is set.
    """

    def __init__(self, records: Optional[List[Record]] = None, fail: bool = False, accept: bool = True):
        super().__init__("http://remote.test", timeout_seconds=1.0)
        self.records = list(records or [])
        self.fail = fail
        self.accept = accept
        self.gate: Optional[asyncio.Event] = None
        self.fetch_calls = 0
        self.created: List[Record] = []
        self.closed = False

    async def _fetch_records(self) -> List[Record]:
        self.fetch_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise APIConnectionError("Network error: connection refused")
        return [replace(r) for r in self.records]

    async def _create_record(self, record: Record) -> None:
        self.created.append(record)
        if not self.accept:
            raise APIConnectionError("HTTP error! status: 500")

    async def close(self) -> None:
        self.closed = True


class RecordingView(QuoteView):
    """View that remembers what it was asked to render."""

    def __init__(self):
        self.quotes: List[Record] = []
        self.messages: List[str] = []
        self.category_renders: List[Tuple[List[str], str]] = []

    def render_quote(self, record: Record) -> None:
        self.quotes.append(record)

    def render_message(self, message: str) -> None:
        self.messages.append(message)

    def render_categories(self, categories: List[str], selected: str) -> None:
        self.category_renders.append((list(categories), selected))
