"""Shared test fixtures for pipeline board tests."""

import asyncio
import sys
from pathlib import Path

import pytest

# Ensure the repository root (dashboard/, board_server.py) is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from dashboard.pipeline.errors import RemoteError
from dashboard.pipeline.remote import RosterSource
from dashboard.pipeline.schema import Client, StageAssignment
from dashboard.pipeline.stages import StageId
from dashboard.pipeline.store import ClientStore


def make_client(client_id, stage="lead", position=0, name=None):
    """Client with a stage assignment (stage=None for an unplaced client)."""
    assignment = None
    if stage is not None:
        assignment = StageAssignment(stage=StageId(stage), position=position)
    return Client(id=client_id, name=name or f"Client {client_id}", assignment=assignment)


class FakeRosterSource(RosterSource):
    """
    In-memory data service.

    update_stage() renumbers columns densely like the real store. Set
    `fail` to make updates raise, or `gate` (an asyncio.Event) to hold
    updates until the test releases them.
    """

    def __init__(self, clients=None):
        self.clients = list(clients or [])
        self.updates = []
        self.fetches = 0
        self.fail = None
        self.fail_fetch = None
        self.gate = None

    async def fetch_clients(self):
        self.fetches += 1
        if self.fail_fetch:
            raise self.fail_fetch
        return list(self.clients)

    async def update_stage(self, client_id, stage, position=None):
        self.updates.append((client_id, stage, position))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise self.fail

        by_id = {c.id: c for c in self.clients}
        if client_id not in by_id:
            raise RemoteError(f"Client {client_id} not found", status=404)

        columns = {}
        for c in sorted(self.clients, key=lambda c: c.position):
            if c.id != client_id:
                columns.setdefault(c.stage or StageId.LEAD, []).append(c)
        target = columns.setdefault(stage, [])
        index = len(target) if position is None else max(0, min(position, len(target)))
        target.insert(index, by_id[client_id])

        self.clients = [
            c.placed(s, pos)
            for s, column in columns.items()
            for pos, c in enumerate(column)
        ]


@pytest.fixture
def fake_source():
    return FakeRosterSource([
        make_client(1, "lead", 0),
        make_client(2, "lead", 1),
    ])


@pytest.fixture
def store(tmp_path):
    return ClientStore(str(tmp_path / "pipeline.db"))


def run(coro):
    """Drive a coroutine to completion from a sync test."""
    return asyncio.run(coro)
