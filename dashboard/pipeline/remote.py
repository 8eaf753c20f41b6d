"""
Roster sources: where the board reads clients from and writes moves to.

RosterSource is the async contract the board controller depends on:
    fetch_clients()                          -> list[Client]
    update_stage(client_id, stage, position) -> None, raises RemoteError

Two implementations:
    RestRosterSource  - the dashboard data service over HTTP (requests)
    StoreRosterSource - a local ClientStore (SQLite)

Blocking I/O runs in a worker thread so the event loop keeps rendering.
"""
import asyncio
import logging
from typing import List, Optional

import requests

from .errors import RemoteError
from .schema import Client
from .stages import StageId
from .store import ClientStore

logger = logging.getLogger(__name__)


class RosterSource:
    """Async client-fetch and stage-update contract."""

    async def fetch_clients(self) -> List[Client]:
        raise NotImplementedError

    async def update_stage(self, client_id, stage: StageId, position: Optional[int] = None) -> None:
        raise NotImplementedError


# ── HTTP ─────────────────────────────────────────────────────────────────────


class RestRosterSource(RosterSource):
    """Talks to the board data service (see board_server.py)."""

    def __init__(self, base_url: str, api_key: str = "", timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg, session: Optional[requests.Session] = None) -> "RestRosterSource":
        """Build from a dashboard Config (api_url, api_secret, request_timeout)."""
        return cls(cfg.api_url, api_key=cfg.api_secret, timeout=float(cfg.request_timeout), session=session)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def _request(self, method: str, path: str, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise RemoteError(f"Network error calling {url}: {e}") from e

        if not r.ok:
            try:
                detail = r.json().get("error") or r.text
            except ValueError:
                detail = r.text
            raise RemoteError(f"{method} {path} failed ({r.status_code}): {detail}", status=r.status_code)

        try:
            return r.json()
        except ValueError as e:
            raise RemoteError(f"{method} {path} returned invalid JSON") from e

    def _fetch_rows(self) -> list:
        data = self._request("GET", "/api/clients-with-kanban")
        if isinstance(data, dict):
            data = data.get("clients", [])
        return data or []

    async def fetch_clients(self) -> List[Client]:
        rows = await asyncio.to_thread(self._fetch_rows)
        return [Client.from_dict(row) for row in rows]

    async def update_stage(self, client_id, stage: StageId, position: Optional[int] = None) -> None:
        body = {"column": stage.value}
        if position is not None:
            body["position"] = position
        await asyncio.to_thread(
            self._request, "PUT", f"/api/kanban/client/{client_id}/column", json=body
        )


# ── Local store ──────────────────────────────────────────────────────────────


class StoreRosterSource(RosterSource):
    """Adapts a ClientStore to the async roster contract."""

    def __init__(self, store: ClientStore):
        self.store = store

    async def fetch_clients(self) -> List[Client]:
        rows = await asyncio.to_thread(self.store.list_clients_with_kanban)
        return [Client.from_dict(row) for row in rows]

    async def update_stage(self, client_id, stage: StageId, position: Optional[int] = None) -> None:
        entry = await asyncio.to_thread(self.store.update_client_stage, client_id, stage, position)
        if entry is None:
            raise RemoteError(f"Client {client_id} not found", status=404)


# ── Cache ────────────────────────────────────────────────────────────────────


class RosterCache:
    """
    Memoizes the last fetched roster.

    invalidate() is the signal the controller sends after a move settles;
    the next get() then goes back to the source. A fetch that was already
    running when invalidate() fired is returned but not cached.
    """

    def __init__(self, source: RosterSource):
        self.source = source
        self._clients: Optional[List[Client]] = None
        self._generation = 0
        self.invalidations = 0

    @property
    def generation(self) -> int:
        """Bumped on every invalidate()."""
        return self._generation

    @property
    def stale(self) -> bool:
        return self._clients is None

    def invalidate(self) -> None:
        self._clients = None
        self._generation += 1
        self.invalidations += 1

    async def get(self) -> List[Client]:
        if self._clients is not None:
            return list(self._clients)
        generation = self._generation
        clients = await self.source.fetch_clients()
        if generation == self._generation:
            self._clients = list(clients)
        else:
            logger.debug("Roster invalidated during fetch, not caching result")
        return list(clients)
