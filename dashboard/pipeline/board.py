"""
Board controller: the pipeline board as seen by the rendering layer.

Exposes the current partition, per-stage counts and stage metadata, and a
move_client() entry point for drag gestures. Everything runs on one asyncio
loop; the partition is replaced wholesale on every change.

Notifications (subscribe by name):
    move_succeeded   request=MoveRequest
    move_failed      failure=MoveFailed
    board_refreshed  partition=Partition
"""
import asyncio
import logging
from typing import Callable, Dict, List, Optional, Tuple

from .errors import InvalidTarget, ClientNotFound, MoveInFlight
from .moves import MoveRequest, plan_move, resolve_target
from .partition import Partition, partition_roster, stage_counts
from .reconcile import ReconciliationPolicy, PendingMove
from .remote import RosterSource, RosterCache
from .schema import Client
from .stages import StageId, STAGE_ORDER, stage_metadata

logger = logging.getLogger(__name__)


class BoardController:
    """Composes partitioning, move dispatch and reconciliation."""

    def __init__(
        self,
        source: RosterSource,
        cache: Optional[RosterCache] = None,
        registry: Tuple[StageId, ...] = STAGE_ORDER,
    ):
        self.source = source
        self.cache = cache or RosterCache(source)
        self.registry = registry
        self.reconciler = ReconciliationPolicy(on_invalidate=self.cache.invalidate)
        self.subscribers: Dict[str, list] = {}  # event name -> callbacks

        self._partition: Partition = partition_roster([], registry)
        self._last_roster: List[Client] = []
        self._tasks: set = set()
        self._refresh_seq = 0
        self._applied_seq = 0

    # ── Rendering boundary ──

    def get_partition(self) -> Partition:
        return self._partition

    def stage_counts(self) -> Dict[StageId, int]:
        return stage_counts(self._partition)

    def stage_metadata(self) -> list:
        return stage_metadata(self.registry)

    # ── Notifications ──

    def subscribe(self, event: str, callback: Callable) -> None:
        """Register a callback for a board notification."""
        self.subscribers.setdefault(event, []).append(callback)

    def _emit(self, event: str, **kwargs) -> None:
        for callback in self.subscribers.get(event, []):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {event} callback: {e}")

    # ── Reads ──

    async def refresh(self, force: bool = False) -> Partition:
        """
        Rebuild the partition from the roster source.

        force=True drops the cached roster first. Placements of clients with
        unsettled moves survive the refresh. A fetch overtaken by an
        invalidation is repeated, and a refresh overtaken by a newer one
        that already landed is discarded.
        """
        self._refresh_seq += 1
        seq = self._refresh_seq
        if force:
            self.cache.invalidate()

        while True:
            generation = self.cache.generation
            clients = await self.cache.get()
            if generation == self.cache.generation:
                break
            logger.debug("Roster invalidated during refresh, fetching again")

        if seq < self._applied_seq:
            logger.debug(f"Refresh {seq} superseded by {self._applied_seq}, discarding")
            return self._partition

        self._applied_seq = seq
        self._last_roster = clients
        self._partition = self.reconciler.merge(partition_roster(clients, self.registry))
        self._emit("board_refreshed", partition=self._partition)
        return self._partition

    # ── Writes ──

    def move_client(self, client_id, target_stage, target_position: Optional[int] = None) -> Optional[asyncio.Task]:
        """
        Apply a move optimistically and dispatch it to the roster source.

        Must be called from the event loop. Returns the task that settles
        the move, or None when the gesture was dropped locally (unknown
        stage, unknown client, client already moving).
        """
        try:
            stage = resolve_target(self._partition, target_stage)
            if self.reconciler.is_pending(client_id):
                raise MoveInFlight(f"Client {client_id} already has a move in flight")
            request = MoveRequest(client_id=client_id, target_stage=stage, target_position=target_position)
            partition, moved = plan_move(self._partition, request)
            move = self.reconciler.begin(request, moved)
        except InvalidTarget as e:
            logger.warning(f"Move dropped: {e}")
            return None
        except (ClientNotFound, MoveInFlight) as e:
            logger.info(f"Move dropped: {e}")
            return None

        self._partition = partition
        task = asyncio.get_running_loop().create_task(self._dispatch(move))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _dispatch(self, move: PendingMove) -> None:
        request = move.request
        try:
            await self.source.update_stage(
                request.client_id, request.target_stage, move.placement.position
            )
        except Exception as e:
            failure = self.reconciler.settle_failure(move, str(e))
            if failure is None:
                return
            logger.warning(failure.message)
            await self._reconcile(rollback=True)
            self._emit("move_failed", failure=failure)
            return

        if self.reconciler.settle_success(move):
            self._record_settled(move.placement)
            await self._reconcile(rollback=False)
            self._emit("move_succeeded", request=request)

    def _record_settled(self, placement: Client) -> None:
        """Fold an accepted move into the last authoritative roster."""
        roster = [c for c in self._last_roster if c.id != placement.id]
        roster.append(placement)
        self._last_roster = roster

    async def _reconcile(self, rollback: bool) -> None:
        try:
            await self.refresh()
        except Exception as e:
            logger.error(f"Refetch after move failed: {e}")
            if rollback:
                # Authoritative data is unchanged; rebuild from the last copy we have
                self._partition = self.reconciler.merge(
                    partition_roster(self._last_roster, self.registry)
                )

    async def wait_idle(self) -> None:
        """Wait until every dispatched move has settled and reconciled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
