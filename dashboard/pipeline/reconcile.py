"""
Reconciliation policy: per-move state machine and refetch merge.

Move lifecycle:
  Pending → Succeeded | Failed

While a move is pending its optimistic placement is what the board shows,
and no second move for the same client may start. Settling (either way)
drops the move from the in-flight map and fires one roster invalidation so
the next read comes from the data service. A failed move is rolled back
by that same refetch, never by reverting local state.
"""
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from .errors import MoveInFlight
from .moves import MoveRequest, clamp_index
from .partition import Partition, locate
from .schema import Client

logger = logging.getLogger(__name__)


class MoveState(Enum):
    """Lifecycle of one dispatched move."""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class PendingMove:
    """One dispatched move and where it optimistically put the client."""
    request: MoveRequest
    placement: Client
    state: MoveState = MoveState.PENDING
    error: str = ""
    settled_at: Optional[datetime] = None

    @property
    def client_id(self):
        return self.request.client_id

    @property
    def settled(self) -> bool:
        return self.state != MoveState.PENDING

    def settle(self, new_state: MoveState, error: str = "") -> bool:
        """Attempt the terminal transition. Returns True only the first time."""
        if self.settled or new_state == MoveState.PENDING:
            return False
        self.state = new_state
        self.error = error
        self.settled_at = datetime.now(timezone.utc)
        return True


@dataclass(frozen=True)
class MoveFailed:
    """Signal delivered to the operator when the data service rejects a move."""
    request: MoveRequest
    error: str

    @property
    def message(self) -> str:
        return f"Could not move client {self.request.client_id}: {self.error}"


class ReconciliationPolicy:
    """Tracks in-flight moves keyed by client id."""

    def __init__(self, on_invalidate: Optional[Callable[[], None]] = None, history_size: int = 100):
        self.on_invalidate = on_invalidate
        self.in_flight: Dict[object, PendingMove] = {}
        self.history = deque(maxlen=history_size)  # most recent settled moves

    def is_pending(self, client_id) -> bool:
        return client_id in self.in_flight

    def begin(self, request: MoveRequest, placement: Client) -> PendingMove:
        """Register a dispatched move. Raises MoveInFlight for a busy client."""
        if request.client_id in self.in_flight:
            raise MoveInFlight(f"Client {request.client_id} already has a move in flight")
        move = PendingMove(request=request, placement=placement)
        self.in_flight[request.client_id] = move
        return move

    def settle_success(self, move: PendingMove) -> bool:
        return self._settle(move, MoveState.SUCCEEDED)

    def settle_failure(self, move: PendingMove, error: str) -> Optional[MoveFailed]:
        if not self._settle(move, MoveState.FAILED, error):
            return None
        return MoveFailed(request=move.request, error=error)

    def _settle(self, move: PendingMove, state: MoveState, error: str = "") -> bool:
        if not move.settle(state, error):
            logger.debug(f"Move for client {move.client_id} already settled, ignoring")
            return False

        if self.in_flight.get(move.client_id) is move:
            del self.in_flight[move.client_id]
        self.history.append(move)

        logger.info(
            f"Move settled: client={move.client_id} "
            f"stage={move.request.target_stage.value} state={state.value}"
        )
        if self.on_invalidate:
            self.on_invalidate()
        return True

    def merge(self, fresh: Partition) -> Partition:
        """
        Lay pending optimistic placements over a freshly fetched partition.

        Pending clients are pulled out of wherever the fresh data has them
        and reinserted at their optimistic (stage, index), in dispatch order.
        """
        if not self.in_flight:
            return fresh

        result: Partition = {stage: list(column) for stage, column in fresh.items()}
        for move in self.in_flight.values():
            current = self._take(result, move.client_id)
            placement = move.placement
            if current is not None:
                placement = current.placed(placement.stage, placement.position)
            column = result.get(placement.stage)
            if column is None:
                continue
            column.insert(clamp_index(placement.position, len(column)), placement)
        return result

    @staticmethod
    def _take(partition: Partition, client_id) -> Optional[Client]:
        found = locate(partition, client_id)
        if found is None:
            return None
        stage, index = found
        return partition[stage].pop(index)

    def recent(self, limit: int = 20) -> List[PendingMove]:
        """Most recently settled moves, newest first."""
        return list(reversed(self.history))[:limit]
