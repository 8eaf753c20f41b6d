"""
Move operation: relocates one client to a (stage, index) pair.

plan_move() only computes the optimistic partition. Only the moved
client's assignment is rewritten; clients after the insertion point are
reordered by list index alone, since the data service renumbers positions
on its side.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import InvalidTarget, ClientNotFound
from .partition import Partition, locate
from .schema import Client
from .stages import StageId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoveRequest:
    """A transition request. Never persisted."""
    client_id: int
    target_stage: StageId
    target_position: Optional[int] = None


def resolve_target(partition: Partition, target_stage) -> StageId:
    """Validate a target stage against the partition's registry."""
    stage = StageId.from_str(target_stage)
    if stage is None or stage not in partition:
        raise InvalidTarget(f"Unknown stage: {target_stage!r}")
    return stage


def clamp_index(target_position: Optional[int], length: int) -> int:
    """Insertion index in [0, length]; None means append."""
    if target_position is None:
        return length
    return max(0, min(int(target_position), length))


def plan_move(partition: Partition, request: MoveRequest) -> Tuple[Partition, Client]:
    """
    Compute the optimistic partition for a move.

    Returns:
        (new partition, moved client with its new assignment)

    Raises:
        InvalidTarget: target stage not in the registry
        ClientNotFound: client not present in the partition
    """
    target = resolve_target(partition, request.target_stage)

    found = locate(partition, request.client_id)
    if found is None:
        raise ClientNotFound(f"Client {request.client_id} is not on the board")
    source, index = found

    # New lists for every column; the caller's partition stays untouched
    result: Partition = {stage: list(column) for stage, column in partition.items()}
    client = result[source].pop(index)

    destination = result[target]
    insert_at = clamp_index(request.target_position, len(destination))
    moved = client.placed(target, insert_at)
    destination.insert(insert_at, moved)

    logger.debug(
        f"Planned move of client {client.id}: "
        f"{source.value}[{index}] -> {target.value}[{insert_at}]"
    )
    return result, moved
