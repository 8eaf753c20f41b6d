"""
Roster partitioner: groups a flat client list into per-stage ordered lists.

The partition is always derived, never stored. Every registry stage gets a
list (empty columns still render), every client lands in exactly one list,
and each list is sorted by position with a stable sort so that clients
sharing a position keep their input order.
"""
from typing import Dict, List, Iterable, Optional, Tuple

from .schema import Client
from .stages import StageId, STAGE_ORDER, first_stage

Partition = Dict[StageId, List[Client]]


def partition_roster(
    clients: Iterable[Client],
    registry: Tuple[StageId, ...] = STAGE_ORDER,
) -> Partition:
    """Group clients by effective stage and order each group by position."""
    result: Partition = {stage: [] for stage in registry}
    default = first_stage(registry)

    for client in clients:
        stage = client.stage if client.stage in result else default
        result[stage].append(client)

    for stage in registry:
        # list.sort is stable: ties keep their relative input order
        result[stage].sort(key=lambda c: c.position)

    return result


def stage_counts(partition: Partition) -> Dict[StageId, int]:
    """Number of clients per column."""
    return {stage: len(column) for stage, column in partition.items()}


def locate(partition: Partition, client_id) -> Optional[Tuple[StageId, int]]:
    """Return (stage, index) of a client in the partition, or None."""
    for stage, column in partition.items():
        for index, client in enumerate(column):
            if client.id == client_id:
                return stage, index
    return None


def flatten(partition: Partition) -> List[Client]:
    """All clients of a partition, column by column."""
    return [client for column in partition.values() for client in column]


def partition_to_dict(partition: Partition) -> Dict[str, list]:
    """JSON-friendly view: stage key -> list of client ids."""
    return {stage.value: [c.id for c in column] for stage, column in partition.items()}
