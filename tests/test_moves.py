"""
Tests for the move operation (optimistic partition computation).
"""
import pytest

from dashboard.pipeline.errors import InvalidTarget, ClientNotFound
from dashboard.pipeline.moves import MoveRequest, plan_move, clamp_index, resolve_target
from dashboard.pipeline.partition import partition_roster, partition_to_dict
from dashboard.pipeline.stages import StageId

from conftest import make_client


@pytest.fixture
def partition():
    return partition_roster([
        make_client(1, "lead", 0),
        make_client(2, "lead", 1),
        make_client(3, "qualificacao", 0),
        make_client(4, "qualificacao", 1),
    ])


def test_clamp_index():
    assert clamp_index(None, 3) == 3
    assert clamp_index(-5, 3) == 0
    assert clamp_index(1, 3) == 1
    assert clamp_index(10, 3) == 3


def test_move_to_other_stage_at_index(partition):
    result, moved = plan_move(partition, MoveRequest(2, StageId.QUALIFICACAO, 1))
    assert partition_to_dict(result)["lead"] == [1]
    assert partition_to_dict(result)["qualificacao"] == [3, 2, 4]
    assert moved.stage == StageId.QUALIFICACAO
    assert moved.position == 1


def test_move_without_position_appends(partition):
    result, moved = plan_move(partition, MoveRequest(1, StageId.QUALIFICACAO))
    assert partition_to_dict(result)["qualificacao"] == [3, 4, 1]
    assert moved.position == 2


def test_position_is_clamped(partition):
    result, _ = plan_move(partition, MoveRequest(1, StageId.QUALIFICACAO, 99))
    assert partition_to_dict(result)["qualificacao"] == [3, 4, 1]

    result, moved = plan_move(partition, MoveRequest(4, StageId.LEAD, -3))
    assert partition_to_dict(result)["lead"] == [4, 1, 2]
    assert moved.position == 0


def test_reorder_within_stage(partition):
    result, _ = plan_move(partition, MoveRequest(2, StageId.LEAD, 0))
    assert partition_to_dict(result)["lead"] == [2, 1]


def test_same_stage_same_index_is_legal(partition):
    result, moved = plan_move(partition, MoveRequest(1, StageId.LEAD, 0))
    assert partition_to_dict(result) == partition_to_dict(partition)
    assert moved.position == 0


def test_source_partition_untouched(partition):
    before = partition_to_dict(partition)
    plan_move(partition, MoveRequest(1, StageId.FINALIZADA, 0))
    assert partition_to_dict(partition) == before
    assert partition[StageId.LEAD][0].stage == StageId.LEAD


def test_only_moved_client_is_rewritten(partition):
    result, _ = plan_move(partition, MoveRequest(1, StageId.QUALIFICACAO, 0))
    # Clients after the insertion point keep their stored positions
    assert [c.position for c in result[StageId.QUALIFICACAO]] == [0, 0, 1]


def test_target_stage_accepts_string(partition):
    assert resolve_target(partition, "pendente") == StageId.PENDENTE


def test_invalid_target_rejected(partition):
    with pytest.raises(InvalidTarget):
        resolve_target(partition, "arquivada")


def test_invalid_target_outside_registry():
    partition = partition_roster([make_client(1, "lead", 0)], (StageId.LEAD,))
    with pytest.raises(InvalidTarget):
        plan_move(partition, MoveRequest(1, StageId.FINALIZADA, 0))


def test_unknown_client_rejected(partition):
    with pytest.raises(ClientNotFound):
        plan_move(partition, MoveRequest(99, StageId.LEAD, 0))
