"""
Tests for the stage registry and the roster partitioner.
"""
import random

import pytest

from dashboard.pipeline.partition import (
    partition_roster,
    stage_counts,
    locate,
    flatten,
    partition_to_dict,
)
from dashboard.pipeline.stages import StageId, STAGE_ORDER, STAGE_META, first_stage, stage_metadata

from conftest import make_client


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Stage registry
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_stage_order_is_board_layout():
    assert [s.value for s in STAGE_ORDER] == [
        "lead", "qualificacao", "negociacao", "pendente", "recusada", "finalizada",
    ]
    assert first_stage() == StageId.LEAD


@pytest.mark.parametrize(
    "value,expected",
    [
        ("lead", StageId.LEAD),
        ("QUALIFICACAO", StageId.QUALIFICACAO),
        (" negociacao ", StageId.NEGOCIACAO),
        (StageId.FINALIZADA, StageId.FINALIZADA),
        ("triagem", None),
        (None, None),
        (3, None),
    ],
)
def test_stage_from_str(value, expected):
    assert StageId.from_str(value) == expected


def test_every_stage_has_metadata():
    assert set(STAGE_META) == set(STAGE_ORDER)
    meta = stage_metadata()
    assert [m["id"] for m in meta] == [s.value for s in STAGE_ORDER]
    assert meta[0]["label"] == "Nova proposta"
    assert meta[0]["display_color"] == "bg-primary-light"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Partitioner
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_empty_roster_renders_every_stage():
    partition = partition_roster([])
    assert list(partition) == list(STAGE_ORDER)
    assert all(column == [] for column in partition.values())


def test_groups_by_stage_and_sorts_by_position():
    clients = [
        make_client(1, "lead", 2),
        make_client(2, "negociacao", 0),
        make_client(3, "lead", 0),
        make_client(4, "lead", 1),
    ]
    partition = partition_roster(clients)
    assert [c.id for c in partition[StageId.LEAD]] == [3, 4, 1]
    assert [c.id for c in partition[StageId.NEGOCIACAO]] == [2]


def test_ties_keep_input_order():
    clients = [make_client(i, "pendente", 5) for i in (9, 3, 7)]
    partition = partition_roster(clients)
    assert [c.id for c in partition[StageId.PENDENTE]] == [9, 3, 7]

    # Same result on every render
    assert partition_to_dict(partition_roster(clients)) == partition_to_dict(partition)


def test_unassigned_client_defaults_to_first_stage_at_zero():
    clients = [make_client(1, "lead", 1), make_client(2, stage=None)]
    partition = partition_roster(clients)
    assert [c.id for c in partition[StageId.LEAD]] == [2, 1]


def test_stage_outside_registry_falls_back_to_first_stage():
    registry = (StageId.QUALIFICACAO, StageId.FINALIZADA)
    clients = [make_client(1, "lead", 0), make_client(2, "finalizada", 0)]
    partition = partition_roster(clients, registry)
    assert list(partition) == list(registry)
    assert [c.id for c in partition[StageId.QUALIFICACAO]] == [1]


def test_partition_covers_every_client_exactly_once():
    rng = random.Random(42)
    stages = [s.value for s in STAGE_ORDER] + [None]
    clients = [
        make_client(i, rng.choice(stages), rng.randint(0, 5))
        for i in range(200)
    ]
    partition = partition_roster(clients)

    ids = [c.id for c in flatten(partition)]
    assert sorted(ids) == list(range(200))

    for column in partition.values():
        positions = [c.position for c in column]
        assert positions == sorted(positions)


def test_stage_counts_and_locate():
    partition = partition_roster([
        make_client(1, "lead", 0),
        make_client(2, "recusada", 0),
        make_client(3, "recusada", 1),
    ])
    counts = stage_counts(partition)
    assert counts[StageId.LEAD] == 1
    assert counts[StageId.RECUSADA] == 2
    assert counts[StageId.FINALIZADA] == 0

    assert locate(partition, 3) == (StageId.RECUSADA, 1)
    assert locate(partition, 99) is None
