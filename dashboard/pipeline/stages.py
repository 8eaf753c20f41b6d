"""
Pipeline stage registry.

Board layout (left to right):
  Lead → Qualificação → Negociação → Pendente → Recusada → Finalizada

The order of StageId members is the column order; it is independent of
the per-client position values used inside a column.
"""
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Dict, Tuple


class StageId(Enum):
    """Pipeline stages, in board order."""
    LEAD = "lead"                  # New proposal
    QUALIFICACAO = "qualificacao"  # Proposal in progress
    NEGOCIACAO = "negociacao"      # Under negotiation
    PENDENTE = "pendente"          # Waiting on the client
    RECUSADA = "recusada"          # Refused
    FINALIZADA = "finalizada"      # Closed

    @classmethod
    def from_str(cls, value) -> Optional["StageId"]:
        """Parse a stage key. Returns None for anything not in the registry."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class StageMeta:
    """Presentation-only metadata for one column."""
    label: str
    display_color: str


STAGE_ORDER: Tuple[StageId, ...] = tuple(StageId)

STAGE_META: Dict[StageId, StageMeta] = {
    StageId.LEAD: StageMeta("Nova proposta", "bg-primary-light"),
    StageId.QUALIFICACAO: StageMeta("Proposta em andamento", "bg-secondary-light"),
    StageId.NEGOCIACAO: StageMeta("Proposta em negociação", "bg-warning-light"),
    StageId.PENDENTE: StageMeta("Proposta pendente", "bg-info-light"),
    StageId.RECUSADA: StageMeta("Proposta recusada", "bg-error-light"),
    StageId.FINALIZADA: StageMeta("Proposta finalizada", "bg-success-light"),
}


def first_stage(registry: Tuple[StageId, ...] = STAGE_ORDER) -> StageId:
    """Stage that unassigned clients fall into."""
    return registry[0]


def stage_metadata(registry: Tuple[StageId, ...] = STAGE_ORDER) -> list:
    """Column descriptors for the rendering layer, in board order."""
    return [
        {
            "id": stage.value,
            "label": STAGE_META[stage].label,
            "display_color": STAGE_META[stage].display_color,
        }
        for stage in registry
    ]
