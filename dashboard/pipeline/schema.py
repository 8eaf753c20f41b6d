"""
Client roster schema.

A Client row comes from the data service with an optional board entry:

    {"id": 7, "name": "...", "organization": "...",
     "kanban": {"column": "lead", "position": 3}}

Flat "stage"/"position" keys are accepted as well. A missing or unknown
column means the client has no stage assignment; the partitioner places
such clients in the first stage.
"""
from dataclasses import dataclass, replace
from typing import Optional, Dict, Any

from .stages import StageId


@dataclass(frozen=True)
class StageAssignment:
    """Which column a client sits in, and its order inside that column."""
    stage: StageId
    position: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"column": self.stage.value, "position": self.position}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["StageAssignment"]:
        if not data:
            return None
        stage = StageId.from_str(data.get("column") or data.get("stage"))
        if stage is None:
            return None
        return cls(stage=stage, position=_as_position(data.get("position")))


def _as_position(value) -> int:
    try:
        position = int(value)
    except (TypeError, ValueError):
        return 0
    return max(position, 0)


@dataclass(frozen=True)
class Client:
    """One client on the pipeline board."""

    id: int
    name: str
    organization: str = ""

    # Board placement (None = never placed)
    assignment: Optional[StageAssignment] = None

    # Descriptive fields shown on the card
    email: str = ""
    phone: str = ""
    company: str = ""
    proposal_count: int = 0
    total_value: Optional[str] = None

    @property
    def stage(self) -> Optional[StageId]:
        return self.assignment.stage if self.assignment else None

    @property
    def position(self) -> int:
        return self.assignment.position if self.assignment else 0

    def placed(self, stage: StageId, position: int) -> "Client":
        """Copy of this client with a new stage assignment."""
        return replace(self, assignment=StageAssignment(stage=stage, position=position))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "organization": self.organization,
            "kanban": self.assignment.to_dict() if self.assignment else None,
            "email": self.email,
            "phone": self.phone,
            "company": self.company,
            "proposal_count": self.proposal_count,
            "total_value": self.total_value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Client":
        """Build a client from a data-service row (snake_case or camelCase keys)."""
        kanban = data.get("kanban")
        if kanban is None and ("stage" in data or "column" in data):
            kanban = {
                "column": data.get("stage") or data.get("column"),
                "position": data.get("position"),
            }

        organization = data.get("organization")
        if organization is None:
            organization = data.get("organization_id", data.get("organizationId"))

        return cls(
            id=data["id"],
            name=data.get("name", ""),
            organization="" if organization is None else str(organization),
            assignment=StageAssignment.from_dict(kanban),
            email=data.get("email") or "",
            phone=data.get("phone") or "",
            company=data.get("company") or "",
            proposal_count=int(data.get("proposal_count", data.get("proposalCount", 0)) or 0),
            total_value=data.get("total_value", data.get("totalValue")),
        )
