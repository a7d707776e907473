from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class NodeKind(str, Enum):
    DECISION = "decision"
    LEAF = "leaf"


class Complexity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass
class Position:
    x: float
    y: float


@dataclass
class WorkUnit:
    id: str
    name: str
    team_id: str
    hours: int  # non-negative


@dataclass
class Answer:
    text: str
    target_id: Optional[str] = None       # outgoing edge, id of a node in the same tree
    work_unit_id: Optional[str] = None


@dataclass
class TreeNode:
    id: str
    kind: NodeKind = NodeKind.DECISION
    content: str = ""
    position: Optional[Position] = None
    answers: List[Answer] = field(default_factory=list)

    @property
    def is_decision(self) -> bool:
        return self.kind == NodeKind.DECISION


@dataclass
class TemplateDetails:
    name: str
    description: str = ""
    complexity: Complexity = Complexity.MEDIUM
    estimated_duration: str = ""


@dataclass
class Template:
    id: Optional[str]
    details: TemplateDetails
    nodes: List[TreeNode] = field(default_factory=list)
    # Work units referenced by answers in this template, keyed by Answer.work_unit_id
    work_units: Dict[str, WorkUnit] = field(default_factory=dict)

    @property
    def teams(self) -> List[str]:
        """Participating teams, derived from the work units the answers reference."""
        teams = set()
        for node in self.nodes:
            for answer in node.answers:
                unit = self.work_units.get(answer.work_unit_id) if answer.work_unit_id else None
                if unit:
                    teams.add(unit.team_id)
        return sorted(teams)


@dataclass(frozen=True)
class CompletedIntake:
    id: str
    template_id: str
    answers: Dict[str, str]
    created_at: datetime
