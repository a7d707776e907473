"""
Hour aggregation for completed questionnaires.

Only nodes answered with the literal "Yes" contribute: the work units on that
node's "Yes" answer are added to their team's running total. A work unit on
any other answer contributes nothing, even when that answer was chosen.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

from app.tree.types import TreeNode, WorkUnit

YES_ANSWER = "Yes"


@dataclass
class EstimateItem:
    node_id: str
    question: str
    work_unit_id: str
    name: str
    hours: int

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "question": self.question,
            "work_unit_id": self.work_unit_id,
            "name": self.name,
            "hours": self.hours,
        }


@dataclass
class TeamEstimate:
    team_id: str
    total_hours: int = 0
    items: List[EstimateItem] = field(default_factory=list)

    def add(self, item: EstimateItem) -> None:
        self.items.append(item)
        self.total_hours += item.hours

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "total_hours": self.total_hours,
            "items": [i.to_dict() for i in self.items],
        }


@dataclass
class EstimateSummary:
    teams: Dict[str, TeamEstimate] = field(default_factory=dict)

    @property
    def total_hours(self) -> int:
        return sum(t.total_hours for t in self.teams.values())

    def to_dict(self) -> dict:
        return {
            "teams": {team_id: t.to_dict() for team_id, t in sorted(self.teams.items())},
            "total_hours": self.total_hours,
        }


def aggregate_hours(
    nodes: Iterable[TreeNode],
    answers: Mapping[str, str],
    work_units: Mapping[str, WorkUnit],
) -> EstimateSummary:
    summary = EstimateSummary()

    for node in nodes:
        if answers.get(node.id) != YES_ANSWER:
            continue

        for answer in node.answers:
            if answer.text != YES_ANSWER or not answer.work_unit_id:
                continue
            unit = work_units.get(answer.work_unit_id)
            if unit is None:
                continue

            team = summary.teams.setdefault(unit.team_id, TeamEstimate(team_id=unit.team_id))
            team.add(EstimateItem(
                node_id=node.id,
                question=node.content,
                work_unit_id=unit.id,
                name=unit.name,
                hours=unit.hours,
            ))
            break

    return summary


def assigned_work_units_by_team(
    nodes: Iterable[TreeNode],
    work_units: Mapping[str, WorkUnit],
) -> EstimateSummary:
    """Every work unit assigned anywhere in the tree, grouped by team (editor side panel)."""
    summary = EstimateSummary()
    for node in nodes:
        for answer in node.answers:
            unit = work_units.get(answer.work_unit_id) if answer.work_unit_id else None
            if unit is None:
                continue
            team = summary.teams.setdefault(unit.team_id, TeamEstimate(team_id=unit.team_id))
            team.add(EstimateItem(
                node_id=node.id,
                question=node.content,
                work_unit_id=unit.id,
                name=unit.name,
                hours=unit.hours,
            ))
    return summary
