"""
Conversion between HTTP schemas and the tree domain types.

Deterministic: node order and answer order are preserved in both directions.
"""

from typing import Dict, Iterable, List, Mapping, Optional

from app.estimation.aggregate import EstimateSummary
from app.schemas import (
    AnswerModel,
    EstimateResponse,
    NodeModel,
    PositionModel,
    TemplateRequest,
    TemplateResponse,
    WorkUnitModel,
)
from app.tree.types import (
    Answer,
    Complexity,
    NodeKind,
    Position,
    Template,
    TemplateDetails,
    TreeNode,
    WorkUnit,
)


def node_from_model(model: NodeModel) -> TreeNode:
    return TreeNode(
        id=model.id,
        kind=NodeKind(model.kind),
        content=model.content,
        position=Position(x=model.position.x, y=model.position.y) if model.position else None,
        answers=[
            Answer(text=a.text, target_id=a.target_id, work_unit_id=a.work_unit_id)
            for a in model.answers
        ],
    )


def nodes_from_models(models: Iterable[NodeModel]) -> List[TreeNode]:
    return [node_from_model(m) for m in models]


def node_to_model(node: TreeNode) -> NodeModel:
    return NodeModel(
        id=node.id,
        kind=node.kind.value,
        content=node.content,
        position=PositionModel(x=node.position.x, y=node.position.y) if node.position else None,
        answers=[
            AnswerModel(text=a.text, target_id=a.target_id, work_unit_id=a.work_unit_id)
            for a in node.answers
        ],
    )


def nodes_to_models(nodes: Iterable[TreeNode]) -> List[NodeModel]:
    return [node_to_model(n) for n in nodes]


def work_unit_from_model(model: WorkUnitModel) -> WorkUnit:
    return WorkUnit(id=model.id, name=model.name, team_id=model.team_id, hours=model.hours)


def work_units_from_models(models: Mapping[str, WorkUnitModel]) -> Dict[str, WorkUnit]:
    return {key: work_unit_from_model(m) for key, m in models.items()}


def work_unit_to_model(unit: WorkUnit) -> WorkUnitModel:
    return WorkUnitModel(id=unit.id, name=unit.name, team_id=unit.team_id, hours=unit.hours)


def details_from_request(request: TemplateRequest) -> TemplateDetails:
    return TemplateDetails(
        name=request.name,
        description=request.description,
        complexity=Complexity(request.complexity),
        estimated_duration=request.estimated_duration,
    )


def template_to_request(template: Template) -> TemplateRequest:
    details = template.details
    return TemplateRequest(
        name=details.name,
        description=details.description,
        complexity=details.complexity.value,
        estimated_duration=details.estimated_duration,
        nodes=nodes_to_models(template.nodes),
    )


def template_to_response(
    template: Template,
    is_entry_point: bool = False,
    created_at=None,
    updated_at=None,
) -> TemplateResponse:
    details = template.details
    return TemplateResponse(
        id=template.id,
        name=details.name,
        description=details.description,
        complexity=details.complexity.value,
        estimated_duration=details.estimated_duration,
        teams=template.teams,
        is_entry_point=is_entry_point,
        created_at=created_at,
        updated_at=updated_at,
        nodes=nodes_to_models(template.nodes),
        work_units={key: work_unit_to_model(u) for key, u in template.work_units.items()},
    )


def template_from_response(response: TemplateResponse) -> Template:
    return Template(
        id=response.id,
        details=TemplateDetails(
            name=response.name,
            description=response.description,
            complexity=Complexity(response.complexity),
            estimated_duration=response.estimated_duration,
        ),
        nodes=nodes_from_models(response.nodes),
        work_units=work_units_from_models(response.work_units),
    )


def estimate_to_response(summary: Optional[EstimateSummary]) -> EstimateResponse:
    if summary is None:
        return EstimateResponse()
    return EstimateResponse.model_validate(summary.to_dict())
