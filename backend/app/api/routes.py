from typing import List

from fastapi import APIRouter, Depends, Request, Response

from app.api.serializers import (
    details_from_request,
    estimate_to_response,
    nodes_from_models,
    nodes_to_models,
    template_to_response,
    work_unit_to_model,
    work_units_from_models,
)
from app.errors import NotFoundError
from app.estimation.aggregate import aggregate_hours
from app.estimation.walk import presentation_order, walk_path
from app.renderer.svg_renderer import render_tree_svg
from app.renderer.viewport import Viewport
from app.repository.template_store import TemplateStore
from app.schemas import (
    CanvasRequest,
    EntryPointCreate,
    EntryPointModel,
    EntryPointToggleResponse,
    EstimateRequest,
    EstimateResponse,
    IntakeCreatedResponse,
    IntakeRequest,
    IntakeResponse,
    LayoutRequest,
    LayoutResponse,
    SaveTemplateResponse,
    TeamModel,
    TemplateRequest,
    TemplateResponse,
    TemplateSummary,
    WalkRequest,
    WalkResponse,
    WorkUnitCreate,
    WorkUnitModel,
)
from app.tree.layout import apply_layout
from app.tree.model import DecisionTree
from app.tree.types import NodeKind
from app.validation.tree_validator import validate_template

router = APIRouter(prefix="/api")


def get_store(request: Request) -> TemplateStore:
    return request.app.state.store


def _summary(template, row) -> TemplateSummary:
    details = template.details
    return TemplateSummary(
        id=template.id,
        name=details.name,
        description=details.description,
        complexity=details.complexity.value,
        estimated_duration=details.estimated_duration,
        teams=template.teams,
        is_entry_point=row.is_entry_point,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.get("/health")
def health(store: TemplateStore = Depends(get_store)):
    return {"status": "ok", "database": "ready" if store.ready else "unavailable"}


# ============================================================
# TEMPLATES
# ============================================================

@router.get("/templates", response_model=List[TemplateSummary])
def list_templates(store: TemplateStore = Depends(get_store)):
    """Active templates with the teams their work units belong to"""
    return [_summary(template, row) for template, row in store.list_templates()]


@router.post("/templates", response_model=SaveTemplateResponse)
def create_template(request: TemplateRequest, store: TemplateStore = Depends(get_store)):
    template_id = store.create_template(details_from_request(request), nodes_from_models(request.nodes))
    return SaveTemplateResponse(success=True, template_id=template_id)


@router.post("/templates/validate")
def validate_template_request(request: TemplateRequest):
    """Run the structural checks without saving."""
    result = validate_template(details_from_request(request), nodes_from_models(request.nodes))
    return {
        "status": "success" if result.is_valid else "invalid",
        "summary": result.get_summary(),
        **result.to_dict(),
    }


@router.post("/templates/layout", response_model=LayoutResponse)
def layout_template(request: LayoutRequest):
    """Auto-position a posted node list (server-side reorganize)."""
    tree = apply_layout(DecisionTree.from_nodes(nodes_from_models(request.nodes)))
    return LayoutResponse(nodes=nodes_to_models(tree))


@router.post("/templates/canvas.svg")
def render_canvas(request: CanvasRequest):
    tree = DecisionTree.from_nodes(nodes_from_models(request.nodes))
    if request.reorganize:
        apply_layout(tree)
    viewport = Viewport(zoom=request.zoom, offset_x=request.offset_x, offset_y=request.offset_y)
    svg = render_tree_svg(
        tree,
        viewport=viewport,
        work_units=work_units_from_models(request.work_units),
        selected_id=request.selected_id,
    )
    return Response(svg, media_type="image/svg+xml")


@router.get("/templates/{template_id}", response_model=TemplateResponse)
def get_template(template_id: str, store: TemplateStore = Depends(get_store)):
    template, row = store.get_template_with_meta(template_id)
    return template_to_response(
        template,
        is_entry_point=row.is_entry_point,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.put("/templates/{template_id}", response_model=SaveTemplateResponse)
def update_template(template_id: str, request: TemplateRequest, store: TemplateStore = Depends(get_store)):
    store.update_template(template_id, details_from_request(request), nodes_from_models(request.nodes))
    return SaveTemplateResponse(success=True, template_id=template_id)


@router.delete("/templates/{template_id}")
def delete_template(template_id: str, store: TemplateStore = Depends(get_store)):
    store.delete_template(template_id)
    return {"success": True}


@router.post("/templates/{template_id}/walk", response_model=WalkResponse)
def walk_template(template_id: str, request: WalkRequest, store: TemplateStore = Depends(get_store)):
    """
    Follow recorded answers through a saved template.

    Only answers on the walked path count towards the estimate; answers to
    nodes the respondent never reached are ignored.
    """
    template = store.get_template(template_id)
    tree = DecisionTree.from_nodes(template.nodes)
    path = walk_path(tree, request.answers)

    current = None
    if path:
        last = tree.get(path[-1])
        if last.kind == NodeKind.DECISION and last.id not in request.answers:
            current = last.id

    reached = {node_id: request.answers[node_id] for node_id in path if node_id in request.answers}
    summary = aggregate_hours(template.nodes, reached, template.work_units)
    return WalkResponse(
        order=presentation_order(tree),
        path=path,
        current_node_id=current,
        estimate=estimate_to_response(summary),
    )


@router.post("/templates/{template_id}/entry-point", response_model=EntryPointToggleResponse)
def toggle_entry_point(template_id: str, store: TemplateStore = Depends(get_store)):
    is_entry_point = store.toggle_entry_point(template_id)
    return EntryPointToggleResponse(template_id=template_id, is_entry_point=is_entry_point)


# ============================================================
# ENTRY POINTS
# ============================================================

@router.get("/entry-points", response_model=List[EntryPointModel])
def list_entry_points(store: TemplateStore = Depends(get_store)):
    return [
        EntryPointModel(
            id=e.id,
            template_id=e.template_id,
            name=e.name,
            description=e.description or "",
            is_active=e.is_active,
        )
        for e in store.list_entry_points()
    ]


@router.post("/entry-points", response_model=EntryPointModel)
def create_entry_point(request: EntryPointCreate, store: TemplateStore = Depends(get_store)):
    entry = store.create_entry_point(request.template_id, request.name, request.description)
    return EntryPointModel(
        id=entry.id,
        template_id=entry.template_id,
        name=entry.name,
        description=entry.description or "",
        is_active=entry.is_active,
    )


# ============================================================
# COMPLETED INTAKES
# ============================================================

@router.post("/completed-intakes", response_model=IntakeCreatedResponse)
def submit_intake(request: IntakeRequest, store: TemplateStore = Depends(get_store)):
    intake_id = store.submit_intake(request.template_id, request.answers)
    return IntakeCreatedResponse(id=intake_id)


@router.get("/completed-intakes/{intake_id}", response_model=IntakeResponse)
def get_intake(intake_id: str, store: TemplateStore = Depends(get_store)):
    intake = store.get_intake(intake_id)
    template = store.get_intake_template(intake)
    if template is None:
        raise NotFoundError("template", intake.template_id)

    summary = aggregate_hours(template.nodes, intake.answers, template.work_units)
    return IntakeResponse(
        id=intake.id,
        template_id=intake.template_id,
        answers=intake.answers,
        created_at=intake.created_at,
        template=template_to_response(template),
        estimate=estimate_to_response(summary),
    )


@router.post("/estimate", response_model=EstimateResponse)
def preview_estimate(request: EstimateRequest):
    """Aggregate hours for posted nodes and answers without saving anything."""
    summary = aggregate_hours(
        nodes_from_models(request.nodes),
        request.answers,
        work_units_from_models(request.work_units),
    )
    return estimate_to_response(summary)


# ============================================================
# CATALOG
# ============================================================

@router.get("/work-units", response_model=List[WorkUnitModel])
def list_work_units(store: TemplateStore = Depends(get_store)):
    return [work_unit_to_model(u) for u in store.list_work_units()]


@router.post("/work-units", response_model=WorkUnitModel)
def create_work_unit(request: WorkUnitCreate, store: TemplateStore = Depends(get_store)):
    unit = store.create_work_unit(request.name, request.team_id, request.hours, request.description)
    return work_unit_to_model(unit)


@router.get("/teams", response_model=List[TeamModel])
def list_teams(store: TemplateStore = Depends(get_store)):
    return [TeamModel(id=t.id, name=t.name, description=t.description or "") for t in store.list_teams()]


@router.post("/teams", response_model=TeamModel)
def create_team(request: TeamModel, store: TemplateStore = Depends(get_store)):
    team = store.create_team(request.id, request.name, request.description)
    return TeamModel(id=team.id, name=team.name, description=team.description or "")
