"""
Editor session - one administrator editing one template.

Holds the graph model, the viewport, the work-unit catalog and the explicit
interaction state. All mutations go through DecisionTree; the session only
decides which mutation a user gesture maps to.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set

from app.client.api_client import TemplateApiClient
from app.errors import SaveInProgressError, TreeValidationError
from app.editor.state import ConnectingFrom, EditorState, Editing, Idle, Selected, focused_node
from app.estimation.aggregate import EstimateSummary, assigned_work_units_by_team
from app.renderer.canvas import hit_test
from app.renderer.svg_renderer import render_tree_svg
from app.renderer.viewport import Viewport
from app.tree.layout import apply_layout, find_free_slot
from app.tree.model import DecisionTree
from app.tree.types import Answer, NodeKind, Position, Template, TemplateDetails, WorkUnit
from app.validation.tree_validator import raise_on_errors

logger = logging.getLogger(__name__)


class EditorSession:
    """
    Usage:
        session = EditorSession(client, work_units=catalog)
        root = session.add_node(NodeKind.DECISION, "Is this a new product?")
        follow_up = session.connect_click(root, 0)   # new node linked to "Yes"
        template_id = session.save()
    """

    def __init__(
        self,
        client: Optional[TemplateApiClient] = None,
        work_units: Optional[Iterable[WorkUnit]] = None,
        details: Optional[TemplateDetails] = None,
        tree: Optional[DecisionTree] = None,
        template_id: Optional[str] = None,
        viewport: Optional[Viewport] = None,
    ):
        self.client = client
        self.work_units: Dict[str, WorkUnit] = {u.id: u for u in (work_units or [])}
        self.details = details or TemplateDetails(name="")
        self.tree = tree or DecisionTree()
        self.template_id = template_id
        self.viewport = viewport or Viewport()
        self.state: EditorState = Idle()
        self.saving = False
        self.submitting = False

    # ---------- load ----------

    def load(self, template_id: str) -> Template:
        template = self._require_client().fetch_template(template_id)
        self.tree = DecisionTree.from_nodes(template.nodes)
        self.details = template.details
        self.template_id = template.id
        self.work_units.update(template.work_units)
        self.state = Idle()
        return template

    def load_catalog(self) -> List[WorkUnit]:
        units = self._require_client().list_work_units()
        self.work_units.update({u.id: u for u in units})
        return units

    # ---------- interaction state ----------

    def click_node(self, node_id: str) -> EditorState:
        self.tree.get(node_id)
        self.state = Editing(node_id)
        return self.state

    def select_node(self, node_id: str) -> EditorState:
        self.tree.get(node_id)
        self.state = Selected(node_id)
        return self.state

    def click_canvas(self) -> EditorState:
        self.state = Idle()
        self.tree.clear_pending_slot()
        return self.state

    def click_at(self, screen_x: float, screen_y: float) -> EditorState:
        """Route a click in screen coordinates to the node under it, or to the canvas."""
        x, y = self.viewport.to_canvas(screen_x, screen_y)
        node_id = hit_test(self.tree, x, y)
        if node_id is None:
            return self.click_canvas()
        return self.click_node(node_id)

    def start_connecting(self, node_id: str, answer_index: int) -> List[str]:
        """Enter connecting mode for an answer; returns the nodes it may link to."""
        self.tree.answer(node_id, answer_index)
        self.state = ConnectingFrom(node_id, answer_index)
        return self.tree.available_targets(node_id)

    # ---------- node editing ----------

    def add_node(
        self,
        kind: NodeKind = NodeKind.DECISION,
        content: str = "",
        position: Optional[Position] = None,
    ) -> str:
        node_id = self.tree.add_node(kind, content=content, position=position)
        self.state = Editing(node_id)
        return node_id

    def update_content(self, node_id: str, content: str) -> None:
        self.tree.update_node(node_id, content=content)

    def update_answer_text(self, node_id: str, index: int, text: str) -> Answer:
        return self.tree.update_answer(node_id, index, text=text)

    def add_answer(self, node_id: str, text: Optional[str] = None) -> int:
        if text is None:
            return self.tree.add_answer(node_id)
        return self.tree.add_answer(node_id, text)

    def remove_answer(self, node_id: str, index: int) -> Answer:
        removed = self.tree.remove_answer(node_id, index)
        if isinstance(self.state, ConnectingFrom) and self.state.node_id == node_id:
            self.state = Editing(node_id)
        return removed

    def delete_node(self, node_id: str) -> Set[str]:
        removed = self.tree.remove_node(node_id)
        if focused_node(self.state) in removed:
            self.state = Idle()
        return removed

    def connect_click(self, node_id: str, answer_index: int) -> str:
        """
        Follow an answer's connector.

        An answer that already has a target opens that node. Otherwise a new
        decision node is placed at a free slot beside the answer, linked to it
        and opened.
        """
        answer = self.tree.answer(node_id, answer_index)
        if answer.target_id is not None:
            self.state = Editing(answer.target_id)
            return answer.target_id

        position = find_free_slot(self.tree, node_id, answer_index)
        self.tree.set_pending_slot(node_id, answer_index)
        new_id = self.tree.add_node(NodeKind.DECISION, position=position)
        self.state = Editing(new_id)
        return new_id

    def connection_options(self, node_id: str) -> List[str]:
        return self.tree.available_targets(node_id)

    def connect_existing(self, node_id: str, answer_index: int, target_id: str) -> bool:
        if target_id not in self.tree.available_targets(node_id):
            logger.info("Target %s not offered for %s[%d]", target_id, node_id, answer_index)
            return False
        connected = self.tree.connect(node_id, answer_index, target_id)
        if connected:
            self.state = Editing(node_id)
        return connected

    def disconnect(self, node_id: str, answer_index: int) -> None:
        self.tree.disconnect(node_id, answer_index)

    def assign_work_unit(self, node_id: str, answer_index: int, work_unit_id: Optional[str]) -> Answer:
        if work_unit_id is not None and work_unit_id not in self.work_units:
            raise TreeValidationError([f"unknown work unit '{work_unit_id}'"])
        return self.tree.update_answer(node_id, answer_index, work_unit_id=work_unit_id)

    # ---------- canvas ----------

    def drag_node(self, node_id: str, screen_dx: float, screen_dy: float) -> Position:
        dx, dy = self.viewport.screen_delta_to_canvas(screen_dx, screen_dy)
        return self.tree.move_by(node_id, dx, dy)

    def reorganize(self) -> None:
        apply_layout(self.tree)

    def render_svg(self) -> str:
        selected = focused_node(self.state)
        return render_tree_svg(self.tree, self.viewport, self.work_units, selected_id=selected)

    def work_unit_summary(self) -> EstimateSummary:
        return assigned_work_units_by_team(self.tree, self.work_units)

    # ---------- save / submit ----------

    def to_template(self) -> Template:
        nodes = self.tree.snapshot()
        referenced = {
            a.work_unit_id for n in nodes for a in n.answers if a.work_unit_id
        }
        return Template(
            id=self.template_id,
            details=self.details,
            nodes=nodes,
            work_units={k: u for k, u in self.work_units.items() if k in referenced},
        )

    def validate(self) -> None:
        raise_on_errors(self.details, self.tree.snapshot(), self.work_units)

    def save(self) -> str:
        """
        Validate locally, then create or replace the template remotely.

        The server assigns fresh node ids on every save, so a successful save
        reloads the tree. Local edits survive a failed save; the saving flag is
        cleared either way.
        """
        if self.saving:
            raise SaveInProgressError("save")
        self.validate()
        client = self._require_client()

        self.saving = True
        try:
            template = self.to_template()
            if self.template_id is None:
                self.template_id = client.create_template(template)
            else:
                client.update_template(self.template_id, template)
            logger.info("Saved template %s (%d nodes)", self.template_id, len(self.tree))
            self.load(self.template_id)
            return self.template_id
        finally:
            self.saving = False

    def submit_intake(self, answers: Mapping[str, str]) -> str:
        if self.submitting:
            raise SaveInProgressError("submit_intake")
        self._validate_answers(answers)
        client = self._require_client()

        self.submitting = True
        try:
            return client.submit_intake(self.template_id, dict(answers))
        finally:
            self.submitting = False

    def _validate_answers(self, answers: Mapping[str, str]) -> None:
        issues = []
        if self.template_id is None:
            issues.append("template has not been saved")
        for node_id, text in answers.items():
            if node_id not in self.tree:
                issues.append(f"unknown node '{node_id}'")
            elif text not in [a.text for a in self.tree.get(node_id).answers]:
                issues.append(f"'{text}' is not an answer of node '{node_id}'")
        if issues:
            raise TreeValidationError(issues)

    def _require_client(self) -> TemplateApiClient:
        if self.client is None:
            raise RuntimeError("EditorSession has no API client")
        return self.client
