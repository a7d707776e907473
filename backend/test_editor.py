"""Tests for the editor session and its interaction states"""

import pytest

from app.editor.session import EditorSession
from app.editor.state import ConnectingFrom, Editing, Idle, Selected
from app.errors import MinimumAnswersError, NetworkError, SaveInProgressError, TreeValidationError
from app.renderer.viewport import Viewport
from app.tree.types import Answer, NodeKind, Position, Template, TemplateDetails, TreeNode, WorkUnit
from conftest import make_tree

UNITS = [
    WorkUnit(id="wu-rating", name="Rating engine", team_id="backend", hours=8),
    WorkUnit(id="wu-forms", name="Quote forms", team_id="frontend", hours=3),
    WorkUnit(id="wu-api", name="Quote API", team_id="backend", hours=2),
]


class FakeClient:
    """
    Records calls; optionally fails every call with the given error.

    Like the server, a saved template comes back with fresh node ids.
    """

    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.saved = None
        self.saves = 0

    def _call(self, name, *args):
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error

    def create_template(self, template):
        self._call("create_template", template)
        self._store(template)
        return "tpl-1"

    def update_template(self, template_id, template):
        self._call("update_template", template_id, template)
        self._store(template)
        return template_id

    def submit_intake(self, template_id, answers):
        self._call("submit_intake", template_id, answers)
        return "intake-1"

    def fetch_template(self, template_id):
        self._call("fetch_template", template_id)
        return Template(id=template_id, details=self.saved.details, nodes=self.saved.nodes)

    def _store(self, template):
        self.saves += 1
        ids = {n.id: f"saved{self.saves}-{i}" for i, n in enumerate(template.nodes, 1)}
        nodes = [
            TreeNode(
                id=ids[n.id],
                kind=n.kind,
                content=n.content,
                position=n.position,
                answers=[Answer(a.text, ids.get(a.target_id), a.work_unit_id) for a in n.answers],
            )
            for n in template.nodes
        ]
        self.saved = Template(id=None, details=template.details, nodes=nodes)


def make_session(client=None, name="Motor quote"):
    return EditorSession(
        client=client,
        work_units=UNITS,
        details=TemplateDetails(name=name),
        tree=make_tree(),
    )


def test_click_states():
    session = make_session()
    q = session.add_node(content="New product?")
    assert session.state == Editing(q)

    assert session.click_canvas() == Idle()
    assert session.select_node(q) == Selected(q)
    assert session.click_node(q) == Editing(q)

    targets = session.start_connecting(q, 0)
    assert session.state == ConnectingFrom(q, 0)
    assert targets == []


def test_click_at_uses_viewport():
    session = make_session()
    q = session.add_node(position=Position(100, 100))
    session.viewport = Viewport(zoom=2.0, offset_x=0, offset_y=0)

    assert session.click_at(210, 210) == Editing(q)
    assert session.click_at(10, 10) == Idle()


def test_connect_click_creates_linked_follow_up():
    session = make_session()
    q = session.add_node(position=Position(50, 0))

    follow_up = session.connect_click(q, 1)

    assert session.tree.get(q).answers[1].target_id == follow_up
    assert session.tree.get(follow_up).position == Position(250, 40)
    assert session.state == Editing(follow_up)
    assert session.tree.pending_slot is None


def test_connect_click_opens_existing_target():
    session = make_session()
    q = session.add_node(position=Position(50, 0))
    follow_up = session.connect_click(q, 0)
    session.click_canvas()

    assert session.connect_click(q, 0) == follow_up
    assert len(session.tree) == 2
    assert session.state == Editing(follow_up)


def test_connect_existing_only_offers_safe_targets():
    session = make_session()
    root = session.add_node(position=Position(50, 0))
    child = session.connect_click(root, 0)
    other = session.add_node()

    assert session.connection_options(child) == [other]
    assert session.connect_existing(child, 0, root) is False
    assert session.tree.get(child).answers[0].target_id is None

    assert session.connect_existing(child, 0, other) is True
    assert session.tree.get(child).answers[0].target_id == other


def test_assign_work_unit():
    session = make_session()
    q = session.add_node()
    with pytest.raises(TreeValidationError):
        session.assign_work_unit(q, 0, "wu-unknown")

    session.assign_work_unit(q, 0, "wu-rating")
    assert session.tree.get(q).answers[0].work_unit_id == "wu-rating"

    session.assign_work_unit(q, 0, None)
    assert session.tree.get(q).answers[0].work_unit_id is None


def test_remove_answer_guard():
    session = make_session()
    q = session.add_node()
    with pytest.raises(MinimumAnswersError):
        session.remove_answer(q, 1)
    session.add_answer(q, "Maybe")
    session.remove_answer(q, 1)
    assert [a.text for a in session.tree.get(q).answers] == ["Yes", "Maybe"]


def test_drag_divides_by_zoom():
    session = make_session()
    q = session.add_node(position=Position(0, 0))
    session.viewport = Viewport(zoom=2.0)

    assert session.drag_node(q, 20, 10) == Position(10, 5)
    assert session.drag_node(q, 20, 10) == Position(20, 10)


def test_delete_focused_node_returns_to_idle():
    session = make_session()
    q = session.add_node(position=Position(50, 0))
    child = session.connect_click(q, 0)
    assert session.state == Editing(child)

    assert session.delete_node(q) == {q, child}
    assert session.state == Idle()


def test_reorganize_and_render():
    session = make_session()
    q = session.add_node(content="Root")
    session.connect_click(q, 0)
    session.reorganize()

    assert session.tree.get(q).position == Position(50, 0)
    svg = session.render_svg()
    assert svg.startswith("<svg")


def test_work_unit_summary_groups_by_team():
    session = make_session()
    q1 = session.add_node()
    q2 = session.add_node()
    session.assign_work_unit(q1, 0, "wu-rating")
    session.assign_work_unit(q1, 1, "wu-forms")
    session.assign_work_unit(q2, 0, "wu-api")

    summary = session.work_unit_summary()
    assert summary.teams["backend"].total_hours == 10
    assert summary.teams["frontend"].total_hours == 3
    assert summary.total_hours == 13


def test_save_validates_before_network():
    client = FakeClient()
    session = make_session(client, name="")
    session.add_node()

    with pytest.raises(TreeValidationError):
        session.save()
    assert client.calls == []
    assert session.saving is False


def test_save_rejected_while_in_flight():
    client = FakeClient()
    session = make_session(client)
    session.add_node()
    session.saving = True

    with pytest.raises(SaveInProgressError):
        session.save()
    assert client.calls == []


def test_save_creates_then_updates():
    client = FakeClient()
    session = make_session(client)
    q = session.add_node(content="Root")
    session.assign_work_unit(q, 0, "wu-rating")

    assert session.save() == "tpl-1"
    name, (template,) = client.calls[0]
    assert name == "create_template"
    assert list(template.work_units) == ["wu-rating"]
    assert template.teams == ["backend"]

    session.save()
    assert [name for name, _ in client.calls] == [
        "create_template", "fetch_template", "update_template", "fetch_template",
    ]
    assert client.calls[2][1][0] == "tpl-1"


def test_failed_save_keeps_local_edits():
    client = FakeClient(error=NetworkError("create_template", ConnectionError("down")))
    session = make_session(client)
    q = session.add_node(content="Root")
    session.connect_click(q, 0)

    with pytest.raises(NetworkError):
        session.save()

    assert session.saving is False
    assert session.template_id is None
    assert len(session.tree) == 2


def test_save_picks_up_server_node_ids():
    client = FakeClient()
    session = make_session(client)
    session.viewport = Viewport(zoom=1.5)
    q = session.add_node(content="Root")
    follow_up = session.connect_click(q, 0)
    session.update_content(follow_up, "Follow up")

    session.save()

    assert q not in session.tree
    assert session.tree.node_ids == ["saved1-1", "saved1-2"]
    assert session.tree.get("saved1-1").answers[0].target_id == "saved1-2"
    assert session.tree.get("saved1-2").content == "Follow up"
    assert session.state == Idle()
    assert session.viewport.zoom == 1.5


def test_submit_intake_checks_answers():
    client = FakeClient()
    session = make_session(client)
    q = session.add_node()

    with pytest.raises(TreeValidationError):
        session.submit_intake({q: "Yes"})

    session.save()
    with pytest.raises(TreeValidationError):
        session.submit_intake({q: "Yes"})

    [saved] = session.tree.node_ids
    with pytest.raises(TreeValidationError):
        session.submit_intake({saved: "Perhaps"})

    assert session.submit_intake({saved: "Yes"}) == "intake-1"
    assert client.calls[-1] == ("submit_intake", ("tpl-1", {saved: "Yes"}))


def test_leaf_nodes_have_no_answers():
    session = make_session()
    leaf = session.add_node(NodeKind.LEAF, content="Standard build")
    assert session.tree.get(leaf).answers == []
    with pytest.raises(TreeValidationError):
        session.add_answer(leaf)
