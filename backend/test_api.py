"""Tests for the HTTP API"""

from sqlalchemy.exc import SQLAlchemyError

from app.repository.save_builder import TemplateSaveBuilder


def template_body(backend_id, name="Motor"):
    return {
        "name": name,
        "description": "Motor insurance launch",
        "complexity": "High",
        "estimated_duration": "6 weeks",
        "nodes": [
            {
                "id": "tmp-1",
                "content": "New product?",
                "position": {"x": 50, "y": 0},
                "answers": [
                    {"text": "Yes", "target_id": "tmp-2", "work_unit_id": backend_id},
                    {"text": "No", "target_id": "tmp-2"},
                ],
            },
            {"id": "tmp-2", "kind": "leaf", "content": "Done"},
        ],
    }


def create_template(api, catalog, **kwargs):
    response = api.post("/api/templates", json=template_body(catalog["backend"].id, **kwargs))
    assert response.status_code == 200
    return response.json()["template_id"]


def test_health(api):
    response = api.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ready"}


def test_create_fetch_and_list(api, catalog):
    template_id = create_template(api, catalog)

    template = api.get(f"/api/templates/{template_id}").json()
    assert template["name"] == "Motor"
    assert template["teams"] == ["backend"]
    first, leaf = template["nodes"]
    assert first["answers"][0]["target_id"] == leaf["id"]
    assert template["work_units"][catalog["backend"].id]["hours"] == 8

    listing = api.get("/api/templates").json()
    assert [t["id"] for t in listing] == [template_id]
    assert listing[0]["teams"] == ["backend"]


def test_missing_template_is_404(api):
    assert api.get("/api/templates/nope").status_code == 404
    response = api.put("/api/templates/nope", json=template_body(None))
    assert response.status_code == 404


def test_invalid_template_is_422(api, catalog):
    body = template_body(catalog["backend"].id, name="")
    response = api.post("/api/templates", json=body)
    assert response.status_code == 422
    assert any("EMPTY_NAME" in issue for issue in response.json()["detail"])

    body = template_body(catalog["backend"].id)
    body["nodes"][1] = {
        "id": "tmp-2",
        "content": "Loop",
        "answers": [{"text": "Yes", "target_id": "tmp-1"}, {"text": "No"}],
    }
    assert api.post("/api/templates", json=body).status_code == 422


def test_store_failure_is_500(api, catalog, monkeypatch):
    def broken(self, nodes):
        raise SQLAlchemyError("connection lost")

    monkeypatch.setattr(TemplateSaveBuilder, "insert_answers", broken)
    response = api.post("/api/templates", json=template_body(catalog["backend"].id))

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to save template"}
    assert api.get("/api/templates").json() == []


def test_put_replaces_and_delete_hides(api, catalog):
    template_id = create_template(api, catalog)
    body = template_body(catalog["backend"].id, name="Motor v2")
    body["nodes"] = [{"id": "tmp-9", "content": "Only question"}]

    response = api.put(f"/api/templates/{template_id}", json=body)
    assert response.json() == {"success": True, "template_id": template_id}

    template = api.get(f"/api/templates/{template_id}").json()
    assert template["name"] == "Motor v2"
    assert len(template["nodes"]) == 1
    assert template["teams"] == []

    assert api.delete(f"/api/templates/{template_id}").status_code == 200
    assert api.get(f"/api/templates/{template_id}").status_code == 404


def test_intake_round_trip_with_estimate(api, catalog):
    template_id = create_template(api, catalog)
    first = api.get(f"/api/templates/{template_id}").json()["nodes"][0]

    response = api.post("/api/completed-intakes", json={
        "template_id": template_id,
        "answers": {first["id"]: "Yes"},
    })
    intake_id = response.json()["id"]

    intake = api.get(f"/api/completed-intakes/{intake_id}").json()
    assert intake["answers"] == {first["id"]: "Yes"}
    assert intake["template"]["id"] == template_id
    assert intake["estimate"]["total_hours"] == 8
    assert intake["estimate"]["teams"]["backend"]["items"][0]["question"] == "New product?"


def test_intake_for_missing_template_is_404(api):
    response = api.post("/api/completed-intakes", json={"template_id": "nope", "answers": {}})
    assert response.status_code == 404
    assert api.get("/api/completed-intakes/nope").status_code == 404


def test_entry_points(api, catalog):
    template_id = create_template(api, catalog)

    toggled = api.post(f"/api/templates/{template_id}/entry-point").json()
    assert toggled == {"template_id": template_id, "is_entry_point": True}
    assert [e["template_id"] for e in api.get("/api/entry-points").json()] == [template_id]
    assert api.get(f"/api/templates/{template_id}").json()["is_entry_point"] is True

    created = api.post("/api/entry-points", json={
        "template_id": template_id,
        "name": "Motor (broker)",
    }).json()
    assert created["is_active"] is True
    assert len(api.get("/api/entry-points").json()) == 2


def test_catalog_endpoints(api):
    teams = api.get("/api/teams").json()
    assert "compliance" in [t["id"] for t in teams]

    created = api.post("/api/work-units", json={"name": "Filing", "team_id": "compliance", "hours": 6}).json()
    assert created["team_id"] == "compliance"
    assert created in api.get("/api/work-units").json()

    assert api.post("/api/work-units", json={"name": "Bad", "team_id": "qa", "hours": -1}).status_code == 422
    assert api.post("/api/teams", json={"id": "actuarial", "name": "Actuarial"}).status_code == 200


def test_layout_and_canvas(api):
    nodes = [
        {"id": "r", "answers": [{"text": "Yes", "target_id": "a"}, {"text": "No", "target_id": "b"}]},
        {"id": "a", "kind": "leaf"},
        {"id": "b", "kind": "leaf"},
    ]
    laid_out = api.post("/api/templates/layout", json={"nodes": nodes}).json()["nodes"]
    assert [(n["position"]["x"], n["position"]["y"]) for n in laid_out] == [(50, 0), (250, -50), (250, 50)]

    response = api.post("/api/templates/canvas.svg", json={"nodes": laid_out, "zoom": 1.5})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert "scale(1.5)" in response.text


def test_cyclic_layout_request_is_422(api):
    nodes = [
        {"id": "a", "answers": [{"text": "Yes", "target_id": "b"}, {"text": "No"}]},
        {"id": "b", "answers": [{"text": "Yes", "target_id": "a"}, {"text": "No"}]},
    ]
    assert api.post("/api/templates/layout", json={"nodes": nodes}).status_code == 422


def test_estimate_preview(api):
    body = {
        "nodes": [
            {"id": "q", "content": "Needs API?", "answers": [
                {"text": "Yes", "work_unit_id": "wu-1"},
                {"text": "No", "work_unit_id": "wu-2"},
            ]},
        ],
        "answers": {"q": "Yes"},
        "work_units": {
            "wu-1": {"id": "wu-1", "name": "API", "team_id": "integration", "hours": 5},
            "wu-2": {"id": "wu-2", "name": "Manual", "team_id": "qa", "hours": 1},
        },
    }
    estimate = api.post("/api/estimate", json=body).json()
    assert estimate["total_hours"] == 5
    assert list(estimate["teams"]) == ["integration"]


def test_validate_endpoint(api):
    body = {"name": "Draft", "nodes": [{"id": "q", "content": ""}]}
    result = api.post("/api/templates/validate", json=body).json()
    assert result["is_valid"] is True
    assert result["warning_count"] == 2
    assert {i["code"] for i in result["issues"]} == {"EMPTY_CONTENT", "TOO_FEW_ANSWERS"}


def test_editor_saves_then_submits_in_one_session(api, catalog):
    from app.client.api_client import TemplateApiClient
    from app.editor.session import EditorSession
    from app.tree.types import Position, TemplateDetails

    client = TemplateApiClient(base_url="http://testserver", session=api)
    editor = EditorSession(client, details=TemplateDetails(name="Travel"))
    editor.load_catalog()

    root = editor.add_node(content="Cover abroad?", position=Position(50, 0))
    follow_up = editor.connect_click(root, 0)
    editor.update_content(follow_up, "Winter sports?")
    editor.assign_work_unit(root, 0, catalog["backend"].id)
    template_id = editor.save()

    [saved_root] = editor.tree.roots()
    assert saved_root != root
    assert editor.tree.get(saved_root).content == "Cover abroad?"
    assert editor.work_unit_summary().total_hours == 8

    intake_id = editor.submit_intake({saved_root: "Yes"})
    intake = client.fetch_intake(intake_id)
    assert intake.template_id == template_id
    assert intake.estimate.total_hours == 8

    editor.update_content(saved_root, "Cover outside the EU?")
    editor.save()
    [resaved_root] = editor.tree.roots()
    assert resaved_root != saved_root
    assert editor.tree.get(resaved_root).content == "Cover outside the EU?"


def test_intake_with_unknown_node_is_422(api, catalog):
    template_id = create_template(api, catalog)
    response = api.post("/api/completed-intakes", json={
        "template_id": template_id,
        "answers": {"tmp-1": "Yes"},
    })
    assert response.status_code == 422
    assert response.json()["detail"] == ["unknown node 'tmp-1'"]


def test_walk_follows_answers(api, catalog):
    template_id = create_template(api, catalog)
    first, leaf = [n["id"] for n in api.get(f"/api/templates/{template_id}").json()["nodes"]]

    fresh = api.post(f"/api/templates/{template_id}/walk", json={"answers": {}}).json()
    assert fresh["order"] == [first, leaf]
    assert fresh["path"] == [first]
    assert fresh["current_node_id"] == first
    assert fresh["estimate"]["total_hours"] == 0

    done = api.post(f"/api/templates/{template_id}/walk", json={
        "answers": {first: "Yes", "unreached": "Yes"},
    }).json()
    assert done["path"] == [first, leaf]
    assert done["current_node_id"] is None
    assert done["estimate"]["total_hours"] == 8

    assert api.post("/api/templates/nope/walk", json={"answers": {}}).status_code == 404
