from stepwright.models.version import TestCaseVersion as VersionRow


def steps_url(project, case):
    return f"/projects/{project.id}/test-cases/{case.id}/steps"


def test_create_step_generates_code(client, project, login_case, generator):
    res = client.post(steps_url(project, login_case) + "/", json={"action": "Click Login", "data": "#login"})

    assert res.status_code == 200
    body = res.json()
    assert body["order"] == 1
    assert body["playwright_code"] == "await page.click('#click-login');"
    assert body["selector"] == "#click-login"
    assert generator.calls == [("Click Login", "#login", None)]


def test_create_step_bumps_version_and_records(client, db, project, login_case):
    client.post(steps_url(project, login_case) + "/", json={"action": "open", "playwright_code": "await a();"})

    db.refresh(login_case)
    assert login_case.version == "1.0.1"
    assert login_case.status == "draft"
    versions = db.query(VersionRow).filter(VersionRow.test_case_id == login_case.id).all()
    assert len(versions) == 1
    assert versions[0].steps[0].action == "open"


def test_orders_are_assigned_in_sequence(client, project, login_case):
    for action in ("one", "two", "three"):
        client.post(steps_url(project, login_case) + "/", json={"action": action, "playwright_code": "await x();"})

    listed = client.get(steps_url(project, login_case) + "/").json()
    assert [(s["order"], s["action"]) for s in listed] == [(1, "one"), (2, "two"), (3, "three")]


def test_generation_failure_keeps_the_step(client, project, login_case, generator):
    generator.fail = True
    res = client.post(steps_url(project, login_case) + "/", json={"action": "Open cart"})

    assert res.status_code == 200
    assert res.json()["playwright_code"] == '// TODO: Implement "Open cart" step'


def test_fixture_step_skips_generation(client, project, login_case, login_fixture, generator):
    res = client.post(steps_url(project, login_case) + "/", json={"action": "Sign in", "fixture_id": login_fixture.id})

    assert res.status_code == 200
    assert res.json()["fixture_id"] == login_fixture.id
    assert res.json()["playwright_code"] is None
    assert generator.calls == []


def test_fixture_from_another_project_is_rejected(client, db, project, login_case, user):
    from stepwright.models.fixture import Fixture
    from stepwright.models.project import Project

    elsewhere = Project(name="Other", user_id=user.id)
    db.add(elsewhere)
    db.commit()
    foreign = Fixture(project_id=elsewhere.id, name="Foreign", type="setup")
    db.add(foreign)
    db.commit()

    res = client.post(steps_url(project, login_case) + "/", json={"action": "x", "fixture_id": foreign.id})
    assert res.status_code == 404


def test_create_from_code(client, project, login_case):
    code = "await page.goto('/login');\nawait page.fill('#user', 'bob');\nawait page.click('#submit');"
    res = client.post(steps_url(project, login_case) + "/from-code", json={"playwright_code": code})

    assert res.status_code == 200
    assert [(s["order"], s["action"]) for s in res.json()] == [
        (1, "Navigate"),
        (2, "Input Text"),
        (3, "Click Element"),
    ]


def test_create_from_unparseable_code(client, project, login_case):
    res = client.post(steps_url(project, login_case) + "/from-code", json={"playwright_code": "// nothing"})
    assert res.status_code == 400


def test_update_regenerates_todo_code(client, project, login_case, make_step, generator):
    step = make_step(login_case, 1, "click", playwright_code='// TODO: Implement "click" step')

    res = client.put(f"{steps_url(project, login_case)}/{step.id}", json={"action": "Submit form"})

    assert res.status_code == 200
    assert res.json()["playwright_code"] == "await page.click('#submit-form');"
    assert generator.calls[0][0] == "Submit form"


def test_update_keeps_real_code(client, project, login_case, make_step, generator):
    step = make_step(login_case, 1, "click", playwright_code="await page.click('#a');")

    res = client.put(f"{steps_url(project, login_case)}/{step.id}",
                     json={"action": "click", "playwright_code": "await page.click('#b');", "disabled": True})

    assert res.json()["playwright_code"] == "await page.click('#b');"
    assert res.json()["disabled"] is True
    assert generator.calls == []


def test_patch_toggles_disabled(client, project, login_case, make_step):
    step = make_step(login_case, 1, "click", playwright_code="await a();")

    res = client.patch(f"{steps_url(project, login_case)}/{step.id}", json={"disabled": True})

    assert res.status_code == 200
    assert res.json()["disabled"] is True
    assert res.json()["playwright_code"] == "await a();"


def test_patch_rejects_null_required_fields(client, db, project, login_case, make_step):
    step = make_step(login_case, 1, "click", playwright_code="await a();")

    res = client.patch(f"{steps_url(project, login_case)}/{step.id}", json={"action": None, "order": None})

    assert res.status_code == 400
    assert res.json()["detail"] == "Fields cannot be null: action, order"
    db.refresh(step)
    assert step.action == "click"


def test_delete_resequences_siblings(client, project, login_case, make_step):
    first = make_step(login_case, 1, "a")
    second = make_step(login_case, 2, "b")
    third = make_step(login_case, 3, "c")

    res = client.delete(f"{steps_url(project, login_case)}/{second.id}")

    assert res.status_code == 204
    listed = client.get(steps_url(project, login_case) + "/").json()
    assert [(s["id"], s["order"]) for s in listed] == [(first.id, 1), (third.id, 2)]


def test_bulk_delete(client, project, login_case, make_step):
    steps = [make_step(login_case, i, f"s{i}") for i in range(1, 5)]

    res = client.post(steps_url(project, login_case) + "/bulk-delete",
                      json={"step_ids": [steps[0].id, steps[2].id]})

    assert res.json() == {"status": "success", "deleted": 2}
    listed = client.get(steps_url(project, login_case) + "/").json()
    assert [(s["action"], s["order"]) for s in listed] == [("s2", 1), ("s4", 2)]


def test_bulk_delete_unknown_step(client, project, login_case, make_step):
    step = make_step(login_case, 1, "a")
    res = client.post(steps_url(project, login_case) + "/bulk-delete", json={"step_ids": [step.id, 999]})
    assert res.status_code == 404


def test_clone_step_appends_enabled_copy(client, db, project, login_case, make_step):
    make_step(login_case, 1, "open", playwright_code="await a();")
    source = make_step(login_case, 2, "fill", data="#u >> x", selector="#u",
                       playwright_code="await b();", disabled=True)

    res = client.post(steps_url(project, login_case) + "/clone", json={"source_step_id": source.id})

    assert res.status_code == 200
    body = res.json()
    assert (body["order"], body["action"], body["data"], body["selector"]) == (3, "fill", "#u >> x", "#u")
    assert body["playwright_code"] == "await b();"
    assert body["disabled"] is False
    db.refresh(login_case)
    assert login_case.version == "1.0.1"


def test_clone_step_from_another_test_case_is_404(client, db, project, login_case, make_step):
    from stepwright.models.test_case import TestCase as CaseRow

    other = CaseRow(project_id=project.id, name="Other")
    db.add(other)
    db.commit()
    foreign = make_step(other, 1, "elsewhere")

    res = client.post(steps_url(project, login_case) + "/clone", json={"source_step_id": foreign.id})
    assert res.status_code == 404


def test_bulk_save_replaces_steps(client, db, project, login_case, make_step, generator):
    make_step(login_case, 1, "old")

    res = client.post(steps_url(project, login_case) + "/bulk",
                      json={"steps": [{"action": "one"}, {"action": "two", "order": 5, "disabled": True}]})

    assert res.status_code == 200
    assert [(s["order"], s["action"], s["disabled"]) for s in res.json()] == [(1, "one", False), (5, "two", True)]
    assert generator.calls == []
    db.refresh(login_case)
    assert login_case.version == "1.0.1"
    snapshot = db.query(VersionRow).filter(VersionRow.test_case_id == login_case.id).one()
    assert [s.action for s in snapshot.steps] == ["one", "two"]


def test_bulk_save_needs_steps(client, project, login_case):
    res = client.post(steps_url(project, login_case) + "/bulk", json={"steps": []})
    assert res.status_code == 400
    assert res.json()["detail"] == "At least one test step is required"


def test_reorder(client, project, login_case, make_step):
    a = make_step(login_case, 1, "a")
    b = make_step(login_case, 2, "b")

    res = client.post(steps_url(project, login_case) + "/reorder",
                      json={"steps": [{"id": a.id, "order": 2}, {"id": b.id, "order": 1}]})

    assert res.status_code == 200
    assert [s["action"] for s in res.json()] == ["b", "a"]


def test_reorder_rejects_foreign_steps(client, project, login_case, make_step):
    a = make_step(login_case, 1, "a")
    res = client.post(steps_url(project, login_case) + "/reorder",
                      json={"steps": [{"id": a.id, "order": 1}, {"id": 12345, "order": 2}]})
    assert res.status_code == 400


def test_missing_step_is_404(client, project, login_case):
    res = client.get(f"{steps_url(project, login_case)}/999")
    assert res.status_code == 404
    assert res.json()["detail"] == "Test step 999 not found"


def test_missing_test_case_is_404(client, project):
    res = client.get(f"/projects/{project.id}/test-cases/999/steps/")
    assert res.status_code == 404
    assert res.json()["detail"] == "Test case 999 not found"


def test_other_users_project_is_404(client, db, other_user, login_case):
    from stepwright.models.project import Project

    foreign = Project(name="Not mine", user_id=other_user.id)
    db.add(foreign)
    db.commit()

    res = client.get(f"/projects/{foreign.id}/test-cases/{login_case.id}/steps/")
    assert res.status_code == 404
    assert res.json()["detail"] == "Project not found"


def test_rapid_edits_are_debounced(client, db, project, login_case, clock):
    url = steps_url(project, login_case) + "/"
    client.post(url, json={"action": "a", "playwright_code": "await a();"})
    client.post(url, json={"action": "b", "playwright_code": "await b();"})
    assert db.query(VersionRow).count() == 1

    clock.advance(31)
    client.post(url, json={"action": "c", "playwright_code": "await c();"})
    assert db.query(VersionRow).count() == 2
