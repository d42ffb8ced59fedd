def _headers(user):
    return {"X-User-Id": user.slack_id}


def _submit(client, user, start="2025-03-10", end="2025-03-14"):
    return client.post(
        "/api/pto/requests",
        headers=_headers(user),
        json={"category": "Short-term leave", "type": "Vacation", "start_date": start, "end_date": end},
    ).json()["request"]["id"]


def test_admin_routes_require_admin(client, employee):
    assert client.get("/api/admin/reports/pto", headers=_headers(employee)).status_code == 403
    assert client.get("/api/admin/reports/pto").status_code == 401


def test_admin_cancel(client, employee, admin_user):
    request_id = _submit(client, employee)

    response = client.post(f"/api/admin/pto/requests/{request_id}/cancel", headers=_headers(admin_user))
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert response.json()["decided_by"] == admin_user.id

    again = client.post(f"/api/admin/pto/requests/{request_id}/cancel", headers=_headers(admin_user))
    assert again.status_code == 409
    assert again.json()["errors"][0]["code"] == "InvalidState"


def test_admin_cancel_unknown_request(client, admin_user):
    response = client.post("/api/admin/pto/requests/999/cancel", headers=_headers(admin_user))
    assert response.status_code == 404


def test_report_lists_every_request(client, employee, manager, admin_user):
    first = _submit(client, employee)
    second = _submit(client, manager)
    client.post(f"/api/pto/requests/{first}/approve", headers=_headers(manager))

    response = client.get("/api/admin/reports/pto", headers=_headers(admin_user))
    assert response.status_code == 200
    rows = {row["id"]: row for row in response.json()}
    assert set(rows) == {first, second}
    assert rows[first]["status"] == "approved"
    assert rows[first]["decided_by"] == manager.id
    assert rows[first]["decided_at"] is not None
    assert rows[second]["status"] == "pending"


def test_patch_pto_type(client, admin_user):
    response = client.patch(
        "/api/admin/pto/types/Short-term leave/Vacation",
        headers=_headers(admin_user),
        json={"annual_allowance_days": 20, "carryover_allowed": False},
    )
    assert response.status_code == 200
    assert response.json()["annual_allowance_days"] == 20
    assert response.json()["carryover_allowed"] is False


def test_patch_pto_type_changes_eligibility(client, employee, admin_user):
    response = client.patch(
        "/api/admin/pto/types/Short-term leave/Marriage",
        headers=_headers(admin_user),
        json={"eligibility_rule": "STUDENTS_ONLY"},
    )
    assert response.json()["eligibility_rule"] == "STUDENTS_ONLY"

    submit = client.post(
        "/api/pto/requests",
        headers=_headers(employee),
        json={"category": "Short-term leave", "type": "Marriage", "start_date": "2025-03-10", "end_date": "2025-03-10"},
    )
    assert submit.status_code == 403


def test_patch_pto_type_validation(client, admin_user):
    headers = _headers(admin_user)
    assert client.patch("/api/admin/pto/types/Short-term leave/Vacation", headers=headers, json={}).status_code == 400
    assert client.patch(
        "/api/admin/pto/types/Short-term leave/Vacation", headers=headers, json={"name": "Holiday"}
    ).status_code == 422
    assert client.patch(
        "/api/admin/pto/types/Short-term leave/Nap", headers=headers, json={"is_unlimited": True}
    ).status_code == 404


def test_assign_manager(client, make_user, admin_user):
    lead = make_user("ULEAD", "Lena Lead")
    member = make_user("UMEMBER", "Mo Member")

    response = client.patch(
        f"/api/admin/users/{member.slack_id}",
        headers=_headers(admin_user),
        json={"manager_slack_id": lead.slack_id, "is_student": True},
    )
    assert response.status_code == 200
    assert response.json()["manager_id"] == lead.id
    assert response.json()["is_student"] is True

    cleared = client.patch(
        f"/api/admin/users/{member.slack_id}", headers=_headers(admin_user), json={"manager_slack_id": None}
    )
    assert cleared.json()["manager_id"] is None


def test_assign_manager_errors(client, employee, admin_user):
    headers = _headers(admin_user)
    url = f"/api/admin/users/{employee.slack_id}"

    assert client.patch(url, headers=headers, json={"manager_slack_id": employee.slack_id}).status_code == 400
    assert client.patch(url, headers=headers, json={"manager_slack_id": "UNOBODY"}).status_code == 400
    assert client.patch(url, headers=headers, json={}).status_code == 400
    assert client.patch("/api/admin/users/UNOBODY", headers=headers, json={"is_admin": True}).status_code == 404


def test_toggle_admin_flag(client, employee, admin_user):
    response = client.patch(
        f"/api/admin/users/{employee.slack_id}", headers=_headers(admin_user), json={"is_admin": True}
    )
    assert response.json()["is_admin"] is True
    assert client.get("/api/admin/reports/pto", headers=_headers(employee)).status_code == 200


def test_assign_manager_rejects_cycles(client, make_user, admin_user):
    headers = _headers(admin_user)
    top = make_user("UTOP", "Tara Top")
    middle = make_user("UMIDDLE", "Milo Middle", manager=top)
    bottom = make_user("UBOTTOM", "Bo Bottom", manager=middle)

    direct = client.patch(f"/api/admin/users/{middle.slack_id}", headers=headers, json={"manager_slack_id": bottom.slack_id})
    assert direct.status_code == 400
    assert "cycle" in direct.json()["errors"][0]["msg"]

    indirect = client.patch(f"/api/admin/users/{top.slack_id}", headers=headers, json={"manager_slack_id": bottom.slack_id})
    assert indirect.status_code == 400

    sideways = client.patch(f"/api/admin/users/{bottom.slack_id}", headers=headers, json={"manager_slack_id": top.slack_id})
    assert sideways.status_code == 200
    assert sideways.json()["manager_id"] == top.id
