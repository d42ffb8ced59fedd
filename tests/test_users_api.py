from pto_service.models.user import User


def _headers(user):
    return {"X-User-Id": user.slack_id}


def test_create_user(client, admin_user, manager):
    response = client.post(
        "/api/users",
        headers=_headers(admin_user),
        json={"slack_id": "UNEW", "name": "Nina New", "country": "PT", "manager_slack_id": manager.slack_id},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["slack_id"] == "UNEW"
    assert data["manager_id"] == manager.id
    assert data["is_admin"] is False


def test_create_user_is_admin_only(client, employee):
    response = client.post("/api/users", headers=_headers(employee), json={"slack_id": "UNEW", "name": "Nina"})
    assert response.status_code == 403
    assert response.json()["errors"][0]["code"] == "NotAuthorized"


def test_create_duplicate_user(client, admin_user, employee):
    response = client.post(
        "/api/users", headers=_headers(admin_user), json={"slack_id": employee.slack_id, "name": "Again"}
    )
    assert response.status_code == 409


def test_create_user_with_unknown_manager(client, admin_user):
    response = client.post(
        "/api/users",
        headers=_headers(admin_user),
        json={"slack_id": "UNEW", "name": "Nina", "manager_slack_id": "UNOBODY"},
    )
    assert response.status_code == 400


def test_import_users(client, admin_user, employee):
    response = client.post(
        "/api/users/import",
        headers=_headers(admin_user),
        json={"users": [
            {"slack_id": "UBOSS", "name": "Bea Boss"},
            {"slack_id": "UREPORT", "name": "Ray Report", "manager_slack_id": "UBOSS", "is_student": True},
            {"slack_id": employee.slack_id, "name": "Duplicate"},
        ]},
    )
    assert response.status_code == 200
    data = response.json()
    assert [u["slack_id"] for u in data["created"]] == ["UBOSS", "UREPORT"]
    assert data["skipped"] == [employee.slack_id]
    assert data["created"][1]["manager_id"] == data["created"][0]["id"]
    assert data["created"][1]["is_student"] is True


def test_import_rejects_empty_batch(client, admin_user):
    assert client.post("/api/users/import", headers=_headers(admin_user), json={"users": []}).status_code == 422


def test_list_users(client, employee, manager):
    response = client.get("/api/users", headers=_headers(employee))
    assert response.status_code == 200
    assert {u["slack_id"] for u in response.json()} == {employee.slack_id, manager.slack_id}


def test_list_team(client, employee, manager, make_user):
    make_user("UOUTSIDER")
    response = client.get(f"/api/users/{manager.slack_id}/team", headers=_headers(employee))
    assert [u["slack_id"] for u in response.json()] == [employee.slack_id]

    assert client.get("/api/users/UNOBODY/team", headers=_headers(employee)).status_code == 404


def test_import_with_unknown_manager_creates_nobody(client, admin_user, db_session):
    response = client.post(
        "/api/users/import",
        headers=_headers(admin_user),
        json={"users": [
            {"slack_id": "UFIRST", "name": "Fiona First"},
            {"slack_id": "USECOND", "name": "Sam Second", "manager_slack_id": "UNOBODY"},
        ]},
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["msg"] == "Manager UNOBODY not found"
    assert db_session.query(User).filter(User.slack_id.in_(["UFIRST", "USECOND"])).count() == 0


def test_import_skips_repeated_ids_in_batch(client, admin_user):
    response = client.post(
        "/api/users/import",
        headers=_headers(admin_user),
        json={"users": [
            {"slack_id": "UTWICE", "name": "First Copy"},
            {"slack_id": "UTWICE", "name": "Second Copy"},
        ]},
    )
    data = response.json()
    assert [u["name"] for u in data["created"]] == ["First Copy"]
    assert data["skipped"] == ["UTWICE"]
