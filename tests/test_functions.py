# tests/test_functions.py
import uuid

import pytest
from sqlmodel import Session, select

from conftest import auth, make_jwt
from onetrack.core.identity_gateway import IdentityProviderError, get_identity_gateway
from onetrack.main import app
from onetrack.models.customer import Customer, Project
from onetrack.models.job_request import JobRequest
from onetrack.models.profile import Profile
from onetrack.repositories.profile_repo import ProfileRepository

CREATE = "/functions/v1/admin-create-user"
UPDATE_PASSWORD = "/functions/v1/admin-update-user-password"
DELETE = "/functions/v1/admin-delete-user"


def _profiles(engine) -> list[Profile]:
    with Session(engine) as check:
        return list(check.exec(select(Profile)).all())


# -------- Authorization precedence --------


@pytest.mark.parametrize("path", [CREATE, UPDATE_PASSWORD, DELETE])
def test_missing_token_is_401_even_with_broken_body(client, path):
    res = client.post(path, content=b"{not json", headers={"Content-Type": "application/json"})
    assert res.status_code == 401
    assert res.json()["detail"] == "Unauthorized"


def test_token_signed_with_wrong_secret_is_401(client, admin):
    profile, _ = admin
    token = make_jwt(profile.id, profile.email, secret="some-other-secret")
    res = client.post(CREATE, json={"email": "x@example.com", "password": "secret1"}, headers=auth(token))
    assert res.status_code == 401


def test_token_for_unknown_identity_is_401(client):
    token = make_jwt(uuid.uuid4(), "ghost@example.com")
    res = client.post(CREATE, json={"email": "x@example.com", "password": "secret1"}, headers=auth(token))
    assert res.status_code == 401


def test_non_admin_is_403_before_body_is_parsed(client, technician):
    _, token = technician
    res = client.post(
        CREATE,
        content=b"{not json",
        headers={**auth(token), "Content-Type": "application/json"},
    )
    assert res.status_code == 403
    assert res.json()["detail"] == "Forbidden"


def test_admin_with_invalid_json_is_400(client, admin):
    _, token = admin
    res = client.post(
        CREATE,
        content=b"{not json",
        headers={**auth(token), "Content-Type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid JSON body"


def test_admin_with_non_object_body_is_400(client, admin):
    _, token = admin
    res = client.post(CREATE, json=["email"], headers=auth(token))
    assert res.status_code == 400


def test_is_admin_false_falls_back_to_admin_profile(client, gateway, admin):
    _, token = admin
    gateway.admin_verdict = False
    res = client.post(CREATE, json={"email": "x@example.com", "password": "secret1"}, headers=auth(token))
    assert res.status_code == 200


def test_is_admin_false_without_admin_profile_is_403(client, gateway, technician):
    _, token = technician
    gateway.admin_verdict = False
    res = client.post(CREATE, json={"email": "x@example.com", "password": "secret1"}, headers=auth(token))
    assert res.status_code == 403


def test_is_admin_true_allows_without_admin_profile(client, gateway, technician):
    _, token = technician
    gateway.admin_verdict = True
    res = client.post(CREATE, json={"email": "new@example.com", "password": "secret1"}, headers=auth(token))
    assert res.status_code == 200


def test_role_claim_in_body_does_not_grant_access(client, technician):
    _, token = technician
    res = client.post(
        CREATE,
        json={"email": "x@example.com", "password": "secret1", "role": "admin", "is_admin": True},
        headers=auth(token),
    )
    assert res.status_code == 403


# -------- Transport --------


def test_missing_provider_config_is_500(client):
    app.dependency_overrides.pop(get_identity_gateway)
    res = client.post(CREATE, json={"email": "x@example.com", "password": "secret1"})
    assert res.status_code == 500
    assert res.json()["detail"] == "Missing Supabase env vars"


@pytest.mark.parametrize("path", [CREATE, UPDATE_PASSWORD, DELETE])
def test_options_preflight_answers_ok(client, path):
    res = client.options(path)
    assert res.status_code == 200
    assert res.text == "ok"
    assert res.headers["access-control-allow-origin"] == "*"
    assert "POST" in res.headers["access-control-allow-methods"]


def test_get_is_method_not_allowed(client):
    assert client.get(CREATE).status_code == 405


# -------- create-user --------


def test_create_technician_end_to_end(client, engine, gateway, admin):
    _, token = admin
    res = client.post(
        CREATE,
        json={
            "email": "  Budi@Example.com ",
            "password": "secret1",
            "role": "Technician",
            "firstName": "Budi",
            "lastName": "Santoso",
            "phone": "0812",
        },
        headers=auth(token),
    )
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["email"] == "budi@example.com"
    assert body["role"] == "technician"

    user_id = uuid.UUID(body["user_id"])
    assert gateway.users[user_id].metadata["role"] == "technician"
    assert gateway.users[user_id].metadata["full_name"] == "Budi Santoso"

    me = client.get("/api/v1/profiles/me", headers=auth(make_jwt(user_id, "budi@example.com")))
    assert me.status_code == 200
    assert me.json()["role"] == "technician"
    assert me.json()["name"] == "Budi Santoso"
    assert me.json()["phone"] == "0812"


def test_create_defaults_role_to_customer_and_name_to_local_part(client, engine, admin):
    _, token = admin
    res = client.post(CREATE, json={"email": "siti@example.com", "password": "secret1"}, headers=auth(token))
    assert res.status_code == 200
    assert res.json()["role"] == "customer"

    profile = next(p for p in _profiles(engine) if p.email == "siti@example.com")
    assert profile.role == "customer"
    assert profile.name == "siti"


def test_unknown_role_creates_nothing(client, engine, gateway, admin):
    _, token = admin
    identities_before = len(gateway.users)
    profiles_before = len(_profiles(engine))

    res = client.post(
        CREATE,
        json={"email": "x@example.com", "password": "secret1", "role": "supervisor"},
        headers=auth(token),
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Role not valid: supervisor"
    assert len(gateway.users) == identities_before
    assert len(_profiles(engine)) == profiles_before


@pytest.mark.parametrize(
    "body",
    [
        {"password": "secret1"},
        {"email": "x@example.com"},
        {"email": "", "password": ""},
    ],
)
def test_create_requires_email_and_password(client, admin, body):
    _, token = admin
    res = client.post(CREATE, json=body, headers=auth(token))
    assert res.status_code == 400
    assert res.json()["detail"] == "email and password are required"


@pytest.mark.parametrize("password,expected", [("12345", 400), ("123456", 200)])
def test_create_password_length_boundary(client, admin, password, expected):
    _, token = admin
    res = client.post(CREATE, json={"email": "p@example.com", "password": password}, headers=auth(token))
    assert res.status_code == expected


def test_provider_error_is_400_without_profile(client, engine, gateway, admin):
    _, token = admin
    gateway.fail_create = IdentityProviderError("Email rate limit exceeded", details="429", hint="retry later")
    res = client.post(CREATE, json={"email": "x@example.com", "password": "secret1"}, headers=auth(token))
    assert res.status_code == 400
    assert res.json()["detail"] == {
        "message": "Email rate limit exceeded",
        "details": "429",
        "hint": "retry later",
    }
    assert all(p.email != "x@example.com" for p in _profiles(engine))


def test_profile_insert_failure_still_returns_user(client, engine, gateway, admin, monkeypatch, caplog):
    _, token = admin
    calls = []

    def broken_save(self, session, profile):
        calls.append(profile.id)
        raise RuntimeError("connection reset")

    monkeypatch.setattr(ProfileRepository, "save", broken_save)

    res = client.post(CREATE, json={"email": "lost@example.com", "password": "secret1"}, headers=auth(token))
    assert res.status_code == 200
    user_id = uuid.UUID(res.json()["user_id"])

    assert user_id in gateway.users
    assert len(calls) == 3
    assert all(p.id != user_id for p in _profiles(engine))
    assert "has no profile" in caplog.text


# -------- update-user-password --------


@pytest.mark.parametrize("password,expected", [("12345", 400), ("123456", 200)])
def test_update_password_length_boundary(client, gateway, admin, technician, password, expected):
    _, token = admin
    tech, _ = technician
    res = client.post(UPDATE_PASSWORD, json={"user_id": str(tech.id), "password": password}, headers=auth(token))
    assert res.status_code == expected
    if expected == 200:
        assert res.json() == {"success": True}
        assert gateway.passwords[tech.id] == password


def test_update_password_requires_both_fields(client, admin):
    _, token = admin
    res = client.post(UPDATE_PASSWORD, json={"password": "secret1"}, headers=auth(token))
    assert res.status_code == 400
    assert res.json()["detail"] == "user_id and password are required"


def test_update_password_for_unknown_user_is_400(client, admin):
    _, token = admin
    res = client.post(
        UPDATE_PASSWORD,
        json={"user_id": str(uuid.uuid4()), "password": "secret1"},
        headers=auth(token),
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "User not found"


# -------- delete-user --------


def test_delete_is_idempotent_and_removes_linked_customers(client, engine, gateway, admin):
    _, token = admin
    created = client.post(
        CREATE,
        json={"email": "gone@example.com", "password": "secret1"},
        headers=auth(token),
    ).json()
    user_id = uuid.UUID(created["user_id"])

    with Session(engine) as setup:
        setup.add(Customer(name="PT Gone", email="gone@example.com", user_id=user_id))
        setup.add(Customer(name="PT Stays", email="stays@example.com"))
        setup.commit()

    first = client.post(DELETE, json={"user_id": str(user_id)}, headers=auth(token))
    second = client.post(DELETE, json={"user_id": str(user_id)}, headers=auth(token))

    assert first.status_code == 200 and first.json() == {"success": True}
    assert second.status_code == 200 and second.json() == {"success": True}
    assert user_id not in gateway.users
    assert all(p.id != user_id for p in _profiles(engine))
    with Session(engine) as check:
        names = [c.name for c in check.exec(select(Customer)).all()]
    assert names == ["PT Stays"]


def test_delete_requires_user_id(client, admin):
    _, token = admin
    res = client.post(DELETE, json={}, headers=auth(token))
    assert res.status_code == 400


def test_delete_removes_projects_and_jobs_of_linked_customers(client, engine, admin, make_user):
    _, token = admin
    owner, _ = make_user("customer", "owner@example.com")

    with Session(engine) as setup:
        linked = Customer(name="PT Linked", user_id=owner.id)
        other = Customer(name="PT Other")
        setup.add_all([linked, other])
        setup.commit()
        site = Project(customer_id=linked.id, project_name="Site A")
        setup.add(site)
        setup.commit()
        setup.add_all(
            [
                JobRequest(title="mine", customer_id=linked.id, project_id=site.id),
                JobRequest(title="mine too", customer_id=linked.id),
                JobRequest(title="borrowed site", customer_id=other.id, project_id=site.id),
            ]
        )
        setup.commit()

    first = client.post(DELETE, json={"user_id": str(owner.id)}, headers=auth(token))
    second = client.post(DELETE, json={"user_id": str(owner.id)}, headers=auth(token))
    assert first.status_code == 200
    assert second.status_code == 200

    with Session(engine) as check:
        assert [c.name for c in check.exec(select(Customer)).all()] == ["PT Other"]
        assert check.exec(select(Project)).all() == []
        jobs = check.exec(select(JobRequest)).all()
        assert [(j.title, j.project_id) for j in jobs] == [("borrowed site", None)]
        assert check.get(Profile, owner.id) is None


def test_delete_cleans_profile_when_identity_is_already_gone(client, engine, gateway, admin, make_user):
    _, token = admin
    orphan, _ = make_user("technician", "orphan@example.com")
    del gateway.users[orphan.id]

    res = client.post(DELETE, json={"user_id": str(orphan.id)}, headers=auth(token))
    assert res.status_code == 200
    assert res.json() == {"success": True}
    assert all(p.id != orphan.id for p in _profiles(engine))
