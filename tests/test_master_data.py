# tests/test_master_data.py
import uuid

import pytest
from sqlmodel import Session, select

from conftest import auth
from onetrack.models.customer import Customer, Project
from onetrack.models.job_request import JobRequest
from onetrack.models.profile import Profile
from onetrack.repositories.customer_repo import CustomerRepository


@pytest.fixture
def admin_headers(admin):
    _, token = admin
    return auth(token)


# -------- Roles and catalogs --------


def test_role_lifecycle(client, admin_headers):
    created = client.post("/api/v1/roles", json={"name": " Supervisor "}, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["name"] == "supervisor"

    duplicate = client.post("/api/v1/roles", json={"name": "supervisor"}, headers=admin_headers)
    assert duplicate.status_code == 409

    role_id = created.json()["id"]
    renamed = client.patch(f"/api/v1/roles/{role_id}", json={"name": "lead"}, headers=admin_headers)
    assert renamed.json()["name"] == "lead"

    names = [r["name"] for r in client.get("/api/v1/roles", headers=admin_headers).json()]
    assert names == ["admin", "customer", "lead", "technician"]

    assert client.delete(f"/api/v1/roles/{role_id}", headers=admin_headers).status_code == 204


def test_roles_are_readable_but_not_writable_by_technician(client, technician):
    _, token = technician
    assert client.get("/api/v1/roles", headers=auth(token)).status_code == 200
    assert client.post("/api/v1/roles", json={"name": "x"}, headers=auth(token)).status_code == 403


def test_brands_sorted_by_name(client, admin_headers):
    for name in ("Panasonic", "Daikin", "LG"):
        assert client.post("/api/v1/brands", json={"name": name}, headers=admin_headers).status_code == 201
    names = [b["name"] for b in client.get("/api/v1/brands", headers=admin_headers).json()]
    assert names == ["Daikin", "LG", "Panasonic"]


def test_pk_relabel_and_delete(client, admin_headers):
    pk = client.post("/api/v1/pks", json={"label": "1 PK"}, headers=admin_headers).json()
    relabeled = client.patch(f"/api/v1/pks/{pk['id']}", json={"label": "1.5 PK"}, headers=admin_headers)
    assert relabeled.json()["label"] == "1.5 PK"
    assert client.delete(f"/api/v1/pks/{pk['id']}", headers=admin_headers).status_code == 204
    assert client.delete(f"/api/v1/pks/{pk['id']}", headers=admin_headers).status_code == 404


def test_blank_type_name_is_rejected(client, admin_headers):
    assert client.post("/api/v1/types", json={"name": "   "}, headers=admin_headers).status_code == 422


# -------- Customers --------


def test_create_customer_provisions_login(client, engine, gateway, admin_headers):
    res = client.post(
        "/api/v1/customers",
        json={
            "name": "Budi Santoso",
            "project_name": "Ruko Kelapa",
            "phone": "0811",
            "email": "Budi@Example.com",
            "password": "secret1",
        },
        headers=admin_headers,
    )
    assert res.status_code == 201
    body = res.json()
    assert body["pic_name"] == "Budi Santoso"
    assert body["email"] == "budi@example.com"

    with Session(engine) as check:
        profile = check.exec(select(Profile).where(Profile.email == "budi@example.com")).one()
    assert profile.role == "customer"
    assert profile.first_name == "Budi"
    assert profile.last_name == "Santoso"
    assert body["user_id"] == str(profile.id)
    assert gateway.users[profile.id].metadata["role"] == "customer"


def test_create_customer_requires_credentials(client, gateway, admin_headers):
    before = len(gateway.users)
    res = client.post("/api/v1/customers", json={"name": "PT Tanpa Login"}, headers=admin_headers)
    assert res.status_code == 400
    assert len(gateway.users) == before


def test_update_customer_keeps_pic_in_sync(client, session, admin_headers):
    customer = Customer(name="Old Name", pic_name="Old Name")
    session.add(customer)
    session.commit()

    res = client.patch(f"/api/v1/customers/{customer.id}", json={"name": "New Name"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["pic_name"] == "New Name"


def test_delete_customer_cascades_requests_and_projects(client, engine, session, admin_headers):
    customer = Customer(name="PT Hapus")
    keep = Customer(name="PT Tetap")
    session.add_all([customer, keep])
    session.commit()
    project = Project(customer_id=customer.id, project_name="Site 1")
    session.add(project)
    session.commit()
    session.add_all(
        [
            JobRequest(title="one", customer_id=customer.id, project_id=project.id),
            JobRequest(title="two", customer_id=customer.id),
            JobRequest(title="other", customer_id=keep.id),
        ]
    )
    session.commit()
    customer_id = customer.id

    impact = client.get(f"/api/v1/customers/{customer_id}/impact", headers=admin_headers)
    assert impact.json()["request_count"] == 2

    res = client.delete(f"/api/v1/customers/{customer_id}", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["request_count"] == 2

    with Session(engine) as check:
        assert check.get(Customer, customer_id) is None
        assert [j.title for j in check.exec(select(JobRequest)).all()] == ["other"]
        assert check.exec(select(Project)).all() == []


def test_customer_sees_linked_customers_and_projects(client, session, make_user):
    profile, token = make_user("customer", "owner@example.com")
    by_id = Customer(name="Zeta", user_id=profile.id)
    by_email = Customer(name="Alpha", email="owner@example.com", user_id=profile.id)
    unrelated = Customer(name="Other")
    session.add_all([by_id, by_email, unrelated])
    session.commit()
    session.add(Project(customer_id=by_id.id, project_name="Z site"))
    session.add(Project(customer_id=unrelated.id, project_name="Not mine"))
    session.commit()

    mine = client.get("/api/v1/customers/mine", headers=auth(token)).json()
    assert [c["name"] for c in mine] == ["Alpha", "Zeta"]

    projects = client.get("/api/v1/projects/mine", headers=auth(token)).json()
    assert [p["project_name"] for p in projects] == ["Z site"]


def test_customer_list_is_admin_only(client, make_user):
    _, token = make_user("customer")
    assert client.get("/api/v1/customers", headers=auth(token)).status_code == 403


# -------- Projects --------


def test_project_crud(client, session, admin_headers):
    customer = Customer(name="PT Proyek")
    session.add(customer)
    session.commit()

    created = client.post(
        "/api/v1/projects",
        json={"customer_id": str(customer.id), "project_name": "Gedung A", "location": "Bandung"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    project_id = created.json()["id"]

    updated = client.patch(f"/api/v1/projects/{project_id}", json={"location": "Cimahi"}, headers=admin_headers)
    assert updated.json()["location"] == "Cimahi"
    assert updated.json()["project_name"] == "Gedung A"

    listed = client.get("/api/v1/projects", params={"customer_id": str(customer.id)}, headers=admin_headers)
    assert [p["id"] for p in listed.json()] == [project_id]

    assert client.delete(f"/api/v1/projects/{project_id}", headers=admin_headers).status_code == 204


def test_project_for_unknown_customer_is_404(client, admin_headers):
    res = client.post(
        "/api/v1/projects",
        json={"customer_id": str(uuid.uuid4()), "project_name": "Nowhere"},
        headers=admin_headers,
    )
    assert res.status_code == 404


def test_delete_project_keeps_its_jobs(client, engine, session, admin_headers):
    customer = Customer(name="PT Site")
    session.add(customer)
    session.commit()
    project = Project(customer_id=customer.id, project_name="Tower B")
    session.add(project)
    session.commit()
    session.add(JobRequest(title="service", customer_id=customer.id, project_id=project.id))
    session.commit()
    project_id = project.id

    res = client.delete(f"/api/v1/projects/{project_id}", headers=admin_headers)
    assert res.status_code == 204

    with Session(engine) as check:
        assert check.get(Project, project_id) is None
        job = check.exec(select(JobRequest)).one()
        assert job.title == "service"
        assert job.project_id is None


def test_repository_finds_customers_linked_by_login(session, make_user):
    profile, _ = make_user("customer", "linked@example.com")
    session.add_all(
        [
            Customer(name="By login", user_id=profile.id),
            Customer(name="By email", email="linked@example.com"),
            Customer(name="Neither"),
        ]
    )
    session.commit()

    repo = CustomerRepository()
    assert [c.name for c in repo.list_by_user_id(session, profile.id)] == ["By login"]
    linked = repo.list_linked(session, profile.id, "linked@example.com")
    assert sorted(c.name for c in linked) == ["By email", "By login"]
