# tests/test_session.py
import uuid

import pytest

from conftest import auth
from onetrack.core.realtime import ChangeFeed
from onetrack.models.role import Role
from onetrack.services.session_service import (
    AppRole,
    SessionContext,
    allowed_roles_for,
    guard,
    home_path,
    menu_for,
)


# -------- Roles and menus --------


def test_role_parse_is_strict():
    assert AppRole.parse(" Admin ") is AppRole.ADMIN
    with pytest.raises(ValueError):
        AppRole.parse("manager")
    with pytest.raises(ValueError):
        AppRole.parse(None)


def test_menus_per_role():
    assert [m.name for m in menu_for("admin")] == [
        "Dashboard",
        "Requests",
        "New Job",
        "Master Data",
        "Reports",
        "Profile",
    ]
    assert [m.name for m in menu_for(AppRole.TECHNICIAN)] == ["Dashboard", "Requests", "Profile"]
    assert [m.href for m in menu_for("customer")] == ["/customer", "/customer/request", "/profile"]
    with pytest.raises(ValueError):
        menu_for("guest")


def test_home_paths():
    assert home_path("admin") == "/admin"
    assert home_path("technician") == "/technician"
    assert home_path(AppRole.CUSTOMER) == "/customer"


def test_route_table_uses_longest_prefix():
    assert allowed_roles_for("/admin/requests") == {AppRole.ADMIN}
    assert allowed_roles_for("/technician") == {AppRole.TECHNICIAN}
    assert allowed_roles_for("/profile") == set(AppRole)
    assert allowed_roles_for("/administrator") == frozenset()
    assert allowed_roles_for("/unknown") == frozenset()


# -------- Guard --------


def test_guard_states(session, make_user):
    profile, _ = make_user("technician")
    context = SessionContext(profile.id, profile.email)

    assert guard(context, {AppRole.TECHNICIAN}).decision == "loading"

    context.resolve(session)
    assert context.role is AppRole.TECHNICIAN
    assert guard(context, {AppRole.TECHNICIAN}).decision == "allowed"

    decision = guard(context, {AppRole.ADMIN})
    assert decision.decision == "redirected"
    assert decision.redirect_to == "/"


def test_guard_without_identity_redirects_to_login(session):
    context = SessionContext(None).resolve(session)
    assert guard(context, set(AppRole)) == ("redirected", "/")


def test_unknown_role_fails_closed(session, make_user):
    profile, _ = make_user("technician")
    session.add(Role(name="supervisor"))
    session.commit()
    profile.role = "supervisor"
    session.add(profile)
    session.commit()

    context = SessionContext(profile.id).resolve(session)
    assert context.role is None
    assert guard(context, set(AppRole)).decision == "redirected"


def test_profile_change_marks_context_loading(session, make_user):
    feed = ChangeFeed()
    profile, _ = make_user("customer")

    with SessionContext(profile.id).open(feed) as context:
        context.resolve(session)
        assert feed.listener_count("profiles") == 1

        feed.notify("profiles", "UPDATE", uuid.uuid4())
        assert context.status == "resolved"

        feed.notify("profiles", "UPDATE", profile.id)
        assert context.status == "loading"

    assert feed.listener_count("profiles") == 0


# -------- Endpoints --------


def test_session_view_for_admin(client, admin):
    profile, token = admin
    res = client.get("/api/v1/session", headers=auth(token))
    assert res.status_code == 200
    body = res.json()
    assert body["user_id"] == str(profile.id)
    assert body["role"] == "admin"
    assert body["home"] == "/admin"
    assert body["menu"][0] == {"name": "Dashboard", "href": "/admin"}


def test_session_view_requires_token(client):
    assert client.get("/api/v1/session").status_code == 401


@pytest.mark.parametrize(
    "path,decision",
    [
        ("/technician/requests", "allowed"),
        ("/profile", "allowed"),
        ("/admin", "redirected"),
        ("/nowhere", "redirected"),
    ],
)
def test_guard_endpoint_for_technician(client, technician, path, decision):
    _, token = technician
    res = client.get("/api/v1/session/guard", params={"path": path}, headers=auth(token))
    assert res.status_code == 200
    assert res.json()["decision"] == decision


def test_guard_endpoint_without_token_redirects(client):
    res = client.get("/api/v1/session/guard", params={"path": "/admin"})
    assert res.status_code == 200
    assert res.json() == {"path": "/admin", "decision": "redirected", "redirect_to": "/"}
