"""Tests for the FastAPI integration: status mapping and dependencies."""

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from src.facility_authz.auth.permission_utils import PermissionUtils
from src.facility_authz.errors.auth_errors import (
    IdentitySourceError,
    InvalidPermissionError,
    InvalidRoleError,
)
from src.facility_authz.middleware.api_middleware import (
    get_permission_utils_dependency,
    register_authz_handlers,
    requires_all_permissions,
    requires_any_permission,
    requires_auth,
    requires_permission,
    requires_role,
    with_auth,
)
from src.facility_authz.middleware.require_permission import permission_required
from tests.conftest import assert_error_logged, assert_warning_logged, make_token


def auth_header(roles: list[str] | None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(roles)}"}


@pytest.fixture
def app(jwt_secret):
    app = FastAPI()
    register_authz_handlers(app)

    @app.get("/me/permissions")
    async def my_permissions(
        utils: PermissionUtils = Depends(get_permission_utils_dependency),
    ):
        return {
            "authenticated": utils.is_authenticated,
            "permissions": sorted(utils.permissions()),
        }

    @app.get("/profile")
    async def profile(utils: PermissionUtils = Depends(requires_auth())):
        return {"user_id": utils.user_id}

    @app.post(
        "/facilities",
        dependencies=[Depends(requires_permission("facility:create"))],
        status_code=201,
    )
    async def create_facility():
        return {"created": True}

    @app.get("/admin", dependencies=[Depends(requires_role("admin"))])
    async def admin_panel():
        return {"ok": True}

    @app.get(
        "/settings",
        dependencies=[Depends(requires_any_permission(["settings:edit", "org:edit"]))],
    )
    async def settings():
        return {"ok": True}

    @app.delete(
        "/orgs/{org_id}",
        dependencies=[Depends(requires_all_permissions(["org:view", "org:delete"]))],
    )
    async def delete_org(org_id: str):
        return {"deleted": org_id}

    @app.delete("/facilities/{facility_id}")
    @permission_required("facility:delete")
    async def delete_facility(request: Request, facility_id: str):
        return {"deleted": facility_id}

    @app.get("/dashboard")
    async def dashboard(request: Request):
        return await with_auth(lambda request: {"ok": True})(request)

    return app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestStatusMapping:
    """AuthorizationError subclasses become 401/403 JSON responses."""

    def test_no_token_is_401(self, client, caplog):
        response = client.post("/facilities")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized: Authentication required"}
        assert_warning_logged(caplog, "HTTP 401 at /facilities")

    def test_missing_permission_is_403(self, client, caplog):
        response = client.post("/facilities", headers=auth_header(["staff"]))

        assert response.status_code == 403
        assert response.json() == {
            "error": "Forbidden: Missing required permission: facility:create"
        }
        assert_warning_logged(caplog, "HTTP 403")

    def test_granted(self, client):
        response = client.post("/facilities", headers=auth_header(["manager"]))

        assert response.status_code == 201
        assert response.json() == {"created": True}

    def test_invalid_token_is_401(self, client):
        response = client.post(
            "/facilities", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_empty_subject_token_is_401(self, client):
        token = make_token(["admin"], user_id="")

        response = client.post(
            "/facilities", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized: Authentication required"}

    def test_missing_secret_is_503(self, client, monkeypatch, caplog):
        token = make_token(["admin"])
        monkeypatch.delenv("JWT_SECRET")

        response = client.post(
            "/facilities", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 503
        assert response.json() == {"error": "Identity service unavailable"}
        assert_error_logged(caplog, "Identity source failure")


class TestDependencies:
    """Dependency factories."""

    def test_permission_utils_dependency_anonymous(self, client):
        response = client.get("/me/permissions")

        assert response.status_code == 200
        assert response.json() == {"authenticated": False, "permissions": []}

    def test_permission_utils_dependency_guest(self, client):
        response = client.get("/me/permissions", headers=auth_header(["guest"]))

        assert response.json()["permissions"] == ["facility:view", "org:view"]

    def test_requires_auth(self, client):
        assert client.get("/profile").status_code == 401

        response = client.get("/profile", headers=auth_header(None))
        assert response.status_code == 200
        assert response.json()["user_id"]

    def test_requires_role(self, client):
        assert client.get("/admin", headers=auth_header(["manager"])).status_code == 403
        assert client.get("/admin", headers=auth_header(["admin"])).status_code == 200

    def test_requires_any_permission(self, client):
        assert client.get("/settings", headers=auth_header(["staff"])).status_code == 403
        assert client.get("/settings", headers=auth_header(["manager"])).status_code == 200

    def test_requires_all_permissions(self, client):
        response = client.delete("/orgs/org-1", headers=auth_header(["manager"]))

        assert response.status_code == 403
        assert response.json() == {
            "error": "Forbidden: Missing one or more required permissions: "
            "org:view, org:delete"
        }
        assert client.delete("/orgs/org-1", headers=auth_header(["admin"])).json() == {
            "deleted": "org-1"
        }

    def test_unknown_names_fail_at_definition(self):
        with pytest.raises(InvalidPermissionError):
            requires_permission("facility:destroy")
        with pytest.raises(InvalidRoleError):
            requires_role("owner")


class TestDecoratedRoutes:
    """Guards that read the session from the route's Request."""

    def test_permission_required_route(self, client):
        forbidden = client.delete("/facilities/f-1", headers=auth_header(["staff"]))
        allowed = client.delete("/facilities/f-1", headers=auth_header(["admin"]))

        assert forbidden.status_code == 403
        assert allowed.json() == {"deleted": "f-1"}

    def test_with_auth(self, client):
        assert client.get("/dashboard").status_code == 401
        assert client.get("/dashboard", headers=auth_header([])).status_code == 200


def test_identity_source_error_handler_directly():
    app = FastAPI()
    register_authz_handlers(app)

    @app.get("/boom")
    async def boom():
        raise IdentitySourceError("membership table unavailable")

    response = TestClient(app).get("/boom")

    assert response.status_code == 503
