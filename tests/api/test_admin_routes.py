"""HTTP tests for role and user administration."""

from tests.api.conftest import bearer
from tests.conftest import permission_row, role_row

SUPER_ADMIN_SELECT = "role:roles(id, name, display_name)"


def _sign_in_super_admin(fake_supabase, auth_users) -> None:
    auth_users.add("admin-token", "admin-1")
    fake_supabase.set_data("user_roles", [role_row("role-1", "super_admin")], select=SUPER_ADMIN_SELECT)


def _sign_in_user(fake_supabase, auth_users, *permissions) -> None:
    auth_users.add("user-token", "user-1")
    fake_supabase.set_data("user_roles", [role_row("role-3", "user")], select=SUPER_ADMIN_SELECT)
    fake_supabase.set_data("user_roles", [permission_row(*permissions)])


class TestRoleAdministration:
    def test_non_admin_is_redirected(self, client, fake_supabase, auth_users) -> None:
        _sign_in_user(fake_supabase, auth_users)

        response = client.post(
            "/api/v1/roles",
            json={"name": "auditor", "display_name": "Auditor"},
            headers=bearer("user-token"),
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["Location"] == "/dashboard?error=unauthorized"
        assert fake_supabase.queries("roles", "insert") == []

    def test_create_role(self, client, fake_supabase, auth_users) -> None:
        _sign_in_super_admin(fake_supabase, auth_users)
        fake_supabase.set_data("roles", [], select="id")
        fake_supabase.set_data(
            "roles",
            [{"id": "role-9", "name": "auditor", "display_name": "Auditor", "priority": 0}],
            operation="insert",
        )

        response = client.post(
            "/api/v1/roles",
            json={"name": "auditor", "display_name": "Auditor"},
            headers=bearer("admin-token"),
        )

        assert response.status_code == 201
        assert response.json()["id"] == "role-9"

    def test_get_role_with_permissions(self, client, fake_supabase, auth_users) -> None:
        _sign_in_super_admin(fake_supabase, auth_users)
        fake_supabase.set_data("roles", [{"id": "role-2", "name": "admin", "display_name": "Admin", "is_system": False}])
        fake_supabase.set_data("role_permissions", [
            {"permission": {"id": "perm-1", "action": "read", "resource": "users"}},
        ])

        response = client.get("/api/v1/roles/role-2", headers=bearer("admin-token"))

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "admin"
        assert [p["id"] for p in body["permissions"]] == ["perm-1"]

    def test_missing_role_is_404(self, client, fake_supabase, auth_users) -> None:
        _sign_in_super_admin(fake_supabase, auth_users)
        fake_supabase.set_data("roles", [])

        response = client.get("/api/v1/roles/nope", headers=bearer("admin-token"))

        assert response.status_code == 404

    def test_caller_routes_are_not_shadowed(self, client, fake_supabase, auth_users) -> None:
        _sign_in_user(fake_supabase, auth_users, ("read", "users"))

        response = client.get("/api/v1/roles/check", params={"action": "read", "resource": "users"}, headers=bearer("user-token"))

        assert response.status_code == 200
        assert response.json()["allowed"] is True

    def test_replace_role_permissions(self, client, fake_supabase, auth_users) -> None:
        _sign_in_super_admin(fake_supabase, auth_users)
        fake_supabase.set_data("roles", [{"id": "role-2", "name": "admin"}])
        fake_supabase.set_data("role_permissions", [{"permission_id": "perm-1"}])

        response = client.put(
            "/api/v1/roles/role-2/permissions",
            json={"permission_ids": ["perm-1", "perm-2"]},
            headers=bearer("admin-token"),
        )

        assert response.status_code == 200
        assert response.json() == {"role_id": "role-2", "added": 1, "removed": 0, "total": 2}

    def test_delete_role_in_use_conflicts(self, client, fake_supabase, auth_users) -> None:
        _sign_in_super_admin(fake_supabase, auth_users)
        fake_supabase.set_data("roles", [{"id": "role-2", "name": "admin", "is_system": False}])
        fake_supabase.set_data("user_roles", [{"user_id": "user-5"}], select="user_id")

        response = client.delete("/api/v1/roles/role-2", headers=bearer("admin-token"))

        assert response.status_code == 409


class TestUserAdministration:
    def test_list_users_requires_identity(self, client) -> None:
        assert client.get("/api/v1/users").status_code == 401

    def test_list_users_requires_permission(self, client, fake_supabase, auth_users) -> None:
        _sign_in_user(fake_supabase, auth_users, ("read", "roles"))

        response = client.get("/api/v1/users", headers=bearer("user-token"))

        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient permissions. Required: users:read"

    def test_list_users(self, client, fake_supabase, auth_users) -> None:
        _sign_in_user(fake_supabase, auth_users, ("read", "users"))
        fake_supabase.set_data("profiles", [{"id": "user-7", "email": "grace@example.com"}])

        response = client.get(
            "/api/v1/users",
            params={"search": "grace", "status": "active", "limit": 5},
            headers=bearer("user-token"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["data"][0]["email"] == "grace@example.com"
        assert ("status", "active") in fake_supabase.queries("profiles")[0].filters

    def test_invalid_sort_column_is_rejected(self, client, fake_supabase, auth_users) -> None:
        _sign_in_user(fake_supabase, auth_users, ("read", "users"))

        response = client.get("/api/v1/users", params={"sort_by": "password"}, headers=bearer("user-token"))

        assert response.status_code == 422

    def test_assign_role_records_caller(self, client, fake_supabase, auth_users) -> None:
        _sign_in_super_admin(fake_supabase, auth_users)

        response = client.post("/api/v1/users/user-2/roles", json={"role_id": "role-3"}, headers=bearer("admin-token"))

        assert response.status_code == 201
        body = response.json()
        assert (body["user_id"], body["role_id"], body["assigned_by"]) == ("user-2", "role-3", "admin-1")

    def test_assign_role_is_super_admin_only(self, client, fake_supabase, auth_users) -> None:
        _sign_in_user(fake_supabase, auth_users, ("read", "users"))

        response = client.post(
            "/api/v1/users/user-2/roles",
            json={"role_id": "role-3"},
            headers=bearer("user-token"),
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert fake_supabase.queries("user_roles", "insert") == []

    def test_revoke_role(self, client, fake_supabase, auth_users) -> None:
        _sign_in_super_admin(fake_supabase, auth_users)
        fake_supabase.set_data("user_roles", [{"user_id": "user-2", "role_id": "role-3"}], operation="delete")

        response = client.delete("/api/v1/users/user-2/roles/role-3", headers=bearer("admin-token"))

        assert response.status_code == 204

    def test_revoke_missing_assignment_is_404(self, client, fake_supabase, auth_users) -> None:
        _sign_in_super_admin(fake_supabase, auth_users)

        response = client.delete("/api/v1/users/user-2/roles/role-3", headers=bearer("admin-token"))

        assert response.status_code == 404


class TestModuleRoutes:
    def test_module_list_requires_sign_in(self, client) -> None:
        assert client.get("/api/v1/roles/modules").status_code == 401

    def test_module_list(self, client, fake_supabase, auth_users) -> None:
        auth_users.add("user-token", "user-1")
        fake_supabase.set_data("modules", [{"id": "mod-1", "name": "hr", "display_name": "HR", "is_active": True}])

        response = client.get("/api/v1/roles/modules", headers=bearer("user-token"))

        assert response.status_code == 200
        assert [m["name"] for m in response.json()] == ["hr"]

    def test_module_access(self, client, fake_supabase, auth_users) -> None:
        auth_users.add("user-token", "user-1")
        fake_supabase.set_rpc("can_access_module", True)

        response = client.get("/api/v1/roles/modules/hr/access", headers=bearer("user-token"))

        assert response.json() == {"module": "hr", "allowed": True}

    def test_module_access_anonymous(self, client) -> None:
        response = client.get("/api/v1/roles/modules/hr/access")

        assert response.json() == {"module": "hr", "allowed": False}
