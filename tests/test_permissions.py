from app.config.permissions_config import DEFAULT_PERMISSIONS, PERMISSION_CATALOG, get_role_defaults
from app.core.permissions import (
    resolve_permissions, has_permission, set_permission, flatten_permissions, is_superuser_role
)


def test_role_defaults_are_copies():
    defaults = get_role_defaults("user")
    defaults["leads"]["view"] = False
    assert DEFAULT_PERMISSIONS["user"]["leads"]["view"] is True


def test_unknown_role_gets_least_privileged_defaults():
    assert resolve_permissions("superhero") == DEFAULT_PERMISSIONS["user"]
    assert resolve_permissions(None) == DEFAULT_PERMISSIONS["user"]


def test_admin_defaults_cover_every_checked_action():
    permissions = resolve_permissions("admin")
    assert has_permission(permissions, "users.delete")
    assert has_permission(permissions, "settings.update")
    assert not has_permission(permissions, "billing.update")


def test_group_revokes_default_grant():
    # "Support" group: leads.view granted, leads.delete revoked
    items = [{"key": "leads.view", "enabled": True}, {"key": "leads.delete", "enabled": False}]
    permissions = resolve_permissions("user", items)
    assert has_permission(permissions, "leads.view")
    assert not has_permission(permissions, "leads.delete")
    assert permissions["leads"]["delete"] is False


def test_group_can_grant_beyond_role():
    permissions = resolve_permissions("user", [{"key": "leads.delete", "enabled": True}])
    assert has_permission(permissions, "leads.delete")


def test_user_overrides_apply_after_group():
    items = [{"key": "leads.delete", "enabled": True}]
    assert not has_permission(resolve_permissions("user", items, {"leads": {"delete": False}}), "leads.delete")
    assert not has_permission(resolve_permissions("user", items, {"leads.delete": False}), "leads.delete")


def test_malformed_input_never_raises():
    items = [None, "x", {"key": ""}, {"key": "leads..view", "enabled": True}, {"key": "leads.view", "enabled": "yes"}]
    permissions = resolve_permissions("user", items, "not-a-map")
    assert permissions == DEFAULT_PERMISSIONS["user"]
    assert has_permission(permissions, None) is False
    assert has_permission(permissions, "") is False
    assert has_permission(permissions, "leads") is False
    assert has_permission(permissions, "leads.view.extra") is False
    assert has_permission(None, "leads.view") is False


def test_non_boolean_leaf_is_denial():
    assert has_permission({"leads": {"view": "true"}}, "leads.view") is False
    assert has_permission({"leads": {"view": 1}}, "leads.view") is False


def test_set_permission_creates_intermediate_maps():
    permissions = {"reports": True}
    assert set_permission(permissions, "reports.export.csv", True)
    assert permissions == {"reports": {"export": {"csv": True}}}
    assert not set_permission(permissions, "reports.", True)


def test_flatten_drops_non_boolean_leaves():
    assert flatten_permissions({"a": {"b": True, "c": "no"}, "d": False}) == {"a.b": True, "d": False}


def test_superuser_roles():
    assert is_superuser_role("owner") and is_superuser_role("admin")
    assert not is_superuser_role("user")


def test_catalog_covers_every_default_leaf():
    keys = {p["key"] for p in PERMISSION_CATALOG}
    assert keys == set(flatten_permissions(DEFAULT_PERMISSIONS["owner"]))
    leads_view = next(p for p in PERMISSION_CATALOG if p["key"] == "leads.view")
    assert leads_view["category"] == "Leads"
    assert leads_view["default_value"] is True
