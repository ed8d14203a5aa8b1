"""
Static role -> permission mapping and route access rules.

The same tables back the DRF permission classes (API handlers) and the
`/api/auth/route-access/` lookup used by the frontend when rendering.
"""
from __future__ import annotations

ROLE_ADMIN = 'admin'
ROLE_COMPANY = 'company'
ROLE_PROMOTER = 'promoter'
ROLE_USER = 'user'

ROLES = (ROLE_ADMIN, ROLE_COMPANY, ROLE_PROMOTER, ROLE_USER)

ROLE_CHOICES = [
    (ROLE_ADMIN, 'Administrator'),
    (ROLE_COMPANY, 'Company'),
    (ROLE_PROMOTER, 'Promoter'),
    (ROLE_USER, 'User'),
]

# Roles that may be chosen at self-registration.
SELF_SERVICE_ROLES = (ROLE_COMPANY, ROLE_PROMOTER, ROLE_USER)

ROLE_PERMISSIONS: dict[str, list[str]] = {
    ROLE_ADMIN: [
        'view_contracts',
        'create_contracts',
        'edit_contracts',
        'delete_contracts',
        'view_users',
        'manage_users',
        'view_analytics',
        'access_admin_panel',
        'manage_placeholders',
        'regenerate_contract_json',
    ],
    ROLE_COMPANY: [
        'view_contracts',
        'create_contracts',
        'edit_own_contracts',
        'view_own_analytics',
    ],
    ROLE_PROMOTER: [
        'view_assigned_contracts',
        'update_profile',
    ],
    ROLE_USER: [
        'view_public_contracts',
    ],
}

# Longest prefixes first; a path must satisfy every prefix it falls under.
ROUTE_ACCESS: list[tuple[str, tuple[str, ...]]] = [
    ('/admin/placeholders', (ROLE_ADMIN,)),
    ('/admin/create', (ROLE_ADMIN,)),
    ('/admin/edit', (ROLE_ADMIN,)),
    ('/admin', (ROLE_ADMIN,)),
    ('/edge-functions', (ROLE_ADMIN,)),
    ('/contracts', (ROLE_ADMIN, ROLE_COMPANY, ROLE_PROMOTER)),
    ('/company', (ROLE_ADMIN, ROLE_COMPANY)),
    ('/promoter', (ROLE_ADMIN, ROLE_PROMOTER)),
]


def is_valid_role(role) -> bool:
    return role in ROLES


def permissions_for(role) -> list[str]:
    return list(ROLE_PERMISSIONS.get(role, []))


def has_permission(role, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, [])


def has_any_permission(role, permissions) -> bool:
    return any(has_permission(role, p) for p in permissions)


def has_required_role(role, allowed_roles) -> bool:
    return bool(role) and role in allowed_roles


def _prefix_matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip('/') + '/')


def can_access_route(role, path: str) -> bool:
    """Return True when `role` may open `path`.

    Unrestricted paths are open to every signed-in role; no role opens nothing.
    """
    if not role:
        return False
    path = '/' + (path or '').strip().lstrip('/')
    for prefix, allowed in ROUTE_ACCESS:
        if _prefix_matches(path, prefix) and role not in allowed:
            return False
    return True


def route_access_table() -> dict[str, list[str]]:
    return {prefix: list(allowed) for prefix, allowed in ROUTE_ACCESS}
