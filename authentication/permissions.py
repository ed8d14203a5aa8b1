"""
DRF permission classes backed by the static role table
"""
from rest_framework.permissions import BasePermission

from .roles import has_any_permission


def role_of(user):
    return getattr(user, 'role', None) if user is not None else None


class HasRolePermission(BasePermission):
    """
    Grants access when the caller's role holds any of the view's
    `required_permissions`. Views may vary them per action through
    `required_permissions_by_action`.
    """

    message = 'You do not have permission to perform this action.'

    def get_required(self, view):
        by_action = getattr(view, 'required_permissions_by_action', None) or {}
        action = getattr(view, 'action', None)
        if action in by_action:
            return by_action[action]
        return getattr(view, 'required_permissions', None) or []

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        required = self.get_required(view)
        if not required:
            return True
        return has_any_permission(role_of(user), required)


class IsAdminRole(BasePermission):
    message = 'Admin access required'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, 'is_admin', False))
