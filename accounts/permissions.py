# accounts/permissions.py
from rest_framework import permissions
from rest_framework.exceptions import NotAuthenticated, PermissionDenied

from .models import Role, User

ADMIN_ONLY_MESSAGE = "Akses ditolak. Hanya admin yang boleh melakukan tindakan ini."


def is_admin(user) -> bool:
    """
    Role lookup by counting role rows for the principal.
    Exactly one row with role=ADMIN passes; zero rows (user vanished) or
    several rows (broken role data) are treated as not-admin.
    """
    if not (user and user.is_authenticated):
        return False
    roles = list(User.objects.filter(pk=user.pk).values_list("role", flat=True))
    return len(roles) == 1 and roles[0] == Role.ADMIN


def require_admin(user, message=ADMIN_ONLY_MESSAGE):
    if not (user and user.is_authenticated):
        raise NotAuthenticated("Akses ditolak. Sila log masuk terlebih dahulu.")
    if not is_admin(user):
        raise PermissionDenied(message)


class IsAdminRole(permissions.BasePermission):
    """
    Only ADMIN role can use the back-office endpoints.
    """
    message = ADMIN_ONLY_MESSAGE

    def has_permission(self, request, view):
        return is_admin(request.user)


class IsAdminRoleOrReadOnly(permissions.BasePermission):
    """
    Everyone authenticated can GET, only ADMIN can write.
    """
    message = ADMIN_ONLY_MESSAGE

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_admin(user)
