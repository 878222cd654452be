from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    message = "Admin only"

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_admin", False))
