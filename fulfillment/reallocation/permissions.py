"""
Custom permissions for the Fulfillment Reallocation Engine.
"""

from django.conf import settings
from rest_framework.permissions import BasePermission


class IsWarehouseStaff(BasePermission):
    """
    Permission that allows access only to warehouse staff users.

    Checks if user is staff or belongs to the WAREHOUSE_STAFF_GROUP group.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        if user.is_staff:
            return True

        group = getattr(settings, 'WAREHOUSE_STAFF_GROUP', 'warehouse_staff')
        return user.groups.filter(name=group).exists()


class CanReassignWork(BasePermission):
    """
    Permission for moving work between pickers.

    Restricted to warehouse managers or supervisors.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        groups = getattr(settings, 'WAREHOUSE_MANAGER_GROUPS', ['warehouse_manager', 'order_supervisor'])
        return user.is_staff or user.groups.filter(name__in=groups).exists()
