"""
Django admin configuration for the Fulfillment Reallocation Engine.
"""

from django.contrib import admin
from .models import Order, OrderLine, BackOrder, PickList, PickListItem, AuditEvent


class OrderLineInline(admin.TabularInline):
    model = OrderLine
    extra = 0
    readonly_fields = ['id', 'created_at']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer_name', 'status', 'has_back_orders', 'picking_assigned_to', 'created_at']
    list_filter = ['status', 'has_back_orders', 'created_at']
    search_fields = ['order_number', 'customer_name']
    readonly_fields = ['id', 'order_number', 'created_at', 'updated_at']
    inlines = [OrderLineInline]


@admin.register(BackOrder)
class BackOrderAdmin(admin.ModelAdmin):
    list_display = ['order', 'product', 'location', 'quantity_back_ordered', 'quantity_fulfilled', 'status', 'created_at']
    list_filter = ['status', 'reason', 'created_at']
    search_fields = ['order__order_number', 'product__sku']
    readonly_fields = ['id', 'created_at', 'allocated_at', 'fulfilled_at', 'updated_at']


class PickListItemInline(admin.TabularInline):
    model = PickListItem
    extra = 0
    readonly_fields = ['id', 'picked_at', 'created_at']


@admin.register(PickList)
class PickListAdmin(admin.ModelAdmin):
    list_display = ['batch_number', 'assigned_to', 'status', 'priority', 'parent', 'version', 'progress_percentage', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['batch_number', 'assigned_to__username']
    readonly_fields = ['id', 'version', 'created_at', 'updated_at']
    inlines = [PickListItemInline]


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ['subject_type', 'subject_id', 'event_type', 'actor', 'timestamp']
    list_filter = ['subject_type', 'event_type', 'timestamp']
    search_fields = ['subject_id', 'notes']
    readonly_fields = ['id', 'subject_type', 'subject_id', 'event_type', 'actor', 'timestamp', 'payload', 'notes']

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
