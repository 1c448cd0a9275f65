from django.contrib import admin
from .models import Product, StorageLocation, InventoryRecord


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["sku", "name", "unit_weight_grams", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["sku", "name"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(StorageLocation)
class StorageLocationAdmin(admin.ModelAdmin):
    list_display = ["code", "name", "zone", "is_active", "created_at"]
    list_filter = ["zone", "is_active"]
    search_fields = ["code", "name"]
    readonly_fields = ["created_at", "updated_at"]


@admin.register(InventoryRecord)
class InventoryRecordAdmin(admin.ModelAdmin):
    list_display = ["product", "location", "quantity_on_hand", "quantity_reserved", "last_movement_date"]
    list_filter = ["location"]
    search_fields = ["product__name", "product__sku", "location__code"]
    readonly_fields = ["created_at", "last_movement_date"]
