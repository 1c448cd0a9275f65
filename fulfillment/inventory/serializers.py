from rest_framework import serializers
from .models import Product, StorageLocation, InventoryRecord


class InventoryRecordSerializer(serializers.ModelSerializer):
    product_sku = serializers.CharField(source="product.sku", read_only=True)
    location_code = serializers.CharField(source="location.code", read_only=True)
    quantity_available = serializers.IntegerField(read_only=True)

    class Meta:
        model = InventoryRecord
        fields = [
            "id",
            "product",
            "product_sku",
            "location",
            "location_code",
            "quantity_on_hand",
            "quantity_reserved",
            "quantity_available",
            "last_movement_date",
        ]
        read_only_fields = fields


class StockReceiptSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    location_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    auto_allocate = serializers.BooleanField(default=True)

    def validate_product_id(self, value):
        if not Product.objects.filter(id=value, is_active=True).exists():
            raise serializers.ValidationError("Product not found or inactive")
        return value

    def validate_location_id(self, value):
        if not StorageLocation.objects.filter(id=value, is_active=True).exists():
            raise serializers.ValidationError("Location not found or inactive")
        return value
