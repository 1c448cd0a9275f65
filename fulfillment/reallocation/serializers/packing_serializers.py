"""
Packing serializers for the Fulfillment Reallocation Engine.
"""

from rest_framework import serializers


class PackingLineSerializer(serializers.Serializer):
    """One order line in a packing plan."""

    order_line_id = serializers.UUIDField()
    sku = serializers.CharField()
    product_name = serializers.CharField()
    quantity = serializers.IntegerField()
    quantity_to_pack = serializers.IntegerField()
    already_shipped = serializers.IntegerField()
    back_order_status = serializers.CharField(allow_null=True)
    unit_weight_grams = serializers.DecimalField(max_digits=12, decimal_places=2)
    unit_weight_oz = serializers.DecimalField(max_digits=12, decimal_places=2)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2)


class PackingInfoSerializer(serializers.Serializer):
    """Aggregate weight, volume and box suggestion for a packing plan."""

    total_weight_grams = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_weight_oz = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_weight_lbs = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_volume = serializers.DecimalField(max_digits=16, decimal_places=2)
    suggested_box = serializers.CharField()
    estimated_shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2)


class PackingPlanSerializer(serializers.Serializer):
    """Serializer for the packing plan returned by PackingService."""

    order = serializers.DictField()
    items = PackingLineSerializer(many=True)
    packing_info = PackingInfoSerializer()
