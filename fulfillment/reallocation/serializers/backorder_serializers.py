"""
Back order serializers for the Fulfillment Reallocation Engine.
"""

from rest_framework import serializers

from ..models import BackOrder, BackOrderStatus


class BackOrderSerializer(serializers.ModelSerializer):
    """Serializer for BackOrder model."""

    order_number = serializers.CharField(source='order.order_number', read_only=True)
    sku = serializers.CharField(source='product.sku', read_only=True)
    location_code = serializers.CharField(source='location.code', read_only=True)
    remaining_needed = serializers.IntegerField(read_only=True)

    class Meta:
        model = BackOrder
        fields = [
            'id', 'order', 'order_number', 'order_line', 'sku', 'location_code',
            'quantity_back_ordered', 'quantity_fulfilled', 'remaining_needed',
            'status', 'reason', 'reason_details',
            'created_at', 'allocated_at', 'fulfilled_at'
        ]
        read_only_fields = fields


class FulfillBatchSerializer(serializers.Serializer):
    """Serializer for allocating several back orders at once."""

    back_order_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False,
        max_length=500
    )

    def validate_back_order_ids(self, value):
        """Drop duplicates while keeping request order."""
        return list(dict.fromkeys(value))


class GroupByOrderQuerySerializer(serializers.Serializer):
    """Query parameters for the grouped back-order view."""

    status = serializers.ChoiceField(choices=BackOrderStatus.choices, required=False)
