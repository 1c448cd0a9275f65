"""
Pick list serializers for the Fulfillment Reallocation Engine.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from ..models import PickList, PickListItem, AuditEvent, ReassignmentReason
from ..services.reassignment_service import REASSIGNMENT_STRATEGIES, STRATEGY_SPLIT


def _validate_active_staff(value):
    User = get_user_model()
    if not User.objects.filter(id=value, is_active=True).exists():
        raise serializers.ValidationError("Invalid or inactive staff member")
    return value


class PickListItemSerializer(serializers.ModelSerializer):
    """Serializer for PickListItem model."""

    sku = serializers.CharField(source='product.sku', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    location_code = serializers.CharField(source='location.code', read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True)
    remaining_to_pick = serializers.IntegerField(read_only=True)

    class Meta:
        model = PickListItem
        fields = [
            'id', 'order', 'order_number', 'sku', 'product_name', 'location_code',
            'quantity_to_pick', 'quantity_picked', 'remaining_to_pick',
            'status', 'sequence', 'notes', 'picked_at', 'created_at'
        ]
        read_only_fields = fields


class PickListListSerializer(serializers.ModelSerializer):
    """Serializer for pick list listing."""

    assigned_to_name = serializers.CharField(source='assigned_to.username', read_only=True, default=None)
    progress_percentage = serializers.FloatField(read_only=True)

    class Meta:
        model = PickList
        fields = [
            'id', 'batch_number', 'assigned_to', 'assigned_to_name', 'status',
            'priority', 'parent', 'version', 'total_items', 'picked_items',
            'progress_percentage', 'created_at'
        ]


class PickListDetailSerializer(serializers.ModelSerializer):
    """Serializer for pick list details."""

    assigned_to_name = serializers.CharField(source='assigned_to.username', read_only=True, default=None)
    progress_percentage = serializers.FloatField(read_only=True)
    items = PickListItemSerializer(many=True, read_only=True)

    class Meta:
        model = PickList
        fields = [
            'id', 'batch_number', 'assigned_to', 'assigned_to_name', 'status',
            'priority', 'parent', 'version', 'total_items', 'picked_items',
            'progress_percentage', 'notes', 'start_time', 'end_time',
            'created_at', 'updated_at', 'items'
        ]
        read_only_fields = fields


class ReassignSerializer(serializers.Serializer):
    """Serializer for reassigning one pick list."""

    new_staff_id = serializers.IntegerField()
    strategy = serializers.ChoiceField(choices=REASSIGNMENT_STRATEGIES, default=STRATEGY_SPLIT)
    expected_version = serializers.IntegerField(required=False, min_value=1)
    reason = serializers.ChoiceField(choices=ReassignmentReason.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default='', max_length=500)

    def validate_new_staff_id(self, value):
        return _validate_active_staff(value)


class BulkReassignSerializer(serializers.Serializer):
    """Serializer for moving all of one picker's work to another."""

    from_staff_id = serializers.IntegerField()
    to_staff_id = serializers.IntegerField()
    reason = serializers.ChoiceField(
        choices=ReassignmentReason.choices, default=ReassignmentReason.STAFF_UNAVAILABLE
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='', max_length=500)

    def validate_to_staff_id(self, value):
        return _validate_active_staff(value)

    def validate(self, attrs):
        if attrs['from_staff_id'] == attrs['to_staff_id']:
            raise serializers.ValidationError("Source and target staff must differ")
        return attrs


class EndOfShiftSerializer(serializers.Serializer):
    """Serializer for end-of-shift handling."""

    staff_id = serializers.IntegerField()
    replacement_staff_id = serializers.IntegerField(required=False, allow_null=True)
    auto_reassign = serializers.BooleanField(default=False)

    def validate_replacement_staff_id(self, value):
        if value is None:
            return value
        return _validate_active_staff(value)


class RecordPickSerializer(serializers.Serializer):
    """Serializer for recording a pick on one item."""

    item_id = serializers.UUIDField()
    quantity_picked = serializers.IntegerField(min_value=0)


class SkipItemSerializer(serializers.Serializer):
    """Serializer for skipping one item."""

    item_id = serializers.UUIDField()
    reason = serializers.CharField(required=False, allow_blank=True, default='', max_length=255)


class AuditEventSerializer(serializers.ModelSerializer):
    """Serializer for AuditEvent model."""

    actor_name = serializers.CharField(source='actor.username', read_only=True, default=None)

    class Meta:
        model = AuditEvent
        fields = [
            'id', 'subject_type', 'subject_id', 'event_type',
            'actor', 'actor_name', 'timestamp', 'payload', 'notes'
        ]
        read_only_fields = fields
