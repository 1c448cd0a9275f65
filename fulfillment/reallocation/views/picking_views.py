"""
Pick list views for the Fulfillment Reallocation Engine.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters
from rest_framework.decorators import action

from ..models import PickList, AuditEvent
from ..services import ReassignmentService, PickingService
from ..serializers.picking_serializers import (
    PickListListSerializer, PickListDetailSerializer, ReassignSerializer,
    BulkReassignSerializer, EndOfShiftSerializer, RecordPickSerializer,
    SkipItemSerializer, AuditEventSerializer,
)
from ..exceptions import BusinessException
from ..permissions import IsWarehouseStaff, CanReassignWork
from .responses import success_response, error_response, business_error_response


class PickListViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for pick lists.

    Read access for warehouse staff; moving work between pickers is
    restricted to managers.
    """

    queryset = PickList.objects.select_related('assigned_to').all()
    permission_classes = [IsWarehouseStaff]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'assigned_to', 'parent']
    search_fields = ['batch_number']
    ordering_fields = ['priority', 'created_at', 'status']

    MANAGER_ACTIONS = ('reassign', 'bulk_reassign', 'end_of_shift')

    def get_permissions(self):
        if self.action in self.MANAGER_ACTIONS:
            return [CanReassignWork()]
        return super().get_permissions()

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action == 'list':
            return PickListListSerializer
        return PickListDetailSerializer

    @action(detail=True, methods=['post'])
    def reassign(self, request, pk=None):
        """Reassign the outstanding work of a pick list (SPLIT or IN_PLACE)."""
        serializer = ReassignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = ReassignmentService.reassign(
                pk,
                serializer.validated_data['new_staff_id'],
                actor=request.user,
                strategy=serializer.validated_data['strategy'],
                expected_version=serializer.validated_data.get('expected_version'),
                reason=serializer.validated_data['reason'],
                notes=serializer.validated_data['notes'],
            )
            return success_response(result)
        except BusinessException as e:
            return business_error_response(e)

    @action(detail=False, methods=['post'], url_path='bulk-reassign')
    def bulk_reassign(self, request):
        """Move every incomplete pick list of one picker to another."""
        serializer = BulkReassignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = ReassignmentService.bulk_reassign(
                serializer.validated_data['from_staff_id'],
                serializer.validated_data['to_staff_id'],
                actor=request.user,
                reason=serializer.validated_data['reason'],
                notes=serializer.validated_data['notes'],
            )
            return success_response(result)
        except BusinessException as e:
            return business_error_response(e)

    @action(detail=False, methods=['post'], url_path='end-of-shift')
    def end_of_shift(self, request):
        """Reassign or pause a picker's unfinished work at shift end."""
        serializer = EndOfShiftSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = ReassignmentService.end_of_shift(
                serializer.validated_data['staff_id'],
                replacement_staff_id=serializer.validated_data.get('replacement_staff_id'),
                actor=request.user,
                auto_reassign=serializer.validated_data['auto_reassign'],
            )
            return success_response(result)
        except BusinessException as e:
            return business_error_response(e)

    @action(detail=False, methods=['get'])
    def incomplete(self, request):
        """List a picker's unfinished pick lists."""
        staff_id = request.query_params.get('staff_id')
        if not staff_id:
            return error_response('VALIDATION_ERROR', "staff_id query parameter is required")
        if not staff_id.isdigit():
            return error_response('VALIDATION_ERROR', "staff_id must be an integer")

        return success_response(ReassignmentService.find_incomplete_work(int(staff_id)))

    @action(detail=False, methods=['get'], url_path='optimal-staff')
    def optimal_staff(self, request):
        """Rank staff by current workload, lightest first."""
        exclude_staff_id = request.query_params.get('exclude_staff_id')
        if exclude_staff_id is not None and not exclude_staff_id.isdigit():
            return error_response('VALIDATION_ERROR', "exclude_staff_id must be an integer")

        candidates = ReassignmentService.find_optimal_staff(
            int(exclude_staff_id) if exclude_staff_id is not None else None
        )
        return success_response({
            'recommended': candidates[0] if candidates else None,
            'candidates': candidates,
        })

    @action(detail=True, methods=['get'])
    def audit(self, request, pk=None):
        """Diagnose partial picks and stuck items on a pick list."""
        try:
            return success_response(ReassignmentService.audit_progress(pk))
        except BusinessException as e:
            return business_error_response(e)

    @action(detail=True, methods=['get'])
    def events(self, request, pk=None):
        """Audit trail of a pick list, newest first."""
        pick_list = self.get_object()
        events = AuditEvent.objects.filter(subject_type='PickList', subject_id=str(pick_list.id))
        return success_response(AuditEventSerializer(events, many=True).data)

    @action(detail=True, methods=['get'])
    def chain(self, request, pk=None):
        """Split history of a pick list from root through every continuation."""
        try:
            return success_response(ReassignmentService.get_pick_list_chain(pk))
        except BusinessException as e:
            return business_error_response(e)

    @action(detail=True, methods=['post'])
    def pick(self, request, pk=None):
        """Record the picked quantity of one item on this pick list."""
        serializer = RecordPickSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = PickingService.record_pick(
                serializer.validated_data['item_id'],
                serializer.validated_data['quantity_picked'],
                actor=request.user,
                pick_list_id=pk,
            )
            return success_response(result)
        except BusinessException as e:
            return business_error_response(e)

    @action(detail=True, methods=['post'])
    def skip(self, request, pk=None):
        """Skip one item on this pick list."""
        serializer = SkipItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = PickingService.skip_item(
                serializer.validated_data['item_id'],
                actor=request.user,
                reason=serializer.validated_data['reason'],
                pick_list_id=pk,
            )
            return success_response(result)
        except BusinessException as e:
            return business_error_response(e)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        """Close a pick list once every item is picked or skipped."""
        try:
            return success_response(PickingService.complete_pick_list(pk, actor=request.user))
        except BusinessException as e:
            return business_error_response(e)
