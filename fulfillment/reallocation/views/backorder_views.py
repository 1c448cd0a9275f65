"""
Back order views for the Fulfillment Reallocation Engine.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters
from rest_framework.decorators import action

from inventory.exceptions import InventoryLedgerException

from ..models import BackOrder
from ..services import AllocationService
from ..serializers.backorder_serializers import (
    BackOrderSerializer, FulfillBatchSerializer, GroupByOrderQuerySerializer
)
from ..exceptions import BusinessException
from ..permissions import IsWarehouseStaff
from .responses import success_response, error_response, business_error_response


class BackOrderViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for the back-order queue.

    Listing follows FIFO order; allocation runs through AllocationService.
    """

    queryset = BackOrder.objects.select_related('order', 'product', 'location').fifo()
    serializer_class = BackOrderSerializer
    permission_classes = [IsWarehouseStaff]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['status', 'order', 'product', 'location', 'reason']
    ordering_fields = ['created_at', 'quantity_back_ordered']

    @action(detail=True, methods=['post'])
    def fulfill(self, request, pk=None):
        """Allocate stock to one back order, all or nothing."""
        try:
            result = AllocationService.fulfill_one(pk, actor=request.user)
        except BusinessException as e:
            return business_error_response(e)
        except InventoryLedgerException as e:
            return error_response(e.code, e.message, e.details)

        if not result['success']:
            return error_response(
                result['code'],
                f"Insufficient stock: {result['needed']} needed, {result['available']} available",
                {'needed': result['needed'], 'available': result['available']}
            )
        return success_response(result)

    @action(detail=False, methods=['post'], url_path='fulfill-batch')
    def fulfill_batch(self, request):
        """Allocate several back orders; each succeeds or fails on its own."""
        serializer = FulfillBatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        results = AllocationService.fulfill_batch(
            serializer.validated_data['back_order_ids'], actor=request.user
        )
        succeeded = sum(1 for result in results if result['success'])
        return success_response({
            'allocated_count': succeeded,
            'failed_count': len(results) - succeeded,
            'results': results,
        })

    @action(detail=False, methods=['get'], url_path='by-order')
    def by_order(self, request):
        """Back orders grouped under their order with availability."""
        serializer = GroupByOrderQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        return success_response(AllocationService.group_by_order(serializer.validated_data.get('status')))
