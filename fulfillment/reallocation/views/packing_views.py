"""
Packing views for the Fulfillment Reallocation Engine.
"""

from rest_framework import viewsets
from rest_framework.decorators import action

from ..services import PackingService
from ..serializers.packing_serializers import PackingPlanSerializer
from ..exceptions import BusinessException
from ..permissions import IsWarehouseStaff
from .responses import success_response, business_error_response


class PackingViewSet(viewsets.ViewSet):
    """
    Packing plans, keyed by order id.
    """

    permission_classes = [IsWarehouseStaff]

    @action(detail=True, methods=['get'])
    def plan(self, request, pk=None):
        """What is left to pack for an order, with weight and box size."""
        try:
            plan = PackingService.compute_packing_plan(pk)
        except BusinessException as e:
            return business_error_response(e)

        return success_response(PackingPlanSerializer(plan).data)
