from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend
from .models import InventoryRecord
from .serializers import InventoryRecordSerializer, StockReceiptSerializer
from inventory.services.stock_service import StockService


class InventoryRecordViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = InventoryRecord.objects.select_related("location", "product").all()
    serializer_class = InventoryRecordSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    search_fields = ["product__name", "product__sku", "location__code"]
    filterset_fields = ["location", "product"]
    ordering_fields = ["product__sku", "location__code", "quantity_on_hand", "last_movement_date"]
    ordering = ["-last_movement_date"]

    @action(detail=False, methods=["get"])
    def by_product(self, request):
        """Get all stock for a specific product"""
        product_id = request.query_params.get("product_id")
        if not product_id:
            return Response({"error": "product_id parameter is required"}, status=status.HTTP_400_BAD_REQUEST)

        stock = StockService().get_stock_by_product(product_id)
        serializer = self.get_serializer(stock["records"], many=True)
        return Response(
            {
                "records": serializer.data,
                "total_on_hand": stock["total_on_hand"],
                "total_reserved": stock["total_reserved"],
                "total_available": stock["total_available"],
            }
        )

    @action(detail=False, methods=["post"])
    def receive(self, request):
        """Book received units and run the FIFO back-order scan for that SKU"""
        serializer = StockReceiptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        from reallocation.services import AllocationService

        data = serializer.validated_data
        result = AllocationService.receive_stock(
            data["product_id"],
            data["location_id"],
            data["quantity"],
            actor=request.user,
            auto_allocate=data["auto_allocate"],
        )
        return Response({"success": True, "data": result}, status=status.HTTP_201_CREATED)
