# waqaf/views.py
import logging
from decimal import Decimal

from django.db.models import Count, Sum
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from accounts.permissions import IsAdminRole

from .models import Waqaf
from .serializers import WaqafSerializer

log = logging.getLogger(__name__)


class WaqafViewSet(mixins.CreateModelMixin, viewsets.GenericViewSet):
    """
    POST /api/waqaf/   multipart { donor_name, donor_email, amount, message?, receipt?, receipt_filename? }
    Open to visitors; a signed-in donor is linked to the record.
    """

    queryset = Waqaf.objects.all()
    serializer_class = WaqafSerializer
    permission_classes = [permissions.AllowAny]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def perform_create(self, serializer):
        user = self.request.user if self.request.user.is_authenticated else None
        waqaf = serializer.save(user=user)
        log.info("Waqaf %s recorded (RM %s)", waqaf.transaction_id, waqaf.amount)

    def create(self, request, *args, **kwargs):
        response = super().create(request, *args, **kwargs)
        return Response(
            {"message": "Terima kasih. Sumbangan waqaf anda telah direkodkan.", "waqaf": response.data},
            status=status.HTTP_201_CREATED,
        )


class AdminWaqafViewSet(viewsets.ReadOnlyModelViewSet):
    """
    GET /api/admin/waqaf/        newest first, with totals
    GET /api/admin/waqaf/{id}/
    """

    queryset = Waqaf.objects.all().order_by("-created_at", "-id")
    serializer_class = WaqafSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]

    def list(self, request, *args, **kwargs):
        qs = self.get_queryset()
        totals = qs.aggregate(total_count=Count("id"), total_amount=Sum("amount"))
        return Response({
            "waqaf": self.get_serializer(qs, many=True).data,
            "total_count": totals["total_count"],
            "total_amount": totals["total_amount"] or Decimal("0.00"),
        })
