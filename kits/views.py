# kits/views.py
import logging

from django.db import transaction
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminRole
from booking.models import Booking, BookingStatus

from . import ledger
from .models import BookingFuneralKit, FuneralKit, FuneralKitUsage, UsageReason
from .serializers import (
    BookingFuneralKitSerializer,
    FuneralKitSerializer,
    FuneralKitUsageSerializer,
    KitAdjustSerializer,
    KitReserveSerializer,
)

log = logging.getLogger(__name__)

DEFAULT_USAGE_LIMIT = 50
MAX_USAGE_LIMIT = 200


def _int_param(request, name, default, minimum=0):
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError({name: f"{name} mesti nombor bulat."})
    if value < minimum:
        raise ValidationError({name: f"{name} mesti sekurang-kurangnya {minimum}."})
    return value


class FuneralKitViewSet(viewsets.ReadOnlyModelViewSet):
    """
    /api/funeral-kits/                 GET  -> stock per kit type
    /api/funeral-kits/adjust/          POST -> admin stock correction
    /api/funeral-kits/usage/           GET  -> admin ledger (?kit_id=&limit=&offset=)
    """

    queryset = FuneralKit.objects.all().order_by("kit_type")
    serializer_class = FuneralKitSerializer
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request, *args, **kwargs):
        return Response({"kits": self.get_serializer(self.get_queryset(), many=True).data})

    @action(
        detail=False,
        methods=["post"],
        url_path="adjust",
        permission_classes=[permissions.IsAuthenticated, IsAdminRole],
    )
    def adjust(self, request):
        ser = KitAdjustSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        kit = data["kit"]
        delta = data["quantity_change"]

        entry = ledger.adjust(
            kit, delta, data["reason"],
            actor=request.user,
            notes=data.get("notes", ""),
        )

        verb = "Ditambah" if delta > 0 else "Dikurangkan"
        return Response(
            {
                "message": f"Kuantiti kit berjaya dikemas kini. {verb} {abs(delta)} kit.",
                "kit": FuneralKitSerializer(kit).data,
                "usage": FuneralKitUsageSerializer(entry).data,
            },
            status=status.HTTP_200_OK,
        )

    @action(
        detail=False,
        methods=["get"],
        url_path="usage",
        permission_classes=[permissions.IsAuthenticated, IsAdminRole],
    )
    def usage(self, request):
        limit = min(_int_param(request, "limit", DEFAULT_USAGE_LIMIT, minimum=1), MAX_USAGE_LIMIT)
        offset = _int_param(request, "offset", 0)

        qs = FuneralKitUsage.objects.select_related("kit", "changed_by").order_by("-created_at", "-id")
        kit_id = request.query_params.get("kit_id")
        if kit_id:
            qs = qs.filter(kit_id=kit_id)

        total = qs.count()
        rows = qs[offset:offset + limit]
        return Response({
            "usage": FuneralKitUsageSerializer(rows, many=True).data,
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "has_more": offset + limit < total,
            },
        })


class BookingKitView(APIView):
    """
    POST   /api/booking-kits/              { booking_id, selected_kits: [{kit_type, quantity}] }
    DELETE /api/booking-kits/?booking_id=   cancel every reservation of the booking
    Booking owner only, PENDING bookings only.
    """
    permission_classes = [permissions.IsAuthenticated]

    def _own_pending_booking(self, request, booking_id):
        try:
            booking = (
                Booking.objects
                .select_for_update()
                .get(pk=booking_id, user=request.user)
            )
        except (Booking.DoesNotExist, ValueError, TypeError):
            raise NotFound("Tempahan tidak ditemukan atau akses ditolak.")
        if booking.status != BookingStatus.PENDING:
            raise ValidationError("Kit hanya boleh diubah untuk tempahan yang berstatus PENDING.")
        return booking

    def post(self, request):
        ser = KitReserveSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        with transaction.atomic():
            booking = self._own_pending_booking(request, data["booking_id"])
            kits = {k.kit_type: k for k in FuneralKit.objects.filter(
                kit_type__in=[s["kit_type"] for s in data["selected_kits"]]
            )}

            reserved = []
            for selection in data["selected_kits"]:
                kit = kits.get(selection["kit_type"])
                if kit is None:
                    raise NotFound(f"Kit jenis {selection['kit_type']} tidak ditemukan.")
                reserved.append(
                    ledger.reserve(kit, selection["quantity"], booking, actor=request.user)
                )

        return Response(
            {
                "message": "Kit pengebumian berjaya ditempah.",
                "reserved_kits": BookingFuneralKitSerializer(reserved, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )

    def delete(self, request):
        booking_id = request.query_params.get("booking_id")
        if not booking_id:
            raise ValidationError({"booking_id": "Parameter booking_id diperlukan."})

        with transaction.atomic():
            booking = self._own_pending_booking(request, booking_id)
            reservations = list(
                BookingFuneralKit.objects
                .filter(booking=booking)
                .select_related("kit")
                .order_by("pk")
            )
            for r in reservations:
                ledger.release(
                    r.kit, r.quantity, booking,
                    UsageReason.BOOKING_CANCELLED,
                    actor=request.user,
                    notes=f"Tempahan kit dibatalkan untuk tempahan {booking.pk}",
                )
            BookingFuneralKit.objects.filter(pk__in=[r.pk for r in reservations]).delete()

        if not reservations:
            return Response({"message": "Tiada tempahan kit untuk dibatalkan."})

        log.info("Cancelled %d kit reservations for booking %s", len(reservations), booking.pk)
        return Response({
            "message": "Tempahan kit berjaya dibatalkan.",
            "released": [
                {"kit_type": r.kit.kit_type, "quantity": r.quantity}
                for r in reservations
            ],
        })
