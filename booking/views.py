# booking/views.py
import logging
import math

from django.conf import settings
from django.db.models import Count, Prefetch
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminRole, IsAdminRoleOrReadOnly, is_admin
from kits.models import BookingFuneralKit
from staff.models import BookingStaff

from . import lifecycle
from .models import (
    Booking,
    BookingPackage,
    BookingStatus,
    Package,
    Payment,
    PaymentSetting,
    PaymentStatus,
)
from .serializers import (
    AdminNotesSerializer,
    BookingCreateSerializer,
    BookingSerializer,
    BookingStatusHistorySerializer,
    PackageSerializer,
    PaymentSerializer,
    PaymentSubmitSerializer,
    QrImageSerializer,
    RejectBookingSerializer,
)

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def booking_queryset():
    return (
        Booking.objects
        .select_related("user", "plot", "deceased", "approved_by")
        .prefetch_related(
            Prefetch("payments", queryset=Payment.objects.select_related("verified_by")),
            Prefetch("staff_assignments", queryset=BookingStaff.objects.select_related("staff")),
            Prefetch("funeral_kits", queryset=BookingFuneralKit.objects.select_related("kit")),
            Prefetch("package_lines", queryset=BookingPackage.objects.select_related("package")),
        )
        .order_by("-created_at", "-id")
    )


def status_counts(qs=None):
    qs = Booking.objects.all() if qs is None else qs
    rows = qs.order_by().values("status").annotate(n=Count("id"))
    counts = {s: 0 for s in BookingStatus.values}
    for row in rows:
        counts[row["status"]] = row["n"]
    return counts


def _positive_int(value, default, name):
    if value in (None, ""):
        return default
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError({name: f"{name} mesti nombor bulat."})
    if n < 1:
        raise ValidationError({name: f"{name} mesti sekurang-kurangnya 1."})
    return n


class BookingViewSet(mixins.CreateModelMixin,
                     mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    """
    /api/bookings/
      GET    -> own bookings
      POST   -> new booking (multipart: plot, booking_date, deceased_*, documents, packages)
    /api/bookings/{id}/
      GET    -> own booking detail
    /api/bookings/{id}/payment/
      GET    -> payment of the booking (owner or admin)
      POST   -> submit proof of payment (owner)
    """

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get_queryset(self):
        return booking_queryset().filter(user=self.request.user)

    def create(self, request, *args, **kwargs):
        ser = BookingCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        booking = lifecycle.create_booking(
            actor=request.user,
            plot_id=data["plot"].pk,
            booking_date=data["booking_date"],
            deceased=ser.deceased_payload(),
            death_certificate=data.get("death_certificate"),
            burial_permit=data.get("burial_permit"),
            notes=data.get("notes", ""),
            package_ids=[p.pk for p in data.get("packages", [])],
        )
        booking = booking_queryset().get(pk=booking.pk)
        return Response(
            {
                "message": "Tempahan berjaya dihantar. Menunggu kelulusan admin.",
                "booking": BookingSerializer(booking, context={"request": request}).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get", "post"], url_path="payment")
    def payment(self, request, pk=None):
        try:
            booking = Booking.objects.get(pk=pk)
        except (Booking.DoesNotExist, ValueError):
            raise NotFound(lifecycle.BOOKING_NOT_FOUND)

        if request.method == "GET":
            if booking.user_id != request.user.pk and not is_admin(request.user):
                raise PermissionDenied("Akses ditolak.")
            payment = (
                booking.payments
                .select_related("verified_by")
                .order_by("-created_at", "-pk")
                .first()
            )
            if payment is None:
                raise NotFound("Maklumat pembayaran tidak ditemukan.")
            return Response({"payment": PaymentSerializer(payment, context={"request": request}).data})

        ser = PaymentSubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        payment = lifecycle.submit_payment(
            booking.pk,
            request.user,
            receipt=ser.validated_data.get("receipt"),
            transaction_id=ser.validated_data.get("transaction_id", ""),
            payment_notes=ser.validated_data.get("payment_notes", ""),
        )
        return Response(
            {
                "message": "Pembayaran berjaya dihantar. Menunggu pengesahan daripada admin.",
                "payment": PaymentSerializer(payment, context={"request": request}).data,
            },
            status=status.HTTP_200_OK,
        )


class AdminBookingViewSet(viewsets.ReadOnlyModelViewSet):
    """
    /api/admin/bookings/?status=&page=&limit=
    /api/admin/bookings/statistics/
    /api/admin/bookings/{id}/approve|reject|complete/
    /api/admin/bookings/{id}/history/
    """

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]

    def get_queryset(self):
        qs = booking_queryset()
        status_param = (self.request.query_params.get("status") or "").upper()
        if status_param and status_param != "ALL":
            if status_param not in BookingStatus.values:
                raise ValidationError({"status": "Status tempahan tidak sah."})
            qs = qs.filter(status=status_param)
        return qs

    def list(self, request, *args, **kwargs):
        page = _positive_int(request.query_params.get("page"), 1, "page")
        limit = min(
            _positive_int(request.query_params.get("limit"), DEFAULT_PAGE_SIZE, "limit"),
            MAX_PAGE_SIZE,
        )
        qs = self.get_queryset()
        total = qs.count()
        offset = (page - 1) * limit
        rows = qs[offset:offset + limit]

        return Response({
            "bookings": self.get_serializer(rows, many=True).data,
            "pagination": {
                "page": page,
                "limit": limit,
                "total_count": total,
                "total_pages": math.ceil(total / limit) if total else 0,
                "has_next_page": page * limit < total,
                "has_previous_page": page > 1,
            },
            "statistics": status_counts(),
        })

    @action(detail=False, methods=["get"], url_path="statistics")
    def statistics(self, request):
        counts = status_counts()
        return Response({"statistics": counts, "total": sum(counts.values())})

    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request, pk=None):
        booking = self.get_object()
        rows = booking.status_history.select_related("changed_by").all()
        return Response(BookingStatusHistorySerializer(rows, many=True).data)

    def _snapshot_response(self, request, booking_id, message, **extra):
        booking = booking_queryset().get(pk=booking_id)
        payload = {
            "message": message,
            "booking": BookingSerializer(booking, context={"request": request}).data,
        }
        payload.update(extra)
        return Response(payload, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="approve")
    def approve(self, request, pk=None):
        ser = AdminNotesSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        booking, payment = lifecycle.approve_booking(
            pk, request.user, admin_notes=ser.validated_data.get("admin_notes"),
        )
        return self._snapshot_response(
            request, booking.pk,
            "Tempahan berjaya diluluskan. Pelanggan akan dimaklumkan untuk membuat pembayaran.",
            payment=PaymentSerializer(payment, context={"request": request}).data,
        )

    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request, pk=None):
        ser = RejectBookingSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        booking = lifecycle.reject_booking(
            pk,
            request.user,
            ser.validated_data.get("rejection_reason"),
            admin_notes=ser.validated_data.get("admin_notes"),
        )
        return self._snapshot_response(
            request, booking.pk,
            "Tempahan berjaya ditolak. Pelanggan akan dimaklumkan.",
        )

    @action(detail=True, methods=["post"], url_path="complete")
    def complete(self, request, pk=None):
        ser = AdminNotesSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        booking = lifecycle.complete_booking(
            pk, request.user, admin_notes=ser.validated_data.get("admin_notes"),
        )
        return self._snapshot_response(
            request, booking.pk,
            "Tempahan berjaya ditandakan sebagai selesai. Plot kini berstatus OCCUPIED.",
        )


class AdminPaymentViewSet(viewsets.GenericViewSet):
    """
    /api/admin/payments/{id}/verify/   { verified: bool, admin_notes? }
    """

    queryset = Payment.objects.all()
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]

    @action(detail=True, methods=["post"], url_path="verify")
    def verify(self, request, pk=None):
        ser = AdminNotesSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        payment, booking = lifecycle.verify_payment(
            pk,
            request.user,
            request.data.get("verified"),
            admin_notes=ser.validated_data.get("admin_notes"),
        )
        message = (
            "Pembayaran berjaya disahkan. Tempahan kini menunggu untuk dilaksanakan."
            if payment.payment_status == PaymentStatus.SUCCESSFUL
            else "Pembayaran ditolak. Pelanggan perlu menghantar semula bukti pembayaran."
        )
        return Response(
            {
                "message": message,
                "payment": PaymentSerializer(payment, context={"request": request}).data,
                "booking": {"id": booking.pk, "status": booking.status},
            },
            status=status.HTTP_200_OK,
        )


class QrPaymentSettingView(APIView):
    """
    GET /api/payment-settings/qr/   public; the image customers scan to pay
    PUT /api/payment-settings/qr/   admin;  { qr_image_url }
    """

    def get_permissions(self):
        if self.request.method == "GET":
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated(), IsAdminRole()]

    def get(self, request):
        url = (
            PaymentSetting.objects
            .filter(type=PaymentSetting.Type.QR_PAYMENT)
            .values_list("qr_image_url", flat=True)
            .first()
        )
        return Response({"qr_image_url": url or settings.PUSARA_DEFAULT_QR_IMAGE_URL})

    def put(self, request):
        ser = QrImageSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        setting, _ = PaymentSetting.objects.update_or_create(
            type=PaymentSetting.Type.QR_PAYMENT,
            defaults={"qr_image_url": ser.validated_data["qr_image_url"]},
        )
        log.info("QR payment image changed by %s", request.user.pk)
        return Response(
            {"message": "Imej QR berjaya dikemas kini.", "qr_image_url": setting.qr_image_url},
            status=status.HTTP_200_OK,
        )


class PackageViewSet(viewsets.ModelViewSet):
    """
    /api/packages/        GET list (signed in), POST (admin)
    /api/packages/{id}/   GET, PATCH / PUT / DELETE (admin)
    """

    queryset = Package.objects.all()
    serializer_class = PackageSerializer
    permission_classes = [IsAdminRoleOrReadOnly]

    def get_object(self):
        try:
            return super().get_object()
        except NotFound:
            raise NotFound("Pakej tidak ditemukan.")

    def perform_create(self, serializer):
        package = serializer.save()
        log.info("Package %s created by %s", package.pk, self.request.user.pk)

    def destroy(self, request, *args, **kwargs):
        package = self.get_object()
        if package.booking_lines.exists():
            raise ValidationError("Pakej ini telah digunakan dalam tempahan dan tidak boleh dipadamkan.")
        package_id = package.pk
        package.delete()
        log.info("Package %s deleted by %s", package_id, request.user.pk)
        return Response({"message": "Pakej berjaya dipadamkan."}, status=status.HTTP_200_OK)
